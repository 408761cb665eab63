"""Tests for rule-based query classification."""

from __future__ import annotations

import pytest

from confidence_router.config.routing import ClassifierConfig
from confidence_router.exceptions import ConfigurationError
from confidence_router.models.domain import Query, QueryContext, QueryType, Urgency
from confidence_router.query.classifier import QueryClassifier


@pytest.fixture
def classifier():
    return QueryClassifier()


def test_urgency_keyword_makes_query_critical(classifier):
    result = classifier.classify(Query(text="URGENT: production database is down"))
    assert result.urgency == Urgency.CRITICAL


def test_declared_urgency_used_without_keyword(classifier):
    query = Query(text="list my pods", context=QueryContext(urgency=Urgency.HIGH))
    assert classifier.classify(query).urgency == Urgency.HIGH


def test_default_urgency_is_normal(classifier):
    assert classifier.classify(Query(text="what time is it")).urgency == Urgency.NORMAL


def test_short_query_lowers_complexity(classifier):
    assert classifier.classify(Query(text="what time")).complexity == 4


def test_medium_query_keeps_base_complexity(classifier):
    result = classifier.classify(Query(text="how do I rotate the storage account keys"))
    assert result.complexity == 5


def test_compound_and_technical_terms_raise_complexity(classifier):
    text = (
        "how should we configure the ingress controller and also tune the "
        "autoscaler thresholds for our cluster?"
    )
    # base 5, +1 technical term, +2 compound marker
    result = classifier.classify(Query(text=text))
    assert result.complexity == 8


def test_long_query_complexity(classifier):
    text = " ".join(["word"] * 55)
    assert classifier.classify(Query(text=text)).complexity == 7


def test_multiple_questions_add_complexity(classifier):
    text = "is the cache warm? is the index built? are replicas healthy?"
    assert classifier.classify(Query(text=text)).complexity == 6


def test_complexity_clamped_to_ten(classifier):
    text = " ".join(["word"] * 60) + " configure and also additionally? furthermore?"
    assert classifier.classify(Query(text=text)).complexity == 10


@pytest.mark.parametrize(
    ("text", "domain"),
    [
        ("How do I set up Azure AD login?", "azure"),
        ("Why is my EC2 instance unreachable", "aws"),
        ("kubectl rollout is stuck", "kubernetes"),
        ("Tune postgres vacuum settings", "database"),
        ("What is the capital of France", "general"),
    ],
)
def test_domain_detection(classifier, text, domain):
    assert classifier.classify(Query(text=text)).domain == domain


def test_declared_domain_wins(classifier):
    query = Query(text="reset my password", context=QueryContext(domain="security"))
    assert classifier.classify(query).domain == "security"


@pytest.mark.parametrize(
    ("text", "query_type"),
    [
        ("What is a service principal", QueryType.FACTUAL),
        ("How to enable soft delete", QueryType.PROCEDURAL),
        ("Why does the deployment fail", QueryType.DIAGNOSTIC),
        ("Difference between Redis and Memcached", QueryType.COMPARATIVE),
        ("Should I use managed identities", QueryType.RECOMMENDATION),
        ("what time is it", QueryType.GENERAL),
    ],
)
def test_query_type_detection(classifier, text, query_type):
    assert classifier.classify(Query(text=text)).query_type == query_type


def test_query_type_rules_are_ordered(classifier):
    # Matches both procedural and diagnostic; procedural is checked first
    result = classifier.classify(Query(text="how to debug a crashing pod"))
    assert result.query_type == QueryType.PROCEDURAL


def test_custom_keyword_tables():
    config = ClassifierConfig(urgency_keywords=["sev1"], domain_keywords={"billing": ["invoice"]})
    classifier = QueryClassifier(config)
    result = classifier.classify(Query(text="sev1 invoice totals are wrong"))
    assert result.urgency == Urgency.CRITICAL
    assert result.domain == "billing"


def test_invalid_query_type_rule_rejected():
    with pytest.raises(ConfigurationError):
        QueryClassifier(ClassifierConfig(query_type_patterns=[("poetry", "roses")]))


def test_classification_is_deterministic(classifier):
    query = Query(text="Compare AKS and EKS pricing, and also networking")
    assert classifier.classify(query) == classifier.classify(query)
