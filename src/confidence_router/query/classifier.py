"""Rule-based query classification: urgency, complexity, domain, query type."""

from __future__ import annotations

import re

from confidence_router.config import constants
from confidence_router.config.routing import ClassifierConfig
from confidence_router.exceptions import ConfigurationError
from confidence_router.models.domain import Query, QueryClassification, QueryType, Urgency
from confidence_router.observability.logger import get_logger

logger = get_logger("query_classifier")


class QueryClassifier:
    def __init__(self, config: ClassifierConfig | None = None) -> None:
        self._config = config or ClassifierConfig()
        self._type_patterns: list[tuple[QueryType, re.Pattern[str]]] = []
        for name, pattern in self._config.query_type_patterns:
            try:
                self._type_patterns.append((QueryType(name), re.compile(pattern, re.IGNORECASE)))
            except (ValueError, re.error) as e:
                raise ConfigurationError(f"Invalid query type rule {name!r}: {e}") from e

    @property
    def config(self) -> ClassifierConfig:
        return self._config

    def classify(self, query: Query) -> QueryClassification:
        text = query.text.lower()
        classification = QueryClassification(
            urgency=self._detect_urgency(text, query),
            complexity=self._estimate_complexity(text),
            domain=query.context.domain or self._identify_domain(text),
            query_type=self._detect_query_type(text),
        )
        logger.debug("query_classified", **classification.to_dict())
        return classification

    def _detect_urgency(self, text: str, query: Query) -> Urgency:
        if any(keyword in text for keyword in self._config.urgency_keywords):
            return Urgency.CRITICAL
        return query.context.urgency or Urgency.NORMAL

    def _estimate_complexity(self, text: str) -> int:
        complexity = constants.BASE_COMPLEXITY

        word_count = len(text.split())
        if word_count > 50:
            complexity += 2
        elif word_count > 20:
            complexity += 1
        elif word_count < 5:
            complexity -= 1

        if text.count("?") > 1:
            complexity += 1

        if any(term in text for term in self._config.technical_terms):
            complexity += 1

        if any(marker in text for marker in self._config.compound_markers):
            complexity += 2

        return max(1, min(10, complexity))

    def _identify_domain(self, text: str) -> str:
        for domain, keywords in self._config.domain_keywords.items():
            if any(keyword in text for keyword in keywords):
                return domain
        return "general"

    def _detect_query_type(self, text: str) -> QueryType:
        stripped = text.strip()
        for query_type, pattern in self._type_patterns:
            if pattern.search(stripped):
                return query_type
        return QueryType.GENERAL
