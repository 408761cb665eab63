"""Default tables and thresholds. Overridable through the routing YAML."""

from __future__ import annotations

URGENCY_KEYWORDS: list[str] = ["urgent", "critical", "emergency", "asap", "immediately"]

TECHNICAL_TERMS: list[str] = ["architecture", "implement", "configure", "optimize", "debug"]

COMPOUND_MARKERS: list[str] = ["and also", " or ", "additionally", "furthermore"]

DOMAIN_KEYWORDS: dict[str, list[str]] = {
    "azure": ["azure", "microsoft", "entra", "arm template", "bicep"],
    "aws": ["aws", "amazon", "ec2", "s3", "lambda", "cloudformation"],
    "kubernetes": ["kubernetes", "k8s", "kubectl", "pod", "helm"],
    "database": ["database", "sql", "postgres", "mysql", "mongodb", "query plan"],
    "networking": ["network", "dns", "vpn", "firewall", "subnet", "load balancer"],
    "security": ["security", "auth", "encryption", "certificate", "vulnerability"],
}

# Ordered: the first matching pattern wins.
QUERY_TYPE_PATTERNS: list[tuple[str, str]] = [
    ("factual", r"^(what|who|when|where)\s+(is|are|was|were|did)"),
    ("procedural", r"how\s+(to|do|can|should)|steps\s+to"),
    ("diagnostic", r"why\s+(is|does|did)|error|not\s+working|troubleshoot|debug"),
    ("comparative", r"difference\s+between|compare|versus|\svs\s"),
    ("recommendation", r"should\s+i|best\s+practice|recommend|suggest|advice"),
]

BASE_COMPLEXITY = 5

# (minimum confidence, ttl seconds), checked top down
TTL_TIERS: list[tuple[int, int]] = [
    (90, 24 * 3600),
    (80, 6 * 3600),
    (70, 2 * 3600),
    (60, 3600),
]
TTL_FLOOR_SECONDS = 30 * 60

DEFAULT_SOURCE_ACCURACY = 0.8
SUCCESS_CONFIDENCE = 75

RECENCY_TIME_CONSTANT_DAYS = 180.0
SPECIFICITY_FULL_LENGTH = 2000

NO_RESULTS_ANSWER = "I couldn't find a reliable answer to your question."
NO_RESULTS_WARNING = "All information sources failed or returned no results"
LOW_CONFIDENCE_WARNING = "Low confidence - please verify this answer independently"
TIE_WARNING = "Multiple high-confidence answers found - review alternatives"
CONFLICT_WARNING = "Multiple sources provided conflicting answers"
PARTIAL_WARNING = "Routing deadline reached - answer built from partial results"

CONTRADICTION_PAIRS: list[tuple[str, str]] = [
    ("should", "should not"),
    ("can", "cannot"),
    ("is", "is not"),
    ("will", "will not"),
    ("must", "must not"),
    ("true", "false"),
    ("yes", "no"),
    ("correct", "incorrect"),
]
