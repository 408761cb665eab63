"""Detect disagreeing high-confidence answers and pick a winner between them.

Each candidate gets a tie-breaker score:

    0.3 * recency + 0.4 * authority + 0.3 * specificity

Recency decays as exp(-age_days / 180), a 180 day time constant, from
``metadata["timestamp"]`` (0.5 when unknown). Authority is 1.0 for
authoritative sources and ``1/priority`` otherwise. Specificity grows
with answer length up to 2000 characters.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum

from confidence_router.config import constants
from confidence_router.config.routing import AggregationConfig
from confidence_router.models.domain import NormalizedResult
from confidence_router.scoring.similarity import SimilarityFn, word_overlap_similarity

DEFAULT_PRIORITY = 5


class ConflictSeverity(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class ConflictAnalysis:
    has_conflict: bool
    pairs: list[tuple[str, str]] = field(default_factory=list)
    severity: ConflictSeverity | None = None
    avg_similarity: float = 1.0
    contradictions: list[tuple[str, str]] = field(default_factory=list)


@dataclass
class ConflictResolution:
    winner: NormalizedResult
    losers: list[NormalizedResult]
    scores: dict[str, float]
    authority_tiebreak: bool = False


def _phrase(text: str) -> re.Pattern[str]:
    return re.compile(r"\b" + re.escape(text) + r"\b")


_NEGATION_PAIRS = [(_phrase(pos), _phrase(neg)) for pos, neg in constants.CONTRADICTION_PAIRS]


def has_explicit_contradiction(a: str, b: str) -> bool:
    """True when one answer affirms a phrase the other negates."""
    a, b = a.lower(), b.lower()
    for pos, neg in _NEGATION_PAIRS:
        a_neg, b_neg = bool(neg.search(a)), bool(neg.search(b))
        a_pos = bool(pos.search(neg.sub(" ", a)))
        b_pos = bool(pos.search(neg.sub(" ", b)))
        if (a_neg and b_pos and not b_neg) or (b_neg and a_pos and not a_neg):
            return True
    return False


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, (int, float)):
        ts = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            ts = datetime.fromisoformat(value)
        except ValueError:
            return None
    else:
        return None
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


class ConflictResolver:
    def __init__(
        self,
        config: AggregationConfig,
        priorities: Mapping[str, int],
        authoritative: set[str],
        similarity: SimilarityFn = word_overlap_similarity,
    ) -> None:
        self._config = config
        self._priorities = priorities
        self._authoritative = authoritative
        self._similarity = similarity

    def detect(self, results: list[NormalizedResult]) -> ConflictAnalysis:
        pairs: list[tuple[str, str]] = []
        contradictions: list[tuple[str, str]] = []
        similarities: list[float] = []

        for i, first in enumerate(results):
            for second in results[i + 1 :]:
                if (
                    first.confidence <= self._config.conflict_confidence
                    or second.confidence <= self._config.conflict_confidence
                ):
                    continue
                sim = self._similarity(first.answer, second.answer)
                if sim < self._config.conflict_similarity:
                    pairs.append((first.source, second.source))
                    similarities.append(sim)
                    if has_explicit_contradiction(first.answer, second.answer):
                        contradictions.append((first.source, second.source))

        if not pairs:
            return ConflictAnalysis(has_conflict=False)

        avg_similarity = sum(similarities) / len(similarities)
        if contradictions or avg_similarity < 0.3:
            severity = ConflictSeverity.HIGH
        elif avg_similarity < 0.5:
            severity = ConflictSeverity.MEDIUM
        else:
            severity = ConflictSeverity.LOW

        return ConflictAnalysis(
            has_conflict=True,
            pairs=pairs,
            severity=severity,
            avg_similarity=avg_similarity,
            contradictions=contradictions,
        )

    def score(self, result: NormalizedResult, now: datetime | None = None) -> float:
        cfg = self._config
        return (
            cfg.recency_weight * self._recency(result, now or datetime.now(timezone.utc))
            + cfg.authority_weight * self._authority(result.source)
            + cfg.specificity_weight * self._specificity(result.answer)
        )

    def resolve(
        self, results: list[NormalizedResult], now: datetime | None = None
    ) -> ConflictResolution:
        """Pick the best-supported answer among conflicting results."""
        if not results:
            raise ValueError("resolve() needs at least one result")
        now = now or datetime.now(timezone.utc)
        scores = {r.source: round(self.score(r, now), 6) for r in results}

        ranked = sorted(
            results,
            key=lambda r: (scores[r.source], r.source in self._authoritative, r.confidence),
            reverse=True,
        )
        winner = ranked[0]
        authority_tiebreak = (
            len(ranked) > 1
            and scores[ranked[1].source] == scores[winner.source]
            and winner.source in self._authoritative
            and ranked[1].source not in self._authoritative
        )
        return ConflictResolution(
            winner=winner,
            losers=ranked[1:],
            scores=scores,
            authority_tiebreak=authority_tiebreak,
        )

    @staticmethod
    def _recency(result: NormalizedResult, now: datetime) -> float:
        ts = _parse_timestamp(result.metadata.get("timestamp"))
        if ts is None:
            return 0.5
        age_days = max((now - ts).total_seconds() / 86400, 0.0)
        return math.exp(-age_days / constants.RECENCY_TIME_CONSTANT_DAYS)

    def _authority(self, source: str) -> float:
        if source in self._authoritative:
            return 1.0
        return 1.0 / max(self._priorities.get(source, DEFAULT_PRIORITY), 1)

    @staticmethod
    def _specificity(answer: str) -> float:
        return min(1.0, len(answer) / constants.SPECIFICITY_FULL_LENGTH)
