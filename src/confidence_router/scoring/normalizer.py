"""Recalibrate self-reported source confidence by historical accuracy."""

from __future__ import annotations

from collections.abc import Mapping

from confidence_router.config import constants
from confidence_router.models.domain import NormalizedResult, SourceResult


def round_half_up(value: float) -> int:
    return int(value + 0.5)


class ConfidenceNormalizer:
    def __init__(self, default_accuracy: float = constants.DEFAULT_SOURCE_ACCURACY) -> None:
        self._default_accuracy = default_accuracy

    def normalize(
        self, result: SourceResult | NormalizedResult, accuracy: Mapping[str, float]
    ) -> NormalizedResult:
        # Re-normalizing always starts from the raw value
        raw = result.result if isinstance(result, NormalizedResult) else result
        factor = accuracy.get(raw.source, self._default_accuracy)
        confidence = max(0, min(100, round_half_up(raw.confidence * factor)))
        return NormalizedResult(result=raw, confidence=confidence)

    def normalize_all(
        self, results: list[SourceResult] | list[NormalizedResult], accuracy: Mapping[str, float]
    ) -> list[NormalizedResult]:
        return [self.normalize(r, accuracy) for r in results]
