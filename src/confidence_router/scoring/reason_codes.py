"""Machine-readable reason codes attached to every routed response."""

from __future__ import annotations

from enum import StrEnum


class ReasonCode(StrEnum):
    NO_RESULTS = "NO_RESULTS"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    CONFIDENCE_TIE = "CONFIDENCE_TIE"
    COMBINED = "COMBINED"
    CONFLICT = "CONFLICT"
    AUTHORITY_TIEBREAK = "AUTHORITY_TIEBREAK"
    EARLY_STOP = "EARLY_STOP"
    SOURCE_FAILED = "SOURCE_FAILED"
    SOURCE_TIMEOUT = "SOURCE_TIMEOUT"
    PARTIAL_RESULTS = "PARTIAL_RESULTS"
