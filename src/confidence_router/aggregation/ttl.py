"""Confidence-tiered cache lifetimes: better answers live longer."""

from __future__ import annotations

from confidence_router.config import constants


def ttl_for_confidence(confidence: int) -> int:
    """Return the cache TTL in seconds for a final response confidence."""
    for minimum, ttl in constants.TTL_TIERS:
        if confidence >= minimum:
            return ttl
    return constants.TTL_FLOOR_SECONDS
