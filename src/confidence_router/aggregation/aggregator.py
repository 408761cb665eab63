"""Turn normalized source results into a single routed response.

Decision order: no results, low confidence, confidence tie, conflict,
clear winner. Business-level insufficiency always becomes a warning on the
response, never an exception.
"""

from __future__ import annotations

from collections.abc import Mapping

from confidence_router.aggregation.conflict import ConflictAnalysis, ConflictResolver
from confidence_router.config import constants
from confidence_router.config.routing import AggregationConfig, RoutingConfig
from confidence_router.models.domain import NormalizedResult
from confidence_router.models.schemas import Alternative, RouteResponse
from confidence_router.observability.logger import get_logger
from confidence_router.scoring.normalizer import round_half_up
from confidence_router.scoring.reason_codes import ReasonCode
from confidence_router.scoring.similarity import SimilarityFn, word_overlap_similarity

logger = get_logger("aggregator")


def _alternative(result: NormalizedResult) -> Alternative:
    return Alternative(answer=result.answer, source=result.source, confidence=result.confidence)


class ResultAggregator:
    def __init__(
        self,
        config: AggregationConfig,
        priorities: Mapping[str, int] | None = None,
        authoritative: set[str] | None = None,
        similarity: SimilarityFn = word_overlap_similarity,
    ) -> None:
        self._config = config
        self._similarity = similarity
        self._resolver = ConflictResolver(
            config,
            priorities or {},
            authoritative if authoritative is not None else set(config.authoritative_sources),
            similarity,
        )

    @classmethod
    def from_routing_config(
        cls, config: RoutingConfig, similarity: SimilarityFn = word_overlap_similarity
    ) -> ResultAggregator:
        return cls(
            config.aggregation,
            priorities=config.source_priorities(),
            authoritative=config.authoritative_sources(),
            similarity=similarity,
        )

    @property
    def resolver(self) -> ConflictResolver:
        return self._resolver

    def aggregate(self, results: list[NormalizedResult]) -> RouteResponse:
        valid = [r for r in results if r.confidence > 0]
        if not valid:
            return self._no_results()

        # Source name breaks equal confidences so completion order never matters
        ranked = sorted(valid, key=lambda r: (-r.confidence, r.source))
        top = ranked[0]
        cfg = self._config

        if top.confidence < cfg.low_confidence_threshold:
            return self._low_confidence(ranked)

        if len(ranked) > 1 and top.confidence - ranked[1].confidence <= cfg.tie_margin:
            return self._handle_tie(ranked)

        if cfg.enable_conflict_detection:
            candidates = ranked[:3]
            analysis = self._resolver.detect(candidates)
            if analysis.has_conflict:
                return self._resolve_conflict(candidates, analysis)

        return self._single(ranked)

    def _no_results(self) -> RouteResponse:
        return RouteResponse(
            answer=constants.NO_RESULTS_ANSWER,
            confidence=0,
            source="none",
            warning=constants.NO_RESULTS_WARNING,
            reasons=[ReasonCode.NO_RESULTS],
        )

    def _low_confidence(self, ranked: list[NormalizedResult]) -> RouteResponse:
        top = ranked[0]
        return RouteResponse(
            answer=top.answer,
            confidence=top.confidence,
            source=top.source,
            sources=[top.source],
            alternatives=[_alternative(r) for r in ranked[1 : 1 + self._config.max_alternatives]],
            warning=constants.LOW_CONFIDENCE_WARNING,
            reasoning=top.reasoning,
            reasons=[ReasonCode.LOW_CONFIDENCE],
            metadata=self._metadata(top),
        )

    def _handle_tie(self, ranked: list[NormalizedResult]) -> RouteResponse:
        top = ranked[0]
        group = [r for r in ranked if top.confidence - r.confidence <= self._config.tie_margin]
        similar = all(
            self._similarity(top.answer, r.answer) > self._config.combine_similarity
            for r in group[1:]
        )

        if similar:
            total = sum(r.confidence for r in group)
            metadata = self._metadata(top)
            metadata["weights"] = {r.source: round(r.confidence / total, 4) for r in group}
            return RouteResponse(
                answer=top.answer,
                confidence=round_half_up(total / len(group)),
                source=" + ".join(r.source for r in group),
                sources=[r.source for r in group],
                reasoning=top.reasoning,
                reasons=[ReasonCode.COMBINED],
                metadata=metadata,
            )

        return RouteResponse(
            answer=top.answer,
            confidence=top.confidence,
            source="multiple",
            sources=[r.source for r in group],
            alternatives=[_alternative(r) for r in group[1:]],
            warning=constants.TIE_WARNING,
            reasoning=top.reasoning,
            reasons=[ReasonCode.CONFIDENCE_TIE],
            metadata=self._metadata(top),
        )

    def _resolve_conflict(
        self, candidates: list[NormalizedResult], analysis: ConflictAnalysis
    ) -> RouteResponse:
        resolution = self._resolver.resolve(candidates)
        winner = resolution.winner
        confidence = round_half_up(winner.confidence * (1 - self._config.conflict_penalty))

        reasons = [ReasonCode.CONFLICT]
        if resolution.authority_tiebreak:
            reasons.append(ReasonCode.AUTHORITY_TIEBREAK)

        metadata = self._metadata(winner)
        metadata["conflict"] = {
            "severity": str(analysis.severity),
            "pairs": [list(p) for p in analysis.pairs],
            "avg_similarity": round(analysis.avg_similarity, 4),
            "scores": resolution.scores,
        }

        logger.info(
            "conflict_resolved",
            winner=winner.source,
            severity=str(analysis.severity),
            pairs=len(analysis.pairs),
        )
        return RouteResponse(
            answer=winner.answer,
            confidence=confidence,
            source=winner.source,
            sources=[winner.source],
            alternatives=[_alternative(r) for r in resolution.losers],
            warning=constants.CONFLICT_WARNING,
            conflict=True,
            reasoning=winner.reasoning,
            reasons=reasons,
            metadata=metadata,
        )

    def _single(self, ranked: list[NormalizedResult]) -> RouteResponse:
        top = ranked[0]
        return RouteResponse(
            answer=top.answer,
            confidence=top.confidence,
            source=top.source,
            sources=[top.source],
            alternatives=[_alternative(r) for r in ranked[1 : 1 + self._config.max_alternatives]],
            reasoning=top.reasoning,
            metadata=self._metadata(top),
        )

    @staticmethod
    def _metadata(result: NormalizedResult) -> dict:
        return {**result.metadata, "original_confidence": result.original_confidence}
