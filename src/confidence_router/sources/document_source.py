"""In-process knowledge base that answers from a small set of configured documents."""

from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass
from datetime import date, datetime, timezone
from pathlib import Path

import yaml

from confidence_router.config.routing import SourceSpec
from confidence_router.exceptions import ConfigurationError
from confidence_router.models.domain import Query, SourceResult


@dataclass
class KnowledgeDocument:
    title: str
    content: str
    updated_at: datetime


class DocumentSource:
    def __init__(
        self,
        name: str,
        documents: list[KnowledgeDocument],
        priority: int = 1,
        freshness_time_constant_days: float = 180.0,
    ) -> None:
        self.name = name
        self.priority = priority
        self._documents = documents
        self._freshness_days = freshness_time_constant_days

    @classmethod
    def from_spec(cls, name: str, spec: SourceSpec) -> DocumentSource:
        raw_docs = list(spec.options.get("documents", []))
        path = spec.options.get("path")
        if path:
            doc_path = Path(path)
            if not doc_path.exists():
                raise ConfigurationError(f"Document file for source '{name}' not found: {path}")
            loaded = yaml.safe_load(doc_path.read_text(encoding="utf-8")) or []
            if not isinstance(loaded, list):
                raise ConfigurationError(f"Document file {path} must contain a list")
            raw_docs.extend(loaded)
        return cls(name=name, documents=[_parse_document(d) for d in raw_docs], priority=spec.priority)

    async def query(self, query: Query, timeout: float) -> SourceResult:
        start = time.monotonic()
        words = _words(query.text)
        scored = sorted(
            ((self._relevance(words, doc), doc) for doc in self._documents),
            key=lambda pair: pair[0],
            reverse=True,
        )
        scored = [(score, doc) for score, doc in scored if score > 0]
        latency_ms = (time.monotonic() - start) * 1000

        if not scored:
            return SourceResult(
                source=self.name,
                confidence=0,
                answer="",
                metadata={"documents_searched": len(self._documents)},
                reasoning="No matching documents found in knowledge base",
                latency_ms=latency_ms,
            )

        best_score, best = scored[0]
        confidence = self._confidence(best_score, best, [s for s, _ in scored])
        return SourceResult(
            source=self.name,
            confidence=confidence,
            answer=best.content,
            metadata={
                "documents_searched": len(self._documents),
                "match_score": round(best_score, 4),
                "timestamp": best.updated_at.isoformat(),
            },
            reasoning=f'Found {len(scored)} matching documents, best match: "{best.title}"',
            latency_ms=latency_ms,
        )

    @staticmethod
    def _relevance(words: list[str], doc: KnowledgeDocument) -> float:
        if not words:
            return 0.0
        text = f"{doc.title} {doc.content}".lower()
        return sum(1 for w in words if w in text) / len(words)

    def _confidence(self, score: float, doc: KnowledgeDocument, all_scores: list[float]) -> int:
        confidence = score * 100
        # Descriptive titles are usually curated articles
        if len(doc.title.split()) > 2:
            confidence = min(100.0, confidence * 1.3)
        age_days = (datetime.now(timezone.utc) - doc.updated_at).total_seconds() / 86400
        freshness = math.exp(-max(age_days, 0.0) / self._freshness_days)
        confidence *= 0.7 + 0.3 * freshness
        if len(all_scores) > 1 and all_scores[1] > 0.7:
            confidence = min(100.0, confidence * 1.1)
        return int(confidence + 0.5)

    def can_handle(self, query: Query) -> bool:
        return True

    def average_latency(self) -> float:
        return 100.0

    def cost(self) -> float:
        return 0.0


def _words(text: str) -> list[str]:
    return re.findall(r"\w+", text.lower())


def _parse_document(raw: dict) -> KnowledgeDocument:
    if "content" not in raw:
        raise ConfigurationError(f"Knowledge document is missing 'content': {raw!r}")
    updated = raw.get("updated_at")
    if isinstance(updated, datetime):
        updated_at = updated
    elif isinstance(updated, date):
        updated_at = datetime.combine(updated, datetime.min.time())
    elif updated:
        updated_at = datetime.fromisoformat(str(updated))
    else:
        updated_at = datetime.now(timezone.utc)
    if updated_at.tzinfo is None:
        updated_at = updated_at.replace(tzinfo=timezone.utc)
    return KnowledgeDocument(
        title=str(raw.get("title", "")),
        content=str(raw["content"]),
        updated_at=updated_at,
    )
