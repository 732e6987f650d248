"""
Rule retrieval.

IMPORTANT:
- Backend failures degrade to an empty result ("no evidence found");
  they never abort an analysis.
- A retriever constructed without backends fails fast with
  ConfigurationError instead of attempting a network call.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from reviewer.app.errors import ConfigurationError
from reviewer.app.observability import ActivityLog, NullActivityLog
from reviewer.app.retrieval.backends import EmbeddingBackend, VectorIndex, VectorMatch
from reviewer.app.retrieval.rule_text import (
    extract_rule_from_text,
    infer_category,
    infer_severity,
)
from reviewer.app.schemas.rules import Rule, RuleCategory, RuleSeverity, ScoredRule


RULE_RECORD_TYPE = "listing_rule"

DEFAULT_RULE_TITLE = "Untitled Rule"
DEFAULT_RULE_DESCRIPTION = "No description available"


class RuleRetriever:
    def __init__(
        self,
        *,
        embedder: Optional[EmbeddingBackend],
        index: Optional[VectorIndex],
        default_corpus: str = "exchangedocs",
        max_query_chars: int = 8000,
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        self._embedder = embedder
        self._index = index
        self._default_corpus = default_corpus
        self._max_query_chars = max_query_chars
        self._log = activity_log or NullActivityLog()

    @property
    def default_corpus(self) -> str:
        return self._default_corpus

    @property
    def configured(self) -> bool:
        return self._embedder is not None and self._index is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def retrieve(
        self,
        text: str,
        top_k: int,
        corpus_id: Optional[str] = None,
        *,
        title: Optional[str] = None,
        include_examples: bool = False,
    ) -> List[ScoredRule]:
        """
        Return at most `top_k` rules ranked by descending similarity,
        each score within [0, 1].
        """
        if not self.configured:
            raise ConfigurationError(
                "Rule retrieval requires a configured embedding backend "
                "and vector index"
            )
        if top_k < 1 or not (text or "").strip():
            return []

        corpus = corpus_id or self._default_corpus
        query_text = self.build_query_text(text, title)
        metadata_filter = None if include_examples else {"type": RULE_RECORD_TYPE}

        try:
            vector = await self._embedder.embed(query_text)
            matches = await self._index.query(
                vector=vector,
                top_k=top_k,
                corpus=corpus,
                metadata_filter=metadata_filter,
            )
        except Exception as exc:
            self._log.warning(
                "rule_retrieval_failed",
                corpus=corpus,
                error=str(exc) or exc.__class__.__name__,
            )
            return []

        scored: List[ScoredRule] = []
        for position, match in enumerate(matches):
            rule = self.rule_from_match(match, position)
            if rule is None:
                continue
            scored.append(
                ScoredRule(
                    rule=rule,
                    score=min(1.0, max(0.0, float(match.score))),
                    evidence_text=str(match.metadata.get("text", "")),
                )
            )

        scored.sort(key=lambda item: item.score, reverse=True)
        scored = scored[:top_k]

        self._log.info(
            "rules_retrieved",
            corpus=corpus,
            requested=top_k,
            returned=len(scored),
        )
        return scored

    # ------------------------------------------------------------------
    # Mapping helpers
    # ------------------------------------------------------------------

    def build_query_text(self, text: str, title: Optional[str] = None) -> str:
        query = f"{title}:\n{text}" if title else text
        return query[: self._max_query_chars]

    @staticmethod
    def rule_from_match(match: VectorMatch, position: int = 0) -> Optional[Rule]:
        """
        Map index metadata onto a Rule.

        Records that carry only raw text are turned into synthetic rules.
        """
        metadata: Dict[str, Any] = match.metadata or {}
        text = str(metadata.get("text", "") or "")
        title = metadata.get("title")
        description = metadata.get("description")

        if not title and not description and text:
            extracted = extract_rule_from_text(text, position)
            if extracted is not None:
                return extracted

        basis = " ".join(
            str(part) for part in (title, description, text) if part
        )

        try:
            category = RuleCategory(str(metadata.get("category", "")).lower())
        except ValueError:
            category = infer_category(basis) if basis else RuleCategory.GENERAL

        try:
            severity = RuleSeverity(str(metadata.get("severity", "")).lower())
        except ValueError:
            severity = infer_severity(basis) if basis else RuleSeverity.MEDIUM

        source = metadata.get("source_document") or metadata.get("source")

        return Rule(
            id=str(match.id),
            title=str(title or DEFAULT_RULE_TITLE),
            description=str(description or DEFAULT_RULE_DESCRIPTION),
            category=category,
            severity=severity,
            source_document=str(source) if source else None,
        )
