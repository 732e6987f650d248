from __future__ import annotations

from typing import List, Mapping, Optional

from reviewer.app.agents.base import EvidenceMixin, evidence_metadata
from reviewer.app.agents.routing import SectionKind, classify_subsection_role
from reviewer.app.agents.schemas import GeneralReviewOutput
from reviewer.app.llm.executor import StructuredLLMExecutor
from reviewer.app.llm.prompt_fragment import PromptFragment
from reviewer.app.observability import ActivityLog, NullActivityLog
from reviewer.app.retrieval.deduplicator import RuleDeduplicator
from reviewer.app.retrieval.retriever import RuleRetriever
from reviewer.app.schemas.rules import ScoredRule
from reviewer.app.schemas.verdicts import AgentVerdict


MAX_CRITIQUE_POINTS = 3
SIBLING_EXCERPT_CHARS = 150
PARSE_FAILURE_SUGGESTION = "Error analyzing section content"

# Used when the model omits a score
DEFAULT_COMPLIANT_SCORE = 85
DEFAULT_NON_COMPLIANT_SCORE = 50


class GeneralAgent(EvidenceMixin):
    """
    Default checker: compares the subsection against similar reference
    passages through the language model.

    The critique list is authoritative: no critique points means
    compliant, whatever boolean the model returned.
    """

    kind = SectionKind.GENERAL

    def __init__(
        self,
        *,
        retriever: RuleRetriever,
        executor: StructuredLLMExecutor,
        prompt: PromptFragment,
        deduplicator: Optional[RuleDeduplicator] = None,
        top_k: int = 3,
        corpus: Optional[str] = None,
        no_evidence_penalty: int = 10,
        activity_log: Optional[ActivityLog] = None,
    ) -> None:
        self._executor = executor
        self._prompt = prompt
        self._log = activity_log or NullActivityLog()
        self._init_evidence(
            retriever=retriever,
            deduplicator=deduplicator,
            top_k=top_k,
            corpus=corpus,
            no_evidence_penalty=no_evidence_penalty,
        )

    async def analyze(
        self,
        title: str,
        content: str,
        sibling_context: Optional[Mapping[str, str]] = None,
        *,
        subsection_id: Optional[str] = None,
        section_title: Optional[str] = None,
    ) -> AgentVerdict:
        evidence = await self._gather_evidence(
            content, title, include_examples=True
        )
        role = classify_subsection_role(title, subsection_id or title)

        execution = await self._executor.execute(
            prompt=self._prompt,
            output_schema=GeneralReviewOutput,
            input_text=content,
            context_blocks=self._context_blocks(title, role.value, evidence, sibling_context),
        )

        base_metadata = {
            "agent": self.kind.value,
            "subsection_role": role.value,
            **evidence_metadata(evidence),
        }

        if not execution.success:
            self._log.warning(
                "general_review_failed",
                title=title,
                failure_type=execution.failure_type,
                error=execution.raw_error,
            )
            if execution.failure_type == "schema_violation":
                suggestion = PARSE_FAILURE_SUGGESTION
            else:
                suggestion = f"{PARSE_FAILURE_SUGGESTION}: {execution.raw_error}"
            return AgentVerdict(
                is_compliant=False,
                score=0,
                suggestions=[suggestion],
                metadata={
                    **base_metadata,
                    "failure_type": execution.failure_type,
                    "raw_error": execution.raw_error,
                },
            )

        output: GeneralReviewOutput = execution.output  # type: ignore[assignment]
        critiques = [
            point.strip() for point in output.critique_points if point and point.strip()
        ][:MAX_CRITIQUE_POINTS]
        is_compliant = not critiques

        if output.score is not None:
            score = output.score
        else:
            score = DEFAULT_COMPLIANT_SCORE if is_compliant else DEFAULT_NON_COMPLIANT_SCORE

        return AgentVerdict(
            is_compliant=is_compliant,
            score=self._apply_evidence(score, evidence),
            suggestions=critiques,
            metadata={
                **base_metadata,
                "analysis": output.analysis,
                "model_is_compliant": output.is_compliant,
            },
        )

    # ------------------------------------------------------------------
    # Prompt context
    # ------------------------------------------------------------------

    @staticmethod
    def _context_blocks(
        title: str,
        role: str,
        evidence: List[ScoredRule],
        sibling_context: Optional[Mapping[str, str]],
    ) -> List[str]:
        blocks = [f"SECTION TITLE: {title}\nSECTION TYPE: {role}"]

        if evidence:
            references = "\n\n".join(
                f"--- REFERENCE {i} (similarity {item.score:.2f}) ---\n"
                f"{item.evidence_text or item.rule.description}"
                for i, item in enumerate(evidence, start=1)
            )
        else:
            references = "(no reference passages found)"
        blocks.append(f"REFERENCE PASSAGES (compliance standard):\n{references}")

        others = [
            (other_title, other_content)
            for other_title, other_content in (sibling_context or {}).items()
            if other_title != title
        ]
        if others:
            excerpts = "\n\n".join(
                f"--- START {other_title} ---\n"
                f"{other_content[:SIBLING_EXCERPT_CHARS]}...\n"
                f"--- END {other_title} ---"
                for other_title, other_content in others
            )
            blocks.append(
                "OTHER SUBSECTIONS (for reference only; do not critique "
                f"omissions covered here):\n{excerpts}"
            )
        return blocks
