"""
Near-duplicate collapsing for retrieved rules.

IMPORTANT:
- Order-independent: the kept set does not depend on input order.
- Idempotent: deduplicate(deduplicate(R)) == deduplicate(R).
- Kept rules are returned in their original (retrieval) order.

Candidates are visited best-first by a total preference order and each
is kept only if it is not a duplicate of an already kept rule. The
duplicate relation is symmetric, so a kept set can never lose a member
on a second pass.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple

from reviewer.app.schemas.rules import Rule
from reviewer.app.retrieval.rule_text import (
    extract_keywords,
    jaccard_similarity,
    keyword_overlap,
    normalize,
)


TITLE_SIMILARITY_THRESHOLD = 0.6
DESCRIPTION_SIMILARITY_WITH_TITLE = 0.5
DESCRIPTION_SIMILARITY_ALONE = 0.7
CONTAINED_TITLE_DESCRIPTION_SIMILARITY = 0.3
TITLE_KEYWORD_OVERLAP = 0.7
DESCRIPTION_KEYWORD_OVERLAP = 0.5


class _Normalized:
    __slots__ = ("rule", "position", "title", "description")

    def __init__(self, rule: Rule, position: int) -> None:
        self.rule = rule
        self.position = position
        self.title = normalize(rule.title)
        self.description = normalize(rule.description)

    def preference_key(self) -> Tuple:
        # Lower sorts first: real ids, then longer descriptions, then
        # longer titles (capped), then stable tie-breakers.
        return (
            self.rule.is_synthetic,
            -len(self.description),
            -min(len(self.rule.title), 100),
            self.rule.id,
            self.title,
            self.description,
        )


def _contains_either(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a in b or b in a


def is_duplicate(a: Rule, b: Rule) -> bool:
    """Symmetric near-duplicate test between two rules."""
    left = _Normalized(a, 0)
    right = _Normalized(b, 0)
    return _is_duplicate(left, right)


def _is_duplicate(a: _Normalized, b: _Normalized) -> bool:
    if a.title == b.title and a.description == b.description:
        return True

    title_similarity = jaccard_similarity(a.title, b.title)
    description_similarity = jaccard_similarity(a.description, b.description)

    if (
        title_similarity > TITLE_SIMILARITY_THRESHOLD
        and description_similarity > DESCRIPTION_SIMILARITY_WITH_TITLE
    ) or description_similarity > DESCRIPTION_SIMILARITY_ALONE:
        return True

    if _contains_either(a.description, b.description):
        return True

    if (
        _contains_either(a.title, b.title)
        and description_similarity > CONTAINED_TITLE_DESCRIPTION_SIMILARITY
    ):
        return True

    title_overlap = keyword_overlap(
        extract_keywords(a.title), extract_keywords(b.title)
    )
    description_overlap = keyword_overlap(
        extract_keywords(a.description), extract_keywords(b.description)
    )
    return (
        title_overlap > TITLE_KEYWORD_OVERLAP
        and description_overlap > DESCRIPTION_KEYWORD_OVERLAP
    )


class RuleDeduplicator:
    """Collapses near-duplicate rules returned by the retriever."""

    def deduplicate(self, rules: Sequence[Rule]) -> List[Rule]:
        if len(rules) <= 1:
            return list(rules)

        candidates = [_Normalized(rule, i) for i, rule in enumerate(rules)]

        kept: List[_Normalized] = []
        for candidate in sorted(candidates, key=_Normalized.preference_key):
            if any(_is_duplicate(candidate, other) for other in kept):
                continue
            kept.append(candidate)

        kept.sort(key=lambda item: item.position)
        return [item.rule for item in kept]
