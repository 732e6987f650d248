"""
Lexical helpers shared by rule mapping and deduplication.

All functions here are pure and operate on lower-cased text.
"""

from __future__ import annotations

import re
from typing import FrozenSet, Optional, Set, Tuple

from reviewer.app.schemas.rules import (
    Rule,
    RuleCategory,
    RuleSeverity,
    SYNTHETIC_RULE_PREFIX,
)


STOP_WORDS: FrozenSet[str] = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "if", "then", "else", "when",
        "at", "from", "by", "for", "with", "about", "against", "between",
        "into", "through", "during", "before", "after", "above", "below",
        "to", "of", "in", "on", "is", "are", "was", "were", "be", "been",
        "being", "have", "has", "had", "having", "do", "does", "did", "doing",
        "can", "could", "should", "would", "may", "might", "must", "shall",
        "will",
    }
)

_NON_WORD = re.compile(r"[^\w]")

MAX_TITLE_LENGTH = 100


# ----------------------------------------------------------------------
# Similarity
# ----------------------------------------------------------------------

def normalize(text: Optional[str]) -> str:
    return (text or "").lower().strip()


def significant_words(text: str) -> Set[str]:
    return {word for word in text.split() if len(word) > 3}


def jaccard_similarity(a: str, b: str) -> float:
    """Jaccard similarity over whitespace-separated words longer than 3 chars."""
    words_a = significant_words(a)
    words_b = significant_words(b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def extract_keywords(text: str) -> Set[str]:
    keywords = set()
    for raw in text.split():
        word = _NON_WORD.sub("", raw.lower())
        if len(word) > 3 and word not in STOP_WORDS:
            keywords.add(word)
    return keywords


def keyword_overlap(a: Set[str], b: Set[str]) -> float:
    """Share of the smaller keyword set found in the other."""
    if not a or not b:
        return 0.0
    return len(a & b) / min(len(a), len(b))


# ----------------------------------------------------------------------
# Category / severity inference
# ----------------------------------------------------------------------

_CATEGORY_KEYWORDS: Tuple[Tuple[RuleCategory, Tuple[str, ...]], ...] = (
    (RuleCategory.FINANCIAL, ("financial", "report", "audit")),
    (RuleCategory.GOVERNANCE, ("governance", "board", "director")),
    (RuleCategory.DISCLOSURE, ("disclosure", "risk", "inform")),
    (RuleCategory.COMPLIANCE, ("compliance", "regulation", "law")),
)

_HIGH_SEVERITY = ("must", "required", "mandatory", "critical", "essential")
_LOW_SEVERITY = ("may", "optional", "recommended", "consider")


def infer_category(text: str) -> RuleCategory:
    lowered = text.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return category
    return RuleCategory.GENERAL


def infer_severity(text: str) -> RuleSeverity:
    lowered = text.lower()
    if any(marker in lowered for marker in _HIGH_SEVERITY):
        return RuleSeverity.HIGH
    if any(marker in lowered for marker in _LOW_SEVERITY):
        return RuleSeverity.LOW
    return RuleSeverity.MEDIUM


# ----------------------------------------------------------------------
# Rule extraction from raw passage text
# ----------------------------------------------------------------------

def _title_line_score(line: str) -> int:
    # Lower is more title-like
    score = len(line)
    if line.strip().endswith(":"):
        score -= 10
    if re.search(r"[A-Z]", line):
        score -= 5
    if len(line.split()) > 10:
        score += 20
    return score


def _split_title(text: str) -> Tuple[str, str]:
    lines = [line for line in text.split("\n") if line.strip()]

    if len(lines) > 1:
        candidates = lines[:3]
        index = min(range(len(candidates)), key=lambda i: _title_line_score(candidates[i]))
        title = lines[index].strip()
        description = " ".join(
            line.strip() for i, line in enumerate(lines) if i != index
        )
        return title, description

    line = lines[0].strip() if lines else ""
    for separator in (":", " - ", ". "):
        position = line.find(separator)
        if 0 < position < MAX_TITLE_LENGTH:
            cut = position + len(separator) - 1
            return line[:cut].strip(), line[cut + 1:].strip()

    if len(line) > MAX_TITLE_LENGTH:
        return line[:MAX_TITLE_LENGTH].strip(), line[MAX_TITLE_LENGTH:].strip()
    return line, ""


def extract_rule_from_text(text: Optional[str], index: int) -> Optional[Rule]:
    """
    Build a synthetic Rule from raw passage text.

    Returns None for empty text and for prompt templates stored in the
    corpus alongside rules.
    """
    if not text or not text.strip():
        return None
    if "prompt" in text or "ai_instructions" in text:
        return None

    title, description = _split_title(text)

    if title and description.startswith(title):
        description = description[len(title):].strip()
        description = re.sub(r"^[:\-.,;]+\s*", "", description)

    if len(title) > MAX_TITLE_LENGTH:
        title = title[: MAX_TITLE_LENGTH - 3] + "..."
    if not title:
        title = "Exchange Listing Guideline"
    if not description:
        description = text.strip()
    if len(title) > 20 and not title.endswith((".", ":", "?")):
        title = f"{title}."

    return Rule(
        id=f"{SYNTHETIC_RULE_PREFIX}rule-{index}",
        title=title,
        description=description,
        category=infer_category(text),
        severity=infer_severity(text),
    )
