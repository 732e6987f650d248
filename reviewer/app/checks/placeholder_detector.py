"""
Placeholder detection for subsection text.

IMPORTANT:
- Pure function of its input; no I/O, no randomness.
- Runs before any retrieval or model call, so a hit short-circuits the
  subsection without touching an external backend.
"""

from __future__ import annotations

import re
from typing import List, Optional, Pattern, Tuple


# Marker families, scanned in this order
_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\[[^\[\]]*\]"),
    re.compile(r"\bTBD\b", re.IGNORECASE),
    re.compile(r"\bX{3,}\b", re.IGNORECASE),
    re.compile(r"\bPLACEHOLDER\b", re.IGNORECASE),
    re.compile(r"\bINSERT\s+\w+", re.IGNORECASE),
)

_ELLIPSIS = "..."


class PlaceholderDetector:
    """
    Flags incomplete content: bracketed tokens, TBD, runs of X,
    PLACEHOLDER and "INSERT <word>".
    """

    def __init__(self, *, display_length: int = 50) -> None:
        if display_length <= len(_ELLIPSIS):
            raise ValueError("display_length must exceed the ellipsis length")
        self._display_length = display_length

    def detect(self, text: Optional[str]) -> List[str]:
        """
        Return the unique placeholder tokens found in `text`, in order of
        first appearance, each truncated to the display length.
        """
        if not text:
            return []

        hits: List[Tuple[int, str]] = []
        for pattern in _PATTERNS:
            for match in pattern.finditer(text):
                hits.append((match.start(), match.group(0)))

        found: List[str] = []
        seen = set()
        for _, token in sorted(hits, key=lambda hit: hit[0]):
            display = self._truncate(token)
            if display in seen:
                continue
            seen.add(display)
            found.append(display)
        return found

    def _truncate(self, token: str) -> str:
        if len(token) <= self._display_length:
            return token
        return token[: self._display_length - len(_ELLIPSIS)] + _ELLIPSIS
