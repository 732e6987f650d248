"""
Single parse-or-fallback boundary for model output.

Every model-backed step turns raw completion text into a typed output
through parse_model_output. It never raises: callers branch on
`ParsedOutput.ok` and choose their own fallback.
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, ValidationError


_FENCED_JSON = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL | re.IGNORECASE)
_BRACED = re.compile(r"\{.*\}", re.DOTALL)


class ParsedOutput(BaseModel):
    ok: bool
    value: Optional[BaseModel] = None
    error: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )


def extract_json_object(text: Optional[str]) -> Optional[Dict[str, Any]]:
    """
    Find the first JSON object in free-form model text.

    Tries the whole text, then a fenced ```json block, then the widest
    {...} span.
    """
    if not text or not text.strip():
        return None

    candidates: List[str] = [text.strip()]

    fenced = _FENCED_JSON.search(text)
    if fenced:
        candidates.append(fenced.group(1))

    braced = _BRACED.search(text)
    if braced:
        candidates.append(braced.group(0))

    for candidate in candidates:
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None


def parse_model_output(
    text: Optional[str],
    schema: Type[BaseModel],
) -> ParsedOutput:
    payload = extract_json_object(text)
    if payload is None:
        return ParsedOutput(
            ok=False,
            error="Model response did not contain a JSON object",
        )

    try:
        value = schema.model_validate(payload)
    except ValidationError as exc:
        fields = ", ".join(
            ".".join(str(part) for part in err["loc"]) or "<root>"
            for err in exc.errors()
        )
        return ParsedOutput(
            ok=False,
            error=f"Model response failed {schema.__name__} validation: {fields}",
        )

    return ParsedOutput(ok=True, value=value)
