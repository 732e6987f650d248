from enum import Enum
from typing import Any, List

from pydantic import ConfigDict


class ComplianceLevel(str, Enum):
    COMPLIANT = "compliant"
    PARTIALLY_COMPLIANT = "partially-compliant"
    NON_COMPLIANT = "non-compliant"


# Model output is parsed leniently: unknown keys are ignored
STAGE_MODEL_CONFIG = ConfigDict(
    frozen=True,
    extra="ignore",
)


def coerce_compliance(value: Any) -> Any:
    """Accept 'Partially Compliant', 'non_compliant' and similar spellings."""
    if isinstance(value, str):
        return value.strip().lower().replace("_", "-").replace(" ", "-")
    return value


def coerce_str_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return value


def cap(items: List[str], limit: int) -> List[str]:
    return [item for item in items if item and item.strip()][:limit]
