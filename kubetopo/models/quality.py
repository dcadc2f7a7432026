"""Non-fatal data quality findings surfaced alongside computation results."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class WarningCode(StrEnum):
    """Kinds of data quality problems the core reports without failing."""

    ORPHANED_RESOURCE = "orphaned_resource"
    MISSING_LABELS = "missing_labels"
    UNKNOWN_NAMESPACE = "unknown_namespace"
    UNEVALUATED_IP_BLOCK = "unevaluated_ip_block"


@dataclass(frozen=True)
class DataQualityWarning:
    """A single observable warning; computation continues past it."""

    code: WarningCode
    resource_id: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code.value, "resource_id": self.resource_id, "message": self.message}
