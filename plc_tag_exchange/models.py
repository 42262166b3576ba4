"""
Shared data models, enumerations, and typed structures for tag exchange.

Provides:
- ``str``-based enums for vendor, canonical data type, scope and tag type.
  These compare equal to plain strings (``Vendor.SIEMENS == "siemens"``),
  so rows read from files and JSON messages can be compared directly.
- The canonical :class:`Tag` record every codec reads and writes.
- Dataclasses for structured returns (import results, row errors,
  reconciliation summaries).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


# ===================================================================
# Enumerations
# ===================================================================

class Vendor(str, Enum):
    """PLC vendor dialects supported by the codecs."""
    ROCKWELL = "rockwell"
    SIEMENS = "siemens"
    BECKHOFF = "beckhoff"

    @classmethod
    def parse(cls, value: Any) -> "Vendor":
        """Return the vendor for *value* (case-insensitive).

        Raises:
            ValueError: If *value* names no supported vendor.
        """
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(
            f"Unsupported vendor '{value}'. Must be one of: "
            f"{', '.join(m.value for m in cls)}"
        )


class CanonicalType(str, Enum):
    """Vendor-neutral data types."""
    BOOL = "BOOL"
    INT = "INT"
    DINT = "DINT"
    REAL = "REAL"
    STRING = "STRING"
    TIMER = "TIMER"
    COUNTER = "COUNTER"


class Scope(str, Enum):
    """Tag scope within a project."""
    GLOBAL = "global"
    LOCAL = "local"
    INPUT = "input"
    OUTPUT = "output"

    @classmethod
    def coerce(cls, value: Any, default: Optional["Scope"] = None) -> "Scope":
        """Normalise a free-text scope to a member.

        ``in_out``/``inout`` and unrecognised values become *default*
        (``local`` when not given); empty values also yield *default*.
        """
        fallback = default or cls.LOCAL
        text = str(value or "").strip().lower()
        if not text:
            return fallback
        for member in cls:
            if member.value == text:
                return member
        if text in ("controller",):
            return cls.GLOBAL
        if text in ("program", "temp"):
            return cls.LOCAL
        return fallback


class TagType(str, Enum):
    """I/O classification derived from the address."""
    INPUT = "input"
    OUTPUT = "output"
    MEMORY = "memory"
    TEMP = "temp"
    CONSTANT = "constant"


# ===================================================================
# Canonical tag
# ===================================================================

@dataclass
class Tag:
    """A named PLC variable in the vendor-neutral model.

    ``id``, ``created_at`` and ``updated_at`` are owned by the store and stay
    ``None`` on candidates produced by codecs and formatters.
    """
    name: str
    data_type: str
    vendor: str
    project_id: Any = None
    user_id: Any = None
    raw_data_type: str = ""
    address: str = ""
    description: str = ""
    default_value: str = ""
    scope: str = Scope.GLOBAL
    tag_type: str = TagType.MEMORY
    is_ai_generated: bool = False
    id: Any = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def copy(self, **changes: Any) -> "Tag":
        """Return a shallow copy with *changes* applied."""
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Serialize to the camelCase wire shape used by sync clients."""
        return {
            "id": self.id,
            "projectId": self.project_id,
            "userId": self.user_id,
            "name": self.name,
            "dataType": plain_value(self.data_type),
            "rawDataType": self.raw_data_type,
            "address": self.address,
            "description": self.description,
            "defaultValue": self.default_value,
            "vendor": plain_value(self.vendor),
            "scope": plain_value(self.scope),
            "tagType": plain_value(self.tag_type),
            "isAiGenerated": self.is_ai_generated,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }


def plain_value(value: Any) -> Any:
    """Return the ``.value`` of an enum member, or *value* unchanged."""
    return value.value if isinstance(value, Enum) else value


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class RawTagTuple:
    """One declaration as produced by a structured-text parser."""
    name: str
    data_type: str = ""
    address: str = ""
    description: str = ""
    scope: str = ""
    default_value: str = ""


@dataclass
class ProjectInfo:
    """Minimal project record needed by the engine."""
    id: Any
    owner_id: Any
    vendor: str = Vendor.ROCKWELL
    name: str = ""


# ===================================================================
# Structured returns
# ===================================================================

@dataclass
class RowError:
    """A rejected input row.

    Attributes:
        row: 1-based index of the row within the parsed file.
        errors: Every message recorded for the row.
        raw: The raw row as read from the file.
    """
    row: int
    errors: List[str]
    raw: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"row": self.row, "errors": list(self.errors), "raw": self.raw}


@dataclass
class MappedRow:
    """Outcome of validating one raw row: either *tag* or *errors*.

    When the row's file position was known, a rejected row also carries
    its ready-made *row_error*.
    """
    tag: Optional[Tag] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    row_error: Optional[RowError] = None

    @property
    def ok(self) -> bool:
        return not self.errors and self.tag is not None


@dataclass
class ImportResult:
    """Result of an import batch."""
    success: bool
    inserted: int = 0
    processed: int = 0
    errors: Optional[List[RowError]] = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "success": self.success,
            "inserted": self.inserted,
            "processed": self.processed,
        }
        if self.errors:
            d["errors"] = [e.to_dict() for e in self.errors]
        return d


@dataclass
class ReconcileResult:
    """Summary of one reconciliation pass."""
    project_id: Any
    created: List[str] = field(default_factory=list)
    updated: List[str] = field(default_factory=list)
    unchanged: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.created) + len(self.updated)

    def to_dict(self) -> dict:
        return {
            "projectId": self.project_id,
            "created": list(self.created),
            "updated": list(self.updated),
            "unchanged": list(self.unchanged),
            "skipped": list(self.skipped),
        }
