"""
Row-level validation for candidate tags.

Every raw row read by a codec passes through :func:`validate_row` before it
can become a :class:`~plc_tag_exchange.models.Tag`.  Checks:

    - **name**: present, and an identifier (Rockwell: at most 40 chars).
    - **data type**: present.  Unrecognised types are *not* errors; they
      map to the vendor default and produce a warning.
    - **address**: when non-empty, must satisfy the vendor grammar.

Error severity:
    - **errors**: the row is rejected as a unit.
    - **warnings**: informational; the row is still accepted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .addresses import validate_address
from .datatypes import is_known_type, map_data_type_to_canonical
from .models import RowError, Vendor
from .schema import MAX_ROCKWELL_TAG_NAME_LENGTH, TAG_NAME_PATTERN

_NAME_RE = re.compile(TAG_NAME_PATTERN)
_NAME_CHAR_RE = re.compile(r"[A-Za-z0-9_]")


# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------

@dataclass
class ValidationResult:
    """Errors (fatal) and warnings (non-fatal) found in one input row.

    ``row`` is the 1-based position of the row in its file when known, so
    a failed result converts straight into the :class:`RowError` reported
    by an import.
    """
    row: Optional[int] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)

    def to_row_error(self, raw: Mapping[str, Any]) -> RowError:
        """Build the import error record for this row.

        Raises:
            ValueError: If the row index is unknown.
        """
        if self.row is None:
            raise ValueError("Row index is required to report a row error")
        return RowError(row=self.row, errors=list(self.errors), raw=dict(raw))


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------

def check_name(name: Any, vendor: Vendor) -> ValidationResult:
    result = ValidationResult()
    text = str(name or "").strip()
    if not text:
        result.add_error("Missing tag name")
        return result
    if vendor == Vendor.ROCKWELL and len(text) > MAX_ROCKWELL_TAG_NAME_LENGTH:
        result.add_error(
            f"Tag name '{text}' is longer than "
            f"{MAX_ROCKWELL_TAG_NAME_LENGTH} characters"
        )
    if _NAME_RE.match(text):
        return result
    if not _NAME_CHAR_RE.match(text[0]) or text[0].isdigit():
        result.add_error(f"Tag name '{text}' must start with a letter or underscore")
    else:
        bad = "".join(sorted({c for c in text if not _NAME_CHAR_RE.match(c)}))
        result.add_error(f"Tag name '{text}' contains invalid characters: {bad!r}")
    return result

def check_data_type(raw_type: Any, vendor: Vendor) -> ValidationResult:
    result = ValidationResult()
    text = str(raw_type or "").strip()
    if not text:
        result.add_error("Missing data type")
        return result
    if not is_known_type(text, vendor):
        canonical = map_data_type_to_canonical(text, vendor)
        result.add_warning(
            f"Unrecognised {vendor.value} data type '{text}', "
            f"mapped to {canonical.value}"
        )
    return result


def check_address(address: Any, vendor: Vendor) -> ValidationResult:
    result = ValidationResult()
    text = str(address or "").strip()
    if text and not validate_address(text, vendor):
        result.add_error(
            f"Invalid {vendor.value.capitalize()} address format: {text}"
        )
    return result


def validate_row(
    row: Mapping[str, Any], vendor, index: Optional[int] = None
) -> ValidationResult:
    """Run every field check against a canonical raw row.

    Args:
        row: Dict with any of ``name``, ``data_type``, ``address`` keys.
        vendor: A :class:`Vendor` or vendor name.
        index: 1-based position of *row* in its file, kept on the result.

    Returns:
        A :class:`ValidationResult`; one error string per failed check.
    """
    vendor = Vendor.parse(vendor)
    result = ValidationResult(row=index)
    result.merge(check_name(row.get("name"), vendor))
    result.merge(check_data_type(row.get("data_type"), vendor))
    result.merge(check_address(row.get("address"), vendor))
    return result
