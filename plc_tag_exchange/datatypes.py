"""
Raw vendor data type -> canonical type classification.

Vendor exports routinely contain types the canonical set cannot express
(UDTs, enums, arrays, function block instances).  The classifier never
rejects a type: it tries the vendor's exact table, then a substring scan in
a fixed priority order, then the vendor's default.
"""

from __future__ import annotations

from typing import Any

from .models import CanonicalType, Vendor
from .schema import (
    BECKHOFF_TYPE_MAP,
    DEFAULT_CANONICAL_TYPE,
    ROCKWELL_TYPE_MAP,
    SIEMENS_TYPE_MAP,
    TYPE_SUBSTRING_PRIORITY,
)

_TYPE_MAPS = {
    Vendor.ROCKWELL: ROCKWELL_TYPE_MAP,
    Vendor.SIEMENS: SIEMENS_TYPE_MAP,
    Vendor.BECKHOFF: BECKHOFF_TYPE_MAP,
}


def normalize_raw_type(raw: Any) -> str:
    """Upper-case *raw* and strip array bounds / string lengths.

    ``"String[20]"`` -> ``"STRING"``, ``"ARRAY [0..9] OF INT"`` is kept
    whole (the substring scan handles it), ``" dint "`` -> ``"DINT"``.
    """
    text = str(raw if raw is not None else '').strip().upper()
    if '[' in text and not text.startswith('ARRAY'):
        text = text.split('[', 1)[0].strip()
    if text.startswith('STRING(') or text.startswith('WSTRING('):
        text = text.split('(', 1)[0]
    return text


def is_known_type(raw: Any, vendor) -> bool:
    """Return ``True`` if *raw* is in *vendor*'s exact type table."""
    return normalize_raw_type(raw) in _TYPE_MAPS[Vendor.parse(vendor)]


def map_data_type_to_canonical(raw: Any, vendor) -> CanonicalType:
    """Classify a raw vendor data type into a :class:`CanonicalType`.

    Matching is case-insensitive.  Order:

    1. the vendor's exact table (``LINT`` -> ``DINT``, ``TON`` -> ``TIMER``),
    2. the first known token found as a substring, in priority order
       ``BOOL, DINT, INT, REAL, STRING, TIMER, COUNTER``,
    3. the vendor default (``DINT`` for Rockwell and Beckhoff,
       ``STRING`` for Siemens).

    Args:
        raw: The raw type token, e.g. ``"Int"``, ``"UDT_Motor"``.
        vendor: A :class:`Vendor` or vendor name.

    Returns:
        Always a member of :class:`CanonicalType`.
    """
    vendor = Vendor.parse(vendor)
    token = normalize_raw_type(raw)

    exact = _TYPE_MAPS[vendor].get(token)
    if exact is not None:
        return CanonicalType(exact)

    for needle, canonical in TYPE_SUBSTRING_PRIORITY:
        if needle in token:
            return CanonicalType(canonical)

    return CanonicalType(DEFAULT_CANONICAL_TYPE[vendor.value])
