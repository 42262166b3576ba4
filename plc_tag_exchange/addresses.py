"""
Per-vendor address grammar validators and tag type derivation.

All functions here are pure: they look only at the address string.  An
address is valid for a vendor when it matches any of that vendor's
patterns (see :mod:`.schema`); whether a tag with that address exists is
not their concern.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Tuple

from .models import TagType, Vendor
from .schema import (
    BECKHOFF_ADDRESS_PATTERNS,
    BECKHOFF_CLASS_PATTERNS,
    ROCKWELL_ADDRESS_PATTERNS,
    ROCKWELL_CLASS_PATTERNS,
    SIEMENS_ADDRESS_PATTERNS,
    SIEMENS_CLASS_PATTERNS,
    SYMBOLIC_ADDRESS_PATTERN,
)


def _compile(patterns: List[str]) -> List[re.Pattern]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


def _compile_classes(pairs) -> List[Tuple[re.Pattern, TagType]]:
    return [(re.compile(p, re.IGNORECASE), TagType(t)) for p, t in pairs]


_ADDRESS_RES: Dict[Vendor, List[re.Pattern]] = {
    Vendor.ROCKWELL: _compile(ROCKWELL_ADDRESS_PATTERNS),
    Vendor.SIEMENS: _compile(SIEMENS_ADDRESS_PATTERNS),
    Vendor.BECKHOFF: _compile(BECKHOFF_ADDRESS_PATTERNS),
}

_CLASS_RES: Dict[Vendor, List[Tuple[re.Pattern, TagType]]] = {
    Vendor.ROCKWELL: _compile_classes(ROCKWELL_CLASS_PATTERNS),
    Vendor.SIEMENS: _compile_classes(SIEMENS_CLASS_PATTERNS),
    Vendor.BECKHOFF: _compile_classes(BECKHOFF_CLASS_PATTERNS),
}

_SYMBOLIC_RE = re.compile(SYMBOLIC_ADDRESS_PATTERN)


def _matches_any(address: Any, vendor: Vendor) -> bool:
    if not isinstance(address, str):
        return False
    addr = address.strip()
    if not addr:
        return False
    return any(p.match(addr) for p in _ADDRESS_RES[vendor])


def validate_rockwell_address(address: str) -> bool:
    """Return ``True`` for ``I:1/0``, ``N7:0``, ``T4:0``, symbolic names..."""
    return _matches_any(address, Vendor.ROCKWELL)


def validate_siemens_address(address: str) -> bool:
    """Return ``True`` for ``I0.0``, ``Q0.1``, ``DB1.DBD0``, symbolic names..."""
    return _matches_any(address, Vendor.SIEMENS)


def validate_beckhoff_address(address: str) -> bool:
    """Return ``True`` for ``%I0.0``, ``%MW10``, ``GVL.Start``, symbolic names..."""
    return _matches_any(address, Vendor.BECKHOFF)


def validate_address(address: str, vendor) -> bool:
    """Validate *address* against *vendor*'s grammar.

    Empty addresses are not valid here; callers decide whether a missing
    address is acceptable.

    Raises:
        ValueError: If *vendor* is not supported.
    """
    return _matches_any(address, Vendor.parse(vendor))


def is_symbolic(address: str) -> bool:
    """Return ``True`` if *address* is a bare identifier."""
    return bool(address) and bool(_SYMBOLIC_RE.match(address.strip()))


def derive_tag_type(address: Any, vendor) -> TagType:
    """Derive the tag type from the address's leading class letter.

    Deterministic and total: empty, symbolic or unrecognised addresses all
    yield :attr:`TagType.MEMORY`.

    Examples::

        derive_tag_type('I:1/0', 'rockwell')   -> input
        derive_tag_type('N7:0', 'rockwell')    -> memory
        derive_tag_type('E0.0', 'siemens')     -> input
        derive_tag_type('%QX0.1', 'beckhoff')  -> output
    """
    vendor = Vendor.parse(vendor)
    addr = str(address or '').strip()
    if not addr:
        return TagType.MEMORY
    for pattern, tag_type in _CLASS_RES[vendor]:
        if pattern.match(addr):
            return tag_type
    return TagType.MEMORY
