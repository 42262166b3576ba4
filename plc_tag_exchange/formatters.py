"""
Vendor-aware formatting of parser output into tag candidates.

The structured text parser returns loosely typed declarations; before the
reconciler can store them they are normalised for the project's vendor:

    - the data type goes through the vendor's canonical type map,
    - the scope is coerced to ``global | local | input | output``
      (``in_out``, ``temp`` and anything unrecognised become ``local``),
    - a non-empty address must satisfy the vendor's grammar.
"""

from __future__ import annotations

from typing import Any, Mapping, Union

from .addresses import derive_tag_type, validate_address
from .datatypes import map_data_type_to_canonical
from .errors import ValidationError
from .models import RawTagTuple, Scope, Tag, Vendor
from .validator import check_name

RawDeclaration = Union[RawTagTuple, Mapping[str, Any]]


def _field(raw: RawDeclaration, *names: str) -> str:
    for name in names:
        if isinstance(raw, Mapping):
            value = raw.get(name)
        else:
            value = getattr(raw, name, None)
        if value is not None:
            return str(value).strip()
    return ''


def format_tag_for_vendor(
    raw: RawDeclaration,
    vendor,
    project_id: Any = None,
    user_id: Any = None,
) -> Tag:
    """Build a tag candidate for *vendor* from one parsed declaration.

    Args:
        raw: A :class:`RawTagTuple` or a mapping with ``name``,
            ``data_type``/``dataType``, ``address``, ``description``,
            ``scope`` and ``default_value``/``defaultValue``.
        vendor: Target vendor.
        project_id: Owning project of the candidate.
        user_id: Recorded as the tag's last modifier.

    Returns:
        A :class:`Tag` without ``id`` or timestamps.

    Raises:
        ValidationError: If the name is invalid or the address does not
            fit the vendor's grammar.
    """
    vendor = Vendor.parse(vendor)
    name = _field(raw, 'name')
    raw_type = _field(raw, 'data_type', 'dataType')
    address = _field(raw, 'address')

    errors = list(check_name(name, vendor).errors)
    if address and not validate_address(address, vendor):
        errors.append(f"Invalid {vendor.value.capitalize()} address format: {address}")
    if errors:
        raise ValidationError(errors)

    canonical = map_data_type_to_canonical(raw_type, vendor)
    return Tag(
        name=name,
        data_type=canonical,
        raw_data_type=raw_type.upper() or canonical.value,
        vendor=vendor,
        project_id=project_id,
        user_id=user_id,
        address=address,
        description=_field(raw, 'description'),
        default_value=_field(raw, 'default_value', 'defaultValue'),
        scope=Scope.coerce(_field(raw, 'scope'), default=Scope.LOCAL),
        tag_type=derive_tag_type(address, vendor),
    )
