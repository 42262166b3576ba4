"""
Vendor codec interface and factory.

A codec translates between one vendor's tag files and canonical
:class:`~plc_tag_exchange.models.Tag` records.  It offers three
operations:

    - :meth:`VendorCodec.parse` -- file bytes to raw rows (dicts keyed by
      canonical field name: ``name``, ``data_type``, ``address``, ...).
    - :meth:`VendorCodec.validate_and_map` -- one raw row to either a tag
      candidate or a list of error strings.
    - :meth:`VendorCodec.export` -- tags to file bytes in one of the
      vendor's export formats.

Use :func:`get_codec` to obtain the codec for a vendor.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from lxml import etree

from .addresses import derive_tag_type
from .datatypes import map_data_type_to_canonical
from .models import MappedRow, Scope, Tag, Vendor, plain_value
from .schema import EXPORT_FORMATS
from .utils import element_field, normalize_header
from .validator import validate_row

logger = logging.getLogger(__name__)


# ===================================================================
# Shared row helpers
# ===================================================================

def element_row(element: etree._Element, aliases: Mapping[str, str]) -> dict:
    """Read one XML record into a canonical row dict.

    Both child elements and attributes are considered; each field name is
    normalised and looked up in *aliases*.  Unknown fields are dropped.
    The first occurrence of a field wins, child elements before
    attributes.
    """
    row: dict = {}
    names = [child.tag for child in element if isinstance(child.tag, str)]
    names.extend(element.attrib.keys())
    for raw_name in names:
        canonical = aliases.get(normalize_header(raw_name))
        if canonical is None or canonical in row:
            continue
        value = element_field(element, raw_name)
        row[canonical] = value if value is not None else ''
    return row


def export_data_type(tag: Tag) -> str:
    """Prefer the vendor's own type token over the canonical one."""
    return tag.raw_data_type or str(plain_value(tag.data_type) or '')


def export_scope(tag: Tag) -> str:
    return str(plain_value(tag.scope) or Scope.GLOBAL.value)


# ===================================================================
# Base class
# ===================================================================

class VendorCodec(ABC):
    """Parse / validate / export for one vendor dialect.

    Subclasses set :attr:`vendor` and :attr:`aliases`, implement
    :meth:`parse`, and provide one ``_export_<fmt>`` method per entry in
    the vendor's export format list.
    """

    vendor: Vendor
    aliases: Dict[str, str] = {}
    default_scope: Scope = Scope.GLOBAL

    # ------ parsing ------

    @abstractmethod
    def parse(self, data: bytes, mime_hint: Optional[str] = None) -> List[dict]:
        """Parse file bytes into raw rows.

        Args:
            data: The uploaded file content.
            mime_hint: Optional MIME type or file name used to pick the
                input flavour.  When absent the content is sniffed.

        Returns:
            One dict per record, in file order.

        Raises:
            ParseError: If the file structure is malformed or holds no
                records.
        """

    # ------ validation ------

    def validate_and_map(
        self,
        row: Mapping[str, Any],
        project_id: Any = None,
        user_id: Any = None,
        index: Optional[int] = None,
    ) -> MappedRow:
        """Validate *row* and build a tag candidate from it.

        Returns:
            A :class:`MappedRow` holding either ``tag`` (with ``vendor``
            and ``tag_type`` populated) or the row's error strings.
        """
        result = validate_row(row, self.vendor, index)
        if not result.is_valid:
            return MappedRow(
                errors=list(result.errors),
                warnings=list(result.warnings),
                row_error=result.to_row_error(row) if index is not None else None,
            )

        raw_type = str(row.get('data_type') or '').strip()
        address = str(row.get('address') or '').strip()
        tag = Tag(
            name=str(row.get('name')).strip(),
            data_type=map_data_type_to_canonical(raw_type, self.vendor),
            raw_data_type=raw_type,
            vendor=self.vendor,
            project_id=project_id,
            user_id=user_id,
            address=address,
            description=str(row.get('description') or '').strip(),
            default_value=str(row.get('default_value') or '').strip(),
            scope=Scope.coerce(row.get('scope'), default=self.default_scope),
            tag_type=derive_tag_type(address, self.vendor),
            is_ai_generated=False,
        )
        return MappedRow(tag=tag, warnings=list(result.warnings))

    # ------ export ------

    @property
    def export_formats(self) -> Sequence[str]:
        return EXPORT_FORMATS[self.vendor.value]

    def check_format(self, fmt: Optional[str]) -> str:
        """Return the normalised export format, defaulting to ``csv``.

        Raises:
            ValueError: If the vendor cannot produce *fmt*.
        """
        name = (fmt or 'csv').strip().lower().lstrip('.')
        if name not in self.export_formats:
            raise ValueError(
                f"Unsupported export format '{fmt}' for {self.vendor.value}. "
                f"Must be one of: {', '.join(self.export_formats)}"
            )
        return name

    def export(self, tags: Iterable[Tag], fmt: Optional[str] = None) -> bytes:
        """Serialize *tags* into vendor file bytes.

        Args:
            tags: Tags to write, in output order.
            fmt: One of the vendor's export formats (default ``csv``).

        Returns:
            The encoded file content.

        Raises:
            ValueError: If the vendor cannot produce *fmt*.
        """
        name = self.check_format(fmt)
        writer: Callable[[List[Tag]], bytes] = getattr(self, f'_export_{name}')
        tag_list = list(tags)
        logger.debug("Exporting %d %s tag(s) as %s", len(tag_list), self.vendor.value, name)
        return writer(tag_list)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(vendor={self.vendor.value!r})"


# ===================================================================
# Factory
# ===================================================================

def get_codec(vendor) -> VendorCodec:
    """Return the codec for *vendor* (a :class:`Vendor` or its name).

    Raises:
        ValueError: If *vendor* is not supported.
    """
    vendor = Vendor.parse(vendor)
    if vendor == Vendor.ROCKWELL:
        from .rockwell import RockwellCodec
        return RockwellCodec()
    if vendor == Vendor.SIEMENS:
        from .siemens import SiemensCodec
        return SiemensCodec()
    from .beckhoff import BeckhoffCodec
    return BeckhoffCodec()


def hint_matches(mime_hint: Optional[str], *needles: str) -> bool:
    """Return ``True`` if any of *needles* occurs in the lower-cased hint."""
    hint = (mime_hint or '').lower()
    return any(n in hint for n in needles)
