"""
Beckhoff / TwinCAT codec.

Reads ``<Variables><Variable>`` XML (fields ``Name``, ``DataType``,
``Scope``, ``Comment``, ``PhysicalAddress``, ``InitialValue``) and CSV with
``Name, DataType, Scope, Comment, Address, InitialValue`` headers.

Export formats: ``csv`` and ``xml``.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from lxml import etree

from .codec import VendorCodec, element_row, export_data_type, export_scope, hint_matches
from .errors import ParseError
from .models import Scope, Tag, Vendor
from .schema import BECKHOFF_CSV_COLUMNS, BECKHOFF_HEADER_ALIASES
from .utils import (
    add_text_child,
    element_to_bytes,
    looks_like_xml,
    parse_xml,
    read_csv_rows,
    write_csv,
)

logger = logging.getLogger(__name__)


class BeckhoffCodec(VendorCodec):
    """TwinCAT variable list XML and CSV codec."""

    vendor = Vendor.BECKHOFF
    aliases = BECKHOFF_HEADER_ALIASES
    default_scope = Scope.GLOBAL

    def parse(self, data: bytes, mime_hint: Optional[str] = None) -> List[dict]:
        if hint_matches(mime_hint, 'xml') or (
            not hint_matches(mime_hint, 'csv') and looks_like_xml(data)
        ):
            return self.parse_xml(data)
        return read_csv_rows(data, self.aliases, what='Beckhoff CSV')

    def parse_xml(self, data: bytes) -> List[dict]:
        """Read variable rows from a ``<Variables>`` document.

        Raises:
            ParseError: If the XML is malformed or contains no variables.
        """
        root = parse_xml(data, what='Beckhoff XML')
        variables = root if root.tag == 'Variables' else root.find('.//Variables')
        if variables is None:
            raise ParseError('No Variables found in Beckhoff XML')

        rows = [element_row(v, self.aliases) for v in variables.findall('Variable')]
        if not rows:
            raise ParseError('No Variables found in Beckhoff XML')
        logger.debug("Read %d variable(s) from Beckhoff XML", len(rows))
        return rows

    def _export_csv(self, tags: List[Tag]) -> bytes:
        rows = [
            [
                tag.name,
                export_data_type(tag),
                export_scope(tag),
                tag.description or '',
                tag.address or '',
                tag.default_value or '',
            ]
            for tag in tags
        ]
        return write_csv(BECKHOFF_CSV_COLUMNS, rows)

    def _export_xml(self, tags: List[Tag]) -> bytes:
        root = etree.Element('Variables')
        for tag in tags:
            var = etree.SubElement(root, 'Variable')
            add_text_child(var, 'Name', tag.name)
            add_text_child(var, 'DataType', export_data_type(tag) or 'DINT')
            add_text_child(var, 'Scope', export_scope(tag))
            if tag.description:
                add_text_child(var, 'Comment', tag.description)
            if tag.address:
                add_text_child(var, 'PhysicalAddress', tag.address)
            if tag.default_value:
                add_text_child(var, 'InitialValue', tag.default_value)
        return element_to_bytes(root)
