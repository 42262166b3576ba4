"""
Rockwell / Allen-Bradley codec.

Input flavours:

    - **CSV** tag database exports.  Headers are matched through
      :data:`~.schema.ROCKWELL_HEADER_ALIASES`; other columns are dropped.
    - **L5X** XML.  Either the simplified ``<ControllerTags><Tag>`` document
      this codec writes, or a full Studio 5000 ``RSLogix5000Content``
      export, where controller tags are global and program tags local.
      L5X tags carry no physical address.

Export formats: ``csv`` and ``l5x``.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from lxml import etree

from .codec import VendorCodec, element_row, export_data_type, export_scope, hint_matches
from .errors import ParseError
from .models import Scope, Tag, Vendor
from .schema import ROCKWELL_CSV_COLUMNS, ROCKWELL_HEADER_ALIASES
from .utils import (
    add_text_child,
    element_to_bytes,
    find_path,
    looks_like_xml,
    parse_xml,
    read_csv_rows,
    write_csv,
)

logger = logging.getLogger(__name__)


class RockwellCodec(VendorCodec):
    """Studio 5000 tag CSV and L5X codec."""

    vendor = Vendor.ROCKWELL
    aliases = ROCKWELL_HEADER_ALIASES
    default_scope = Scope.GLOBAL

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, data: bytes, mime_hint: Optional[str] = None) -> List[dict]:
        if hint_matches(mime_hint, 'xml', 'l5x') or (
            not hint_matches(mime_hint, 'csv') and looks_like_xml(data)
        ):
            return self.parse_l5x(data)
        return read_csv_rows(data, self.aliases, what='Rockwell CSV')

    def parse_l5x(self, data: bytes) -> List[dict]:
        """Read tag rows from an L5X document.

        Raises:
            ParseError: If the XML is malformed or contains no tags.
        """
        root = parse_xml(data, what='L5X XML')
        rows: List[dict] = []

        if root.tag == 'ControllerTags':
            controller_tags = root
        else:
            controller_tags = find_path(root, ['RSLogix5000Content', 'Controller', 'Tags'])
            if controller_tags is None:
                controller_tags = root.find('.//ControllerTags')

        if controller_tags is not None:
            for tag_el in controller_tags.findall('Tag'):
                rows.append(self._l5x_row(tag_el, Scope.GLOBAL))

        programs = find_path(root, ['RSLogix5000Content', 'Controller', 'Programs'])
        if programs is not None:
            for program in programs.findall('Program'):
                tags_el = program.find('Tags')
                if tags_el is None:
                    continue
                for tag_el in tags_el.findall('Tag'):
                    rows.append(self._l5x_row(tag_el, Scope.LOCAL))

        if not rows:
            raise ParseError('No Tags found in L5X XML')
        logger.debug("Read %d tag(s) from L5X", len(rows))
        return rows

    def _l5x_row(self, tag_el: etree._Element, scope: Scope) -> dict:
        row = element_row(tag_el, self.aliases)
        row.setdefault('scope', scope.value)
        row['address'] = ''
        return row

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _export_csv(self, tags: List[Tag]) -> bytes:
        rows = [
            [
                tag.name,
                export_data_type(tag),
                export_scope(tag),
                tag.description or '',
                '',
                tag.default_value or '',
                tag.address or '',
            ]
            for tag in tags
        ]
        return write_csv(ROCKWELL_CSV_COLUMNS, rows)

    def _export_l5x(self, tags: List[Tag]) -> bytes:
        root = etree.Element('ControllerTags')
        for tag in tags:
            tag_el = etree.SubElement(root, 'Tag')
            add_text_child(tag_el, 'Name', tag.name)
            add_text_child(tag_el, 'DataType', export_data_type(tag) or 'DINT')
            if tag.description:
                add_text_child(tag_el, 'Comment', tag.description, cdata=True)
            add_text_child(tag_el, 'Scope', export_scope(tag))
        return element_to_bytes(root)
