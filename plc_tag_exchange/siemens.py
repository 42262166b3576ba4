"""
Siemens / TIA Portal codec.

Reads CSV (comma or semicolon separated), ``.xlsx`` spreadsheets (first
sheet, header row inferred) and TIA Portal tag table XML::

    <Siemens.TIA.Portal.TagTable>
      <TagTable>
        <Name>Project_1_Tags</Name>
        <Tags>
          <Tag><Name>Start</Name><DataType>Bool</DataType>...</Tag>
        </Tags>
      </TagTable>
    </Siemens.TIA.Portal.TagTable>

A document may hold one ``TagTable`` or several, and each table one
``Tags`` list or several; all are flattened in document order.

Export formats: ``csv``, ``xml`` and ``xlsx``.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from lxml import etree

from .codec import VendorCodec, element_row, export_data_type, export_scope, hint_matches
from .errors import ParseError
from .models import Scope, Tag, Vendor
from .schema import (
    SIEMENS_CSV_COLUMNS,
    SIEMENS_HEADER_ALIASES,
    SIEMENS_XLSX_COLUMNS,
    SIEMENS_XLSX_SHEET,
    SIEMENS_XML_ROOT,
)
from .utils import (
    add_text_child,
    decode_text,
    element_to_bytes,
    looks_like_xlsx,
    looks_like_xml,
    parse_xml,
    read_csv_rows,
    read_xlsx_rows,
    sniff_delimiter,
    write_csv,
    write_xlsx,
)

logger = logging.getLogger(__name__)

_XLSX_WIDTHS = [24, 14, 14, 14, 40, 10]


class SiemensCodec(VendorCodec):
    """TIA Portal CSV, spreadsheet and tag table XML codec."""

    vendor = Vendor.SIEMENS
    aliases = SIEMENS_HEADER_ALIASES
    default_scope = Scope.GLOBAL

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, data: bytes, mime_hint: Optional[str] = None) -> List[dict]:
        if hint_matches(mime_hint, 'spreadsheet', 'excel', 'xlsx') or looks_like_xlsx(data):
            return read_xlsx_rows(data, self.aliases, what='Siemens spreadsheet')
        if hint_matches(mime_hint, 'xml') or (
            not hint_matches(mime_hint, 'csv') and looks_like_xml(data)
        ):
            return self.parse_xml(data)
        text = decode_text(data)
        delimiter = sniff_delimiter(text)
        return read_csv_rows(text, self.aliases, delimiter=delimiter, what='Siemens CSV')

    def parse_xml(self, data: bytes) -> List[dict]:
        """Read tag rows from a TIA Portal tag table document.

        Raises:
            ParseError: If the XML is malformed or contains no tags.
        """
        root = parse_xml(data, what='Siemens XML')
        if root.tag == 'TagTable':
            tables = [root]
        elif root.tag == SIEMENS_XML_ROOT:
            tables = root.findall('TagTable')
        else:
            raise ParseError(
                f"Unexpected Siemens XML root <{root.tag}>, "
                f"expected <{SIEMENS_XML_ROOT}>"
            )

        rows: List[dict] = []
        for table in tables:
            for tags_el in table.findall('Tags'):
                for tag_el in tags_el.findall('Tag'):
                    rows.append(element_row(tag_el, self.aliases))

        if not rows:
            raise ParseError('No Tags found in Siemens XML')
        logger.debug("Read %d tag(s) from Siemens XML", len(rows))
        return rows

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def _export_csv(self, tags: List[Tag]) -> bytes:
        rows = [
            [
                tag.name,
                export_data_type(tag),
                tag.address or '',
                tag.description or '',
                tag.default_value or '',
                export_scope(tag),
            ]
            for tag in tags
        ]
        return write_csv(SIEMENS_CSV_COLUMNS, rows)

    def _export_xlsx(self, tags: List[Tag]) -> bytes:
        rows = [
            [
                tag.name,
                export_data_type(tag),
                tag.address or '',
                tag.default_value or '',
                tag.description or '',
                export_scope(tag),
            ]
            for tag in tags
        ]
        return write_xlsx(
            SIEMENS_XLSX_COLUMNS, rows,
            sheet_title=SIEMENS_XLSX_SHEET, widths=_XLSX_WIDTHS,
        )

    def _export_xml(self, tags: List[Tag]) -> bytes:
        root = etree.Element(SIEMENS_XML_ROOT)
        table = etree.SubElement(root, 'TagTable')
        project_id = tags[0].project_id if tags else None
        table_name = f"Project_{project_id}_Tags" if project_id is not None else 'Tags'
        add_text_child(table, 'Name', table_name)

        tags_el = etree.SubElement(table, 'Tags')
        for tag in tags:
            tag_el = etree.SubElement(tags_el, 'Tag')
            add_text_child(tag_el, 'Name', tag.name)
            add_text_child(tag_el, 'DataType', export_data_type(tag))
            if tag.address:
                add_text_child(tag_el, 'Address', tag.address)
            if tag.description:
                add_text_child(tag_el, 'Comment', tag.description)
            if tag.default_value:
                add_text_child(tag_el, 'InitialValue', tag.default_value)
            add_text_child(tag_el, 'Scope', export_scope(tag))
        return element_to_bytes(root)
