"""
Utility functions for reading and writing vendor tag files.

Provides byte decoding (UTF-8 BOM aware), lxml parsing and serialisation
helpers, and tabular (CSV / spreadsheet) readers with header
normalisation shared by all vendor codecs.

Vendor exports are inconsistent about where a field lives: TIA Portal and
TwinCAT tools write ``<Name>Motor1</Name>`` child elements, Studio 5000
writes ``Name="Motor1"`` attributes, and some tools wrap text in CDATA.
:func:`element_field` hides those differences.
"""

import csv
import io
import re
from typing import Dict, Iterable, List, Optional, Sequence

from lxml import etree
from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font

from .errors import ParseError


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# UTF-8 BOM bytes.  Studio 5000 and TIA Portal both like to prepend this.
_UTF8_BOM = b"\xef\xbb\xbf"

# Legacy element some converters use to hold CDATA text.
_LEGACY_CDATA_TAG = "CDATAContent"

# Characters ignored when comparing header names.
_HEADER_NOISE_RE = re.compile(r"[\s_\-]+")

# Spreadsheet magic: xlsx files are zip archives.
_ZIP_MAGIC = b"PK\x03\x04"


# ---------------------------------------------------------------------------
# Byte handling
# ---------------------------------------------------------------------------

def strip_bom(data: bytes) -> bytes:
    """Return *data* without a leading UTF-8 BOM."""
    if data.startswith(_UTF8_BOM):
        return data[len(_UTF8_BOM):]
    return data


def decode_text(data) -> str:
    """Decode file bytes as UTF-8, tolerating a BOM.

    Raises:
        ParseError: If the bytes are not valid UTF-8.
    """
    if isinstance(data, str):
        return data.lstrip("\ufeff")
    try:
        return strip_bom(bytes(data)).decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"File is not valid UTF-8 text: {e}") from e


def looks_like_xml(data) -> bool:
    """Return ``True`` if the first non-blank character is ``<``."""
    if isinstance(data, str):
        head = data.lstrip("\ufeff").lstrip()[:1]
        return head == "<"
    return strip_bom(bytes(data)).lstrip()[:1] == b"<"


def looks_like_xlsx(data) -> bool:
    """Return ``True`` if *data* starts with the zip archive signature."""
    return isinstance(data, (bytes, bytearray)) and bytes(data[:4]) == _ZIP_MAGIC


# ---------------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------------

def parse_xml(data, what: str = "XML") -> etree._Element:
    """Parse XML bytes into a root element.

    Uses an lxml parser that keeps CDATA content, drops ignorable
    whitespace, and never resolves external entities.

    Raises:
        ParseError: On malformed XML.
    """
    if isinstance(data, str):
        data = data.lstrip("\ufeff").encode("utf-8")
    raw = strip_bom(bytes(data))
    parser = etree.XMLParser(
        strip_cdata=False,
        remove_blank_text=True,
        resolve_entities=False,
        no_network=True,
    )
    try:
        return etree.fromstring(raw, parser=parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Failed to parse {what}: {e}") from e


def get_element_cdata(element: etree._Element) -> Optional[str]:
    """Return the text content of *element*, plain or CDATA.

    Reads the legacy ``CDATAContent`` child when present.
    """
    legacy_child = element.find(_LEGACY_CDATA_TAG)
    if legacy_child is not None:
        return legacy_child.text
    return element.text


def element_field(element: etree._Element, name: str) -> Optional[str]:
    """Read field *name* from a child element or, failing that, an attribute.

    When the child element occurs more than once, the first occurrence
    wins.  Returns stripped text, or ``None`` if the field is absent.
    """
    child = element.find(name)
    if child is not None:
        text = get_element_cdata(child)
        if text is None:
            # <DataType><Name>Int</Name></DataType> style nesting.
            if len(child):
                text = get_element_cdata(child[0])
        return text.strip() if text is not None else ""
    attr = element.get(name)
    if attr is not None:
        return attr.strip()
    return None


def find_path(root: etree._Element, path: Sequence[str]) -> Optional[etree._Element]:
    """Follow *path* from *root*; ``path[0]`` may name the root itself.

    Returns the element at the end of the path, or ``None``.
    """
    node = root
    steps = list(path)
    if steps and root.tag == steps[0]:
        steps = steps[1:]
    for step in steps:
        node = node.find(step)
        if node is None:
            return None
    return node


def add_text_child(
    parent: etree._Element, tag_name: str, text: str, cdata: bool = False
) -> etree._Element:
    """Append ``<tag_name>text</tag_name>`` to *parent* and return it."""
    child = etree.SubElement(parent, tag_name)
    child.text = etree.CDATA(text) if cdata and text else text
    return child


def element_to_bytes(root: etree._Element) -> bytes:
    """Serialize *root* as pretty-printed UTF-8 with an XML declaration."""
    return etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=True,
    )


# ---------------------------------------------------------------------------
# Tabular helpers
# ---------------------------------------------------------------------------

def normalize_header(header) -> str:
    """``" Tag Name "`` -> ``"tagname"``; ``"Initial_Value"`` -> ``"initialvalue"``."""
    if header is None:
        return ""
    return _HEADER_NOISE_RE.sub("", str(header)).lower()


def map_headers(headers: Iterable, aliases: Dict[str, str]) -> List[Optional[str]]:
    """Map raw header cells to canonical field names (``None`` = drop)."""
    return [aliases.get(normalize_header(h)) for h in headers]


def cell_text(value) -> str:
    """Render a CSV or spreadsheet cell as stripped text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def rows_from_table(
    table: Iterable[Sequence], aliases: Dict[str, str], what: str = "file"
) -> List[dict]:
    """Convert header + data rows into dicts keyed by canonical field name.

    The header is the first row containing at least one recognised column
    (falling back to the first non-empty row).  Blank rows are skipped.
    Columns without an alias are dropped silently.

    Raises:
        ParseError: If there is no header or no data row.
    """
    rows = [list(r) for r in table]
    non_empty = [r for r in rows if any(cell_text(c) for c in r)]
    if not non_empty:
        raise ParseError(f"No rows found in {what}")

    header_idx = None
    for idx, row in enumerate(non_empty):
        if any(m is not None for m in map_headers(row, aliases)):
            header_idx = idx
            break
    if header_idx is None:
        header_idx = 0

    fields = map_headers(non_empty[header_idx], aliases)
    records: List[dict] = []
    for row in non_empty[header_idx + 1:]:
        record: dict = {}
        for field_name, value in zip(fields, row):
            if field_name is None or field_name in record:
                continue
            record[field_name] = cell_text(value)
        records.append(record)

    if not records:
        raise ParseError(f"No rows found in {what}")
    return records


def sniff_delimiter(text: str) -> str:
    """Return ``';'`` if the header line contains a semicolon, else ``','``."""
    first_line = text.split("\n", 1)[0]
    return ";" if ";" in first_line else ","


def read_csv_rows(
    data, aliases: Dict[str, str], delimiter: str = ",", what: str = "CSV"
) -> List[dict]:
    """Parse CSV bytes into canonical row dicts (see :func:`rows_from_table`)."""
    text = decode_text(data)
    try:
        table = list(csv.reader(io.StringIO(text), delimiter=delimiter))
    except csv.Error as e:
        raise ParseError(f"Failed to parse {what}: {e}") from e
    return rows_from_table(table, aliases, what=what)


def write_csv(columns: Sequence[str], rows: Iterable[Sequence], delimiter: str = ",") -> bytes:
    """Render *rows* under a *columns* header as UTF-8 CSV bytes."""
    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=delimiter, lineterminator="\r\n")
    writer.writerow(columns)
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    return buf.getvalue().encode("utf-8")


def read_xlsx_rows(data, aliases: Dict[str, str], what: str = "spreadsheet") -> List[dict]:
    """Read the first sheet of an ``.xlsx`` workbook into canonical rows.

    Raises:
        ParseError: If the workbook cannot be opened or holds no rows.
    """
    try:
        wb = load_workbook(io.BytesIO(bytes(data)), read_only=True, data_only=True)
    except Exception as e:
        raise ParseError(f"Failed to read {what}: {e}") from e
    try:
        if not wb.worksheets:
            raise ParseError(f"No sheets found in {what}")
        ws = wb.worksheets[0]
        table = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    return rows_from_table(table, aliases, what=what)


def write_xlsx(
    columns: Sequence[str],
    rows: Iterable[Sequence],
    sheet_title: str = "Tags",
    widths: Optional[Sequence[int]] = None,
) -> bytes:
    """Build a single-sheet ``.xlsx`` workbook and return its bytes."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    ws.append(list(columns))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for row in rows:
        ws.append(["" if v is None else v for v in row])
    if widths:
        for idx, width in enumerate(widths):
            ws.column_dimensions[chr(ord("A") + idx)].width = width
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()
