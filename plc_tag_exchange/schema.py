"""
Vendor Schema Constants and Validation Rules.

Defines address grammars, raw-to-canonical data type tables, header alias
maps, and the exact export column sets for the three supported vendor
dialects (Rockwell/Allen-Bradley, Siemens/TIA Portal, Beckhoff/TwinCAT).
"""

# Tag names: letter or underscore first, then letters, digits, underscores.
TAG_NAME_PATTERN = r'^[A-Za-z_][A-Za-z0-9_]*$'

# Studio 5000 refuses tag names longer than this.
MAX_ROCKWELL_TAG_NAME_LENGTH = 40

SYMBOLIC_ADDRESS_PATTERN = r'^[A-Za-z_][A-Za-z0-9_]*$'

# ---------------------------------------------------------------------------
# Address grammars.  An address is valid when ANY pattern matches.
# ---------------------------------------------------------------------------

ROCKWELL_ADDRESS_PATTERNS = [
    r'^I:\d+/\d+$',                 # Input image:   I:1/0
    r'^O:\d+/\d+$',                 # Output image:  O:2/0
    r'^N\d+:\d+(/\d+)?$',           # Integer file:  N7:0
    r'^F\d+:\d+$',                  # Float file:    F8:0
    r'^B\d+:\d+(/\d+)?$',           # Binary file:   B3:0, B3:0/5
    r'^T\d+:\d+$',                  # Timer file:    T4:0
    r'^C\d+:\d+$',                  # Counter file:  C5:0
    r'^R\d+:\d+$',                  # Control file:  R6:0
    r'^S\d+:\d+$',                  # Status file:   S2:1
    SYMBOLIC_ADDRESS_PATTERN,
]

SIEMENS_ADDRESS_PATTERNS = [
    r'^[IE]\d+\.\d+$',              # Input bit:     I0.0 / E0.0
    r'^[QA]\d+\.\d+$',              # Output bit:    Q0.0 / A0.0
    r'^M\d+\.\d+$',                 # Marker bit:    M0.0
    r'^[IEQAM][BWD]\d+$',           # Byte/word/dword: IW64, MD10
    r'^DB\d+\.DB[BWDX]\d+(\.\d+)?$',  # Data block:  DB1.DBD0, DB1.DBX0.1
    r'^L\d+\.\d+$',                 # Local bit:     L0.0
    SYMBOLIC_ADDRESS_PATTERN,
]

BECKHOFF_ADDRESS_PATTERNS = [
    r'^%[IQMT]\d+(\.\d+)?$',        # %I0.0, %Q2, %M1.5, %T0
    r'^%[IQMT][BWDL]\d+$',          # %IB0, %QW1, %MD200, %ML100
    r'^%[IQMT]X\d+\.\d+$',          # %IX0.0
    SYMBOLIC_ADDRESS_PATTERN,
    r'^GVL\.[A-Za-z_][A-Za-z0-9_]*$',   # Global variable list reference
    r'^MAIN\.[A-Za-z_][A-Za-z0-9_]*$',  # Program reference
]

# Leading class letter -> tag type, per vendor.  Applied to absolute
# addresses only; symbolic addresses classify as memory.
ROCKWELL_CLASS_PATTERNS = [
    (r'^I:', 'input'),
    (r'^O:', 'output'),
]

SIEMENS_CLASS_PATTERNS = [
    (r'^[IE][BWD]?\d', 'input'),
    (r'^[QA][BWD]?\d', 'output'),
    (r'^M[BWD]?\d', 'memory'),
    (r'^T\d', 'temp'),
    (r'^L\d', 'temp'),
]

BECKHOFF_CLASS_PATTERNS = [
    (r'^%I', 'input'),
    (r'^%Q', 'output'),
    (r'^%M', 'memory'),
    (r'^%T', 'temp'),
]

# ---------------------------------------------------------------------------
# Raw data type -> canonical type tables (keys upper-case).
# ---------------------------------------------------------------------------

ROCKWELL_TYPE_MAP = {
    'BOOL': 'BOOL', 'BIT': 'BOOL',
    'SINT': 'INT', 'USINT': 'INT', 'INT': 'INT', 'UINT': 'INT',
    'BYTE': 'INT', 'WORD': 'INT', 'ENUM': 'INT',
    'DINT': 'DINT', 'UDINT': 'DINT', 'LINT': 'DINT',
    'DWORD': 'DINT', 'LWORD': 'DINT',
    'REAL': 'REAL', 'LREAL': 'REAL',
    'STRING': 'STRING', 'CHAR': 'STRING', 'STRUCT': 'STRING',
    'TIMER': 'TIMER',
    'COUNTER': 'COUNTER',
}

SIEMENS_TYPE_MAP = {
    'BOOL': 'BOOL',
    'BYTE': 'INT', 'SINT': 'INT', 'USINT': 'INT', 'INT': 'INT',
    'UINT': 'INT', 'WORD': 'INT',
    'DINT': 'DINT', 'UDINT': 'DINT', 'LINT': 'DINT', 'DWORD': 'DINT',
    'TIME': 'DINT',
    'REAL': 'REAL', 'LREAL': 'REAL',
    'STRING': 'STRING', 'WSTRING': 'STRING', 'CHAR': 'STRING',
    'S5TIME': 'TIMER', 'IEC_TIMER': 'TIMER', 'TON': 'TIMER', 'TOF': 'TIMER',
    'IEC_COUNTER': 'COUNTER', 'CTU': 'COUNTER', 'CTD': 'COUNTER',
}

BECKHOFF_TYPE_MAP = {
    'BOOL': 'BOOL',
    'BYTE': 'INT', 'WORD': 'INT', 'SINT': 'INT', 'USINT': 'INT',
    'INT': 'INT', 'UINT': 'INT',
    'DWORD': 'DINT', 'LWORD': 'DINT', 'DINT': 'DINT', 'UDINT': 'DINT',
    'LINT': 'DINT', 'ULINT': 'DINT',
    'REAL': 'REAL', 'LREAL': 'REAL',
    'TIME': 'TIMER', 'TIME_OF_DAY': 'TIMER', 'TON': 'TIMER', 'TOF': 'TIMER',
    'TP': 'TIMER',
    'CTU': 'COUNTER', 'CTD': 'COUNTER', 'CTUD': 'COUNTER',
    'DATE': 'STRING', 'DATE_AND_TIME': 'STRING',
    'STRING': 'STRING', 'WSTRING': 'STRING',
    'ARRAY': 'STRING', 'STRUCT': 'STRING',
}

# Substring fallback, checked in this order.  DINT precedes INT so that
# double integers are not swallowed by the shorter token.
TYPE_SUBSTRING_PRIORITY = [
    ('BOOL', 'BOOL'),
    ('DINT', 'DINT'),
    ('INT', 'INT'),
    ('REAL', 'REAL'),
    ('STRING', 'STRING'),
    ('TIMER', 'TIMER'),
    ('COUNTER', 'COUNTER'),
]

# Canonical type used when neither the table nor a substring matches.
DEFAULT_CANONICAL_TYPE = {
    'rockwell': 'DINT',
    'siemens': 'STRING',
    'beckhoff': 'DINT',
}

# ---------------------------------------------------------------------------
# Header aliases.  Keys are normalised: lower-case with spaces, hyphens
# and underscores removed.  Unlisted columns are dropped.
# ---------------------------------------------------------------------------

ROCKWELL_HEADER_ALIASES = {
    'tagname': 'name',
    'name': 'name',
    'symbol': 'name',
    'datatype': 'data_type',
    'type': 'data_type',
    'scope': 'scope',
    'description': 'description',
    'comment': 'description',
    'address': 'address',
    'externalaccess': 'external_access',
    'defaultvalue': 'default_value',
    'initialvalue': 'default_value',
}

SIEMENS_HEADER_ALIASES = {
    'name': 'name',
    'tagname': 'name',
    'symbol': 'name',
    'datatype': 'data_type',
    'type': 'data_type',
    'address': 'address',
    'logicaladdress': 'address',
    'comment': 'description',
    'description': 'description',
    'initialvalue': 'default_value',
    'defaultvalue': 'default_value',
    'startvalue': 'default_value',
    'scope': 'scope',
}

BECKHOFF_HEADER_ALIASES = {
    'name': 'name',
    'variablename': 'name',
    'symbol': 'name',
    'type': 'data_type',
    'datatype': 'data_type',
    'comment': 'description',
    'description': 'description',
    'address': 'address',
    'physicaladdress': 'address',
    'initialvalue': 'default_value',
    'defaultvalue': 'default_value',
    'scope': 'scope',
    'accessmode': 'access_mode',
    'category': 'category',
}

# ---------------------------------------------------------------------------
# Export layouts
# ---------------------------------------------------------------------------

ROCKWELL_CSV_COLUMNS = [
    'Tag Name',
    'Data Type',
    'Scope',
    'Description',
    'External Access',
    'Default Value',
    'Address',
]

SIEMENS_CSV_COLUMNS = [
    'Name',
    'DataType',
    'Address',
    'Comment',
    'InitialValue',
    'Scope',
]

SIEMENS_XLSX_COLUMNS = [
    'Name',
    'Data Type',
    'Address',
    'Initial Value',
    'Comment',
    'Scope',
]

SIEMENS_XLSX_SHEET = 'Siemens Tags'

SIEMENS_XML_ROOT = 'Siemens.TIA.Portal.TagTable'

BECKHOFF_CSV_COLUMNS = [
    'Name',
    'DataType',
    'Scope',
    'Comment',
    'Address',
    'InitialValue',
]

# Export formats each vendor can produce.
EXPORT_FORMATS = {
    'rockwell': ('csv', 'l5x'),
    'siemens': ('csv', 'xml', 'xlsx'),
    'beckhoff': ('csv', 'xml'),
}
