"""
IEC 61131-3 structured text declaration parser.

Extracts variable declarations from ``VAR ... END_VAR`` blocks::

    VAR_INPUT
        StartPB  : BOOL;                  // Start button address=I:1/0
        Speed AT %IW64 : INT := 0;        (* drive speed *)
        A, B     : REAL := 1.5;
    END_VAR

Block keywords map to scopes: ``VAR`` -> local, ``VAR_INPUT`` -> input,
``VAR_OUTPUT`` -> output, ``VAR_IN_OUT`` -> in_out, ``VAR_GLOBAL`` ->
global, ``VAR_TEMP`` -> temp.  Qualifiers such as ``CONSTANT`` or
``RETAIN`` are accepted and ignored.  Addresses come from a located
declaration (``AT %IX0.0``) or an ``address=...`` note in the trailing
comment; the rest of the comment becomes the description.

Statements outside declaration blocks are not examined.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from .models import RawTagTuple

logger = logging.getLogger(__name__)

_BLOCK_SCOPES = {
    'VAR': 'local',
    'VAR_INPUT': 'input',
    'VAR_OUTPUT': 'output',
    'VAR_IN_OUT': 'in_out',
    'VAR_GLOBAL': 'global',
    'VAR_TEMP': 'temp',
    'VAR_STAT': 'local',
    'VAR_EXTERNAL': 'global',
}

_BLOCK_START_RE = re.compile(r'^(VAR(?:_[A-Z_]+)?)\b', re.IGNORECASE)
_BLOCK_END_RE = re.compile(r'^END_VAR\b', re.IGNORECASE)

_DECL_RE = re.compile(
    r'^(?P<names>[A-Za-z_]\w*(?:\s*,\s*[A-Za-z_]\w*)*)'
    r'(?:\s+AT\s+(?P<at>%[A-Za-z]+[\d.]*))?'
    r'\s*:\s*(?P<type>[^:;=]+?)'
    r'(?:\s*:=\s*(?P<default>[^;]+?))?'
    r'\s*;?$',
    re.IGNORECASE,
)

_ADDRESS_NOTE_RE = re.compile(r'address\s*=\s*([^\s,;]+)', re.IGNORECASE)
_SCOPE_NOTE_RE = re.compile(r'scope\s*=\s*[^\s,;]+', re.IGNORECASE)


def _split_comments(line: str) -> Tuple[str, List[str], bool]:
    """Separate code from ``//`` and ``(* *)`` comments on one line.

    Returns:
        ``(code, comments, opens_block)`` where *opens_block* is ``True``
        when a ``(*`` comment is left unterminated.
    """
    code_parts: List[str] = []
    comments: List[str] = []
    rest = line
    while rest:
        line_idx = rest.find('//')
        block_idx = rest.find('(*')
        if line_idx < 0 and block_idx < 0:
            code_parts.append(rest)
            break
        if block_idx < 0 or (0 <= line_idx < block_idx):
            code_parts.append(rest[:line_idx])
            comments.append(rest[line_idx + 2:].strip())
            break
        code_parts.append(rest[:block_idx])
        end = rest.find('*)', block_idx + 2)
        if end < 0:
            comments.append(rest[block_idx + 2:].strip())
            return ''.join(code_parts).strip(), comments, True
        comments.append(rest[block_idx + 2:end].strip())
        rest = rest[end + 2:]
    return ''.join(code_parts).strip(), comments, False


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _parse_declaration(code: str, comment: str, scope: str) -> List[RawTagTuple]:
    match = _DECL_RE.match(code)
    if not match:
        return []

    address = match.group('at') or ''
    description = comment
    note = _ADDRESS_NOTE_RE.search(comment)
    if note:
        if not address:
            address = note.group(1)
        description = _ADDRESS_NOTE_RE.sub('', description)
    description = _SCOPE_NOTE_RE.sub('', description).strip(' ,;-')

    data_type = ' '.join(match.group('type').split()).upper()
    default = _strip_quotes((match.group('default') or '').strip())

    names = [n.strip() for n in match.group('names').split(',')]
    return [
        RawTagTuple(
            name=name,
            data_type=data_type,
            address=address,
            description=description,
            scope=scope,
            default_value=default,
        )
        for name in names
    ]


def parse_st_variables(code: str, vendor_hint: Optional[str] = None) -> List[RawTagTuple]:
    """Parse the variable declarations in *code*.

    Args:
        code: Structured text source.
        vendor_hint: Accepted for signature compatibility with other
            parsers; this parser's grammar is the same for every vendor.

    Returns:
        One :class:`RawTagTuple` per declared name, in source order.
        Lines that are not declarations are skipped.
    """
    results: List[RawTagTuple] = []
    scope: Optional[str] = None
    in_comment = False

    for raw_line in (code or '').splitlines():
        line = raw_line.strip()
        if in_comment:
            end = line.find('*)')
            if end < 0:
                continue
            line = line[end + 2:].strip()
            in_comment = False

        code_part, comments, in_comment = _split_comments(line)
        if not code_part:
            continue

        if _BLOCK_END_RE.match(code_part):
            scope = None
            continue

        start = _BLOCK_START_RE.match(code_part)
        if start:
            keyword = start.group(1).upper()
            if keyword in _BLOCK_SCOPES:
                scope = _BLOCK_SCOPES[keyword]
                continue

        if scope is None:
            continue

        declared = _parse_declaration(code_part, ' '.join(c for c in comments if c), scope)
        if not declared:
            logger.debug("Skipping unrecognised declaration: %r", code_part)
        results.extend(declared)

    return results
