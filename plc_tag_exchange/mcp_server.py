"""
MCP Server for PLC Tag Exchange.

Exposes tag import, export, address validation and structured text sync
via the Model Context Protocol, so an MCP-compatible AI client can move
tag tables between Rockwell, Siemens and Beckhoff tooling.

Projects and tags live in memory for the lifetime of the server.  Every
tool acts as the local operator user, who owns the projects it creates.

Usage:
    python -m plc_tag_exchange.mcp_server
    # or
    plc-tags-mcp
"""

from __future__ import annotations

import json
import logging
import os
import sys
from urllib.parse import unquote, urlparse

from mcp.server.fastmcp import FastMCP

from . import addresses as _addresses
from . import importer as _importer
from .models import Vendor
from .reconciler import reconcile_tags, resolve_vendor
from .st_parser import parse_st_variables
from .store import InMemoryProjectDirectory, InMemoryTagStore

# ---------------------------------------------------------------------------
# Logging (stderr only -- stdout is reserved for MCP protocol)
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    stream=sys.stderr,
)
log = logging.getLogger("plc-tags-mcp")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "PLC Tag Exchange",
    instructions=(
        "Tools for exchanging PLC tag tables between Rockwell (CSV, L5X), "
        "Siemens (CSV, XML, XLSX) and Beckhoff (CSV, XML) formats.\n\n"
        "Call create_project first; every other tool takes its project_id. "
        "Imports are all-or-nothing: if any row is invalid nothing is "
        "saved and the bad rows are reported."
    ),
)

# ---------------------------------------------------------------------------
# Server state
# ---------------------------------------------------------------------------
OPERATOR_USER = "mcp-operator"

_store = InMemoryTagStore()
_directory = InMemoryProjectDirectory()


def _project_vendor(project_id: str, vendor: str = "") -> Vendor:
    """Return *vendor* if given, else the project's stored vendor."""
    if vendor:
        return Vendor.parse(vendor)
    if _directory.get_project(project_id) is None:
        raise KeyError(f"Project '{project_id}' not found. Call create_project first.")
    return resolve_vendor(_directory, project_id)


def _normalize_path(raw_path: str) -> str:
    """Normalize a file path from an MCP client into a real filesystem path.

    Handles ``file://`` URIs, URL-encoded characters, surrounding quotes
    and relative paths (resolved against cwd).
    """
    path = raw_path.strip().strip('"').strip("'")

    if path.startswith("file:///"):
        decoded = unquote(urlparse(path).path)
        # /C:/path on Windows
        if len(decoded) >= 3 and decoded[0] == '/' and decoded[2] == ':':
            decoded = decoded[1:]
        path = decoded
    elif path.startswith("file://"):
        path = unquote(path[7:])

    return os.path.abspath(os.path.normpath(path))


# ===================================================================
# 1. Projects
# ===================================================================

@mcp.tool()
def create_project(project_id: str, vendor: str = "rockwell", name: str = "") -> str:
    """Create an empty project owned by the operator.

    Args:
        project_id: Identifier used by every other tool.
        vendor: Target PLC vendor: rockwell, siemens or beckhoff.
        name: Optional display name.
    """
    try:
        info = _directory.add_project(project_id, OPERATOR_USER, vendor=vendor, name=name)
        log.info("Created project %s (%s)", project_id, info.vendor.value)
        return f"Created project '{project_id}' ({info.vendor.value})."
    except Exception as e:
        return f"Error: {e}"


@mcp.tool()
def list_tags(project_id: str) -> str:
    """List every tag of a project as JSON.

    Args:
        project_id: The project to read.
    """
    try:
        if _directory.get_project(project_id) is None:
            return f"Error: Project '{project_id}' not found."
        tags = _store.list_tags(project_id)
        return json.dumps([t.to_dict() for t in tags], indent=2)
    except Exception as e:
        return f"Error: {e}"


# ===================================================================
# 2. Import / export
# ===================================================================

@mcp.tool()
def import_tags(project_id: str, file_path: str, vendor: str = "", mime_hint: str = "") -> str:
    """Import a vendor tag file into a project.

    The file flavour (CSV, XML/L5X, XLSX) is taken from *mime_hint* or the
    file extension, falling back to sniffing the content.

    Args:
        project_id: Destination project.
        file_path: Path to the vendor file.
        vendor: Vendor codec to use; defaults to the project's vendor.
        mime_hint: Optional MIME type such as ``text/csv``.

    Returns:
        JSON with ``success``, ``inserted`` and any row ``errors``.
    """
    try:
        target = _project_vendor(project_id, vendor)
        resolved = _normalize_path(file_path)
        with open(resolved, 'rb') as f:
            data = f.read()
        result = _importer.import_tags(
            _store, target, project_id, data,
            mime_hint=mime_hint or os.path.basename(resolved),
            user_id=OPERATOR_USER,
            directory=_directory,
        )
        log.info("Imported %s into %s: %d tag(s)", resolved, project_id, result.inserted)
        return json.dumps(result.to_dict(), indent=2)
    except Exception as e:
        return f"Error: {e}"


@mcp.tool()
def export_tags(project_id: str, file_path: str, vendor: str = "", fmt: str = "csv") -> str:
    """Export a project's tags to a vendor file.

    Args:
        project_id: The project to export.
        file_path: Destination path.  When it names an existing directory
            the file is written there as
            ``project_<id>_<vendor>_tags.<fmt>``.
        vendor: Vendor codec to use; defaults to the project's vendor.
        fmt: Export format: rockwell csv|l5x, siemens csv|xml|xlsx,
            beckhoff csv|xml.
    """
    try:
        target = _project_vendor(project_id, vendor)
        data = _importer.export_tags(_store, target, project_id, fmt)
        dest = _normalize_path(file_path)
        if os.path.isdir(dest):
            dest = os.path.join(dest, _importer.export_filename(target, project_id, fmt))
        with open(dest, 'wb') as f:
            f.write(data)
        count = len(_store.list_tags(project_id))
        log.info("Exported %d tag(s) from %s to %s", count, project_id, dest)
        return f"Exported {count} tag(s) as {target.value} {fmt} to: {dest}"
    except Exception as e:
        return f"Error: {e}"


# ===================================================================
# 3. Addresses and structured text
# ===================================================================

@mcp.tool()
def validate_address(address: str, vendor: str) -> str:
    """Check an address against a vendor's grammar.

    Args:
        address: e.g. ``N7:0``, ``DB1.DBX0.1``, ``%IX0.0``.
        vendor: rockwell, siemens or beckhoff.

    Returns:
        JSON with ``valid`` and the derived ``tagType``.
    """
    try:
        target = Vendor.parse(vendor)
        return json.dumps({
            "address": address,
            "vendor": target.value,
            "valid": _addresses.validate_address(address, target),
            "symbolic": _addresses.is_symbolic(address),
            "tagType": _addresses.derive_tag_type(address, target).value,
        }, indent=2)
    except Exception as e:
        return f"Error: {e}"


@mcp.tool()
def sync_structured_text(project_id: str, st_code: str) -> str:
    """Parse ST declarations and upsert them into a project by name.

    Existing tags with the same name are updated in place; new names are
    created.  Declarations with invalid names or addresses are skipped.

    Args:
        project_id: Target project.
        st_code: Structured text containing ``VAR ... END_VAR`` blocks.

    Returns:
        JSON listing created, updated, unchanged and skipped tag names.
    """
    try:
        target = _project_vendor(project_id)
        parsed = parse_st_variables(st_code, target.value)
        result = reconcile_tags(_store, _directory, project_id, OPERATOR_USER, parsed, target)
        payload = result.to_dict()
        payload["parsedCount"] = len(parsed)
        return json.dumps(payload, indent=2)
    except Exception as e:
        return f"Error: {e}"


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Run the MCP server on stdio transport."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
