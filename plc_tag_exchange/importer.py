"""
Import orchestration: codec -> validation -> persistence.

Two phases with different failure contracts:

    1. **Validation** is all-or-nothing.  Every row is checked; if any row
       fails, nothing is persisted and every failing row is reported with
       its 1-based index and raw content.
    2. **Saving** is best-effort.  Each candidate is inserted on its own;
       a failure (e.g. a concurrent import winning the unique-name race)
       is reported for that row and the remaining rows continue.

A structurally broken file raises :class:`~.errors.ParseError` out of
:func:`import_tags`; there are no per-row details in that case.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from .codec import get_codec
from .errors import AccessDenied, DuplicateTagName
from .models import ImportResult, RowError, Tag
from .store import ProjectDirectory, TagStore

logger = logging.getLogger(__name__)


def import_tags(
    store: TagStore,
    vendor,
    project_id: Any,
    data: bytes,
    mime_hint: Optional[str] = None,
    user_id: Any = None,
    directory: Optional[ProjectDirectory] = None,
    on_inserted: Optional[Callable[[Any], None]] = None,
) -> ImportResult:
    """Import a vendor tag file into *project_id*.

    Args:
        store: Destination tag store.
        vendor: Vendor whose codec reads *data*.
        project_id: Owning project of the new tags.
        data: Raw file bytes.
        mime_hint: MIME type or file name, used to pick the input flavour.
        user_id: Recorded as the creator of every inserted tag.
        directory: When given, ownership of *project_id* by *user_id* is
            checked before anything else.
        on_inserted: Called with *project_id* once, after the save phase,
            when at least one tag was inserted.

    Returns:
        An :class:`ImportResult`.  On validation failure ``success`` is
        ``False``, ``inserted`` is 0 and ``errors`` lists the bad rows.
        Otherwise ``success`` is ``inserted > 0`` and ``errors`` lists any
        per-row save failures.

    Raises:
        ParseError: If the file cannot be parsed.
        AccessDenied: If *directory* is given and the user does not own
            the project.
        ValueError: If *vendor* is not supported.
    """
    codec = get_codec(vendor)

    if directory is not None and not directory.user_owns_project(user_id, project_id):
        logger.warning("Import denied: user %s does not own project %s",
                       user_id, project_id)
        raise AccessDenied(user_id, project_id)

    rows = codec.parse(data, mime_hint)
    logger.info("Parsed %d %s row(s) for project %s",
                len(rows), codec.vendor.value, project_id)

    # --- Phase 1: validate every row ------------------------------------
    candidates: List[tuple] = []
    row_errors: List[RowError] = []
    for index, row in enumerate(rows, start=1):
        mapped = codec.validate_and_map(row, project_id=project_id, user_id=user_id, index=index)
        for warning in mapped.warnings:
            logger.warning("Row %d: %s", index, warning)
        if not mapped.ok:
            row_errors.append(mapped.row_error)
            continue
        candidates.append((index, row, mapped.tag))

    if row_errors:
        logger.warning("Import rejected: %d of %d row(s) invalid",
                       len(row_errors), len(rows))
        return ImportResult(
            success=False,
            inserted=0,
            processed=len(candidates),
            errors=row_errors,
        )

    # --- Phase 2: save row by row --------------------------------------
    inserted = 0
    save_errors: List[RowError] = []
    for index, row, tag in candidates:
        try:
            store.insert_tag(tag)
            inserted += 1
        except DuplicateTagName as e:
            logger.warning("Row %d: %s", index, e)
            save_errors.append(RowError(row=index, errors=['Duplicate tag name'], raw=dict(row)))
        except Exception as e:
            logger.exception("Row %d: failed to save tag %s", index, tag.name)
            save_errors.append(RowError(row=index, errors=[str(e) or type(e).__name__], raw=dict(row)))

    logger.info("Imported %d of %d tag(s) into project %s",
                inserted, len(candidates), project_id)

    if inserted > 0 and on_inserted is not None:
        on_inserted(project_id)

    return ImportResult(
        success=inserted > 0,
        inserted=inserted,
        processed=len(candidates),
        errors=save_errors or None,
    )


def export_tags(store: TagStore, vendor, project_id: Any, fmt: Optional[str] = None) -> bytes:
    """Export every tag of *project_id* through *vendor*'s codec.

    Raises:
        ValueError: If *vendor* or *fmt* is not supported.
    """
    codec = get_codec(vendor)
    tags: List[Tag] = store.list_tags(project_id)
    return codec.export(tags, fmt)


def export_filename(vendor, project_id: Any, fmt: Optional[str] = None) -> str:
    """Suggested download name, e.g. ``project_7_siemens_tags.xlsx``."""
    codec = get_codec(vendor)
    name = codec.check_format(fmt)
    return f"project_{project_id}_{codec.vendor.value}_tags.{name}"
