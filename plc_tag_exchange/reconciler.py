"""
Upsert-by-name reconciliation of parsed declarations into a project.

Unlike file import, reconciliation is best-effort: a declaration that
cannot be formatted or saved is logged and skipped, and the rest of the
batch continues.  Access is checked once, up front; a caller who does not
own the project gets :class:`~.errors.AccessDenied` before any write.

Tags are matched purely by name.  A rename in the source therefore looks
like a new tag; the tag under the old name is left in place.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping

from .errors import AccessDenied, DuplicateTagName, TagExchangeError, ValidationError
from .formatters import RawDeclaration, format_tag_for_vendor
from .models import ReconcileResult, Tag, Vendor, plain_value
from .store import ProjectDirectory, TagStore

logger = logging.getLogger(__name__)

# Fields a sync is allowed to overwrite on an existing tag.
SYNC_FIELDS = (
    'data_type',
    'raw_data_type',
    'address',
    'default_value',
    'vendor',
    'scope',
    'description',
)


def resolve_vendor(directory: ProjectDirectory, project_id: Any, fallback=Vendor.ROCKWELL) -> Vendor:
    """Return the project's stored vendor, or *fallback* if it has none."""
    vendor = directory.get_project_vendor(project_id)
    return vendor if vendor is not None else Vendor.parse(fallback)


def _sync_changes(existing: Tag, candidate: Tag) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    for name in SYNC_FIELDS:
        new = getattr(candidate, name)
        if name == 'data_type':
            new = str(plain_value(new)).upper()
        elif name == 'scope':
            new = str(plain_value(new)).lower()
        if plain_value(getattr(existing, name)) != plain_value(new):
            changes[name] = new
    return changes


def reconcile_tags(
    store: TagStore,
    directory: ProjectDirectory,
    project_id: Any,
    user_id: Any,
    parsed: Iterable[RawDeclaration],
    vendor=None,
) -> ReconcileResult:
    """Merge *parsed* declarations into the tags of *project_id*.

    Existing tags (same name) are updated in place, keeping ``id``,
    ``created_at`` and ``is_ai_generated``.  New names are inserted with
    ``is_ai_generated=False``.

    Args:
        store: Tag persistence.
        directory: Ownership and project lookup.
        project_id: Target project.
        user_id: The requesting user; must own the project.
        parsed: Parser output, :class:`RawTagTuple` or mappings.
        vendor: Vendor used for formatting.  Defaults to the project's
            stored vendor.

    Returns:
        A :class:`ReconcileResult` naming created, updated, unchanged and
        skipped tags.

    Raises:
        AccessDenied: If *user_id* does not own *project_id*.
    """
    if not directory.user_owns_project(user_id, project_id):
        logger.warning("Reconcile denied: user %s does not own project %s",
                       user_id, project_id)
        raise AccessDenied(user_id, project_id)

    vendor = Vendor.parse(vendor) if vendor is not None else resolve_vendor(directory, project_id)
    result = ReconcileResult(project_id=project_id)
    existing: Dict[str, Tag] = {t.name: t for t in store.list_tags(project_id)}

    for raw in parsed:
        label = _label(raw)
        try:
            candidate = format_tag_for_vendor(raw, vendor, project_id=project_id, user_id=user_id)
        except ValidationError as e:
            logger.warning("Skipping declaration %s: %s", label, e)
            result.skipped.append(label)
            continue

        try:
            current = existing.get(candidate.name)
            if current is None:
                current = store.get_tag(project_id, candidate.name)
            if current is not None:
                changes = _sync_changes(current, candidate)
                if not changes:
                    result.unchanged.append(candidate.name)
                    continue
                changes['user_id'] = user_id
                existing[candidate.name] = store.update_tag(current.id, changes)
                result.updated.append(candidate.name)
            else:
                new_tag = candidate.copy(is_ai_generated=False)
                existing[candidate.name] = store.insert_tag(new_tag)
                result.created.append(candidate.name)
        except DuplicateTagName as e:
            logger.warning("Skipping %s: %s", candidate.name, e)
            result.skipped.append(candidate.name)
        except TagExchangeError as e:
            logger.error("Failed to save %s in project %s: %s",
                         candidate.name, project_id, e)
            result.skipped.append(candidate.name)
        except Exception:
            logger.exception("Unexpected store failure saving %s in project %s",
                             candidate.name, project_id)
            result.skipped.append(candidate.name)

    logger.info(
        "Reconciled project %s (%s): %d created, %d updated, %d unchanged, %d skipped",
        project_id, vendor.value, len(result.created), len(result.updated),
        len(result.unchanged), len(result.skipped),
    )
    return result


def _label(raw: RawDeclaration) -> str:
    name = raw.get('name') if isinstance(raw, Mapping) else getattr(raw, 'name', None)
    return str(name) if name else '<unnamed>'
