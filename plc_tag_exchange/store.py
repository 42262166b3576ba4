"""
Persistence and access-check interfaces, plus in-memory implementations.

The engine never talks to a database directly.  It consumes:

    - a :class:`TagStore` -- keyed tag storage with a uniqueness
      constraint on ``(project_id, name)``;
    - a :class:`ProjectDirectory` -- project lookup and the ownership
      check ``user_owns_project(user_id, project_id)``.

:class:`InMemoryTagStore` and :class:`InMemoryProjectDirectory` are
thread-safe reference implementations used by the MCP server, the sync
server's default wiring, and the tests.  Project ids are compared by their
string form, so ``1`` and ``"1"`` name the same project.
"""

from __future__ import annotations

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import fields
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .errors import DuplicateTagName, TagStoreError
from .models import ProjectInfo, Tag, Vendor

logger = logging.getLogger(__name__)

# Fields an update may never touch.
_IMMUTABLE_FIELDS = frozenset({'id', 'project_id', 'created_at', 'updated_at'})

_TAG_FIELDS = frozenset(f.name for f in fields(Tag))


def project_key(project_id: Any) -> str:
    """Return the comparison key for a project id."""
    return str(project_id).strip()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ===================================================================
# Interfaces
# ===================================================================

class TagStore(ABC):
    """Keyed tag storage.  ``(project_id, name)`` is unique."""

    @abstractmethod
    def list_tags(self, project_id: Any) -> List[Tag]:
        """Return every tag of *project_id*, oldest first."""

    @abstractmethod
    def get_tag(self, project_id: Any, name: str) -> Optional[Tag]:
        """Return the tag called *name* (case-sensitive), or ``None``."""

    @abstractmethod
    def insert_tag(self, tag: Tag) -> Tag:
        """Persist a new tag and return it with ``id`` and timestamps set.

        Raises:
            DuplicateTagName: If the project already has a tag of that name.
        """

    @abstractmethod
    def update_tag(self, tag_id: Any, fields: Dict[str, Any]) -> Tag:
        """Apply *fields* to the tag *tag_id* and return the stored result.

        Raises:
            DuplicateTagName: If a rename collides with another tag.
            TagStoreError: If *tag_id* does not exist.
            ValueError: If *fields* names an unknown or immutable field.
        """

    @abstractmethod
    def delete_tag(self, tag_id: Any) -> bool:
        """Delete one tag.  Returns ``True`` if it existed."""

    @abstractmethod
    def delete_project_tags(self, project_id: Any) -> int:
        """Delete every tag of *project_id*.  Returns the count removed."""


class ProjectDirectory(ABC):
    """Project lookup and ownership checks.

    Callers are expected to ask on every operation; answers are never
    cached by the engine.
    """

    @abstractmethod
    def get_project(self, project_id: Any) -> Optional[ProjectInfo]:
        """Return the project record, or ``None``."""

    def user_owns_project(self, user_id: Any, project_id: Any) -> bool:
        """Return ``True`` if *project_id* exists and belongs to *user_id*."""
        if user_id is None:
            return False
        project = self.get_project(project_id)
        return project is not None and str(project.owner_id) == str(user_id)

    def get_project_vendor(self, project_id: Any) -> Optional[Vendor]:
        """Return the vendor stored on the project, or ``None``."""
        project = self.get_project(project_id)
        if project is None or not project.vendor:
            return None
        return Vendor.parse(project.vendor)


# ===================================================================
# In-memory implementations
# ===================================================================

class InMemoryTagStore(TagStore):
    """Dictionary-backed :class:`TagStore` guarded by a lock.

    ``updated_at`` only advances when an update actually changes a value.
    Returned tags are copies; mutating them does not affect the store.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tags: Dict[int, Tag] = {}
        self._ids = itertools.count(1)

    def _find(self, project_id: Any, name: str) -> Optional[Tag]:
        key = project_key(project_id)
        for tag in self._tags.values():
            if project_key(tag.project_id) == key and tag.name == name:
                return tag
        return None

    def list_tags(self, project_id: Any) -> List[Tag]:
        key = project_key(project_id)
        with self._lock:
            return [
                tag.copy()
                for _, tag in sorted(self._tags.items())
                if project_key(tag.project_id) == key
            ]

    def get_tag(self, project_id: Any, name: str) -> Optional[Tag]:
        with self._lock:
            tag = self._find(project_id, name)
            return tag.copy() if tag is not None else None

    def insert_tag(self, tag: Tag) -> Tag:
        if tag.project_id is None:
            raise TagStoreError("Cannot insert a tag without a project_id")
        if not tag.name:
            raise TagStoreError("Cannot insert a tag without a name")
        with self._lock:
            if self._find(tag.project_id, tag.name) is not None:
                raise DuplicateTagName(tag.project_id, tag.name)
            now = _utcnow()
            stored = tag.copy(id=next(self._ids), created_at=now, updated_at=now)
            self._tags[stored.id] = stored
            logger.debug("Inserted tag %s (id=%s) in project %s",
                         stored.name, stored.id, stored.project_id)
            return stored.copy()

    def update_tag(self, tag_id: Any, fields: Dict[str, Any]) -> Tag:
        bad = set(fields) & _IMMUTABLE_FIELDS
        if bad:
            raise ValueError(f"Cannot update immutable field(s): {sorted(bad)}")
        unknown = set(fields) - _TAG_FIELDS
        if unknown:
            raise ValueError(f"Unknown tag field(s): {sorted(unknown)}")

        with self._lock:
            current = self._tags.get(tag_id)
            if current is None:
                raise TagStoreError(f"Tag {tag_id} not found")

            new_name = fields.get('name', current.name)
            if new_name != current.name:
                other = self._find(current.project_id, new_name)
                if other is not None and other.id != current.id:
                    raise DuplicateTagName(current.project_id, new_name)

            changed = {
                k: v for k, v in fields.items() if getattr(current, k) != v
            }
            if not changed:
                return current.copy()

            stored = current.copy(updated_at=_utcnow(), **changed)
            self._tags[tag_id] = stored
            logger.debug("Updated tag %s (id=%s): %s",
                         stored.name, tag_id, sorted(changed))
            return stored.copy()

    def delete_tag(self, tag_id: Any) -> bool:
        with self._lock:
            return self._tags.pop(tag_id, None) is not None

    def delete_project_tags(self, project_id: Any) -> int:
        key = project_key(project_id)
        with self._lock:
            doomed = [
                tid for tid, tag in self._tags.items()
                if project_key(tag.project_id) == key
            ]
            for tid in doomed:
                del self._tags[tid]
            return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tags)


class InMemoryProjectDirectory(ProjectDirectory):
    """Dictionary-backed :class:`ProjectDirectory`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._projects: Dict[str, ProjectInfo] = {}

    def add_project(
        self,
        project_id: Any,
        owner_id: Any,
        vendor: Any = Vendor.ROCKWELL,
        name: str = '',
    ) -> ProjectInfo:
        """Register a project.

        Raises:
            ValueError: If the id is taken or *vendor* is unsupported.
        """
        key = project_key(project_id)
        info = ProjectInfo(
            id=project_id,
            owner_id=owner_id,
            vendor=Vendor.parse(vendor),
            name=name or f"Project {project_id}",
        )
        with self._lock:
            if key in self._projects:
                raise ValueError(f"Project '{project_id}' already exists")
            self._projects[key] = info
        return info

    def get_project(self, project_id: Any) -> Optional[ProjectInfo]:
        with self._lock:
            return self._projects.get(project_key(project_id))

    def list_projects(self) -> List[ProjectInfo]:
        with self._lock:
            return list(self._projects.values())
