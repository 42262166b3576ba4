"""
Exception hierarchy for the tag exchange engine.

Every error raised deliberately by this package derives from
:class:`TagExchangeError`.  Where a built-in exception already describes
the failure (bad argument, permission), the custom class inherits from it
too so that callers catching ``ValueError`` or ``PermissionError`` keep
working.
"""

from __future__ import annotations

from typing import List, Optional


class TagExchangeError(Exception):
    """Base class for all tag exchange errors."""


class ValidationError(TagExchangeError, ValueError):
    """A single tag or row failed validation.

    Attributes:
        errors: One message per failed check.  A row may accumulate several.
    """

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Validation failed")


class ParseError(TagExchangeError, ValueError):
    """The vendor file could not be read as a whole (bad XML, no rows...)."""


class TagStoreError(TagExchangeError):
    """Generic persistence failure."""


class DuplicateTagName(TagStoreError):
    """A tag with the same name already exists in the project."""

    def __init__(self, project_id, name: str):
        self.project_id = project_id
        self.name = name
        super().__init__(
            f"Duplicate tag name '{name}' in project {project_id}"
        )


class AccessDenied(TagExchangeError, PermissionError):
    """The requesting user does not own the project."""

    def __init__(self, user_id, project_id, message: Optional[str] = None):
        self.user_id = user_id
        self.project_id = project_id
        super().__init__(
            message or f"Project {project_id} not found for user {user_id}"
        )


class ProtocolError(TagExchangeError, ValueError):
    """A sync protocol message was malformed or of an unknown type."""
