"""Service-level exceptions shared by the roster, assignment, course and
report services.  The API layer maps each one to an HTTP status."""

from __future__ import annotations


class ValidationError(ValueError):
    """A required field is missing or malformed; nothing was attempted."""


class NotFoundError(LookupError):
    """The user, class, course or topic a mutation targets does not exist."""


class ConflictError(Exception):
    """The mutation would duplicate something that must be unique."""


class PermissionDeniedError(Exception):
    """The caller is authenticated but does not own the target."""
