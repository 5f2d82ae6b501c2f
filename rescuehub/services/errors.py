"""Domain errors raised by the store, guard and lifecycle engine.

Each carries the HTTP status it maps to; the app-level exception handler in
main.py renders them as ``{"error": message}``.
"""

from __future__ import annotations


class RescueError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(RescueError):
    """Missing or malformed input."""

    status_code = 400


class ForbiddenError(RescueError):
    """Caller lacks the role or ownership the action needs."""

    status_code = 403


class NotFoundError(RescueError):
    status_code = 404


class InvalidStateError(RescueError):
    """Caller may act on this request, but not from its current status."""

    status_code = 409


class ConflictError(RescueError):
    """A conditional update matched no row: someone else changed it first."""

    status_code = 409
