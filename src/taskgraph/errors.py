# src/taskgraph/errors.py

"""
Error taxonomy shared by the gateway, the entity store and the console.

- BackendConnectionError: backend unreachable, credentials rejected, or no session.
- NotFoundError: an operation referenced an id that does not exist.
- BackendError: anything else the backend reports (bad query, constraint, ...).

Input validation problems are plain ValueError.
"""

from __future__ import annotations


class TaskGraphError(Exception):
    """Base class for errors raised by taskgraph."""


class BackendConnectionError(TaskGraphError, ConnectionError):
    """Subclasses the builtin ConnectionError as well."""


class NotFoundError(TaskGraphError):
    def __init__(self, kind: str, ident: str) -> None:
        super().__init__(f"{kind} not found: {ident}")
        self.kind = kind
        self.ident = ident


class BackendError(TaskGraphError):
    pass
