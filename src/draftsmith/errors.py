"""Exception types raised by draftsmith and its collaborators."""

from __future__ import annotations


class DraftsmithError(Exception):
    """Base class for all draftsmith errors."""


class PlanningError(DraftsmithError):
    """Raised when a plan cannot be produced (unknown skill, bad context, transport)."""


class PlanNotFoundError(DraftsmithError):
    """Raised when an executor is asked to run a plan it does not know."""

    def __init__(self, plan_id: str) -> None:
        super().__init__(f"Plan {plan_id} not found; it may have expired")
        self.plan_id = plan_id


class ExecutionError(DraftsmithError):
    """Raised when a generation request fails to start or stream."""


class DocumentNotFoundError(DraftsmithError):
    """Raised when reading a document that does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Document not found: {path}")
        self.path = path


class DocumentWriteError(DraftsmithError):
    """Raised when a document cannot be persisted."""


class DirectiveError(DraftsmithError):
    """Raised when an apply directive cannot be executed."""
