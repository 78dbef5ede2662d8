"""Errors raised by the workflow engine.

Every error carries a stable `kind` (used by the HTTP adapter and CLI) and a
human-readable `reason`.
"""

from __future__ import annotations


class WorkflowError(Exception):
    kind = "WorkflowError"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class DefinitionValidationError(WorkflowError, ValueError):
    kind = "ValidationError"


class DuplicateIdError(WorkflowError):
    kind = "DuplicateId"


class NotFoundError(WorkflowError):
    kind = "NotFound"


class DefinitionNotFound(NotFoundError):
    kind = "DefinitionNotFound"

    def __init__(self, reason: str = "Workflow definition not found.") -> None:
        super().__init__(reason)


class InstanceNotFound(NotFoundError):
    kind = "InstanceNotFound"

    def __init__(self, reason: str = "Workflow instance not found.") -> None:
        super().__init__(reason)


class InvalidStateError(WorkflowError):
    kind = "InvalidState"


class InvalidOrDisabledState(InvalidStateError):
    kind = "InvalidOrDisabledState"

    def __init__(self, reason: str = "Current state is invalid or disabled.") -> None:
        super().__init__(reason)


class TerminalStateViolation(InvalidStateError):
    kind = "TerminalStateViolation"

    def __init__(self, reason: str = "Cannot execute actions on a final state.") -> None:
        super().__init__(reason)


class InvalidActionError(WorkflowError):
    kind = "InvalidAction"


class ActionNotFoundOrDisabled(InvalidActionError):
    kind = "ActionNotFoundOrDisabled"

    def __init__(self, reason: str = "Action not found or disabled.") -> None:
        super().__init__(reason)


class ActionNotApplicable(InvalidActionError):
    kind = "ActionNotApplicable"

    def __init__(self, reason: str = "Action not valid from current state.") -> None:
        super().__init__(reason)


class MinimumDwellTimeNotMet(WorkflowError):
    """The instance has not stayed in its current state long enough."""

    kind = "DwellTimeViolation"

    def __init__(self, *, state_name: str, required_seconds: int) -> None:
        super().__init__(f"Must remain in {state_name} for at least {required_seconds} seconds.")
        self.state_name = state_name
        self.required_seconds = required_seconds
