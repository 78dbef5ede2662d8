"""The workflow state-machine engine.

- Definition and instance models
- Definition validation
- The transition engine with dwell-time gating
- Stores and the service that ties them together
"""

from workflow_engine.core.clock import Clock, ManualClock, SystemClock
from workflow_engine.core.errors import (
    ActionNotApplicable,
    ActionNotFoundOrDisabled,
    DefinitionNotFound,
    DefinitionValidationError,
    DuplicateIdError,
    InstanceNotFound,
    InvalidActionError,
    InvalidOrDisabledState,
    InvalidStateError,
    MinimumDwellTimeNotMet,
    NotFoundError,
    TerminalStateViolation,
    WorkflowError,
)
from workflow_engine.core.models import (
    Action,
    HistoryEntry,
    State,
    WorkflowDefinition,
    WorkflowInstance,
)
from workflow_engine.core.service import WorkflowService
from workflow_engine.core.store import InMemoryWorkflowStore, JsonFileWorkflowStore, WorkflowStore
from workflow_engine.core.transitions import start_instance, transition
from workflow_engine.core.validation import check_definition, validate_definition

__all__ = [
    "Action",
    "ActionNotApplicable",
    "ActionNotFoundOrDisabled",
    "Clock",
    "DefinitionNotFound",
    "DefinitionValidationError",
    "DuplicateIdError",
    "HistoryEntry",
    "InMemoryWorkflowStore",
    "InstanceNotFound",
    "InvalidActionError",
    "InvalidOrDisabledState",
    "InvalidStateError",
    "JsonFileWorkflowStore",
    "ManualClock",
    "MinimumDwellTimeNotMet",
    "NotFoundError",
    "State",
    "SystemClock",
    "TerminalStateViolation",
    "WorkflowDefinition",
    "WorkflowError",
    "WorkflowInstance",
    "WorkflowService",
    "WorkflowStore",
    "check_definition",
    "start_instance",
    "transition",
    "validate_definition",
]
