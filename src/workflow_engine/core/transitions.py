"""The workflow transition engine.

`transition` never mutates its input: it either raises a `WorkflowError` or
returns the next instance snapshot. Callers swap the stored instance for the
returned one, so a rejected action cannot leave partial changes behind.
"""

from __future__ import annotations

from datetime import datetime

from .errors import (
    ActionNotApplicable,
    ActionNotFoundOrDisabled,
    DefinitionValidationError,
    InvalidOrDisabledState,
    MinimumDwellTimeNotMet,
    TerminalStateViolation,
)
from .models import HistoryEntry, WorkflowDefinition, WorkflowInstance, as_utc
from .validation import validate_definition


def start_instance(
    definition: WorkflowDefinition, *, now: datetime, instance_id: str | None = None
) -> WorkflowInstance:
    """Bind a new instance to the definition's initial state."""

    validate_definition(definition)
    initial = definition.initial_state()
    if initial is None:
        raise DefinitionValidationError("Workflow must have exactly one initial state.")

    fields: dict[str, object] = {
        "workflow_definition_id": definition.id,
        "current_state_id": initial.id,
        "state_entered_at": now,
        "created_at": now,
        "history": (),
    }
    if instance_id is not None:
        fields["id"] = instance_id
    return WorkflowInstance.model_validate(fields)


def transition(
    *,
    definition: WorkflowDefinition,
    instance: WorkflowInstance,
    action_id: str,
    now: datetime,
) -> WorkflowInstance:
    current = definition.find_state(instance.current_state_id)
    if current is None or not current.enabled:
        raise InvalidOrDisabledState()

    if current.is_final:
        raise TerminalStateViolation()

    action = definition.find_action(action_id)
    if action is None or not action.enabled:
        raise ActionNotFoundOrDisabled()

    if instance.current_state_id not in action.from_states:
        raise ActionNotApplicable()

    now = as_utc(now)

    # Real-valued seconds. A zero minimum never gates, even when the clock
    # reads earlier than the recorded entry time.
    elapsed = (now - instance.state_entered_at).total_seconds()
    if action.min_time_in_state_seconds and elapsed < action.min_time_in_state_seconds:
        raise MinimumDwellTimeNotMet(
            state_name=current.name, required_seconds=action.min_time_in_state_seconds
        )

    return instance.model_copy(
        update={
            "current_state_id": action.to_state,
            "state_entered_at": now,
            "history": (*instance.history, HistoryEntry(action_id=action.id, timestamp=now)),
        }
    )
