"""Structural checks for workflow definitions.

Checks run in a fixed order and the first failure wins. Reachability of states
and outgoing actions on final states are deliberately not checked.
"""

from __future__ import annotations

from collections import Counter

from .errors import DefinitionValidationError
from .models import WorkflowDefinition


def check_definition(definition: WorkflowDefinition) -> str | None:
    """Return the reason the definition is malformed, or None if it is valid."""

    initial_count = sum(1 for s in definition.states if s.is_initial)
    if initial_count == 0:
        return "Workflow must have exactly one initial state."
    if initial_count > 1:
        return "Workflow can have only one initial state."

    if any(not s.id for s in definition.states):
        return "All states must have a non-empty ID."
    if any(n > 1 for n in Counter(s.id for s in definition.states).values()):
        return "State IDs must be unique."

    if any(not a.id for a in definition.actions):
        return "All actions must have a non-empty ID."
    if any(n > 1 for n in Counter(a.id for a in definition.actions).values()):
        return "Action IDs must be unique."

    state_ids = {s.id for s in definition.states}
    if any(not a.to_state or a.to_state not in state_ids for a in definition.actions):
        return "All actions must have a valid ToState."
    if any(not fs or fs not in state_ids for a in definition.actions for fs in a.from_states):
        return "All FromStates in actions must be valid."

    return None


def validate_definition(definition: WorkflowDefinition) -> None:
    reason = check_definition(definition)
    if reason is not None:
        raise DefinitionValidationError(reason)
