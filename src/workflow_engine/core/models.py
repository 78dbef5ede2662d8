"""Workflow definition and instance models.

Python attributes are snake_case; the serialised form uses camelCase
(`isInitial`, `fromStates`, `currentStateId`, ...). Both spellings are accepted
on input.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _new_id() -> str:
    return str(uuid.uuid4())


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class _WorkflowModel(BaseModel):
    # Frozen with tuple collections: stored snapshots cannot be edited in place.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class State(_WorkflowModel):
    id: str = ""
    name: str = ""
    is_initial: bool = False
    is_final: bool = False
    enabled: bool = False
    description: str = ""


class Action(_WorkflowModel):
    """An edge from any of `from_states` to `to_state`."""

    id: str = ""
    name: str = ""
    enabled: bool = False
    from_states: tuple[str, ...] = ()
    to_state: str = ""
    min_time_in_state_seconds: int = Field(
        default=0,
        ge=0,
        description="Minimum time the instance must spend in its current state (0 = no limit)",
    )


class WorkflowDefinition(_WorkflowModel):
    id: str = Field(default_factory=_new_id)
    states: tuple[State, ...] = ()
    actions: tuple[Action, ...] = ()

    def find_state(self, state_id: str) -> State | None:
        for state in self.states:
            if state.id == state_id:
                return state
        return None

    def find_action(self, action_id: str) -> Action | None:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def initial_state(self) -> State | None:
        for state in self.states:
            if state.is_initial:
                return state
        return None


class HistoryEntry(_WorkflowModel):
    action_id: str
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class WorkflowInstance(_WorkflowModel):
    """One running execution of a workflow definition.

    `state_entered_at` is the dwell-time baseline. It only ever changes together
    with `current_state_id`.
    """

    id: str = Field(default_factory=_new_id)
    workflow_definition_id: str
    current_state_id: str
    state_entered_at: datetime
    created_at: datetime
    history: tuple[HistoryEntry, ...] = ()

    @field_validator("state_entered_at", "created_at")
    @classmethod
    def _timestamps_utc(cls, value: datetime) -> datetime:
        return as_utc(value)
