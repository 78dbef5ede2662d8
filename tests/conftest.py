"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import UTC, datetime

import pytest

from workflow_engine.core.clock import ManualClock
from workflow_engine.core.logging import JsonFormatter
from workflow_engine.core.models import Action, State, WorkflowDefinition
from workflow_engine.core.service import WorkflowService
from workflow_engine.core.store import InMemoryWorkflowStore

T0 = datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC)


def make_state(state_id: str, **overrides: object) -> State:
    fields: dict[str, object] = {"id": state_id, "name": state_id, "enabled": True}
    fields.update(overrides)
    return State.model_validate(fields)


def make_action(
    action_id: str, from_states: list[str], to_state: str, **overrides: object
) -> Action:
    fields: dict[str, object] = {
        "id": action_id,
        "name": action_id,
        "enabled": True,
        "from_states": from_states,
        "to_state": to_state,
    }
    fields.update(overrides)
    return Action.model_validate(fields)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """Undo `configure_logging` calls made by a test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JsonFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def clock() -> ManualClock:
    """Provide a clock frozen at T0."""
    return ManualClock(T0)


@pytest.fixture
def abc_definition() -> WorkflowDefinition:
    """A(initial) -go1-> B -go2 (2s dwell)-> C(final)."""
    return WorkflowDefinition(
        id="abc",
        states=[
            make_state("A", is_initial=True),
            make_state("B"),
            make_state("C", is_final=True),
        ],
        actions=[
            make_action("go1", ["A"], "B"),
            make_action("go2", ["B"], "C", min_time_in_state_seconds=2),
        ],
    )


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture
def service(store: InMemoryWorkflowStore, clock: ManualClock) -> WorkflowService:
    """Provide a service over an in-memory store and a manual clock."""
    return WorkflowService(store, clock=clock)
