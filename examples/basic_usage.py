#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the engine components directly:

* load settings from `.env`
* store a small document-review workflow
* start an instance and walk it through its actions

Pass `--memory` to keep everything in process memory instead of the JSON file.
"""

from __future__ import annotations

import argparse
from typing import Sequence

from workflow_engine.core.clock import ManualClock
from workflow_engine.core.config import EngineSettings
from workflow_engine.core.errors import WorkflowError
from workflow_engine.core.logging import configure_logging
from workflow_engine.core.models import Action, State, WorkflowDefinition
from workflow_engine.core.service import WorkflowService
from workflow_engine.core.store import InMemoryWorkflowStore


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run a document-review workflow (example).")
    parser.add_argument("--memory", action="store_true", help="Do not persist to disk")
    return parser.parse_args(argv)


def _review_workflow() -> WorkflowDefinition:
    return WorkflowDefinition(
        states=[
            State(id="draft", name="Draft", is_initial=True, enabled=True),
            State(id="review", name="In review", enabled=True),
            State(id="published", name="Published", is_final=True, enabled=True),
        ],
        actions=[
            Action(id="submit", enabled=True, from_states=["draft"], to_state="review"),
            Action(id="reject", enabled=True, from_states=["review"], to_state="draft"),
            Action(
                id="publish",
                enabled=True,
                from_states=["review"],
                to_state="published",
                min_time_in_state_seconds=30,
            ),
        ],
    )


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = EngineSettings()
    configure_logging(settings.log_level)

    clock = ManualClock()
    store = InMemoryWorkflowStore() if args.memory else settings.build_store()
    service = WorkflowService(store, clock=clock)

    definition = service.create_definition(_review_workflow())
    instance = service.start_instance(definition.id)
    print(f"Started instance {instance.id} in state {instance.current_state_id!r}")

    instance = service.execute_action(instance.id, "submit")
    try:
        service.execute_action(instance.id, "publish")
    except WorkflowError as e:
        print(f"Rejected ({e.kind}): {e.reason}")

    clock.advance(30)
    instance = service.execute_action(instance.id, "publish")
    print(f"Instance {instance.id} is now {instance.current_state_id!r}")
    for entry in instance.history:
        print(f"  {entry.timestamp.isoformat()}  {entry.action_id}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
