"""Workflow service: the operations callers use.

Combines a store, a clock, the definition validator and the transition engine.
Requests for the same instance id are serialised with a per-instance lock so
the guard checks and the store update form one critical section; requests for
different instances run independently.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from .clock import Clock, SystemClock
from .errors import DefinitionNotFound, InstanceNotFound, WorkflowError
from .models import WorkflowDefinition, WorkflowInstance
from .store import WorkflowStore
from .transitions import start_instance, transition
from .validation import validate_definition

logger = logging.getLogger(__name__)


class WorkflowService:
    def __init__(self, store: WorkflowStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or SystemClock()
        self._locks_guard = threading.Lock()
        self._instance_locks: dict[str, threading.Lock] = {}

    @property
    def store(self) -> WorkflowStore:
        return self._store

    @property
    def clock(self) -> Clock:
        return self._clock

    def _instance_lock(self, instance_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._instance_locks.get(instance_id)
            if lock is None:
                lock = threading.Lock()
                self._instance_locks[instance_id] = lock
            return lock

    def _persist(self) -> None:
        # The in-memory change is already committed; a failed write is logged only.
        try:
            self._store.persist()
        except Exception:
            logger.exception("Failed to persist workflow state")

    # Definitions

    def create_definition(self, definition: WorkflowDefinition) -> WorkflowDefinition:
        validate_definition(definition)
        self._store.add_definition(definition)
        logger.info(
            "Workflow definition created",
            extra={
                "definition_id": definition.id,
                "states": len(definition.states),
                "actions": len(definition.actions),
            },
        )
        self._persist()
        return definition

    def get_definition(self, definition_id: str) -> WorkflowDefinition | None:
        return self._store.get_definition(definition_id)

    def list_definitions(self) -> list[WorkflowDefinition]:
        return self._store.list_definitions()

    # Instances

    def start_instance(self, definition_id: str) -> WorkflowInstance:
        definition = self._store.get_definition(definition_id)
        if definition is None:
            raise DefinitionNotFound()

        instance = start_instance(definition, now=self._clock.now())
        self._store.add_instance(instance)
        logger.info(
            "Workflow instance started",
            extra={
                "instance_id": instance.id,
                "definition_id": definition.id,
                "state_id": instance.current_state_id,
            },
        )
        self._persist()
        return instance

    def execute_action(
        self, instance_id: str, action_id: str, *, now: datetime | None = None
    ) -> WorkflowInstance:
        """Run `action_id` on the instance, or raise the first failing guard."""

        with self._instance_lock(instance_id):
            instance = self._store.get_instance(instance_id)
            if instance is None:
                raise InstanceNotFound()

            definition = self._store.get_definition(instance.workflow_definition_id)
            if definition is None:
                raise DefinitionNotFound()

            try:
                updated = transition(
                    definition=definition,
                    instance=instance,
                    action_id=action_id,
                    now=now if now is not None else self._clock.now(),
                )
            except WorkflowError as e:
                logger.info(
                    "Action rejected",
                    extra={
                        "instance_id": instance_id,
                        "action_id": action_id,
                        "state_id": instance.current_state_id,
                        "kind": e.kind,
                        "reason": e.reason,
                    },
                )
                raise

            self._store.save_instance(updated)

        logger.info(
            "Action executed",
            extra={
                "instance_id": instance_id,
                "action_id": action_id,
                "from_state": instance.current_state_id,
                "to_state": updated.current_state_id,
            },
        )
        self._persist()
        return updated

    def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        return self._store.get_instance(instance_id)

    def list_instances(self) -> list[WorkflowInstance]:
        return self._store.list_instances()
