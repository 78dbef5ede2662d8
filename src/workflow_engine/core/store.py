"""Stores for workflow definitions and instances.

The engine only needs the small `WorkflowStore` surface. Two implementations
ship here: a process-local in-memory store and a JSON-file backed store that
keeps everything in memory and rewrites the file on `persist()`.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from .errors import DuplicateIdError, InstanceNotFound
from .models import WorkflowDefinition, WorkflowInstance

logger = logging.getLogger(__name__)


class WorkflowStore(Protocol):
    def get_definition(self, definition_id: str) -> WorkflowDefinition | None: ...

    def list_definitions(self) -> list[WorkflowDefinition]: ...

    def add_definition(self, definition: WorkflowDefinition) -> None: ...

    def get_instance(self, instance_id: str) -> WorkflowInstance | None: ...

    def list_instances(self) -> list[WorkflowInstance]: ...

    def add_instance(self, instance: WorkflowInstance) -> None: ...

    def save_instance(self, instance: WorkflowInstance) -> None: ...

    def persist(self) -> None: ...


class InMemoryWorkflowStore:
    """Key-indexed, insertion-ordered maps guarded by a single structural lock.

    The lock only protects the maps themselves; serialising the
    read-check-write sequence on one instance is the service's job.
    """

    def __init__(
        self,
        definitions: list[WorkflowDefinition] | None = None,
        instances: list[WorkflowInstance] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._definitions: dict[str, WorkflowDefinition] = {d.id: d for d in definitions or []}
        self._instances: dict[str, WorkflowInstance] = {i.id: i for i in instances or []}

    def get_definition(self, definition_id: str) -> WorkflowDefinition | None:
        with self._lock:
            return self._definitions.get(definition_id)

    def list_definitions(self) -> list[WorkflowDefinition]:
        with self._lock:
            return list(self._definitions.values())

    def add_definition(self, definition: WorkflowDefinition) -> None:
        with self._lock:
            if definition.id in self._definitions:
                raise DuplicateIdError(f"Workflow definition {definition.id!r} already exists.")
            self._definitions[definition.id] = definition

    def get_instance(self, instance_id: str) -> WorkflowInstance | None:
        with self._lock:
            return self._instances.get(instance_id)

    def list_instances(self) -> list[WorkflowInstance]:
        with self._lock:
            return list(self._instances.values())

    def add_instance(self, instance: WorkflowInstance) -> None:
        with self._lock:
            if instance.id in self._instances:
                raise DuplicateIdError(f"Workflow instance {instance.id!r} already exists.")
            self._instances[instance.id] = instance

    def save_instance(self, instance: WorkflowInstance) -> None:
        with self._lock:
            if instance.id not in self._instances:
                raise InstanceNotFound()
            self._instances[instance.id] = instance

    def persist(self) -> None:
        return None

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        """Serialisable view of the store, in insertion order."""

        with self._lock:
            return {
                "definitions": [
                    d.model_dump(mode="json", by_alias=True) for d in self._definitions.values()
                ],
                "instances": [
                    i.model_dump(mode="json", by_alias=True) for i in self._instances.values()
                ],
            }


class JsonFileWorkflowStore(InMemoryWorkflowStore):
    """JSON-file backed store.

    The file has the shape `{"definitions": [...], "instances": [...]}` using the
    camelCase field names. Files written by the earlier service, which used
    PascalCase keys (`Definitions`, `IsInitial`, `CurrentStateId`, ...), load
    too and are rewritten in camelCase on the next `persist()`.

    A non-empty file that cannot be read is moved aside before the store starts
    empty, so a later `persist()` never overwrites it.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._write_lock = threading.Lock()
        definitions, instances = self._load()
        super().__init__(definitions=definitions, instances=instances)
        logger.info(
            "Workflow store loaded",
            extra={
                "path": str(path),
                "definitions": len(definitions),
                "instances": len(instances),
            },
        )

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> tuple[list[WorkflowDefinition], list[WorkflowInstance]]:
        if not self._path.exists():
            return [], []

        text = self._path.read_text(encoding="utf-8")
        if not text.strip():
            return [], []

        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            self._set_aside("Workflow state file is not valid JSON")
            return [], []

        if raw is None:
            return [], []

        if not isinstance(raw, dict):
            self._set_aside("Workflow state file has unexpected shape")
            return [], []

        raw = _camel_case_keys(raw)
        if raw and "definitions" not in raw and "instances" not in raw:
            self._set_aside("Workflow state file has no definitions or instances")
            return [], []

        loaded_at = datetime.now(tz=UTC)
        definitions = [
            WorkflowDefinition.model_validate(item)
            for item in _dict_items(raw.get("definitions"))
        ]
        instances = [
            WorkflowInstance.model_validate(_upgrade_instance_record(item, loaded_at=loaded_at))
            for item in _dict_items(raw.get("instances"))
        ]
        return definitions, instances

    def _set_aside(self, problem: str) -> None:
        stamp = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%S%fZ")
        target = self._path.with_name(f"{self._path.name}.unreadable-{stamp}")
        self._path.replace(target)
        logger.warning(
            "%s; moved it aside and starting empty",
            problem,
            extra={"path": str(self._path), "moved_to": str(target)},
        )

    def persist(self) -> None:
        # Snapshot under the write lock so an older snapshot never lands last.
        with self._write_lock:
            payload = self.snapshot()
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            tmp.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
            )
            tmp.replace(self._path)


_TIMESTAMP_KEYS = frozenset({"timestamp", "createdAt", "stateEnteredAt"})
# .NET writes seven fractional digits; Python datetimes hold six.
_EXTRA_FRACTION_DIGITS = re.compile(r"(\.\d{6})\d+")


def _camel_case_keys(value: Any) -> Any:
    """Lower the first letter of every key, recursively.

    camelCase keys pass through unchanged; PascalCase keys become camelCase.
    """

    if isinstance(value, list):
        return [_camel_case_keys(item) for item in value]
    if not isinstance(value, dict):
        return value

    result: dict[str, Any] = {}
    for key, item in value.items():
        name = key[:1].lower() + key[1:] if isinstance(key, str) else key
        if name in _TIMESTAMP_KEYS and isinstance(item, str):
            item = _EXTRA_FRACTION_DIGITS.sub(r"\1", item, count=1)
        result[name] = _camel_case_keys(item)
    return result


def _dict_items(value: object) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _upgrade_instance_record(item: dict[str, Any], *, loaded_at: datetime) -> dict[str, Any]:
    """Fill in fields that older state files did not persist.

    Files written before the entry time lived on the instance have no
    `stateEnteredAt`. The best available baseline is the last history entry,
    then the creation time; only when neither exists do we fall back to the load
    time, which restarts that instance's dwell timer.
    """

    record = dict(item)
    history = [h for h in record.get("history") or [] if isinstance(h, dict)]
    first = history[0].get("timestamp") if history else None
    last = history[-1].get("timestamp") if history else None

    created = record.get("createdAt") or record.get("created_at") or first
    entered = record.get("stateEnteredAt") or record.get("state_entered_at") or last or created
    if entered is None:
        logger.warning(
            "Instance has no recorded state entry time; dwell timer restarts now",
            extra={"instance_id": record.get("id")},
        )
        entered = loaded_at.isoformat()

    record["createdAt"] = created or entered
    record["stateEnteredAt"] = entered
    record.pop("created_at", None)
    record.pop("state_entered_at", None)
    return record
