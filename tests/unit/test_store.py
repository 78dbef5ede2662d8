"""Unit tests for the workflow stores and JSON persistence."""

from __future__ import annotations

import json
import threading
from datetime import timedelta
from pathlib import Path
from typing import Any

import pytest
from conftest import T0

from workflow_engine.core.clock import ManualClock
from workflow_engine.core.errors import DuplicateIdError, InstanceNotFound, MinimumDwellTimeNotMet
from workflow_engine.core.models import WorkflowDefinition, WorkflowInstance
from workflow_engine.core.service import WorkflowService
from workflow_engine.core.store import InMemoryWorkflowStore, JsonFileWorkflowStore


def _instance(instance_id: str = "i-1") -> WorkflowInstance:
    return WorkflowInstance(
        id=instance_id,
        workflow_definition_id="abc",
        current_state_id="A",
        state_entered_at=T0,
        created_at=T0,
    )


def test_in_memory_store_rejects_duplicates(abc_definition: WorkflowDefinition) -> None:
    store = InMemoryWorkflowStore()
    store.add_definition(abc_definition)
    store.add_instance(_instance())

    with pytest.raises(DuplicateIdError):
        store.add_definition(abc_definition)
    with pytest.raises(DuplicateIdError):
        store.add_instance(_instance())


def test_save_instance_requires_existing_instance() -> None:
    store = InMemoryWorkflowStore()
    with pytest.raises(InstanceNotFound):
        store.save_instance(_instance())


def test_json_store_missing_file_is_empty(tmp_path: Path) -> None:
    store = JsonFileWorkflowStore(tmp_path / "state" / "workflows.json")
    assert store.list_definitions() == []
    assert store.list_instances() == []


def test_json_store_empty_file_is_empty(tmp_path: Path) -> None:
    path = tmp_path / "workflows.json"
    path.write_text("", encoding="utf-8")
    assert JsonFileWorkflowStore(path).list_definitions() == []
    assert path.exists()


@pytest.mark.parametrize(
    "content",
    ["{not json", "[1, 2, 3]\n", '{"workflows": [{"id": "abc"}]}'],
    ids=["invalid-json", "not-an-object", "unknown-keys"],
)
def test_unreadable_file_is_moved_aside_not_overwritten(
    tmp_path: Path, clock: ManualClock, abc_definition: WorkflowDefinition, content: str
) -> None:
    path = tmp_path / "workflows.json"
    path.write_text(content, encoding="utf-8")

    store = JsonFileWorkflowStore(path)
    assert store.list_definitions() == []
    assert store.list_instances() == []

    WorkflowService(store, clock=clock).create_definition(abc_definition)

    kept = list(tmp_path.glob("workflows.json.unreadable-*"))
    assert len(kept) == 1
    assert kept[0].read_text(encoding="utf-8") == content
    assert [d["id"] for d in json.loads(path.read_text(encoding="utf-8"))["definitions"]] == [
        "abc"
    ]


def test_json_store_roundtrip_preserves_every_field_and_order(
    tmp_path: Path, clock: ManualClock, abc_definition: WorkflowDefinition
) -> None:
    path = tmp_path / "state" / "workflows.json"
    service = WorkflowService(JsonFileWorkflowStore(path), clock=clock)
    service.create_definition(abc_definition)
    instance = service.start_instance("abc")
    clock.advance(1.5)
    service.execute_action(instance.id, "go1")

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert [s["id"] for s in raw["definitions"][0]["states"]] == ["A", "B", "C"]
    assert raw["definitions"][0]["states"][0]["isInitial"] is True
    assert raw["definitions"][0]["actions"][1]["minTimeInStateSeconds"] == 2
    assert raw["instances"][0]["currentStateId"] == "B"
    assert raw["instances"][0]["history"][0]["actionId"] == "go1"

    reloaded = JsonFileWorkflowStore(path)
    assert reloaded.list_definitions() == [abc_definition]
    assert reloaded.list_instances() == service.list_instances()


def test_reload_keeps_dwell_timer(
    tmp_path: Path, clock: ManualClock, abc_definition: WorkflowDefinition
) -> None:
    path = tmp_path / "workflows.json"
    first = WorkflowService(JsonFileWorkflowStore(path), clock=clock)
    first.create_definition(abc_definition)
    instance = first.start_instance("abc")
    first.execute_action(instance.id, "go1")

    # A restarted process must not reset the time already spent in B.
    clock.advance(1)
    second = WorkflowService(JsonFileWorkflowStore(path), clock=clock)
    with pytest.raises(MinimumDwellTimeNotMet):
        second.execute_action(instance.id, "go2")

    clock.advance(1)
    assert second.execute_action(instance.id, "go2").current_state_id == "C"


def test_legacy_instance_uses_last_history_entry_as_entry_time(tmp_path: Path) -> None:
    path = tmp_path / "workflows.json"
    entered = T0 + timedelta(minutes=5)
    path.write_text(
        json.dumps(
            {
                "definitions": [],
                "instances": [
                    {
                        "id": "legacy",
                        "workflowDefinitionId": "abc",
                        "currentStateId": "B",
                        "history": [
                            {"actionId": "start", "timestamp": T0.isoformat()},
                            {"actionId": "go1", "timestamp": entered.isoformat()},
                        ],
                    }
                ],
            }
        ),
        encoding="utf-8",
    )

    instance = JsonFileWorkflowStore(path).get_instance("legacy")

    assert instance is not None
    assert instance.state_entered_at == entered
    assert instance.created_at == T0
    assert [h.action_id for h in instance.history] == ["start", "go1"]


def test_legacy_instance_without_history_falls_back_to_load_time(tmp_path: Path) -> None:
    path = tmp_path / "workflows.json"
    path.write_text(
        json.dumps(
            {
                "instances": [
                    {"id": "bare", "workflowDefinitionId": "abc", "currentStateId": "A"}
                ]
            }
        ),
        encoding="utf-8",
    )

    instance = JsonFileWorkflowStore(path).get_instance("bare")

    assert instance is not None
    assert instance.state_entered_at == instance.created_at
    assert instance.state_entered_at > T0


def _pascal_state(state_id: str, name: str, **flags: bool) -> dict[str, Any]:
    return {
        "Id": state_id,
        "Name": name,
        "IsInitial": flags.get("initial", False),
        "IsFinal": flags.get("final", False),
        "Enabled": True,
        "Description": "",
    }


def _pascal_action(action_id: str, source: str, target: str, dwell: int = 0) -> dict[str, Any]:
    return {
        "Id": action_id,
        "Name": action_id,
        "Enabled": True,
        "FromStates": [source],
        "ToState": target,
        "MinTimeInStateSeconds": dwell,
    }


# The layout the earlier service wrote: PascalCase keys, seven fractional digits.
_PASCAL_CASE_STATE = {
    "Definitions": [
        {
            "Id": "abc",
            "States": [
                _pascal_state("A", "Start", initial=True),
                {**_pascal_state("B", "Middle"), "Description": "waits"},
                _pascal_state("C", "End", final=True),
            ],
            "Actions": [_pascal_action("go1", "A", "B"), _pascal_action("go2", "B", "C", 2)],
        }
    ],
    "Instances": [
        {
            "Id": "legacy",
            "WorkflowDefinitionId": "abc",
            "CurrentStateId": "B",
            "History": [{"ActionId": "go1", "Timestamp": "2025-01-01T11:59:59.1234567Z"}],
        }
    ],
}


def test_loads_pascal_case_file_from_earlier_service(
    tmp_path: Path, clock: ManualClock
) -> None:
    path = tmp_path / "workflows.json"
    path.write_text(json.dumps(_PASCAL_CASE_STATE, indent=2), encoding="utf-8")

    store = JsonFileWorkflowStore(path)

    definition = store.get_definition("abc")
    assert definition is not None
    assert definition.initial_state() is not None
    assert definition.initial_state().id == "A"  # type: ignore[union-attr]
    assert definition.states[1].description == "waits"
    assert definition.find_action("go2").min_time_in_state_seconds == 2  # type: ignore[union-attr]

    instance = store.get_instance("legacy")
    assert instance is not None
    assert instance.current_state_id == "B"
    assert instance.state_entered_at == T0 - timedelta(microseconds=876544)
    assert [h.action_id for h in instance.history] == ["go1"]

    # The dwell timer continues from the recorded history entry.
    service = WorkflowService(store, clock=clock)
    with pytest.raises(MinimumDwellTimeNotMet):
        service.execute_action("legacy", "go2")
    clock.advance(2)
    assert service.execute_action("legacy", "go2").current_state_id == "C"

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert set(raw) == {"definitions", "instances"}
    assert raw["instances"][0]["currentStateId"] == "C"
    assert [h["actionId"] for h in raw["instances"][0]["history"]] == ["go1", "go2"]


class _SnapshotWatchingStore(JsonFileWorkflowStore):
    def __init__(self, path: Path) -> None:
        super().__init__(path)
        self.snapshots_under_write_lock: list[bool] = []

    def snapshot(self) -> dict[str, list[dict[str, Any]]]:
        self.snapshots_under_write_lock.append(self._write_lock.locked())
        return super().snapshot()


def test_persist_takes_snapshot_under_write_lock(
    tmp_path: Path, abc_definition: WorkflowDefinition
) -> None:
    store = _SnapshotWatchingStore(tmp_path / "workflows.json")
    store.add_definition(abc_definition)

    store.persist()

    assert store.snapshots_under_write_lock == [True]


def test_concurrent_persists_leave_latest_state_on_disk(
    tmp_path: Path, clock: ManualClock, abc_definition: WorkflowDefinition
) -> None:
    path = tmp_path / "workflows.json"
    service = WorkflowService(JsonFileWorkflowStore(path), clock=clock)
    service.create_definition(abc_definition)

    workers = 8
    per_worker = 10
    barrier = threading.Barrier(workers)

    def worker() -> None:
        barrier.wait()
        for _ in range(per_worker):
            service.start_instance("abc")

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    on_disk = json.loads(path.read_text(encoding="utf-8"))
    assert len(on_disk["instances"]) == workers * per_worker
    assert {i["id"] for i in on_disk["instances"]} == {i.id for i in service.list_instances()}
