"""CLI entrypoint for the workflow engine.

Every command works against the configured store (see `EngineSettings`) and
prints JSON on stdout.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from pydantic import BaseModel, ValidationError

from workflow_engine import __version__
from workflow_engine.core.config import EngineSettings
from workflow_engine.core.errors import InstanceNotFound, WorkflowError
from workflow_engine.core.logging import configure_logging
from workflow_engine.core.models import WorkflowDefinition
from workflow_engine.core.service import WorkflowService
from workflow_engine.core.validation import check_definition

logger = logging.getLogger(__name__)


def _print_json(value: BaseModel | list[BaseModel] | dict[str, object]) -> None:
    if isinstance(value, BaseModel):
        payload: object = value.model_dump(mode="json", by_alias=True)
    elif isinstance(value, list):
        payload = [item.model_dump(mode="json", by_alias=True) for item in value]
    else:
        payload = value
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def _read_definition(path: Path) -> WorkflowDefinition:
    return WorkflowDefinition.model_validate_json(path.read_text(encoding="utf-8"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workflow-engine",
        description="Define and run finite-state workflows",
    )
    parser.add_argument("--version", action="version", version=f"workflow-engine {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    validate = subparsers.add_parser("validate", help="Check a definition file without storing it")
    validate.add_argument("--file", type=Path, required=True, help="Definition JSON file")

    create = subparsers.add_parser("create-definition", help="Validate and store a definition")
    create.add_argument("--file", type=Path, required=True, help="Definition JSON file")

    subparsers.add_parser("list-definitions", help="List stored definitions")

    start = subparsers.add_parser("start-instance", help="Start an instance of a definition")
    start.add_argument("--definition-id", required=True, help="Definition to instantiate")

    execute = subparsers.add_parser("execute-action", help="Execute an action on an instance")
    execute.add_argument("--instance-id", required=True, help="Instance to act on")
    execute.add_argument("--action-id", required=True, help="Action to execute")

    show = subparsers.add_parser("show-instance", help="Show a single instance")
    show.add_argument("--instance-id", required=True, help="Instance to show")

    subparsers.add_parser("list-instances", help="List stored instances")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = EngineSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level, stream=sys.stderr)

    try:
        if args.command == "validate":
            reason = check_definition(_read_definition(args.file))
            if reason is not None:
                print(reason, file=sys.stderr)
                return 3
            _print_json({"valid": True})
            return 0

        service = WorkflowService(settings.build_store())

        if args.command == "create-definition":
            definition = service.create_definition(_read_definition(args.file))
            _print_json(definition)
            return 0

        if args.command == "list-definitions":
            _print_json(service.list_definitions())
            return 0

        if args.command == "start-instance":
            _print_json(service.start_instance(args.definition_id))
            return 0

        if args.command == "execute-action":
            _print_json(service.execute_action(args.instance_id, args.action_id))
            return 0

        if args.command == "show-instance":
            instance = service.get_instance(args.instance_id)
            if instance is None:
                raise InstanceNotFound()
            _print_json(instance)
            return 0

        if args.command == "list-instances":
            _print_json(service.list_instances())
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except WorkflowError as e:
        logger.warning(e.reason, extra={"kind": e.kind, "command": args.command})
        print(e.reason, file=sys.stderr)
        return 3

    except ValidationError as e:
        print("Invalid definition file:", file=sys.stderr)
        print(e, file=sys.stderr)
        return 3

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
