"""FastAPI app factory.

Endpoints are intentionally thin wrappers over `WorkflowService`. Engine errors
are mapped to HTTP status codes in one exception handler.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from workflow_engine import __version__
from workflow_engine.core.errors import (
    DefinitionNotFound,
    DuplicateIdError,
    InstanceNotFound,
    NotFoundError,
    WorkflowError,
)
from workflow_engine.core.models import WorkflowDefinition, WorkflowInstance
from workflow_engine.core.service import WorkflowService
from workflow_engine.server.config import ServerSettings
from workflow_engine.server.models import ApiError, Health

logger = logging.getLogger(__name__)


def _status_for(error: WorkflowError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, DuplicateIdError):
        return 409
    # Validation failures and every rejected guard are caller errors.
    return 400


def create_app(
    service: WorkflowService | None = None, settings: ServerSettings | None = None
) -> FastAPI:
    settings = settings or ServerSettings()
    service = service or WorkflowService(settings.build_store())

    app = FastAPI(
        title="Workflow Engine",
        version=__version__,
        description="REST API for defining workflows and executing actions on instances.",
    )

    app.state.settings = settings
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(_request: Request, exc: WorkflowError) -> JSONResponse:
        body = ApiError(detail=exc.reason, kind=exc.kind)
        return JSONResponse(status_code=_status_for(exc), content=body.model_dump())

    @app.get("/health", response_model=Health)
    def health() -> Health:
        return Health(status="ok")

    @app.post(
        "/workflows",
        response_model=WorkflowDefinition,
        status_code=201,
        responses={400: {"model": ApiError}, 409: {"model": ApiError}},
    )
    def create_definition(definition: WorkflowDefinition, response: Response) -> WorkflowDefinition:
        created = service.create_definition(definition)
        response.headers["Location"] = f"/workflows/{created.id}"
        return created

    @app.get("/workflows", response_model=list[WorkflowDefinition])
    def list_definitions() -> list[WorkflowDefinition]:
        return service.list_definitions()

    @app.get("/workflows/{definition_id}", response_model=WorkflowDefinition)
    def get_definition(definition_id: str) -> WorkflowDefinition:
        definition = service.get_definition(definition_id)
        if definition is None:
            raise DefinitionNotFound()
        return definition

    @app.post(
        "/instances",
        response_model=WorkflowInstance,
        status_code=201,
        responses={400: {"model": ApiError}, 404: {"model": ApiError}},
    )
    def start_instance(
        response: Response, definition_id: str = Query(alias="definitionId")
    ) -> WorkflowInstance:
        instance = service.start_instance(definition_id)
        response.headers["Location"] = f"/instances/{instance.id}"
        return instance

    @app.get("/instances", response_model=list[WorkflowInstance])
    def list_instances() -> list[WorkflowInstance]:
        return service.list_instances()

    @app.get("/instances/{instance_id}", response_model=WorkflowInstance)
    def get_instance(instance_id: str) -> WorkflowInstance:
        instance = service.get_instance(instance_id)
        if instance is None:
            raise InstanceNotFound()
        return instance

    @app.post(
        "/instances/{instance_id}/actions",
        response_model=WorkflowInstance,
        responses={400: {"model": ApiError}, 404: {"model": ApiError}},
    )
    def execute_action(
        instance_id: str, action_id: str = Query(alias="actionId")
    ) -> WorkflowInstance:
        return service.execute_action(instance_id, action_id)

    logger.info(
        "Workflow API ready",
        extra={"store": type(service.store).__name__},
    )
    return app

