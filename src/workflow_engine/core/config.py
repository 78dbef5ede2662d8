"""Configuration for the workflow engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .store import InMemoryWorkflowStore, JsonFileWorkflowStore, WorkflowStore


class EngineSettings(BaseSettings):
    """Settings for the workflow engine.

    Environment variables:
    - LOG_LEVEL            (optional)
    - WORKFLOW_STATE_PATH  (optional)
    - WORKFLOW_STORE       (optional, `json` or `memory`)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `EngineSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    state_path: Path = Field(
        default=Path("workflows.json"),
        validation_alias="WORKFLOW_STATE_PATH",
        description="JSON file where definitions and instances are persisted",
    )

    store_backend: Literal["json", "memory"] = Field(
        default="json",
        validation_alias="WORKFLOW_STORE",
        description="Which store to use: a JSON file or process memory only",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    def build_store(self) -> WorkflowStore:
        if self.store_backend == "memory":
            return InMemoryWorkflowStore()
        return JsonFileWorkflowStore(self.state_path)
