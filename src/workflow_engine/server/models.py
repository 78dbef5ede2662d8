"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel


class ApiError(BaseModel):
    detail: str
    kind: str


class Health(BaseModel):
    status: str
