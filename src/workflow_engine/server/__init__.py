"""FastAPI server adapter for workflow-engine.

Design intent:
- Keep workflow logic in `workflow_engine.core.*`
- Keep server-specific concerns (routing, CORS, status codes) here

Run with an ASGI server, e.g. `uvicorn --factory workflow_engine.server:create_app`.
"""

from __future__ import annotations

__all__ = ["create_app"]

from workflow_engine.server.app import create_app
