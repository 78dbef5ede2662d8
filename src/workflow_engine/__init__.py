"""Workflow Engine.

Finite-state workflows: validated definitions of states and actions, and
instances that move between states through guarded, time-gated actions.
"""

__version__ = "0.1.0"

from workflow_engine.core.config import EngineSettings
from workflow_engine.core.service import WorkflowService

__all__ = ["__version__", "EngineSettings", "WorkflowService"]
