# src/autocoding/__init__.py
"""
AutoCoding - task orchestration with token and quality accounting.
"""

__version__ = "0.1.0"
__author__ = "AutoCoding Team"

from autocoding.core.models import Task, TaskResult
from autocoding.core.orchestrator import (
    AutoCodingOrchestrator,
    AutoCodingOrchestratorSync,
    create_orchestrator,
    create_sync_orchestrator
)

__all__ = [
    'Task',
    'TaskResult',
    'AutoCodingOrchestrator',
    'AutoCodingOrchestratorSync',
    'create_orchestrator',
    'create_sync_orchestrator'
]
