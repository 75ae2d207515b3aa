# src/autocoding/integrations/__init__.py
"""
Tool and execution connectors for the AutoCoding orchestrator.
"""

from autocoding.integrations.connectors import (
    ToolConnector,
    ExecutionConnector,
    create_connectors
)

__all__ = [
    'ToolConnector',
    'ExecutionConnector',
    'create_connectors'
]
