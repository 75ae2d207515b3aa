# src/autocoding/core/__init__.py
"""
Core modules for the AutoCoding orchestrator.
"""

from autocoding.core.task_analyzer import TaskAnalyzer
from autocoding.core.template_manager import TemplateManager
from autocoding.core.tool_selector import ToolSelector
from autocoding.core.token_tracker import TokenTracker
from autocoding.core.quality_analyzer import QualityAnalyzer
from autocoding.core.comparator import ImplementationComparator
from autocoding.core.metrics_collector import MetricsCollector

__all__ = [
    'TaskAnalyzer',
    'TemplateManager',
    'ToolSelector',
    'TokenTracker',
    'QualityAnalyzer',
    'ImplementationComparator',
    'MetricsCollector'
]
