# src/autocoding/core/orchestrator.py
"""
Orchestrator - runs a task through the whole pipeline.

validate -> track -> analyze -> select tool -> template -> implement ->
record costs -> execute -> score quality -> complete -> metrics

ASYNC by default (connectors do network I/O), sync wrapper available.
Failures after validation still return a TaskResult carrying the tokens
already spent.
"""

import asyncio
import time
from typing import Any, Dict, Iterable, List, Optional, Union
import logging

from autocoding.core.config import load_config
from autocoding.core.errors import AutoCodingError, ConfigurationError
from autocoding.core.models import Task, TaskResult, Implementation
from autocoding.core.validation import ensure_valid_task
from autocoding.core.task_analyzer import TaskAnalyzer
from autocoding.core.template_manager import TemplateManager
from autocoding.core.tool_selector import ToolSelector
from autocoding.core.token_tracker import TokenTracker
from autocoding.core.quality_analyzer import QualityAnalyzer, ScoringStrategy, get_scoring_strategy
from autocoding.core.comparator import ImplementationComparator, ComparisonResult
from autocoding.core.metrics_collector import MetricsCollector
from autocoding.integrations.connectors import (
    ToolConnector, ExecutionConnector, create_connectors
)

logger = logging.getLogger(__name__)

# Tools without templates of their own borrow this tool's set
DEFAULT_TEMPLATE_TOOL = 'claude_sonnet'

TaskInput = Union[Task, Dict[str, Any]]


class AutoCodingOrchestrator:
    """Owns the pipeline components and their per-process state."""

    def __init__(self, config: Dict[str, Any],
                 tool_connectors: Optional[Dict[str, ToolConnector]] = None,
                 execution_connector: Optional[ExecutionConnector] = None,
                 scoring_strategy: Optional[ScoringStrategy] = None):
        self.config = config
        app = config.get('app', {})

        if tool_connectors is None or execution_connector is None:
            tools, executor = create_connectors(config)
            tool_connectors = tool_connectors if tool_connectors is not None else tools
            execution_connector = execution_connector or executor
        if not tool_connectors:
            raise ConfigurationError("At least one tool connector is required")

        self.tool_connectors = tool_connectors
        self.execution_connector = execution_connector

        self.analyzer = TaskAnalyzer()
        self.template_manager = TemplateManager()
        if app.get('templates_file'):
            self.template_manager.load_templates(app['templates_file'])
        self.selector = ToolSelector()
        self.token_tracker = TokenTracker()
        self.quality_analyzer = QualityAnalyzer(
            scoring_strategy or get_scoring_strategy(app.get('scoring', 'fixed'))
        )
        self.comparator = ImplementationComparator(self.quality_analyzer)
        self.metrics = MetricsCollector()

        logger.info(f"AutoCodingOrchestrator initialized with tools: "
                    f"{', '.join(self.tool_connectors)}")

    # ============================================================================
    # PIPELINE
    # ============================================================================

    async def process_task(self, task_input: TaskInput) -> TaskResult:
        """Run one task end to end. Never raises for validation or upstream failures."""
        started = time.monotonic()

        try:
            task = self._coerce_task(task_input)
        except AutoCodingError as e:
            task_id = _task_id(task_input)
            logger.warning(f"Rejected task {task_id}: {e.message}")
            return TaskResult(task_id=task_id, success=False, error=e.to_response()['error'])

        result = TaskResult(task_id=task.id, success=False)
        tracking = False

        try:
            self.token_tracker.start_task(task.id, task.description, task.complexity)
            tracking = True

            logger.info(f"Processing task {task.id}: {task.description[:50]}")
            result.analysis = analysis = self.analyzer.analyze(task)

            result.tool_selection = selection = self.selector.select_tool(
                task, analysis, available=self.tool_connectors.keys()
            )
            if selection.selected_tool is None:
                raise ConfigurationError("No connector available for the selected tools",
                                         {'available': list(self.tool_connectors)})
            tool = selection.selected_tool

            result.template_type, result.template = self._render_template(tool, task)

            connector = self.tool_connectors[tool]
            result.implementation = implementation = await connector.implement_task(
                task, result.template
            )
            result.token_usage = dict(implementation.token_usage)

            self.token_tracker.record_direct_cost(task.id, analysis.token_budget.total)
            self.token_tracker.record_delegated_cost(
                task.id, tool,
                analysis=implementation.token_usage.get('prompt', 0),
                delegation=implementation.token_usage.get('completion', 0),
                review=0,
                time_spent=(time.monotonic() - started) / 60
            )

            result.execution = await self.execution_connector.execute_task(task, implementation)
            result.quality = quality = self.quality_analyzer.analyze_quality(implementation, task)

            self.token_tracker.complete_task(task.id, quality.overall_score)
            tracking = False
            result.efficiency = self.token_tracker.compare_efficiency(task.id)
            result.success = implementation.success and result.execution.success

            logger.info(f"Task {task.id} completed with {tool}: quality "
                        f"{quality.overall_score}/10, gain {result.efficiency['efficiency_gain']}%")

        except AutoCodingError as e:
            logger.error(f"Task {task.id} failed: {e.message}")
            result.success = False
            result.error = e.to_response()['error']
            if tracking:
                self.token_tracker.complete_task(task.id, 0.0)
                result.efficiency = self.token_tracker.compare_efficiency(task.id)

        self.metrics.record_task_metrics(
            task, result,
            baseline_tokens=result.analysis.token_budget.total if result.analysis else None,
            processing_time=time.monotonic() - started
        )
        return result

    async def process_tasks(self, tasks: Iterable[TaskInput]) -> List[TaskResult]:
        """Process tasks one after another."""
        results = []
        for task in tasks:
            results.append(await self.process_task(task))
        return results

    def _coerce_task(self, task_input: TaskInput) -> Task:
        data = task_input.to_dict() if isinstance(task_input, Task) else dict(task_input or {})
        ensure_valid_task(data)
        return task_input if isinstance(task_input, Task) else Task.from_dict(data)

    def _render_template(self, tool: str, task: Task):
        template_tool = tool if self.template_manager.get_template_types(tool) \
            else DEFAULT_TEMPLATE_TOOL

        if task.template and task.template in self.template_manager.get_template_types(template_tool):
            template_type = task.template
            filled = self.template_manager.get_template(template_tool, template_type, task)
        else:
            template_type, filled = self.template_manager.generate_template(template_tool, task)

        if filled is None:
            logger.warning(f"No template for {template_tool}; using the raw description")
            return None, task.description
        return template_type, filled

    # ============================================================================
    # COMPARISON & REPORTING
    # ============================================================================

    async def generate_implementations(self, task_input: TaskInput,
                                       tools: Optional[Iterable[str]] = None) -> List[Implementation]:
        """Ask several tools for the same task, sequentially."""
        task = self._coerce_task(task_input)
        names = list(tools) if tools is not None else list(self.tool_connectors)

        implementations = []
        for name in names:
            connector = self.tool_connectors.get(name)
            if connector is None:
                logger.warning(f"Skipping unknown tool: {name}")
                continue
            _, template = self._render_template(name, task)
            implementations.append(await connector.implement_task(task, template))
        return implementations

    async def compare_tools(self, task_input: TaskInput,
                            tools: Optional[Iterable[str]] = None) -> ComparisonResult:
        task = self._coerce_task(task_input)
        implementations = await self.generate_implementations(task, tools)
        return self.compare_implementations(implementations, task)

    def compare_implementations(self, implementations: List[Any],
                                task_input: TaskInput) -> ComparisonResult:
        task = task_input if isinstance(task_input, Task) else Task.from_dict(task_input)
        return self.comparator.compare(implementations, task)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'tokens': self.token_tracker.get_stats(),
            'metrics': self.metrics.generate_summary()
        }

    def get_visualization_data(self) -> Dict[str, Any]:
        return {
            'tokens': self.token_tracker.get_visualization_data(),
            'metrics': self.metrics.get_visualization_data()
        }

    def generate_report(self, format: str = 'json') -> str:
        return self.metrics.generate_report(format)

    # ============================================================================
    # CLEANUP
    # ============================================================================

    async def close(self):
        """Close connector clients."""
        for connector in self.tool_connectors.values():
            await connector.close()
        if self.execution_connector:
            await self.execution_connector.close()
        logger.info("AutoCodingOrchestrator closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _task_id(task_input: Any) -> str:
    if isinstance(task_input, Task):
        return task_input.id
    if isinstance(task_input, dict):
        return str(task_input.get('id') or task_input.get('taskId') or 'unknown')
    return 'unknown'


# ============================================================================
# SYNCHRONOUS WRAPPER
# ============================================================================

class AutoCodingOrchestratorSync:
    """
    Synchronous wrapper for scripts that can't use async.

    Runs every call on one private event loop so the connectors' HTTP
    clients stay bound to the loop they were created on.
    """

    def __init__(self, config: Dict[str, Any], **kwargs):
        self._loop = asyncio.new_event_loop()
        self._orchestrator = AutoCodingOrchestrator(config, **kwargs)

    @property
    def orchestrator(self) -> AutoCodingOrchestrator:
        return self._orchestrator

    def process_task(self, task_input: TaskInput) -> TaskResult:
        return self._loop.run_until_complete(self._orchestrator.process_task(task_input))

    def process_tasks(self, tasks: Iterable[TaskInput]) -> List[TaskResult]:
        return self._loop.run_until_complete(self._orchestrator.process_tasks(tasks))

    def compare_tools(self, task_input: TaskInput,
                      tools: Optional[Iterable[str]] = None) -> ComparisonResult:
        return self._loop.run_until_complete(self._orchestrator.compare_tools(task_input, tools))

    def get_stats(self) -> Dict[str, Any]:
        return self._orchestrator.get_stats()

    def generate_report(self, format: str = 'json') -> str:
        return self._orchestrator.generate_report(format)

    def close(self):
        if self._loop.is_closed():
            return
        self._loop.run_until_complete(self._orchestrator.close())
        self._loop.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


# ============================================================================
# CONVENIENCE FUNCTIONS
# ============================================================================

async def create_orchestrator(config_path: Optional[str] = "config.yaml",
                              **kwargs) -> AutoCodingOrchestrator:
    """Factory function to load config and build an orchestrator."""
    return AutoCodingOrchestrator(load_config(config_path), **kwargs)


def create_sync_orchestrator(config_path: Optional[str] = "config.yaml",
                             **kwargs) -> AutoCodingOrchestratorSync:
    """Factory function to create a synchronous orchestrator."""
    return AutoCodingOrchestratorSync(load_config(config_path), **kwargs)
