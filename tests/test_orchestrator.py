"""End-to-end tests for the orchestration pipeline."""

import asyncio

import httpx
import pytest

from autocoding.api.client import APIError, ClaudeClient
from autocoding.core.errors import ConfigurationError
from autocoding.core.models import Task
from autocoding.core.orchestrator import AutoCodingOrchestrator, AutoCodingOrchestratorSync
from autocoding.integrations.connectors import (
    ToolConnector, ClaudeSonnetConnector, SimulatedExecutionConnector
)


class FailingConnector(ToolConnector):
    name = 'claude_sonnet'

    def get_capabilities(self):
        return {'name': self.name}

    async def implement_task(self, task, template):
        raise APIError("upstream exploded", 503)


class HangingConnector(ToolConnector):
    name = 'claude_sonnet'

    def __init__(self):
        self.started = asyncio.Event()

    def get_capabilities(self):
        return {'name': self.name}

    async def implement_task(self, task, template):
        self.started.set()
        await asyncio.sleep(60)


def _with_tool(config, connector):
    return AutoCodingOrchestrator(config, tool_connectors={connector.name: connector},
                                  execution_connector=SimulatedExecutionConnector())


class TestPipeline:

    @pytest.mark.asyncio
    async def test_login_form_end_to_end(self, dev_config, login_task):
        async with AutoCodingOrchestrator(dev_config) as orchestrator:
            result = await orchestrator.process_task(login_task)

        assert result.success
        assert result.error is None
        assert result.analysis.features == ['validation']
        assert result.tool_selection.selected_tool == 'claude_direct'
        assert result.template_type == 'component'
        assert login_task.description in result.template
        assert result.quality.overall_score == 7.7
        assert result.execution.success
        assert result.efficiency['direct_cost'] == 650
        assert result.efficiency['delegated_cost']['total'] == result.token_usage['total']
        assert result.efficiency['best_tool'] == 'claude_direct'

    @pytest.mark.asyncio
    async def test_dict_input_and_template_override(self, dev_config, login_task_data):
        orchestrator = AutoCodingOrchestrator(dev_config)
        result = await orchestrator.process_task({**login_task_data, 'template': 'basic'})

        assert result.success
        assert result.template_type == 'basic'
        await orchestrator.close()

    @pytest.mark.asyncio
    async def test_stats_after_runs(self, dev_config, login_task_data):
        orchestrator = AutoCodingOrchestrator(dev_config)
        await orchestrator.process_tasks([
            login_task_data,
            {**login_task_data, 'id': 't2', 'description': 'Write a sorting algorithm for users'},
        ])

        stats = orchestrator.get_stats()
        assert stats['tokens']['completed_tasks'] == 2
        assert stats['metrics']['total_tasks'] == 2
        assert stats['metrics']['success_rate'] == 100.0
        assert stats['metrics']['baseline_estimated'] is False
        assert 'Metric,Value' in orchestrator.generate_report('csv')
        await orchestrator.close()

    def test_requires_a_tool(self, dev_config):
        with pytest.raises(ConfigurationError):
            AutoCodingOrchestrator(dev_config, tool_connectors={},
                                   execution_connector=SimulatedExecutionConnector())


class TestFailures:
    """Failures come back as TaskResult errors, never as exceptions."""

    @pytest.mark.asyncio
    async def test_invalid_task(self, dev_config):
        orchestrator = AutoCodingOrchestrator(dev_config)
        result = await orchestrator.process_task({'id': 'bad', 'description': 'short'})

        assert not result.success
        assert result.task_id == 'bad'
        assert result.error['code'] == 'VALIDATION_ERROR'
        assert 'description' in result.error['details']
        assert orchestrator.token_tracker.get_record('bad') is None

    @pytest.mark.asyncio
    async def test_duplicate_task_id(self, dev_config, login_task):
        orchestrator = AutoCodingOrchestrator(dev_config)
        first = await orchestrator.process_task(login_task)
        second = await orchestrator.process_task(login_task)

        assert first.success
        assert not second.success
        assert second.error['code'] == 'TASK_STATE_ERROR'

    @pytest.mark.asyncio
    async def test_upstream_failure(self, dev_config, login_task):
        orchestrator = _with_tool(dev_config, FailingConnector())
        result = await orchestrator.process_task(login_task)

        assert not result.success
        assert result.error['code'] == 'UPSTREAM_ERROR'
        assert result.error['message'] == 'upstream exploded'
        assert orchestrator.token_tracker.get_record(login_task.id).completed
        assert orchestrator.metrics.performance['failed_tasks'] == 1

    @pytest.mark.asyncio
    async def test_garbled_upstream_body(self, live_config, login_task):
        def handler(request):
            return httpx.Response(200, text="<html>gateway</html>")

        client = ClaudeClient(live_config, httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        orchestrator = _with_tool(live_config, ClaudeSonnetConnector(client))
        result = await orchestrator.process_task(login_task)
        await client.close()

        assert not result.success
        assert result.error['code'] == 'UPSTREAM_ERROR'
        assert result.error['message'] == 'Invalid JSON response'
        assert orchestrator.token_tracker.get_record(login_task.id).completed
        assert orchestrator.metrics.performance['failed_tasks'] == 1

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, dev_config, login_task):
        connector = HangingConnector()
        orchestrator = _with_tool(dev_config, connector)

        pending = asyncio.ensure_future(orchestrator.process_task(login_task))
        await connector.started.wait()
        pending.cancel()

        with pytest.raises(asyncio.CancelledError):
            await pending
        assert orchestrator.metrics.performance['processed_tasks'] == 0


class TestComparison:

    @pytest.mark.asyncio
    async def test_compare_all_simulated_tools(self, dev_config, login_task):
        orchestrator = AutoCodingOrchestrator(dev_config)
        result = await orchestrator.compare_tools(login_task)

        assert result.implementation_count == 5
        # identical simulated output, so ranking keeps connector order
        assert result.best_tool == 'haiku'
        assert result.findings['recommendations'][0].startswith('For tasks similar to "t1"')

    @pytest.mark.asyncio
    async def test_compare_subset(self, dev_config, login_task):
        orchestrator = AutoCodingOrchestrator(dev_config)
        result = await orchestrator.compare_tools(login_task, tools=['v0_dev', 'missing'])
        assert [item.tool for item in result.ranked] == ['v0_dev']

    def test_compare_nothing(self, dev_config, login_task):
        orchestrator = AutoCodingOrchestrator(dev_config)
        result = orchestrator.compare_implementations([], login_task)
        assert result.error == 'No implementations provided for comparison'


class TestSyncWrapper:

    def test_process_task(self, dev_config, login_task_data):
        with AutoCodingOrchestratorSync(dev_config) as orchestrator:
            result = orchestrator.process_task(login_task_data)
            stats = orchestrator.get_stats()

        assert result.success
        assert stats['tokens']['completed_tasks'] == 1

    def test_compare_tools(self, dev_config):
        task = Task(id="cmp", description="Write a sorting algorithm for users")
        with AutoCodingOrchestratorSync(dev_config) as orchestrator:
            result = orchestrator.compare_tools(task, tools=['haiku', 'claude_sonnet'])
        assert result.implementation_count == 2
