#!/usr/bin/env python3
"""
Main CLI entry point for the AutoCoding orchestrator.
"""
import asyncio
import json
import logging
import sys

import click
import yaml
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.syntax import Syntax
from rich.logging import RichHandler

from autocoding import __version__
from autocoding.api.client import ClaudeClient, UpstreamError
from autocoding.core.config import load_config, mask_secret
from autocoding.core.errors import AutoCodingError, ConfigurationError
from autocoding.core.models import Task
from autocoding.core.orchestrator import AutoCodingOrchestrator
from autocoding.core.task_analyzer import TaskAnalyzer
from autocoding.core.template_manager import TemplateManager, identify_placeholders

console = Console()


def setup_logging(level: str = "INFO"):
    """Route log records through rich."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True
    )


def _load(ctx, dev: bool = False):
    config = load_config(ctx.obj['config_path'])
    if dev:
        config['app']['dev_mode'] = True
    setup_logging(ctx.obj['log_level'] or config['app'].get('log_level', 'INFO'))
    return config


@click.group()
@click.version_option(version=__version__)
@click.option('--config', '-c', 'config_path', default="config.yaml", help="Path to config file")
@click.option('--log-level', default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.pass_context
def cli(ctx, config_path, log_level):
    """AutoCoding - delegate coding tasks and measure the token savings."""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    ctx.obj['log_level'] = log_level


@cli.command()
@click.argument('description')
@click.option('--feature', '-f', 'features', multiple=True, help="Declared feature")
def analyze(description, features):
    """Analyze a task description without running it."""
    task = Task(id='cli-analyze', description=description, features=tuple(features))
    analysis = TaskAnalyzer().analyze(task)

    table = Table(title="Task Analysis")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_row("Type", analysis.type.value)
    table.add_row("Complexity", analysis.complexity.value)
    table.add_row("Features", ", ".join(analysis.features) or "-")
    table.add_row("Estimated lines", str(analysis.estimated_lines))
    budget = analysis.token_budget
    table.add_row("Token budget",
                  f"{budget.total} (analysis {budget.analysis}, implementation "
                  f"{budget.implementation}, review {budget.review})")
    console.print(table)

    console.print(Panel("\n".join(f"• {r}" for r in analysis.recommendations),
                        title="Recommendations"))


@cli.command()
@click.argument('description')
@click.option('--id', 'task_id', default="cli-task", help="Task id")
@click.option('--type', 'task_type', default=None,
              type=click.Choice(['ui', 'logic', 'design', 'unknown']))
@click.option('--complexity', default=None, type=click.Choice(['low', 'medium', 'high']))
@click.option('--feature', '-f', 'features', multiple=True, help="Declared feature")
@click.option('--dev', is_flag=True, help="Use simulated connectors")
@click.option('--show-code', is_flag=True, help="Print the generated implementation")
@click.pass_context
def run(ctx, description, task_id, task_type, complexity, features, dev, show_code):
    """Run one task through the full pipeline."""
    config = _load(ctx, dev)
    task = {
        'id': task_id,
        'description': description,
        'type': task_type,
        'complexity': complexity,
        'features': list(features)
    }
    asyncio.run(_run_async(config, [{k: v for k, v in task.items() if v is not None}],
                           show_code))


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--dev', is_flag=True, help="Use simulated connectors")
@click.option('--report', 'report_format', default=None, type=click.Choice(['json', 'csv']),
              help="Print a metrics report at the end")
@click.pass_context
def batch(ctx, file, dev, report_format):
    """Run every task in a YAML or JSON file."""
    config = _load(ctx, dev)
    with open(file, 'r') as f:
        data = json.load(f) if file.endswith('.json') else yaml.safe_load(f)

    tasks = data.get('tasks', []) if isinstance(data, dict) else data
    if not isinstance(tasks, list) or not tasks:
        console.print("[red]❌ No tasks found in file[/red]")
        sys.exit(1)

    invalid = [str(i) for i, task in enumerate(tasks) if not isinstance(task, dict)]
    if invalid:
        console.print(f"[red]❌ Task entries must be mappings "
                      f"(invalid at positions: {', '.join(invalid)})[/red]")
        sys.exit(1)

    asyncio.run(_run_async(config, tasks, False, report_format))


async def _run_async(config, tasks, show_code=False, report_format=None):
    try:
        orchestrator = AutoCodingOrchestrator(config)
    except ConfigurationError as e:
        console.print(f"[red]❌ {e.message}[/red]")
        console.print("Set ANTHROPIC_API_KEY and BOLT_DIY_URL/BOLT_DIY_API_KEY, or use --dev")
        sys.exit(1)

    async with orchestrator:
        for task in tasks:
            with console.status(f"[bold green]Processing {task.get('id', '?')}..."):
                result = await orchestrator.process_task(task)
            _print_result(result, show_code)

        if len(tasks) > 1:
            _print_stats(orchestrator.get_stats())
        if report_format:
            console.print(orchestrator.generate_report(report_format))


def _print_result(result, show_code=False):
    if not result.success:
        error = result.error or {}
        console.print(Panel(f"[red]{error.get('code', 'ERROR')}[/red]: {error.get('message', '')}",
                            title=f"❌ {result.task_id}"))
        return

    table = Table(title=f"✅ {result.task_id}")
    table.add_column("Step", style="cyan")
    table.add_column("Result", style="yellow")
    table.add_row("Analysis", f"{result.analysis.type.value} / {result.analysis.complexity.value}")
    table.add_row("Tool", f"{result.tool_selection.selected_tool} "
                          f"(score {result.tool_selection.score})")
    table.add_row("Template", str(result.template_type))
    table.add_row("Tokens used", str(result.token_usage.get('total', 0)))
    table.add_row("Quality", f"{result.quality.overall_score}/10")
    if result.efficiency:
        table.add_row("Efficiency gain", f"{result.efficiency['efficiency_gain']:.2f}%")
    console.print(table)

    if show_code and result.implementation:
        console.print(Syntax(result.implementation.implementation, "javascript",
                             theme="monokai", line_numbers=True))


def _print_stats(stats):
    tokens = stats['tokens']
    metrics = stats['metrics']
    table = Table(title="Run Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="yellow")
    table.add_row("Tasks", f"{tokens['completed_tasks']}/{tokens['total_tasks']} completed")
    table.add_row("Success rate", f"{metrics['success_rate']:.2f}%")
    table.add_row("Token savings", str(tokens['token_savings']))
    table.add_row("Average efficiency", f"{tokens['average_efficiency']:.2f}%")
    table.add_row("Target progress", f"{tokens['target_progress']:.2f}%")
    table.add_row("Average quality", f"{metrics['average_quality']:.2f}")
    table.add_row("Trend", str(tokens['trend_analysis']['trend']))
    console.print(table)


@cli.command()
@click.option('--tool', default=None, help="Only show templates of this tool")
def templates(tool):
    """List the registered templates."""
    manager = TemplateManager()
    table = Table(title="Templates")
    table.add_column("Tool", style="cyan")
    table.add_column("Type", style="green")
    table.add_column("Placeholders")

    for name in manager.list_tools():
        if tool and name != tool:
            continue
        for template_type in manager.get_template_types(name):
            template = manager.get_template_object(name, template_type)
            table.add_row(name, template_type, ", ".join(identify_placeholders(template.body)))
    console.print(table)


@cli.command()
@click.option('--show-key', is_flag=True, help="Show full API keys (be careful!)")
@click.pass_context
def config(ctx, show_key):
    """Show current configuration."""
    config_data = load_config(ctx.obj['config_path'])

    table = Table(title="Current Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="yellow")

    for section, settings in config_data.items():
        if not isinstance(settings, dict):
            table.add_row(section, str(settings))
            continue
        for key, value in settings.items():
            if key == 'api_key':
                if not value:
                    value = "[red]NOT SET[/red]"
                elif not show_key:
                    value = mask_secret(value)
            table.add_row(f"{section}.{key}", str(value))

    console.print(table)


@cli.command()
@click.pass_context
def test(ctx):
    """Test API connection and configuration."""
    config_data = _load(ctx)
    asyncio.run(_test_async(config_data))


async def _test_async(config_data):
    table = Table(title="Configuration Test")
    table.add_column("Component", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details")

    try:
        client = ClaudeClient(config_data)
    except ConfigurationError as e:
        table.add_row("API Key", "❌", e.message)
        console.print(table)
        sys.exit(1)

    table.add_row("API Key", "✅", "Configured")
    try:
        if await client.test_connection():
            table.add_row("API Connection", "✅", f"Connected to {client.base_url}")
        else:
            table.add_row("API Connection", "❌", "Connection failed")
    except UpstreamError as e:
        table.add_row("API Connection", "❌", e.message)
    finally:
        await client.close()

    bolt = config_data.get('bolt_diy', {})
    if bolt.get('url') and bolt.get('api_key'):
        table.add_row("bolt.diy", "✅", bolt['url'])
    else:
        table.add_row("bolt.diy", "⚠️", "Not configured (dev mode only)")

    console.print(table)


def main():
    try:
        cli(obj={})
    except AutoCodingError as e:
        console.print(f"[red]❌ Error: {e.message}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
