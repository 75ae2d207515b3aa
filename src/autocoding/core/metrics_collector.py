# src/autocoding/core/metrics_collector.py
"""
Metrics Collector - running aggregates over processed tasks for dashboards
and reports.

Updates are serialized through a lock so concurrent callers can record
results without losing increments.
"""

import csv
import io
import json
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from autocoding.core.models import Task, TaskResult

logger = logging.getLogger(__name__)

# Savings goal, as a multiple of the direct baseline
TARGET_EFFICIENCY = 6
ESTIMATED_BASELINE_MULTIPLIER = 6


class MetricsCollector:
    """Collects per-task metrics and keeps running totals."""

    def __init__(self):
        self._lock = threading.Lock()
        self.tasks: Dict[str, Dict[str, Any]] = {}
        self.token_usage = {
            'total': 0,
            'by_tool': {},
            'by_type': {},
            'history': []
        }
        self.quality = {
            'average': 0.0,
            'count': 0,
            'by_type': {},
            'history': []
        }
        self.performance = {
            'processed_tasks': 0,
            'successful_tasks': 0,
            'failed_tasks': 0,
            'average_processing_time': 0.0
        }
        self.efficiency = {
            'current': 0.0,
            'target': TARGET_EFFICIENCY,
            'history': []
        }

    def record_task_metrics(self, task: Task, result: TaskResult,
                            baseline_tokens: Optional[int] = None,
                            processing_time: Optional[float] = None) -> Dict[str, Any]:
        """
        Record one processed task.

        baseline_tokens is the independently measured cost of doing the task
        directly. When omitted, the direct cost from result.efficiency is used;
        failing that the baseline is estimated as tokens x 6 and flagged.
        """
        tokens = int((result.token_usage or {}).get('total', 0) or 0)
        score = result.quality.overall_score if result.quality else 0.0
        tool = None
        if result.implementation:
            tool = result.implementation.tool
        elif result.tool_selection:
            tool = result.tool_selection.selected_tool

        if baseline_tokens is None and result.efficiency:
            baseline_tokens = result.efficiency.get('direct_cost') or None

        timestamp = datetime.now().isoformat()
        entry = {
            'id': task.id,
            'type': task.type.value,
            'complexity': task.complexity.value,
            'tool': tool,
            'tokens': tokens,
            'quality_score': score,
            'success': result.success,
            'timestamp': timestamp
        }

        with self._lock:
            self.tasks[task.id] = entry
            self._update_tokens(entry)
            self._update_quality(entry)
            self._update_performance(result.success, processing_time)
            self._update_efficiency(entry, baseline_tokens)

        logger.debug(f"Recorded metrics for task: {task.id}")
        return entry

    # ========================================================================
    # UPDATES (caller holds the lock)
    # ========================================================================

    def _update_tokens(self, entry: Dict[str, Any]):
        usage = self.token_usage
        usage['total'] += entry['tokens']
        usage['by_type'][entry['type']] = usage['by_type'].get(entry['type'], 0) + entry['tokens']
        if entry['tool']:
            usage['by_tool'][entry['tool']] = usage['by_tool'].get(entry['tool'], 0) + entry['tokens']
        usage['history'].append({
            'timestamp': entry['timestamp'],
            'tokens': entry['tokens'],
            'type': entry['type']
        })

    def _update_quality(self, entry: Dict[str, Any]):
        quality = self.quality
        quality['count'] += 1
        n = quality['count']
        quality['average'] = (quality['average'] * (n - 1) + entry['quality_score']) / n

        by_type = quality['by_type'].setdefault(entry['type'], {'count': 0, 'total': 0.0})
        by_type['count'] += 1
        by_type['total'] += entry['quality_score']
        by_type['average'] = by_type['total'] / by_type['count']

        quality['history'].append({
            'timestamp': entry['timestamp'],
            'score': entry['quality_score'],
            'type': entry['type']
        })

    def _update_performance(self, success: bool, processing_time: Optional[float]):
        performance = self.performance
        performance['processed_tasks'] += 1
        if success:
            performance['successful_tasks'] += 1
        else:
            performance['failed_tasks'] += 1

        if processing_time is not None:
            n = performance['processed_tasks']
            performance['average_processing_time'] = (
                (performance['average_processing_time'] * (n - 1) + processing_time) / n
            )

    def _update_efficiency(self, entry: Dict[str, Any], baseline_tokens: Optional[int]):
        tokens = entry['tokens']
        if tokens <= 0:
            return

        estimated = not baseline_tokens
        if estimated:
            # No measured baseline: the ratio degenerates to the multiplier itself
            logger.warning(f"No baseline for task {entry['id']}; efficiency estimated as "
                           f"{ESTIMATED_BASELINE_MULTIPLIER}x")
            baseline_tokens = tokens * ESTIMATED_BASELINE_MULTIPLIER

        ratio = baseline_tokens / tokens
        self.efficiency['current'] = ratio
        self.efficiency['history'].append({
            'timestamp': entry['timestamp'],
            'efficiency': ratio,
            'tokens': tokens,
            'baseline': baseline_tokens,
            'baseline_estimated': estimated
        })

    # ========================================================================
    # OUTPUT
    # ========================================================================

    def get_visualization_data(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'efficiency': _series('Efficiency Ratio', self.efficiency['history'], 'efficiency'),
                'quality': _series('Quality Score', self.quality['history'], 'score'),
                'token_usage': _series('Token Usage', self.token_usage['history'], 'tokens'),
                'performance': {
                    'labels': ['Successful', 'Failed'],
                    'datasets': [{
                        'data': [self.performance['successful_tasks'],
                                 self.performance['failed_tasks']],
                        'background_color': ['#4CAF50', '#F44336']
                    }]
                }
            }

    def generate_summary(self) -> Dict[str, Any]:
        processed = self.performance['processed_tasks']
        success_rate = (self.performance['successful_tasks'] / processed * 100) if processed else 0.0
        current = self.efficiency['current']
        return {
            'total_tasks': processed,
            'success_rate': round(success_rate, 2),
            'average_quality': round(self.quality['average'], 2),
            'average_processing_time': round(self.performance['average_processing_time'], 3),
            'current_efficiency': round(current, 2),
            'total_tokens': self.token_usage['total'],
            'target_progress': round(current / self.efficiency['target'] * 100, 2),
            'baseline_estimated': any(item['baseline_estimated']
                                      for item in self.efficiency['history'])
        }

    def generate_report(self, format: str = 'json') -> str:
        """Render the report as 'json' (full detail) or 'csv' (summary rows)."""
        with self._lock:
            summary = self.generate_summary()
            report = {
                'summary': summary,
                'detailed': {
                    'tasks': list(self.tasks.values()),
                    'token_usage': self.token_usage,
                    'quality': self.quality,
                    'performance': self.performance,
                    'efficiency': self.efficiency
                }
            }
            if format == 'csv':
                return _summary_to_csv(summary)
            if format != 'json':
                raise ValueError(f"Unsupported report format: {format}")
            return json.dumps(report, indent=2, default=str)


def _series(label: str, history: List[Dict[str, Any]], key: str) -> Dict[str, Any]:
    return {
        'labels': [item['timestamp'] for item in history],
        'datasets': [{'label': label, 'data': [item[key] for item in history]}]
    }


def _summary_to_csv(summary: Dict[str, Any]) -> str:
    rows = [
        ('Metric', 'Value'),
        ('Total Tasks', summary['total_tasks']),
        ('Success Rate', f"{summary['success_rate']:.2f}%"),
        ('Average Quality', f"{summary['average_quality']:.2f}"),
        ('Current Efficiency', f"{summary['current_efficiency']:.2f}x"),
        ('Total Tokens', summary['total_tokens']),
        ('Target Progress', f"{summary['target_progress']:.2f}%"),
        ('Baseline Estimated', summary['baseline_estimated']),
    ]
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator='\n').writerows(rows)
    return buffer.getvalue()
