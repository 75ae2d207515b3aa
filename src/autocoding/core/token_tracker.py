# src/autocoding/core/token_tracker.py
"""
Token Tracker - per-task token accounting for direct vs delegated work.

Lifecycle per task: start_task -> record_direct_cost / record_delegated_cost
(any order, any number of times) -> complete_task. Completed tasks are
appended to the historical log and accept no further writes.
"""

import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from autocoding.core.models import Complexity, DelegatedCost, TokenUsageRecord
from autocoding.core.errors import TaskTrackingError

logger = logging.getLogger(__name__)

COMPLEXITY_WEIGHTS: Dict[Complexity, float] = {
    Complexity.LOW: 0.8,
    Complexity.MEDIUM: 1.0,
    Complexity.HIGH: 1.2,
}

# Middle of the 5-7x savings goal
TARGET_MULTIPLIER = 6

INSUFFICIENT_DATA = 'insufficient data'


def _percent(value: float) -> float:
    return round(value, 2)


class TokenTracker:
    """In-memory token accounting. One instance per process or per test."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.tasks: Dict[str, TokenUsageRecord] = {}
        self.tool_performance: Dict[str, Dict[str, Any]] = {}
        self.historical_data: List[Dict[str, Any]] = []

    # ========================================================================
    # RECORDING
    # ========================================================================

    def start_task(self, task_id: str, description: str,
                   complexity: Complexity = Complexity.MEDIUM) -> str:
        if task_id in self.tasks:
            raise TaskTrackingError(f"Task already tracked: {task_id}", {'task_id': task_id})

        self.tasks[task_id] = TokenUsageRecord(
            task_id=task_id,
            description=description,
            complexity=Complexity(complexity),
            started_at=self.clock()
        )
        logger.debug(f"Started tracking task {task_id}")
        return task_id

    def record_direct_cost(self, task_id: str, tokens: int, time_spent: Optional[float] = None):
        """Tokens it would take to write the task without delegation."""
        record = self._open_record(task_id)
        record.direct = tokens
        record.direct_time_spent = time_spent

    def record_delegated_cost(self, task_id: str, tool_name: str, analysis: int = 0,
                              delegation: int = 0, review: int = 0,
                              time_spent: Optional[float] = None) -> DelegatedCost:
        """Record one tool attempt. The cheapest attempt so far becomes the task's delegated cost."""
        record = self._open_record(task_id)
        cost = DelegatedCost(
            analysis=analysis,
            delegation=delegation,
            review=review,
            total=analysis + delegation + review,
            tool_name=tool_name,
            time_spent=time_spent
        )
        record.per_tool[tool_name] = cost

        if record.delegated.tool_name is None or cost.total < record.delegated.total:
            record.delegated = cost

        self._update_tool_performance(tool_name, record.complexity, cost.total, time_spent)
        return record.delegated

    def complete_task(self, task_id: str, quality_score: float = 0.0) -> TokenUsageRecord:
        record = self._open_record(task_id)
        now = self.clock()
        record.completed = True
        record.time_to_complete = now - record.started_at
        record.quality_score = quality_score

        if record.direct > 0 and record.delegated.total > 0:
            record.efficiency_ratio = record.direct / record.delegated.total

        self.historical_data.append({
            'task_id': task_id,
            'description': record.description,
            'complexity': record.complexity.value,
            'direct_tokens': record.direct,
            'delegated_tokens': record.delegated.total,
            'best_tool': record.delegated.tool_name,
            'efficiency_ratio': record.efficiency_ratio,
            'quality_score': quality_score,
            'timestamp': now
        })
        logger.info(f"Completed task {task_id}: direct={record.direct}, "
                    f"delegated={record.delegated.total}, ratio={record.efficiency_ratio}")
        return record

    def get_record(self, task_id: str) -> Optional[TokenUsageRecord]:
        return self.tasks.get(task_id)

    def _open_record(self, task_id: str) -> TokenUsageRecord:
        record = self.tasks.get(task_id)
        if record is None:
            raise TaskTrackingError(f"Unknown task: {task_id}", {'task_id': task_id})
        if record.completed:
            raise TaskTrackingError(f"Task already completed: {task_id}", {'task_id': task_id})
        return record

    def _update_tool_performance(self, tool_name: str, complexity: Complexity,
                                 tokens: int, time_spent: Optional[float]):
        performance = self.tool_performance.setdefault(tool_name, {
            'task_count': 0,
            'total_tokens': 0,
            'average_tokens': 0.0,
            'total_time': 0.0,
            'average_time': 0.0,
            'complexity_breakdown': {c.value: {'count': 0, 'tokens': 0} for c in Complexity}
        })

        performance['task_count'] += 1
        performance['total_tokens'] += tokens
        performance['average_tokens'] = performance['total_tokens'] / performance['task_count']

        if time_spent:
            performance['total_time'] += time_spent
            performance['average_time'] = performance['total_time'] / performance['task_count']

        bucket = performance['complexity_breakdown'][complexity.value]
        bucket['count'] += 1
        bucket['tokens'] += tokens

    # ========================================================================
    # REPORTING
    # ========================================================================

    def compare_efficiency(self, task_id: str) -> Optional[Dict[str, Any]]:
        """Direct vs delegated comparison for one task. None for unknown ids."""
        record = self.tasks.get(task_id)
        if record is None:
            return None

        delegated = record.delegated
        gain = (record.direct - delegated.total) / record.direct * 100 if record.direct > 0 else 0.0
        weight = COMPLEXITY_WEIGHTS.get(record.complexity, 1.0)

        return {
            'task_id': task_id,
            'description': record.description,
            'complexity': record.complexity.value,
            'direct_cost': record.direct,
            'delegated_cost': delegated.to_dict(),
            'token_savings': record.direct - delegated.total,
            'efficiency_gain': _percent(gain),
            'normalized_efficiency': _percent(gain * weight),
            'efficiency_ratio': record.efficiency_ratio,
            'best_tool': delegated.tool_name,
            'quality_score': record.quality_score,
            'time_to_complete': record.time_to_complete
        }

    def get_stats(self) -> Dict[str, Any]:
        total_direct = 0
        total_delegated = 0
        tool_breakdown: Dict[str, Dict[str, Any]] = {}
        complexity_breakdown = {c.value: {'direct': 0, 'delegated': 0, 'count': 0}
                                for c in Complexity}
        task_breakdown = []

        for task_id, record in self.tasks.items():
            if not record.completed:
                continue

            total_direct += record.direct
            total_delegated += record.delegated.total

            bucket = complexity_breakdown[record.complexity.value]
            bucket['direct'] += record.direct
            bucket['delegated'] += record.delegated.total
            bucket['count'] += 1

            tool_name = record.delegated.tool_name
            if tool_name:
                tool = tool_breakdown.setdefault(tool_name, {'task_count': 0, 'total_tokens': 0})
                tool['task_count'] += 1
                tool['total_tokens'] += record.delegated.total
                tool['average_tokens'] = tool['total_tokens'] / tool['task_count']

            task_breakdown.append(self.compare_efficiency(task_id))

        for data in complexity_breakdown.values():
            if data['count'] == 0:
                continue
            data['average_direct'] = data['direct'] / data['count']
            data['average_delegated'] = data['delegated'] / data['count']
            data['efficiency_ratio'] = (data['direct'] / data['delegated']
                                        if data['direct'] > 0 and data['delegated'] > 0 else 0.0)
            data['efficiency_gain'] = (_percent((data['direct'] - data['delegated'])
                                                / data['direct'] * 100)
                                       if data['direct'] > 0 else 0.0)

        average_efficiency = 0.0
        target_progress = 0.0
        current_multiplier = 1.0
        if total_direct > 0:
            average_efficiency = _percent((total_direct - total_delegated) / total_direct * 100)
            if total_delegated > 0:
                current_multiplier = total_direct / total_delegated
                target_progress = _percent(min(
                    100.0, (current_multiplier - 1) / (TARGET_MULTIPLIER - 1) * 100
                ))

        return {
            'total_tasks': len(self.tasks),
            'completed_tasks': len(task_breakdown),
            'token_savings': total_direct - total_delegated,
            'average_efficiency': average_efficiency,
            'current_multiplier': current_multiplier,
            'target_progress': target_progress,
            'task_breakdown': task_breakdown,
            'tool_breakdown': tool_breakdown,
            'tool_performance': [{'tool': tool, **performance}
                                 for tool, performance in self.tool_performance.items()],
            'complexity_analysis': complexity_breakdown,
            'trend_analysis': self._analyze_trends()
        }

    def _analyze_trends(self) -> Dict[str, Any]:
        """Compare the first and last third of completed tasks by efficiency ratio."""
        ordered = sorted(self.historical_data, key=lambda item: item['timestamp'])
        split = len(ordered) // 3
        if split == 0:
            return {'trend': INSUFFICIENT_DATA, 'improvement': 0.0}

        def average(items):
            return sum(item['efficiency_ratio'] or 0.0 for item in items) / len(items)

        first_avg = average(ordered[:split])
        last_avg = average(ordered[-split:])
        improvement = _percent((last_avg - first_avg) / first_avg * 100) if first_avg > 0 else 0.0

        return {
            'trend': 'improving' if last_avg > first_avg else 'declining',
            'improvement': improvement,
            'first_group_avg': round(first_avg, 2),
            'last_group_avg': round(last_avg, 2)
        }

    def get_visualization_data(self) -> Dict[str, Any]:
        stats = self.get_stats()
        return {
            'efficiency_trend': self._efficiency_trend(),
            'tool_comparison': [
                {
                    'name': tool,
                    'task_count': performance['task_count'],
                    'avg_tokens': performance['average_tokens'],
                    'avg_time': performance['average_time']
                }
                for tool, performance in self.tool_performance.items()
            ],
            'complexity_analysis': [
                {
                    'complexity': complexity,
                    'task_count': data['count'],
                    'avg_direct': data['average_direct'],
                    'avg_delegated': data['average_delegated'],
                    'efficiency_gain': data['efficiency_gain']
                }
                for complexity, data in stats['complexity_analysis'].items() if data['count'] > 0
            ],
            'target_progress': {
                'current': stats['target_progress'],
                'target': 100,
                'current_multiplier': round(stats['current_multiplier'], 2),
                'target_multiplier': TARGET_MULTIPLIER
            }
        }

    def _efficiency_trend(self) -> List[Dict[str, Any]]:
        """Average efficiency ratio per ISO week."""
        weekly: Dict[str, Dict[str, Any]] = {}
        for item in self.historical_data:
            year, week, _ = datetime.fromtimestamp(item['timestamp']).isocalendar()
            key = f"{year}-W{week:02d}"
            entry = weekly.setdefault(key, {'week': key, 'tasks': 0, 'total_efficiency': 0.0})
            entry['tasks'] += 1
            entry['total_efficiency'] += item['efficiency_ratio'] or 0.0
            entry['avg_efficiency'] = entry['total_efficiency'] / entry['tasks']
        return [weekly[key] for key in sorted(weekly)]
