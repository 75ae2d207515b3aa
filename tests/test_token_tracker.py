"""Tests for TokenTracker."""

import itertools

import pytest

from autocoding.core.errors import TaskTrackingError
from autocoding.core.models import Complexity
from autocoding.core.token_tracker import TokenTracker, INSUFFICIENT_DATA


def _counter_clock():
    counter = itertools.count(1_700_000_000, 10)
    return lambda: float(next(counter))


def _finished(tracker, task_id, direct, delegated, complexity=Complexity.MEDIUM, quality=8.0):
    tracker.start_task(task_id, f"task {task_id}", complexity)
    tracker.record_direct_cost(task_id, direct)
    tracker.record_delegated_cost(task_id, 'claude_sonnet', analysis=delegated)
    tracker.complete_task(task_id, quality)


class TestLifecycle:
    """start -> record -> complete, with illegal writes rejected."""

    def test_duplicate_start_is_rejected(self):
        tracker = TokenTracker()
        tracker.start_task('t1', 'task')
        with pytest.raises(TaskTrackingError):
            tracker.start_task('t1', 'task')

    def test_unknown_task_is_rejected(self):
        with pytest.raises(TaskTrackingError):
            TokenTracker().record_direct_cost('missing', 100)

    def test_writes_after_completion_are_rejected(self):
        tracker = TokenTracker()
        _finished(tracker, 't1', 1000, 200)
        with pytest.raises(TaskTrackingError):
            tracker.record_delegated_cost('t1', 'haiku', analysis=10)
        with pytest.raises(TaskTrackingError):
            tracker.complete_task('t1')

    def test_cheapest_attempt_wins(self):
        tracker = TokenTracker()
        tracker.start_task('t1', 'task')
        tracker.record_delegated_cost('t1', 'haiku', analysis=200, delegation=300)
        tracker.record_delegated_cost('t1', 'bolt_new', analysis=100, delegation=200)
        tracker.record_delegated_cost('t1', 'v0_dev', analysis=400)

        record = tracker.get_record('t1')
        assert record.delegated.total == 300
        assert record.delegated.tool_name == 'bolt_new'
        assert set(record.per_tool) == {'haiku', 'bolt_new', 'v0_dev'}

    def test_zero_cost_attempt_is_kept(self):
        tracker = TokenTracker()
        tracker.start_task('t1', 'task')
        tracker.record_delegated_cost('t1', 'cached')
        tracker.record_delegated_cost('t1', 'haiku', analysis=200, delegation=300)

        record = tracker.get_record('t1')
        assert record.delegated.total == 0
        assert record.delegated.tool_name == 'cached'

    def test_tool_performance_is_updated_per_attempt(self):
        tracker = TokenTracker()
        tracker.start_task('t1', 'task', Complexity.HIGH)
        tracker.record_delegated_cost('t1', 'haiku', analysis=100, time_spent=2.0)
        tracker.record_delegated_cost('t1', 'haiku', analysis=300, time_spent=4.0)

        performance = tracker.tool_performance['haiku']
        assert performance['task_count'] == 2
        assert performance['average_tokens'] == 200
        assert performance['average_time'] == 3.0
        assert performance['complexity_breakdown']['high'] == {'count': 2, 'tokens': 400}


class TestEfficiency:

    def test_compare_efficiency(self):
        tracker = TokenTracker()
        _finished(tracker, 't1', 1200, 300)
        comparison = tracker.compare_efficiency('t1')

        assert comparison['token_savings'] == 900
        assert comparison['efficiency_gain'] == 75.0
        assert comparison['normalized_efficiency'] == 75.0
        assert comparison['efficiency_ratio'] == 4.0
        assert comparison['best_tool'] == 'claude_sonnet'
        assert comparison['delegated_cost']['total'] == 300

    def test_complexity_weight_normalizes_gain(self):
        tracker = TokenTracker()
        _finished(tracker, 't1', 1000, 500, complexity=Complexity.HIGH)
        assert tracker.compare_efficiency('t1')['normalized_efficiency'] == 60.0

    def test_zero_direct_cost_has_zero_gain(self):
        tracker = TokenTracker()
        tracker.start_task('t1', 'task')
        tracker.record_delegated_cost('t1', 'haiku', analysis=100)
        tracker.complete_task('t1')

        comparison = tracker.compare_efficiency('t1')
        assert comparison['efficiency_gain'] == 0.0
        assert comparison['efficiency_ratio'] is None

    def test_unknown_task_compares_to_none(self):
        assert TokenTracker().compare_efficiency('missing') is None


class TestStats:

    def test_totals_and_target_progress(self):
        tracker = TokenTracker()
        _finished(tracker, 't1', 1200, 300)
        tracker.start_task('open', 'still running')

        stats = tracker.get_stats()
        assert stats['total_tasks'] == 2
        assert stats['completed_tasks'] == 1
        assert stats['token_savings'] == 900
        assert stats['average_efficiency'] == 75.0
        assert stats['current_multiplier'] == 4.0
        # (4 - 1) / (6 - 1)
        assert stats['target_progress'] == 60.0
        assert stats['tool_breakdown']['claude_sonnet']['task_count'] == 1

    def test_target_progress_is_capped(self):
        tracker = TokenTracker()
        _finished(tracker, 't1', 1000, 100)
        assert tracker.get_stats()['target_progress'] == 100.0

    def test_empty_tracker(self):
        stats = TokenTracker().get_stats()
        assert stats['completed_tasks'] == 0
        assert stats['average_efficiency'] == 0.0
        assert stats['target_progress'] == 0.0

    def test_trend_needs_three_tasks(self):
        tracker = TokenTracker(clock=_counter_clock())
        _finished(tracker, 't1', 400, 200)
        _finished(tracker, 't2', 600, 200)
        assert tracker.get_stats()['trend_analysis']['trend'] == INSUFFICIENT_DATA

    def test_improving_trend(self):
        tracker = TokenTracker(clock=_counter_clock())
        _finished(tracker, 't1', 400, 200)
        _finished(tracker, 't2', 600, 200)
        _finished(tracker, 't3', 800, 200)

        trend = tracker.get_stats()['trend_analysis']
        assert trend['trend'] == 'improving'
        assert trend['improvement'] == 100.0
        assert trend['first_group_avg'] == 2.0
        assert trend['last_group_avg'] == 4.0

    def test_declining_trend(self):
        tracker = TokenTracker(clock=_counter_clock())
        _finished(tracker, 't1', 800, 200)
        _finished(tracker, 't2', 600, 200)
        _finished(tracker, 't3', 400, 200)
        assert tracker.get_stats()['trend_analysis']['trend'] == 'declining'


class TestVisualization:

    def test_visualization_shapes(self):
        tracker = TokenTracker(clock=_counter_clock())
        _finished(tracker, 't1', 1200, 300, complexity=Complexity.LOW)

        data = tracker.get_visualization_data()
        assert len(data['efficiency_trend']) == 1
        assert data['efficiency_trend'][0]['avg_efficiency'] == 4.0
        assert data['tool_comparison'][0]['name'] == 'claude_sonnet'
        assert data['complexity_analysis'][0]['complexity'] == 'low'
        assert data['target_progress']['current_multiplier'] == 4.0
        assert data['target_progress']['target_multiplier'] == 6
