# src/autocoding/core/comparator.py
"""
Implementation Comparator - ranks several implementations of one task and
summarizes where the tools agree and differ.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
import logging

from autocoding.core.models import Task, Implementation, QualityAnalysis
from autocoding.core.quality_analyzer import (
    QualityAnalyzer, METRICS, STRENGTH_THRESHOLD, WEAKNESS_THRESHOLD, coerce_implementation
)

logger = logging.getLogger(__name__)


@dataclass
class RankedImplementation:
    tool: str
    analysis: QualityAnalysis
    implementation: Implementation

    def to_dict(self) -> Dict[str, Any]:
        return {'tool': self.tool, 'analysis': self.analysis.to_dict()}


@dataclass
class ComparisonResult:
    """Outcome of comparing implementations. Failed comparisons carry `error`."""
    ranked: List[RankedImplementation] = field(default_factory=list)
    metric_comparisons: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    findings: Dict[str, List[str]] = field(default_factory=dict)
    task_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def best_implementation(self) -> Optional[RankedImplementation]:
        return self.ranked[0] if self.ranked else None

    @property
    def best_tool(self) -> Optional[str]:
        return self.ranked[0].tool if self.ranked else None

    @property
    def implementation_count(self) -> int:
        return len(self.ranked)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ranked': [item.to_dict() for item in self.ranked],
            'metric_comparisons': self.metric_comparisons,
            'findings': self.findings,
            'task_id': self.task_id,
            'best_tool': self.best_tool,
            'implementation_count': self.implementation_count,
            'error': self.error
        }


class ImplementationComparator:
    """Scores implementations with a QualityAnalyzer and compares them."""

    def __init__(self, quality_analyzer: Optional[QualityAnalyzer] = None):
        self.quality_analyzer = quality_analyzer or QualityAnalyzer()
        self.metrics = list(METRICS)

    def compare(self, implementations: Sequence[Any], task: Task) -> ComparisonResult:
        if not implementations:
            message = 'No implementations provided for comparison'
            logger.error(f"Implementation comparison failed: {message}")
            return ComparisonResult(
                findings={
                    'overall': [f"Comparison failed: {message}"],
                    'strengths': [],
                    'weaknesses': [],
                    'patterns': [],
                    'recommendations': []
                },
                task_id=task.id if task else None,
                error=message
            )

        analyses = []
        for implementation in implementations:
            impl = coerce_implementation(implementation)
            analyses.append(RankedImplementation(
                tool=impl.tool,
                analysis=self.quality_analyzer.analyze_quality(impl, task),
                implementation=impl
            ))

        # sorted() is stable, so equal scores keep input order
        ranked = sorted(analyses, key=lambda item: item.analysis.overall_score, reverse=True)
        metric_comparisons = self.compare_metrics(analyses)

        result = ComparisonResult(
            ranked=ranked,
            metric_comparisons=metric_comparisons,
            findings=self.generate_findings(ranked, metric_comparisons, task),
            task_id=task.id
        )
        logger.info(f"Compared {len(ranked)} implementations for {task.id}: "
                    f"best={result.best_tool}")
        return result

    def compare_metrics(self, analyses: List[RankedImplementation]) -> Dict[str, Dict[str, Any]]:
        comparisons = {}
        for metric in self.metrics:
            scores = [{'tool': item.tool, 'score': item.analysis.raw_score(metric)}
                      for item in analyses]
            ranked = sorted(scores, key=lambda entry: entry['score'], reverse=True)
            comparisons[metric] = {
                'scores': scores,
                'ranked': ranked,
                'top_performer': ranked[0],
                'average_score': sum(entry['score'] for entry in scores) / len(scores),
                'score_spread': ranked[0]['score'] - ranked[-1]['score']
            }
        return comparisons

    def generate_findings(self, ranked: List[RankedImplementation],
                          metric_comparisons: Dict[str, Dict[str, Any]],
                          task: Task) -> Dict[str, List[str]]:
        count = len(ranked)
        best = ranked[0]

        overall = [
            f"Analyzed {count} implementations for task: {task.id or 'Unknown'}",
            f"Best performing tool: {best.tool} with score {best.analysis.overall_score}/10",
        ]
        if count > 1:
            spread = best.analysis.overall_score - ranked[-1].analysis.overall_score
            overall.append(f"Score range: {spread:.1f} points between highest and lowest "
                           f"implementations")

        return {
            'overall': overall,
            'strengths': [f"Common strength: {metric} - {n}/{count} implementations"
                          for metric, n in self.find_common_strengths(ranked)],
            'weaknesses': [f"Common weakness: {metric} - {n}/{count} implementations"
                           for metric, n in self.find_common_weaknesses(ranked)],
            'patterns': self.identify_patterns(ranked, metric_comparisons),
            'recommendations': self.generate_recommendations(ranked, metric_comparisons, task)
        }

    def _majority(self, ranked: List[RankedImplementation], predicate) -> List[tuple]:
        """(metric, count) for metrics where the predicate holds for more than half."""
        result = []
        for metric in self.metrics:
            n = sum(1 for item in ranked if predicate(item.analysis.raw_score(metric)))
            if n > len(ranked) / 2:
                result.append((metric, n))
        return result

    def find_common_strengths(self, ranked: List[RankedImplementation]) -> List[tuple]:
        return self._majority(ranked, lambda score: score >= STRENGTH_THRESHOLD)

    def find_common_weaknesses(self, ranked: List[RankedImplementation]) -> List[tuple]:
        return self._majority(ranked, lambda score: score < WEAKNESS_THRESHOLD)

    def identify_patterns(self, ranked: List[RankedImplementation],
                          metric_comparisons: Dict[str, Dict[str, Any]]) -> List[str]:
        top = ranked[:math.ceil(len(ranked) / 3)]
        if not top:
            return ['Insufficient implementations to identify patterns']

        patterns = []
        tool_counts: Dict[str, int] = {}
        for item in top:
            tool_counts[item.tool] = tool_counts.get(item.tool, 0) + 1
        dominant = [tool for tool, n in tool_counts.items() if n > 1]
        if dominant:
            patterns.append(f"Top implementations tend to use: {', '.join(dominant)}")

        top_tools = {item.tool for item in top}
        strong = []
        for metric, comparison in metric_comparisons.items():
            overlap = [entry['tool'] for entry in comparison['ranked']
                       if entry['score'] >= STRENGTH_THRESHOLD and entry['tool'] in top_tools]
            if overlap and len(overlap) >= math.ceil(len(top) / 2):
                strong.append(metric)
        if strong:
            patterns.append(f"Top implementations excel in: {', '.join(strong)}")

        return patterns

    def generate_recommendations(self, ranked: List[RankedImplementation],
                                 metric_comparisons: Dict[str, Dict[str, Any]],
                                 task: Task) -> List[str]:
        recommendations = [
            f'For tasks similar to "{task.id or "this type"}", use {ranked[0].tool} '
            f'as the primary tool'
        ]

        for metric, comparison in metric_comparisons.items():
            leader = comparison['ranked'][0]
            if leader['score'] >= STRENGTH_THRESHOLD and comparison['score_spread'] >= 2:
                recommendations.append(
                    f"For {metric}, consider {leader['tool']} ({leader['score']}/10)"
                )

        low_functionality = sum(1 for item in ranked
                                if item.analysis.raw_score('functionality') < 7)
        if low_functionality > len(ranked) / 2:
            recommendations.append(
                'Consider improving task descriptions with more specific requirements'
            )

        failing = [metric for metric, _ in self.find_common_weaknesses(ranked)]
        if failing:
            recommendations.append(f"Update templates to emphasize: {', '.join(failing)}")

        return recommendations
