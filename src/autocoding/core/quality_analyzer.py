# src/autocoding/core/quality_analyzer.py
"""
Quality Analyzer - scores generated code against a weighted rubric.

Scoring is pluggable (ScoringStrategy). The analyzer owns code extraction,
weighted aggregation and the strength/weakness/suggestion summaries, and it
fails soft: any extraction or scoring error becomes a zero-score result.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union
import logging

from autocoding.core.models import (
    Task, TaskType, Implementation, MetricScore, QualityAnalysis
)
from autocoding.core.errors import AnalysisError
from autocoding.core.prompt_builder import longest_code_block

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Metric:
    weight: float
    description: str
    criteria: tuple


METRICS: Dict[str, Metric] = {
    'functionality': Metric(0.20, 'Meets functional requirements', (
        'Implements all specified requirements',
        'Handles expected inputs and outputs',
        'Covers edge cases appropriately',
        'Provides expected behavior',
    )),
    'code_quality': Metric(0.15, 'Code meets quality standards', (
        'Follows consistent code style',
        'Uses appropriate naming conventions',
        'Contains helpful comments',
        'Uses appropriate abstractions',
    )),
    'architecture': Metric(0.15, 'Architectural quality', (
        'Follows appropriate design patterns',
        'Has clear separation of concerns',
        'Shows good component structure',
        'Maintains proper dependencies',
    )),
    'accessibility': Metric(0.10, 'Accessibility compliance', (
        'Follows WCAG guidelines where applicable',
        'Uses semantic HTML (for UI components)',
        'Implements proper keyboard navigation',
        'Provides appropriate ARIA attributes',
    )),
    'performance': Metric(0.10, 'Performance optimization', (
        'Optimizes for computational efficiency',
        'Minimizes unnecessary operations',
        'Handles large datasets appropriately',
        'Uses efficient algorithms and data structures',
    )),
    'visual_implementation': Metric(0.10, 'Visual implementation quality', (
        'Follows design specifications',
        'Implements responsive behavior',
        'Shows attention to visual details',
        'Provides appropriate visual feedback',
    )),
    'error_handling': Metric(0.10, 'Error handling quality', (
        'Handles errors gracefully',
        'Provides informative error messages',
        'Implements appropriate error recovery',
        'Prevents error cascades',
    )),
    'token_efficiency': Metric(0.10, 'Token usage efficiency', (
        'Uses tokens efficiently',
        'Avoids unnecessary verbosity',
        'Implements compact but readable solutions',
        'Shows awareness of token optimization',
    )),
}

GENERIC_SUGGESTIONS: Dict[str, List[str]] = {
    'functionality': [
        'Ensure all edge cases are handled properly',
        'Validate inputs more thoroughly',
        'Add more comprehensive testing',
    ],
    'code_quality': [
        'Improve naming conventions for better readability',
        'Add more explanatory comments',
        'Refactor complex functions into smaller ones',
    ],
    'architecture': [
        'Apply appropriate design patterns',
        'Improve separation of concerns',
        'Reduce component coupling',
    ],
    'accessibility': [
        'Add ARIA attributes for better screen reader support',
        'Improve keyboard navigation',
        'Ensure sufficient color contrast',
    ],
    'performance': [
        'Optimize algorithms for better time complexity',
        'Reduce unnecessary calculations',
        'Implement caching for repeated operations',
    ],
    'visual_implementation': [
        'Improve responsive behavior',
        'Enhance visual feedback for user actions',
        'Ensure consistent styling',
    ],
    'error_handling': [
        'Add more specific error messages',
        'Implement graceful fallbacks',
        'Prevent error cascades',
    ],
    'token_efficiency': [
        'Reduce code redundancy',
        'Use more concise but readable structures',
        'Optimize for token efficiency without sacrificing readability',
    ],
}

STRENGTH_THRESHOLD = 8.0
WEAKNESS_THRESHOLD = 6.0
SUGGESTION_THRESHOLD = 7.0


# ============================================================================
# SCORING STRATEGIES
# ============================================================================

class ScoringStrategy(ABC):
    """Maps code to {metric: {'raw': float, 'strengths': [...], 'weaknesses': [...]}}."""

    @abstractmethod
    def score(self, code: str, implementation: Implementation,
              task: Optional[Task]) -> Dict[str, Dict[str, Any]]:
        pass


class FixedScoringStrategy(ScoringStrategy):
    """Constant rubric scores; a stand-in until real static analysis exists."""

    SCORES: Dict[str, Dict[str, Any]] = {
        'functionality': {
            'raw': 8.5,
            'strengths': ['Implements all required features',
                          'Handles expected input formats',
                          'Provides appropriate outputs'],
            'weaknesses': ['Could handle more edge cases']
        },
        'code_quality': {
            'raw': 8.0,
            'strengths': ['Consistent naming conventions', 'Good code organization'],
            'weaknesses': ['Some functions could use more comments']
        },
        'architecture': {
            'raw': 7.5,
            'strengths': ['Good separation of concerns', 'Appropriate component structure'],
            'weaknesses': ['Some components have mixed responsibilities']
        },
        'accessibility': {
            'raw': 6.5,
            'strengths': ['Basic ARIA attributes used'],
            'weaknesses': ['Keyboard navigation could be improved',
                           'Missing some screen reader support']
        },
        'performance': {
            'raw': 7.0,
            'strengths': ['Efficient core algorithms'],
            'weaknesses': ['Some unnecessary re-calculations']
        },
        'visual_implementation': {
            'raw': 8.0,
            'strengths': ['Good responsive design', 'Consistent styling'],
            'weaknesses': ['Visual feedback could be enhanced']
        },
        'error_handling': {
            'raw': 7.0,
            'strengths': ['Basic error handling in place'],
            'weaknesses': ['Error messages could be more specific',
                           'Missing some recovery mechanisms']
        },
        'token_efficiency': {
            'raw': 8.5,
            'strengths': ['Concise implementation', 'Good balance of readability and brevity'],
            'weaknesses': ['Some redundancy in utility functions']
        },
    }

    def score(self, code, implementation, task):
        return {
            metric: {'raw': values['raw'],
                     'strengths': list(values['strengths']),
                     'weaknesses': list(values['weaknesses'])}
            for metric, values in self.SCORES.items()
        }


class PatternScoringStrategy(FixedScoringStrategy):
    """
    Fixed baselines adjusted by regex signals found in the code.

    Each signal is (metric, pattern, adjustment, note, applies_when_found).
    A positive adjustment with a match adds a strength; a negative one adds
    a weakness. Signals with applies_when_found=False fire when the pattern
    is absent.
    """

    SIGNALS = [
        ('error_handling', r'\btry\b|\bcatch\b|\bexcept\b|\.catch\(', 1.0,
         'Explicit error handling blocks', True),
        ('error_handling', r'\btry\b|\bcatch\b|\bexcept\b|\.catch\(', -2.0,
         'No error handling found', False),
        ('accessibility', r'aria-\w+|role=|alt=|tabIndex|htmlFor', 1.5,
         'Uses ARIA and semantic attributes', True),
        ('code_quality', r'^\s*(//|/\*|\*|#)', 0.5,
         'Code is commented', True),
        ('code_quality', r'^\s*(print\(|console\.log\()', -1.0,
         'Debug prints left in code', True),
        ('code_quality', r'(password|secret|api_?key|token)\s*[:=]\s*[\'"][^\'"]+[\'"]', -1.5,
         'Hardcoded secrets in code', True),
        ('code_quality', r'\b(TODO|FIXME|XXX|HACK)\b', -0.5,
         'Unfinished TODO/FIXME markers', True),
        ('performance', r'useMemo|useCallback|React\.memo|lru_cache|memoize', 1.0,
         'Memoizes repeated work', True),
        ('visual_implementation', r'@media|\b(sm|md|lg):|breakpoint', 0.5,
         'Responsive styling', True),
        ('architecture', r'\bexport\b|\bclass\b|\bdef\b|\binterface\b', 0.5,
         'Clear module boundaries', True),
    ]

    UI_ONLY = {'accessibility', 'visual_implementation'}

    def score(self, code, implementation, task):
        scores = super().score(code, implementation, task)
        is_ui = task is not None and task.type in (TaskType.UI, TaskType.DESIGN)

        for metric, pattern, adjustment, note, when_found in self.SIGNALS:
            found = re.search(pattern, code, re.MULTILINE | re.IGNORECASE) is not None
            if found != when_found:
                continue
            self._adjust(scores[metric], adjustment, note)

        if is_ui and not re.search(r'aria-\w+|role=', code, re.IGNORECASE):
            self._adjust(scores['accessibility'], -2.0, 'UI code without ARIA attributes')

        if not is_ui:
            # Visual metrics carry no signal for non-UI code
            for metric in self.UI_ONLY:
                scores[metric]['weaknesses'] = []

        line_count = len(code.splitlines())
        if line_count < 3:
            self._adjust(scores['functionality'], -3.0, 'Implementation is too short to be complete')
        elif line_count > 400:
            self._adjust(scores['token_efficiency'], -1.5, 'Implementation is unusually long')

        return scores

    @staticmethod
    def _adjust(entry: Dict[str, Any], adjustment: float, note: str):
        entry['raw'] = round(min(10.0, max(0.0, entry['raw'] + adjustment)), 1)
        (entry['strengths'] if adjustment > 0 else entry['weaknesses']).append(note)


SCORING_STRATEGIES = {
    'fixed': FixedScoringStrategy,
    'pattern': PatternScoringStrategy,
}


def get_scoring_strategy(name: str) -> ScoringStrategy:
    try:
        return SCORING_STRATEGIES[name]()
    except KeyError:
        raise ValueError(f"Unknown scoring strategy: {name}. "
                         f"Expected one of {sorted(SCORING_STRATEGIES)}")


# ============================================================================
# ANALYZER
# ============================================================================

ImplementationInput = Union[Implementation, Dict[str, Any], str]


def coerce_implementation(implementation: ImplementationInput) -> Implementation:
    if isinstance(implementation, Implementation):
        return implementation
    if isinstance(implementation, str):
        return Implementation(implementation=implementation, tool='unknown')
    if isinstance(implementation, dict):
        return Implementation.from_dict(implementation)
    return Implementation(implementation='', tool='unknown')


class QualityAnalyzer:
    """Weighted rubric scoring with a pluggable strategy."""

    def __init__(self, strategy: Optional[ScoringStrategy] = None):
        self.metrics = METRICS
        self.strategy = strategy or FixedScoringStrategy()

    def extract_code(self, implementation: Implementation) -> str:
        """Longest fenced block, else the raw text. Empty code is an AnalysisError."""
        text = implementation.implementation
        if not isinstance(text, str):
            raise AnalysisError("Implementation is not text")

        code = longest_code_block(text)
        if code is None:
            code = text
        if not code.strip():
            raise AnalysisError("No code found in implementation")
        return code

    def analyze_quality(self, implementation: ImplementationInput,
                        task: Optional[Task] = None) -> QualityAnalysis:
        impl = coerce_implementation(implementation)

        try:
            code = self.extract_code(impl)
            scores = self.strategy.score(code, impl, task)
            detailed = self._weigh(scores)
        except AnalysisError as e:
            logger.error(f"Quality analysis failed for {impl.tool}: {e.message}")
            return self._failed_analysis(impl, e.message)
        except Exception as e:
            logger.exception(f"Scoring strategy crashed for {impl.tool}")
            return self._failed_analysis(impl, str(e) or type(e).__name__)

        total = sum(score.weighted_score for score in detailed.values())
        analysis = QualityAnalysis(
            overall_score=round(total, 1),
            detailed_scores=detailed,
            tool=impl.tool,
            token_usage=dict(impl.token_usage or {'total': 0}),
            code_length=len(code.split('\n')),
            strengths=self.aggregate_strengths(detailed),
            weaknesses=self.aggregate_weaknesses(detailed),
            improvement_suggestions=self.generate_improvement_suggestions(detailed)
        )
        logger.debug(f"Quality for {impl.tool}: {analysis.overall_score}")
        return analysis

    @staticmethod
    def _failed_analysis(impl: Implementation, message: str) -> QualityAnalysis:
        return QualityAnalysis(
            overall_score=0.0,
            detailed_scores={},
            tool=impl.tool,
            token_usage=dict(impl.token_usage or {'total': 0}),
            code_length=0,
            weaknesses=[f"Analysis failed: {message}"],
            improvement_suggestions=['No suggestions available due to analysis failure'],
            error=message
        )

    def _weigh(self, scores: Dict[str, Dict[str, Any]]) -> Dict[str, MetricScore]:
        detailed = {}
        for metric, details in self.metrics.items():
            entry = scores.get(metric)
            if entry is None:
                continue
            raw = float(entry['raw'])
            detailed[metric] = MetricScore(
                raw_score=raw,
                weight=details.weight,
                weighted_score=raw * details.weight,
                description=details.description,
                strengths=list(entry.get('strengths') or []),
                weaknesses=list(entry.get('weaknesses') or [])
            )
        return detailed

    # ========================================================================
    # SUMMARIES
    # ========================================================================

    def aggregate_strengths(self, detailed: Dict[str, MetricScore]) -> List[str]:
        strengths = []
        for score in detailed.values():
            if score.raw_score >= STRENGTH_THRESHOLD:
                strengths.append(f"Strong {score.description.lower()} ({score.raw_score}/10)")
                strengths.extend(f"- {item}" for item in score.strengths[:2])
        return strengths

    def aggregate_weaknesses(self, detailed: Dict[str, MetricScore]) -> List[str]:
        weaknesses = []
        for score in detailed.values():
            if score.raw_score < WEAKNESS_THRESHOLD:
                weaknesses.append(f"Weak {score.description.lower()} ({score.raw_score}/10)")
                weaknesses.extend(f"- {item}" for item in score.weaknesses[:2])
        return weaknesses

    def generate_improvement_suggestions(self, detailed: Dict[str, MetricScore]) -> List[str]:
        suggestions = []
        for score in detailed.values():
            if score.raw_score < SUGGESTION_THRESHOLD:
                suggestions.append(f"Improve {score.description.lower()} ({score.raw_score}/10)")
                suggestions.extend(f"- {item}" for item in score.weaknesses)

        if suggestions:
            return suggestions

        # Nothing below threshold: polish the two lowest metrics
        lowest = sorted(detailed.items(), key=lambda item: item[1].raw_score)[:2]
        for metric, score in lowest:
            suggestions.append(f"Further enhance {score.description.lower()} ({score.raw_score}/10)")
            items = score.weaknesses or get_generic_suggestions(metric)
            suggestions.extend(f"- {item}" for item in items)
        return suggestions


def get_generic_suggestions(metric: str) -> List[str]:
    return GENERIC_SUGGESTIONS.get(metric, ['Consider further improvements in this area'])
