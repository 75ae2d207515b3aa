# src/autocoding/core/task_analyzer.py
"""
Task Analyzer - turns a free-text task description into type, complexity,
detected features, an estimated size and a token budget.

All sync, pure keyword matching. Never raises: missing fields fall back to
neutral values.
"""

from typing import Dict, List, Optional, Tuple
import logging

from autocoding.core.models import Task, Analysis, TokenBudget, TaskType, Complexity

logger = logging.getLogger(__name__)


# Ordered: first matching category wins
TYPE_PATTERNS: List[Tuple[TaskType, List[str]]] = [
    (TaskType.UI, ['ui', 'component', 'interface', 'view', 'page', 'form', 'button', 'input']),
    (TaskType.LOGIC, ['function', 'utility', 'algorithm', 'hook', 'service', 'calculation', 'processor']),
    (TaskType.DESIGN, ['design system', 'theme', 'style guide', 'style', 'pattern']),
]

# Ordered: detection order follows this list, not the alphabet
FEATURE_PATTERNS: List[Tuple[str, List[str]]] = [
    ('state_management', ['state', 'store', 'context', 'reducer', 'usestate', 'usereducer', 'redux']),
    ('async_operations', ['async', 'promise', 'fetch', 'api', 'request', 'useeffect']),
    ('accessibility', ['a11y', 'accessibility', 'accessible', 'wcag', 'aria', 'keyboard navigation']),
    ('animations', ['animation', 'animate', 'transition', 'motion']),
    ('validation', ['validation', 'validate', 'form', 'input', 'sanitize']),
    ('typescript', ['typescript', 'type-safe', 'typed', 'interface', 'type definition']),
    ('responsive_design', ['responsive', 'mobile', 'adaptive', 'breakpoint']),
]

FEATURE_POINTS: Dict[str, int] = {
    'state_management': 2,
    'async_operations': 2,
}

HIGH_COMPLEXITY_WORDS = ['complex', 'advanced', 'sophisticated', 'enterprise']
LOW_COMPLEXITY_WORDS = ['simple', 'basic', 'trivial', 'minimal']

BASE_LINES: Dict[TaskType, int] = {
    TaskType.UI: 50,
    TaskType.LOGIC: 20,
    TaskType.DESIGN: 100,
    TaskType.UNKNOWN: 30,
}

COMPLEXITY_MULTIPLIERS: Dict[Complexity, float] = {
    Complexity.LOW: 0.7,
    Complexity.MEDIUM: 1.0,
    Complexity.HIGH: 1.5,
}

FEATURE_LINES: Dict[str, int] = {
    'state_management': 50,
    'async_operations': 40,
    'accessibility': 30,
    'animations': 30,
    'validation': 30,
    'typescript': 20,
    'responsive_design': 30,
}

TOKENS_PER_LINE = 10
PHASE_SPLIT = (0.2, 0.6, 0.2)  # analysis, implementation, review


class TaskAnalyzer:
    """Keyword-driven task analysis."""

    def __init__(self, default_type: TaskType = TaskType.UI):
        # Unmatched descriptions are treated as UI work unless configured otherwise
        self.default_type = default_type

    def analyze(self, task: Task) -> Analysis:
        """Analyze a task. Pure function of the description and declared features."""
        task_type = self.determine_type(task)
        features = self.detect_features(task)
        complexity = self.assess_complexity(task, features)
        estimated_lines = self.estimate_lines(task_type, complexity, features)

        analysis = Analysis(
            type=task_type,
            complexity=complexity,
            features=features,
            estimated_lines=estimated_lines,
            token_budget=self.estimate_token_budget(estimated_lines),
            recommendations=self.generate_recommendations(features, complexity)
        )

        logger.debug(f"Analyzed task {task.id or 'unknown'}: {analysis.type.value}/"
                     f"{analysis.complexity.value}, features={features}")
        return analysis

    def determine_type(self, task: Task) -> TaskType:
        description = _lower(task.description)
        for task_type, keywords in TYPE_PATTERNS:
            if any(keyword in description for keyword in keywords):
                return task_type
        return self.default_type

    def detect_features(self, task: Task) -> List[str]:
        """Features named in the description or declared on the task, in group order."""
        description = _lower(task.description)
        declared = {_lower(feature) for feature in task.features or ()}

        features = []
        for feature, keywords in FEATURE_PATTERNS:
            if feature in declared or any(keyword in description for keyword in keywords):
                features.append(feature)
        return features

    def assess_complexity(self, task: Task, features: Optional[List[str]] = None) -> Complexity:
        description = _lower(task.description)

        # Explicit wording wins over the feature score
        if any(word in description for word in HIGH_COMPLEXITY_WORDS):
            return Complexity.HIGH
        if any(word in description for word in LOW_COMPLEXITY_WORDS):
            return Complexity.LOW

        if features is None:
            features = self.detect_features(task)
        score = sum(FEATURE_POINTS.get(feature, 1) for feature in features)

        if score <= 2:
            return Complexity.LOW
        if score <= 5:
            return Complexity.MEDIUM
        return Complexity.HIGH

    def estimate_lines(self, task_type: TaskType, complexity: Complexity,
                       features: List[str]) -> int:
        base = BASE_LINES.get(task_type, BASE_LINES[TaskType.UNKNOWN])
        multiplier = COMPLEXITY_MULTIPLIERS.get(complexity, 1.0)
        extra = sum(FEATURE_LINES.get(feature, 0) for feature in features)
        return max(0, round(base * multiplier + extra))

    def estimate_token_budget(self, estimated_lines: int) -> TokenBudget:
        total = estimated_lines * TOKENS_PER_LINE
        analysis_share, implementation_share, review_share = PHASE_SPLIT
        return TokenBudget(
            analysis=round(total * analysis_share),
            implementation=round(total * implementation_share),
            review=round(total * review_share),
            total=total
        )

    def generate_recommendations(self, features: List[str], complexity: Complexity) -> List[str]:
        recommendations = [
            'Use clear and descriptive variable names',
            'Include comprehensive error handling',
            'Add detailed comments for complex logic',
        ]

        if 'state_management' in features:
            recommendations.append('Implement efficient state management patterns')
        if 'async_operations' in features:
            recommendations.append('Use async/await for better readability')
            recommendations.append('Implement proper error handling for async operations')
        if 'accessibility' in features:
            recommendations.append('Follow WCAG 2.1 guidelines')
            recommendations.append('Implement proper ARIA attributes')
        if 'validation' in features:
            recommendations.append('Validate and sanitize all user input')
        if 'responsive_design' in features:
            recommendations.append('Design mobile-first with explicit breakpoints')

        if complexity == Complexity.HIGH:
            recommendations.append('Break down complex logic into smaller functions')
            recommendations.append('Consider implementing unit tests')

        return recommendations


def _lower(value) -> str:
    return value.lower() if isinstance(value, str) else ''
