# src/autocoding/core/tool_selector.py
"""
Tool Selector - scores the available tools against a task analysis.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional
import logging

from autocoding.core.models import Task, Analysis, Complexity, ToolSelection

logger = logging.getLogger(__name__)


@dataclass
class ToolProfile:
    """Static characteristics of a tool used for scoring."""
    display_name: str
    min_lines: int
    max_lines: int
    strengths: List[str]
    optimal_complexity: Complexity
    token_efficiency: float
    specialties: Dict[str, float] = field(default_factory=dict)
    reasons: List[str] = field(default_factory=list)


DEFAULT_PROFILES: Dict[str, ToolProfile] = {
    'haiku': ToolProfile(
        display_name="Haiku",
        min_lines=20, max_lines=100,
        strengths=['logic'],
        optimal_complexity=Complexity.MEDIUM,
        token_efficiency=0.8,
        specialties={'custom_hooks': 1.0, 'error_handling': 0.9,
                     'accessibility': 0.9, 'state_management': 0.85},
        reasons=['Optimal for logic-heavy tasks',
                 'Best for custom hooks and complex state management',
                 'Strong error handling capabilities']
    ),
    'bolt_new': ToolProfile(
        display_name="Bolt.new",
        min_lines=50, max_lines=300,
        strengths=['ui'],
        optimal_complexity=Complexity.MEDIUM,
        token_efficiency=0.75,
        specialties={'typescript': 0.95, 'component_architecture': 0.9,
                     'ui_patterns': 0.85, 'responsive_design': 0.9},
        reasons=['Ideal for UI components',
                 'Strong TypeScript support',
                 'Excellent for forms and interactive elements']
    ),
    'v0_dev': ToolProfile(
        display_name="v0.dev",
        min_lines=100, max_lines=500,
        strengths=['design'],
        optimal_complexity=Complexity.HIGH,
        token_efficiency=0.7,
        specialties={'design_systems': 1.0, 'theme_management': 0.95,
                     'visual_consistency': 0.9, 'component_library': 0.85},
        reasons=['Perfect for design systems',
                 'Best for theme management',
                 'Good for large-scale visual consistency']
    ),
    'claude_direct': ToolProfile(
        display_name="Claude Direct",
        min_lines=0, max_lines=150,
        strengths=['ui', 'logic'],
        optimal_complexity=Complexity.LOW,
        token_efficiency=1.0,
        specialties={'rapid_prototyping': 0.95, 'simple_functions': 0.9,
                     'basic_components': 0.85, 'quick_fixes': 1.0},
        reasons=['Best for quick prototypes',
                 'Ideal for simple functions',
                 'Perfect for rapid iterations']
    ),
    'claude_sonnet': ToolProfile(
        display_name="Claude Sonnet",
        min_lines=0, max_lines=400,
        strengths=['ui', 'logic', 'design'],
        optimal_complexity=Complexity.MEDIUM,
        token_efficiency=0.9,
        specialties={'typescript': 0.9, 'error_handling': 0.9,
                     'accessibility': 0.85, 'state_management': 0.85},
        reasons=['General-purpose code generation',
                 'Strong analysis and documentation',
                 'Handles medium-sized components and utilities']
    ),
}

REQUIREMENT_INDICATORS: Dict[str, List[str]] = {
    'typescript': ['typescript', 'type-safe', 'typed'],
    'accessibility': ['a11y', 'accessible', 'accessibility', 'wcag'],
    'state_management': ['state', 'store', 'redux'],
    'custom_hooks': ['hook', 'custom hook'],
    'error_handling': ['error', 'exception', 'handling'],
    'responsive_design': ['responsive', 'mobile', 'adaptive'],
    'design_systems': ['design system', 'theme', 'style guide'],
    'rapid_prototyping': ['prototype', 'quick', 'draft'],
    'quick_fixes': ['fix', 'bug', 'patch'],
}


class ToolSelector:
    """Chooses the best-fitting tool for a task."""

    def __init__(self, profiles: Optional[Dict[str, ToolProfile]] = None):
        self.profiles: Dict[str, ToolProfile] = dict(profiles if profiles is not None
                                                     else DEFAULT_PROFILES)

    def register_profile(self, name: str, profile: ToolProfile):
        self.profiles[name] = profile

    def extract_requirements(self, task: Task) -> List[str]:
        description = (task.description or '').lower()
        return [
            requirement for requirement, terms in REQUIREMENT_INDICATORS.items()
            if any(term in description for term in terms)
        ]

    def score_tools(self, analysis: Analysis, requirements: List[str],
                    available: Optional[Iterable[str]] = None) -> Dict[str, float]:
        names = [name for name in self.profiles
                 if available is None or name in set(available)]
        scores = {}
        for name in names:
            profile = self.profiles[name]
            score = 0.0
            if profile.min_lines <= analysis.estimated_lines <= profile.max_lines:
                score += 3
            if analysis.complexity == profile.optimal_complexity:
                score += 2
            if analysis.type.value in profile.strengths:
                score += 2
            score += sum(profile.specialties.get(req, 0.0) for req in requirements)
            scores[name] = round(score, 2)
        return scores

    def select_tool(self, task: Task, analysis: Analysis,
                    available: Optional[Iterable[str]] = None) -> ToolSelection:
        """Highest score wins; ties go to the earlier profile."""
        if available is not None:
            available = list(available)
        requirements = self.extract_requirements(task)
        scores = self.score_tools(analysis, requirements, available)

        best_tool, best_score = None, -1.0
        for name, score in scores.items():
            if score > best_score:
                best_tool, best_score = name, score

        if best_tool is None:
            logger.warning(f"No tool available for task {task.id}")
            return ToolSelection(None, 0.0, scores, requirements,
                                 ['No registered tool matches the task'])

        logger.info(f"Selected tool {best_tool} (score {best_score}) for task {task.id}")
        return ToolSelection(
            selected_tool=best_tool,
            score=best_score,
            scores=scores,
            requirements=requirements,
            reasons=list(self.profiles[best_tool].reasons) or ['Tool selected based on analysis']
        )
