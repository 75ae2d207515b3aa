# src/autocoding/core/models.py
"""
Data models for the AutoCoding orchestration pipeline.

All sync - no async needed for data structures. These are the values that
flow between the analyzer, template manager, connectors, token tracker and
quality analyzer.

Designed for JSON serialization with to_dict()/from_dict() methods.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Tuple
from enum import Enum
from datetime import datetime

from autocoding.core.errors import ValidationError


# ============================================================================
# ENUMS
# ============================================================================

class TaskType(str, Enum):
    """Kind of work a task describes."""
    UI = "ui"
    LOGIC = "logic"
    DESIGN = "design"
    UNKNOWN = "unknown"


class Complexity(str, Enum):
    """Complexity bucket of a task."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def _enum_value(enum_cls, value, default):
    if value is None or value == "":
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationError(
            f"Invalid {enum_cls.__name__} value: {value}",
            {'allowed': allowed, 'value': value}
        )


# ============================================================================
# TASK & ANALYSIS
# ============================================================================

@dataclass(frozen=True)
class Task:
    """A unit of work described in natural language. Frozen once submitted."""
    id: str
    description: str
    type: TaskType = TaskType.UNKNOWN
    complexity: Complexity = Complexity.MEDIUM
    features: Tuple[str, ...] = ()
    template: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    def to_template_data(self) -> Dict[str, Any]:
        """Flatten the task into placeholder values for template filling."""
        data = {k: v for k, v in self.context.items() if v is not None}
        data.update({
            'id': self.id,
            'description': self.description,
            'type': self.type.value,
            'complexity': self.complexity.value,
        })
        if self.features:
            data['features'] = ', '.join(self.features)
        return data

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'id': self.id,
            'description': self.description,
            'type': self.type.value,
            'complexity': self.complexity.value,
            'features': list(self.features),
            'template': self.template,
            'context': dict(self.context)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Task':
        """Create from dictionary. Accepts both `id` and the wire name `taskId`."""
        task_id = data.get('id') or data.get('taskId')
        if not task_id:
            raise ValidationError("Task id is required", {'id': 'id is required'})

        return cls(
            id=str(task_id),
            description=data.get('description') or '',
            type=_enum_value(TaskType, data.get('type'), TaskType.UNKNOWN),
            complexity=_enum_value(Complexity, data.get('complexity'), Complexity.MEDIUM),
            features=tuple(data.get('features') or ()),
            template=data.get('template'),
            context=dict(data.get('context') or {})
        )


@dataclass
class TokenBudget:
    """Estimated token spend split by phase."""
    analysis: int = 0
    implementation: int = 0
    review: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'analysis': self.analysis,
            'implementation': self.implementation,
            'review': self.review,
            'total': self.total
        }


@dataclass
class Analysis:
    """Result of analyzing a task description. Always recomputed."""
    type: TaskType
    complexity: Complexity
    features: List[str]
    estimated_lines: int
    token_budget: TokenBudget
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'type': self.type.value,
            'complexity': self.complexity.value,
            'features': list(self.features),
            'estimated_lines': self.estimated_lines,
            'token_budget': self.token_budget.to_dict(),
            'recommendations': list(self.recommendations)
        }


# ============================================================================
# TEMPLATES
# ============================================================================

@dataclass
class Template:
    """A parameterized prompt skeleton keyed by (tool, template_type)."""
    tool: str
    template_type: str
    body: str
    defaults: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.tool, self.template_type)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tool': self.tool,
            'template_type': self.template_type,
            'body': self.body,
            'defaults': dict(self.defaults)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Template':
        return cls(
            tool=data['tool'],
            template_type=data['template_type'],
            body=data.get('body') or data.get('template', ''),
            defaults=dict(data.get('defaults') or {})
        )


# ============================================================================
# TOKEN ACCOUNTING
# ============================================================================

@dataclass
class DelegatedCost:
    """Token cost of delegating a task to one tool."""
    analysis: int = 0
    delegation: int = 0
    review: int = 0
    total: int = 0
    tool_name: Optional[str] = None
    time_spent: Optional[float] = None  # minutes

    def to_dict(self) -> Dict[str, Any]:
        return {
            'analysis': self.analysis,
            'delegation': self.delegation,
            'review': self.review,
            'total': self.total,
            'tool_name': self.tool_name,
            'time_spent': self.time_spent
        }


@dataclass
class TokenUsageRecord:
    """Per-task token accounting, from start_task to complete_task."""
    task_id: str
    description: str
    complexity: Complexity
    started_at: float
    direct: int = 0
    direct_time_spent: Optional[float] = None
    delegated: DelegatedCost = field(default_factory=DelegatedCost)
    per_tool: Dict[str, DelegatedCost] = field(default_factory=dict)
    completed: bool = False
    quality_score: float = 0.0
    time_to_complete: float = 0.0  # seconds
    efficiency_ratio: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'task_id': self.task_id,
            'description': self.description,
            'complexity': self.complexity.value,
            'direct': self.direct,
            'direct_time_spent': self.direct_time_spent,
            'delegated': self.delegated.to_dict(),
            'per_tool': {k: v.to_dict() for k, v in self.per_tool.items()},
            'completed': self.completed,
            'quality_score': self.quality_score,
            'time_to_complete': self.time_to_complete,
            'efficiency_ratio': self.efficiency_ratio
        }


# ============================================================================
# QUALITY
# ============================================================================

@dataclass
class MetricScore:
    """Score of one rubric metric."""
    raw_score: float
    weight: float
    weighted_score: float
    description: str
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'raw_score': self.raw_score,
            'weight': self.weight,
            'weighted_score': self.weighted_score,
            'description': self.description,
            'strengths': list(self.strengths),
            'weaknesses': list(self.weaknesses)
        }


@dataclass
class QualityAnalysis:
    """Weighted rubric result for one implementation."""
    overall_score: float
    detailed_scores: Dict[str, MetricScore]
    tool: str = "unknown"
    token_usage: Dict[str, int] = field(default_factory=lambda: {'total': 0})
    code_length: int = 0
    strengths: List[str] = field(default_factory=list)
    weaknesses: List[str] = field(default_factory=list)
    improvement_suggestions: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def raw_score(self, metric: str) -> float:
        """Raw score of a metric, 0 when the metric was not scored."""
        score = self.detailed_scores.get(metric)
        return score.raw_score if score else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'overall_score': self.overall_score,
            'detailed_scores': {k: v.to_dict() for k, v in self.detailed_scores.items()},
            'implementation': {
                'tool': self.tool,
                'token_usage': dict(self.token_usage),
                'code_length': self.code_length
            },
            'analysis': {
                'strengths': list(self.strengths),
                'weaknesses': list(self.weaknesses),
                'improvement_suggestions': list(self.improvement_suggestions)
            },
            'error': self.error
        }


# ============================================================================
# CONNECTOR RESULTS
# ============================================================================

@dataclass
class Implementation:
    """Output of a tool connector."""
    implementation: str
    tool: str
    success: bool = True
    token_usage: Dict[str, int] = field(
        default_factory=lambda: {'prompt': 0, 'completion': 0, 'total': 0}
    )
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'implementation': self.implementation,
            'token_usage': dict(self.token_usage),
            'metadata': {'tool': self.tool, **self.metadata},
            'error': self.error
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Implementation':
        """Create from dictionary. The tool name may live in metadata."""
        metadata = dict(data.get('metadata') or {})
        tool = data.get('tool') or metadata.pop('tool', None) or 'unknown'
        metadata.pop('tool', None)
        implementation = data.get('implementation')
        return cls(
            implementation=implementation if isinstance(implementation, str) else '',
            tool=tool,
            success=data.get('success', True),
            token_usage=dict(data.get('token_usage') or data.get('tokenUsage') or {'total': 0}),
            metadata=metadata,
            error=data.get('error')
        )


@dataclass
class ExecutionResult:
    """Output of an execution connector."""
    success: bool
    result: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'result': dict(self.result),
            'metadata': dict(self.metadata)
        }


@dataclass
class ToolSelection:
    """Outcome of scoring the available tools for a task."""
    selected_tool: Optional[str]
    score: float
    scores: Dict[str, float] = field(default_factory=dict)
    requirements: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'selected_tool': self.selected_tool,
            'score': self.score,
            'scores': dict(self.scores),
            'requirements': list(self.requirements),
            'reasons': list(self.reasons)
        }


@dataclass
class TaskResult:
    """Combined result of running one task through the pipeline."""
    task_id: str
    success: bool
    analysis: Optional[Analysis] = None
    tool_selection: Optional[ToolSelection] = None
    template_type: Optional[str] = None
    template: Optional[str] = None
    implementation: Optional[Implementation] = None
    execution: Optional[ExecutionResult] = None
    quality: Optional[QualityAnalysis] = None
    efficiency: Optional[Dict[str, Any]] = None
    token_usage: Dict[str, int] = field(default_factory=lambda: {'total': 0})
    error: Optional[Dict[str, Any]] = None
    completed_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'task_id': self.task_id,
            'success': self.success,
            'analysis': self.analysis.to_dict() if self.analysis else None,
            'tool_selection': self.tool_selection.to_dict() if self.tool_selection else None,
            'template': {
                'type': self.template_type,
                'content': self.template
            },
            'implementation': self.implementation.to_dict() if self.implementation else None,
            'execution': self.execution.to_dict() if self.execution else None,
            'quality': self.quality.to_dict() if self.quality else None,
            'efficiency': self.efficiency,
            'token_usage': dict(self.token_usage),
            'error': self.error,
            'completed_at': self.completed_at.isoformat()
        }
