# src/autocoding/core/template_manager.py
"""
Template Manager - tool-keyed registry of prompt templates.

Templates are stored under a (tool, template_type) key. Filling never raises:
a placeholder resolves to the task's field, then the template default, and
otherwise stays in the output literally.
"""

import re
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union
import logging

import yaml

from autocoding.core.models import Task, Template
from autocoding.core.validation import validate_template, is_object, is_string
from autocoding.core.errors import ValidationError

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r'\{(\w+)\}')


# ============================================================================
# FILL HELPERS
# ============================================================================

def fill_template(template: str, data: Dict[str, Any],
                  defaults: Optional[Dict[str, Any]] = None) -> str:
    """Replace every {name} with data[name], else defaults[name], else leave it."""
    if not is_string(template):
        logger.error("Invalid template: not a string")
        return ''
    if not is_object(data):
        logger.error("Invalid data: not a mapping")
        return template
    if not is_object(defaults):
        defaults = {}

    def _replace(match):
        name = match.group(1)
        value = data.get(name)
        if value is None:
            value = defaults.get(name)
        if value is None:
            return match.group(0)
        if isinstance(value, (list, tuple)):
            return ', '.join(str(item) for item in value)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template)


def identify_placeholders(template: str) -> List[str]:
    """Unique placeholder names in order of first appearance."""
    if not is_string(template):
        return []
    return list(dict.fromkeys(PLACEHOLDER_PATTERN.findall(template)))


def calculate_template_completeness(template: str, data: Dict[str, Any],
                                    defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Percentage of placeholders that data or defaults can fill."""
    if not is_string(template) or not is_object(data):
        return {'completeness': 0, 'missing_placeholders': [], 'filled_placeholders': []}

    defaults = defaults or {}
    placeholders = identify_placeholders(template)
    if not placeholders:
        return {'completeness': 100, 'missing_placeholders': [], 'filled_placeholders': []}

    filled = [p for p in placeholders if data.get(p) is not None or defaults.get(p) is not None]
    missing = [p for p in placeholders if p not in filled]

    return {
        'completeness': round(len(filled) / len(placeholders) * 100),
        'missing_placeholders': missing,
        'filled_placeholders': filled
    }


def create_template_builder(template: str,
                            defaults: Optional[Dict[str, Any]] = None) -> Callable[..., str]:
    """Bind a template and its defaults into a fill function."""
    if not is_string(template):
        logger.error("Invalid template: not a string")
        return lambda data=None: ''
    return lambda data=None: fill_template(template, data or {}, defaults)


# ============================================================================
# BUILT-IN TEMPLATES
# ============================================================================

BUILTIN_TEMPLATES: Dict[str, Dict[str, Dict[str, Any]]] = {
    'claude_sonnet': {
        'basic': {
            'body': """# Task Implementation Specification

## Description
{description}

## Requirements
{requirements}

## Technical Details
- Type: {type}
- Complexity: {complexity}
- Features: {features}

## Implementation Guidelines
- Follow clean code principles
- Include proper error handling
- Consider edge cases

## Expected Output
- Complete implementation
- Test cases""",
            'defaults': {
                'requirements': '- List key requirements\n- Include acceptance criteria',
                'type': 'component',
                'complexity': 'medium',
                'features': 'none'
            }
        },
        'component': {
            'body': """# Component Implementation

## Component Overview
{description}

## Props Interface
{propsInterface}

## Component Requirements
- State Management: {stateManagement}
- Event Handling: {eventHandling}
- Styling: {styling}
- Accessibility: {accessibility}

## Technical Specifications
- Framework: {framework}
- Dependencies: {dependencies}
- Browser Support: {browserSupport}

## Implementation Notes
{implementationNotes}""",
            'defaults': {
                'propsInterface': '- Define component props\n- Specify types and validation',
                'stateManagement': 'Local state management',
                'eventHandling': 'Standard event handlers',
                'styling': 'CSS Modules',
                'accessibility': 'WCAG 2.1 compliance',
                'framework': 'React',
                'dependencies': 'Standard dependencies',
                'browserSupport': 'Modern browsers',
                'implementationNotes': '- Add implementation details\n- Note any special considerations'
            }
        },
        'function': {
            'body': """# Function Implementation

## Function Purpose
{description}

## Input/Output Contract
Input:
{inputContract}

Output:
{outputContract}

## Implementation Requirements
- Error Handling: {errorHandling}
- Performance: {performance}
- Testing: {testing}

## Technical Context
{technicalContext}""",
            'defaults': {
                'inputContract': '- Define input parameters\n- Specify types and validation',
                'outputContract': '- Define return type\n- Specify error cases',
                'errorHandling': 'Comprehensive error handling required',
                'performance': 'O(n) time complexity',
                'testing': 'Unit tests required',
                'technicalContext': '- Add technical details\n- Note dependencies and requirements'
            }
        }
    },
    'bolt_diy': {
        'ui': {
            'body': """Create a reusable UI component.

## Description
{description}

## Props
{props}

## Styling
{styling}

## Behavior
{behavior}

## Accessibility
{accessibility}""",
            'defaults': {
                'props': 'Typed props with sensible defaults',
                'styling': 'Tailwind CSS',
                'behavior': 'Controlled inputs with clear event callbacks',
                'accessibility': 'Semantic markup, ARIA labels, keyboard support'
            }
        },
        'function': {
            'body': """Implement a function that meets these requirements.

## Description
{description}

## Input
{input}

## Output
{output}

## Constraints
{constraints}

## Edge Cases
{edgeCases}""",
            'defaults': {
                'input': 'Typed parameters, validated on entry',
                'output': 'Typed return value',
                'constraints': 'No side effects',
                'edgeCases': 'Empty input, invalid types, boundary values'
            }
        },
        'utility': {
            'body': """Create a utility module with the following functionality.

## Description
{description}

## API
{api}

## Usage
{usage}

## Performance
{performance}""",
            'defaults': {
                'api': 'Small, composable exported functions',
                'usage': 'Include one usage example per export',
                'performance': 'Avoid repeated work; memoize where useful'
            }
        },
        'default': {
            'body': """Implement the following task.

## Description
{description}

## Details
- Type: {type}
- Complexity: {complexity}
- Features: {features}

## Notes
{notes}""",
            'defaults': {
                'type': 'unknown',
                'complexity': 'medium',
                'features': 'none',
                'notes': 'Follow the project conventions'
            }
        }
    }
}

# Ordered selection rules: (candidate type names, type-name keywords, description keywords)
SELECTION_RULES: List[Tuple[Tuple[str, ...], Tuple[str, ...], Tuple[str, ...]]] = [
    (('ui', 'component'), ('ui', 'component'), ('component', 'interface')),
    (('function',), ('function', 'logic'), ('function', 'algorithm')),
    (('utility',), ('utility',), ('utility', 'helper')),
    (('default', 'basic'), (), ()),
]


class TemplateManager:
    """Registry of templates keyed by (tool, template_type)."""

    def __init__(self, include_builtin: bool = True):
        self.templates: Dict[Tuple[str, str], Template] = {}
        if include_builtin:
            for tool, types in BUILTIN_TEMPLATES.items():
                for template_type, spec in types.items():
                    self._store(Template(tool, template_type, spec['body'], dict(spec['defaults'])))

    def _store(self, template: Template):
        self.templates[template.key] = template

    def list_tools(self) -> List[str]:
        return list(dict.fromkeys(tool for tool, _ in self.templates))

    def get_template_types(self, tool: str) -> List[str]:
        return [template_type for (t, template_type) in self.templates if t == tool]

    def get_template_object(self, tool: str, template_type: str) -> Optional[Template]:
        return self.templates.get((tool, template_type))

    def get_best_template_type(self, tool: str, task: Task) -> Optional[str]:
        """Pick a template type for the task; first matching rule wins."""
        available = set(self.get_template_types(tool))
        if not available:
            logger.warning(f"No templates registered for tool: {tool}")
            return None

        task_type = task.type.value if task.type else ''
        description = (task.description or '').lower()

        for candidates, type_keywords, description_keywords in SELECTION_RULES:
            matches = (
                not type_keywords
                or any(keyword in task_type for keyword in type_keywords)
                or any(keyword in description for keyword in description_keywords)
            )
            if not matches:
                continue
            for candidate in candidates:
                if candidate in available:
                    return candidate

        return None

    def get_template(self, tool: str, template_type: str, task: Task) -> Optional[str]:
        """Return the template filled from the task, or None when it doesn't exist."""
        template = self.get_template_object(tool, template_type)
        if not template:
            logger.warning(f"Template type not found: {tool}/{template_type}")
            return None
        return fill_template(template.body, task.to_template_data(), template.defaults)

    def generate_template(self, tool: str, task: Task) -> Tuple[Optional[str], Optional[str]]:
        """Select and fill the best template. Returns (template_type, filled)."""
        template_type = self.get_best_template_type(tool, task)
        if template_type is None:
            return None, None
        return template_type, self.get_template(tool, template_type, task)

    def create_template(self, tool: str, template_type: str, body: str,
                        defaults: Optional[Dict[str, str]] = None) -> bool:
        """Add a template. False when the (tool, type) pair already exists."""
        if (tool, template_type) in self.templates:
            logger.warning(f"Template already exists: {tool}/{template_type}")
            return False
        self._store(self._build(tool, template_type, body, defaults or {}))
        logger.info(f"Created template {tool}/{template_type}")
        return True

    def update_template(self, tool: str, template_type: str, body: Optional[str] = None,
                        defaults: Optional[Dict[str, str]] = None) -> bool:
        """Replace body and/or defaults. False when the template doesn't exist."""
        existing = self.templates.get((tool, template_type))
        if not existing:
            logger.warning(f"Cannot update missing template: {tool}/{template_type}")
            return False
        self._store(self._build(
            tool, template_type,
            body if body is not None else existing.body,
            defaults if defaults is not None else existing.defaults
        ))
        logger.info(f"Updated template {tool}/{template_type}")
        return True

    def delete_template(self, tool: str, template_type: str) -> bool:
        if self.templates.pop((tool, template_type), None) is None:
            return False
        logger.info(f"Deleted template {tool}/{template_type}")
        return True

    def load_templates(self, path: Union[str, Path]) -> int:
        """
        Merge templates from a YAML file shaped like
        {tool: {template_type: {body: ..., defaults: {...}}}}.
        Existing keys are overwritten. Returns the number loaded.
        """
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValidationError(f"Template file must contain a mapping: {path}")

        count = 0
        for tool, types in data.items():
            for template_type, spec in (types or {}).items():
                spec = spec or {}
                self._store(self._build(tool, template_type, spec.get('body'),
                                        spec.get('defaults') or {}))
                count += 1

        logger.info(f"Loaded {count} templates from {path}")
        return count

    def _build(self, tool: str, template_type: str, body: Any,
               defaults: Dict[str, Any]) -> Template:
        result = validate_template({'body': body, 'defaults': defaults})
        result.raise_if_invalid(f"Invalid template {tool}/{template_type}")
        return Template(tool, template_type, body, {k: str(v) for k, v in defaults.items()})
