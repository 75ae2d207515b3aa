# src/autocoding/core/prompt_builder.py
"""
Prompt Builder - wraps a filled template into a delegation prompt and
pulls the implementation back out of the tool's reply.
"""

import re
from datetime import datetime
from typing import Any, Dict, List, Optional
import logging

from autocoding.core.models import Task, TaskType, Complexity
from autocoding.core.errors import ValidationError

logger = logging.getLogger(__name__)

# Opening fence at line start; the info string may carry attributes and a CRLF ending
CODE_BLOCK_PATTERN = re.compile(r"^[ \t]*```[^`\n]*\n(.*?)```", re.DOTALL | re.MULTILINE)

PROMPT_PATTERNS: Dict[str, Dict[str, Any]] = {
    'ui': {
        'prefix': 'Create a reusable UI component with the following specifications:',
        'sections': ['props', 'styling', 'behavior', 'accessibility'],
        'format': 'react-typescript'
    },
    'function': {
        'prefix': 'Implement a function that meets these requirements:',
        'sections': ['input', 'output', 'constraints', 'edge_cases'],
        'format': 'typescript'
    },
    'utility': {
        'prefix': 'Create a utility module with the following functionality:',
        'sections': ['features', 'api', 'usage', 'performance'],
        'format': 'typescript'
    }
}

# Task types without their own pattern borrow one
TYPE_TO_PATTERN = {
    TaskType.UI: 'ui',
    TaskType.LOGIC: 'function',
    TaskType.DESIGN: 'ui',
    TaskType.UNKNOWN: 'function',
}

QUALITY_CRITERIA = [
    'Clean, maintainable code',
    'Proper error handling',
    'Type safety',
    'Performance optimization',
    'Documentation',
]


def extract_code_blocks(text: str) -> List[str]:
    """Contents of every fenced code block, in order."""
    if not isinstance(text, str):
        return []
    return CODE_BLOCK_PATTERN.findall(text)


def longest_code_block(text: str) -> Optional[str]:
    blocks = extract_code_blocks(text)
    if not blocks:
        return None
    # max() keeps the first of equal-length blocks
    return max(blocks, key=len)


class PromptBuilder:
    """Builds delegation prompts and processes tool output."""

    def __init__(self, patterns: Optional[Dict[str, Dict[str, Any]]] = None):
        self.patterns = patterns or PROMPT_PATTERNS

    def build_prompt(self, task: Task, template: str) -> str:
        if not isinstance(task, Task) or not isinstance(template, str):
            logger.error("Failed to build prompt: invalid task or template")
            raise ValidationError("Invalid task or template")

        pattern = self.patterns.get(TYPE_TO_PATTERN.get(task.type, 'function'),
                                    self.patterns['function'])

        return f"""{pattern['prefix']}

## Context
{self._build_context(task)}

## Requirements
{self._format_requirements(task, pattern)}

## Specification
{template}

## Implementation Guidelines
{self._build_guidelines(task)}

## Expected Format
```{pattern['format']}
// Implementation here
```

## Quality Criteria
""" + '\n'.join(f"- {criterion}" for criterion in QUALITY_CRITERIA) + '\n'

    def _build_context(self, task: Task) -> str:
        lines = [f"Type: {task.type.value}", f"Complexity: {task.complexity.value}"]
        if task.features:
            lines.append('Features:')
            lines.extend(f"- {feature}" for feature in task.features)
        return '\n'.join(lines)

    def _format_requirements(self, task: Task, pattern: Dict[str, Any]) -> str:
        lines = [task.description]
        for section in pattern['sections']:
            value = task.context.get(section)
            if not value:
                continue
            lines.append(f"\n{section.replace('_', ' ').capitalize()}:")
            if isinstance(value, (list, tuple)):
                lines.extend(f"- {item}" for item in value)
            elif isinstance(value, dict):
                lines.extend(f"- {key}: {item}" for key, item in value.items())
            else:
                lines.append(str(value))
        return '\n'.join(lines)

    def _build_guidelines(self, task: Task) -> str:
        guidelines = [
            'Follow these implementation guidelines:',
            '- Use TypeScript for type safety',
            '- Implement comprehensive error handling',
            '- Add documentation for public APIs',
            '- Optimize for performance where possible',
        ]
        if task.type == TaskType.UI:
            guidelines += [
                '- Follow React best practices',
                '- Implement proper accessibility',
                '- Use CSS-in-JS or CSS modules',
                '- Consider responsive design',
            ]
        if task.complexity == Complexity.HIGH:
            guidelines += [
                '- Break down complex logic',
                '- Add detailed comments',
                '- Consider edge cases',
                '- Implement proper validation',
            ]
        return '\n'.join(guidelines)

    def process_output(self, output: str, task: Task) -> Dict[str, Any]:
        """Split a tool reply into the largest code block and the prose around it."""
        if not isinstance(output, str):
            raise ValidationError("Invalid output format")

        implementation = longest_code_block(output)
        if implementation is None:
            raise ValidationError("No code implementation found", {'task_id': task.id})

        return {
            'implementation': implementation,
            'explanation': CODE_BLOCK_PATTERN.sub('', output).strip(),
            'metadata': {
                'task_id': task.id,
                'type': task.type.value,
                'timestamp': datetime.now().isoformat()
            }
        }
