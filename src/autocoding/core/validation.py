# src/autocoding/core/validation.py
"""
Validation utilities - shape checks and a small JSON-schema-like validator.

All sync. Used by the template manager, the orchestrator and the CLI before
any processing happens.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse
import logging

from autocoding.core.errors import ValidationError

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def is_defined(value: Any) -> bool:
    return value is not None


def is_object(value: Any) -> bool:
    return isinstance(value, dict)


def is_string(value: Any) -> bool:
    return isinstance(value, str)


def is_non_empty_string(value: Any) -> bool:
    return is_string(value) and len(value.strip()) > 0


def is_number(value: Any) -> bool:
    # bool is an int subclass; NaN is not a usable number
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return value == value


def is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


def is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def is_non_empty_array(value: Any) -> bool:
    return is_array(value) and len(value) > 0


def is_function(value: Any) -> bool:
    return callable(value)


def is_email(value: Any) -> bool:
    return is_string(value) and EMAIL_PATTERN.match(value) is not None


def is_url(value: Any) -> bool:
    if not is_string(value):
        return False
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc)


_TYPE_CHECKS = {
    'string': is_string,
    'number': is_number,
    'boolean': is_boolean,
    'array': is_array,
    'object': is_object,
    'function': is_function,
}


@dataclass
class ValidationResult:
    """Outcome of validate_object."""
    valid: bool
    errors: Dict[str, str] = field(default_factory=dict)

    def raise_if_invalid(self, message: str = "Validation failed"):
        if not self.valid:
            raise ValidationError(message, dict(self.errors))


def validate_object(obj: Any, schema: Dict[str, Any]) -> ValidationResult:
    """
    Validate an object against a schema.

    Supported keywords: required, properties.{type, enum, minLength, maxLength,
    pattern, format, minimum, maximum, minItems, maxItems, items, validate,
    message}. The first failing constraint per field is reported.
    """
    if not is_object(obj) or not is_object(schema):
        return ValidationResult(False, {'_global': 'Invalid object or schema'})

    errors: Dict[str, str] = {}

    for name in schema.get('required') or []:
        if not is_defined(obj.get(name)):
            errors[name] = f"{name} is required"

    for name, constraints in (schema.get('properties') or {}).items():
        value = obj.get(name)
        if not is_defined(value) or name in errors:
            continue
        error = _check_value(name, value, constraints, errors)
        if error:
            errors[name] = error

    return ValidationResult(not errors, errors)


def _check_value(name: str, value: Any, constraints: Dict[str, Any],
                 errors: Dict[str, str]) -> Optional[str]:
    expected = constraints.get('type')
    check = _TYPE_CHECKS.get(expected)
    if check and not check(value):
        return f"{name} must be a {expected}"

    if 'enum' in constraints and value not in constraints['enum']:
        return f"{name} must be one of: {', '.join(map(str, constraints['enum']))}"

    if is_string(value):
        if constraints.get('minLength') and len(value) < constraints['minLength']:
            return f"{name} must be at least {constraints['minLength']} characters"
        if constraints.get('maxLength') and len(value) > constraints['maxLength']:
            return f"{name} must be at most {constraints['maxLength']} characters"
        if constraints.get('pattern') and not re.search(constraints['pattern'], value):
            return f"{name} must match pattern {constraints['pattern']}"
        fmt = constraints.get('format')
        if fmt == 'email' and not is_email(value):
            return f"{name} must be a valid email"
        if fmt == 'url' and not is_url(value):
            return f"{name} must be a valid URL"

    if is_number(value):
        if is_defined(constraints.get('minimum')) and value < constraints['minimum']:
            return f"{name} must be at least {constraints['minimum']}"
        if is_defined(constraints.get('maximum')) and value > constraints['maximum']:
            return f"{name} must be at most {constraints['maximum']}"

    if is_array(value):
        if constraints.get('minItems') and len(value) < constraints['minItems']:
            return f"{name} must have at least {constraints['minItems']} items"
        if constraints.get('maxItems') and len(value) > constraints['maxItems']:
            return f"{name} must have at most {constraints['maxItems']} items"
        item_schema = constraints.get('items')
        if is_object(item_schema):
            for index, item in enumerate(value):
                item_error = _check_value('item', item, item_schema, errors)
                if item_error:
                    errors[f"{name}[{index}]"] = item_error

    validator = constraints.get('validate')
    if is_function(validator):
        try:
            if not validator(value):
                return constraints.get('message') or f"{name} is invalid"
        except Exception as e:
            return f"Error validating {name}: {e}"

    return None


TASK_SCHEMA = {
    'required': ['id', 'description'],
    'properties': {
        'id': {'type': 'string', 'minLength': 1},
        'description': {'type': 'string', 'minLength': 10},
        'type': {'type': 'string', 'enum': ['ui', 'logic', 'design', 'unknown']},
        'complexity': {'type': 'string', 'enum': ['low', 'medium', 'high']},
        'features': {'type': 'array', 'items': {'type': 'string'}},
        'template': {'type': 'string'},
        'context': {'type': 'object'},
    }
}

TEMPLATE_SCHEMA = {
    'required': ['body', 'defaults'],
    'properties': {
        'body': {'type': 'string', 'minLength': 10},
        'defaults': {
            'type': 'object',
            'validate': lambda d: all(isinstance(k, str) for k in d),
            'message': 'defaults keys must be strings'
        },
    }
}


def validate_task(task: Any) -> ValidationResult:
    """Validate a raw task mapping (wire shape or Task.to_dict())."""
    if is_object(task) and 'id' not in task and 'taskId' in task:
        task = {**task, 'id': task['taskId']}
    return validate_object(task, TASK_SCHEMA)


def validate_template(template: Any) -> ValidationResult:
    """Validate a raw template mapping with `body` and `defaults`."""
    return validate_object(template, TEMPLATE_SCHEMA)


def ensure_valid_task(task: Any) -> None:
    """Raise ValidationError when the task mapping is malformed."""
    result = validate_task(task)
    if not result.valid:
        logger.warning(f"Rejected task: {result.errors}")
    result.raise_if_invalid("Invalid task")
