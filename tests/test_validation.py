"""Tests for the validation helpers and the prompt builder."""

import pytest

from autocoding.core.errors import ValidationError
from autocoding.core.models import Task, TaskType, Complexity
from autocoding.core.prompt_builder import PromptBuilder, extract_code_blocks, longest_code_block
from autocoding.core.validation import (
    validate_object,
    validate_task,
    ensure_valid_task,
    is_number,
    is_url,
    is_email,
)


class TestPrimitives:

    def test_is_number_excludes_bool_and_nan(self):
        assert is_number(3)
        assert is_number(2.5)
        assert not is_number(True)
        assert not is_number(float('nan'))

    def test_formats(self):
        assert is_email('dev@example.com')
        assert not is_email('dev@example')
        assert is_url('https://example.com/path')
        assert not is_url('example.com')


class TestSchemas:

    def test_first_failure_per_field(self):
        result = validate_object(
            {'name': 'ab', 'age': -1},
            {'required': ['name', 'email'],
             'properties': {'name': {'type': 'string', 'minLength': 3},
                            'age': {'type': 'number', 'minimum': 0}}}
        )
        assert not result.valid
        assert result.errors == {
            'email': 'email is required',
            'name': 'name must be at least 3 characters',
            'age': 'age must be at least 0',
        }

    def test_custom_validator(self):
        schema = {'properties': {'n': {'validate': lambda v: v % 2 == 0, 'message': 'must be even'}}}
        assert validate_object({'n': 3}, schema).errors == {'n': 'must be even'}

    def test_non_object_input(self):
        assert validate_object(None, {}).errors == {'_global': 'Invalid object or schema'}

    def test_task_accepts_wire_id(self):
        assert validate_task({'taskId': 't1', 'description': 'A long enough description'}).valid

    def test_task_rejects_bad_enum(self):
        result = validate_task({'id': 't1', 'description': 'A long enough description',
                                'type': 'backend'})
        assert 'type' in result.errors

    def test_ensure_valid_task_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            ensure_valid_task({'id': 't1'})
        assert exc_info.value.details == {'description': 'description is required'}


class TestPromptBuilder:

    TASK = Task(id="t1", description="Create a login form", type=TaskType.UI,
                complexity=Complexity.HIGH, features=('validation',),
                context={'props': ['onSubmit', 'initialEmail']})

    def test_prompt_sections(self):
        prompt = PromptBuilder().build_prompt(self.TASK, "Template body")

        assert prompt.startswith('Create a reusable UI component')
        assert '## Specification\nTemplate body' in prompt
        assert '- validation' in prompt
        assert 'Props:\n- onSubmit\n- initialEmail' in prompt
        assert '- Follow React best practices' in prompt
        assert '- Break down complex logic' in prompt
        assert '```react-typescript' in prompt

    def test_logic_tasks_use_function_pattern(self):
        task = Task(id="t", description="Sort users", type=TaskType.LOGIC)
        prompt = PromptBuilder().build_prompt(task, "Body")
        assert prompt.startswith('Implement a function')
        assert 'React' not in prompt

    def test_invalid_input(self):
        with pytest.raises(ValidationError):
            PromptBuilder().build_prompt(self.TASK, None)

    def test_process_output(self):
        output = "Intro\n```ts\nconst a = 1;\n```\nOutro"
        processed = PromptBuilder().process_output(output, self.TASK)
        assert processed['implementation'] == "const a = 1;\n"
        assert processed['explanation'] == "Intro\n\nOutro"
        assert processed['metadata']['task_id'] == 't1'

    def test_process_output_without_code(self):
        with pytest.raises(ValidationError):
            PromptBuilder().process_output("just prose", self.TASK)

    def test_code_block_helpers(self):
        text = "```\nab\n```\n```py\ncd\n```"
        assert extract_code_blocks(text) == ["ab\n", "cd\n"]
        assert longest_code_block(text) == "ab\n"
        assert longest_code_block("none") is None

    def test_crlf_fences(self):
        text = "Here you go:\r\n```js\r\nconst a = 1;\r\n```\r\n"
        assert extract_code_blocks(text) == ["const a = 1;\r\n"]

    def test_fence_info_string_with_attributes(self):
        text = '```tsx title="LoginForm.tsx"\nexport const LoginForm = () => null;\n```'
        assert extract_code_blocks(text) == ["export const LoginForm = () => null;\n"]

    def test_inline_backticks_are_not_fences(self):
        text = "Wrap it in ```x``` quotes.\n```py\nprint(1)\n```"
        assert extract_code_blocks(text) == ["print(1)\n"]
