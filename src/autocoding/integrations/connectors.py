# src/autocoding/integrations/connectors.py
"""
Tool and execution connectors.

A ToolConnector turns (task, filled template) into an Implementation; an
ExecutionConnector runs an implementation. Live connectors talk to the
Claude and bolt.diy APIs, simulated ones return canned output after a
configurable delay. create_connectors() picks the backend from config so
the pipeline never branches on dev mode itself.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Optional, Tuple
import logging

import httpx

from autocoding.api.client import ClaudeClient, BoltDiyClient
from autocoding.core.models import Task, Implementation, ExecutionResult
from autocoding.core.prompt_builder import PromptBuilder, longest_code_block
from autocoding.core.tool_selector import DEFAULT_PROFILES

logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    """Rough token count: four characters per token, rounded up."""
    return -(-len(text or '') // 4)


# ============================================================================
# INTERFACES
# ============================================================================

class ToolConnector(ABC):
    """Generates an implementation for a task."""

    name: str = 'unknown'
    display_name: str = 'Unknown'

    @abstractmethod
    def get_capabilities(self) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def implement_task(self, task: Task, template: str) -> Implementation:
        pass

    async def close(self):
        pass


class ExecutionConnector(ABC):
    """Runs an implementation produced by a tool connector."""

    name: str = 'unknown'

    @abstractmethod
    async def execute_task(self, task: Task, implementation: Implementation) -> ExecutionResult:
        pass

    async def close(self):
        pass


# ============================================================================
# LIVE BACKENDS
# ============================================================================

CLAUDE_PROMPT = """# AutoCoding Task Implementation

You are a skilled developer tasked with creating a precise implementation based on the following requirements.
Focus on creating high-quality, clean code that follows best practices.

{template}

## Implementation Guidelines
- Create a complete implementation that fulfills all requirements
- Follow modern development best practices
- Include helpful comments for complex logic
- Ensure the code is well-structured and maintainable
- Consider edge cases and error handling

## Response Format
Provide your implementation in the following format:

```[language]
// Your implementation here
```

Then add a brief explanation of your implementation approach and any notable design decisions.
"""


class ClaudeSonnetConnector(ToolConnector):
    """Delegates implementation to Claude through the Messages API."""

    name = 'claude_sonnet'
    display_name = 'Claude Sonnet'

    def __init__(self, client: ClaudeClient, prompt_builder: Optional[PromptBuilder] = None):
        self.client = client
        self.prompt_builder = prompt_builder or PromptBuilder()

    def get_capabilities(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'display_name': self.display_name,
            'strengths': ['code-generation', 'code-analysis', 'optimization', 'documentation'],
            'max_tokens': self.client.max_tokens,
            'model': self.client.model,
            'simulated': False
        }

    def prepare_prompt(self, task: Task, template: str) -> str:
        return CLAUDE_PROMPT.format(template=template)

    async def implement_task(self, task: Task, template: str) -> Implementation:
        logger.info(f"Implementing task with {self.display_name}: {task.id}")
        response = await self.client.complete(self.prepare_prompt(task, template))
        text = response['text']

        metadata = {
            'timestamp': datetime.now().isoformat(),
            'task_id': task.id,
            'model': response['model']
        }
        if longest_code_block(text) is not None:
            processed = self.prompt_builder.process_output(text, task)
            implementation = processed['implementation']
            metadata['explanation'] = processed['explanation']
        else:
            logger.warning(f"No fenced code in response for {task.id}; keeping raw text")
            implementation = text

        return Implementation(
            implementation=implementation,
            tool=self.name,
            token_usage=response['usage'],
            metadata=metadata
        )

    async def close(self):
        await self.client.close()


class BoltDiyConnector(ExecutionConnector):
    """Runs implementations on the bolt.diy execution function."""

    name = 'bolt_diy'

    def __init__(self, client: BoltDiyClient):
        self.client = client

    async def execute_task(self, task: Task, implementation: Implementation) -> ExecutionResult:
        logger.info(f"Executing task with bolt.diy: {task.id}")
        body = await self.client.execute({
            'taskId': task.id,
            'description': task.description,
            'implementation': implementation.implementation,
            'metadata': {
                'type': task.type.value,
                'complexity': task.complexity.value,
                'features': list(task.features)
            }
        })
        return ExecutionResult(
            success=True,
            result=body.get('result') or {},
            metadata={
                'tool': self.name,
                'timestamp': datetime.now().isoformat(),
                'task_id': task.id,
                **(body.get('metadata') or {})
            }
        )

    async def close(self):
        await self.client.close()


# ============================================================================
# SIMULATED BACKENDS
# ============================================================================

SIMULATED_IMPLEMENTATION = """```javascript
/**
 * Simulated implementation
 * Task: {description}
 */
export function simulatedImplementation() {{
  // Simulated functionality based on task type
  const features = {features};

  try {{
    return {{
      type: "{type}",
      complexity: "{complexity}",
      features
    }};
  }} catch (error) {{
    throw new Error(`Simulated implementation failed: ${{error.message}}`);
  }}
}}
```

Simulated output produced by {tool}."""


class SimulatedToolConnector(ToolConnector):
    """Canned implementation after an artificial delay. No network."""

    def __init__(self, name: str = 'claude_sonnet', display_name: Optional[str] = None,
                 delay: float = 0.0, prompt_builder: Optional[PromptBuilder] = None):
        self.name = name
        self.display_name = display_name or name
        self.delay = delay
        self.prompt_builder = prompt_builder or PromptBuilder()

    def get_capabilities(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'display_name': self.display_name,
            'strengths': ['code-generation'],
            'simulated': True
        }

    async def implement_task(self, task: Task, template: str) -> Implementation:
        logger.info(f"Simulating implementation with {self.name}: {task.id}")
        if self.delay:
            await asyncio.sleep(self.delay)

        prompt = self.prompt_builder.build_prompt(task, template)
        text = SIMULATED_IMPLEMENTATION.format(
            description=task.description,
            features=json.dumps(list(task.features)),
            type=task.type.value,
            complexity=task.complexity.value,
            tool=self.display_name
        )
        implementation = longest_code_block(text) or text
        prompt_tokens = estimate_tokens(prompt)
        completion_tokens = estimate_tokens(implementation)

        return Implementation(
            implementation=implementation,
            tool=self.name,
            token_usage={
                'prompt': prompt_tokens,
                'completion': completion_tokens,
                'total': prompt_tokens + completion_tokens
            },
            metadata={
                'timestamp': datetime.now().isoformat(),
                'task_id': task.id,
                'simulated': True
            }
        )


class SimulatedExecutionConnector(ExecutionConnector):
    """Reports a successful run without executing anything."""

    name = 'bolt_diy'

    def __init__(self, delay: float = 0.0):
        self.delay = delay

    async def execute_task(self, task: Task, implementation: Implementation) -> ExecutionResult:
        logger.info(f"Simulating execution: {task.id}")
        if self.delay:
            await asyncio.sleep(self.delay)

        return ExecutionResult(
            success=True,
            result={
                'status': 'completed',
                'output': 'Simulated execution',
                'metrics': {
                    'execution_time': round(self.delay * 1000),
                    'memory_usage': 1024,
                    'cpu_usage': 0.5
                }
            },
            metadata={
                'tool': self.name,
                'timestamp': datetime.now().isoformat(),
                'task_id': task.id,
                'simulated': True
            }
        )


# ============================================================================
# FACTORY
# ============================================================================

def create_connectors(config: Dict[str, Any],
                      http_client: Optional[httpx.AsyncClient] = None
                      ) -> Tuple[Dict[str, ToolConnector], ExecutionConnector]:
    """
    Build tool connectors and the execution connector from config.

    In dev mode every profiled tool gets a simulated connector. Otherwise the
    live Claude and bolt.diy connectors are built, which raises
    ConfigurationError when credentials are missing.
    """
    app = config.get('app', {})
    prompt_builder = PromptBuilder()

    if app.get('dev_mode'):
        delay = float(app.get('simulated_delay', 0.0) or 0.0)
        tools: Dict[str, ToolConnector] = {
            name: SimulatedToolConnector(name, profile.display_name, delay, prompt_builder)
            for name, profile in DEFAULT_PROFILES.items()
        }
        logger.info(f"Using simulated connectors: {', '.join(tools)}")
        return tools, SimulatedExecutionConnector(delay)

    claude = ClaudeSonnetConnector(ClaudeClient(config, http_client), prompt_builder)
    executor = BoltDiyConnector(BoltDiyClient(config, http_client))
    logger.info("Using live connectors: claude_sonnet, bolt_diy")
    return {claude.name: claude}, executor
