"""Shared fixtures for the AutoCoding test suite."""

import copy

import pytest

from autocoding.core.config import DEFAULT_CONFIG
from autocoding.core.models import Task, TaskType, Complexity


@pytest.fixture
def dev_config():
    """Config with simulated connectors and no delay."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    config['claude']['api_key'] = None
    config['bolt_diy'] = {'url': None, 'api_key': None}
    config['app']['dev_mode'] = True
    config['app']['simulated_delay'] = 0.0
    return config


@pytest.fixture
def live_config():
    """Config pointing the live clients at a fake host."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    config['claude'].update({'api_key': 'test-key', 'base_url': 'https://claude.test/v1'})
    config['bolt_diy'] = {'url': 'https://bolt.test', 'api_key': 'bolt-key'}
    return config


@pytest.fixture
def login_task():
    return Task(
        id="t1",
        description="Create a login form component with validation",
        type=TaskType.UI,
        complexity=Complexity.MEDIUM
    )


@pytest.fixture
def login_task_data():
    return {
        'id': 't1',
        'description': 'Create a login form component with validation',
        'type': 'ui',
        'complexity': 'medium'
    }
