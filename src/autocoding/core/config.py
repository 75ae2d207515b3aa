# src/autocoding/core/config.py
"""
Configuration loading - YAML file plus .env overrides.
"""

import os
import copy
from pathlib import Path
from typing import Dict, Any, Optional
import logging

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'claude': {
        'base_url': 'https://api.anthropic.com/v1',
        'model': 'claude-3-sonnet-20240229',
        'api_key': '${ANTHROPIC_API_KEY}',  # Will be replaced by env var
        'anthropic_version': '2023-06-01',
        'max_tokens': 10000,
        'temperature': 0.7
    },
    'bolt_diy': {
        'url': '${BOLT_DIY_URL}',
        'api_key': '${BOLT_DIY_API_KEY}'
    },
    'app': {
        'dev_mode': False,
        'request_timeout': 30.0,
        'max_retries': 5,
        'backoff_initial': 1.0,
        'backoff_max': 60.0,
        'simulated_delay': 0.0,
        'scoring': 'fixed',
        'templates_file': None,
        'log_level': 'INFO'
    }
}

# env var -> (section, key); first non-empty wins
ENV_OVERRIDES = [
    ('ANTHROPIC_API_KEY', 'claude', 'api_key'),
    ('CLAUDE_API_KEY', 'claude', 'api_key'),
    ('CLAUDE_MODEL', 'claude', 'model'),
    ('CLAUDE_API_URL', 'claude', 'base_url'),
    ('BOLT_DIY_URL', 'bolt_diy', 'url'),
    ('SUPABASE_URL', 'bolt_diy', 'url'),
    ('BOLT_DIY_API_KEY', 'bolt_diy', 'api_key'),
    ('SUPABASE_ANON_KEY', 'bolt_diy', 'api_key'),
    ('LOG_LEVEL', 'app', 'log_level'),
]

PLACEHOLDER_VALUES = {'', 'your_api_key_here'}


def load_env() -> Optional[Path]:
    """Try to load a .env file from the usual locations."""
    possible_paths = [
        Path.cwd() / ".env",
        Path.home() / ".autocoding.env",
    ]

    for env_path in possible_paths:
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)
            logger.debug(f"Loaded .env from: {env_path}")
            return env_path

    logger.debug("No .env file found in standard locations")
    return None


def load_config(config_path: Optional[str] = "config.yaml",
                use_env: bool = True) -> Dict[str, Any]:
    """
    Load configuration from YAML with defaults and env overrides.

    A missing file at an explicit path is created with the defaults. Passing
    None skips the file entirely.
    """
    if use_env:
        load_env()

    config: Dict[str, Any] = {}
    if config_path:
        path = Path(config_path)
        if not path.exists():
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, 'w') as f:
                yaml.dump(DEFAULT_CONFIG, f, default_flow_style=False)
            logger.info(f"Created default config at {path}")
        else:
            with open(path, 'r') as f:
                loaded = yaml.safe_load(f)
            if isinstance(loaded, dict):
                config = loaded

    # Set defaults if not present
    for section, defaults in DEFAULT_CONFIG.items():
        values = config.setdefault(section, {})
        if not isinstance(values, dict):
            values = config[section] = {}
        for key, value in defaults.items():
            values.setdefault(key, copy.deepcopy(value))

    _resolve_env_templates(config)

    if use_env:
        _apply_env_overrides(config)

    return config


def _resolve_env_templates(config: Dict[str, Any]):
    """Replace "${VAR}" strings with the variable's value (or None)."""
    for values in config.values():
        if not isinstance(values, dict):
            continue
        for key, value in values.items():
            if isinstance(value, str) and value.startswith('${') and value.endswith('}'):
                values[key] = os.getenv(value[2:-1])


def _apply_env_overrides(config: Dict[str, Any]):
    seen = set()
    for env_var, section, key in ENV_OVERRIDES:
        if (section, key) in seen:
            continue
        value = os.getenv(env_var)
        if value and value not in PLACEHOLDER_VALUES:
            config[section][key] = value
            seen.add((section, key))

    dev_mode = os.getenv("AUTOCODING_DEV_MODE")
    if dev_mode is not None:
        config['app']['dev_mode'] = dev_mode.strip().lower() in ('1', 'true', 'yes', 'on')


def mask_secret(value: Optional[str]) -> str:
    """Mask a secret for display, keeping the last four characters."""
    if not value:
        return ''
    if len(value) <= 8:
        return '***'
    return "•" * (len(value) - 4) + value[-4:]
