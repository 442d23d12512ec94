"""
Configuration loading for the gradebook platform.

Values come from built-in defaults, then a ``.env`` file, then the process
environment; explicit overrides passed to ``load_config`` win over all of them.
"""

import copy
import os
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values, find_dotenv

from .core.exceptions import ConfigurationError
from .core.grading_policy import DEFAULT_ACTIVITY_WEIGHT, DEFAULT_ASSESSMENT_WEIGHT

ENV_PREFIX = "GRADEBOOK_"

DEFAULT_CONFIG: Dict[str, Any] = {
    'database_type': 'sqlite',
    'database_config': {
        'database_path': 'gradebook.db',
    },
    'log_level': 'INFO',
    'grading': {
        'assessment_weight': DEFAULT_ASSESSMENT_WEIGHT,
        'activity_weight': DEFAULT_ACTIVITY_WEIGHT,
    },
}

# env suffix -> database_config key
_DATABASE_KEYS = {
    "DATABASE_PATH": "database_path",
    "DATABASE_HOST": "host",
    "DATABASE_PORT": "port",
    "DATABASE_NAME": "database",
    "DATABASE_USER": "user",
    "DATABASE_PASSWORD": "password",
}

_WEIGHT_KEYS = {
    "ASSESSMENT_WEIGHT": "assessment_weight",
    "ACTIVITY_WEIGHT": "activity_weight",
}


def _merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in overrides.items():
        if isinstance(value, Mapping) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def _read_env(env_file: Optional[str]) -> Dict[str, str]:
    path = env_file if env_file is not None else find_dotenv(usecwd=True)
    values = {k: v for k, v in dotenv_values(path).items() if v is not None} if path else {}
    values.update(os.environ)
    return {k[len(ENV_PREFIX):]: v for k, v in values.items() if k.startswith(ENV_PREFIX)}


def load_config(overrides: Optional[Mapping[str, Any]] = None,
                env_file: Optional[str] = None) -> Dict[str, Any]:
    """Build the platform config dict."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    env = _read_env(env_file)

    if "DATABASE_TYPE" in env:
        config['database_type'] = env["DATABASE_TYPE"].lower()
    for suffix, key in _DATABASE_KEYS.items():
        if suffix in env:
            config['database_config'][key] = env[suffix]
    if "port" in config['database_config']:
        config['database_config']['port'] = _number(config['database_config']['port'], "DATABASE_PORT", int)

    if "LOG_LEVEL" in env:
        config['log_level'] = env["LOG_LEVEL"].upper()
    for suffix, key in _WEIGHT_KEYS.items():
        if suffix in env:
            config['grading'][key] = _number(env[suffix], suffix, float)

    if overrides:
        _merge(config, overrides)

    config['database_type'] = str(config['database_type']).lower()
    if config['database_type'] == 'postgresql':
        # the sqlite file path means nothing to a server backend
        config['database_config'].pop('database_path', None)
    if config['database_type'] not in ('sqlite', 'postgresql'):
        raise ConfigurationError(f"Unsupported database type: {config['database_type']}")
    return config


def _number(value: Any, name: str, kind):
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {value!r}", cause=e) from e
