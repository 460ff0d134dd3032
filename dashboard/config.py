"""
Dashboard Configuration
=======================

Settings come from a YAML file (``$MISSION_CONTROL_CONFIG`` or
``config/settings.yaml``) with environment variables layered on top.
Secrets (tokens) are normally supplied through the environment only.
"""

import copy
from functools import lru_cache
import os
import logging
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from tracker.store import database_config_from_env

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(os.environ.get("MISSION_CONTROL_CONFIG", "config/settings.yaml"))

DEFAULTS: Dict[str, Any] = {
    'database': {},
    'github': {
        'token': None,
        'api_url': 'https://api.github.com',
        'per_page': 100,
        'timeout': 30,
    },
    'gateway': {
        'url': None,
        'token': None,
        'run_timeout_seconds': 3600,
        'cleanup': 'keep',
        'agent_id': 'default',
        'request_timeout': 30,
    },
    'dashboard': {
        'host': '0.0.0.0',
        'port': 8080,
        'poll_interval_ms': 5000,
        'cors_origins': ['http://localhost:3000'],
    },
    'logging': {
        'level': 'INFO',
    },
}

# (section, key, env var)
ENV_OVERRIDES = [
    ('github', 'token', 'GITHUB_TOKEN'),
    ('github', 'api_url', 'GITHUB_API_URL'),
    ('gateway', 'url', 'OPENCLAW_GATEWAY_URL'),
    ('gateway', 'token', 'OPENCLAW_GATEWAY_TOKEN'),
    ('dashboard', 'host', 'DASHBOARD_HOST'),
    ('dashboard', 'port', 'DASHBOARD_PORT'),
    ('logging', 'level', 'LOG_LEVEL'),
]


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Load settings from YAML, then apply environment overrides."""
    path = Path(path) if path else CONFIG_PATH
    file_config: Dict[str, Any] = {}
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        logger.info(f"Loaded settings from {path}")

    config = _merge(DEFAULTS, file_config)

    for section, key, env_var in ENV_OVERRIDES:
        value = os.environ.get(env_var)
        if value:
            config[section][key] = value
    config['dashboard']['port'] = int(config['dashboard']['port'])

    # Database: an explicit file section wins, otherwise detect from env
    if not config['database'].get('type'):
        config['database'] = database_config_from_env(config['database'].get('path'))

    return config


@lru_cache()
def get_settings() -> Dict[str, Any]:
    """Settings for request handlers (FastAPI dependency)."""
    return load_config()
