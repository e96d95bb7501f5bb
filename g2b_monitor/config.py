"""
Configuration loading for the G2B bid monitor.

Settings come from a YAML file layered over built-in defaults. Secrets are
read from the environment (optionally from a ``.env`` file).
"""

import copy
import os
from pathlib import Path
from typing import Dict, Any, Optional
import logging

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when required configuration is missing or unreadable."""


DEFAULT_CONFIG: Dict[str, Any] = {
    'website': {
        'home_url': 'https://www.g2b.go.kr/',
        'home_title': '나라장터',
        'direct_search_url': 'https://www.g2b.go.kr:8101/ep/tbid/tbidFwd.do?taskClCd=1',
    },
    'target': {
        'agency_code': '1613436',
        'agency_name': '국토지리정보원',
        'lookback_months': 6,
    },
    'crawler': {
        'browser': {
            'headless': True,
            'timeout': 30000,
            'viewport': {'width': 1920, 'height': 1080},
            'user_agent': None,
        },
        'wait': {
            'navigation_timeout': 60000,
            'poll_interval': 0.5,
            'popup_pause': 0.5,
            'frame_attempts': 10,
            'frame_interval': 1.0,
            'menu_timeout': 2.0,
            'new_tab_timeout': 5.0,
            'arrival_timeout': 3.0,
            'direct_url_timeout': 4.0,
            'filter_timeout': 2.0,
            'lookup_timeout': 2.0,
            'results_timeout': 5.0,
        },
        'screenshot_path': 'debug_search_result.png',
    },
    'store': {
        'url': None,
        'key': None,
        'table': 'announcements',
        'timeout': 15,
    },
    'notifier': {
        'webhook_url': None,
        'chunk_size': 10,
        'timeout': 15,
    },
    'logging': {
        'level': 'INFO',
        'file': {'directory': 'logs'},
    },
}

ENV_OVERRIDES = {
    'SUPABASE_URL': ('store', 'url'),
    'SUPABASE_KEY': ('store', 'key'),
    'DISCORD_WEBHOOK_URL': ('notifier', 'webhook_url'),
}


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env(config: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Copy secrets from the environment into the configuration."""
    environ = os.environ if environ is None else environ
    for var, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(var)
        if value:
            config.setdefault(section, {})[key] = value
    return config


def load_config(config_path: Optional[Path] = None, env_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file and environment.

    Args:
        config_path: Path to configuration file; defaults apply if it does not exist
        env_file: Optional ``.env`` file to load before reading the environment

    Returns:
        Configuration dictionary
    """
    load_dotenv(dotenv_path=env_file)

    file_config: Dict[str, Any] = {}
    if config_path and Path(config_path).exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Error loading configuration {config_path}: {e}") from e
    elif config_path:
        logger.debug(f"Configuration file {config_path} not found, using defaults")

    config = _deep_merge(DEFAULT_CONFIG, file_config)
    return apply_env(config)


def validate_config(config: Dict[str, Any]) -> None:
    """
    Check that everything needed to run is present.

    Raises:
        ConfigurationError: if the store URL or key is missing
    """
    store = config.get('store', {})
    missing = [
        name for name, value in (('SUPABASE_URL', store.get('url')), ('SUPABASE_KEY', store.get('key')))
        if not value
    ]
    if missing:
        raise ConfigurationError(f"{' and '.join(missing)} are required.")

    if not config.get('notifier', {}).get('webhook_url'):
        logger.warning("DISCORD_WEBHOOK_URL is not set; new items will be stored without notification")
