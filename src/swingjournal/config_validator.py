"""Configuration validation and normalization for SwingJournal."""

import logging
import os
from typing import Any, Dict

import pytz

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

STORAGE_PATH_ENV = 'SWINGJOURNAL_STORAGE_PATH'


def validate_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate and normalize the configuration.

    Checks required sections, validates ranges and fills defaults for
    optional settings.

    Args:
        config: Raw configuration dictionary

    Returns:
        Validated and normalized configuration

    Raises:
        ConfigError: If configuration is invalid
    """
    if not isinstance(config, dict):
        raise ConfigError("Configuration must be a mapping")

    # Check required top-level sections
    required_sections = ['account', 'storage']
    for section in required_sections:
        if section not in config:
            raise ConfigError(f"Missing required configuration section: {section}")
        if not isinstance(config[section], dict):
            raise ConfigError(f"Configuration section '{section}' must be a mapping")

    config = _validate_account(config)
    config = _validate_storage(config)
    config = _validate_display(config)

    return config


def _validate_percent(section: Dict[str, Any], name: str, default: float) -> None:
    if name not in section:
        section[name] = default
    value = section[name]
    if not isinstance(value, (int, float)) or not 0 < value <= 100:
        raise ConfigError(f"{name} must be in (0, 100], got {value}")


def _validate_account(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate account sizing settings."""
    account = config['account']

    if 'size' not in account:
        raise ConfigError("Missing 'size' in account configuration")

    size = account['size']
    if not isinstance(size, (int, float)) or size < 0:
        raise ConfigError("Account size must be a non-negative number")
    if size == 0:
        logger.warning("Account size is 0; sizing is disabled and open heat reads CASH")

    _validate_percent(account, 'default_risk_percent', 1.0)
    _validate_percent(account, 'default_max_percent', 25.0)

    if account['default_risk_percent'] > 5:
        logger.warning(
            f"default_risk_percent of {account['default_risk_percent']}% is unusually high"
        )

    return config


def _validate_storage(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate storage settings, applying the environment override."""
    storage = config['storage']

    override = os.getenv(STORAGE_PATH_ENV)
    if override:
        logger.debug(f"Storage path overridden by {STORAGE_PATH_ENV}: {override}")
        storage['path'] = override

    if not storage.get('path'):
        raise ConfigError("Missing 'path' in storage configuration")

    if 'debounce_seconds' not in storage:
        storage['debounce_seconds'] = 0.5
    if storage['debounce_seconds'] < 0:
        raise ConfigError("debounce_seconds cannot be negative")

    return config


def _validate_display(config: Dict[str, Any]) -> Dict[str, Any]:
    """Validate display settings."""
    display = config.get('display') or {}
    config['display'] = display

    if 'timezone' not in display:
        display['timezone'] = 'America/New_York'

    try:
        pytz.timezone(display['timezone'])
    except pytz.UnknownTimeZoneError:
        raise ConfigError(f"Unknown timezone: {display['timezone']}")

    return config
