# SPDX-FileCopyrightText: (C) TribeFinder contributors
#
# SPDX-License-Identifier: AGPL-3.0-or-later

"""
Runtime configuration module for TribeFinder.

This module provides thread-safe configuration management with support for:
- Loading configuration from a YAML file
- Reloading configuration on demand
- Default values when no configuration file exists

Configuration file location is determined by:
1. TRIBEFINDER_CONFIG environment variable
2. Default: /etc/tribefinder/config.yaml

Usage:
    from tribefinder import config

    # Get a configuration value
    limit = config.get('max_archive_upload_bytes')

    # Reload configuration
    config.reload_config()
"""

import os
import logging
from threading import Lock

import yaml

logger = logging.getLogger(__name__)

# Thread-safe configuration storage
_config = {}
_config_lock = Lock()

DEFAULT_CONFIG = {
    # Operational fallbacks used after the env override and the project-relative dir
    'backup_dir_default': '/var/www/tribefinder/backups',
    'uploads_dir_default': '/var/www/tribefinder/uploads',
    # Public URL prefix under which uploaded media is served
    'uploads_url_prefix': '/uploads/',
    'tar_binary': 'tar',
    'max_archive_upload_bytes': 500 * 1024 * 1024,
    'missing_uploads_report_limit': 200,
    # Used when no BACKUP_RETENTION_COUNT system setting exists
    'backup_retention_count': 30,
    'restore_confirmation_text': 'RESTORE',
}


def get_config_path():
    """
    Get path to the config file.

    Returns:
        str: Path to the configuration file. Checks TRIBEFINDER_CONFIG
             environment variable first, then falls back to default location.
    """
    return os.environ.get(
        'TRIBEFINDER_CONFIG',
        '/etc/tribefinder/config.yaml'
    )


def _load_yaml_file(config_path):
    """
    Load YAML file.

    Returns:
        dict: Parsed configuration or empty dict if file cannot be parsed.
    """
    try:
        with open(config_path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config file %s: %s", config_path, e)
        return {}

    if not isinstance(data, dict):
        logger.error("Config file %s does not contain a mapping", config_path)
        return {}
    return data


def load_config():
    """
    Load configuration from YAML file.

    If the configuration file does not exist, default values are used.
    If the file exists but cannot be parsed, defaults are used and an
    error is logged.

    Returns:
        dict: The current configuration (copy of internal state).
    """
    global _config
    config_path = get_config_path()

    with _config_lock:
        _config = DEFAULT_CONFIG.copy()

        if os.path.exists(config_path):
            file_config = _load_yaml_file(config_path)
            if file_config:
                _config.update(file_config)
                logger.info("Loaded TribeFinder config from %s", config_path)
        else:
            logger.info("No config file at %s, using defaults", config_path)

        return _config.copy()


def get(key, default=None):
    """
    Get a configuration value (thread-safe).

    Args:
        key: The configuration key to retrieve.
        default: Value to return if key is not found. If None, uses the
                 default from DEFAULT_CONFIG if available.

    Returns:
        The configuration value, or default if not found.
    """
    with _config_lock:
        if default is None and key in DEFAULT_CONFIG:
            default = DEFAULT_CONFIG[key]
        return _config.get(key, default)


def get_all():
    """Get a copy of all configuration values (thread-safe)."""
    with _config_lock:
        return _config.copy()


def reload_config():
    """
    Reload configuration from file.

    Returns:
        dict: The newly loaded configuration.
    """
    result = load_config()
    logger.info("TribeFinder configuration reloaded")
    return result
