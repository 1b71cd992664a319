"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.formacli/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from formacli.domain.models.common import (
    DEFAULT_BASE_DELAY_SECONDS,
    DEFAULT_JITTER_SECONDS,
    DEFAULT_MAX_DELAY_SECONDS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_STATUSES,
    RetryPolicy,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".formacli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_CREDENTIALS_FILE = DEFAULT_CONFIG_DIR / "credentials.json"
ENV_FILE_NAME = ".env"

DEFAULT_BASE_URL = "http://localhost:3001/api"
DEFAULT_QUEUE_DELAY_SECONDS = 0.1
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('api.base_url')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def _coerce(value: str) -> Any:
    """Converts common string forms from the environment to Python values."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased, dots replaced by underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper().replace('.', '_')
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_base_url() -> str:
    """Base URL of the API, without trailing slash."""
    url = get_config('FORMACLI_BASE_URL') or get_config('api.base_url') or DEFAULT_BASE_URL
    return str(url).rstrip('/')


def get_request_timeout() -> float:
    """Default timeout in seconds applied to each HTTP call."""
    return float(get_config('api.timeout', DEFAULT_REQUEST_TIMEOUT_SECONDS))


def get_queue_delay() -> float:
    """Fixed pause in seconds between two queued dispatches."""
    return float(get_config('api.queue_delay', DEFAULT_QUEUE_DELAY_SECONDS))


def get_retry_policy() -> RetryPolicy:
    """Builds the immutable retry policy from configuration."""
    statuses = get_config('retry.statuses', None)
    if isinstance(statuses, str):
        statuses = [int(s) for s in statuses.split(',') if s.strip()]
    elif isinstance(statuses, int):
        statuses = [statuses]
    policy = RetryPolicy(
        max_retries=int(get_config('retry.max_retries', DEFAULT_MAX_RETRIES)),
        base_delay=float(get_config('retry.base_delay', DEFAULT_BASE_DELAY_SECONDS)),
        max_delay=float(get_config('retry.max_delay', DEFAULT_MAX_DELAY_SECONDS)),
        jitter=float(get_config('retry.jitter', DEFAULT_JITTER_SECONDS)),
        retry_statuses=statuses if statuses else DEFAULT_RETRY_STATUSES,
    )
    logger.debug(f"Retry policy: {policy}")
    return policy


def get_credentials_file() -> Path:
    """Path of the JSON file holding the persisted tokens."""
    path = get_config('FORMACLI_CREDENTIALS_FILE') or get_config('auth.credentials_file')
    return Path(path).expanduser() if path else DEFAULT_CREDENTIALS_FILE


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
