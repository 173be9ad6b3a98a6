"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.licensegate/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from licensegate.domain.errors import ConfigurationError
from licensegate.domain.models.common import Timeouts
from licensegate.domain.models.verification import (
    DEFAULT_BASE_DELAY_SECONDS, DEFAULT_MAX_RETRIES, RetryPolicy,
)

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".licensegate"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_CACHE_DIR = DEFAULT_CONFIG_DIR / "cache"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "LICENSEGATE_"

DEFAULT_PURCHASE_URL = "https://play.google.com/store/apps/details?id=com.widdlereader.app"
DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60
DEFAULT_TIMEOUT_SECONDS = 5.0

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(mapping: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('retry.max_retries')."""
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Testing overrides
    2. Environment Variables (LICENSEGATE_RETRY_MAX_RETRIES, ...)
    3. .env file
    4. YAML configuration file
    5. Default values passed to get_config

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
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Failed to load or parse YAML config {config_file}: {e}") from e
        if isinstance(yaml_config, dict):
            _config.update(_flatten(yaml_config))
            logger.info(f"Loaded configuration from YAML: {config_file}")
        elif yaml_config is not None:
            logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    # 3. Environment variables are read on demand in get_config

    _loaded = True
    logger.info("Configuration loading process completed.")


def env_var_name(key: str) -> str:
    """Maps 'retry.max_retries' to 'LICENSEGATE_RETRY_MAX_RETRIES'."""
    return f"{ENV_PREFIX}{key.upper().replace('.', '_')}"


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Args:
        key: The dotted configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Typed Accessors ---

def _get_number(key: str, default: float, minimum: float = 0.0) -> float:
    value = get_config(key, default)
    if isinstance(value, bool):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}") from e
    if number < minimum:
        raise ConfigurationError(f"'{key}' must be >= {minimum}, got {number}")
    return number


def _get_bool(key: str, default: bool) -> bool:
    flag = get_config(key, default)
    if isinstance(flag, str):
        if flag.lower() in ("true", "1", "yes"):
            return True
        if flag.lower() in ("false", "0", "no"):
            return False
        raise ConfigurationError(f"'{key}' must be a boolean, got {flag!r}")
    if flag is None:
        return default
    return bool(flag)


def get_retry_policy() -> RetryPolicy:
    """Builds the retry policy from 'retry.max_retries' and 'retry.base_delay_seconds'."""
    max_retries = _get_number("retry.max_retries", DEFAULT_MAX_RETRIES)
    if max_retries != int(max_retries):
        raise ConfigurationError(f"'retry.max_retries' must be an integer, got {max_retries}")
    base_delay = _get_number("retry.base_delay_seconds", DEFAULT_BASE_DELAY_SECONDS)
    return RetryPolicy(max_retries=int(max_retries), base_delay=base_delay)


def get_reset_on_manual() -> bool:
    """Whether a manual check restarts the retry budget."""
    return _get_bool("retry.reset_on_manual", True)


def get_timeouts() -> Timeouts:
    return Timeouts(
        initialize=_get_number("timeouts.initialize_seconds", DEFAULT_TIMEOUT_SECONDS),
        is_entitled=_get_number("timeouts.is_entitled_seconds", DEFAULT_TIMEOUT_SECONDS),
    )


def get_cache_dir() -> Path:
    return Path(str(get_config("cache.directory", DEFAULT_CACHE_DIR))).expanduser()


def get_cache_ttl() -> float:
    return _get_number("cache.ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)


def get_licensing_status() -> str:
    return str(get_config("licensing.status", "LICENSED")).upper()


def get_licensing_latency() -> float:
    return _get_number("licensing.latency_seconds", 0.0)


def get_purchase_url() -> str:
    return str(get_config("purchase.url", DEFAULT_PURCHASE_URL))


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
