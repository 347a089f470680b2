"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.bggproxy/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional, Dict

import yaml
from dotenv import load_dotenv

from bggproxy.domain.models.common import EntityType

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".bggproxy"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

DEFAULT_BGG_BASE_URL = "https://boardgamegeek.com/xmlapi2"
DEFAULT_STORAGE_TYPE = "noop"
DEFAULT_RATE_LIMIT_SECONDS = 5.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0
DEFAULT_L1_MAX_ITEMS = 1000

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to `get_config`

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    # 3. Environment Variables (Highest priority) are handled in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets the loaded configuration so the next load starts over."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _coerce(value: str) -> Any:
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


def _lookup_yaml(key: str) -> Any:
    if key in _config:
        return _config[key]
    # Dotted keys also address nested YAML sections: 'storage.type'
    node: Any = _config
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased, dots as underscores)
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

    value = _lookup_yaml(key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def _as_float(key: str, default: float) -> float:
    value = get_config(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {key}: {value!r}. Using default {default}.")
        return default


def _as_int(key: str, default: int) -> int:
    value = get_config(key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid value for {key}: {value!r}. Using default {default}.")
        return default


# --- Convenience Functions ---

def get_bgg_base_url() -> str:
    return str(get_config('BGG_API_BASE_URL', DEFAULT_BGG_BASE_URL)).rstrip('/')


def get_bgg_api_token() -> Optional[str]:
    """Bearer token for the upstream API, if one has been registered."""
    token = get_config('BGG_API_TOKEN')
    return str(token) if token else None


def get_storage_type() -> str:
    return str(get_config('STORAGE_TYPE', DEFAULT_STORAGE_TYPE)).lower()


def get_storage_options() -> Dict[str, Any]:
    """Collects the settings of every storage backend; the factory picks what it needs."""
    options = {
        'file_path': get_config('STORAGE_FILE_PATH'),
        'redis_url': get_config('REDIS_URL'),
        'key_prefix': get_config('REDIS_KEY_PREFIX'),
        'cache_dir': get_config('DISK_CACHE_DIR'),
    }
    return {k: str(v) for k, v in options.items() if v is not None}


def get_rate_limit_spacing() -> float:
    return max(0.0, _as_float('RATE_LIMIT_SECONDS', DEFAULT_RATE_LIMIT_SECONDS))


def get_http_timeout() -> float:
    return _as_float('HTTP_TIMEOUT_SECONDS', DEFAULT_HTTP_TIMEOUT_SECONDS)


def get_l1_max_items() -> int:
    return _as_int('CACHE_L1_MAX_ITEMS', DEFAULT_L1_MAX_ITEMS)


def get_ttl_overrides() -> Dict[str, Dict[str, int]]:
    """Reads CACHE_TTL_<ENTITY>_L1 / CACHE_TTL_<ENTITY>_L2 settings.

    Returns:
        e.g. {"thing": {"l1": 60}} for CACHE_TTL_THING_L1=60.
    """
    overrides: Dict[str, Dict[str, int]] = {}
    for entity in EntityType:
        for level in ('l1', 'l2'):
            key = f"CACHE_TTL_{entity.name}_{level.upper()}"
            value = get_config(key)
            if value is None:
                continue
            try:
                overrides.setdefault(entity.value, {})[level] = int(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid value for {key}: {value!r}. Ignoring.")
    return overrides


def get_log_level() -> str:
    return str(get_config('LOG_LEVEL', 'INFO')).upper()


def get_log_file() -> Optional[str]:
    log_file = get_config('LOG_FILE')
    return str(log_file) if log_file else None


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
