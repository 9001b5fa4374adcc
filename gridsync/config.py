# gridsync/config.py
# Description: Configuration management for gridsync (HTTP endpoints, per-dataset API config, logging).
#
# Imports
import copy
import os
import tomllib
from pathlib import Path
from typing import Dict, Any, Optional
#
# Third-Party Imports
import toml
from loguru import logger
from pydantic import ValidationError
#
# Local Imports
from gridsync.sync_api.schemas import DatasetApiConfig, HttpApiConfig
#
#######################################################################################################################
#
# Functions:

class DatasetConfigError(KeyError):
    """Raised when a dataset has no usable API configuration."""
    def __init__(self, dataset_name: str, message: str):
        super().__init__(f"Dataset '{dataset_name}': {message}")
        self.dataset_name = dataset_name
        self.message = message

    def __str__(self) -> str:
        return f"Dataset '{self.dataset_name}': {self.message}"


# --- Path to the user configuration file ---
DEFAULT_CONFIG_PATH = Path.home() / ".config" / "gridsync" / "config.toml"
BASE_DATA_DIR = Path.home() / ".local" / "share" / "gridsync"

CONFIG_TOML_CONTENT = """
# Configuration for gridsync
# This file will be created with default values if it doesn't exist.

[api_settings]
# Read endpoint prefix, the dataset api_name is appended
query_url = "http://127.0.0.1:8000/api/query/"
# Update endpoint prefix, the dataset api_name is appended
update_url = "http://127.0.0.1:8000/api/update/"
timeout = 300.0
verify_ssl = true

[logging]
log_level = "INFO"
log_filename = "gridsync.log"
metrics_filename = "gridsync_metrics.json"

# One table per dataset:
# [datasets.customers]
# api_name = "customers"
# primary_key = "id"
# modified = "modified"   # optional, enables incremental (modified since) loads

[datasets]
"""

try:
    DEFAULT_CONFIG_FROM_TOML: Dict[str, Any] = tomllib.loads(CONFIG_TOML_CONTENT)
except tomllib.TOMLDecodeError as e:
    logger.critical(f"FATAL: Could not parse internal CONFIG_TOML_CONTENT: {e}.")
    DEFAULT_CONFIG_FROM_TOML = {}


def get_config_path() -> Path:
    env_path = os.getenv("GRIDSYNC_CONFIG_PATH")
    return Path(env_path).expanduser() if env_path else DEFAULT_CONFIG_PATH


# --- Helper for deep merging dictionaries ---
def deep_merge_dicts(base: Dict, update: Dict) -> Dict:
    """Recursively merges update_dict into base_dict."""
    merged = copy.deepcopy(base)
    for key, value in update.items():
        if isinstance(value, dict) and key in merged and isinstance(merged[key], dict):
            merged[key] = deep_merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


# --- Primary Configuration Loading Logic ---
_CONFIG_CACHE: Optional[Dict[str, Any]] = None
# Datasets registered from code; merged over the file on every load
_REGISTERED_DATASETS: Dict[str, Dict[str, Any]] = {}


def load_settings(force_reload: bool = False) -> Dict[str, Any]:
    """
    Loads settings from the user config.toml merged over the built-in defaults.
    If the file doesn't exist, it's created with default values.
    """
    global _CONFIG_CACHE
    if _CONFIG_CACHE is not None and not force_reload:
        return _CONFIG_CACHE

    config_path = get_config_path()
    loaded_config = copy.deepcopy(DEFAULT_CONFIG_FROM_TOML)

    if not config_path.exists():
        logger.info(f"Config file not found at {config_path}. Creating with default values.")
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w", encoding="utf-8") as f:
                f.write(CONFIG_TOML_CONTENT)
            logger.info(f"Created default config file at {config_path}")
        except OSError as e:
            logger.error(f"Could not create default config file {config_path}: {e}. Using internal defaults.")
    else:
        logger.info(f"Attempting to load config from: {config_path}")
        try:
            with open(config_path, "rb") as f:
                user_config_from_file = tomllib.load(f)
            loaded_config = deep_merge_dicts(loaded_config, user_config_from_file)
            logger.info(f"Successfully loaded and merged config from {config_path}")
        except tomllib.TOMLDecodeError as e:
            logger.error(f"Error decoding TOML config file {config_path}: {e}. Using internal defaults.")
        except OSError as e:
            logger.error(f"Could not read config file {config_path}: {e}. Using internal defaults.")

    # Environment overrides for the endpoints
    api_settings = loaded_config.setdefault("api_settings", {})
    for env_name, key in (("GRIDSYNC_QUERY_URL", "query_url"), ("GRIDSYNC_UPDATE_URL", "update_url")):
        env_value = os.getenv(env_name)
        if env_value:
            api_settings[key] = env_value

    _CONFIG_CACHE = loaded_config
    logger.debug(f"load_settings returning config with top-level keys: {list(loaded_config.keys())}")
    return _CONFIG_CACHE


def save_settings(config: Dict[str, Any]) -> Path:
    """Writes ``config`` to the user config file and refreshes the cache."""
    global _CONFIG_CACHE
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        toml.dump(config, f)
    logger.info(f"Saved config to {config_path}")
    _CONFIG_CACHE = None
    return config_path


def get_setting(section: str, key: str, default: Any = None) -> Any:
    """Helper to get a specific setting from the loaded configuration."""
    config = load_settings()
    section_data = config.get(section)
    if isinstance(section_data, dict):
        return section_data.get(key, default)
    return default


def get_http_api_config() -> HttpApiConfig:
    api_settings = load_settings().get("api_settings", {})
    defaults = DEFAULT_CONFIG_FROM_TOML.get("api_settings", {})
    try:
        return HttpApiConfig(**deep_merge_dicts(defaults, api_settings))
    except ValidationError as e:
        logger.warning(f"Invalid [api_settings] in config: {e}. Falling back to built-in defaults.")
        return HttpApiConfig(**defaults)


# --- Per-dataset API configuration ---
def register_dataset(name: str, api_name: str, primary_key: str, modified: Optional[str] = None) -> DatasetApiConfig:
    """Registers a dataset from code. Registered values win over the config file."""
    dataset = DatasetApiConfig(api_name=api_name, primary_key=primary_key, modified=modified)
    _REGISTERED_DATASETS[name] = dataset.model_dump()
    logger.debug(f"Registered dataset '{name}': {_REGISTERED_DATASETS[name]}")
    return dataset


def unregister_dataset(name: str) -> None:
    _REGISTERED_DATASETS.pop(name, None)


def get_api_config(dataset_name: str) -> DatasetApiConfig:
    """
    Resolves the API config of a dataset. Not cached, so edits take effect on the next operation.

    Raises:
        DatasetConfigError: unknown dataset, or api_name / primary_key missing.
    """
    datasets = load_settings().get("datasets", {})
    raw = {}
    if isinstance(datasets.get(dataset_name), dict):
        raw.update(datasets[dataset_name])
    raw.update(_REGISTERED_DATASETS.get(dataset_name, {}))
    if not raw:
        raise DatasetConfigError(dataset_name, "no API configuration found")
    try:
        return DatasetApiConfig(**raw)
    except ValidationError as e:
        raise DatasetConfigError(dataset_name, f"invalid API configuration: {e}") from e


def get_log_file_path() -> Path:
    log_filename = get_setting("logging", "log_filename", "gridsync.log")
    return BASE_DATA_DIR / "Logs" / log_filename


def get_metrics_file_path() -> Path:
    metrics_filename = get_setting("logging", "metrics_filename", "gridsync_metrics.json")
    return BASE_DATA_DIR / "Logs" / metrics_filename

#
# End of gridsync/config.py
#######################################################################################################################
