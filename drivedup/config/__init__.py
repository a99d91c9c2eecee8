# drivedup Configuration Module
# Handles YAML-based configuration loading, validation, and defaults

from drivedup.config.defaults import DEFAULT_CONFIG, generate_default_config
from drivedup.config.loader import (
    ensure_config_exists,
    get_config_path,
    load_config,
    validate_config_file,
)
from drivedup.config.schema import (
    BackendConfig,
    BackendType,
    DrivedupConfig,
    OutputConfig,
    RuntimeConfig,
    StorageConfig,
)

__all__ = [
    # Schema
    "DrivedupConfig",
    "BackendConfig",
    "BackendType",
    "RuntimeConfig",
    "StorageConfig",
    "OutputConfig",
    # Loader
    "load_config",
    "get_config_path",
    "ensure_config_exists",
    "validate_config_file",
    # Defaults
    "DEFAULT_CONFIG",
    "generate_default_config",
]
