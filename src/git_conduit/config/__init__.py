"""
git-conduit config package public API.

File: src/git_conduit/config/__init__.py

Purpose
- Export config loading/validation entrypoints, public error types and the bridge from config
  to runner options and engines.

Functional requirements
- Support loading from ``git-conduit.toml`` (or a YAML file) + ``GIT_CONDUIT_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from git_conduit.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    effective_config,
    load_config,
    load_config_file,
    normalize_paths,
)
from git_conduit.config.runtime import (
    backend_from_config,
    client_from_config,
    runner_options_from_config,
)
from git_conduit.config.schema import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_CONFIG,
    ENGINE_CHOICES,
    PATH_FIELDS,
    ConduitConfig,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    redact_config,
    validate_config,
)

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "ConduitConfig",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENGINE_CHOICES",
    "ENV_PREFIX",
    "PATH_FIELDS",
    "assert_valid_config",
    "backend_from_config",
    "client_from_config",
    "default_config",
    "dump_effective_config",
    "effective_config",
    "load_config",
    "load_config_file",
    "merge_config",
    "migration_guidance",
    "normalize_paths",
    "redact_config",
    "runner_options_from_config",
    "validate_config",
]
