"""
git-conduit — configuration schema and validation.

File: src/git_conduit/config/schema.py

Purpose
- Define authoritative defaults for the runner, engine selection, progress tailing and logging,
  and strict validation rules for them.

What should be included in this file
- Schema versioning and migration guidance.
- Validation rules for required fields, types, enums and numeric constraints.
- Deterministic deep-merge helpers.
- Redaction rules for sensitive fields.

Functional requirements
- Validate config payloads and return structured issues (field path + message).
- Reject unknown keys, and flag secret-looking unknown keys as embedded secrets.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

import copy
import math
import re
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypedDict

from git_conduit.domain.models import EngineVersion

CONFIG_SCHEMA_VERSION: Final[int] = 1
ENGINE_CHOICES: Final[tuple[str, ...]] = ("cli", "pygit2", "dulwich")
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

_ENV_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_CAMEL_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")

_SENSITIVE_KEY_TOKENS: Final[frozenset[str]] = frozenset(
    {"secret", "token", "password", "passwd", "credential", "credentials", "auth", "key"}
)
_SENSITIVE_KEY_PHRASES: Final[tuple[str, ...]] = (
    "access_token",
    "private_key",
    "password",
    "secret",
)

# Config paths that are normalized relative to the config file location.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("runner", "home"),
    ("runner", "credential", "helper_path"),
    ("observability", "log_dir"),
)
# List-valued path fields; every entry is normalized.
PATH_LIST_FIELDS: Final[tuple[tuple[str, ...], ...]] = (("runner", "path_prefix"),)


class MetaConfig(TypedDict):
    schema_version: int


class CredentialConfig(TypedDict):
    helper: str
    helper_path: str


class RunnerConfig(TypedDict):
    git_binary: str
    home: str
    path_prefix: list[str]
    trace: bool
    extra_env: dict[str, str]
    credential: CredentialConfig


class EngineConfig(TypedDict):
    default: str
    minimum_version: str


class ProgressConfig(TypedDict):
    poll_interval_seconds: float
    temp_prefix: str


class ObservabilityConfig(TypedDict):
    log_level: str
    log_dir: str
    redact_secrets: bool


class ConduitConfig(TypedDict):
    meta: MetaConfig
    runner: RunnerConfig
    engine: EngineConfig
    progress: ProgressConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[ConduitConfig] = {
    "meta": {"schema_version": CONFIG_SCHEMA_VERSION},
    "runner": {
        "git_binary": "git",
        "home": "",
        "path_prefix": [],
        "trace": False,
        "extra_env": {},
        "credential": {"helper": "", "helper_path": ""},
    },
    "engine": {"default": "cli", "minimum_version": "2.30.0"},
    "progress": {
        "poll_interval_seconds": 0.1,
        "temp_prefix": "git-conduit-progress-",
    },
    "observability": {
        "log_level": "INFO",
        "log_dir": "logs",
        "redact_secrets": True,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> ConduitConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is older than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade git-conduit.toml to the current schema"
        )
    if found_version > CONFIG_SCHEMA_VERSION:
        return (
            f"schema version {found_version} is newer than supported {CONFIG_SCHEMA_VERSION}; "
            "upgrade the git-conduit package"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    """Validate config and return structured issues with deterministic paths."""

    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def redact_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Return a deterministic redacted representation for logs."""

    if not isinstance(config, Mapping):
        return {}
    redacted = _redact_value(config, parent_key=None)
    if isinstance(redacted, dict):
        return redacted
    return {}


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    sections: dict[str, Callable[[dict[str, object], str, _IssueCollector], dict[str, Any]]] = {
        "meta": _validate_meta,
        "runner": _validate_runner,
        "engine": _validate_engine,
        "progress": _validate_progress,
        "observability": _validate_observability,
    }
    _reject_unknown_keys(payload, set(sections), "", issues)
    _require_keys(payload, set(sections), "", issues)

    out: dict[str, Any] = {}
    for key in sorted(sections):
        raw = payload.get(key)
        if raw is None:
            continue
        section = _as_object(raw, key, issues)
        if section is not None:
            out[key] = sections[key](section, key, issues)
    return out


def _validate_meta(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(
            payload["schema_version"], _join(path, "schema_version"), issues, minimum=1
        )
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != CONFIG_SCHEMA_VERSION:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _validate_runner(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"git_binary", "home", "path_prefix", "trace", "extra_env", "credential"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "git_binary" in payload:
        binary = _as_path_text(payload["git_binary"], _join(path, "git_binary"), issues)
        if binary is not None:
            out["git_binary"] = binary

    if "home" in payload:
        home = _as_optional_text(payload["home"], _join(path, "home"), issues)
        if home is not None:
            out["home"] = home

    if "path_prefix" in payload:
        prefix_path = _join(path, "path_prefix")
        raw_prefix = payload["path_prefix"]
        if not isinstance(raw_prefix, list):
            issues.add(prefix_path, f"expected list, got {type(raw_prefix).__name__}")
        else:
            entries: list[str] = []
            for index, item in enumerate(raw_prefix):
                entry = _as_path_text(item, f"{prefix_path}[{index}]", issues)
                if entry is not None:
                    entries.append(entry)
            out["path_prefix"] = entries

    if "trace" in payload:
        trace = _as_bool(payload["trace"], _join(path, "trace"), issues)
        if trace is not None:
            out["trace"] = trace

    if "extra_env" in payload:
        env_path = _join(path, "extra_env")
        env = _as_object(payload["extra_env"], env_path, issues)
        if env is not None:
            parsed_env: dict[str, str] = {}
            for name in sorted(env):
                item_path = _join(env_path, name)
                if not _ENV_NAME_PATTERN.fullmatch(name):
                    issues.add(item_path, "must be an env var name (example: GIT_SSH_COMMAND)")
                    continue
                value = env[name]
                if not isinstance(value, str):
                    issues.add(item_path, f"expected string, got {type(value).__name__}")
                    continue
                parsed_env[name] = value
            out["extra_env"] = parsed_env

    if "credential" in payload:
        credential_path = _join(path, "credential")
        credential = _as_object(payload["credential"], credential_path, issues)
        if credential is not None:
            out["credential"] = _validate_credential(credential, credential_path, issues)
    return out


def _validate_credential(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"helper", "helper_path"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    for key in sorted(allowed):
        if key in payload:
            value = _as_optional_text(payload[key], _join(path, key), issues)
            if value is not None:
                out[key] = value
    return out


def _validate_engine(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"default", "minimum_version"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "default" in payload:
        engine = _as_enum(
            payload["default"], _join(path, "default"), issues, allowed_values=ENGINE_CHOICES
        )
        if engine is not None:
            out["default"] = engine

    if "minimum_version" in payload:
        version_path = _join(path, "minimum_version")
        version = _as_str(payload["minimum_version"], version_path, issues)
        if version is not None:
            try:
                EngineVersion.parse(version)
            except ValueError:
                issues.add(version_path, "must look like MAJOR.MINOR or MAJOR.MINOR.PATCH")
            else:
                out["minimum_version"] = version
    return out


def _validate_progress(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"poll_interval_seconds", "temp_prefix"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "poll_interval_seconds" in payload:
        interval_path = _join(path, "poll_interval_seconds")
        interval = _as_float(payload["poll_interval_seconds"], interval_path, issues, minimum=0.0)
        if interval is not None:
            if interval == 0:
                issues.add(interval_path, "must be > 0")
            else:
                out["poll_interval_seconds"] = interval

    if "temp_prefix" in payload:
        prefix_path = _join(path, "temp_prefix")
        prefix = _as_path_text(payload["temp_prefix"], prefix_path, issues)
        if prefix is not None:
            if "/" in prefix or "\\" in prefix:
                issues.add(prefix_path, "must be a file name prefix, not a path")
            else:
                out["temp_prefix"] = prefix
    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"log_level", "log_dir", "redact_secrets"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "log_level" in payload:
        level = _as_enum(
            payload["log_level"], _join(path, "log_level"), issues, allowed_values=LOG_LEVELS
        )
        if level is not None:
            out["log_level"] = level

    if "log_dir" in payload:
        log_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if log_dir is not None:
            out["log_dir"] = log_dir

    if "redact_secrets" in payload:
        redact = _as_bool(payload["redact_secrets"], _join(path, "redact_secrets"), issues)
        if redact is not None:
            out["redact_secrets"] = redact
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(value: object, path: str, issues: _IssueCollector) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_optional_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    """String that may be empty (meaning "unset"); ``None`` only on a type error."""

    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    if "\x00" in value:
        issues.add(path, "must not contain NUL bytes")
        return None
    return value.strip()


def _as_path_text(value: object, path: str, issues: _IssueCollector) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_float(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: float | None = None,
) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        issues.add(path, f"expected number, got {type(value).__name__}")
        return None
    parsed = float(value)
    if not math.isfinite(parsed):
        issues.add(path, "must be finite")
        return None
    if minimum is not None and parsed < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return parsed


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key in allowed:
            continue
        key_path = _join(path, key)
        if _looks_sensitive_key(key):
            issues.add(
                key_path,
                "embedded secret values are forbidden; configure a credential helper instead",
            )
        else:
            issues.add(key_path, "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _looks_sensitive_key(key: str) -> bool:
    normalized = _normalize_key(key)
    if any(phrase in normalized for phrase in _SENSITIVE_KEY_PHRASES):
        return True
    tokens = tuple(token for token in normalized.split("_") if token)
    return any(token in _SENSITIVE_KEY_TOKENS for token in tokens)


def _normalize_key(key: str) -> str:
    with_boundaries = _CAMEL_CASE_BOUNDARY.sub(r"\1_\2", key.strip())
    return _NON_ALNUM.sub("_", with_boundaries.lower()).strip("_")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if not isinstance(existing, dict):
                existing = _deep_copy_mapping(existing) if isinstance(existing, Mapping) else {}
                target[key] = existing
            _merge_into(existing, value)
        else:
            target[key] = _deep_copy_value(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: _deep_copy_value(value[key]) for key in sorted(value)}


def _deep_copy_value(value: object) -> Any:
    if isinstance(value, Mapping):
        return {
            key: _deep_copy_value(item) for key, item in value.items() if isinstance(key, str)
        }
    if isinstance(value, (list, tuple)):
        return [_deep_copy_value(item) for item in value]
    return copy.deepcopy(value)


def _redact_value(value: object, parent_key: str | None) -> object:
    if isinstance(value, Mapping):
        out: dict[str, object] = {}
        for key in sorted(value):
            item = value[key]
            if _key_is_sensitive_for_redaction(key):
                out[key] = "<redacted>"
            else:
                out[key] = _redact_value(item, key)
        return out
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, parent_key) for item in value]
    return value


def _key_is_sensitive_for_redaction(key: str) -> bool:
    # Any *_env mapping is redacted wholesale.
    return _normalize_key(key).endswith("_env") or _looks_sensitive_key(key)


__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "ConduitConfig",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "ENGINE_CHOICES",
    "LOG_LEVELS",
    "PATH_FIELDS",
    "PATH_LIST_FIELDS",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "redact_config",
    "validate_config",
]
