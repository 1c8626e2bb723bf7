"""
git-conduit — unit tests for config schema validation

File: tests/unit/config/test_schema.py

Purpose
- Validate strict config schema behavior, structured errors, and redaction.

What this test file should cover
- Defaults validate successfully.
- Rejects unknown keys and invalid types with actionable paths.
- Rejects embedded secrets in favour of credential helpers.
- Ensures redaction is recursive and non-destructive.

Non-functional requirements
- Deterministic and fast.
"""

from __future__ import annotations

import pytest

from git_conduit.config.schema import (
    CONFIG_SCHEMA_VERSION,
    ConfigValidationError,
    assert_valid_config,
    default_config,
    merge_config,
    migration_guidance,
    redact_config,
    validate_config,
)


def _with(overlay: dict[str, object]) -> dict[str, object]:
    return merge_config(default_config(), overlay)


def _issue_paths(config: object) -> list[str]:
    return [issue.path for issue in validate_config(config).issues]


def test_defaults_validate_successfully() -> None:
    result = validate_config(default_config())

    assert result.is_valid
    assert result.config is not None
    assert result.config["engine"] == {"default": "cli", "minimum_version": "2.30.0"}
    assert result.config["meta"]["schema_version"] == CONFIG_SCHEMA_VERSION


def test_default_config_is_a_fresh_copy() -> None:
    first = default_config()
    first["runner"]["path_prefix"].append("/mutated")

    assert default_config()["runner"]["path_prefix"] == []


def test_unknown_keys_and_missing_sections_are_reported_with_paths() -> None:
    config = _with({"runner": {"gitbinary": "git"}, "extras": {}})
    del config["progress"]

    assert _issue_paths(config) == ["extras", "progress", "runner.gitbinary"]


@pytest.mark.parametrize(
    ("overlay", "path"),
    [
        ({"engine": {"default": "jgit"}}, "engine.default"),
        ({"engine": {"minimum_version": "two"}}, "engine.minimum_version"),
        ({"runner": {"trace": "yes"}}, "runner.trace"),
        ({"runner": {"git_binary": "  "}}, "runner.git_binary"),
        ({"runner": {"path_prefix": "/usr/local/bin"}}, "runner.path_prefix"),
        ({"runner": {"path_prefix": ["/ok", 3]}}, "runner.path_prefix[1]"),
        ({"runner": {"extra_env": {"NOT-A-NAME": "x"}}}, "runner.extra_env.NOT-A-NAME"),
        ({"runner": {"extra_env": {"GIT_SSH_COMMAND": 1}}}, "runner.extra_env.GIT_SSH_COMMAND"),
        ({"progress": {"poll_interval_seconds": 0}}, "progress.poll_interval_seconds"),
        ({"progress": {"poll_interval_seconds": -1.0}}, "progress.poll_interval_seconds"),
        ({"progress": {"temp_prefix": "tmp/progress-"}}, "progress.temp_prefix"),
        ({"observability": {"log_level": "TRACE"}}, "observability.log_level"),
        ({"meta": {"schema_version": 2}}, "meta.schema_version"),
    ],
)
def test_invalid_values_point_at_the_field(overlay: dict[str, object], path: str) -> None:
    assert _issue_paths(_with(overlay)) == [path]


def test_empty_optional_text_fields_mean_unset() -> None:
    config = assert_valid_config(
        _with({"runner": {"home": "", "credential": {"helper": "", "helper_path": ""}}})
    )

    assert config["runner"]["home"] == ""
    assert config["runner"]["credential"] == {"helper": "", "helper_path": ""}


@pytest.mark.parametrize("key", ["token", "password", "githubToken", "auth_header"])
def test_embedded_secrets_are_rejected(key: str) -> None:
    result = validate_config(_with({"runner": {"credential": {key: "hunter2"}}}))

    assert not result.is_valid
    issue = result.issues[0]
    assert issue.path == f"runner.credential.{key}"
    assert "credential helper" in issue.message


def test_assert_valid_config_raises_with_rendered_issues() -> None:
    with pytest.raises(ConfigValidationError) as caught:
        assert_valid_config(_with({"engine": {"default": "svn"}}))

    assert len(caught.value.issues) == 1
    assert "engine.default" in str(caught.value)


def test_non_mapping_root_is_rejected() -> None:
    result = validate_config(["not", "a", "table"])
    assert result.config is None
    assert result.issues[0].path == "<root>"


def test_migration_guidance_directions() -> None:
    assert "older" in migration_guidance(0)
    assert "newer" in migration_guidance(CONFIG_SCHEMA_VERSION + 1)
    assert migration_guidance(CONFIG_SCHEMA_VERSION) == "schema version is current"


def test_redaction_is_recursive_and_non_destructive() -> None:
    config = _with(
        {
            "runner": {
                "extra_env": {"GIT_SSH_COMMAND": "ssh -i /keys/id"},
                "credential": {"helper": "store", "helper_path": ""},
            }
        }
    )

    redacted = redact_config(config)

    assert redacted["runner"]["extra_env"] == "<redacted>"
    assert redacted["runner"]["credential"] == "<redacted>"
    assert redacted["runner"]["git_binary"] == "git"
    assert config["runner"]["extra_env"] == {"GIT_SSH_COMMAND": "ssh -i /keys/id"}
    assert redact_config("nope") == {}
