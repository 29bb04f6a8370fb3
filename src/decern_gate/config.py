"""Gate configuration.

Built once at the process boundary from, in increasing precedence:

1. built-in defaults,
2. an optional YAML file (``--config`` or ``DECERN_GATE_CONFIG``),
3. environment variables.

The credential is only ever read from the environment and is masked in
``repr``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from decern_gate.errors import ConfigError

DEFAULT_VALIDATE_PATH = "/api/decision-gate/validate"
DEFAULT_JUDGE_PATH = "/api/decision-gate/judge"
DEFAULT_TIMEOUT_MS = 5000
DEFAULT_JUDGE_TIMEOUT_MS = 60000
MIN_TIMEOUT_MS = 1000

CONFIG_FILE_ENV = "DECERN_GATE_CONFIG"

TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
FALSE_VALUES = frozenset({"false", "0", "no", "off"})

# env name -> key accepted in the YAML config file
FILE_KEYS: dict[str, str] = {
    "DECERN_BASE_URL": "base_url",
    "DECERN_GATE_TIMEOUT_MS": "timeout_ms",
    "DECERN_VALIDATE_PATH": "validate_path",
    "DECERN_GATE_REQUIRE_LINKED_PR": "require_linked_pr",
    "DECERN_GATE_EXTRA_PATTERNS": "extra_patterns",
    "DECERN_GATE_JUDGE_ENABLED": "judge_enabled",
    "DECERN_JUDGE_PATH": "judge_path",
    "DECERN_GATE_JUDGE_TIMEOUT_MS": "judge_timeout_ms",
}


@dataclass(frozen=True)
class GateConfig:
    """Immutable settings for one gate run."""

    base_url: str | None = None
    ci_token: str | None = field(default=None, repr=False)
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    validate_path: str = DEFAULT_VALIDATE_PATH
    require_linked_pr: bool = False
    extra_patterns: tuple[str, ...] = ()
    judge_enabled: bool = False
    judge_path: str = DEFAULT_JUDGE_PATH
    judge_timeout_ms: int = DEFAULT_JUDGE_TIMEOUT_MS

    # CI-provided hints
    base_sha: str | None = None
    head_sha: str | None = None
    pr_title: str | None = None
    pr_body: str | None = None
    commit_message: str | None = None

    def missing_settings(self) -> list[str]:
        """Names of required settings that are unset."""
        missing = []
        if not self.base_url:
            missing.append("DECERN_BASE_URL")
        if not self.ci_token:
            missing.append("DECERN_CI_TOKEN")
        return missing


def parse_bool(name: str, raw: str | None, default: bool = False) -> bool:
    """Parse a boolean setting; unknown spellings are an error."""
    if raw is None or raw == "":
        return default
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ConfigError(
        f"{name} must be one of {sorted(TRUE_VALUES | FALSE_VALUES)}, got {raw!r}"
    )


def parse_timeout_ms(name: str, raw: str | None, default: int) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer number of milliseconds, got {raw!r}") from exc
    return max(MIN_TIMEOUT_MS, value)


def parse_patterns(raw: str | None) -> tuple[str, ...]:
    """Split a comma-separated pattern list, dropping blanks."""
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def normalize_endpoint_path(path: str) -> str:
    return path if path.startswith("/") else f"/{path}"


def load_config_file(path: Path) -> dict[str, str]:
    """Load a YAML config file into env-style string values.

    Raises:
        ConfigError: If the file is missing, malformed or has unknown keys
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed YAML config at {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    env_by_key = {key: env_name for env_name, key in FILE_KEYS.items()}
    unknown = sorted(str(k) for k in data if k not in env_by_key)
    if unknown:
        raise ConfigError(f"Unknown keys in config file {path}: {', '.join(unknown)}")

    values: dict[str, str] = {}
    for key, value in data.items():
        values[env_by_key[key]] = _file_value_to_str(value)
    return values


def _file_value_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def _clean(raw: str | None) -> str | None:
    if raw is None:
        return None
    stripped = raw.strip()
    return stripped or None


def load_config(env: Mapping[str, str], config_file: Path | None = None) -> GateConfig:
    """Build a GateConfig from the environment and an optional YAML file."""
    if config_file is None and _clean(env.get(CONFIG_FILE_ENV)):
        config_file = Path(env[CONFIG_FILE_ENV].strip())

    merged: dict[str, str] = {}
    if config_file is not None:
        merged.update(load_config_file(config_file))
    for name in FILE_KEYS:
        value = _clean(env.get(name))
        if value is not None:
            merged[name] = value

    def get(name: str) -> str | None:
        return _clean(merged.get(name))

    base_url = get("DECERN_BASE_URL")
    return GateConfig(
        base_url=base_url.rstrip("/") if base_url else None,
        ci_token=_clean(env.get("DECERN_CI_TOKEN")),
        timeout_ms=parse_timeout_ms(
            "DECERN_GATE_TIMEOUT_MS", get("DECERN_GATE_TIMEOUT_MS"), DEFAULT_TIMEOUT_MS
        ),
        validate_path=normalize_endpoint_path(get("DECERN_VALIDATE_PATH") or DEFAULT_VALIDATE_PATH),
        require_linked_pr=parse_bool(
            "DECERN_GATE_REQUIRE_LINKED_PR", get("DECERN_GATE_REQUIRE_LINKED_PR")
        ),
        extra_patterns=parse_patterns(get("DECERN_GATE_EXTRA_PATTERNS")),
        judge_enabled=parse_bool("DECERN_GATE_JUDGE_ENABLED", get("DECERN_GATE_JUDGE_ENABLED")),
        judge_path=normalize_endpoint_path(get("DECERN_JUDGE_PATH") or DEFAULT_JUDGE_PATH),
        judge_timeout_ms=parse_timeout_ms(
            "DECERN_GATE_JUDGE_TIMEOUT_MS",
            get("DECERN_GATE_JUDGE_TIMEOUT_MS"),
            DEFAULT_JUDGE_TIMEOUT_MS,
        ),
        base_sha=_clean(env.get("CI_BASE_SHA")),
        head_sha=_clean(env.get("CI_HEAD_SHA")),
        pr_title=_clean(env.get("CI_PR_TITLE")),
        pr_body=_clean(env.get("CI_PR_BODY")),
        commit_message=_clean(env.get("CI_COMMIT_MESSAGE")),
    )
