"""Comparison configuration.

Handles:
- Reading action-style inputs and CI context from the environment.
- Loading the same keys from an optional YAML file.
- Merging CLI options over file values over environment values.
- Validating the final configuration before any process starts.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping

from critcompare.errors import ConfigError
from critcompare.logging import get_logger

log = get_logger("config")

DEFAULT_API_URL = "https://api.github.com"

_FALSE_WORDS = frozenset({"false", "0", "no", "off"})

# Action input name -> CompareConfig field.
_INPUTS = {
    "TOKEN": "token",
    "BRANCHNAME": "branch_name",
    "CWD": "cwd",
    "BENCHNAME": "bench_name",
    "FEATURES": "features",
    "DEFAULTFEATURES": "default_features",
}


# ---------------------------------------------------------------------------
# CompareConfig
# ---------------------------------------------------------------------------


@dataclass
class CompareConfig:
    """Resolved configuration for one comparison run."""

    # Action inputs
    token: str = ""
    branch_name: str = ""  # Base branch; falls back to base_ref
    cwd: Path | None = None
    bench_name: str = ""  # ``cargo bench --bench`` filter
    features: str = ""
    default_features: bool = True

    # CI context
    base_ref: str = ""
    sha: str = ""
    repository: str = ""  # owner/repo
    issue_number: int | None = None
    api_url: str = DEFAULT_API_URL

    # Behaviour
    install_critcmp: bool = True
    post_comment: bool = True

    @property
    def base_branch(self) -> str:
        """The branch compared against: explicit input, else the PR base ref."""
        return self.branch_name or self.base_ref

    @property
    def can_post(self) -> bool:
        """Whether there is enough context to post a comment."""
        return bool(
            self.post_comment and self.token and self.repository and self.issue_number is not None
        )

    def redacted(self) -> dict[str, Any]:
        """Field values with the token masked, for debug logging."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        if values["token"]:
            values["token"] = "***"
        return values


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------


def parse_bool_input(value: str | bool | None) -> bool:
    """Interpret a boolean action input.

    An empty input is false. Any other value is true unless it is one of
    ``false``/``0``/``no``/``off`` (case-insensitive).
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if not text:
        return False
    return text not in _FALSE_WORDS


def _coerce(name: str, value: Any) -> Any:
    if name in ("default_features", "install_critcmp", "post_comment"):
        return parse_bool_input(value)
    if name == "cwd":
        return Path(value) if value else None
    if name == "issue_number":
        if value in (None, ""):
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"issue_number must be an integer (got {value!r})") from exc
    return "" if value is None else str(value)


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------


def read_event_number(event_path: str | Path) -> int | None:
    """Extract the pull request or issue number from a CI event payload.

    Returns ``None`` if the file is missing or does not describe an issue
    or pull request.
    """
    path = Path(event_path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.debug("Could not read event payload %s: %s", path, exc)
        return None
    if not isinstance(data, dict):
        return None
    for key in ("pull_request", "issue"):
        section = data.get(key)
        if isinstance(section, dict) and isinstance(section.get("number"), int):
            return section["number"]
    number = data.get("number")
    return number if isinstance(number, int) else None


def values_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect configuration values from action inputs and CI variables.

    Only variables that are present are returned, so callers can layer the
    result under other sources.
    """
    values: dict[str, Any] = {}
    for input_name, field_name in _INPUTS.items():
        key = f"INPUT_{input_name}"
        if key in environ:
            values[field_name] = environ[key]

    context = {
        "GITHUB_SHA": "sha",
        "GITHUB_REPOSITORY": "repository",
        "GITHUB_BASE_REF": "base_ref",
        "GITHUB_API_URL": "api_url",
    }
    for env_name, field_name in context.items():
        if environ.get(env_name):
            values[field_name] = environ[env_name]

    event_path = environ.get("GITHUB_EVENT_PATH")
    if event_path:
        number = read_event_number(event_path)
        if number is not None:
            values["issue_number"] = number
    return values


# ---------------------------------------------------------------------------
# YAML file
# ---------------------------------------------------------------------------


def load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration values from a YAML file.

    File format::

        branch_name: main
        cwd: crates/engine
        bench_name: parsing
        features: "simd,serde"
        default_features: false
        repository: owner/repo

    Keys use the :class:`CompareConfig` field names.

    Returns:
        The parsed YAML as a dict.
    """
    import yaml

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(data).__name__}")

    known = {f.name for f in fields(CompareConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {config_path}: {', '.join(unknown)}")
    return data


def build_config(*sources: Mapping[str, Any]) -> CompareConfig:
    """Build a CompareConfig from value mappings, later sources winning.

    ``None`` values are ignored so that unset CLI options do not mask
    file or environment values.
    """
    merged: dict[str, Any] = {}
    for source in sources:
        merged.update({k: v for k, v in source.items() if v is not None})
    return CompareConfig(**{name: _coerce(name, value) for name, value in merged.items()})


def config_from_env(environ: Mapping[str, str]) -> CompareConfig:
    """Build a CompareConfig from the environment alone."""
    return build_config(values_from_env(environ))


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@dataclass
class ValidationError:
    """A single configuration validation problem."""

    field: str
    message: str
    severity: str = "error"  # "error" or "warning"


def validate_config(config: CompareConfig) -> list[ValidationError]:
    """Validate a comparison configuration.

    Returns a list of validation errors.  Empty list means valid.
    """
    errors: list[ValidationError] = []

    if not config.base_branch:
        errors.append(
            ValidationError(
                field="branch_name",
                message=(
                    "No base branch to compare against. "
                    "Set --branch-name or run on a pull_request event."
                ),
            )
        )

    if config.cwd is not None and not config.cwd.is_dir():
        errors.append(
            ValidationError(
                field="cwd",
                message=f"Working directory does not exist: {config.cwd}",
            )
        )

    if config.post_comment:
        missing = [
            name
            for name, value in (
                ("token", config.token),
                ("repository", config.repository),
                ("issue_number", config.issue_number),
            )
            if value in ("", None)
        ]
        if missing:
            errors.append(
                ValidationError(
                    field="post_comment",
                    message=(
                        f"Missing {', '.join(missing)}; the report will be "
                        "printed instead of posted."
                    ),
                    severity="warning",
                )
            )

    return errors


def check_config(config: CompareConfig) -> None:
    """Log validation warnings and raise ConfigError on any error."""
    problems = validate_config(config)
    for problem in problems:
        if problem.severity == "warning":
            log.warning("%s: %s", problem.field, problem.message)
    fatal = [p for p in problems if p.severity == "error"]
    if fatal:
        raise ConfigError("; ".join(f"{p.field}: {p.message}" for p in fatal))
