"""
Config Loader — Load and validate the YAML configuration file.

## Example (fixup-sync.yaml)

    source_repo: /work/dev/project
    mirror_repo: /work/ops/project
    include_extensions: [".cpp", ".h", ".hpp"]
    exclude_patterns: ["build/*", "*.generated.h"]
    sync_interval: 5m
    fixup_interval: 1h
    autosquash_enabled: true

Relative repository paths are resolved against the directory holding
the config file. A handful of environment variables override the file
(see ENV_OVERRIDES); ``.env`` is loaded by the CLI before this runs.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..engine.models import InclusionRule, RepositoryRef
from ..errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "fixup-sync.yaml"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# env var -> config key
ENV_OVERRIDES = {
    "FIXUP_SYNC_SOURCE_REPO": "source_repo",
    "FIXUP_SYNC_MIRROR_REPO": "mirror_repo",
    "FIXUP_SYNC_DRY_RUN": "dry_run",
    "LOG_LEVEL": "log_level",
    "LOG_FORMAT": "log_format",
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: Any) -> float:
    """
    Parse ``30s``, ``5m``, ``1h30m``, ``250ms`` or a bare number of seconds.

    Raises ValueError for anything else, or for a non-positive duration.
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid duration: {value!r}")
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        text = str(value).strip().lower()
        if not text:
            raise ValueError("empty duration")
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for match in _DURATION_PART.finditer(text):
                if match.start() != pos:
                    raise ValueError(f"invalid duration: {value!r}")
                seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
                pos = match.end()
            if pos != len(text):
                raise ValueError(f"invalid duration: {value!r}")
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")
    return seconds


class SyncConfig(BaseModel):
    """The fixup-sync.yaml schema."""

    # Repositories
    source_repo: Path
    mirror_repo: Path
    git_executable: str = "git"
    remote_name: str = "origin"
    git_timeout: Optional[float] = None

    # What propagates
    include_extensions: List[str] = Field(default_factory=lambda: [".cpp", ".h", ".hpp"])
    include_patterns: List[str] = Field(default_factory=list)
    exclude_patterns: List[str] = Field(default_factory=list)

    # Scheduling
    sync_interval: str = "5m"
    fixup_interval: str = "1h"
    pause_lock_file: str = ".sync-paused"

    # Commits
    commit_template: str = "Auto-sync: ${timestamp} @ ${hash}"
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    fixup_message_prefix: str = "fixup! "
    autosquash_enabled: bool = True

    # Output
    log_level: str = "INFO"
    log_format: str = "text"
    dry_run: bool = False
    verbose: bool = False

    @field_validator("sync_interval", "fixup_interval", mode="before")
    @classmethod
    def _check_interval(cls, v: Any) -> str:
        parse_duration(v)
        return str(v)

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level == "WARN":
            level = "WARNING"
        if level not in VALID_LOG_LEVELS:
            raise ValueError("must be one of DEBUG, INFO, WARN, ERROR")
        return level

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, v: str) -> str:
        fmt = v.strip().lower()
        if fmt not in ("text", "json"):
            raise ValueError("must be 'text' or 'json'")
        return fmt

    @field_validator("git_timeout")
    @classmethod
    def _check_timeout(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("pause_lock_file", "git_executable", "remote_name")
    @classmethod
    def _check_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()

    @model_validator(mode="after")
    def _check_distinct_repos(self) -> "SyncConfig":
        if str(self.source_repo).strip() in ("", "."):
            raise ValueError("source_repo is required")
        if str(self.mirror_repo).strip() in ("", "."):
            raise ValueError("mirror_repo is required")
        if self.source_repo.resolve() == self.mirror_repo.resolve():
            raise ValueError("source_repo and mirror_repo must be different repositories")
        return self

    @property
    def sync_interval_seconds(self) -> float:
        return parse_duration(self.sync_interval)

    @property
    def fixup_interval_seconds(self) -> float:
        return parse_duration(self.fixup_interval)

    def source_ref(self) -> RepositoryRef:
        return RepositoryRef(self.source_repo, self.git_executable, self.remote_name)

    def mirror_ref(self) -> RepositoryRef:
        return RepositoryRef(self.mirror_repo, self.git_executable, self.remote_name)

    def inclusion_rule(self) -> InclusionRule:
        return InclusionRule.build(
            self.include_extensions,
            self.include_patterns,
            self.exclude_patterns,
        )


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping; an empty file yields an empty dict."""
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")
    return data


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_var, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if not value:
            continue
        if key == "dry_run":
            overrides[key] = value.lower() in ("true", "1", "yes")
        else:
            overrides[key] = value
        logger.debug(f"Config override from {env_var}")
    return overrides


def _format_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "config"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def build_config(data: Dict[str, Any], base_dir: Optional[Path] = None) -> SyncConfig:
    """Validate a raw mapping into a SyncConfig, raising ConfigError."""
    data = dict(data)
    if base_dir is not None:
        for key in ("source_repo", "mirror_repo"):
            value = data.get(key)
            if value and not Path(str(value)).expanduser().is_absolute():
                data[key] = base_dir / str(value)
            elif value:
                data[key] = Path(str(value)).expanduser()

    try:
        return SyncConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {_format_validation_error(e)}") from e


def load_config(
    path: Path,
    overrides: Optional[Dict[str, Any]] = None,
) -> SyncConfig:
    """
    Load configuration from ``path``.

    Args:
        path: YAML config file
        overrides: Values that win over both the file and the environment
                   (CLI flags)

    Returns:
        Validated SyncConfig
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = load_yaml(path)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e

    data.update(_env_overrides())
    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    config = build_config(data, base_dir=path.resolve().parent)
    logger.debug(f"Loaded configuration from {path}")
    return config


CONFIG_TEMPLATE = """\
# fixup-sync configuration

# Repository paths (required). Relative paths resolve against this file.
source_repo: ""
mirror_repo: ""

# Files to propagate: extension match OR include pattern, then excludes win.
include_extensions: [".cpp", ".h", ".hpp", ".c"]
include_patterns: []
exclude_patterns: ["bin/*", "obj/*", "*.obj", "*.exe"]

# Scheduling (30s, 5m, 1h, 1h30m)
sync_interval: 5m
fixup_interval: 1h
pause_lock_file: .sync-paused

# Commits
commit_template: "Auto-sync: ${timestamp} @ ${hash}"
# author_name: Sync Bot
# author_email: sync-bot@example.com
fixup_message_prefix: "fixup! "
autosquash_enabled: true

# git
git_executable: git
remote_name: origin
# git_timeout: 120

# Output
log_level: INFO
log_format: text
dry_run: false
verbose: false
"""


def generate_config_template() -> str:
    return CONFIG_TEMPLATE
