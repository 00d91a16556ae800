"""
Configuration Validator — Pre-flight checks before any cycle starts.

Schema errors are caught by the loader. This module checks the
environment the configuration points at: repository directories, the
git executable, and whether both paths are working trees.

## Usage

    from fixup_sync.config.validator import ConfigValidator

    validator = ConfigValidator(config)
    for check in validator.validate_all():
        if not check.ok:
            print(f"{check.name}: {check.message}")
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..errors import ConfigError
from ..git.gateway import RepositoryGateway
from .loader import SyncConfig

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """Outcome of a single pre-flight check."""

    name: str
    ok: bool
    message: str = ""

    def to_dict(self) -> Dict:
        return {"name": self.name, "ok": self.ok, "message": self.message}


class ConfigValidator:
    """Validate that a loaded configuration is usable on this machine."""

    def __init__(self, config: SyncConfig, gateway: Optional[RepositoryGateway] = None):
        self.config = config
        self.gateway = gateway

    def check_executable(self) -> CheckResult:
        found = shutil.which(self.config.git_executable)
        if found:
            return CheckResult("git_executable", True, found)
        return CheckResult(
            "git_executable", False, f"'{self.config.git_executable}' not found on PATH"
        )

    def check_repository(self, name: str) -> CheckResult:
        ref = self.config.source_ref() if name == "source_repo" else self.config.mirror_ref()
        if not ref.path.exists():
            return CheckResult(name, False, f"path does not exist: {ref.path}")
        if not ref.path.is_dir():
            return CheckResult(name, False, f"not a directory: {ref.path}")
        if self.gateway is not None and not self.gateway.is_repository(ref):
            return CheckResult(name, False, f"not a git repository: {ref.path}")
        return CheckResult(name, True, str(ref.path))

    def check_author(self) -> CheckResult:
        name, email = self.config.author_name, self.config.author_email
        if bool(name) != bool(email):
            return CheckResult(
                "author",
                True,
                "only one of author_name/author_email set; mirror identity will be used",
            )
        if name and email:
            return CheckResult("author", True, f"{name} <{email}>")
        return CheckResult("author", True, "mirror identity")

    def validate_all(self) -> List[CheckResult]:
        checks = [self.check_executable()]
        # Repository checks need a working executable when a gateway is given.
        if not checks[0].ok:
            self.gateway = None
        checks.append(self.check_repository("source_repo"))
        checks.append(self.check_repository("mirror_repo"))
        checks.append(self.check_author())
        return checks

    def raise_for_errors(self) -> None:
        """Raise ConfigError listing every failed check."""
        failed = [c for c in self.validate_all() if not c.ok]
        if failed:
            details = "; ".join(f"{c.name}: {c.message}" for c in failed)
            raise ConfigError(f"Configuration check failed: {details}")
