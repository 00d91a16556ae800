"""
Errors — Exception taxonomy shared by every component.

    FixupSyncError
    ├── ConfigError              bad paths / intervals, fatal before any cycle
    ├── GatewayError             anything the version-control tool reported
    │   ├── NotARepositoryError
    │   ├── BranchConflictError
    │   ├── RebaseConflictError
    │   ├── NoSuchRevisionError
    │   ├── NothingToCommitError  (no-op, not a failure)
    │   └── ToolInvocationError   (transient, next cycle starts fresh)
    ├── UnresolvableBranchError
    ├── ApplyError
    └── FixupError
"""

from __future__ import annotations

from typing import Optional, Sequence


class FixupSyncError(Exception):
    """Base class for all fixup-sync errors."""


class ConfigError(FixupSyncError):
    """Configuration is missing or invalid."""


class GatewayError(FixupSyncError):
    """A repository gateway verb failed."""

    def __init__(
        self,
        message: str,
        args: Optional[Sequence[str]] = None,
        output: str = "",
    ):
        super().__init__(message)
        self.argv = list(args or [])
        self.output = output

    def __str__(self) -> str:
        base = super().__str__()
        if self.output:
            return f"{base}: {self.output}"
        return base


class NotARepositoryError(GatewayError):
    """The path is missing or is not a working tree."""


class BranchConflictError(GatewayError):
    """Checkout or branch creation was refused."""


class RebaseConflictError(GatewayError):
    """A rebase stopped on conflicting changes."""


class NoSuchRevisionError(GatewayError):
    """The requested revision does not exist."""


class NothingToCommitError(GatewayError):
    """The index holds no changes; a normal terminal outcome."""


class ToolInvocationError(GatewayError):
    """The executable failed for any other reason."""


class UnresolvableBranchError(FixupSyncError):
    """The source repository is not on a named branch."""


class ApplyError(FixupSyncError):
    """A change could not be materialized in the mirror."""


class FixupError(FixupSyncError):
    """Fixup commit creation or autosquash failed."""

    def __init__(self, message: str, outcome=None):
        super().__init__(message)
        self.outcome = outcome
