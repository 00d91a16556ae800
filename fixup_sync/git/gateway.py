"""
Repository Gateway — Interface to the version-control system.

Every engine component talks to repositories only through this
interface. Each verb takes the repository it operates on explicitly;
nothing relies on the process-wide current directory, so a sync pass
and a fixup pass can share one gateway instance.

Failures are raised, never returned:
- NotARepositoryError   path missing or not a working tree (fatal)
- BranchConflictError   checkout / branch creation refused
- NoSuchRevisionError   revision lookup came up empty
- NothingToCommitError  commit had nothing staged (a no-op, not a failure)
- ToolInvocationError   anything else the executable reported
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from ..engine.models import BranchName, CommitIdentifier, RepositoryRef


class RepositoryGateway(ABC):
    """Synchronous queries and mutations against a repository."""

    # --- queries -----------------------------------------------------------

    @abstractmethod
    def is_repository(self, repo: RepositoryRef) -> bool:
        """True when ``repo.path`` is inside a working tree."""

    @abstractmethod
    def current_branch(self, repo: RepositoryRef) -> BranchName:
        """Name of the checked-out branch; empty string when detached."""

    @abstractmethod
    def branch_exists(self, repo: RepositoryRef, name: BranchName, remote: bool = False) -> bool:
        """Check for a local branch, or a remote-tracking branch when ``remote``."""

    @abstractmethod
    def changed_paths_since_previous(self, repo: RepositoryRef) -> List[str]:
        """
        Paths that differ from the revision before HEAD.

        Falls back to the staged tree when no prior revision exists.
        """

    @abstractmethod
    def untracked_paths(self, repo: RepositoryRef) -> List[str]:
        """Untracked, non-ignored paths."""

    @abstractmethod
    def staged_paths(self, repo: RepositoryRef) -> List[str]:
        """Paths currently staged in the index."""

    @abstractmethod
    def head_commit(self, repo: RepositoryRef) -> CommitIdentifier:
        """Full identifier of HEAD."""

    @abstractmethod
    def revision_before(self, repo: RepositoryRef, n: int) -> CommitIdentifier:
        """Identifier of the commit ``n`` steps before HEAD."""

    @abstractmethod
    def has_uncommitted_changes(self, repo: RepositoryRef) -> bool:
        """True when the working tree or index differs from HEAD."""

    @abstractmethod
    def uncommitted_paths(self, repo: RepositoryRef) -> List[str]:
        """Paths whose index or working-tree state differs from HEAD, untracked included."""

    @abstractmethod
    def has_paused(self, repo: RepositoryRef, lock_file_name: str) -> bool:
        """True when the pause lock file exists under the repository root."""

    # --- mutations ---------------------------------------------------------

    @abstractmethod
    def create_branch(self, repo: RepositoryRef, name: BranchName, from_remote: bool = False) -> None:
        """Create ``name`` and check it out, optionally tracking the remote branch."""

    @abstractmethod
    def checkout(self, repo: RepositoryRef, name: BranchName) -> None:
        """Switch the working tree to an existing branch."""

    @abstractmethod
    def stage_all(self, repo: RepositoryRef) -> None:
        """Stage additions, modifications and deletions."""

    @abstractmethod
    def stage_modified_only(self, repo: RepositoryRef) -> None:
        """Stage modifications and deletions of tracked files only."""

    @abstractmethod
    def commit(
        self,
        repo: RepositoryRef,
        message: str,
        author: Optional[str] = None,
    ) -> CommitIdentifier:
        """Commit the index and return the new HEAD."""

    @abstractmethod
    def fixup_commit(
        self,
        repo: RepositoryRef,
        base_commit: CommitIdentifier,
        message: str,
        author: Optional[str] = None,
    ) -> CommitIdentifier:
        """Commit the index as a fixup of ``base_commit`` and return it."""

    @abstractmethod
    def autosquash_rebase(self, repo: RepositoryRef, base_commit: CommitIdentifier) -> None:
        """Fold fixup commits into ``base_commit`` non-interactively."""

    @abstractmethod
    def abort_rebase(self, repo: RepositoryRef) -> None:
        """Abandon an in-progress rebase, restoring the pre-rebase HEAD."""
