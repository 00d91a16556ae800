"""
Git CLI Gateway — RepositoryGateway backed by the git executable.

Each verb runs the repository's configured executable with
``cwd=repo.path``. Output is requested NUL-separated (``-z``) so paths
with spaces or non-ASCII characters come back verbatim.
"""

from __future__ import annotations

import logging
import os
import subprocess
from typing import Dict, List, Optional, Sequence

from ..engine.models import BranchName, CommitIdentifier, RepositoryRef
from ..errors import (
    BranchConflictError,
    NoSuchRevisionError,
    NotARepositoryError,
    NothingToCommitError,
    RebaseConflictError,
    ToolInvocationError,
)
from .gateway import RepositoryGateway

logger = logging.getLogger(__name__)

_NOT_A_REPO_MARKERS = ("not a git repository", "not a work tree")
_NOTHING_TO_COMMIT_MARKERS = ("nothing to commit", "no changes added to commit", "nothing added to commit")
_CONFLICT_MARKERS = ("conflict", "could not apply")


def _split_z(output: str) -> List[str]:
    return [p for p in output.split("\0") if p]


class GitCliGateway(RepositoryGateway):
    """Drive git through its command line, one subprocess per verb."""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout

    # ------------------------------------------------------------------
    # Invocation helpers
    # ------------------------------------------------------------------

    def _git(
        self,
        repo: RepositoryRef,
        *args: str,
        extra_env: Optional[Dict[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """Run a git command in the repository directory."""
        cmd = [repo.executable, "-c", "core.quotepath=false", *args]
        env = None
        if extra_env:
            env = os.environ.copy()
            env.update(extra_env)

        logger.debug(f"[git] {repo.path}: {' '.join(args)}")
        try:
            return subprocess.run(
                cmd,
                cwd=str(repo.path),
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=self.timeout,
                env=env,
            )
        except (FileNotFoundError, NotADirectoryError) as e:
            if not repo.path.is_dir():
                raise NotARepositoryError(
                    f"Repository path does not exist: {repo.path}", cmd
                ) from e
            raise ToolInvocationError(
                f"Could not start '{repo.executable}'", cmd, str(e)
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ToolInvocationError(
                f"git {' '.join(args)} timed out after {self.timeout}s in {repo.path}",
                cmd,
            ) from e
        except OSError as e:
            raise ToolInvocationError(
                f"Could not start '{repo.executable}'", cmd, str(e)
            ) from e

    @staticmethod
    def _output_of(result: subprocess.CompletedProcess) -> str:
        return (result.stderr or "").strip() or (result.stdout or "").strip()

    def _raise_for(
        self,
        repo: RepositoryRef,
        result: subprocess.CompletedProcess,
        args: Sequence[str],
        error_cls=ToolInvocationError,
    ) -> None:
        output = self._output_of(result)
        lowered = output.lower()
        message = f"git {' '.join(args)} failed in {repo.path}"
        if any(marker in lowered for marker in _NOT_A_REPO_MARKERS):
            raise NotARepositoryError(f"Not a git repository: {repo.path}", args, output)
        raise error_cls(message, args, output)

    def _checked(self, repo: RepositoryRef, *args: str, error_cls=ToolInvocationError) -> str:
        """Run git and return stdout; raise on a non-zero exit."""
        result = self._git(repo, *args)
        if result.returncode != 0:
            self._raise_for(repo, result, args, error_cls)
        return result.stdout

    def _resolve(self, repo: RepositoryRef, rev: str) -> CommitIdentifier:
        args = ("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}")
        result = self._git(repo, *args)
        if result.returncode == 0:
            return result.stdout.strip()
        if result.returncode == 1:
            raise NoSuchRevisionError(f"No such revision: {rev}", args)
        self._raise_for(repo, result, args)
        raise AssertionError("unreachable")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_repository(self, repo: RepositoryRef) -> bool:
        if not repo.path.is_dir():
            return False
        result = self._git(repo, "rev-parse", "--is-inside-work-tree")
        return result.returncode == 0 and result.stdout.strip() == "true"

    def current_branch(self, repo: RepositoryRef) -> BranchName:
        return self._checked(repo, "branch", "--show-current").strip()

    def branch_exists(self, repo: RepositoryRef, name: BranchName, remote: bool = False) -> bool:
        ref = f"refs/remotes/{repo.remote}/{name}" if remote else f"refs/heads/{name}"
        args = ("show-ref", "--verify", "--quiet", ref)
        result = self._git(repo, *args)
        if result.returncode == 0:
            return True
        if result.returncode == 1:
            return False
        self._raise_for(repo, result, args)
        return False

    def changed_paths_since_previous(self, repo: RepositoryRef) -> List[str]:
        result = self._git(repo, "diff", "--name-only", "-z", "HEAD^", "--")
        if result.returncode == 0:
            return _split_z(result.stdout)

        output = self._output_of(result).lower()
        if any(marker in output for marker in _NOT_A_REPO_MARKERS):
            raise NotARepositoryError(f"Not a git repository: {repo.path}", ["diff"], output)

        # No revision before HEAD (first commit or empty repo): use the index.
        logger.debug(f"[git] {repo.path}: no previous revision, diffing staged tree")
        return _split_z(self._checked(repo, "diff", "--name-only", "-z", "--cached"))

    def untracked_paths(self, repo: RepositoryRef) -> List[str]:
        return _split_z(
            self._checked(repo, "ls-files", "--others", "--exclude-standard", "-z")
        )

    def staged_paths(self, repo: RepositoryRef) -> List[str]:
        return _split_z(self._checked(repo, "diff", "--name-only", "-z", "--cached"))

    def head_commit(self, repo: RepositoryRef) -> CommitIdentifier:
        return self._resolve(repo, "HEAD")

    def revision_before(self, repo: RepositoryRef, n: int) -> CommitIdentifier:
        return self._resolve(repo, f"HEAD~{n}")

    def has_uncommitted_changes(self, repo: RepositoryRef) -> bool:
        return bool(self._checked(repo, "status", "--porcelain").strip())

    def uncommitted_paths(self, repo: RepositoryRef) -> List[str]:
        entries = _split_z(
            self._checked(repo, "status", "--porcelain", "-z", "--untracked-files=all")
        )
        paths: List[str] = []
        i = 0
        while i < len(entries):
            status, path = entries[i][:2], entries[i][3:]
            paths.append(path)
            # Renames and copies carry the original path as the next entry
            if "R" in status or "C" in status:
                i += 1
                if i < len(entries):
                    paths.append(entries[i])
            i += 1
        return paths

    def has_paused(self, repo: RepositoryRef, lock_file_name: str) -> bool:
        return (repo.path / lock_file_name).exists()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_branch(self, repo: RepositoryRef, name: BranchName, from_remote: bool = False) -> None:
        args = ["checkout", "-b", name]
        if from_remote:
            args.append(f"{repo.remote}/{name}")
        self._checked(repo, *args, error_cls=BranchConflictError)

    def checkout(self, repo: RepositoryRef, name: BranchName) -> None:
        self._checked(repo, "checkout", name, error_cls=BranchConflictError)

    def stage_all(self, repo: RepositoryRef) -> None:
        self._checked(repo, "add", "-A")

    def stage_modified_only(self, repo: RepositoryRef) -> None:
        self._checked(repo, "add", "-u")

    def _commit(self, repo: RepositoryRef, args: List[str], author: Optional[str]) -> CommitIdentifier:
        if author:
            args.extend(["--author", author])
        result = self._git(repo, *args)
        if result.returncode != 0:
            combined = f"{result.stdout or ''}\n{result.stderr or ''}".lower()
            if any(marker in combined for marker in _NOTHING_TO_COMMIT_MARKERS):
                raise NothingToCommitError(
                    f"Nothing to commit in {repo.path}", args, self._output_of(result)
                )
            self._raise_for(repo, result, args)
        return self.head_commit(repo)

    def commit(
        self,
        repo: RepositoryRef,
        message: str,
        author: Optional[str] = None,
    ) -> CommitIdentifier:
        return self._commit(repo, ["commit", "-m", message], author)

    def fixup_commit(
        self,
        repo: RepositoryRef,
        base_commit: CommitIdentifier,
        message: str,
        author: Optional[str] = None,
    ) -> CommitIdentifier:
        return self._commit(repo, ["commit", f"--fixup={base_commit}", "-m", message], author)

    def autosquash_rebase(self, repo: RepositoryRef, base_commit: CommitIdentifier) -> None:
        # The base itself must be inside the rewritten range.
        try:
            upstream: List[str] = [self._resolve(repo, f"{base_commit}^")]
        except NoSuchRevisionError:
            upstream = ["--root"]

        args = ("rebase", "-i", "--autosquash", *upstream)
        result = self._git(
            repo,
            *args,
            extra_env={"GIT_SEQUENCE_EDITOR": "true", "GIT_EDITOR": "true"},
        )
        if result.returncode == 0:
            return

        output = self._output_of(result)
        if any(marker in output.lower() for marker in _CONFLICT_MARKERS):
            raise RebaseConflictError(
                f"Autosquash rebase onto {base_commit[:8]} stopped on a conflict",
                args,
                output,
            )
        self._raise_for(repo, result, args)

    def abort_rebase(self, repo: RepositoryRef) -> None:
        self._checked(repo, "rebase", "--abort")
