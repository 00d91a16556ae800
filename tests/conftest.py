"""
Shared fixtures for engine, scheduler and CLI tests.

FakeGateway keeps per-repository state in memory and records every verb
it is asked to run, so tests can assert both outcomes and the exact
sequence of version-control calls. File contents still live on disk
under tmp_path, because detection and apply work on real files.
"""

from __future__ import annotations

import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from fixup_sync.config.loader import SyncConfig, build_config
from fixup_sync.engine.models import RepositoryRef
from fixup_sync.errors import NoSuchRevisionError, NothingToCommitError
from fixup_sync.git.gateway import RepositoryGateway


@dataclass
class FakeRepo:
    """In-memory state of one repository."""

    is_repo: bool = True
    branch: str = "main"
    local_branches: Set[str] = field(default_factory=lambda: {"main"})
    remote_branches: Set[str] = field(default_factory=set)
    changed: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    dirty_tracked: List[str] = field(default_factory=list)
    staged: List[str] = field(default_factory=list)
    history: List[str] = field(default_factory=list)
    messages: List[str] = field(default_factory=list)
    failures: Dict[str, Exception] = field(default_factory=dict)
    nothing_to_commit: bool = False


class FakeGateway(RepositoryGateway):
    """Recording in-memory RepositoryGateway."""

    def __init__(self):
        self.repos: Dict[Path, FakeRepo] = {}
        self.calls: List[Tuple[str, Path]] = []
        self.authors: List[Optional[str]] = []
        self._counter = 0

    # --- test helpers --------------------------------------------------

    def state(self, repo: RepositoryRef) -> FakeRepo:
        return self.repos.setdefault(repo.path, FakeRepo())

    def verbs(self, repo: Optional[RepositoryRef] = None) -> List[str]:
        return [verb for verb, path in self.calls if repo is None or path == repo.path]

    def vcs_verbs(self) -> List[str]:
        """Verbs that would invoke the version-control executable."""
        return [verb for verb in self.verbs() if verb != "has_paused"]

    def _record(self, verb: str, repo: RepositoryRef) -> FakeRepo:
        self.calls.append((verb, repo.path))
        state = self.state(repo)
        if verb in state.failures:
            raise state.failures[verb]
        return state

    def _new_commit(self, state: FakeRepo, message: str) -> str:
        self._counter += 1
        commit_id = f"{self._counter:08x}" + "f" * 32
        state.history.append(commit_id)
        state.messages.append(message)
        state.staged = []
        state.dirty_tracked = []
        return commit_id

    # --- queries -------------------------------------------------------

    def is_repository(self, repo):
        return self._record("is_repository", repo).is_repo

    def current_branch(self, repo):
        return self._record("current_branch", repo).branch

    def branch_exists(self, repo, name, remote=False):
        state = self._record("branch_exists", repo)
        return name in (state.remote_branches if remote else state.local_branches)

    def changed_paths_since_previous(self, repo):
        return list(self._record("changed_paths_since_previous", repo).changed)

    def untracked_paths(self, repo):
        return list(self._record("untracked_paths", repo).untracked)

    def staged_paths(self, repo):
        return list(self._record("staged_paths", repo).staged)

    def head_commit(self, repo):
        state = self._record("head_commit", repo)
        if not state.history:
            raise NoSuchRevisionError("No such revision: HEAD")
        return state.history[-1]

    def revision_before(self, repo, n):
        state = self._record("revision_before", repo)
        if len(state.history) <= n:
            raise NoSuchRevisionError(f"No such revision: HEAD~{n}")
        return state.history[-1 - n]

    def has_uncommitted_changes(self, repo):
        state = self._record("has_uncommitted_changes", repo)
        return bool(state.dirty_tracked or state.untracked or state.staged)

    def uncommitted_paths(self, repo):
        state = self._record("uncommitted_paths", repo)
        return list(dict.fromkeys(state.staged + state.dirty_tracked + state.untracked))

    def has_paused(self, repo, lock_file_name):
        self._record("has_paused", repo)
        return (repo.path / lock_file_name).exists()

    # --- mutations -----------------------------------------------------

    def create_branch(self, repo, name, from_remote=False):
        state = self._record("create_branch", repo)
        state.local_branches.add(name)
        state.branch = name

    def checkout(self, repo, name):
        state = self._record("checkout", repo)
        state.branch = name

    def stage_all(self, repo):
        state = self._record("stage_all", repo)
        state.staged = list(state.dirty_tracked) + list(state.untracked)

    def stage_modified_only(self, repo):
        state = self._record("stage_modified_only", repo)
        state.staged = list(state.dirty_tracked)

    def commit(self, repo, message, author=None):
        state = self._record("commit", repo)
        if state.nothing_to_commit:
            raise NothingToCommitError(f"Nothing to commit in {repo.path}")
        self.authors.append(author)
        return self._new_commit(state, message)

    def fixup_commit(self, repo, base_commit, message, author=None):
        state = self._record("fixup_commit", repo)
        if not state.staged:
            raise NothingToCommitError(f"Nothing to commit in {repo.path}")
        self.authors.append(author)
        return self._new_commit(state, f"fixup! {base_commit}\n\n{message}")

    def autosquash_rebase(self, repo, base_commit):
        state = self._record("autosquash_rebase", repo)
        # Drop the fixup commit, as a successful autosquash would.
        state.history.pop()
        state.messages.pop()

    def abort_rebase(self, repo):
        self._record("abort_rebase", repo)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def source(tmp_path: Path) -> RepositoryRef:
    path = tmp_path / "source"
    path.mkdir()
    return RepositoryRef(path)


@pytest.fixture
def mirror(tmp_path: Path) -> RepositoryRef:
    path = tmp_path / "mirror"
    path.mkdir()
    return RepositoryRef(path)


@pytest.fixture
def make_config(source: RepositoryRef, mirror: RepositoryRef):
    """Build a SyncConfig pointing at the source/mirror fixtures."""

    def _make(**overrides) -> SyncConfig:
        data = {"source_repo": source.path, "mirror_repo": mirror.path}
        data.update(overrides)
        return build_config(data)

    return _make


def write_file(root: Path, rel_path: str, content: str = "x") -> Path:
    """Create ``root/rel_path`` with ``content``, making parent dirs."""
    path = root / rel_path
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


# ---------------------------------------------------------------------------
# Real git helpers
# ---------------------------------------------------------------------------

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(repo: Path, *args: str) -> str:
    """Run git in ``repo`` and return stdout, failing the test on error."""
    result = subprocess.run(
        ["git", *args], cwd=str(repo), capture_output=True, text=True,
    )
    assert result.returncode == 0, f"git {' '.join(args)}: {result.stderr}"
    return result.stdout


def init_repo(path: Path, branch: str = "main") -> Path:
    """Initialize an empty repository on ``branch`` with a local identity."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-q")
    git(path, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
    git(path, "config", "user.name", "Test User")
    git(path, "config", "user.email", "test@example.com")
    git(path, "config", "commit.gpgsign", "false")
    return path


def commit_all(path: Path, message: str) -> str:
    git(path, "add", "-A")
    git(path, "commit", "-q", "-m", message)
    return git(path, "rev-parse", "HEAD").strip()
