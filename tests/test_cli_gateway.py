"""
Tests for GitCliGateway — argv construction and exit-code mapping.

All git operations are mocked — no real repos needed.
"""

import subprocess
from pathlib import Path
from unittest import mock

import pytest

from fixup_sync.engine.models import RepositoryRef
from fixup_sync.errors import (
    BranchConflictError,
    NoSuchRevisionError,
    NotARepositoryError,
    NothingToCommitError,
    RebaseConflictError,
    ToolInvocationError,
)
from fixup_sync.git.cli_gateway import GitCliGateway


def _mock_git_result(returncode: int = 0, stdout: str = "", stderr: str = ""):
    """Create a mock subprocess.CompletedProcess."""
    return subprocess.CompletedProcess(
        args=["git"], returncode=returncode, stdout=stdout, stderr=stderr,
    )


def _git_args(call) -> list:
    """The git arguments of a recorded subprocess.run call, minus the prefix."""
    argv = call.args[0]
    assert argv[1:3] == ["-c", "core.quotepath=false"]
    return argv[3:]


@pytest.fixture
def repo(tmp_path: Path) -> RepositoryRef:
    return RepositoryRef(tmp_path, executable="git", remote="origin")


@pytest.fixture
def gateway() -> GitCliGateway:
    return GitCliGateway(timeout=30)


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------

class TestInvocation:
    """Every verb runs in the repository directory with the configured executable."""

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_cwd_executable_timeout(self, mock_run, tmp_path):
        mock_run.return_value = _mock_git_result(stdout="main\n")
        repo = RepositoryRef(tmp_path, executable="/opt/git/bin/git")

        GitCliGateway(timeout=12).current_branch(repo)

        call = mock_run.call_args
        assert call.args[0][0] == "/opt/git/bin/git"
        assert call.kwargs["cwd"] == str(tmp_path)
        assert call.kwargs["timeout"] == 12
        assert call.kwargs["capture_output"] is True

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_executable_missing(self, mock_run, gateway, repo):
        mock_run.side_effect = FileNotFoundError("git")
        with pytest.raises(ToolInvocationError):
            gateway.current_branch(repo)

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_missing_directory(self, mock_run, gateway, tmp_path):
        mock_run.side_effect = FileNotFoundError("cwd")
        with pytest.raises(NotARepositoryError):
            gateway.current_branch(RepositoryRef(tmp_path / "gone"))

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_timeout(self, mock_run, gateway, repo):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=30)
        with pytest.raises(ToolInvocationError, match="timed out"):
            gateway.has_uncommitted_changes(repo)

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_not_a_repository_stderr(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(
            returncode=128, stderr="fatal: not a git repository (or any of the parent directories): .git"
        )
        with pytest.raises(NotARepositoryError):
            gateway.untracked_paths(repo)

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_error_carries_output(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(returncode=1, stderr="error: pathspec oops")
        with pytest.raises(ToolInvocationError) as exc_info:
            gateway.stage_all(repo)
        assert exc_info.value.output == "error: pathspec oops"
        assert exc_info.value.argv == ["add", "-A"]
        assert "pathspec oops" in str(exc_info.value)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

class TestQueries:
    """Read-only verbs."""

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_is_repository(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(stdout="true\n")
        assert gateway.is_repository(repo) is True
        assert _git_args(mock_run.call_args) == ["rev-parse", "--is-inside-work-tree"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_is_repository_false(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(returncode=128, stderr="fatal: not a git repository")
        assert gateway.is_repository(repo) is False

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_is_repository_missing_dir_makes_no_call(self, mock_run, gateway, tmp_path):
        assert gateway.is_repository(RepositoryRef(tmp_path / "nope")) is False
        mock_run.assert_not_called()

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_current_branch(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(stdout="feature/x\n")
        assert gateway.current_branch(repo) == "feature/x"
        assert _git_args(mock_run.call_args) == ["branch", "--show-current"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_current_branch_detached(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(stdout="\n")
        assert gateway.current_branch(repo) == ""

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_branch_exists_local(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(returncode=0)
        assert gateway.branch_exists(repo, "dev") is True
        assert _git_args(mock_run.call_args) == ["show-ref", "--verify", "--quiet", "refs/heads/dev"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_branch_exists_remote(self, mock_run, gateway, tmp_path):
        mock_run.return_value = _mock_git_result(returncode=1)
        repo = RepositoryRef(tmp_path, remote="upstream")
        assert gateway.branch_exists(repo, "dev", remote=True) is False
        assert _git_args(mock_run.call_args)[-1] == "refs/remotes/upstream/dev"

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_changed_paths(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(stdout="a.cpp\0dir/with space.h\0")
        assert gateway.changed_paths_since_previous(repo) == ["a.cpp", "dir/with space.h"]
        assert _git_args(mock_run.call_args) == ["diff", "--name-only", "-z", "HEAD^", "--"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_changed_paths_first_commit_falls_back(self, mock_run, gateway, repo):
        mock_run.side_effect = [
            _mock_git_result(returncode=128, stderr="fatal: ambiguous argument 'HEAD^'"),
            _mock_git_result(stdout="staged.cpp\0"),
        ]
        assert gateway.changed_paths_since_previous(repo) == ["staged.cpp"]
        assert _git_args(mock_run.call_args) == ["diff", "--name-only", "-z", "--cached"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_untracked_paths(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(stdout="ünïcode.cpp\0")
        assert gateway.untracked_paths(repo) == ["ünïcode.cpp"]
        assert _git_args(mock_run.call_args) == ["ls-files", "--others", "--exclude-standard", "-z"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_empty_listing(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(stdout="")
        assert gateway.staged_paths(repo) == []

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_revision_before(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(stdout="abc123\n")
        assert gateway.revision_before(repo, 1) == "abc123"
        assert _git_args(mock_run.call_args) == [
            "rev-parse", "--verify", "--quiet", "HEAD~1^{commit}",
        ]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_revision_before_missing(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(returncode=1)
        with pytest.raises(NoSuchRevisionError):
            gateway.revision_before(repo, 1)

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_has_uncommitted_changes(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(stdout=" M a.cpp\n")
        assert gateway.has_uncommitted_changes(repo) is True
        mock_run.return_value = _mock_git_result(stdout="")
        assert gateway.has_uncommitted_changes(repo) is False

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_uncommitted_paths(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(
            stdout="A  a.cpp\0 M dir with space/b.h\0R  new.cpp\0old.cpp\0?? c.cpp\0 D gone.h\0"
        )
        assert gateway.uncommitted_paths(repo) == [
            "a.cpp", "dir with space/b.h", "new.cpp", "old.cpp", "c.cpp", "gone.h",
        ]
        assert _git_args(mock_run.call_args) == [
            "status", "--porcelain", "-z", "--untracked-files=all",
        ]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_has_paused_is_filesystem_only(self, mock_run, gateway, repo):
        assert gateway.has_paused(repo, ".sync-paused") is False
        (repo.path / ".sync-paused").touch()
        assert gateway.has_paused(repo, ".sync-paused") is True
        mock_run.assert_not_called()


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

class TestMutations:
    """Branch, stage, commit and rebase verbs."""

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_checkout_conflict(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(
            returncode=1, stderr="error: Your local changes would be overwritten by checkout"
        )
        with pytest.raises(BranchConflictError):
            gateway.checkout(repo, "dev")

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_create_branch_from_remote(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result()
        gateway.create_branch(repo, "dev", from_remote=True)
        assert _git_args(mock_run.call_args) == ["checkout", "-b", "dev", "origin/dev"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_create_branch_from_head(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result()
        gateway.create_branch(repo, "dev")
        assert _git_args(mock_run.call_args) == ["checkout", "-b", "dev"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_stage_verbs(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result()
        gateway.stage_all(repo)
        assert _git_args(mock_run.call_args) == ["add", "-A"]
        gateway.stage_modified_only(repo)
        assert _git_args(mock_run.call_args) == ["add", "-u"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_commit_returns_new_head(self, mock_run, gateway, repo):
        mock_run.side_effect = [
            _mock_git_result(stdout="[main 1a2b3c4] msg\n"),
            _mock_git_result(stdout="1a2b3c4d" + "0" * 32 + "\n"),
        ]
        commit_id = gateway.commit(repo, "Auto-sync", author="Bot <b@x>")

        assert commit_id == "1a2b3c4d" + "0" * 32
        commit_args = _git_args(mock_run.call_args_list[0])
        assert commit_args == ["commit", "-m", "Auto-sync", "--author", "Bot <b@x>"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_commit_nothing_to_commit(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result(
            returncode=1, stdout="On branch main\nnothing to commit, working tree clean\n"
        )
        with pytest.raises(NothingToCommitError):
            gateway.commit(repo, "msg")
        assert mock_run.call_count == 1

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_fixup_commit_args(self, mock_run, gateway, repo):
        mock_run.side_effect = [_mock_git_result(), _mock_git_result(stdout="f" * 40)]
        gateway.fixup_commit(repo, "b" * 40, "fixup! Automated fixup")
        assert _git_args(mock_run.call_args_list[0]) == [
            "commit", f"--fixup={'b' * 40}", "-m", "fixup! Automated fixup",
        ]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_autosquash_from_parent(self, mock_run, gateway, repo):
        mock_run.side_effect = [
            _mock_git_result(stdout="parent123\n"),  # rev-parse base^
            _mock_git_result(),                      # rebase
        ]
        gateway.autosquash_rebase(repo, "base456")

        rebase = mock_run.call_args_list[1]
        assert _git_args(rebase) == ["rebase", "-i", "--autosquash", "parent123"]
        assert rebase.kwargs["env"]["GIT_SEQUENCE_EDITOR"] == "true"
        assert rebase.kwargs["env"]["GIT_EDITOR"] == "true"

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_autosquash_root(self, mock_run, gateway, repo):
        mock_run.side_effect = [_mock_git_result(returncode=1), _mock_git_result()]
        gateway.autosquash_rebase(repo, "base456")
        assert _git_args(mock_run.call_args_list[1]) == ["rebase", "-i", "--autosquash", "--root"]

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_autosquash_conflict(self, mock_run, gateway, repo):
        mock_run.side_effect = [
            _mock_git_result(stdout="parent\n"),
            _mock_git_result(returncode=1, stderr="CONFLICT (content): Merge conflict in a.cpp\n"
                                                  "error: could not apply 1a2b3c4..."),
        ]
        with pytest.raises(RebaseConflictError):
            gateway.autosquash_rebase(repo, "base456")

    @mock.patch("fixup_sync.git.cli_gateway.subprocess.run")
    def test_abort_rebase(self, mock_run, gateway, repo):
        mock_run.return_value = _mock_git_result()
        gateway.abort_rebase(repo)
        assert _git_args(mock_run.call_args) == ["rebase", "--abort"]
