"""
Fixup Committer — Fold uncommitted mirror edits into history.

## Flow

    validate mirror ─► resolve branch ─► uncommitted? ──no──► done (0 files)
                                              │yes
                                              ▼
         base = HEAD~1 (or HEAD) ─► stage tracked edits ─► fixup commit
                                                              │
                                     autosquash enabled? ─────┤
                                              │yes            │no
                                              ▼               ▼
                                   rebase --autosquash       done

A failed fixup commit stops before any rebase. A failed autosquash is
aborted and reported; the fixup commit stays in the log so a later
cycle or a human can squash it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..errors import (
    FixupError,
    GatewayError,
    NoSuchRevisionError,
    NotARepositoryError,
    NothingToCommitError,
)
from ..git.gateway import RepositoryGateway
from .branch import BranchResolver
from .commit import SHORT_HASH_LEN, format_author, format_timestamp
from .models import CommitIdentifier, FixupOutcome, RepositoryRef

logger = logging.getLogger(__name__)

FIXUP_BODY = "Automated fixup"


def render_fixup_message(
    prefix: str,
    base_commit: Optional[CommitIdentifier],
    now: Optional[datetime] = None,
) -> str:
    message = prefix + FIXUP_BODY
    if base_commit:
        message += f" for {base_commit[:SHORT_HASH_LEN]}"
    message += f" @ {format_timestamp(now)}"
    return message


class FixupCommitter:
    """Create (and optionally autosquash) a fixup commit in the mirror."""

    def __init__(
        self,
        gateway: RepositoryGateway,
        resolver: BranchResolver,
        message_prefix: str = "fixup! ",
        autosquash: bool = True,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
    ):
        self.gateway = gateway
        self.resolver = resolver
        self.mirror: RepositoryRef = resolver.mirror
        self.message_prefix = message_prefix
        self.autosquash = autosquash
        self.author = format_author(author_name, author_email)

    def validate(self) -> None:
        if not self.gateway.is_repository(self.mirror):
            raise NotARepositoryError(f"Mirror is not a git repository: {self.mirror}")

    def base_commit(self) -> CommitIdentifier:
        """The commit before HEAD, or HEAD itself on a single-commit history."""
        try:
            return self.gateway.revision_before(self.mirror, 1)
        except NoSuchRevisionError:
            return self.gateway.head_commit(self.mirror)

    def run(self) -> FixupOutcome:
        self.validate()
        branch = self.resolver.resolve()

        if not self.gateway.has_uncommitted_changes(self.mirror):
            logger.debug("[fixup] no uncommitted changes in mirror")
            return FixupOutcome(succeeded=True, branch=branch)

        outcome = FixupOutcome(base_commit=self.base_commit(), branch=branch)

        self.gateway.stage_modified_only(self.mirror)
        outcome.files_modified = len(self.gateway.staged_paths(self.mirror))
        if outcome.files_modified == 0:
            # Only untracked files were present; nothing for a fixup to carry.
            logger.debug("[fixup] no tracked edits staged")
            outcome.succeeded = True
            return outcome

        message = render_fixup_message(self.message_prefix, outcome.base_commit)
        try:
            outcome.fixup_commit = self.gateway.fixup_commit(
                self.mirror, outcome.base_commit, message, self.author
            )
        except NothingToCommitError:
            outcome.files_modified = 0
            outcome.succeeded = True
            return outcome
        except GatewayError as e:
            raise FixupError(f"Fixup commit failed: {e}", outcome) from e

        logger.info(
            f"[fixup] created {outcome.fixup_commit[:SHORT_HASH_LEN]} for "
            f"{outcome.base_commit[:SHORT_HASH_LEN]} ({outcome.files_modified} files)"
        )

        if self.autosquash:
            self._autosquash(outcome)

        outcome.succeeded = True
        return outcome

    def _autosquash(self, outcome: FixupOutcome) -> None:
        try:
            self.gateway.autosquash_rebase(self.mirror, outcome.base_commit)
        except GatewayError as e:
            try:
                self.gateway.abort_rebase(self.mirror)
            except GatewayError as abort_error:
                logger.warning(f"[fixup] rebase --abort failed: {abort_error}")
            raise FixupError(
                f"Autosquash failed, fixup commit "
                f"{outcome.fixup_commit[:SHORT_HASH_LEN]} left unsquashed: {e}",
                outcome,
            ) from e

        outcome.squashed = True
        logger.info(f"[fixup] autosquashed into {outcome.base_commit[:SHORT_HASH_LEN]}")
