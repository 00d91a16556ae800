"""
Commit Generator — Persist an applied ChangeSet as one mirror commit.

## Message Template

Only two tokens are recognized; anything else is left verbatim:

    ${timestamp}   local time, YYYY-MM-DD HH:MM:SS
    ${hash}        first 8 chars of the source HEAD ("pending" if none)

A fixed summary suffix is always appended:

    Auto-sync: 2026-01-02 10:00:00 @ 1a2b3c4d (3 files: +1 ~1 -1)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..errors import NoSuchRevisionError, NothingToCommitError
from ..git.gateway import RepositoryGateway
from .models import ChangeSet, CommitIdentifier, RepositoryRef

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
TOKEN_TIMESTAMP = "${timestamp}"
TOKEN_HASH = "${hash}"
PENDING_HASH = "pending"
SHORT_HASH_LEN = 8


def format_timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def format_author(name: Optional[str], email: Optional[str]) -> Optional[str]:
    """``Name <email>`` when both are set, otherwise None."""
    if name and email:
        return f"{name} <{email}>"
    return None


def render_template(template: str, timestamp: str, short_hash: str) -> str:
    return template.replace(TOKEN_TIMESTAMP, timestamp).replace(TOKEN_HASH, short_hash)


def render_commit_message(
    template: str,
    changes: ChangeSet,
    source_commit: Optional[CommitIdentifier] = None,
    now: Optional[datetime] = None,
) -> str:
    short_hash = source_commit[:SHORT_HASH_LEN] if source_commit else PENDING_HASH
    message = render_template(template, format_timestamp(now), short_hash)
    return f"{message} {changes.summary()}"


class CommitGenerator:
    """Stage everything in the mirror and commit it with a templated message."""

    def __init__(
        self,
        gateway: RepositoryGateway,
        source: RepositoryRef,
        mirror: RepositoryRef,
        template: str,
        author_name: Optional[str] = None,
        author_email: Optional[str] = None,
    ):
        self.gateway = gateway
        self.source = source
        self.mirror = mirror
        self.template = template
        self.author = format_author(author_name, author_email)

    def source_commit(self) -> Optional[CommitIdentifier]:
        try:
            return self.gateway.head_commit(self.source)
        except NoSuchRevisionError:
            return None

    def commit(self, changes: ChangeSet) -> Optional[CommitIdentifier]:
        """
        Commit the change set; return the new commit, or None for a no-op.

        An empty change set and a clean index both end without a commit.
        """
        if changes.is_empty:
            return None

        self.gateway.stage_all(self.mirror)
        message = render_commit_message(self.template, changes, self.source_commit())

        try:
            commit_id = self.gateway.commit(self.mirror, message, self.author)
        except NothingToCommitError:
            logger.info("[sync] mirror index unchanged, nothing to commit")
            return None

        changes.resulting_commit = commit_id
        logger.info(f"[sync] committed {commit_id[:SHORT_HASH_LEN]} {changes.summary()}")
        return commit_id
