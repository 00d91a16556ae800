"""
Change Set Detector — What to propagate from source to mirror this cycle.

Tracked changes come from diffing the source against the revision
before HEAD; untracked files are always treated as additions. A
tracked path is *modified* when it still exists in the source working
tree and *deleted* otherwise. Renames surface as a deletion plus an
addition. Paths the mirror already reflects (identical content, or
already absent for a deletion) *and* has committed are left out, so a
repeated cycle over an unchanged source yields an empty set. A path
still uncommitted in the mirror, for example after a failed commit,
is reported again and retried.

Sequence order follows the gateway's output order. A gateway failure
propagates and no partial ChangeSet is returned.
"""

from __future__ import annotations

import filecmp
import logging
from typing import Optional, Set

from ..git.gateway import RepositoryGateway
from .models import ChangeSet, InclusionRule, RepositoryRef

logger = logging.getLogger(__name__)


class ChangeSetDetector:
    """Classify source changes into added / modified / deleted."""

    def __init__(
        self,
        gateway: RepositoryGateway,
        source: RepositoryRef,
        mirror: RepositoryRef,
        rule: InclusionRule,
    ):
        self.gateway = gateway
        self.source = source
        self.mirror = mirror
        self.rule = rule
        self._mirror_pending: Optional[Set[str]] = None

    def detect(self) -> ChangeSet:
        tracked = self.gateway.changed_paths_since_previous(self.source)
        untracked = self.gateway.untracked_paths(self.source)

        self._mirror_pending = None

        changes = ChangeSet()
        skipped = 0
        in_sync = 0

        for path in tracked:
            if not self.rule.matches(path):
                skipped += 1
                continue
            if (self.source.path / path).is_file():
                kind = "modified"
            else:
                kind = "deleted"
            if self._already_mirrored(path, kind):
                in_sync += 1
                continue
            changes.add(kind, path)

        for path in untracked:
            if not self.rule.matches(path):
                skipped += 1
                continue
            if self._already_mirrored(path, "added"):
                in_sync += 1
                continue
            changes.add("added", path)

        logger.debug(
            f"[sync] detected {changes.summary()} "
            f"from {len(tracked)} tracked / {len(untracked)} untracked, "
            f"{skipped} filtered, {in_sync} already in sync"
        )
        return changes

    def _already_mirrored(self, path: str, kind: str) -> bool:
        """True when the mirror already reflects this change and has committed it."""
        target = self.mirror.path / path
        if kind == "deleted":
            reflected = not target.exists()
        elif not target.is_file():
            return False
        else:
            try:
                reflected = filecmp.cmp(self.source.path / path, target, shallow=False)
            except OSError:
                return False
        return reflected and path not in self._pending_in_mirror()

    def _pending_in_mirror(self) -> Set[str]:
        if self._mirror_pending is None:
            self._mirror_pending = set(self.gateway.uncommitted_paths(self.mirror))
        return self._mirror_pending
