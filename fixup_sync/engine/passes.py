"""
Passes — One complete sync or fixup pass.

A pass is the atomic unit of execution. Each sync pass:
1. Checks the pause lock in the source repository
2. Validates both repositories
3. Resolves the mirror's branch
4. Detects the change set
5. Applies it to the mirror
6. Commits it

A fixup pass checks the pause lock and then hands over to the
FixupCommitter.

Every outcome, including failures, is reported as a CycleResult; only
non-FixupSyncError exceptions escape (and the scheduler logs those).
In dry-run mode only read-only gateway verbs are used and the planned
operations are listed in ``CycleResult.planned``.

## Cycle ID Format

    {S|F}-{YYYYMMDDTHHMMSS}-{RANDOM}
    Example: S-20260204T221903-92929A
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List
from uuid import uuid4

from ..errors import FixupError, FixupSyncError, NotARepositoryError, NoSuchRevisionError
from ..git.gateway import RepositoryGateway
from ..logging_config import CycleLogger
from .apply import ChangeApplier
from .branch import BranchResolver
from .changes import ChangeSetDetector
from .commit import SHORT_HASH_LEN, CommitGenerator, render_commit_message
from .fixup import FixupCommitter, render_fixup_message
from .models import (
    PASS_FIXUP,
    PASS_SYNC,
    CycleResult,
    CycleStatus,
    FixupOutcome,
)

if TYPE_CHECKING:
    from ..config.loader import SyncConfig

logger = logging.getLogger(__name__)


def generate_cycle_id(kind: str) -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    suffix = uuid4().hex[:6].upper()
    return f"{kind[0].upper()}-{ts}-{suffix}"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class PassRunner:
    """Wire the engine components together for one configuration."""

    def __init__(self, gateway: RepositoryGateway, config: "SyncConfig"):
        self.gateway = gateway
        self.config = config
        self.source = config.source_ref()
        self.mirror = config.mirror_ref()

        self.resolver = BranchResolver(gateway, self.source, self.mirror)
        self.detector = ChangeSetDetector(
            gateway, self.source, self.mirror, config.inclusion_rule()
        )
        self.applier = ChangeApplier(self.source, self.mirror)
        self.generator = CommitGenerator(
            gateway,
            self.source,
            self.mirror,
            config.commit_template,
            author_name=config.author_name,
            author_email=config.author_email,
        )
        self.fixup = FixupCommitter(
            gateway,
            self.resolver,
            message_prefix=config.fixup_message_prefix,
            autosquash=config.autosquash_enabled,
            author_name=config.author_name,
            author_email=config.author_email,
        )

    # ------------------------------------------------------------------
    # Shared steps
    # ------------------------------------------------------------------

    def is_paused(self) -> bool:
        return self.gateway.has_paused(self.source, self.config.pause_lock_file)

    def _validate_repositories(self) -> None:
        for label, repo in (("source", self.source), ("mirror", self.mirror)):
            if not self.gateway.is_repository(repo):
                raise NotARepositoryError(f"{label} is not a git repository: {repo}")

    def _start(self, kind: str) -> CycleResult:
        return CycleResult(
            kind=kind,
            cycle_id=generate_cycle_id(kind),
            status=CycleStatus.OK,
            started_at=_now_iso(),
        )

    def _finish(self, result: CycleResult, start_time: float) -> CycleResult:
        result.ended_at = _now_iso()
        result.duration_ms = int((time.time() - start_time) * 1000)
        log = CycleLogger(logger, result.cycle_id, result.kind)
        if result.failed:
            log.error(f"[{result.kind}] cycle failed: {result.error}")
        else:
            log.debug(f"[{result.kind}] cycle {result.status.value} in {result.duration_ms}ms")
        return result

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def run_sync(self, dry_run: bool = False) -> CycleResult:
        start_time = time.time()
        result = self._start(PASS_SYNC)

        try:
            if self.is_paused():
                result.status = CycleStatus.PAUSED
                CycleLogger(logger, result.cycle_id, PASS_SYNC).info(
                    f"[sync] paused by {self.config.pause_lock_file}"
                )
                return self._finish(result, start_time)

            self._validate_repositories()

            if dry_run:
                self._plan_sync(result)
                return self._finish(result, start_time)

            result.branch = self.resolver.resolve()
            changes = self.detector.detect()
            result.change_set = changes

            if changes.is_empty:
                result.status = CycleStatus.NOOP
                return self._finish(result, start_time)

            self.applier.apply(changes)
            if self.generator.commit(changes) is None:
                result.status = CycleStatus.NOOP
            else:
                result.status = CycleStatus.OK

        except FixupSyncError as e:
            result.status = CycleStatus.FAILED
            result.error = str(e)

        return self._finish(result, start_time)

    def _plan_sync(self, result: CycleResult) -> None:
        plan = self.resolver.plan()
        result.branch = plan.target
        result.planned.append(f"branch: {plan.describe()}")

        changes = self.detector.detect()
        result.change_set = changes
        result.status = CycleStatus.DRY_RUN

        planned: List[str] = []
        planned.extend(f"copy + {p}" for p in changes.added)
        planned.extend(f"copy ~ {p}" for p in changes.modified)
        planned.extend(f"delete - {p}" for p in changes.deleted)
        if not changes.is_empty:
            planned.append(
                "commit: "
                + render_commit_message(
                    self.config.commit_template, changes, self.generator.source_commit()
                )
            )
        result.planned.extend(planned)

    # ------------------------------------------------------------------
    # Fixup
    # ------------------------------------------------------------------

    def run_fixup(self, dry_run: bool = False) -> CycleResult:
        start_time = time.time()
        result = self._start(PASS_FIXUP)

        try:
            if self.is_paused():
                result.status = CycleStatus.PAUSED
                CycleLogger(logger, result.cycle_id, PASS_FIXUP).info(
                    f"[fixup] paused by {self.config.pause_lock_file}"
                )
                return self._finish(result, start_time)

            if dry_run:
                self._plan_fixup(result)
                return self._finish(result, start_time)

            outcome = self.fixup.run()
            result.fixup = outcome
            result.branch = outcome.branch
            result.status = CycleStatus.OK if outcome.fixup_commit else CycleStatus.NOOP

        except FixupError as e:
            result.status = CycleStatus.FAILED
            result.error = str(e)
            result.fixup = e.outcome or FixupOutcome()
            result.fixup.succeeded = False
        except FixupSyncError as e:
            result.status = CycleStatus.FAILED
            result.error = str(e)

        return self._finish(result, start_time)

    def _plan_fixup(self, result: CycleResult) -> None:
        self.fixup.validate()
        plan = self.resolver.plan()
        result.branch = plan.target
        result.planned.append(f"branch: {plan.describe()}")
        result.status = CycleStatus.DRY_RUN
        result.fixup = FixupOutcome(succeeded=True)

        if not self.gateway.has_uncommitted_changes(self.mirror):
            result.planned.append("no uncommitted changes, nothing to fix up")
            return

        try:
            base = self.fixup.base_commit()
        except NoSuchRevisionError:
            result.planned.append("mirror has no commits, fixup would fail")
            return

        result.fixup.base_commit = base
        result.planned.append("stage tracked modifications (add -u)")
        result.planned.append(
            f"fixup commit for {base[:SHORT_HASH_LEN]}: "
            + render_fixup_message(self.config.fixup_message_prefix, base)
        )
        if self.config.autosquash_enabled:
            result.planned.append(f"autosquash rebase into {base[:SHORT_HASH_LEN]}")
