"""
Branch Resolver — Keep the mirror on the same branch as the source.

Runs before any diff or commit. The common case is a single pair of
``current_branch`` queries that already agree. When they differ the
mirror is moved, in order of preference, to:

1. an existing local branch of that name
2. a new local branch created from the remote-tracking branch
3. a new branch created from the mirror's current HEAD

Failures are fatal for the current cycle and not retried here; the
next cycle resolves from scratch.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..errors import UnresolvableBranchError
from ..git.gateway import RepositoryGateway
from .models import BranchName, RepositoryRef

logger = logging.getLogger(__name__)

ACTION_NONE = "none"
ACTION_CHECKOUT = "checkout"
ACTION_CREATE_FROM_REMOTE = "create-from-remote"
ACTION_CREATE = "create"


@dataclass
class BranchPlan:
    """What it takes to put the mirror on the source's branch."""

    target: BranchName
    mirror_branch: BranchName
    action: str

    @property
    def needs_switch(self) -> bool:
        return self.action != ACTION_NONE

    def describe(self) -> str:
        if self.action == ACTION_NONE:
            return f"mirror already on '{self.target}'"
        if self.action == ACTION_CHECKOUT:
            return f"checkout existing branch '{self.target}' (was '{self.mirror_branch}')"
        if self.action == ACTION_CREATE_FROM_REMOTE:
            return f"create '{self.target}' from remote-tracking branch"
        return f"create '{self.target}' from mirror HEAD (was '{self.mirror_branch}')"


class BranchResolver:
    """Mirror the source repository's checked-out branch."""

    def __init__(self, gateway: RepositoryGateway, source: RepositoryRef, mirror: RepositoryRef):
        self.gateway = gateway
        self.source = source
        self.mirror = mirror

    def source_branch(self) -> BranchName:
        branch = self.gateway.current_branch(self.source).strip()
        if not branch:
            raise UnresolvableBranchError(
                f"Source repository {self.source} is not on a named branch (detached HEAD?)"
            )
        return branch

    def plan(self, target: Optional[BranchName] = None) -> BranchPlan:
        """Work out the branch action without touching the mirror."""
        if target is None:
            target = self.source_branch()
        mirror_branch = self.gateway.current_branch(self.mirror).strip()

        if mirror_branch == target:
            return BranchPlan(target, mirror_branch, ACTION_NONE)
        if self.gateway.branch_exists(self.mirror, target):
            return BranchPlan(target, mirror_branch, ACTION_CHECKOUT)
        if self.gateway.branch_exists(self.mirror, target, remote=True):
            return BranchPlan(target, mirror_branch, ACTION_CREATE_FROM_REMOTE)
        return BranchPlan(target, mirror_branch, ACTION_CREATE)

    def resolve(self, target: Optional[BranchName] = None) -> BranchName:
        """Put the mirror on ``target`` (default: the source's branch)."""
        plan = self.plan(target)

        if plan.action == ACTION_NONE:
            return plan.target

        logger.info(f"[branch] {plan.describe()}")
        if plan.action == ACTION_CHECKOUT:
            self.gateway.checkout(self.mirror, plan.target)
        elif plan.action == ACTION_CREATE_FROM_REMOTE:
            self.gateway.create_branch(self.mirror, plan.target, from_remote=True)
        else:
            self.gateway.create_branch(self.mirror, plan.target, from_remote=False)

        return plan.target
