"""
Engine Models — Values passed between the sync and fixup components.

RepositoryRef and InclusionRule live as long as the configuration.
ChangeSet, FixupOutcome and CycleResult are created per cycle and
handed to the caller when the cycle ends.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

CommitIdentifier = str
BranchName = str

PASS_SYNC = "sync"
PASS_FIXUP = "fixup"


@dataclass(frozen=True)
class RepositoryRef:
    """Location of one repository and the executable used to drive it."""

    path: Path
    executable: str = "git"
    remote: str = "origin"

    def __str__(self) -> str:
        return str(self.path)


def _normalize_extension(ext: str) -> str:
    ext = ext.strip().lower()
    if ext and not ext.startswith("."):
        ext = "." + ext
    return ext


@dataclass(frozen=True)
class InclusionRule:
    """
    Which relative paths propagate from source to mirror.

    A path is included when its extension matches (case-insensitive) or
    any include glob matches; it is then dropped if any exclude glob
    matches.

    Globs are matched one path segment at a time: the pattern needs as
    many segments as the path, and ``*`` / ``?`` never match ``/``. The
    extension runs from the last dot of the file name, so a dotfile such
    as ``.gitignore`` is its own extension.
    """

    extensions: FrozenSet[str] = frozenset()
    include_globs: Tuple[str, ...] = ()
    exclude_globs: Tuple[str, ...] = ()

    @classmethod
    def build(
        cls,
        extensions: Optional[List[str]] = None,
        include_globs: Optional[List[str]] = None,
        exclude_globs: Optional[List[str]] = None,
    ) -> "InclusionRule":
        return cls(
            extensions=frozenset(
                e for e in (_normalize_extension(x) for x in extensions or []) if e
            ),
            include_globs=tuple(include_globs or []),
            exclude_globs=tuple(exclude_globs or []),
        )

    def matches(self, rel_path: str) -> bool:
        path = rel_path.replace("\\", "/")
        if not self._included(path):
            return False
        return not self.is_excluded(path)

    def is_excluded(self, path: str) -> bool:
        return any(_glob_match(path, pattern) for pattern in self.exclude_globs)

    def _included(self, path: str) -> bool:
        suffix = _extension(path)
        if suffix and suffix in self.extensions:
            return True
        return any(_glob_match(path, pattern) for pattern in self.include_globs)


def _extension(path: str) -> str:
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    return name[dot:].lower() if dot >= 0 else ""


def _glob_match(path: str, pattern: str) -> bool:
    parts = path.split("/")
    pattern_parts = pattern.split("/")
    if len(parts) != len(pattern_parts):
        return False
    return all(fnmatch.fnmatchcase(p, pat) for p, pat in zip(parts, pattern_parts))


@dataclass
class ChangeSet:
    """Added/modified/deleted paths for one sync cycle, in diff order."""

    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    resulting_commit: Optional[CommitIdentifier] = None

    def add(self, kind: str, path: str) -> bool:
        """
        Record ``path`` under ``kind`` unless it is already classified.

        Returns False when the path was already present in any sequence,
        which keeps the three sequences pairwise disjoint.
        """
        if path in self.added or path in self.modified or path in self.deleted:
            return False
        getattr(self, kind).append(path)
        return True

    @property
    def total(self) -> int:
        return len(self.added) + len(self.modified) + len(self.deleted)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def summary(self) -> str:
        return (
            f"({self.total} files: +{len(self.added)} "
            f"~{len(self.modified)} -{len(self.deleted)})"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "added": list(self.added),
            "modified": list(self.modified),
            "deleted": list(self.deleted),
            "resulting_commit": self.resulting_commit,
        }


@dataclass
class FixupOutcome:
    """Result of one fixup cycle."""

    base_commit: Optional[CommitIdentifier] = None
    fixup_commit: Optional[CommitIdentifier] = None
    files_modified: int = 0
    succeeded: bool = False
    squashed: bool = False
    branch: Optional[BranchName] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_commit": self.base_commit,
            "fixup_commit": self.fixup_commit,
            "files_modified": self.files_modified,
            "succeeded": self.succeeded,
            "squashed": self.squashed,
            "branch": self.branch,
        }


class CycleStatus(str, Enum):
    """Terminal status of one pass."""

    OK = "ok"
    NOOP = "noop"
    PAUSED = "paused"
    DRY_RUN = "dry_run"
    FAILED = "failed"


@dataclass
class CycleResult:
    """What a single sync or fixup pass produced."""

    kind: str
    cycle_id: str
    status: CycleStatus
    started_at: str
    ended_at: Optional[str] = None
    duration_ms: int = 0
    branch: Optional[BranchName] = None
    change_set: Optional[ChangeSet] = None
    fixup: Optional[FixupOutcome] = None
    planned: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == CycleStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "cycle_id": self.cycle_id,
            "status": self.status.value,
            "started_at": self.started_at,
            "ended_at": self.ended_at,
            "duration_ms": self.duration_ms,
            "branch": self.branch,
            "change_set": self.change_set.to_dict() if self.change_set else None,
            "fixup": self.fixup.to_dict() if self.fixup else None,
            "planned": list(self.planned),
            "error": self.error,
        }
