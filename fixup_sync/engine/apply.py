"""
Change Applier — Materialize a ChangeSet in the mirror's working tree.

Added paths are copied first, then modified paths, then deletions run.
Each copy or delete is a single filesystem operation; the first
failure aborts the rest without rolling back what was already applied.
The next cycle's diff picks up anything still pending.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from ..errors import ApplyError
from .models import ChangeSet, RepositoryRef

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 32 * 1024


class ChangeApplier:
    """Copy and delete files so the mirror matches the change set."""

    def __init__(self, source: RepositoryRef, mirror: RepositoryRef):
        self.source = source
        self.mirror = mirror

    def apply(self, changes: ChangeSet) -> int:
        """Apply every change in order; return how many paths were touched."""
        applied = 0
        for path in changes.added:
            self.copy(path)
            applied += 1
        for path in changes.modified:
            self.copy(path)
            applied += 1
        for path in changes.deleted:
            self.delete(path)
            applied += 1
        return applied

    def _resolve(self, root: Path, rel_path: str) -> Path:
        rel = Path(rel_path)
        if rel.is_absolute() or ".." in rel.parts:
            raise ApplyError(f"Refusing path outside repository: {rel_path}")
        return root / rel

    def copy(self, rel_path: str) -> None:
        src = self._resolve(self.source.path, rel_path)
        dst = self._resolve(self.mirror.path, rel_path)

        if not src.is_file():
            raise ApplyError(f"Source file does not exist: {src}")

        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
            with src.open("rb") as fsrc, dst.open("wb") as fdst:
                shutil.copyfileobj(fsrc, fdst, COPY_BUFFER_SIZE)
        except OSError as e:
            raise ApplyError(f"Failed to copy {rel_path}: {e}") from e

        logger.debug(f"[sync] copied {rel_path}")

    def delete(self, rel_path: str) -> None:
        dst = self._resolve(self.mirror.path, rel_path)
        try:
            dst.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise ApplyError(f"Failed to delete {rel_path}: {e}") from e

        logger.debug(f"[sync] deleted {rel_path}")
