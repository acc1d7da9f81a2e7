"""
Patch Engine — overwrite a collaborator file exactly once.

    locate → marker check → backup → atomic write → re-check marker

The marker is a fingerprint of an applied patch, not a byte comparison,
so upstream edits around the markers do not cause re-patching.  Backups
are append-only: an existing backup is never overwritten, whatever the
target's naming policy.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from devprovision.adapters.shell.filesystem import FilesystemAdapter
from devprovision.core.models.patch import BackupPolicy, PatchTarget
from devprovision.core.models.state import BackupRecord
from devprovision.core.models.step import StepResult
from devprovision.core.observability.logging_config import log_skip
from devprovision.core.services.probes import locate

logger = logging.getLogger(__name__)

_TS_FORMAT = "%Y%m%d_%H%M%S"


class PatchEngine:
    """Apply PatchTargets under a search root (the collaborator checkout).

    Args:
        fs: Filesystem adapter.
        root: Directory candidate paths are relative to.
        clock: Timestamp source for backup names.
    """

    def __init__(
        self,
        fs: FilesystemAdapter,
        root: Path,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._fs = fs
        self._root = root
        self._clock = clock

    def apply(self, target: PatchTarget) -> StepResult:
        """Bring ``target`` into its patched state.

        Returns:
            SATISFIED if already marked, ACTED after a verified write,
            FAILED_SOFT if the file cannot be found, FAILED_FATAL if the
            backup or write fails or the written file lacks its marker.
        """
        path = locate(self._fs, self._root, target)
        if path is None:
            related = (
                self._fs.find_related(self._root, target.related_glob)
                if target.related_glob else []
            )
            logger.warning(
                "%s file not found. Repository structure may have changed; "
                "not critical, continuing without this modification%s",
                target.filename,
                f" (related files: {', '.join(str(p) for p in related)})" if related else "",
            )
            return StepResult.FAILED_SOFT

        logger.debug("Found %s at: %s", target.filename, path)
        original = self._fs.read_text(path)
        if original is not None and target.marker(original):
            log_skip(logger, "%s already modified (%s)", target.filename, target.description or target.name)
            return StepResult.SATISFIED

        record = self._backup(path, target.backup_policy)
        if record is None:
            return StepResult.FAILED_FATAL
        logger.debug("Created backup: %s", record.backup_path)

        written = self._fs.write_atomic(path, target.payload)
        if written.failed:
            logger.error("Failed to update %s: %s", path, written.error)
            return StepResult.FAILED_FATAL

        content = self._fs.read_text(path)
        if content is not None and target.marker(content):
            logger.info(
                "%s updated successfully (%s); backup: %s",
                path, target.description or target.name, record.backup_path,
            )
            return StepResult.ACTED

        restored = self._fs.restore(Path(record.backup_path), path)
        if restored.ok:
            logger.error(
                "%s written but marker check failed; restored original from %s",
                path, record.backup_path,
            )
        else:
            logger.error(
                "%s written but marker check failed, and restore from %s failed: %s",
                path, record.backup_path, restored.error,
            )
        return StepResult.FAILED_FATAL

    def _backup(self, path: Path, policy: BackupPolicy) -> BackupRecord | None:
        """Copy ``path`` to a fresh backup name."""
        now = self._clock()
        dest = backup_path(path, policy, now)
        receipt = self._fs.copy(path, dest)
        if receipt.failed:
            logger.error("Could not back up %s: %s", path, receipt.error)
            return None
        return BackupRecord(original_path=str(path), backup_path=str(dest), timestamp=now)


def backup_path(path: Path, policy: BackupPolicy, now: datetime) -> Path:
    """First unused backup name for ``path`` under ``policy``.

    SINGLE prefers ``<path>.backup``; TIMESTAMPED (and SINGLE once that
    name is taken) uses ``<path>.backup.<YYYYMMDD_HHMMSS>``, adding a
    ``_N`` suffix when two runs land in the same second.
    """
    if policy is BackupPolicy.SINGLE:
        single = path.with_name(f"{path.name}.backup")
        if not single.exists():
            return single

    stamped = path.with_name(f"{path.name}.backup.{now.strftime(_TS_FORMAT)}")
    candidate = stamped
    n = 1
    while candidate.exists():
        candidate = stamped.with_name(f"{stamped.name}_{n}")
        n += 1
    return candidate
