"""
PatchTarget — one file kept overwritten under idempotency control.

A target is pure configuration: where to look, how to recognise an
already-patched file, and what to write.  The Patch Engine holds all of
the behaviour, so targets can be swapped (or replaced by trivial test
fixtures) without touching it.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum


class BackupPolicy(StrEnum):
    """How the backup path is named.

    SINGLE      → ``<path>.backup``; falls back to a timestamped name if
                  that file already exists.
    TIMESTAMPED → ``<path>.backup.YYYYMMDD_HHMMSS`` on every write.
    """

    SINGLE = "single"
    TIMESTAMPED = "timestamped"


MarkerPredicate = Callable[[str], bool]


def all_markers(*markers: str) -> MarkerPredicate:
    """Predicate that holds when every marker string occurs in the content."""

    def _check(content: str) -> bool:
        return all(marker in content for marker in markers)

    return _check


def any_of(*predicates: MarkerPredicate) -> MarkerPredicate:
    """Predicate that holds when at least one of ``predicates`` holds."""

    def _check(content: str) -> bool:
        return any(predicate(content) for predicate in predicates)

    return _check


@dataclass(frozen=True)
class PatchTarget:
    """A file to overwrite with ``payload`` unless ``marker`` already holds.

    Args:
        name: Short identifier used in logs (e.g. ``"ui-fee"``).
        filename: Basename used for the recursive fallback search.
        candidate_paths: Paths relative to the search root, tried in order.
        marker: Idempotency fingerprint over the file content.
        payload: Replacement content, written verbatim.
        backup_policy: Backup naming scheme.
        related_glob: Optional glob listed in logs when the file is missing.
    """

    name: str
    filename: str
    candidate_paths: Sequence[str]
    marker: MarkerPredicate
    payload: bytes
    backup_policy: BackupPolicy = BackupPolicy.TIMESTAMPED
    related_glob: str | None = None
    description: str = field(default="", compare=False)
