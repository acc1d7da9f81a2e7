"""
Filesystem adapter — file operations the Patch Engine and Reconciler need.

Reads and lookups are plain return values; mutations (atomic write,
backup copy, tree removal) return receipts so the caller can log and
decide without try/except at every call site.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterable
from pathlib import Path

from devprovision.adapters.base import Adapter
from devprovision.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

# Never descend into these during the fallback search
_PRUNE_DIRS = frozenset({".git", "node_modules", "build", "dist"})


class FilesystemAdapter(Adapter):
    """File and directory operations with receipts."""

    @property
    def name(self) -> str:
        return "filesystem"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    # ── Lookups ─────────────────────────────────────────────────

    def read_text(self, path: Path) -> str | None:
        """Return the file content, or None if it cannot be read."""
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Cannot read %s: %s", path, e)
            return None

    def resolve_first(self, root: Path, candidates: Iterable[str]) -> Path | None:
        """First candidate (relative to ``root``) that is an existing file."""
        for candidate in candidates:
            path = root / candidate
            if path.is_file():
                return path
        return None

    def search(self, root: Path, filename: str) -> Path | None:
        """Recursive lookup of ``filename`` under ``root``.

        Walks in sorted order so the result is stable across runs, and
        skips VCS and dependency directories.
        """
        if not root.is_dir():
            return None
        for dirpath, dirnames, filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in _PRUNE_DIRS)
            if filename in filenames:
                return Path(dirpath) / filename
        return None

    def find_related(self, root: Path, pattern: str) -> list[Path]:
        """All files under ``root`` whose name matches the glob ``pattern``."""
        if not root.is_dir():
            return []
        found: list[Path] = []
        for dirpath, dirnames, _filenames in os.walk(root):
            dirnames[:] = sorted(d for d in dirnames if d not in _PRUNE_DIRS)
            found.extend(p for p in Path(dirpath).glob(pattern) if p.is_file())
        return sorted(found)

    # ── Mutations ───────────────────────────────────────────────

    def write_atomic(self, path: Path, data: bytes) -> Receipt:
        """Replace ``path`` with ``data`` via a temp file and ``os.replace``.

        The temp file lives in the same directory so the rename never
        crosses filesystems; the original permissions are kept.
        """
        op = f"write {path}"
        tmp_name: str | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp",
            )
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            if path.exists():
                shutil.copymode(path, tmp_name)
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            return Receipt.failure(adapter=self.name, operation=op, error=str(e))
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

        return Receipt.success(
            adapter=self.name,
            operation=op,
            output=f"Written {len(data)} bytes to {path}",
            metadata={"path": str(path), "size": len(data)},
        )

    def copy(self, src: Path, dest: Path) -> Receipt:
        """Copy ``src`` to ``dest`` with metadata; refuses to overwrite."""
        op = f"copy {src} -> {dest}"
        if dest.exists():
            return Receipt.failure(
                adapter=self.name, operation=op, error=f"Refusing to overwrite {dest}",
            )
        try:
            shutil.copy2(src, dest)
        except OSError as e:
            return Receipt.failure(adapter=self.name, operation=op, error=str(e))
        return Receipt.success(adapter=self.name, operation=op, output=str(dest))

    def restore(self, backup: Path, dest: Path) -> Receipt:
        """Copy a backup over ``dest`` (the one place overwriting is allowed)."""
        op = f"restore {backup} -> {dest}"
        try:
            shutil.copy2(backup, dest)
        except OSError as e:
            return Receipt.failure(adapter=self.name, operation=op, error=str(e))
        return Receipt.success(adapter=self.name, operation=op, output=str(dest))

    def remove_tree(self, path: Path) -> Receipt:
        """Delete a directory (or file) recursively."""
        op = f"remove {path}"
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            elif path.exists() or path.is_symlink():
                path.unlink()
        except OSError as e:
            return Receipt.failure(adapter=self.name, operation=op, error=str(e))
        return Receipt.success(adapter=self.name, operation=op)
