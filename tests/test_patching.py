"""
Tests for the Patch Engine — marker check, backups, atomic write, rollback.
"""

import logging
from datetime import datetime
from pathlib import Path

import pytest

from devprovision.adapters.shell.filesystem import FilesystemAdapter
from devprovision.core.data import PatchCatalog
from devprovision.core.models.patch import BackupPolicy, PatchTarget, all_markers
from devprovision.core.models.step import StepResult
from devprovision.core.services.patching import PatchEngine, backup_path

ORIGINAL = "export const fee = 0.3;\n"


def _target(policy: BackupPolicy = BackupPolicy.TIMESTAMPED, payload: bytes | None = None):
    return PatchTarget(
        name="demo",
        filename="demo.ts",
        candidate_paths=("src/demo.ts",),
        marker=all_markers("// patched"),
        payload=payload if payload is not None else b"// patched\nexport const fee = 0;\n",
        backup_policy=policy,
        related_glob="*demo*",
    )


def _clock(*stamps: datetime):
    """Clock returning ``stamps`` in order, repeating the last one."""
    queue = list(stamps)

    def now() -> datetime:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    return now


T1 = datetime(2024, 5, 1, 12, 0, 0)
T2 = datetime(2024, 5, 1, 12, 0, 7)


@pytest.fixture
def root(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "demo.ts").write_text(ORIGINAL)
    return tmp_path


def _backups(root: Path) -> list[Path]:
    return sorted((root / "src").glob("demo.ts.backup*"))


class TestApply:
    def test_marker_round_trip(self, root: Path):
        engine = PatchEngine(FilesystemAdapter(), root, clock=_clock(T1))

        assert engine.apply(_target()) is StepResult.ACTED

        content = (root / "src" / "demo.ts").read_text()
        assert "// patched" in content
        backups = _backups(root)
        assert [b.name for b in backups] == ["demo.ts.backup.20240501_120000"]
        assert backups[0].read_text() == ORIGINAL

    def test_idempotent(self, root: Path):
        engine = PatchEngine(FilesystemAdapter(), root, clock=_clock(T1))
        engine.apply(_target())
        before = {p: p.stat().st_mtime_ns for p in (root / "src").iterdir()}

        assert engine.apply(_target()) is StepResult.SATISFIED
        after = {p: p.stat().st_mtime_ns for p in (root / "src").iterdir()}
        assert after == before

    def test_backups_never_overwritten(self, root: Path):
        engine = PatchEngine(FilesystemAdapter(), root, clock=_clock(T1, T2))
        engine.apply(_target())

        # Upstream reverts the file between runs
        (root / "src" / "demo.ts").write_text(ORIGINAL)
        assert engine.apply(_target()) is StepResult.ACTED

        backups = _backups(root)
        assert len(backups) == 2
        assert all(b.read_text() == ORIGINAL for b in backups)

    def test_same_second_collision(self, root: Path):
        engine = PatchEngine(FilesystemAdapter(), root, clock=_clock(T1))
        engine.apply(_target())
        (root / "src" / "demo.ts").write_text(ORIGINAL)
        engine.apply(_target())
        assert [b.name for b in _backups(root)] == [
            "demo.ts.backup.20240501_120000",
            "demo.ts.backup.20240501_120000_1",
        ]

    def test_single_backup_policy(self, root: Path):
        engine = PatchEngine(FilesystemAdapter(), root, clock=_clock(T1))
        engine.apply(_target(BackupPolicy.SINGLE))
        assert [b.name for b in _backups(root)] == ["demo.ts.backup"]

        (root / "src" / "demo.ts").write_text("second original\n")
        engine.apply(_target(BackupPolicy.SINGLE))
        backups = _backups(root)
        assert [b.name for b in backups] == [
            "demo.ts.backup",
            "demo.ts.backup.20240501_120000",
        ]
        assert backups[0].read_text() == ORIGINAL
        assert backups[1].read_text() == "second original\n"

    def test_not_found_is_soft(self, tmp_path: Path, caplog: pytest.LogCaptureFixture):
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "demoLegacy.js").write_text("")
        engine = PatchEngine(FilesystemAdapter(), tmp_path)

        with caplog.at_level(logging.WARNING):
            assert engine.apply(_target()) is StepResult.FAILED_SOFT
        assert "demo.ts file not found" in caplog.text
        assert "demoLegacy.js" in caplog.text

    def test_bad_payload_restores_original(self, root: Path):
        engine = PatchEngine(FilesystemAdapter(), root, clock=_clock(T1))
        result = engine.apply(_target(payload=b"no marker here\n"))

        assert result is StepResult.FAILED_FATAL
        assert (root / "src" / "demo.ts").read_text() == ORIGINAL

    def test_backup_failure_is_fatal(self, root: Path, monkeypatch: pytest.MonkeyPatch):
        fs = FilesystemAdapter()
        monkeypatch.setattr(
            fs, "copy",
            lambda src, dest: FilesystemAdapter().copy(src, src),  # refuses: dest exists
        )
        engine = PatchEngine(fs, root, clock=_clock(T1))
        assert engine.apply(_target()) is StepResult.FAILED_FATAL
        assert (root / "src" / "demo.ts").read_text() == ORIGINAL

    def test_recursive_fallback(self, tmp_path: Path):
        moved = tmp_path / "src" / "features" / "fees"
        moved.mkdir(parents=True)
        (moved / "demo.ts").write_text(ORIGINAL)
        engine = PatchEngine(FilesystemAdapter(), tmp_path, clock=_clock(T1))
        assert engine.apply(_target()) is StepResult.ACTED
        assert "// patched" in (moved / "demo.ts").read_text()


class TestBackupPath:
    def test_timestamped(self, tmp_path: Path):
        path = tmp_path / "uiFee.ts"
        assert backup_path(path, BackupPolicy.TIMESTAMPED, T1).name == (
            "uiFee.ts.backup.20240501_120000"
        )

    def test_single(self, tmp_path: Path):
        path = tmp_path / "vite.config.ts"
        assert backup_path(path, BackupPolicy.SINGLE, T1).name == "vite.config.ts.backup"


class TestCatalog:
    def test_payloads_carry_their_markers(self):
        catalog = PatchCatalog()
        for target in (catalog.ui_fee, catalog.vite_config):
            assert target.marker(target.payload.decode("utf-8")), target.name

    def test_policies(self):
        catalog = PatchCatalog()
        assert catalog.ui_fee.backup_policy is BackupPolicy.TIMESTAMPED
        assert catalog.vite_config.backup_policy is BackupPolicy.SINGLE
        assert catalog.ui_fee.candidate_paths[0] == "src/network/ergo/api/uiFee/uiFee.ts"

    def test_fee_marker_accepts_functional_edits(self):
        marker = PatchCatalog().ui_fee.marker
        assert marker("const uiFeeInErg = inputInErg.percent(0);\n uiFeePercent: 0,")
        assert not marker("// Modified: UI fees disabled\n")
