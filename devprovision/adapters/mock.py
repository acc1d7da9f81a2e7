"""
Mock runner — scripted stand-in for CommandRunner.

Used by the test suite to simulate nvm, node, yarn, git and the OS
package manager without touching the machine.  Responses are matched by
substring against the joined command line; the most recently scripted
pattern wins.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from devprovision.adapters.shell.command import CommandRunner
from devprovision.core.models.receipt import Receipt


@dataclass
class MockCall:
    """One command the mock received."""

    command: str
    cwd: str | None = None
    timeout: float | None = None
    env_overrides: dict[str, str] = field(default_factory=dict)
    capture: bool = True
    sudo: bool = False


@dataclass
class _Script:
    receipts: list[Receipt]
    effect: Callable[[], None] | None = None


class MockProcess:
    """Minimal Popen look-alike returned by ``MockRunner.spawn``."""

    def __init__(self, returncode: int = 0, on_wait: Callable[[], None] | None = None):
        self._returncode = returncode
        self._on_wait = on_wait
        self.returncode: int | None = None
        self.signals: list[int] = []

    def wait(self, timeout: float | None = None) -> int:
        if self._on_wait is not None:
            hook, self._on_wait = self._on_wait, None
            hook()
        self.returncode = self._returncode
        return self._returncode

    def poll(self) -> int | None:
        return self.returncode

    def send_signal(self, signum: int) -> None:
        self.signals.append(signum)
        self._on_wait = None

    def kill(self) -> None:
        self.send_signal(9)


class MockRunner(CommandRunner):
    """CommandRunner test double.

    By default every command succeeds with empty output and every binary
    listed in ``binaries`` resolves.  ``set_response`` scripts a pattern;
    passing several receipts makes successive calls consume them in
    order, the last one repeating.
    """

    def __init__(
        self,
        binaries: Iterable[str] = (),
        root: bool = False,
    ):
        self._binaries: set[str] = set(binaries)
        self._root = root
        self._scripts: list[tuple[str, _Script]] = []
        self._call_log: list[MockCall] = []
        self.process: MockProcess = MockProcess()

    # ── Scripting ───────────────────────────────────────────────

    def set_response(
        self,
        pattern: str,
        *receipts: Receipt,
        output: str = "",
        effect: Callable[[], None] | None = None,
    ) -> None:
        """Script the response for commands containing ``pattern``."""
        if not receipts:
            receipts = (Receipt.success(adapter="shell", operation=pattern, output=output),)
        self._scripts.append((pattern, _Script(list(receipts), effect)))

    def set_failure(
        self,
        pattern: str,
        error: str = "Mock failure",
        timed_out: bool = False,
        return_code: int = 1,
    ) -> None:
        """Make commands containing ``pattern`` fail."""
        self.set_response(pattern, self.failure(pattern, error, timed_out, return_code))

    @staticmethod
    def failure(
        pattern: str,
        error: str = "Mock failure",
        timed_out: bool = False,
        return_code: int = 1,
    ) -> Receipt:
        return Receipt.failure(
            adapter="shell",
            operation=pattern,
            error=error,
            timed_out=timed_out,
            return_code=None if timed_out else return_code,
        )

    @staticmethod
    def success(pattern: str, output: str = "") -> Receipt:
        return Receipt.success(adapter="shell", operation=pattern, output=output)

    def add_binary(self, *names: str) -> None:
        self._binaries.update(names)

    def remove_binary(self, *names: str) -> None:
        self._binaries.difference_update(names)

    # ── Introspection ───────────────────────────────────────────

    @property
    def call_log(self) -> list[MockCall]:
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def calls_matching(self, pattern: str) -> list[MockCall]:
        return [c for c in self._call_log if pattern in c.command]

    def reset(self) -> None:
        """Clear call log and scripted responses."""
        self._call_log.clear()
        self._scripts.clear()

    # ── CommandRunner overrides ─────────────────────────────────

    def which(self, binary: str, path: str | None = None) -> str | None:
        return f"/usr/bin/{binary}" if binary in self._binaries else None

    def is_root(self) -> bool:
        return self._root

    def run(
        self,
        cmd: Sequence[str],
        *,
        cwd: str | Path | None = None,
        timeout: float | None = None,
        env_overrides: Mapping[str, str] | None = None,
        capture: bool = True,
        sudo: bool = False,
    ) -> Receipt:
        command = " ".join(cmd)
        self._call_log.append(
            MockCall(
                command=command,
                cwd=str(cwd) if cwd is not None else None,
                timeout=timeout,
                env_overrides=dict(env_overrides or {}),
                capture=capture,
                sudo=sudo,
            )
        )

        for pattern, script in reversed(self._scripts):
            if pattern in command:
                receipt = script.receipts.pop(0) if len(script.receipts) > 1 else script.receipts[0]
                if script.effect is not None and receipt.ok:
                    script.effect()
                return receipt.model_copy(update={"operation": command})

        return Receipt.success(adapter="shell", operation=command)

    def spawn(
        self,
        cmd: Sequence[str],
        *,
        cwd: str | Path | None = None,
        env_overrides: Mapping[str, str] | None = None,
    ) -> Any:
        self._call_log.append(
            MockCall(
                command=" ".join(cmd),
                cwd=str(cwd) if cwd is not None else None,
                env_overrides=dict(env_overrides or {}),
                capture=False,
            )
        )
        return self.process
