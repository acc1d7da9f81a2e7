"""
System packages adapter — base build tools through the OS package manager.

One batch-install plan per supported distribution family.  Commands run
through sudo (unless already root), stream to the terminal and have no
timeout: they are prerequisites with nothing to fall back to.
"""

from __future__ import annotations

import logging
from pathlib import Path

from devprovision.adapters.base import Adapter
from devprovision.adapters.shell.command import CommandRunner
from devprovision.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

OS_RELEASE = Path("/etc/os-release")

# distro ID (from /etc/os-release) → batch install commands
_INSTALL_PLANS: dict[str, list[list[str]]] = {
    "debian": [
        ["apt", "update"],
        ["apt", "install", "-y", "curl", "wget", "git", "build-essential",
         "python3", "python3-pip"],
    ],
    "fedora": [
        ["dnf", "install", "-y", "curl", "wget", "git", "@development-tools",
         "python3", "python3-pip"],
    ],
    "arch": [
        ["pacman", "-Sy", "--noconfirm", "curl", "wget", "git", "base-devel",
         "python", "python-pip"],
    ],
    "opensuse": [
        ["zypper", "install", "-y", "curl", "wget", "git", "gcc", "gcc-c++",
         "make", "python3", "python3-pip"],
    ],
    "rhel": [
        ["yum", "groupinstall", "-y", "Development Tools"],
        ["yum", "install", "-y", "curl", "wget", "git", "python3", "python3-pip"],
    ],
}

_FAMILIES: dict[str, str] = {
    "ubuntu": "debian",
    "debian": "debian",
    "fedora": "fedora",
    "arch": "arch",
    "sles": "opensuse",
    "centos": "rhel",
    "rhel": "rhel",
}

# Stale NodeSource apt sources break ``apt update`` on machines that
# once installed node system-wide
NODESOURCE_FILES = (
    Path("/etc/apt/sources.list.d/nodesource.list"),
    Path("/etc/apt/sources.list.d/nodejs.list"),
)
NODESOURCE_KEYRING = Path("/etc/apt/trusted.gpg.d/nodesource.gpg")
NODESOURCE_KEY_IDS = ("1655A0AB68576280", "68576280")


def detect_distro(os_release: Path = OS_RELEASE) -> str:
    """Distribution ID from ``/etc/os-release`` (``"ubuntu"``), or ``"unknown"``."""
    try:
        text = os_release.read_text(encoding="utf-8")
    except OSError:
        return "unknown"
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep and key.strip() == "ID":
            return value.strip().strip('"').strip("'") or "unknown"
    return "unknown"


def distro_family(distro: str) -> str | None:
    """Install-plan family for a distro ID; None when unsupported."""
    if distro.startswith("opensuse"):
        return "opensuse"
    return _FAMILIES.get(distro)


class SystemPackagesAdapter(Adapter):
    """Install the base package set for the detected distribution."""

    def __init__(self, runner: CommandRunner | None = None, os_release: Path = OS_RELEASE):
        self._runner = runner or CommandRunner()
        self._os_release = os_release

    @property
    def name(self) -> str:
        return "packages"

    def is_available(self) -> bool:
        return self.family() is not None

    def distro(self) -> str:
        return detect_distro(self._os_release)

    def family(self) -> str | None:
        return distro_family(self.distro())

    def install_plan(self) -> list[list[str]] | None:
        family = self.family()
        if family is None:
            return None
        return [list(cmd) for cmd in _INSTALL_PLANS[family]]

    def missing_binaries(self, binaries: list[str]) -> list[str]:
        return [b for b in binaries if self._runner.which(b) is None]

    def clean_nodesource(self) -> bool:
        """Remove NodeSource apt sources and keys, best effort.

        Returns True if anything was found to clean.
        """
        present = [p for p in NODESOURCE_FILES if p.exists()]
        if not present:
            return False

        cmds: list[list[str]] = [["rm", "-f", *(str(p) for p in NODESOURCE_FILES)]]
        cmds.extend(["apt-key", "del", key] for key in NODESOURCE_KEY_IDS)
        cmds.append(["rm", "-f", str(NODESOURCE_KEYRING)])
        for cmd in cmds:
            receipt = self._runner.run(cmd, sudo=True, timeout=60)
            if receipt.failed:
                logger.debug("NodeSource cleanup step ignored: %s", receipt.error)
        return True

    def install(self) -> Receipt:
        """Run the family's install plan; stops at the first failing command."""
        plan = self.install_plan()
        if plan is None:
            return Receipt.skip(
                adapter=self.name,
                operation="install base packages",
                reason=f"Unsupported distro: {self.distro()}",
            )

        last: Receipt | None = None
        for cmd in plan:
            last = self._runner.run(cmd, sudo=True, capture=False)
            if last.failed:
                return last
        assert last is not None  # every plan has at least one command
        return last
