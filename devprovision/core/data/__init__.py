"""
Patch catalog — the two overrides applied to the interface checkout.

Payloads live as plain files under ``payloads/`` and are read once at
first access.  Targets are configuration only; swap or extend them by
passing different PatchTargets to the pipeline.

Usage::

    from devprovision.core.data import PatchCatalog

    catalog = PatchCatalog()
    catalog.ui_fee       # PatchTarget for uiFee.ts
    catalog.vite_config  # PatchTarget for vite.config.ts
"""

from __future__ import annotations

import logging
from functools import cached_property
from pathlib import Path

from devprovision.core.models.patch import BackupPolicy, PatchTarget, all_markers, any_of

logger = logging.getLogger(__name__)

_PAYLOAD_DIR = Path(__file__).parent / "payloads"

# ── uiFee.ts ────────────────────────────────────────────────────

UI_FEE_CANDIDATES = (
    "src/network/ergo/api/uiFee/uiFee.ts",
    "src/network/ergo/api/uiFee.ts",
    "src/api/uiFee/uiFee.ts",
    "src/uiFee/uiFee.ts",
)

# Either all three comment markers, or both functional edits
UI_FEE_MARKER = any_of(
    all_markers(
        "// Modified: UI fees disabled",
        "// Modified: Always return 0% fee instead of calculating percentage",
        "// Modified: UI fees disabled by setting all values to 0",
    ),
    all_markers(
        "const uiFeeInErg = inputInErg.percent(0)",
        "uiFeePercent: 0",
    ),
)

# ── vite.config.ts ──────────────────────────────────────────────

VITE_CONFIG_CANDIDATES = ("vite.config.ts",)

VITE_CONFIG_MARKER = all_markers("// ESLint disabled to suppress warnings")


def _load_payload(name: str) -> bytes:
    path = _PAYLOAD_DIR / name
    data = path.read_bytes()
    logger.debug("Loaded payload %s (%d bytes)", path.name, len(data))
    return data


class PatchCatalog:
    """Lazily built PatchTargets for the interface overrides."""

    @cached_property
    def ui_fee(self) -> PatchTarget:
        """Disable UI fees: zero percent, zero minimum, empty fee address."""
        return PatchTarget(
            name="ui-fee",
            filename="uiFee.ts",
            candidate_paths=UI_FEE_CANDIDATES,
            marker=UI_FEE_MARKER,
            payload=_load_payload("uiFee.ts"),
            backup_policy=BackupPolicy.TIMESTAMPED,
            related_glob="*uiFee*",
            description="UI fees disabled",
        )

    @cached_property
    def vite_config(self) -> PatchTarget:
        """Drop the ESLint checker from the Vite dev server."""
        return PatchTarget(
            name="vite-config",
            filename="vite.config.ts",
            candidate_paths=VITE_CONFIG_CANDIDATES,
            marker=VITE_CONFIG_MARKER,
            payload=_load_payload("vite.config.ts"),
            backup_policy=BackupPolicy.SINGLE,
            description="ESLint warnings disabled",
        )
