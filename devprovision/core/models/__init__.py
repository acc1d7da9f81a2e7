"""
Domain models — state descriptors and result types.

All models are re-exported here for convenient access:

    from devprovision.core.models import ProbeResult, StepResult, RepoState
"""

from devprovision.core.models.patch import BackupPolicy, PatchTarget, all_markers, any_of
from devprovision.core.models.receipt import Receipt
from devprovision.core.models.state import (
    BackupRecord,
    RepoState,
    RepoStatus,
    ToolchainState,
)
from devprovision.core.models.step import ProbeResult, ProbeStatus, StepResult

__all__ = [
    # patch.py
    "BackupPolicy",
    "PatchTarget",
    "all_markers",
    "any_of",
    # receipt.py
    "Receipt",
    # state.py
    "BackupRecord",
    "RepoState",
    "RepoStatus",
    "ToolchainState",
    # step.py
    "ProbeResult",
    "ProbeStatus",
    "StepResult",
]
