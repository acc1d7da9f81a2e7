"""
State descriptors — what the probes observe on the machine.

None of these are persisted.  They are re-derived on every run from
the filesystem, PATH and the git checkout, and live only as long as
the step that computed them.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, model_validator


class ToolchainState(BaseModel):
    """Observed state of one externally managed tool (nvm, node, yarn)."""

    tool: str
    binary_present: bool = False
    version: str | None = None
    is_default: bool = False

    @property
    def major(self) -> str | None:
        """Major version component, e.g. ``"20"`` for ``"v20.11.0"``."""
        if not self.version:
            return None
        return self.version.lstrip("v").split(".", 1)[0] or None


class RepoStatus(StrEnum):
    """Classification of the collaborator checkout.

    ABSENT        → directory missing; clone.
    WRONG_REMOTE  → not a git repo or foreign origin; delete and re-clone.
    NEEDS_UPDATE  → wrong branch, or remote head moved; checkout + pull.
    UP_TO_DATE    → on the pinned branch at the remote commit (or the
                    remote could not be reached); no-op.
    """

    ABSENT = "absent"
    WRONG_REMOTE = "wrong_remote"
    NEEDS_UPDATE = "needs_update"
    UP_TO_DATE = "up_to_date"


class RepoState(BaseModel):
    """Observed state of the collaborator git checkout.

    ``status`` is the classification the reconciler acts on.  When
    ``exists`` is False every other field is left unset.
    """

    status: RepoStatus = RepoStatus.ABSENT
    exists: bool = False
    is_git_repo: bool = False
    remote_url: str | None = None
    current_branch: str | None = None
    local_commit: str | None = None
    remote_commit: str | None = None
    fetch_reachable: bool = False

    @model_validator(mode="after")
    def _absent_has_no_details(self) -> RepoState:
        if not self.exists and (
            self.status is not RepoStatus.ABSENT
            or self.is_git_repo
            or self.remote_url is not None
            or self.current_branch is not None
            or self.local_commit is not None
            or self.remote_commit is not None
            or self.fetch_reachable
        ):
            raise ValueError("RepoState with exists=False must not carry details")
        return self


class BackupRecord(BaseModel):
    """A copy of a file taken immediately before it was overwritten."""

    original_path: str
    backup_path: str
    timestamp: datetime
