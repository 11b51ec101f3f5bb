# model.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import FrozenSet, Optional


def is_zero_rev(rev: str) -> bool:
    """True for an absent revision or git's all-zero null hash."""
    return not rev or set(rev) == {"0"}


@dataclass(frozen=True)
class GitEvent:
    """
    One push as seen by the hook: the ref that moved and where it moved.

    `changed_files` is None when no diff was computed (branch creation or
    deletion), which is different from an empty diff.
    """
    ref_name: str
    old_revision: str
    new_revision: str
    branch: str
    repo_dir: Path
    repo_name: str
    changed_files: Optional[FrozenSet[str]] = None

    @property
    def deleted(self) -> bool:
        return is_zero_rev(self.new_revision)


class WorkspaceMode(Enum):
    WORKTREE = "worktree"
    CLONE = "clone"
    IN_PLACE = "in-place"


@dataclass(frozen=True)
class Workspace:
    """A checkout owned by exactly one run."""
    path: Path
    branch: str
    mode: WorkspaceMode
    repo_dir: Path


@dataclass(frozen=True)
class ExecutionOutcome:
    pipeline: str
    action: str
    success: bool
    message: str
    duration: float                 # seconds
    exit_code: Optional[int] = None  # shell / ssh
    status: Optional[int] = None     # webhook
