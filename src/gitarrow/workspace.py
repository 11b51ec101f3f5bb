# workspace.py
from __future__ import annotations

import os
import subprocess
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from . import settings
from .errors import WorkspaceError
from .git_facts import git
from .model import GitEvent, Workspace, WorkspaceMode
from .ui.console import get_console


def _describe(e: Exception) -> str:
    stderr = getattr(e, "stderr", None)
    if stderr:
        return stderr.strip()
    return str(e)


class WorkspaceManager:
    """
    Owns the checkout a run executes in, and the process working directory.

    Prefers a git worktree at `{root}/{repo}-{branch}`. When the git binary
    cannot manage worktrees it falls back to a clone at `{root}/{repo}`,
    which is kept between runs and is NOT namespaced by branch: two pushes
    to different branches racing each other share that directory.
    """

    def __init__(self, root: str | Path = settings.WORKSPACE_ROOT):
        self.root = Path(root).expanduser().resolve()

    def worktree_path(self, event: GitEvent) -> Path:
        return self.root / f"{event.repo_name}-{event.branch}"

    def clone_path(self, event: GitEvent) -> Path:
        return self.root / event.repo_name

    def acquire(self, event: GitEvent) -> Workspace:
        """
        Check out `event.branch` and chdir into it.

        Raises:
            WorkspaceError: any git step failed; nothing is left half-entered.
        """
        console = get_console()
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            if git.supports_worktree(event.repo_dir):
                path = self.worktree_path(event)
                git.worktree_add(path, event.branch, cwd=event.repo_dir)
                mode = WorkspaceMode.WORKTREE
            else:
                console.print_debug("git worktree unavailable, falling back to clone")
                path = self.clone_path(event)
                if not path.exists():
                    git.clone(event.repo_dir, path)
                git.sync_clone(path, event.branch, event.new_revision)
                mode = WorkspaceMode.CLONE
        except (subprocess.CalledProcessError, OSError) as e:
            raise WorkspaceError(f"failed to check out {event.branch}: {_describe(e)}") from e

        try:
            os.chdir(path)
        except OSError as e:
            if mode is WorkspaceMode.WORKTREE:
                self._drop_worktree(path, event.repo_dir)
            raise WorkspaceError(f"cannot enter {path}: {e}") from e

        console.print_workspace(str(path), mode.value)
        return Workspace(path=path, branch=event.branch, mode=mode, repo_dir=event.repo_dir)

    def _drop_worktree(self, path: Path, repo_dir: Path) -> None:
        try:
            git.worktree_remove(path, cwd=repo_dir)
        except (subprocess.CalledProcessError, OSError) as e:
            get_console().print_error("Workspace cleanup failed", _describe(e))

    def release(self, workspace: Workspace) -> None:
        """
        Return to the repository directory and drop the worktree.

        Clones are left on disk for the next run.
        """
        try:
            os.chdir(workspace.repo_dir)
            if workspace.mode is WorkspaceMode.WORKTREE:
                git.worktree_remove(workspace.path, cwd=workspace.repo_dir)
        except (subprocess.CalledProcessError, OSError) as e:
            raise WorkspaceError(f"failed to clean up {workspace.path}: {_describe(e)}") from e

    @contextmanager
    def checkout(self, event: GitEvent) -> Iterator[Workspace]:
        """Acquire for the duration of the block; release exactly once."""
        workspace = self.acquire(event)
        try:
            yield workspace
        except BaseException:
            try:
                self.release(workspace)
            except WorkspaceError as cleanup_error:
                # the in-flight failure is the one worth reporting
                get_console().print_error("Workspace cleanup failed", str(cleanup_error))
            raise
        self.release(workspace)


class InPlaceWorkspaces:
    """Runs against the current directory; nothing is created or removed."""

    @contextmanager
    def checkout(self, event: GitEvent) -> Iterator[Workspace]:
        yield Workspace(
            path=Path.cwd(),
            branch=event.branch,
            mode=WorkspaceMode.IN_PLACE,
            repo_dir=event.repo_dir,
        )
