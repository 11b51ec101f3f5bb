# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call subprocess("git ...") directly.

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

# Variables git exports to hooks. A hook's GIT_DIR is usually "." relative to
# the bare repository, which breaks any git call made from another directory.
_HOOK_VARS = ("GIT_DIR", "GIT_WORK_TREE", "GIT_INDEX_FILE", "GIT_PREFIX")


def clean_env() -> Dict[str, str]:
    """Return a copy of os.environ without the hook's repository pointers."""
    env = os.environ.copy()
    for name in _HOOK_VARS:
        env.pop(name, None)
    return env


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    This is the single low-level entry point for all Git operations in this file.

    Args:
        args: List of git arguments (e.g. ["worktree", "list"])
        cwd: Directory to run in. Callers always pass one, since the hook
             environment variables are stripped.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        subprocess.CalledProcessError: git exited non-zero (stderr attached).
        FileNotFoundError: no git binary on PATH.
    """
    out = subprocess.run(
        ["git", *args],
        cwd=str(cwd) if cwd is not None else None,
        env=clean_env(),
        text=True,
        capture_output=True,
        check=True,
    )
    return out.stdout.strip()


def changed_files(base: str, head: str, cwd: Optional[str | Path] = None) -> List[str]:
    """
    Return the files changed between two revisions, relative to the repo root.

    `git diff --name-only` outputs only file paths, one per line.
    """
    out = _git(["diff", "--name-only", f"{base}..{head}"], cwd=cwd)
    if not out:
        return []
    return out.splitlines()


def supports_worktree(cwd: str | Path) -> bool:
    """Whether this git can manage worktrees for the repository at `cwd`."""
    try:
        _git(["worktree", "list"], cwd=cwd)
    except (subprocess.CalledProcessError, FileNotFoundError):
        return False
    return True


def worktree_add(path: str | Path, branch: str, cwd: str | Path) -> None:
    _git(["worktree", "add", str(path), branch], cwd=cwd)


def worktree_remove(path: str | Path, cwd: str | Path) -> None:
    _git(["worktree", "remove", "--force", str(path)], cwd=cwd)


def clone(origin: str | Path, path: str | Path) -> None:
    _git(["clone", str(origin), str(path)])


def sync_clone(path: str | Path, branch: str, revision: str) -> None:
    """
    Bring an existing clone to exactly `revision` on `branch`.

    Untracked and ignored files are removed as well (`clean -fdx`), so the
    checkout matches what was pushed.
    """
    _git(["fetch", "origin", branch], cwd=path)
    _git(["checkout", branch], cwd=path)
    _git(["reset", "--hard", revision], cwd=path)
    _git(["clean", "-fdx"], cwd=path)


def absolute_git_dir(cwd: str | Path = ".") -> Path:
    return Path(_git(["rev-parse", "--absolute-git-dir"], cwd=cwd))


def head_sha(cwd: str | Path = ".") -> str:
    """Return the full SHA hash of the current HEAD commit."""
    return _git(["rev-parse", "HEAD"], cwd=cwd)


def current_ref(cwd: str | Path = ".") -> str:
    """Return the symbolic ref HEAD points at, e.g. refs/heads/main."""
    return _git(["symbolic-ref", "HEAD"], cwd=cwd)
