# event.py
from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Tuple

from . import settings
from .errors import DiffError, HookEnvironmentError, InputError, ResolutionError
from .git_facts import git
from .model import GitEvent, is_zero_rev

DiffFn = Callable[[str, str], List[str]]


def parse_hook_input(line: str) -> Tuple[str, str, str]:
    """Split `<old-rev> <new-rev> <ref-name>` as written by git on push."""
    args = line.split()
    if len(args) < 3:
        raise InputError(f"expected '<old-rev> <new-rev> <ref-name>', got {line.strip()!r}")
    return args[0], args[1], args[2]


def resolve_branch(ref_name: str) -> str:
    if "/" not in ref_name:
        raise ResolutionError(f"no branch resolved from refname {ref_name!r}")
    return ref_name.rsplit("/", 1)[1]


def resolve_repo_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    environ = os.environ if environ is None else environ
    value = environ.get(settings.GIT_DIR_ENV)
    if not value:
        raise HookEnvironmentError(
            f"env {settings.GIT_DIR_ENV} not found, git-arrow must run from a repository hook"
        )
    return Path(value).resolve()


def resolve_repo_name(repo_dir: Path) -> str:
    """
    Name of the repository owning `repo_dir`.

    Bare repositories are usually `name.git`; non-bare ones keep their git
    dir in `name/.git`. Both resolve to `name`.
    """
    current = repo_dir
    while True:
        stem = current.stem
        if not stem:
            return "unnamed-repo"
        if stem != ".git":
            return stem
        current = current.parent


def _compute_changed_files(old: str, new: str, diff: DiffFn) -> Optional[frozenset]:
    # Creation or deletion of a branch: nothing meaningful to diff against.
    if is_zero_rev(old) or is_zero_rev(new):
        return None
    try:
        return frozenset(diff(old, new))
    except (subprocess.CalledProcessError, OSError) as e:
        stderr = getattr(e, "stderr", None) or str(e)
        raise DiffError(f"git diff {old}..{new} failed: {stderr.strip()}") from e


def resolve_event(
    line: str,
    *,
    environ: Optional[Mapping[str, str]] = None,
    diff: Optional[DiffFn] = None,
) -> GitEvent:
    """
    Build the GitEvent for one line of hook input.

    Args:
        line: raw stdin line from git
        environ: process environment (defaults to os.environ)
        diff: `diff(old, new) -> [paths]`; defaults to `git diff --name-only`
              run inside the repository

    Raises:
        InputError, ResolutionError, HookEnvironmentError, DiffError
    """
    old, new, ref_name = parse_hook_input(line)
    branch = resolve_branch(ref_name)
    repo_dir = resolve_repo_dir(environ)
    if diff is None:
        def diff(base: str, head: str) -> List[str]:
            return git.changed_files(base, head, cwd=repo_dir)

    return GitEvent(
        ref_name=ref_name,
        old_revision=old,
        new_revision=new,
        branch=branch,
        repo_dir=repo_dir,
        repo_name=resolve_repo_name(repo_dir),
        changed_files=_compute_changed_files(old, new, diff),
    )


def resolve_local_event(path: str | Path = ".", changes_from: Optional[str] = None) -> GitEvent:
    """
    Event for the current HEAD of a working repository (the `run` command).

    Without `changes_from` there is no diff, so only pipelines without a
    `changes` filter are selected.
    """
    try:
        repo_dir = git.absolute_git_dir(path)
        head = git.head_sha(path)
        ref_name = git.current_ref(path)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        raise HookEnvironmentError(f"{Path(path).resolve()} is not a git checkout with a branch") from e

    old = changes_from or head

    def diff(base: str, head_rev: str) -> List[str]:
        return git.changed_files(base, head_rev, cwd=path)

    return GitEvent(
        ref_name=ref_name,
        old_revision=old,
        new_revision=head,
        branch=resolve_branch(ref_name),
        repo_dir=repo_dir,
        repo_name=resolve_repo_name(repo_dir),
        changed_files=_compute_changed_files(old, head, diff) if changes_from else None,
    )
