from __future__ import annotations

import os
import textwrap
from contextlib import contextmanager
from pathlib import Path

import pytest

from gitarrow.model import GitEvent, Workspace, WorkspaceMode
from gitarrow.ui.console import Console, set_console


@pytest.fixture(autouse=True)
def fresh_console():
    set_console(Console())
    yield


@pytest.fixture(autouse=True)
def keep_cwd():
    cwd = os.getcwd()
    yield
    os.chdir(cwd)


class FakeWorkspaces:
    """Workspace provider that only counts acquire / release calls."""

    def __init__(self, path: Path):
        self.path = path
        self.acquired = 0
        self.released = 0

    @contextmanager
    def checkout(self, event: GitEvent):
        self.acquired += 1
        try:
            yield Workspace(
                path=self.path,
                branch=event.branch,
                mode=WorkspaceMode.WORKTREE,
                repo_dir=event.repo_dir,
            )
        finally:
            self.released += 1


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(path=tmp_path, branch="main", mode=WorkspaceMode.IN_PLACE, repo_dir=tmp_path)


@pytest.fixture
def make_event(tmp_path: Path):
    def _make(branch: str = "main", changed=None, old: str = "aaa111", new: str = "bbb222") -> GitEvent:
        return GitEvent(
            ref_name=f"refs/heads/{branch}",
            old_revision=old,
            new_revision=new,
            branch=branch,
            repo_dir=tmp_path / "app.git",
            repo_name="app",
            changed_files=None if changed is None else frozenset(changed),
        )
    return _make


@pytest.fixture
def write_pipeline(tmp_path: Path):
    """Write a YAML definition under <tmp>/.arrow/<name>."""
    def _write(filename: str, body: str) -> Path:
        d = tmp_path / ".arrow"
        d.mkdir(exist_ok=True)
        p = d / filename
        p.write_text(textwrap.dedent(body), encoding="utf-8")
        return p
    return _write
