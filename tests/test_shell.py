from __future__ import annotations

import shutil

import pytest

from gitarrow.actions.shell import run_shell
from gitarrow.envs import EnvironmentScope
from gitarrow.errors import CommandFailed
from gitarrow.schema import BashAction, ShellAction


def _shell(script: str, **kw) -> ShellAction:
    return ShellAction(runner="shell", name="step", script=script, **kw)


def test_streams_stdout_with_prefix(workspace, capsys):
    outcome = run_shell(_shell("echo one; echo two"), workspace, EnvironmentScope())

    assert outcome.success and outcome.exit_code == 0
    out = capsys.readouterr().out
    assert "  one\n  two\n" in out


def test_non_zero_exit_is_a_failure(workspace):
    with pytest.raises(CommandFailed) as info:
        run_shell(_shell("exit 7"), workspace, EnvironmentScope())
    assert info.value.exit_code == 7


def test_runs_in_workspace_with_scope_environment(workspace, tmp_path):
    scope = EnvironmentScope.from_variables({"GREETING": "hi", "WHO": "parent"})
    action = _shell('echo "$GREETING $WHO" > out.txt', env={"WHO": "child"})

    run_shell(action, workspace, scope)

    assert (tmp_path / "out.txt").read_text().strip() == "hi child"


def test_hook_git_dir_is_not_leaked(workspace, tmp_path, monkeypatch):
    monkeypatch.setenv("GIT_DIR", ".")
    run_shell(_shell('echo "${GIT_DIR:-none}" > gd.txt'), workspace, EnvironmentScope())
    assert (tmp_path / "gd.txt").read_text().strip() == "none"


@pytest.mark.skipif(shutil.which("bash") is None, reason="bash not installed")
def test_bash_runner_uses_bash(workspace, capsys):
    action = BashAction(runner="bash", name="b", script='echo "${BASH_VERSION:+bash}"')
    run_shell(action, workspace, EnvironmentScope())
    assert "  bash" in capsys.readouterr().out


def test_undecodable_output_does_not_fail_the_action(workspace, capsys):
    outcome = run_shell(_shell("printf 'caf\\351\\n'; exit 0"), workspace, EnvironmentScope())

    assert outcome.success
    assert "  caf�" in capsys.readouterr().out
