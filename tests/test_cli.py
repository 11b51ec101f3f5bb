from __future__ import annotations

from click.testing import CliRunner

from gitarrow import cli as cli_module
from gitarrow.cli import cli
from gitarrow.model import ExecutionOutcome

from conftest import FakeWorkspaces

ZERO = "0" * 40


def _ci_pipeline(write_pipeline, script="echo hello"):
    write_pipeline("ci.yml", f"""
        name: ci
        when: {{branch: main}}
        actions:
          - {{runner: shell, name: greet, script: "{script}"}}
    """)


def test_hook_reads_stdin_and_runs(tmp_path, write_pipeline, monkeypatch):
    _ci_pipeline(write_pipeline)
    monkeypatch.setenv("GIT_DIR", str(tmp_path / "app.git"))
    monkeypatch.setattr(cli_module, "WorkspaceManager", lambda root: FakeWorkspaces(tmp_path))

    result = CliRunner().invoke(cli, ["hook"], input=f"{ZERO} {'b' * 40} refs/heads/main\n")

    assert result.exit_code == 0, result.output
    assert "RUN STARTED" in result.output
    assert "  hello" in result.output
    assert "ci: SUCCESS" in result.output


def test_bare_invocation_inside_hook_runs_hook(tmp_path, write_pipeline, monkeypatch):
    _ci_pipeline(write_pipeline)
    monkeypatch.setenv("GIT_DIR", str(tmp_path / "app.git"))
    monkeypatch.setattr(cli_module, "WorkspaceManager", lambda root: FakeWorkspaces(tmp_path))

    result = CliRunner().invoke(cli, [], input=f"{ZERO} {'b' * 40} refs/heads/main\n")

    assert result.exit_code == 0, result.output
    assert "  hello" in result.output


def test_failed_action_exits_one(tmp_path, write_pipeline, monkeypatch):
    _ci_pipeline(write_pipeline, script="exit 4")
    monkeypatch.setenv("GIT_DIR", str(tmp_path / "app.git"))
    monkeypatch.setattr(cli_module, "WorkspaceManager", lambda root: FakeWorkspaces(tmp_path))

    result = CliRunner().invoke(cli, ["hook"], input=f"{ZERO} {'b' * 40} refs/heads/main\n")

    assert result.exit_code == 1
    assert "PIPELINE FAILED: ci" in result.output
    assert "Exit code: 4" in result.output


def test_hook_without_git_dir_exits_one(monkeypatch):
    monkeypatch.delenv("GIT_DIR", raising=False)

    result = CliRunner().invoke(cli, ["hook"], input=f"{ZERO} {'b' * 40} refs/heads/main\n")

    assert result.exit_code == 1
    assert "GIT_DIR not found" in result.output


def test_malformed_stdin_exits_one(monkeypatch, tmp_path):
    monkeypatch.setenv("GIT_DIR", str(tmp_path))
    result = CliRunner().invoke(cli, ["hook"], input="garbage\n")
    assert result.exit_code == 1
    assert "expected '<old-rev> <new-rev> <ref-name>'" in result.output


def test_no_subcommand_outside_hook_prints_help(monkeypatch):
    monkeypatch.delenv("GIT_DIR", raising=False)
    result = CliRunner().invoke(cli, [])
    assert result.exit_code == 0
    assert "Usage" in result.output


def test_run_uses_current_directory(tmp_path, write_pipeline, make_event, monkeypatch):
    _ci_pipeline(write_pipeline, script="touch ran-here")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli_module, "resolve_local_event", lambda path, changes_from=None: make_event())

    result = CliRunner().invoke(cli, ["run", ".arrow"])

    assert result.exit_code == 0, result.output
    assert (tmp_path / "ran-here").exists()


def test_results_name_each_pipeline_once():
    outcomes = [
        ExecutionOutcome(pipeline="ci", action=a, success=True, message="", duration=0.0)
        for a in ("build", "test")
    ]
    assert cli_module._results(outcomes) == {"ci": "success"}
