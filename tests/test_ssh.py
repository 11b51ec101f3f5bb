from __future__ import annotations

import io
from unittest.mock import patch

import pytest

from gitarrow.actions import ssh
from gitarrow.actions.ssh import remote_input, run_ssh, split_host, ssh_command
from gitarrow.envs import EnvironmentScope
from gitarrow.errors import CommandFailed
from gitarrow.schema import SshAction


class FakeProc:
    """Popen double: records stdin, replays canned stdout and exit code."""

    def __init__(self, cmd, output: str, exit_code: int):
        self.cmd = cmd
        self.written = io.StringIO()
        self.stdin = self
        self.stdout = io.StringIO(output)
        self._exit_code = exit_code

    def write(self, data):
        self.written.write(data)

    def close(self):
        pass

    def wait(self):
        return self._exit_code

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _action(**kw) -> SshAction:
    base = dict(runner="ssh", name="deploy", user="ops", hosts=["web1", "web2:2222"], script="uptime")
    base.update(kw)
    return SshAction(**base)


def test_split_host():
    assert split_host("web1") == ("web1", "22")
    assert split_host("web1:2222") == ("web1", "2222")


def test_ssh_command_shape():
    action = _action(identity_file="/keys/id", args=["-o", "BatchMode=yes"])
    assert ssh_command(action, "web2:2222") == [
        "ssh", "-i", "/keys/id", "-o", "BatchMode=yes", "-p", "2222", "ops@web2", "sh -s",
    ]
    assert ssh_command(_action(user=None), "web1")[-2] == "web1"


def test_remote_input_assigns_then_runs_then_exits():
    payload = remote_input({"B": "it's", "A": "1"}, "echo $A")
    assert payload == "A='1'\nB='it'\\''s'\necho $A\nexit\n"


def test_hosts_run_in_order_with_env(workspace, capsys):
    procs = []

    def fake_popen(cmd, **kwargs):
        proc = FakeProc(cmd, output=f"up on {cmd[-2]}\n", exit_code=0)
        procs.append(proc)
        return proc

    scope = EnvironmentScope.from_variables({"STAGE": "prod"})
    with patch.object(ssh.subprocess, "Popen", side_effect=fake_popen):
        outcome = run_ssh(_action(), workspace, scope)

    assert outcome.success
    assert [p.cmd[-2] for p in procs] == ["ops@web1", "ops@web2"]
    assert "STAGE='prod'\n" in procs[0].written.getvalue()
    assert procs[0].written.getvalue().endswith("uptime\nexit\n")
    out = capsys.readouterr().out
    assert out.index("up on ops@web1") < out.index("up on ops@web2")


def test_failing_host_stops_the_fan_out(workspace):
    procs = []

    def fake_popen(cmd, **kwargs):
        proc = FakeProc(cmd, output="", exit_code=255 if not procs else 0)
        procs.append(proc)
        return proc

    with patch.object(ssh.subprocess, "Popen", side_effect=fake_popen):
        with pytest.raises(CommandFailed) as info:
            run_ssh(_action(), workspace, EnvironmentScope())

    assert info.value.exit_code == 255
    assert info.value.host == "web1"
    assert len(procs) == 1


def test_output_is_decoded_leniently(workspace, capsys):
    seen = {}

    def fake_popen(cmd, **kwargs):
        seen.update(kwargs)
        # what a replace-decoding pipe yields for the byte 0xe9
        return FakeProc(cmd, output="caf�\n", exit_code=0)

    with patch.object(ssh.subprocess, "Popen", side_effect=fake_popen):
        outcome = run_ssh(_action(hosts=["web1"]), workspace, EnvironmentScope())

    assert outcome.success
    assert seen["encoding"] == "utf-8" and seen["errors"] == "replace"
    assert "  caf�" in capsys.readouterr().out
