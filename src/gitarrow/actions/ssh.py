# actions/ssh.py
from __future__ import annotations

import subprocess
import time
from typing import Dict, List, Tuple

from ..envs import EnvironmentScope
from ..errors import CommandFailed
from ..model import ExecutionOutcome, Workspace
from ..schema import SshAction
from ..ui.console import get_console

DEFAULT_PORT = "22"


def split_host(host: str) -> Tuple[str, str]:
    """`host` or `host:port` -> (host, port)."""
    name, sep, port = host.partition(":")
    return name, (port if sep and port else DEFAULT_PORT)


def ssh_command(action: SshAction, host: str) -> List[str]:
    name, port = split_host(host)
    target = f"{action.user}@{name}" if action.user else name
    cmd = ["ssh"]
    if action.identity_file:
        cmd += ["-i", action.identity_file]
    cmd += list(action.args)
    cmd += ["-p", port, target, "sh -s"]  # remote shell reads commands from stdin
    return cmd


def _quote(value: str) -> str:
    return "'" + value.replace("'", "'\\''") + "'"


def remote_input(env: Dict[str, str], script: str) -> str:
    """Variable assignments first, then the script, then an explicit exit."""
    assignments = "\n".join(f"{k}={_quote(v)}" for k, v in sorted(env.items()))
    body = script if script.endswith("\n") else script + "\n"
    return f"{assignments}\n{body}exit\n"


# ---------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------

def _run_on_host(action: SshAction, host: str, payload: str) -> None:
    console = get_console()
    cmd = ssh_command(action, host)
    console.print_info(" ".join(cmd[:-1]) + " 'sh -s'")
    try:
        proc = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except FileNotFoundError:
        raise CommandFailed(command="ssh", exit_code=127, host=host)

    with proc:
        try:
            proc.stdin.write(payload)
            proc.stdin.close()
        except BrokenPipeError:
            # ssh died early (auth, unreachable); its exit code says why
            pass
        for line in proc.stdout:
            console.print_output(line.rstrip("\n"))
        exit_code = proc.wait()

    if exit_code != 0:
        raise CommandFailed(command=f"ssh {cmd[-2]}", exit_code=exit_code, host=host)


def run_ssh(
    action: SshAction,
    workspace: Workspace,
    scope: EnvironmentScope,
) -> ExecutionOutcome:
    """
    Run the script on every host, one host at a time.

    The first host that fails stops the action; later hosts are not contacted.
    """
    env = action.scope(workspace.path).inherit(scope).build_environment()
    payload = remote_input(env, action.script)

    start = time.monotonic()
    for host in action.hosts:
        _run_on_host(action, host, payload)

    return ExecutionOutcome(
        pipeline="",
        action=action.name,
        success=True,
        message=f"ran on {len(action.hosts)} host(s)",
        duration=time.monotonic() - start,
        exit_code=0,
    )
