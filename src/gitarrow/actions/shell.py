# actions/shell.py
from __future__ import annotations

import subprocess
import time

from ..envs import EnvironmentScope
from ..errors import CommandFailed
from ..git_facts.git import clean_env
from ..model import ExecutionOutcome, Workspace
from ..schema import BashAction, ShellAction
from ..ui.console import get_console


# ---------------------------------------------------------------------
# Shell / bash execution
# ---------------------------------------------------------------------

def run_shell(
    action: ShellAction | BashAction,
    workspace: Workspace,
    scope: EnvironmentScope,
) -> ExecutionOutcome:
    """
    Run `action.script` with `sh -c` (or `bash -c`) inside the workspace.

    Stdout is echoed line by line while the script runs; stderr goes
    straight to the terminal.

    Raises:
        CommandFailed: the script exited non-zero or the shell is missing.
    """
    console = get_console()
    env = clean_env()
    env.update(action.scope(workspace.path).inherit(scope).build_environment())

    start = time.monotonic()
    try:
        proc = subprocess.Popen(
            [action.shell, "-c", action.script],
            cwd=str(workspace.path),
            env=env,
            stdout=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
        )
    except FileNotFoundError:
        raise CommandFailed(command=action.shell, exit_code=127)

    with proc:
        for line in proc.stdout:
            console.print_output(line.rstrip("\n"))
        exit_code = proc.wait()

    if exit_code != 0:
        raise CommandFailed(command=f"{action.shell} -c", exit_code=exit_code)

    return ExecutionOutcome(
        pipeline="",
        action=action.name,
        success=True,
        message=f"{action.shell} exited 0",
        duration=time.monotonic() - start,
        exit_code=exit_code,
    )
