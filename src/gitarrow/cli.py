# cli.py
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List

import click

from . import __version__, settings
from .errors import ArrowError, CommandFailed
from .event import resolve_event, resolve_local_event
from .model import ExecutionOutcome, GitEvent
from .runner import PipelineRunner, WorkspaceProvider
from .ui.console import Console, get_console, set_console
from .workspace import InPlaceWorkspaces, WorkspaceManager


def _results(outcomes: List[ExecutionOutcome]) -> dict[str, str]:
    # failures abort the run by raising, so every returned outcome succeeded
    return {outcome.pipeline: "success" for outcome in outcomes}


def _execute(event_factory, workspaces: WorkspaceProvider, pipeline_dir: str | Path) -> None:
    """
    Resolve the event, run it and turn failures into exit codes.

    Exit status is 1 for any failure so git reports the hook as failed.
    """
    console = get_console()
    try:
        event: GitEvent = event_factory()
        outcomes = PipelineRunner(workspaces, pipeline_dir=pipeline_dir).run(event)
        console.print_results(_results(outcomes))
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except ArrowError as e:
        console.print_failure(
            str(e),
            pipeline=e.pipeline,
            action=e.action,
            exit_code=e.exit_code if isinstance(e, CommandFailed) else None,
        )
        if console.debug:
            console.print_exception(e)
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@click.group(invoke_without_command=True)
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.version_option(__version__, prog_name="git-arrow")
@click.pass_context
def cli(ctx, debug):
    """git-arrow: run pipelines from git push hooks."""
    set_console(Console(debug=debug))
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if ctx.invoked_subcommand is None:
        # Installed directly as a hook script: git exports GIT_DIR.
        if os.environ.get(settings.GIT_DIR_ENV):
            ctx.invoke(hook)
        else:
            click.echo(ctx.get_help())


@cli.command()
@click.option(
    "--workspace-root",
    default=settings.WORKSPACE_ROOT,
    show_default=True,
    help="Directory that holds worktrees / clones",
)
@click.option(
    "--pipeline-dir",
    default=settings.PIPELINE_DIR,
    show_default=True,
    help="Pipeline definitions, relative to the checkout",
)
def hook(workspace_root, pipeline_dir):
    """Read '<old-rev> <new-rev> <ref-name>' from stdin and run matching pipelines."""
    line = click.get_text_stream("stdin").readline()
    _execute(
        lambda: resolve_event(line),
        WorkspaceManager(workspace_root),
        pipeline_dir,
    )


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--changes-from",
    default=None,
    help="Revision to diff HEAD against for `changes` filters (default: no diff)",
)
def run(path, changes_from):
    """Run pipelines from a file or directory on the current HEAD, in place."""
    _execute(
        lambda: resolve_local_event(".", changes_from=changes_from),
        InPlaceWorkspaces(),
        path.resolve(),
    )


if __name__ == "__main__":
    cli()
