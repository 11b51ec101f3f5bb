# runner.py
from __future__ import annotations

import time
from dataclasses import replace
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, ContextManager, Dict, FrozenSet, Iterable, List, Optional, Protocol

import yaml
from pydantic import ValidationError

from . import settings
from .actions.shell import run_shell
from .actions.ssh import run_ssh
from .actions.webhook import run_webhook
from .envs import EnvironmentScope
from .errors import ArrowError, DefinitionParseError
from .model import ExecutionOutcome, GitEvent, Workspace
from .schema import ActionSpec, PipelineDefinition, WhenClause
from .ui.console import get_console
from .workspace import WorkspaceManager

Executor = Callable[..., ExecutionOutcome]

EXECUTORS: Dict[str, Executor] = {
    "shell": run_shell,
    "bash": run_shell,
    "ssh": run_ssh,
    "webhook": run_webhook,
}

PIPELINE_SUFFIXES = (".yml", ".yaml")


class WorkspaceProvider(Protocol):
    def checkout(self, event: GitEvent) -> ContextManager[Workspace]: ...


# ----------------------------------------------------------------------
# Pipeline loading
# ----------------------------------------------------------------------

def load_pipeline_file(path: str | Path) -> PipelineDefinition:
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise DefinitionParseError(str(path), f"invalid YAML: {e}") from e
    except OSError as e:
        raise DefinitionParseError(str(path), f"cannot read file: {e}") from e

    if not isinstance(data, dict):
        raise DefinitionParseError(str(path), "expected a mapping at the top level")
    try:
        return PipelineDefinition.model_validate(data)
    except ValidationError as e:
        raise DefinitionParseError(str(path), str(e)) from e


def load_pipelines(path: str | Path) -> List[PipelineDefinition]:
    """
    Load pipeline definitions from a directory (one per *.yml / *.yaml file,
    sorted by file name) or from a single file.

    A missing path means there is nothing to run, not an error.
    """
    path = Path(path)
    if not path.exists():
        return []
    if path.is_file():
        return [load_pipeline_file(path)]
    files = sorted(p for p in path.iterdir() if p.is_file() and p.suffix in PIPELINE_SUFFIXES)
    return [load_pipeline_file(p) for p in files]


# ----------------------------------------------------------------------
# Selection
# ----------------------------------------------------------------------

def _matches_any(path: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch(path, p) for p in patterns)


def matches(when: WhenClause, branch: str, changed_files: Optional[FrozenSet[str]]) -> bool:
    """
    Whether a pipeline should react to a push on `branch`.

    `*` as the first branch pattern accepts any branch; otherwise the branch
    must be listed verbatim. With `changes` globs at least one changed file
    must match one glob, and an unknown file set (None) never matches.
    """
    if not when.branch:
        return False
    if not (when.branch[0] == "*" or branch in when.branch):
        return False
    if not when.changes:
        return True
    if changed_files is None:
        return False
    return any(_matches_any(f, when.changes) for f in changed_files)


# ----------------------------------------------------------------------
# Execution
# ----------------------------------------------------------------------

def base_scope(event: GitEvent, workspace: Workspace) -> EnvironmentScope:
    """Variables every action of the run can see."""
    return EnvironmentScope.from_variables({
        "ARROW_REPO": event.repo_name,
        "ARROW_BRANCH": event.branch,
        "ARROW_REFNAME": event.ref_name,
        "ARROW_OLD_REV": event.old_revision,
        "ARROW_NEW_REV": event.new_revision,
        "ARROW_WORKSPACE": str(workspace.path),
    })


def execute_action(
    action: ActionSpec,
    workspace: Workspace,
    scope: EnvironmentScope,
) -> ExecutionOutcome:
    return EXECUTORS[action.runner](action, workspace, scope)


class PipelineRunner:
    """
    Drives one push: checkout, load, select, run, release.

    Pipelines run in file order and actions in declaration order. The first
    failing action stops the whole run, not only its pipeline.
    """

    def __init__(
        self,
        workspaces: Optional[WorkspaceProvider] = None,
        pipeline_dir: str | Path = settings.PIPELINE_DIR,
    ):
        self.workspaces = workspaces if workspaces is not None else WorkspaceManager()
        self.pipeline_dir = Path(pipeline_dir)

    def run(self, event: GitEvent) -> List[ExecutionOutcome]:
        console = get_console()
        console.print_run_started(
            repository=event.repo_name,
            branch=event.branch,
            old_rev=event.old_revision,
            new_rev=event.new_revision,
        )
        if event.deleted:
            console.print_info(f"Branch {event.branch} was deleted, nothing to run.")
            return []

        outcomes: List[ExecutionOutcome] = []
        with self.workspaces.checkout(event) as workspace:
            pipelines = load_pipelines(workspace.path / self.pipeline_dir)
            console.print_debug(f"loaded {len(pipelines)} pipeline(s) from {self.pipeline_dir}")
            scope = base_scope(event, workspace)

            for pipeline in pipelines:
                if not matches(pipeline.when, event.branch, event.changed_files):
                    console.print_pipeline_skipped(pipeline.name, "when clause did not match")
                    continue
                outcomes.extend(self.run_pipeline(pipeline, workspace, scope))
        return outcomes

    def run_pipeline(
        self,
        pipeline: PipelineDefinition,
        workspace: Workspace,
        parent: EnvironmentScope,
    ) -> List[ExecutionOutcome]:
        console = get_console()
        console.print_pipeline_start(pipeline.name)

        scope = pipeline.scope(workspace.path).inherit(parent).with_output_channel()
        outcomes: List[ExecutionOutcome] = []
        try:
            for action in pipeline.actions:
                console.print_action_start(action.name)
                start = time.monotonic()
                try:
                    outcome = execute_action(action, workspace, scope)
                except ArrowError as e:
                    e.locate(pipeline.name, action.name)
                    raise
                outcomes.append(replace(outcome, pipeline=pipeline.name))
                console.print_action_done(action.name, time.monotonic() - start)
        finally:
            scope.discard_output_channel()
        return outcomes
