__version__ = "0.1.0"

from .envs import EnvironmentScope, read_env_file
from .event import resolve_event
from .model import ExecutionOutcome, GitEvent, Workspace, WorkspaceMode
from .runner import PipelineRunner, load_pipelines, matches
from .workspace import WorkspaceManager

__all__ = [
    "EnvironmentScope", "read_env_file", "resolve_event", "ExecutionOutcome", "GitEvent",
    "Workspace", "WorkspaceMode", "PipelineRunner", "load_pipelines", "matches", "WorkspaceManager",
]
