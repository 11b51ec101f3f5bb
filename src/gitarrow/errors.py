# errors.py
from __future__ import annotations

from dataclasses import dataclass


class ArrowError(Exception):
    """
    Base class for every failure that aborts a run.

    The runner fills in `pipeline` and `action` before re-raising so the CLI
    can tell operators which step broke.
    """
    pipeline: str | None = None
    action: str | None = None

    def locate(self, pipeline: str, action: str | None = None) -> "ArrowError":
        self.pipeline = pipeline
        self.action = action
        return self


class InputError(ArrowError):
    """Malformed hook input on stdin."""


class HookEnvironmentError(ArrowError):
    """A required process environment variable is missing."""


class ResolutionError(ArrowError):
    """The branch could not be derived from the ref name."""


class DiffError(ArrowError):
    """`git diff` between the pushed revisions failed."""


class WorkspaceError(ArrowError):
    """Checkout or cleanup of the workspace failed."""


class DefinitionParseError(ArrowError):
    """A pipeline definition file is not valid YAML or does not fit the schema."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


@dataclass(eq=False)
class CommandFailed(ArrowError):
    command: str
    exit_code: int
    host: str | None = None

    def __str__(self) -> str:
        where = f" on {self.host}" if self.host else ""
        return f"command '{self.command}' failed{where} (exit={self.exit_code})"


@dataclass(eq=False)
class HttpError(ArrowError):
    status: int | None
    body: str
    url: str = ""

    def __str__(self) -> str:
        if self.status is None:
            return f"request to {self.url} failed: {self.body}"
        return f"{self.url} responded {self.status}: {self.body}"
