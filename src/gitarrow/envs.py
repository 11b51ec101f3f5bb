# envs.py
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from . import settings


# ---------------------------------------------------------------------
# .env files
# ---------------------------------------------------------------------

def read_env_file(path: str | Path) -> Dict[str, str]:
    """
    Parse a flat KEY=VALUE file.

    Blank lines and lines starting with '#' are ignored, a leading
    `export ` is accepted, and one pair of matching quotes around the
    value is stripped. Lines without '=' are ignored.
    """
    values: Dict[str, str] = {}
    text = Path(path).read_text(encoding="utf-8")
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
            value = value[1:-1]
        values[key] = value
    return values


# ---------------------------------------------------------------------
# Scope
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class EnvironmentScope:
    """
    Layered variables: env files (in order) with inline variables on top.

    Scopes are values. `inherit` and `with_output_channel` return new
    scopes and never touch the receiver.
    """
    env_files: Tuple[str, ...] = ()
    variables: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # freeze the containers too, not just the attributes
        object.__setattr__(self, "env_files", tuple(str(f) for f in self.env_files))
        object.__setattr__(self, "variables", MappingProxyType(dict(self.variables)))

    @classmethod
    def from_variables(cls, variables: Mapping[str, str]) -> "EnvironmentScope":
        return cls(env_files=(), variables=variables)

    def inherit(self, parent: "EnvironmentScope") -> "EnvironmentScope":
        """Merge with `parent`; on any collision this scope wins."""
        merged = dict(parent.variables)
        merged.update(self.variables)
        return EnvironmentScope(
            env_files=parent.env_files + self.env_files,
            variables=merged,
        )

    def with_output_channel(self, key: str = settings.OUTPUT_ENV_KEY) -> "EnvironmentScope":
        """
        Attach a fresh temp file that actions can append KEY=VALUE lines to.

        The file is the last env file of the new scope and its path is
        exported as `key`, so every scope inheriting from the result sees
        whatever earlier actions wrote.
        """
        fd, path = tempfile.mkstemp(prefix="arrow-", suffix=".env")
        os.close(fd)
        variables = dict(self.variables)
        variables[key] = path
        return EnvironmentScope(env_files=self.env_files + (path,), variables=variables)

    def output_file(self, key: str = settings.OUTPUT_ENV_KEY) -> str | None:
        return self.variables.get(key)

    def discard_output_channel(self, key: str = settings.OUTPUT_ENV_KEY) -> None:
        path = self.output_file(key)
        if path:
            Path(path).unlink(missing_ok=True)

    def build_environment(self) -> Dict[str, str]:
        """
        Read every env file (missing ones are skipped) and apply inline
        variables last. Files are re-read on each call, so output written
        by a previous action shows up here.
        """
        env: Dict[str, str] = {}
        for f in self.env_files:
            if not Path(f).is_file():
                continue
            env.update(read_env_file(f))
        env.update(self.variables)
        return env

    def render(self, template: str) -> str:
        """Replace `$KEY` tokens with values from the built environment."""
        env = self.build_environment()
        # longest first so $FOO does not eat the prefix of $FOOBAR
        for key in sorted(env, key=len, reverse=True):
            template = template.replace(f"${key}", env[key])
        return template
