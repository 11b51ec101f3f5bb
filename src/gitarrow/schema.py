from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from . import settings
from .envs import EnvironmentScope


def _string_or_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return value


def _scalar(value: Any) -> str:
    # YAML turns `true`, `8080` and `~` into non-strings; env values are text
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


# -------------------- Schemas --------------------

class EnvFields(BaseModel):
    """`env_file` / `env` keys shared by pipelines and actions."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    env_file: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)

    @field_validator("env_file", mode="before")
    @classmethod
    def _env_file_list(cls, v: Any) -> Any:
        return _string_or_list(v)

    @field_validator("env", mode="before")
    @classmethod
    def _env_strings(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): _scalar(val) for k, val in v.items()}
        return v

    def scope(self, base_dir: str | Path) -> EnvironmentScope:
        """Scope for this fragment; relative env files resolve against `base_dir`."""
        files = tuple(str(Path(base_dir) / Path(f).expanduser()) for f in self.env_file)
        return EnvironmentScope(env_files=files, variables=self.env)


class _ScriptAction(EnvFields):
    name: str
    script: str
    shell: ClassVar[str] = "sh"


class ShellAction(_ScriptAction):
    runner: Literal["shell"]


class BashAction(_ScriptAction):
    runner: Literal["bash"]
    shell: ClassVar[str] = "bash"


class SshAction(EnvFields):
    runner: Literal["ssh"]
    name: str
    user: Optional[str] = None
    hosts: List[str]
    identity_file: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    script: str

    @field_validator("hosts", mode="before")
    @classmethod
    def _hosts_list(cls, v: Any) -> Any:
        return _string_or_list(v)

    @field_validator("hosts")
    @classmethod
    def _hosts_not_empty(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("at least one host is required")
        return v


class WebHookBody(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    form_data: Optional[Dict[str, str]] = Field(default=None, alias="formData")
    json_data: Optional[Any] = Field(default=None, alias="jsonData")

    @field_validator("form_data", mode="before")
    @classmethod
    def _form_strings(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): _scalar(val) for k, val in v.items()}
        return v

    @model_validator(mode="after")
    def _exactly_one(self) -> "WebHookBody":
        if (self.form_data is None) == (self.json_data is None):
            raise ValueError("body needs exactly one of formData or jsonData")
        return self


class HttpSpec(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    method: str = "POST"
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[WebHookBody] = None
    timeout: float = Field(default=settings.WEBHOOK_TIMEOUT, gt=0)

    @field_validator("headers", mode="before")
    @classmethod
    def _header_strings(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, dict):
            return {str(k): _scalar(val) for k, val in v.items()}
        return v


class WebHookAction(EnvFields):
    runner: Literal["webhook"]
    name: str
    http: HttpSpec


ActionSpec = Annotated[
    Union[ShellAction, BashAction, SshAction, WebHookAction],
    Field(discriminator="runner"),
]


class WhenClause(BaseModel):
    """Trigger predicate. Omitted entirely, it matches every branch."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    branch: List[str] = Field(default_factory=lambda: ["*"])
    changes: List[str] = Field(default_factory=list)

    @field_validator("branch", "changes", mode="before")
    @classmethod
    def _lists(cls, v: Any) -> Any:
        return _string_or_list(v)


class PipelineDefinition(EnvFields):
    name: str
    when: WhenClause = Field(default_factory=WhenClause)
    actions: List[ActionSpec] = Field(default_factory=list)

    @field_validator("when", mode="before")
    @classmethod
    def _empty_when(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("actions", mode="before")
    @classmethod
    def _empty_actions(cls, v: Any) -> Any:
        return [] if v is None else v
