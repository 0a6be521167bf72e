"""Pydantic schemas for workflow definitions supplied by the conversational layer."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _coerce_named(value: Any, key: str) -> Any:
    """Accept a bare string where an object is expected."""
    if isinstance(value, str):
        return {key: value}
    return value


class WorkflowStep(BaseModel):
    """One ordered step of the process."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    description: str = ""
    title: str | None = None
    actor: str | None = None
    role: str | None = None
    responsible: str | None = None

    @property
    def label(self) -> str:
        return self.description or self.title or ""


class WorkflowIO(BaseModel):
    """A named input or output of the process."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    description: str | None = None


class WorkflowRisk(BaseModel):
    """An identified risk."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    description: str
    severity: str | None = None


class WorkflowDefinition(BaseModel):
    """Immutable input to document generation."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    title: str = "Standard Operating Procedure"
    description: str = ""
    steps: list[WorkflowStep] = Field(default_factory=list)
    inputs: list[WorkflowIO] = Field(default_factory=list)
    outputs: list[WorkflowIO] = Field(default_factory=list)
    actors: list[str] = Field(default_factory=list)
    risks: list[WorkflowRisk] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    industry: str | None = None
    process_type: str | None = Field(default=None, alias="type")

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Standard Operating Procedure"
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _default_description(cls, v: Any) -> Any:
        return v or ""

    @field_validator("steps", mode="before")
    @classmethod
    def _coerce_steps(cls, v: Any) -> Any:
        return [_coerce_named(s, "description") for s in (v or [])]

    @field_validator("inputs", "outputs", mode="before")
    @classmethod
    def _coerce_io(cls, v: Any) -> Any:
        return [_coerce_named(item, "name") for item in (v or [])]

    @field_validator("risks", mode="before")
    @classmethod
    def _coerce_risks(cls, v: Any) -> Any:
        return [_coerce_named(r, "description") for r in (v or [])]

    @field_validator("actors", "dependencies", "tags", mode="before")
    @classmethod
    def _coerce_str_list(cls, v: Any) -> Any:
        items = []
        for item in v or []:
            if isinstance(item, dict):
                item = item.get("name") or item.get("description") or ""
            if item:
                items.append(str(item))
        return items
