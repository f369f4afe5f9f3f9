"""Pydantic schemas for the step graph snapshot handed to the engine."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ConnectionType(str, Enum):
    """Outcome a connection represents."""

    SUCCESS = "success"
    FAILURE = "failure"


class Step(BaseModel):
    """A node in the flow graph."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1)
    name: str = ""
    parent_id: str | None = Field(default=None, alias="parentId")
    description: str | None = None

    @property
    def is_sub_step(self) -> bool:
        """Whether the step sits below another step."""
        return bool(self.parent_id)

    @property
    def label(self) -> str:
        """Display name, falling back to the id for unnamed steps."""
        return self.name or self.id


class Connection(BaseModel):
    """A directed, typed edge between two steps."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = ""
    from_step_id: str = Field(..., alias="fromStepId")
    to_step_id: str = Field(..., alias="toStepId")
    type: ConnectionType

    @model_validator(mode="before")
    @classmethod
    def derive_id(cls, data: Any) -> Any:
        """Give connections without an id a stable one."""
        if isinstance(data, dict) and not data.get("id"):
            source = data.get("fromStepId", data.get("from_step_id"))
            target = data.get("toStepId", data.get("to_step_id"))
            kind = data.get("type")
            if isinstance(kind, ConnectionType):
                kind = kind.value
            data = {**data, "id": f"{source}->{target}:{kind}"}
        return data


class GraphSnapshot(BaseModel):
    """Immutable view of the editor's steps and connections."""

    model_config = ConfigDict(frozen=True)

    steps: tuple[Step, ...] = ()
    connections: tuple[Connection, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GraphSnapshot":
        """Build a snapshot from the editor's camelCase JSON document."""
        return cls.model_validate({
            "steps": data.get("steps") or [],
            "connections": data.get("connections") or [],
        })

    def to_dict(self) -> dict[str, Any]:
        """Serialize back to the editor's camelCase shape."""
        return {
            "steps": [s.model_dump(by_alias=True, exclude_none=True) for s in self.steps],
            "connections": [
                c.model_dump(by_alias=True, mode="json") for c in self.connections
            ],
        }
