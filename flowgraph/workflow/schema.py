from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import DocumentError


def _as_text(value: Any) -> Any:
    """YAML turns unquoted timestamps and numbers into native types; keep them as text."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


class SchemaSpec(BaseModel):
    inputs: Dict[str, str] = Field(default_factory=dict)
    outputs: Dict[str, str] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)


class TaskDefinitionSpec(BaseModel):
    id: str
    name: str
    type: str
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    machineId: Optional[str] = None
    scriptPath: Optional[str] = None
    schema_: SchemaSpec = Field(default_factory=SchemaSpec, alias="schema")

    model_config = ConfigDict(populate_by_name=True)


class ParamSpec(BaseModel):
    name: str
    type: str = "string"
    mandatory: bool = False


class NodeDataSpec(BaseModel):
    label: Optional[str] = None
    definitionId: Optional[str] = None
    type: Optional[str] = None  # older documents carry the definition id here
    config: Dict[str, Any] = Field(default_factory=dict)
    customInputs: List[ParamSpec] = Field(default_factory=list)
    customOutputs: List[ParamSpec] = Field(default_factory=list)

    @property
    def definition_id(self) -> Optional[str]:
        return self.definitionId or self.type


class NodeSpec(BaseModel):
    id: str
    position: Optional[Dict[str, float]] = None
    data: NodeDataSpec


class MappingSpec(BaseModel):
    sourceOutput: str = ""
    targetInput: str = ""


class EdgeDataSpec(BaseModel):
    condition: Optional[str] = None
    mappings: List[MappingSpec] = Field(default_factory=list)


class EdgeSpec(BaseModel):
    id: Optional[str] = None
    src: str = Field(alias="from")
    dest: str = Field(alias="to")
    branch: Optional[Literal["true", "false"]] = None
    data: EdgeDataSpec = Field(default_factory=EdgeDataSpec)

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("branch", mode="before")
    @classmethod
    def _branch_as_text(cls, value):
        # YAML reads a bare true/false as a bool
        if isinstance(value, bool):
            return "true" if value else "false"
        return value


class ScheduleSpec(BaseModel):
    type: Literal["once", "interval", "cron"]
    value: str
    timezone: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def _value_as_text(cls, value):
        return _as_text(value)


class WorkflowSpec(BaseModel):
    id: Optional[str] = None
    name: str
    description: str = ""
    status: Literal["active", "inactive", "draft"] = "draft"
    schedule: Optional[ScheduleSpec] = None
    inputs: Dict[str, Any] = Field(default_factory=dict)

    nodes: List[NodeSpec] = Field(default_factory=list)
    edges: List[EdgeSpec] = Field(default_factory=list)

    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None
    lastRunAt: Optional[str] = None
    runCount: int = 0

    model_config = ConfigDict(extra="forbid")

    @field_validator("createdAt", "updatedAt", "lastRunAt", mode="before")
    @classmethod
    def _timestamps_as_text(cls, value):
        return _as_text(value)


class MachineSpec(BaseModel):
    id: str
    name: str
    host: str
    port: Optional[str] = None
    description: str = ""

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_text(cls, value):
        return _as_text(value)


class CatalogSpec(BaseModel):
    machines: List[MachineSpec] = Field(default_factory=list)
    definitions: List[TaskDefinitionSpec] = Field(default_factory=list)


def validate_workflow_document(raw: Dict[str, Any]) -> Tuple[WorkflowSpec, Dict[str, Any]]:
    """Validate a raw workflow dict against WorkflowSpec."""
    if not isinstance(raw, dict):
        raise DocumentError("Workflow document must be a mapping")
    try:
        spec = WorkflowSpec.model_validate(raw)
    except ValidationError as e:
        raise DocumentError(f"Workflow validation error: {e}")
    return spec, spec.model_dump(by_alias=True)


def validate_catalog_document(raw: Any) -> CatalogSpec:
    """Accept either ``{definitions: [...]}`` or a bare list of definitions."""
    if isinstance(raw, list):
        raw = {"definitions": raw}
    if not isinstance(raw, dict):
        raise DocumentError("Catalog document must be a list or a mapping")
    try:
        return CatalogSpec.model_validate(raw)
    except ValidationError as e:
        raise DocumentError(f"Catalog validation error: {e}")
