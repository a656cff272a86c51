""" Data models for workflow representation """

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..tasks.types import ParamType, normalize_param_name
from .conditions import EdgeCondition
from .schedule import AutomationSchedule


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class WorkflowStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


@dataclass(frozen=True)
class ParameterMapping:
    """Pairs one upstream output key with one downstream input key on an edge."""
    source_output: str
    target_input: str

    @property
    def is_complete(self) -> bool:
        return bool(self.source_output) and bool(self.target_input)


@dataclass(frozen=True)
class NodeParam:
    """A parameter as a node sees it: declared by the schema or by the user on the node."""
    name: str
    type: ParamType = ParamType.STRING
    mandatory: bool = False

    @classmethod
    def create(cls, name: str, type: Any = ParamType.STRING, mandatory: bool = False) -> "NodeParam":
        return cls(normalize_param_name(name), ParamType.parse(type), bool(mandatory))


# eq=False: nodes and edges hash by identity so they can live in sets while
# their config keeps changing.
@dataclass(eq=False)
class WorkflowNode:
    id: str
    definition_id: str
    label: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    position: Tuple[float, float] = (0.0, 0.0)
    custom_inputs: List[NodeParam] = field(default_factory=list)
    custom_outputs: List[NodeParam] = field(default_factory=list)

    def __repr__(self) -> str:
        return f"WorkflowNode(id={self.id!r}, definition_id={self.definition_id!r})"


@dataclass(eq=False)
class WorkflowEdge:
    id: str
    source: str
    target: str
    branch: Optional[str] = None
    condition: Optional[EdgeCondition] = None
    mappings: List[ParameterMapping] = field(default_factory=list)

    @property
    def is_conditional(self) -> bool:
        return self.condition is not None and self.condition.is_conditional

    def __repr__(self) -> str:
        branch = f"[{self.branch}]" if self.branch else ""
        return f"WorkflowEdge({self.source}{branch} -> {self.target})"


@dataclass
class Workflow:
    """A graph plus its metadata. The workflow exclusively owns its graph."""
    name: str
    graph: Any  # WorkflowGraph; typed loosely to avoid an import cycle
    id: str = ""
    description: str = ""
    status: WorkflowStatus = WorkflowStatus.DRAFT
    schedule: Optional[AutomationSchedule] = None
    inputs: Dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=_now)
    updated_at: str = field(default_factory=_now)
    last_run_at: Optional[str] = None
    run_count: int = 0

    @property
    def is_manual(self) -> bool:
        return self.schedule is None

    def touch(self) -> None:
        self.updated_at = _now()

    def toggle_status(self) -> WorkflowStatus:
        if self.status is WorkflowStatus.ACTIVE:
            self.status = WorkflowStatus.INACTIVE
        else:
            self.status = WorkflowStatus.ACTIVE
        self.touch()
        return self.status

    def record_run(self, at: Optional[datetime] = None) -> None:
        """Report-back hook for the execution engine."""
        self.last_run_at = (at or datetime.now(timezone.utc)).isoformat()
        self.run_count += 1
