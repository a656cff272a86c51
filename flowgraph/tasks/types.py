""" Typed catalog entries: parameter types, step kinds, schemas and definitions. """

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..exceptions import SchemaError


class ParamType(str, Enum):
    """Value types a task input or output can carry."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    OBJECT = "object"
    ARRAY = "array"

    @classmethod
    def parse(cls, value: Union[str, "ParamType"]) -> "ParamType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise SchemaError(f"Unknown parameter type: {value!r}")


class TaskKind(str, Enum):
    """Step kinds. Port topology differs per kind."""

    TRIGGER = "trigger"
    ACTION = "action"
    CONDITION = "condition"
    REMOTE_SCRIPT = "remote_script"

    @classmethod
    def parse(cls, value: Union[str, "TaskKind"]) -> "TaskKind":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise SchemaError(f"Unknown task kind: {value!r}")

    @property
    def branches(self) -> Tuple[str, ...]:
        """Named output ports. Empty means a single unnamed port."""
        return _BRANCHES[self]

    @property
    def accepts_input(self) -> bool:
        """Whether edges may point into a node of this kind."""
        return _ACCEPTS_INPUT[self]


BRANCH_TRUE = "true"
BRANCH_FALSE = "false"

# Every TaskKind must appear in both tables.
_BRANCHES: Dict[TaskKind, Tuple[str, ...]] = {
    TaskKind.TRIGGER: (),
    TaskKind.ACTION: (),
    TaskKind.CONDITION: (BRANCH_TRUE, BRANCH_FALSE),
    TaskKind.REMOTE_SCRIPT: (),
}

_ACCEPTS_INPUT: Dict[TaskKind, bool] = {
    TaskKind.TRIGGER: False,
    TaskKind.ACTION: True,
    TaskKind.CONDITION: True,
    TaskKind.REMOTE_SCRIPT: True,
}

_WHITESPACE = re.compile(r"\s+")


def normalize_param_name(name: str) -> str:
    """Normalize a user-typed parameter name: ``" Service Name "`` -> ``"service_name"``."""
    return _WHITESPACE.sub("_", name.strip()).lower()


def _ordered_params(
    params: Union[Dict[str, Any], Iterable[Tuple[str, Any]], None], what: str
) -> Dict[str, ParamType]:
    items = params.items() if isinstance(params, dict) else (params or [])
    out: Dict[str, ParamType] = {}
    for name, ptype in items:
        if not name:
            raise SchemaError(f"Empty {what} parameter name")
        if name in out:
            raise SchemaError(f"Duplicate {what} parameter: {name}")
        out[name] = ParamType.parse(ptype)
    return out


@dataclass(frozen=True)
class TaskSchema:
    """Ordered input/output declarations of a task definition.

    ``required`` lists the inputs that must be bound before a graph using
    the definition is runnable.
    """

    inputs: Dict[str, ParamType] = field(default_factory=dict)
    outputs: Dict[str, ParamType] = field(default_factory=dict)
    required: Tuple[str, ...] = ()

    @classmethod
    def build(cls, inputs=None, outputs=None, required: Iterable[str] = ()) -> "TaskSchema":
        """Build a schema from mappings or ``(name, type)`` pairs, enforcing unique names."""
        ins = _ordered_params(inputs, "input")
        outs = _ordered_params(outputs, "output")
        req: List[str] = []
        for name in required or ():
            if name not in ins:
                raise SchemaError(f"Required parameter '{name}' is not a declared input")
            if name not in req:
                req.append(name)
        return cls(inputs=ins, outputs=outs, required=tuple(req))

    def is_required(self, name: str) -> bool:
        return name in self.required

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "inputs": {k: v.value for k, v in self.inputs.items()},
            "outputs": {k: v.value for k, v in self.outputs.items()},
        }
        if self.required:
            data["required"] = list(self.required)
        return data


@dataclass(frozen=True)
class TaskDefinition:
    """A kind of step, with its typed schema.

    ``icon``, ``color`` and ``category`` are presentation hints only.
    ``machine_id`` and ``script_path`` apply to remote scripts.
    """

    id: str
    name: str
    kind: TaskKind
    schema: TaskSchema = field(default_factory=TaskSchema)
    description: str = ""
    icon: Optional[str] = None
    color: Optional[str] = None
    category: Optional[str] = None
    machine_id: Optional[str] = None
    script_path: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaskDefinition":
        if not data.get("id"):
            raise SchemaError("Task definition is missing 'id'")
        schema = data.get("schema") or {}
        return cls(
            id=data["id"],
            name=data.get("name") or data["id"],
            kind=TaskKind.parse(data.get("type", TaskKind.ACTION)),
            schema=TaskSchema.build(
                inputs=schema.get("inputs"),
                outputs=schema.get("outputs"),
                required=schema.get("required") or (),
            ),
            description=data.get("description") or "",
            icon=data.get("icon"),
            color=data.get("color"),
            category=data.get("category"),
            machine_id=data.get("machineId"),
            script_path=data.get("scriptPath"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.kind.value,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "category": self.category,
            "schema": self.schema.to_dict(),
        }
        if self.machine_id:
            data["machineId"] = self.machine_id
        if self.script_path:
            data["scriptPath"] = self.script_path
        return data


DEFAULT_SSH_PORT = "22"


@dataclass(frozen=True)
class Machine:
    """A host that remote-script definitions run on."""

    id: str
    name: str
    host: str
    port: str = DEFAULT_SSH_PORT
    description: str = ""

    @classmethod
    def create(cls, id: str, name: str, host: str, port: Any = None, description: str = "") -> "Machine":
        """Trim user input; name and host are mandatory, an empty port means SSH."""
        name, host = (name or "").strip(), (host or "").strip()
        if not name:
            raise SchemaError(f"Machine {id} needs a name")
        if not host:
            raise SchemaError(f"Machine {id} needs a host")
        port = str(port).strip() if port is not None else ""
        return cls(id, name, host, port or DEFAULT_SSH_PORT, (description or "").strip())

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Machine":
        if not data.get("id"):
            raise SchemaError("Machine is missing 'id'")
        return cls.create(
            data["id"], data.get("name"), data.get("host"), data.get("port"), data.get("description")
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "host": self.host,
            "port": self.port,
            "description": self.description,
        }
