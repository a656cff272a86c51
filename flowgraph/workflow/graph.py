""" The editable workflow graph: nodes, edges and their structural invariants. """

import uuid
from logging import getLogger
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..exceptions import (
    CycleError,
    DuplicateKeyError,
    InvalidEdgeError,
    MappingError,
    SchemaError,
    UnknownEdgeError,
    UnknownNodeError,
)
from ..tasks.registry import TaskRegistry
from ..tasks.types import ParamType, TaskDefinition, TaskKind
from .binder import port_problem, validate_edge_mappings
from .conditions import EdgeCondition
from .models import NodeParam, ParameterMapping, WorkflowEdge, WorkflowNode
from .resolver import is_reachable

logger = getLogger(__name__)

_PARAM_KEYS = {"name", "type", "mandatory"}


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


class WorkflowGraph:
    """A DAG of task instances.

    Every mutation either succeeds completely or raises before touching
    state. Definitions are looked up through ``registry`` on demand, so
    editing a definition is reflected in every node that uses it.
    """

    def __init__(
        self,
        registry: TaskRegistry,
        nodes: Iterable[WorkflowNode] = (),
        edges: Iterable[WorkflowEdge] = (),
        node_id_prefix: str = "node",
    ):
        self.registry = registry
        self.node_id_prefix = node_id_prefix
        self._nodes: Dict[str, WorkflowNode] = {}
        self._edges: Dict[str, WorkflowEdge] = {}
        for node in nodes:
            self._insert_node(node)
        for edge in edges:
            self._check_edge(edge.source, edge.target, edge.branch)
            if edge.id in self._edges:
                raise DuplicateKeyError(edge.id, "edge")
            self._edges[edge.id] = edge

    # -- queries ----------------------------------------------------------

    @property
    def nodes(self) -> List[WorkflowNode]:
        return list(self._nodes.values())

    @property
    def edges(self) -> List[WorkflowEdge]:
        return list(self._edges.values())

    def node(self, node_id: str) -> Optional[WorkflowNode]:
        return self._nodes.get(node_id)

    def edge(self, edge_id: str) -> Optional[WorkflowEdge]:
        return self._edges.get(edge_id)

    def require_node(self, node_id: str) -> WorkflowNode:
        node = self._nodes.get(node_id)
        if node is None:
            raise UnknownNodeError(node_id)
        return node

    def require_edge(self, edge_id: str) -> WorkflowEdge:
        edge = self._edges.get(edge_id)
        if edge is None:
            raise UnknownEdgeError(edge_id)
        return edge

    def edges_from(self, node_id: str) -> List[WorkflowEdge]:
        return [e for e in self._edges.values() if e.source == node_id]

    def edges_to(self, node_id: str) -> List[WorkflowEdge]:
        return [e for e in self._edges.values() if e.target == node_id]

    def entry_nodes(self) -> List[WorkflowNode]:
        """Nodes with no incoming edge."""
        targets = {e.target for e in self._edges.values()}
        return [n for n in self._nodes.values() if n.id not in targets]

    def definition_for(self, node: WorkflowNode) -> Optional[TaskDefinition]:
        return self.registry.lookup(node.definition_id)

    def kind_of(self, node: WorkflowNode) -> Optional[TaskKind]:
        definition = self.definition_for(node)
        return definition.kind if definition else None

    def input_params(self, node: WorkflowNode) -> Dict[str, NodeParam]:
        """Schema inputs followed by the node's custom inputs."""
        params: Dict[str, NodeParam] = {}
        definition = self.definition_for(node)
        if definition is not None:
            schema = definition.schema
            for name, ptype in schema.inputs.items():
                params[name] = NodeParam(name, ptype, schema.is_required(name))
        for param in node.custom_inputs:
            params.setdefault(param.name, param)
        return params

    def output_params(self, node: WorkflowNode) -> Dict[str, NodeParam]:
        """Schema outputs followed by the node's custom outputs."""
        params: Dict[str, NodeParam] = {}
        definition = self.definition_for(node)
        if definition is not None:
            for name, ptype in definition.schema.outputs.items():
                params[name] = NodeParam(name, ptype)
        for param in node.custom_outputs:
            params.setdefault(param.name, param)
        return params

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    # -- nodes ------------------------------------------------------------

    def _insert_node(self, node: WorkflowNode) -> WorkflowNode:
        if node.id in self._nodes:
            raise DuplicateKeyError(node.id, "node")
        self._nodes[node.id] = node
        return node

    def add_node(
        self,
        definition_id: str,
        position: Tuple[float, float] = (0.0, 0.0),
        label: Optional[str] = None,
        node_id: Optional[str] = None,
    ) -> WorkflowNode:
        definition = self.registry.get(definition_id)
        node = WorkflowNode(
            id=node_id or _new_id(self.node_id_prefix),
            definition_id=definition.id,
            label=label if label is not None else definition.name,
            position=(float(position[0]), float(position[1])),
        )
        self._insert_node(node)
        logger.debug(f"Added node {node.id} ({definition_id})")
        return node

    def remove_node(self, node_id: str) -> WorkflowNode:
        """Remove a node and every edge that touches it."""
        node = self.require_node(node_id)
        self._edges = {
            e_id: e for e_id, e in self._edges.items()
            if e.source != node_id and e.target != node_id
        }
        del self._nodes[node_id]
        logger.debug(f"Removed node {node_id}")
        return node

    def set_node_config(self, node_id: str, key: str, value: Any) -> None:
        """Set one config value; ``None`` or an empty string clears it."""
        node = self.require_node(node_id)
        if value is None or value == "":
            node.config.pop(key, None)
            return
        if key not in self.input_params(node):
            logger.warning(f"Node {node_id}: '{key}' is not an input of {node.definition_id}")
        node.config[key] = value

    def set_node_label(self, node_id: str, label: str) -> None:
        self.require_node(node_id).label = label

    def set_node_position(self, node_id: str, position: Tuple[float, float]) -> None:
        self.require_node(node_id).position = (float(position[0]), float(position[1]))

    @staticmethod
    def _as_param(param: Any) -> NodeParam:
        if isinstance(param, NodeParam):
            return NodeParam.create(param.name, param.type, param.mandatory)
        if not isinstance(param, dict):
            raise SchemaError(f"Parameter must be a mapping, got {type(param).__name__}")
        unknown = sorted(set(param) - _PARAM_KEYS)
        if unknown:
            raise SchemaError(f"Unknown parameter keys: {', '.join(unknown)}")
        name = param.get("name")
        if not isinstance(name, str):
            raise SchemaError(f"Parameter name must be text, got {name!r}")
        return NodeParam.create(name, param.get("type", ParamType.STRING), param.get("mandatory", False))

    def _declared_params(self, params: Sequence[Any]) -> List[NodeParam]:
        out: List[NodeParam] = []
        seen = set()
        for param in params:
            param = self._as_param(param)
            if not param.name:
                continue
            if param.name in seen:
                raise DuplicateKeyError(param.name, "parameter")
            seen.add(param.name)
            out.append(param)
        return out

    def set_custom_inputs(self, node_id: str, params: Sequence[Any]) -> None:
        node = self.require_node(node_id)
        node.custom_inputs = self._declared_params(params)

    def set_custom_outputs(self, node_id: str, params: Sequence[Any]) -> None:
        node = self.require_node(node_id)
        node.custom_outputs = self._declared_params(params)

    # -- edges ------------------------------------------------------------

    def _check_edge(self, source: str, target: str, branch: Optional[str]) -> None:
        source_node = self.require_node(source)
        target_node = self.require_node(target)
        if source == target:
            raise InvalidEdgeError(f"Self-loop on node {source} is not allowed")

        problem = port_problem(source_node, target_node, branch, self)
        if problem:
            raise InvalidEdgeError(problem)

        for edge in self._edges.values():
            if edge.source == source and edge.target == target and edge.branch == branch:
                raise DuplicateKeyError(f"{source}->{target}", "edge")

        if is_reachable(target, source, self._edges.values()):
            raise CycleError(source, target)

    def add_edge(self, source: str, target: str, branch: Optional[str] = None) -> WorkflowEdge:
        """Connect ``source`` to ``target``; rejects anything that would close a cycle."""
        self._check_edge(source, target, branch)
        edge = WorkflowEdge(id=_new_id("edge"), source=source, target=target, branch=branch)
        self._edges[edge.id] = edge
        logger.debug(f"Added edge {edge!r}")
        return edge

    def remove_edge(self, edge_id: str) -> WorkflowEdge:
        edge = self.require_edge(edge_id)
        del self._edges[edge_id]
        logger.debug(f"Removed edge {edge!r}")
        return edge

    def set_edge_condition(self, edge_id: str, expression: Optional[str]) -> None:
        """Attach a condition; blank or ``None`` makes the edge unconditional."""
        self.require_edge(edge_id).condition = EdgeCondition.from_text(expression)

    def set_edge_mappings(self, edge_id: str, mappings: Iterable[Any]) -> List[ParameterMapping]:
        """Replace the edge's explicit mappings.

        Incomplete pairs are dropped. The save is rejected with
        ``MappingError`` while any pair is invalid or a required input of
        the target is left unmapped.
        """
        edge = self.require_edge(edge_id)
        cleaned: List[ParameterMapping] = []
        for mapping in mappings:
            if not isinstance(mapping, ParameterMapping):
                mapping = ParameterMapping(
                    mapping.get("sourceOutput") or mapping.get("source_output") or "",
                    mapping.get("targetInput") or mapping.get("target_input") or "",
                )
            if mapping.is_complete:
                cleaned.append(mapping)

        problems = validate_edge_mappings(edge, cleaned, self)
        if problems:
            raise MappingError(edge_id, problems)
        edge.mappings = cleaned
        return list(cleaned)

    def clear_edge_mappings(self, edge_id: str) -> None:
        self.require_edge(edge_id).mappings = []
