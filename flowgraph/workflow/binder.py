"""
Binding of node inputs to literals and upstream outputs.

Nothing in this module raises for user-typed content. Malformed or dangling
references simply leave an input unbound, and every problem found by
``validate_workflow`` comes back as a ``ValidationIssue``.

``graph`` arguments are ``WorkflowGraph`` instances; only ``nodes``,
``edges``, ``node``, ``registry``, ``definition_for``, ``kind_of``,
``input_params`` and ``output_params`` are used.
"""

from dataclasses import dataclass, field
from logging import getLogger
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..exceptions import (
    FlowgraphError,
    InvalidEdgeError,
    MalformedReferenceError,
    MappingError,
    MissingDefinitionError,
    StaleConfigKeyError,
    UnboundRequiredInputError,
    UnknownMachineError,
)
from ..tasks.types import ParamType
from .models import NodeParam, ParameterMapping, WorkflowEdge, WorkflowNode
from .references import (
    Literal,
    NodeRef,
    format_reference,
    has_reference,
    looks_like_reference,
    malformed_tokens,
    parse_value,
)
from .resolver import upstream_ids

logger = getLogger(__name__)

__all__ = [
    "OutputOption",
    "ValidationIssue",
    "ValidationReport",
    "available_outputs",
    "has_reference",
    "is_bound",
    "port_problem",
    "validate_bindings",
    "validate_edge_mappings",
    "validate_workflow",
]

ERROR = "error"
WARNING = "warning"


@dataclass(frozen=True)
class OutputOption:
    """An upstream output that may be referenced from a node's config."""
    node_id: str
    node_label: str
    key: str
    type: ParamType

    @property
    def label(self) -> str:
        return f"{self.node_label}: {self.key}"

    @property
    def reference(self) -> str:
        return format_reference(self.node_id, self.key)


@dataclass(frozen=True)
class ValidationIssue:
    severity: str
    error: FlowgraphError
    node_id: Optional[str] = None
    edge_id: Optional[str] = None

    @property
    def code(self) -> str:
        return type(self.error).__name__

    @property
    def message(self) -> str:
        return self.error.message


@dataclass
class ValidationReport:
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == ERROR]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [i for i in self.issues if i.severity == WARNING]

    @property
    def missing_definitions(self) -> List[str]:
        return [i.node_id for i in self.issues if isinstance(i.error, MissingDefinitionError)]

    @property
    def is_valid(self) -> bool:
        return not self.errors and not self.missing_definitions

    def for_node(self, node_id: str) -> List[ValidationIssue]:
        return [i for i in self.issues if i.node_id == node_id]

    def unbound_inputs(self) -> Dict[str, List[str]]:
        """``node_id -> [input names]`` for every unbound required input."""
        out: Dict[str, List[str]] = {}
        for issue in self.issues:
            if isinstance(issue.error, UnboundRequiredInputError):
                out.setdefault(issue.node_id, []).append(issue.error.input_name)
        return out


def _node(node_or_id: Union[WorkflowNode, str], graph) -> Optional[WorkflowNode]:
    if isinstance(node_or_id, WorkflowNode):
        return node_or_id
    return graph.node(node_or_id)


def _upstream_nodes(node_id: str, graph) -> Dict[str, WorkflowNode]:
    """Upstream nodes keyed by id, in graph insertion order."""
    ids = upstream_ids(node_id, graph.edges)
    return {n.id: n for n in graph.nodes if n.id in ids}


def available_outputs(node_id: str, graph) -> List[OutputOption]:
    """Schema outputs and custom outputs of every node upstream of ``node_id``."""
    options: List[OutputOption] = []
    for upstream in _upstream_nodes(node_id, graph).values():
        label = upstream.label or upstream.id
        for param in graph.output_params(upstream).values():
            options.append(OutputOption(upstream.id, label, param.name, param.type))
    return options


def _ref_is_legal(ref: NodeRef, upstream: Mapping[str, WorkflowNode], graph) -> bool:
    node = upstream.get(ref.node_id)
    if node is None:
        return False
    return ref.output_key in graph.output_params(node)


def is_bound(value: Any, upstream: Mapping[str, WorkflowNode], graph) -> bool:
    """A non-empty literal, or a template with at least one legal reference.

    Text that only attempts a reference (``{{n1}}``, ``{{n1.a.b}}``) is unbound.
    """
    parsed = parse_value(value)
    if isinstance(parsed, Literal):
        return not parsed.is_empty() and not looks_like_reference(value)
    return any(_ref_is_legal(ref, upstream, graph) for ref in parsed.refs)


def required_inputs(node: WorkflowNode, graph) -> List[str]:
    return [p.name for p in graph.input_params(node).values() if p.mandatory]


def validate_bindings(node: Union[WorkflowNode, str], graph) -> List[str]:
    """Names of required inputs of ``node`` that are not bound, in declaration order."""
    node = _node(node, graph)
    if node is None:
        return []
    upstream = _upstream_nodes(node.id, graph)
    return [
        name for name in required_inputs(node, graph)
        if not is_bound(node.config.get(name), upstream, graph)
    ]


def port_problem(
    source: WorkflowNode,
    target: WorkflowNode,
    branch: Optional[str],
    graph,
) -> Optional[str]:
    """Why an edge does not fit the ports of its endpoints' current kinds, or ``None``.

    Endpoints with an unknown definition are not checked.
    """
    source_kind = graph.kind_of(source)
    target_kind = graph.kind_of(target)
    if target_kind is not None and not target_kind.accepts_input:
        return f"Node {target.id} is a {target_kind.value} and takes no incoming edges"
    if source_kind is not None:
        branches = source_kind.branches
        if branches and branch not in branches:
            return (
                f"Edge from {source_kind.value} node {source.id} must use a branch "
                f"({' or '.join(branches)}), got {branch!r}"
            )
        if not branches and branch is not None:
            return f"Node {source.id} has no branch '{branch}'"
    return None


def validate_edge_mappings(
    edge: WorkflowEdge,
    mappings: Iterable[ParameterMapping],
    graph,
) -> List[str]:
    """Check explicit mappings against the edge's own source and target only.

    Returns problems as text; an empty list means the mappings can be saved.
    """
    source = graph.node(edge.source)
    target = graph.node(edge.target)
    if source is None or target is None:
        return [f"Edge {edge.id} has a missing endpoint"]

    outputs: Dict[str, NodeParam] = graph.output_params(source)
    inputs: Dict[str, NodeParam] = graph.input_params(target)
    problems: List[str] = []
    mapped: List[str] = []

    for mapping in mappings:
        if mapping.source_output not in outputs:
            problems.append(f"Unknown output '{mapping.source_output}' on node {source.id}")
        if mapping.target_input not in inputs:
            problems.append(f"Unknown input '{mapping.target_input}' on node {target.id}")
        if mapping.target_input in mapped:
            problems.append(f"Input '{mapping.target_input}' is mapped more than once")
        mapped.append(mapping.target_input)

    for name, param in inputs.items():
        if param.mandatory and name not in mapped:
            problems.append(f"Required input '{name}' is not mapped")
    return problems


def validate_workflow(graph) -> ValidationReport:
    """Collect every validation problem in ``graph``. Never raises."""
    report = ValidationReport()

    for node in graph.nodes:
        definition = graph.definition_for(node)
        if definition is None:
            logger.warning(f"Node {node.id} uses unknown definition {node.definition_id}")
            report.issues.append(ValidationIssue(
                WARNING, MissingDefinitionError(node.definition_id, node.id), node_id=node.id,
            ))
        elif definition.machine_id and graph.registry.lookup_machine(definition.machine_id) is None:
            report.issues.append(ValidationIssue(
                WARNING, UnknownMachineError(definition.machine_id, definition.id), node_id=node.id,
            ))

        inputs = graph.input_params(node)
        upstream = _upstream_nodes(node.id, graph)

        for key, value in node.config.items():
            if key not in inputs:
                report.issues.append(ValidationIssue(
                    WARNING, StaleConfigKeyError(node.id, key), node_id=node.id,
                ))
            for ref in parse_value(value).refs:
                if not _ref_is_legal(ref, upstream, graph):
                    report.issues.append(ValidationIssue(
                        WARNING, MalformedReferenceError(node.id, key, ref.token), node_id=node.id,
                    ))
            for fragment in malformed_tokens(value):
                report.issues.append(ValidationIssue(
                    WARNING, MalformedReferenceError(node.id, key, fragment), node_id=node.id,
                ))

        for name in validate_bindings(node, graph):
            report.issues.append(ValidationIssue(
                ERROR, UnboundRequiredInputError(node.id, name), node_id=node.id,
            ))

    for edge in graph.edges:
        # Kinds can change under existing edges when a definition is overridden.
        source, target = graph.node(edge.source), graph.node(edge.target)
        if source is not None and target is not None:
            problem = port_problem(source, target, edge.branch, graph)
            if problem:
                report.issues.append(ValidationIssue(
                    WARNING, InvalidEdgeError(problem), edge_id=edge.id,
                ))
        if not edge.mappings:
            continue
        problems = validate_edge_mappings(edge, edge.mappings, graph)
        if problems:
            report.issues.append(ValidationIssue(
                WARNING, MappingError(edge.id, problems), edge_id=edge.id,
            ))

    logger.debug(
        f"Validated {len(graph.nodes)} nodes: "
        f"{len(report.errors)} errors, {len(report.warnings)} warnings"
    )
    return report
