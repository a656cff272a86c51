"""Flowgraph exception hierarchy.

Structural errors (cycles, duplicate ids, unknown nodes) are raised at the
mutating call and never leave a graph half-changed. Validation problems
(unbound inputs, missing definitions) are never raised; the binder returns
them as ``ValidationIssue`` records whose ``code`` is one of the issue
classes below.

Usage:
    from flowgraph.exceptions import CycleError, FlowgraphError

    try:
        graph.add_edge("n2", "n1")
    except CycleError as e:
        print(f"Rejected: {e.message}")
"""

from typing import List, Optional


class FlowgraphError(ValueError):
    """Base exception for all flowgraph errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


# Catalog Errors


class SchemaError(FlowgraphError):
    """A task schema or parameter declaration is malformed."""

    pass


class RegistryError(FlowgraphError):
    """A registry operation is not allowed (e.g. removing a built-in)."""

    pass


class DuplicateKeyError(FlowgraphError):
    """An id or parameter name is already taken."""

    def __init__(self, key: str, what: str = "definition") -> None:
        self.key = key
        super().__init__(f"Duplicate {what} id: {key}")


class MissingDefinitionError(FlowgraphError):
    """A node references an unknown or deleted task definition.

    Raised by explicit lookups; during validation it is only reported.
    """

    def __init__(self, definition_id: str, node_id: Optional[str] = None) -> None:
        self.definition_id = definition_id
        self.node_id = node_id
        message = f"Unknown task definition: {definition_id}"
        if node_id:
            message = f"Node {node_id} references unknown task definition: {definition_id}"
        super().__init__(message)


class UnknownMachineError(FlowgraphError):
    """A machine id is not in the registry.

    Raised by explicit machine lookups; a remote script whose machine was
    removed is only reported during validation.
    """

    def __init__(self, machine_id: str, definition_id: Optional[str] = None) -> None:
        self.machine_id = machine_id
        self.definition_id = definition_id
        message = f"Unknown machine: {machine_id}"
        if definition_id:
            message = f"Task definition {definition_id} runs on unknown machine: {machine_id}"
        super().__init__(message)


# Graph Errors


class GraphError(FlowgraphError):
    """Base class for structural graph errors."""

    pass


class UnknownNodeError(GraphError):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Unknown node: {node_id}")


class UnknownEdgeError(GraphError):
    def __init__(self, edge_id: str) -> None:
        self.edge_id = edge_id
        super().__init__(f"Unknown edge: {edge_id}")


class InvalidEdgeError(GraphError):
    """The edge does not fit the port topology of its endpoints."""

    pass


class CycleError(GraphError):
    """Adding the edge would close a cycle in the workflow DAG."""

    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(
            f"Cycle detected in Workflow DAG: {target} already reaches {source}"
        )


class MappingError(GraphError):
    """Edge parameter mappings were rejected.

    ``problems`` lists every reason, so the editor can show them all at once.
    """

    def __init__(self, edge_id: str, problems: List[str]) -> None:
        self.edge_id = edge_id
        self.problems = list(problems)
        super().__init__(f"Invalid mappings on edge {edge_id}: " + "; ".join(problems))


# Document / Schedule Errors


class DocumentError(FlowgraphError):
    """A workflow or catalog document does not match its expected shape."""

    pass


class ScheduleError(FlowgraphError):
    """A schedule value does not satisfy the invariant for its type."""

    pass


# Validation issue codes (reported, never raised by the binder)


class UnboundRequiredInputError(FlowgraphError):
    def __init__(self, node_id: str, input_name: str) -> None:
        self.node_id = node_id
        self.input_name = input_name
        super().__init__(f"Node {node_id}: required input '{input_name}' is not bound")


class StaleConfigKeyError(FlowgraphError):
    """A config key no longer matches any input, e.g. after a definition edit."""

    def __init__(self, node_id: str, key: str) -> None:
        self.node_id = node_id
        self.key = key
        super().__init__(f"Node {node_id}: config key '{key}' is not an input of its task")


class MalformedReferenceError(FlowgraphError):
    def __init__(self, node_id: str, input_name: str, reference: str) -> None:
        self.node_id = node_id
        self.input_name = input_name
        self.reference = reference
        super().__init__(
            f"Node {node_id}: input '{input_name}' references unavailable output {reference}"
        )
