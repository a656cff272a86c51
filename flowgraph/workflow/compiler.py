""" Load and dump workflow and catalog documents (YAML or JSON text). """

import uuid
from logging import getLogger
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from ..config import FlowgraphConfig
from ..exceptions import DocumentError
from ..tasks.registry import TaskRegistry
from ..tasks.types import Machine, TaskDefinition
from .conditions import EdgeCondition
from .graph import WorkflowGraph
from .models import NodeParam, ParameterMapping, Workflow, WorkflowEdge, WorkflowNode, WorkflowStatus
from .schedule import AutomationSchedule
from .schema import validate_catalog_document, validate_workflow_document

logger = getLogger(__name__)


def _parse_text(text: str) -> Any:
    # JSON is a subset of YAML, so one parser handles both.
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise DocumentError(f"Unparseable document: {e}")


def load_workflow(
    text: str,
    registry: TaskRegistry,
    config: Optional[FlowgraphConfig] = None,
) -> Workflow:
    """
    Load a Workflow from YAML or JSON text.

    Structural rules apply exactly as in the editor: unknown endpoints,
    self-loops and cycles are rejected. Nodes whose definition is unknown
    are kept and reported later by ``validate_workflow``.
    """
    config = config or FlowgraphConfig()
    spec, _ = validate_workflow_document(_parse_text(text))

    nodes: List[WorkflowNode] = []
    for node_spec in spec.nodes:
        data = node_spec.data
        definition_id = data.definition_id
        if not definition_id:
            raise DocumentError(f"Node {node_spec.id} has no definitionId")
        definition = registry.lookup(definition_id)
        if definition is None:
            logger.warning(f"Node {node_spec.id} references unknown definition {definition_id}")
        position = node_spec.position or {}
        nodes.append(WorkflowNode(
            id=node_spec.id,
            definition_id=definition_id,
            label=data.label or (definition.name if definition else definition_id),
            config=dict(data.config),
            position=(float(position.get("x", 0)), float(position.get("y", 0))),
            custom_inputs=[NodeParam.create(p.name, p.type, p.mandatory) for p in data.customInputs],
            custom_outputs=[NodeParam.create(p.name, p.type) for p in data.customOutputs],
        ))

    edges: List[WorkflowEdge] = []
    for i, edge_spec in enumerate(spec.edges):
        edges.append(WorkflowEdge(
            id=edge_spec.id or f"e-{edge_spec.src}-{edge_spec.dest}-{i}",
            source=edge_spec.src,
            target=edge_spec.dest,
            branch=edge_spec.branch,
            condition=EdgeCondition.from_text(edge_spec.data.condition),
            mappings=[
                ParameterMapping(m.sourceOutput, m.targetInput)
                for m in edge_spec.data.mappings
                if m.sourceOutput and m.targetInput
            ],
        ))

    graph = WorkflowGraph(registry, nodes, edges, node_id_prefix=config.node_id_prefix)

    schedule = None
    if spec.schedule is not None:
        schedule = AutomationSchedule(
            spec.schedule.type,
            spec.schedule.value,
            spec.schedule.timezone or config.default_timezone,
        )

    workflow = Workflow(
        name=spec.name,
        graph=graph,
        id=spec.id or str(uuid.uuid4()),
        description=spec.description,
        status=WorkflowStatus(spec.status),
        schedule=schedule,
        inputs=dict(spec.inputs),
        last_run_at=spec.lastRunAt,
        run_count=spec.runCount,
    )
    if spec.createdAt:
        workflow.created_at = spec.createdAt
    if spec.updatedAt:
        workflow.updated_at = spec.updatedAt
    logger.debug(f"Loaded workflow {workflow.name}: {len(nodes)} nodes, {len(edges)} edges")
    return workflow


def load_workflow_file(path: Path, registry: TaskRegistry, config: Optional[FlowgraphConfig] = None) -> Workflow:
    return load_workflow(Path(path).read_text(), registry, config)


def _dump_params(params: List[NodeParam], with_mandatory: bool) -> List[Dict[str, Any]]:
    out = []
    for p in params:
        item: Dict[str, Any] = {"name": p.name, "type": p.type.value}
        if with_mandatory:
            item["mandatory"] = p.mandatory
        out.append(item)
    return out


def dump_workflow(workflow: Workflow) -> Dict[str, Any]:
    """Workflow -> plain dict in the external document shape."""
    graph: WorkflowGraph = workflow.graph
    nodes = []
    for node in graph.nodes:
        data: Dict[str, Any] = {
            "label": node.label,
            "definitionId": node.definition_id,
            "config": dict(node.config),
        }
        if node.custom_inputs:
            data["customInputs"] = _dump_params(node.custom_inputs, with_mandatory=True)
        if node.custom_outputs:
            data["customOutputs"] = _dump_params(node.custom_outputs, with_mandatory=False)
        nodes.append({
            "id": node.id,
            "position": {"x": node.position[0], "y": node.position[1]},
            "data": data,
        })

    edges = []
    for edge in graph.edges:
        item: Dict[str, Any] = {"id": edge.id, "from": edge.source, "to": edge.target}
        if edge.branch is not None:
            item["branch"] = edge.branch
        data = {}
        if edge.condition is not None:
            data["condition"] = edge.condition.expression
        if edge.mappings:
            data["mappings"] = [
                {"sourceOutput": m.source_output, "targetInput": m.target_input}
                for m in edge.mappings
            ]
        item["data"] = data
        edges.append(item)

    return {
        "id": workflow.id,
        "name": workflow.name,
        "description": workflow.description,
        "status": workflow.status.value,
        "schedule": workflow.schedule.to_dict() if workflow.schedule else None,
        "inputs": dict(workflow.inputs),
        "nodes": nodes,
        "edges": edges,
        "createdAt": workflow.created_at,
        "updatedAt": workflow.updated_at,
        "lastRunAt": workflow.last_run_at,
        "runCount": workflow.run_count,
    }


def dump_workflow_yaml(workflow: Workflow) -> str:
    return yaml.safe_dump(dump_workflow(workflow), sort_keys=False, allow_unicode=True)


def load_catalog(text: str) -> Tuple[List[TaskDefinition], List[Machine]]:
    """Parse a catalog document into task definitions and the machines they run on."""
    raw = _parse_text(text)
    if raw is None:
        return [], []
    catalog = validate_catalog_document(raw)
    definitions = [
        TaskDefinition.from_dict(spec.model_dump(by_alias=True, exclude_none=True))
        for spec in catalog.definitions
    ]
    machines = [Machine.from_dict(spec.model_dump()) for spec in catalog.machines]
    return definitions, machines


def load_definitions(text: str) -> List[TaskDefinition]:
    """Parse a catalog document into task definitions."""
    return load_catalog(text)[0]


def dump_definitions(definitions: Iterable[TaskDefinition], machines: Iterable[Machine] = ()) -> str:
    data: Dict[str, Any] = {}
    machines = list(machines)
    if machines:
        data["machines"] = [m.to_dict() for m in machines]
    data["definitions"] = [d.to_dict() for d in definitions]
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def load_registry(config: Optional[FlowgraphConfig] = None) -> TaskRegistry:
    """Build a registry from settings: built-ins plus the custom catalog file."""
    config = config or FlowgraphConfig()
    registry = TaskRegistry() if config.load_builtins else TaskRegistry(builtins=())
    if config.custom_definitions_path:
        path = Path(config.custom_definitions_path)
        if not path.exists():
            raise DocumentError(f"Custom definitions file not found: {path}")
        definitions, machines = load_catalog(path.read_text())
        # Machines first, so remote scripts find theirs.
        for machine in machines:
            registry.register_machine(machine)
        for definition in definitions:
            registry.register(definition)
        logger.info(
            f"Loaded {len(definitions)} custom definitions and {len(machines)} machines from {path}"
        )
    return registry
