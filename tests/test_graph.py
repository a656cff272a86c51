"""Tests for workflow graph editing and its structural invariants."""

import pytest
from flowgraph.exceptions import (
    CycleError,
    DuplicateKeyError,
    InvalidEdgeError,
    MappingError,
    MissingDefinitionError,
    SchemaError,
    UnknownEdgeError,
    UnknownNodeError,
)
from flowgraph.tasks.registry import TaskRegistry
from flowgraph.workflow.graph import WorkflowGraph
from flowgraph.workflow.models import NodeParam, ParameterMapping, WorkflowEdge, WorkflowNode
from flowgraph.tasks.types import ParamType


def make_graph():
    return WorkflowGraph(TaskRegistry())


def chain(graph, *definition_ids):
    """Add nodes n1..nk of the given kinds and link them in a line."""
    nodes = [
        graph.add_node(definition_id, node_id=f"n{i}")
        for i, definition_id in enumerate(definition_ids, start=1)
    ]
    for a, b in zip(nodes, nodes[1:]):
        graph.add_edge(a.id, b.id)
    return nodes


def test_add_node_uses_definition_name_as_label():
    """Test node creation defaults."""
    graph = make_graph()
    node = graph.add_node("action_webhook", position=(10, 20))

    assert node.label == "Webhook"
    assert node.position == (10.0, 20.0)
    assert node.id.startswith("node-")
    assert graph.node(node.id) is node


def test_add_node_unknown_definition_raises():
    """Test that nodes can only be created from known definitions."""
    graph = make_graph()

    with pytest.raises(MissingDefinitionError):
        graph.add_node("action_missing")
    assert len(graph) == 0


def test_add_node_duplicate_id_raises():
    """Test that node ids are unique."""
    graph = make_graph()
    graph.add_node("action_webhook", node_id="n1")

    with pytest.raises(DuplicateKeyError, match="n1"):
        graph.add_node("action_email", node_id="n1")


def test_add_edge_links_nodes():
    """Test a simple connection."""
    graph = make_graph()
    n1, n2 = chain(graph, "action_webhook", "action_email")

    assert len(graph.edges) == 1
    edge = graph.edges[0]
    assert (edge.source, edge.target) == ("n1", "n2")
    assert graph.edges_from("n1") == [edge]
    assert graph.edges_to("n2") == [edge]
    assert graph.entry_nodes() == [n1]


def test_add_edge_unknown_node_raises():
    """Test that both endpoints must exist."""
    graph = make_graph()
    graph.add_node("action_webhook", node_id="n1")

    with pytest.raises(UnknownNodeError, match="Unknown node: ghost"):
        graph.add_edge("n1", "ghost")


def test_add_edge_self_loop_raises():
    """Test that a node cannot connect to itself."""
    graph = make_graph()
    graph.add_node("action_webhook", node_id="n1")

    with pytest.raises(InvalidEdgeError, match="Self-loop"):
        graph.add_edge("n1", "n1")


def test_add_edge_rejects_cycle_and_leaves_graph_unchanged():
    """Test that closing a cycle is rejected atomically."""
    graph = make_graph()
    chain(graph, "action_webhook", "action_email", "action_slack")
    edges_before = list(graph.edges)

    with pytest.raises(CycleError, match="Cycle detected in Workflow DAG"):
        graph.add_edge("n3", "n1")
    assert graph.edges == edges_before


def test_add_edge_into_trigger_raises():
    """Test that triggers have no incoming port."""
    graph = make_graph()
    graph.add_node("action_webhook", node_id="n1")
    graph.add_node("trigger_alarm", node_id="t1")

    with pytest.raises(InvalidEdgeError, match="takes no incoming edges"):
        graph.add_edge("n1", "t1")


def test_condition_edges_need_a_branch():
    """Test the true/false ports of condition nodes."""
    graph = make_graph()
    graph.add_node("condition_if", node_id="c1")
    graph.add_node("action_email", node_id="yes")
    graph.add_node("action_slack", node_id="no")

    with pytest.raises(InvalidEdgeError, match="must use a branch"):
        graph.add_edge("c1", "yes")

    graph.add_edge("c1", "yes", branch="true")
    graph.add_edge("c1", "no", branch="false")
    assert sorted(e.branch for e in graph.edges_from("c1")) == ["false", "true"]


def test_branch_on_plain_node_raises():
    """Test that only condition nodes have named branches."""
    graph = make_graph()
    graph.add_node("action_webhook", node_id="n1")
    graph.add_node("action_email", node_id="n2")

    with pytest.raises(InvalidEdgeError, match="has no branch"):
        graph.add_edge("n1", "n2", branch="true")


def test_duplicate_edge_raises():
    """Test that the same connection cannot be made twice."""
    graph = make_graph()
    chain(graph, "action_webhook", "action_email")

    with pytest.raises(DuplicateKeyError, match="n1->n2"):
        graph.add_edge("n1", "n2")


def test_remove_node_cascades_to_edges():
    """Test that removing a node drops every edge touching it."""
    graph = make_graph()
    chain(graph, "action_webhook", "action_email", "action_slack")

    graph.remove_node("n2")

    assert "n2" not in graph
    assert graph.edges == []
    with pytest.raises(UnknownNodeError):
        graph.remove_node("n2")


def test_remove_edge():
    """Test removing an edge by id."""
    graph = make_graph()
    chain(graph, "action_webhook", "action_email")
    edge = graph.edges[0]

    assert graph.remove_edge(edge.id) is edge
    assert graph.edges == []
    with pytest.raises(UnknownEdgeError):
        graph.remove_edge(edge.id)


def test_set_node_config_and_clear():
    """Test setting and clearing a config value."""
    graph = make_graph()
    graph.add_node("action_webhook", node_id="n1")

    graph.set_node_config("n1", "url", "https://example.com")
    assert graph.node("n1").config == {"url": "https://example.com"}

    graph.set_node_config("n1", "url", "")
    assert graph.node("n1").config == {}


def test_set_node_config_accepts_unknown_key():
    """Test that a key outside the schema is stored (and reported by validation)."""
    graph = make_graph()
    graph.add_node("action_webhook", node_id="n1")

    graph.set_node_config("n1", "legacy", 1)

    assert graph.node("n1").config["legacy"] == 1


def test_custom_params_are_normalized_and_visible():
    """Test custom inputs and outputs declared on a node."""
    graph = make_graph()
    node = graph.add_node("script_clear_cache", node_id="s1")

    graph.set_custom_inputs("s1", [{"name": "Region Name", "type": "string", "mandatory": True}])
    graph.set_custom_outputs("s1", [NodeParam("freed_bytes", ParamType.NUMBER)])

    inputs = graph.input_params(node)
    assert list(inputs) == ["cache_type", "cache_key_pattern", "region_name"]
    assert inputs["region_name"].mandatory is True
    assert graph.output_params(node)["freed_bytes"].type is ParamType.NUMBER


def test_custom_params_reject_duplicates():
    """Test that custom parameter names are unique after normalization."""
    graph = make_graph()
    graph.add_node("script_clear_cache", node_id="s1")

    with pytest.raises(DuplicateKeyError, match="Duplicate parameter id: zone"):
        graph.set_custom_inputs("s1", [{"name": "zone"}, {"name": " Zone "}])


def test_custom_params_reject_malformed_entries():
    """Test that custom parameters must be mappings with known keys and a text name."""
    graph = make_graph()
    graph.add_node("script_clear_cache", node_id="s1")

    with pytest.raises(SchemaError, match="Unknown parameter keys: paramName, paramType"):
        graph.set_custom_inputs("s1", [{"paramName": "x", "paramType": "string"}])
    with pytest.raises(SchemaError, match="must be a mapping, got str"):
        graph.set_custom_outputs("s1", ["x"])
    with pytest.raises(SchemaError, match="name must be text"):
        graph.set_custom_inputs("s1", [{"type": "number"}])
    assert graph.node("s1").custom_inputs == []


def test_set_edge_condition():
    """Test that blank conditions make the edge unconditional."""
    graph = make_graph()
    chain(graph, "action_webhook", "action_email")
    edge = graph.edges[0]

    graph.set_edge_condition(edge.id, "{{n1.statusCode}} == 200")
    assert edge.is_conditional
    assert str(edge.condition) == "{{n1.statusCode}} == 200"

    graph.set_edge_condition(edge.id, "   ")
    assert edge.condition is None


def test_set_edge_mappings_requires_required_inputs():
    """Test that saving mappings fails while a required input is unmapped."""
    graph = make_graph()
    chain(graph, "action_webhook", "action_email")
    edge = graph.edges[0]

    with pytest.raises(MappingError, match="Required input 'subject' is not mapped") as exc:
        graph.set_edge_mappings(edge.id, [ParameterMapping("statusCode", "to")])
    assert edge.mappings == []
    assert len(exc.value.problems) == 1


def test_set_edge_mappings_saves_complete_pairs():
    """Test a valid mapping save; incomplete rows are dropped."""
    graph = make_graph()
    chain(graph, "action_webhook", "action_email")
    edge = graph.edges[0]

    saved = graph.set_edge_mappings(edge.id, [
        {"sourceOutput": "statusCode", "targetInput": "to"},
        {"sourceOutput": "responseBody", "targetInput": "subject"},
        {"sourceOutput": "responseHeaders", "targetInput": ""},
    ])

    assert saved == [
        ParameterMapping("statusCode", "to"),
        ParameterMapping("responseBody", "subject"),
    ]
    assert edge.mappings == saved

    graph.clear_edge_mappings(edge.id)
    assert edge.mappings == []


def test_set_edge_mappings_rejects_unknown_keys():
    """Test that mappings must name real ports of the edge's endpoints."""
    graph = make_graph()
    chain(graph, "action_webhook", "action_delay")
    edge = graph.edges[0]

    with pytest.raises(MappingError) as exc:
        graph.set_edge_mappings(edge.id, [
            ParameterMapping("elapsed", "duration"),
            ParameterMapping("statusCode", "timeout"),
        ])
    assert "Unknown output 'elapsed' on node n1" in exc.value.problems
    assert "Unknown input 'timeout' on node n2" in exc.value.problems


def test_constructor_validates_edges():
    """Test that a graph built from parts enforces the same rules as add_edge."""
    registry = TaskRegistry()
    nodes = [WorkflowNode("a", "action_webhook"), WorkflowNode("b", "action_email")]
    edges = [WorkflowEdge("e1", "a", "b"), WorkflowEdge("e2", "b", "a")]

    with pytest.raises(CycleError):
        WorkflowGraph(registry, nodes, edges)


def test_constructor_keeps_nodes_with_unknown_definitions():
    """Test that a node whose definition disappeared is kept."""
    graph = WorkflowGraph(TaskRegistry(), [WorkflowNode("a", "custom_deleted")])

    assert graph.definition_for(graph.node("a")) is None
    assert graph.input_params(graph.node("a")) == {}
