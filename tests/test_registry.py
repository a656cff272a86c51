"""Tests for the task definition registry."""

import pytest
from flowgraph.exceptions import (
    DuplicateKeyError,
    MissingDefinitionError,
    RegistryError,
    SchemaError,
    UnknownMachineError,
)
from flowgraph.tasks.builtins import BUILTIN_TASK_DEFINITIONS, CATEGORY_CUSTOM
from flowgraph.tasks.registry import TaskRegistry
from flowgraph.tasks.types import Machine, TaskDefinition, TaskKind, TaskSchema


def custom_definition(id="custom_ping", name="Ping", **schema):
    return TaskDefinition(
        id=id,
        name=name,
        kind=TaskKind.ACTION,
        category=CATEGORY_CUSTOM,
        schema=TaskSchema.build(**schema),
    )


def test_builtins_are_available():
    """Test that a fresh registry holds the whole built-in catalog."""
    registry = TaskRegistry()

    assert len(registry) == len(BUILTIN_TASK_DEFINITIONS)
    assert "action_webhook" in registry
    assert registry.get("action_email").schema.required == ("to", "subject")
    assert registry.is_builtin("trigger_alarm")


def test_builtin_ids_are_unique():
    """Test that the built-in catalog has no duplicate ids."""
    ids = [d.id for d in BUILTIN_TASK_DEFINITIONS]
    assert len(ids) == len(set(ids))


def test_register_and_lookup_custom():
    """Test registering a custom definition."""
    registry = TaskRegistry()
    registry.register(custom_definition())

    assert registry.is_custom("custom_ping")
    assert registry.lookup("custom_ping").name == "Ping"
    assert registry.list()[-1].id == "custom_ping"


def test_register_duplicate_custom_raises():
    """Test that re-registering a custom id is rejected."""
    registry = TaskRegistry()
    registry.register(custom_definition())

    with pytest.raises(DuplicateKeyError, match="custom_ping"):
        registry.register(custom_definition(name="Other"))


def test_custom_definition_overrides_builtin_in_place():
    """Test that a custom definition with a built-in id shadows it without reordering."""
    registry = TaskRegistry()
    before = [d.id for d in registry.list()]

    registry.register(custom_definition(id="action_delay", name="Long Delay"))

    assert registry.get("action_delay").name == "Long Delay"
    assert [d.id for d in registry.list()] == before
    assert len(registry) == len(before)


def test_get_unknown_raises():
    """Test that get raises for an unknown id while lookup returns None."""
    registry = TaskRegistry()

    assert registry.lookup("nope") is None
    with pytest.raises(MissingDefinitionError, match="Unknown task definition: nope"):
        registry.get("nope")


def test_update_replaces_custom_definition():
    """Test updating an existing custom definition."""
    registry = TaskRegistry()
    registry.register(custom_definition())

    registry.update(custom_definition(name="Ping v2"))

    assert registry.get("custom_ping").name == "Ping v2"


def test_update_unknown_raises():
    """Test that update does not create definitions."""
    registry = TaskRegistry()

    with pytest.raises(MissingDefinitionError):
        registry.update(custom_definition())


def test_unregister_custom_restores_builtin():
    """Test that removing an override makes the built-in visible again."""
    registry = TaskRegistry()
    registry.register(custom_definition(id="action_delay", name="Long Delay"))

    registry.unregister("action_delay")

    assert registry.get("action_delay").name == "Delay"


def test_unregister_builtin_raises():
    """Test that built-ins cannot be removed."""
    registry = TaskRegistry()

    with pytest.raises(RegistryError, match="cannot be removed"):
        registry.unregister("action_webhook")


def test_unregister_unknown_raises():
    """Test that removing an unknown id raises."""
    with pytest.raises(MissingDefinitionError):
        TaskRegistry().unregister("custom_missing")


def test_list_by_category_and_categories():
    """Test filtering by category."""
    registry = TaskRegistry()
    registry.register(custom_definition())

    triggers = registry.list(category="Triggers")
    assert {d.kind for d in triggers} == {TaskKind.TRIGGER}
    assert [d.id for d in registry.list(category=CATEGORY_CUSTOM)] == ["custom_ping"]
    assert registry.categories()[0] == "Triggers"
    assert CATEGORY_CUSTOM in registry.categories()


def test_new_custom_id_is_prefixed_and_unique():
    """Test generated custom ids."""
    first = TaskRegistry.new_custom_id()
    second = TaskRegistry.new_custom_id()

    assert first.startswith("custom_")
    assert first != second


def test_registry_without_builtins():
    """Test an empty registry."""
    registry = TaskRegistry(builtins=())

    assert len(registry) == 0
    assert registry.categories() == []


def remote_script(id="custom_restart", machine_id="machine-1", script_path="/opt/restart.sh"):
    return TaskDefinition(
        id=id,
        name="Restart",
        kind=TaskKind.REMOTE_SCRIPT,
        category=CATEGORY_CUSTOM,
        machine_id=machine_id,
        script_path=script_path,
    )


def test_machines_register_update_unregister():
    """Test the machine catalog."""
    registry = TaskRegistry()
    web = registry.register_machine(Machine.create("machine-1", "Web", "10.0.0.5"))

    assert registry.machines() == [web]
    assert registry.get_machine("machine-1").port == "22"

    registry.update_machine(Machine.create("machine-1", "Web", "10.0.0.6", port="2222"))
    assert registry.get_machine("machine-1").host == "10.0.0.6"

    assert registry.unregister_machine("machine-1").port == "2222"
    assert registry.lookup_machine("machine-1") is None


def test_duplicate_machine_raises():
    """Test that machine ids are unique."""
    registry = TaskRegistry()
    registry.register_machine(Machine.create("machine-1", "Web", "10.0.0.5"))

    with pytest.raises(DuplicateKeyError, match="Duplicate machine id: machine-1"):
        registry.register_machine(Machine.create("machine-1", "Db", "10.0.0.9"))


def test_unknown_machine_raises():
    """Test explicit lookups and edits of unknown machines."""
    registry = TaskRegistry()

    with pytest.raises(UnknownMachineError, match="Unknown machine: ghost"):
        registry.get_machine("ghost")
    with pytest.raises(UnknownMachineError):
        registry.update_machine(Machine.create("ghost", "Ghost", "x"))
    with pytest.raises(UnknownMachineError):
        registry.unregister_machine("ghost")


def test_custom_remote_script_needs_machine_and_script():
    """Test that a user-created remote script must say where and what to run."""
    registry = TaskRegistry()

    with pytest.raises(SchemaError, match="needs a machineId"):
        registry.register(remote_script(machine_id=None))
    with pytest.raises(SchemaError, match="needs a scriptPath"):
        registry.register(remote_script(script_path="  "))
    assert not registry.is_custom("custom_restart")


def test_update_remote_script_is_checked_too():
    """Test that update applies the same remote script rules."""
    registry = TaskRegistry()
    registry.register_machine(Machine.create("machine-1", "Web", "10.0.0.5"))
    registry.register(remote_script())

    with pytest.raises(SchemaError, match="needs a machineId"):
        registry.update(remote_script(machine_id=""))
    assert registry.get("custom_restart").machine_id == "machine-1"


def test_removing_machine_leaves_definitions():
    """Test that deleting a machine does not cascade to remote scripts."""
    registry = TaskRegistry()
    registry.register_machine(Machine.create("machine-1", "Web", "10.0.0.5"))
    registry.register(remote_script())

    registry.unregister_machine("machine-1")

    assert registry.is_custom("custom_restart")
    assert [d.id for d in registry.definitions_on("machine-1")] == ["custom_restart"]


def test_new_machine_id_is_prefixed():
    """Test generated machine ids."""
    assert TaskRegistry.new_machine_id().startswith("machine-")
