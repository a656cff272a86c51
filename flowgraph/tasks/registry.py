import uuid
from logging import getLogger
from typing import Dict, Iterable, List, Optional

from ..exceptions import (
    DuplicateKeyError,
    MissingDefinitionError,
    RegistryError,
    SchemaError,
    UnknownMachineError,
)
from .builtins import BUILTIN_TASK_DEFINITIONS, CATEGORY_OTHER
from .types import Machine, TaskDefinition, TaskKind

logger = getLogger(__name__)


class TaskRegistry:
    """In-memory catalog of task definitions.

    Built-ins are loaded once at construction and never change. Custom
    definitions shadow built-ins with the same id, so a user can override a
    built-in schema for their own graphs without touching the catalog.

    Machines that remote scripts run on are kept alongside the definitions.

    The custom and machine mappings are replaced wholesale on every write,
    so a reader holding the previous mapping always sees a complete state.
    """

    def __init__(self, builtins: Iterable[TaskDefinition] = BUILTIN_TASK_DEFINITIONS):
        self._builtins: Dict[str, TaskDefinition] = {}
        for definition in builtins:
            if definition.id in self._builtins:
                raise DuplicateKeyError(definition.id)
            self._builtins[definition.id] = definition
        self._custom: Dict[str, TaskDefinition] = {}
        self._machines: Dict[str, Machine] = {}

    # -- mutation ---------------------------------------------------------

    def register(self, definition: TaskDefinition) -> TaskDefinition:
        """Add a custom definition. Re-using a custom id is an error; use ``update``."""
        if definition.id in self._custom:
            raise DuplicateKeyError(definition.id)
        self._check_custom(definition)
        if definition.id in self._builtins:
            logger.info(f"Custom definition {definition.id} overrides a built-in")
        self._custom = {**self._custom, definition.id: definition}
        logger.debug(f"Registered task definition {definition.id}")
        return definition

    def update(self, definition: TaskDefinition) -> TaskDefinition:
        """Replace an existing custom definition, keeping its position."""
        if definition.id not in self._custom:
            raise MissingDefinitionError(definition.id)
        self._check_custom(definition)
        custom = dict(self._custom)
        custom[definition.id] = definition
        self._custom = custom
        logger.debug(f"Updated task definition {definition.id}")
        return definition

    def unregister(self, definition_id: str) -> TaskDefinition:
        """Delete a custom definition. Nodes that use it are left alone."""
        if definition_id not in self._custom:
            if definition_id in self._builtins:
                raise RegistryError(f"Built-in definition cannot be removed: {definition_id}")
            raise MissingDefinitionError(definition_id)
        custom = dict(self._custom)
        removed = custom.pop(definition_id)
        self._custom = custom
        logger.debug(f"Removed task definition {definition_id}")
        return removed

    @staticmethod
    def new_custom_id() -> str:
        return f"custom_{uuid.uuid4().hex[:12]}"

    def _check_custom(self, definition: TaskDefinition) -> None:
        # A user-created remote script must say where and what to run.
        if definition.kind is not TaskKind.REMOTE_SCRIPT or definition.id in self._builtins:
            return
        if not definition.machine_id:
            raise SchemaError(f"Remote script {definition.id} needs a machineId")
        if not (definition.script_path or "").strip():
            raise SchemaError(f"Remote script {definition.id} needs a scriptPath")
        if definition.machine_id not in self._machines:
            logger.warning(f"Remote script {definition.id} runs on unknown machine {definition.machine_id}")

    # -- machines ---------------------------------------------------------

    def register_machine(self, machine: Machine) -> Machine:
        if machine.id in self._machines:
            raise DuplicateKeyError(machine.id, "machine")
        self._machines = {**self._machines, machine.id: machine}
        logger.debug(f"Registered machine {machine.id} ({machine.host}:{machine.port})")
        return machine

    def update_machine(self, machine: Machine) -> Machine:
        if machine.id not in self._machines:
            raise UnknownMachineError(machine.id)
        machines = dict(self._machines)
        machines[machine.id] = machine
        self._machines = machines
        logger.debug(f"Updated machine {machine.id}")
        return machine

    def unregister_machine(self, machine_id: str) -> Machine:
        """Delete a machine. Definitions that run on it are left alone."""
        if machine_id not in self._machines:
            raise UnknownMachineError(machine_id)
        machines = dict(self._machines)
        removed = machines.pop(machine_id)
        self._machines = machines
        users = [d.id for d in self.definitions_on(machine_id)]
        if users:
            logger.warning(f"Removed machine {machine_id} is still used by {', '.join(users)}")
        return removed

    def lookup_machine(self, machine_id: str) -> Optional[Machine]:
        return self._machines.get(machine_id)

    def get_machine(self, machine_id: str) -> Machine:
        machine = self._machines.get(machine_id)
        if machine is None:
            raise UnknownMachineError(machine_id)
        return machine

    def machines(self) -> List[Machine]:
        return list(self._machines.values())

    def definitions_on(self, machine_id: str) -> List[TaskDefinition]:
        return [d for d in self.list() if d.machine_id == machine_id]

    @staticmethod
    def new_machine_id() -> str:
        return f"machine-{uuid.uuid4().hex[:12]}"

    # -- queries ----------------------------------------------------------

    def lookup(self, definition_id: str) -> Optional[TaskDefinition]:
        custom = self._custom
        if definition_id in custom:
            return custom[definition_id]
        return self._builtins.get(definition_id)

    def get(self, definition_id: str) -> TaskDefinition:
        definition = self.lookup(definition_id)
        if definition is None:
            raise MissingDefinitionError(definition_id)
        return definition

    def is_builtin(self, definition_id: str) -> bool:
        return definition_id in self._builtins

    def is_custom(self, definition_id: str) -> bool:
        return definition_id in self._custom

    def list(self, category: Optional[str] = None) -> List[TaskDefinition]:
        """All effective definitions: built-ins (overrides in place), then custom-only ones."""
        custom = self._custom
        ordered = [custom.get(d_id, d) for d_id, d in self._builtins.items()]
        ordered.extend(d for d_id, d in custom.items() if d_id not in self._builtins)
        if category is not None:
            ordered = [d for d in ordered if (d.category or CATEGORY_OTHER) == category]
        return ordered

    def custom_definitions(self) -> List[TaskDefinition]:
        return list(self._custom.values())

    def categories(self) -> List[str]:
        seen: Dict[str, None] = {}
        for definition in self.list():
            seen.setdefault(definition.category or CATEGORY_OTHER, None)
        return list(seen)

    def __contains__(self, definition_id: str) -> bool:
        return self.lookup(definition_id) is not None

    def __len__(self) -> int:
        return len(self.list())
