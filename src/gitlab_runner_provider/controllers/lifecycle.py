"""
Lifecycle controller for declared GitLab resources.

This module drives the create, read, update and delete operations of the
provider resources from a list of declarations and a local state file:
refresh what is recorded, compute a plan, then execute it one resource at
a time, persisting state after every step.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

import structlog
from prometheus_client import Counter, Histogram
from pydantic import BaseModel, Field, SecretStr

from ..models.provider import ResourceDeclaration
from ..provider import GitLabProvider
from ..resources.base import PartialCreateError, ReadOutcome, Resource, ResourceError
from ..state import StateStore

RESOURCE_OPERATIONS = Counter(
    "gitlab_provider_operations_total",
    "Total resource lifecycle operations",
    ["resource_type", "operation", "result"]
)
OPERATION_DURATION = Histogram(
    "gitlab_provider_operation_duration_seconds",
    "Resource lifecycle operation duration in seconds",
    ["resource_type", "operation"]
)


class Action(str, Enum):
    """Planned action for a single resource."""

    CREATE = "create"
    UPDATE = "update"
    REPLACE = "replace"
    DELETE = "delete"
    NOOP = "noop"


class PlannedChange(BaseModel):
    """One entry of a plan."""

    address: str
    type: str
    action: Action
    changed: List[str] = Field(default_factory=list)


def _comparable(value: Any) -> Any:
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset)):
        return set(value)
    return value


class LifecycleController:
    """
    Plans and applies declared resources against GitLab.

    The controller owns the sequencing; resources only translate single
    operations into API calls.
    """

    def __init__(self,
                 provider: GitLabProvider,
                 state: StateStore,
                 logger: Any = None) -> None:
        self.provider = provider
        self.state = state
        self.logger = (logger or structlog.get_logger()).bind(component="lifecycle_controller")

    def refresh(self) -> Dict[str, ReadOutcome]:
        """
        Read every recorded resource and drop the ones that are gone.

        Returns:
            Read outcome per address
        """
        outcomes: Dict[str, ReadOutcome] = {}

        for address in self.state.addresses():
            resource, current = self._recorded(address)
            result = self._run(resource, "read", resource.read, current)
            outcomes[address] = result.outcome

            if result.is_cleared:
                self.logger.warning("Resource no longer exists, removing from state", address=address)
                self.state.remove(address)
            else:
                tainted = self.state.get(address).tainted
                self.state.put(address, resource.type_name, result.state, tainted=tainted)

        self.state.save()
        return outcomes

    def plan(self, declarations: Sequence[ResourceDeclaration]) -> List[PlannedChange]:
        """
        Compare declarations with recorded state.

        Declared attributes that differ from state cause an update, or a
        replacement when the attribute forces one. Undeclared optional
        attributes are left to the server. Tainted resources are replaced.
        Recorded resources that are no longer declared are deleted.
        """
        changes: List[PlannedChange] = []
        declared = {d.address for d in declarations}

        for address in self._deletion_order():
            if address not in declared:
                instance = self.state.get(address)
                changes.append(PlannedChange(address=address, type=instance.type, action=Action.DELETE))

        for declaration in declarations:
            resource = self.provider.resource(declaration.type)
            config = resource.parse_config(declaration.config)

            if declaration.address not in self.state:
                changes.append(PlannedChange(
                    address=declaration.address, type=declaration.type, action=Action.CREATE
                ))
                continue

            instance = self.state.get(declaration.address)
            if instance.type != declaration.type:
                raise ResourceError(
                    f"{declaration.address} is recorded as {instance.type}, declared as {declaration.type}"
                )

            _, current = self._recorded(declaration.address)
            changed, force_new = self._diff(resource, config, current)

            if force_new or instance.tainted:
                action = Action.REPLACE
            elif changed:
                action = Action.UPDATE
            else:
                action = Action.NOOP

            changes.append(PlannedChange(
                address=declaration.address, type=declaration.type, action=action, changed=changed
            ))

        return changes

    def apply(self,
              declarations: Sequence[ResourceDeclaration],
              approved: Optional[Sequence[PlannedChange]] = None) -> List[PlannedChange]:
        """
        Refresh, plan and execute. State is saved after every change.

        Args:
            declarations: Declared resources
            approved: Plan the caller confirmed; nothing is executed if the
                fresh plan differs from it

        Raises:
            ResourceError: If the fresh plan differs from ``approved``

        A resource that is created but not finished is recorded as tainted
        before the error that interrupted it is re-raised.
        """
        self.refresh()
        changes = self.plan(declarations)
        if approved is not None and changes != list(approved):
            raise ResourceError("the plan changed since it was approved, review it again")

        by_address = {d.address: d for d in declarations}

        for change in changes:
            if change.action == Action.NOOP:
                continue

            self.logger.info("Applying change", address=change.address, action=change.action.value)

            if change.action in (Action.DELETE, Action.REPLACE):
                self._delete(change.address)

            if change.action in (Action.CREATE, Action.REPLACE, Action.UPDATE):
                declaration = by_address[change.address]
                resource = self.provider.resource(declaration.type)
                config = resource.parse_config(declaration.config)

                if change.action == Action.UPDATE:
                    _, current = self._recorded(change.address)
                    new_state = self._run(resource, "update", resource.update, current, config)
                else:
                    try:
                        new_state = self._run(resource, "create", resource.create, config)
                    except PartialCreateError as e:
                        self.logger.warning("Recording partially created resource as tainted",
                                            address=change.address)
                        self.state.put(change.address, resource.type_name, e.state, tainted=True)
                        self.state.save()
                        raise e.cause from None

                self.state.put(change.address, resource.type_name, new_state)
                self.state.save()

        return changes

    def destroy(self) -> List[PlannedChange]:
        """Delete every recorded resource, associations before runners."""
        changes = []
        for address in self._deletion_order():
            instance = self.state.get(address)
            self._delete(address)
            changes.append(PlannedChange(address=address, type=instance.type, action=Action.DELETE))
        return changes

    def import_resource(self, type_name: str, name: str, resource_id: str) -> BaseModel:
        """
        Adopt an existing GitLab object into state.

        Raises:
            ResourceError: If the address is already recorded or the object does not exist
        """
        declaration = ResourceDeclaration(type=type_name, name=name)
        if declaration.address in self.state:
            raise ResourceError(f"{declaration.address} is already managed")

        resource = self.provider.resource(type_name)
        skeleton = resource.import_state(resource_id)
        result = self._run(resource, "read", resource.read, skeleton)
        if result.is_cleared:
            raise ResourceError(f"cannot import non-existent {type_name} with ID {resource_id}")

        self.state.put(declaration.address, type_name, result.state)
        self.state.save()
        self.logger.info("Resource imported", address=declaration.address)
        return result.state

    def _deletion_order(self) -> List[str]:
        # resources that depend on others come later in the provider registry
        ranking = {name: index for index, name in enumerate(self.provider.resources)}
        return sorted(
            self.state.addresses(),
            key=lambda address: ranking.get(self.state.get(address).type, 0),
            reverse=True,
        )

    def _delete(self, address: str) -> None:
        resource, current = self._recorded(address)
        self._run(resource, "delete", resource.delete, current)
        self.state.remove(address)
        self.state.save()

    def _recorded(self, address: str) -> Tuple[Resource, BaseModel]:
        instance = self.state.get(address)
        if instance is None:
            raise ResourceError(f"{address} is not recorded in state")
        resource = self.provider.resource(instance.type)
        return resource, resource.load_state({"id": instance.id, **instance.attributes})

    @staticmethod
    def _diff(resource: Resource, config: BaseModel, current: BaseModel) -> Tuple[List[str], bool]:
        changed: List[str] = []
        force_new = False

        for attribute in resource.schema.configurable:
            declared = _comparable(getattr(config, attribute.name, None))
            if declared is None:
                continue

            recorded = _comparable(getattr(current, attribute.name, None))
            if recorded is None and attribute.sensitive:
                # write-only values are unknown after an import
                continue

            if declared != recorded:
                changed.append(attribute.name)
                force_new = force_new or attribute.force_new

        return changed, force_new

    def _run(self, resource: Resource, operation: str, func: Any, *args: Any) -> Any:
        """Run one lifecycle operation with metrics."""
        start = time.monotonic()
        try:
            result = func(*args)
        except Exception:
            RESOURCE_OPERATIONS.labels(resource.type_name, operation, "error").inc()
            raise
        finally:
            OPERATION_DURATION.labels(resource.type_name, operation).observe(time.monotonic() - start)

        RESOURCE_OPERATIONS.labels(resource.type_name, operation, "success").inc()
        return result
