"""
Reference guard: refuse to delete a record while other records point at it.

There is no cascade and no re-parenting. A blocked delete hands back the
dependents so a person can deal with them first. The check and the removal
are separate store calls, so a dependent created in between is not seen.
"""

import enum
import logging
from dataclasses import dataclass, field

from entity_store import EntityStore
from fan_out import fan_out

logger = logging.getLogger(__name__)


class DeleteState(enum.Enum):
    REMOVED = "removed"
    BLOCKED = "blocked"
    ABSENT = "absent"


@dataclass
class GuardReport:
    entity: dict | None
    dependents: list = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return bool(self.dependents)


@dataclass
class DeleteOutcome:
    state: DeleteState
    entity: dict | None = None
    dependents: list = field(default_factory=list)


@dataclass(frozen=True)
class Dependency:
    """
    "Records in store whose field equals the id block the delete."
    """
    store: EntityStore
    field: str
    fields: tuple | None = None


def inspect(store: EntityStore, record_id, dependency: Dependency) -> GuardReport:
    """
    Fetch the record and its dependents concurrently.
    """
    results = fan_out({
        "entity": lambda: store.find_by_id(record_id),
        "dependents": lambda: dependency.store.find(
            {dependency.field: record_id}, fields=dependency.fields
        ),
    })
    return GuardReport(results["entity"], results["dependents"])


def guarded_delete(store: EntityStore, record_id, dependency: Dependency) -> DeleteOutcome:
    """
    Remove the record unless something still references it.

    A record that is already gone is reported as ABSENT, not as an error.
    """
    report = inspect(store, record_id, dependency)

    if report.entity is None:
        return DeleteOutcome(DeleteState.ABSENT)

    if report.blocked:
        logger.info(
            "delete of %s %s blocked by %d %s record(s)",
            store.name, record_id, len(report.dependents), dependency.store.name,
        )
        return DeleteOutcome(DeleteState.BLOCKED, report.entity, report.dependents)

    if not store.remove_by_id(record_id):
        return DeleteOutcome(DeleteState.ABSENT)
    return DeleteOutcome(DeleteState.REMOVED, report.entity)


def unguarded_delete(store: EntityStore, record_id) -> DeleteOutcome:
    """
    Delete a leaf record that nothing can reference.
    """
    if store.remove_by_id(record_id):
        return DeleteOutcome(DeleteState.REMOVED)
    return DeleteOutcome(DeleteState.ABSENT)
