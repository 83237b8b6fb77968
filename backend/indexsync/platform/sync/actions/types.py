"""Action dataclasses for the change queue.

An action is one pending index mutation. Insert and update actions carry the
object itself (serialized only at flush time, so the latest state wins); delete
actions carry the identifier that was read while the object still had one.
"""

from dataclasses import dataclass, field
from typing import Any, List, Union


@dataclass(frozen=True)
class BaseAction:
    """Base class for all queued actions."""

    key: int  # Identity key assigned by IdentityRegistry


@dataclass(frozen=True)
class InsertAction(BaseAction):
    """Object should be added to the index."""

    entity: Any


@dataclass(frozen=True)
class UpdateAction(BaseAction):
    """Object should replace its document in the index."""

    entity: Any


@dataclass(frozen=True)
class DeleteAction(BaseAction):
    """Document with this identifier should be removed from the index."""

    identifier: Any


PendingChange = Union[InsertAction, UpdateAction, DeleteAction]


@dataclass(frozen=True)
class ActionBatch:
    """Snapshot of the queue handed out on flush.

    Provides convenient access to actions grouped by type and utility methods
    for checking batch state.
    """

    inserts: List[InsertAction] = field(default_factory=list)
    updates: List[UpdateAction] = field(default_factory=list)
    deletes: List[DeleteAction] = field(default_factory=list)

    @property
    def has_mutations(self) -> bool:
        """Check if batch has any INSERT/UPDATE/DELETE actions."""
        return bool(self.inserts or self.updates or self.deletes)

    @property
    def mutation_count(self) -> int:
        """Get total count of mutation actions."""
        return len(self.inserts) + len(self.updates) + len(self.deletes)

    def entities_to_insert(self) -> List[Any]:
        return [action.entity for action in self.inserts]

    def entities_to_update(self) -> List[Any]:
        return [action.entity for action in self.updates]

    def identifiers_to_delete(self) -> List[Any]:
        return [action.identifier for action in self.deletes]

    def summary(self) -> str:
        """Get a summary string of the batch."""
        return (
            f"{len(self.inserts)} inserts, {len(self.updates)} updates, "
            f"{len(self.deletes)} deletes"
        )
