"""Events delivered to the synchronizer by an event source."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List


class CollectionChangeKind(str, Enum):
    """How a collection-valued relationship changed."""

    UPDATED = "updated"  # members added or removed
    DELETED = "deleted"  # collection replaced or cleared as a whole


@dataclass(frozen=True)
class CollectionChange:
    """A change to a collection owned by ``owner``.

    Collections are not indexed on their own; the owner's document is.
    """

    owner: Any
    key: str
    kind: CollectionChangeKind = CollectionChangeKind.UPDATED


@dataclass
class FlushEvent:
    """Notification that the unit of work has been flushed and committed."""

    collection_changes: List[CollectionChange] = field(default_factory=list)

    def owners(self) -> List[Any]:
        """Distinct owners in order of first appearance."""
        seen: set[int] = set()
        owners = []
        for change in self.collection_changes:
            if change.owner is None or id(change.owner) in seen:
                continue
            seen.add(id(change.owner))
            owners.append(change.owner)
        return owners
