"""Change queue: three deduplicated queues of pending index mutations.

Invariants:
    - Each object appears at most once per queue (keyed by identity key)
    - An object queued for deletion is in neither the insert nor update queue
    - Scheduling an insert or update drops a pending delete for the same object
    - An update for an object still pending insertion refreshes the insert entry;
      the document does not exist in the index yet, so a replace would be redundant
"""

from dataclasses import dataclass
from typing import Any, Dict, List

from indexsync.platform.sync.actions.types import (
    ActionBatch,
    DeleteAction,
    InsertAction,
    UpdateAction,
)
from indexsync.platform.sync.identity import IdentityRegistry


@dataclass(frozen=True)
class QueueCheckpoint:
    """Queue contents at one point in time."""

    inserts: Dict[int, InsertAction]
    updates: Dict[int, UpdateAction]
    deletes: Dict[int, DeleteAction]
    objects: Dict[int, Any]


class ChangeQueue:
    """Accumulates insert/update/delete actions keyed by object identity."""

    def __init__(self, registry: IdentityRegistry | None = None):
        """Initialize empty queues.

        Args:
            registry: Identity registry to key objects with (a fresh one by default)
        """
        self.registry = registry or IdentityRegistry()
        self._inserts: Dict[int, InsertAction] = {}
        self._updates: Dict[int, UpdateAction] = {}
        self._deletes: Dict[int, DeleteAction] = {}

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def schedule_insert(self, obj: Any) -> InsertAction:
        key = self.registry.key_for(obj)
        self._deletes.pop(key, None)
        self._updates.pop(key, None)
        action = InsertAction(key=key, entity=obj)
        self._inserts[key] = action
        return action

    def schedule_update(self, obj: Any) -> InsertAction | UpdateAction:
        key = self.registry.key_for(obj)
        self._deletes.pop(key, None)
        if key in self._inserts:
            return self._inserts[key]
        action = UpdateAction(key=key, entity=obj)
        self._updates[key] = action
        return action

    def schedule_delete(self, obj: Any, identifier: Any) -> DeleteAction:
        key = self.registry.key_for(obj)
        self._inserts.pop(key, None)
        self._updates.pop(key, None)
        action = DeleteAction(key=key, identifier=identifier)
        self._deletes[key] = action
        return action

    # -------------------------------------------------------------------------
    # Reading and clearing
    # -------------------------------------------------------------------------

    @property
    def inserts(self) -> List[InsertAction]:
        return list(self._inserts.values())

    @property
    def updates(self) -> List[UpdateAction]:
        return list(self._updates.values())

    @property
    def deletes(self) -> List[DeleteAction]:
        return list(self._deletes.values())

    def snapshot(self) -> ActionBatch:
        """Return the current contents as an ActionBatch."""
        return ActionBatch(inserts=self.inserts, updates=self.updates, deletes=self.deletes)

    def is_empty(self) -> bool:
        return not (self._inserts or self._updates or self._deletes)

    def __len__(self) -> int:
        return len(self._inserts) + len(self._updates) + len(self._deletes)

    def clear_inserts(self) -> None:
        self._inserts.clear()
        self._release()

    def clear_updates(self) -> None:
        self._updates.clear()
        self._release()

    def clear_deletes(self) -> None:
        self._deletes.clear()
        self._release()

    def clear(self) -> None:
        """Drop every queued action and release all tracked objects."""
        self._inserts.clear()
        self._updates.clear()
        self._deletes.clear()
        self.registry.reset()

    # -------------------------------------------------------------------------
    # Checkpoints
    # -------------------------------------------------------------------------

    def checkpoint(self) -> QueueCheckpoint:
        """Capture the current contents so later scheduling can be undone."""
        keys = [*self._inserts, *self._updates, *self._deletes]
        return QueueCheckpoint(
            inserts=dict(self._inserts),
            updates=dict(self._updates),
            deletes=dict(self._deletes),
            objects={key: self.registry.lookup(key) for key in keys},
        )

    def restore(self, checkpoint: QueueCheckpoint) -> int:
        """Return to ``checkpoint``, dropping everything scheduled since.

        Entries the checkpoint held are put back as they were, including ones
        that were overwritten or removed after it was taken.

        Returns:
            Number of actions dropped
        """
        before = len(self)
        self._inserts = dict(checkpoint.inserts)
        self._updates = dict(checkpoint.updates)
        self._deletes = dict(checkpoint.deletes)
        self.registry.restore(checkpoint.objects)
        return max(before - len(self), 0)

    def _release(self) -> None:
        if self.is_empty():
            self.registry.reset()
        else:
            self.registry.retain([*self._inserts, *self._updates, *self._deletes])
