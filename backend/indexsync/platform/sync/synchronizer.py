"""Change-queue synchronizer.

Receives lifecycle notifications for ORM objects, keeps three deduplicated
queues (insert, update, delete) and sends them to a persister on flush.

Invariants:
    - Objects the persister does not handle are ignored by every operation
    - Non-indexable objects are never inserted; an update that makes an object
      non-indexable deletes its document instead
    - Deletions without an identifier are dropped (nothing was ever indexed)
    - Flush order is fixed: inserts, then updates, then deletes
    - A flush with nothing queued makes no persister calls

State machine (per flush cycle):
    IDLE -> ACCUMULATING (any notify_*) -> FLUSHING (flush()) -> IDLE

A failing persister call leaves the remaining queues untouched. Whether the
failing queue itself is cleared depends on ``ListenerConfig.failure_mode``.
"""

import warnings
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence

from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.indexable import Indexable
from indexsync.platform.persisters._base import ObjectPersister
from indexsync.platform.sync.actions.types import ActionBatch
from indexsync.platform.sync.config import FailureMode, ListenerConfig
from indexsync.platform.sync.events import FlushEvent
from indexsync.platform.sync.exceptions import SyncFailureError, UnsupportedEventError
from indexsync.platform.sync.identity import IdentifierResolver
from indexsync.platform.sync.queue import ChangeQueue, QueueCheckpoint


class SyncState(str, Enum):
    """Lifecycle state of a synchronizer within one flush cycle."""

    IDLE = "idle"
    ACCUMULATING = "accumulating"
    FLUSHING = "flushing"


class ChangeQueueSynchronizer:
    """Keeps an index in step with ORM lifecycle events for one model / index type."""

    def __init__(
        self,
        persister: ObjectPersister,
        indexable: Indexable,
        config: ListenerConfig,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the synchronizer.

        Args:
            persister: Persister that writes batches to the index
            indexable: Oracle deciding whether an object belongs in the index
            config: Listener configuration
            logger: Contextual logger; also attached to the persister when given
        """
        self.persister = persister
        self.indexable = indexable
        self.config = config
        self.identifier = IdentifierResolver(config.identifier)
        self.queue = ChangeQueue()
        self.logger = logger or default_logger
        self._state = SyncState.IDLE

        if logger is not None:
            self.persister.set_logger(logger)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def pending(self) -> ActionBatch:
        """Snapshot of everything currently queued."""
        return self.queue.snapshot()

    def notify_created(self, obj: Any) -> None:
        """Queue a newly persisted object for insertion if it is indexable."""
        if not self.persister.handles_object(obj) or not self._is_indexable(obj):
            return

        self.queue.schedule_insert(obj)
        self._mark_accumulating()
        self.logger.debug(f"[Synchronizer] Scheduled insert of {type(obj).__name__}")

    def notify_updated(self, obj: Any) -> None:
        """Queue an updated object for replacement, or for deletion if no longer indexable."""
        if not self.persister.handles_object(obj):
            return

        if not self._is_indexable(obj):
            self.notify_deleted(obj)
            return

        self.queue.schedule_update(obj)
        self._mark_accumulating()
        self.logger.debug(f"[Synchronizer] Scheduled update of {type(obj).__name__}")

    def notify_deleted(self, obj: Any) -> None:
        """Queue the identifier of a removed object for deletion.

        Must be called while the object still carries its identifier.
        """
        if not self.persister.handles_object(obj):
            return

        identifier = self.identifier.resolve(obj)
        if not identifier:
            self.logger.debug(
                f"[Synchronizer] Skipping delete of {type(obj).__name__}: "
                f"no value for '{self.identifier.field}'"
            )
            return

        self.queue.schedule_delete(obj, identifier)
        self._mark_accumulating()
        self.logger.debug(f"[Synchronizer] Scheduled delete of {type(obj).__name__} {identifier}")

    def notify_collection_changed(self, owner: Any) -> None:
        """Re-index the owner of a changed collection."""
        self.notify_updated(owner)

    def flush(self) -> ActionBatch:
        """Send queued changes to the persister: inserts, then updates, then deletes.

        Returns:
            The batch that was sent

        Raises:
            SyncFailureError: If a persister call fails or flush is re-entered
        """
        if self._state == SyncState.FLUSHING:
            raise SyncFailureError("[Synchronizer] Flush already in progress")

        batch = self.queue.snapshot()
        if not batch.has_mutations:
            self._state = SyncState.IDLE
            return batch

        self._state = SyncState.FLUSHING
        self.logger.debug(f"[Synchronizer] Flushing {batch.summary()}")
        try:
            if batch.inserts:
                self._flush_step(
                    "insert",
                    self.persister.insert_many,
                    batch.entities_to_insert(),
                    self.queue.clear_inserts,
                )
            if batch.updates:
                self._flush_step(
                    "replace",
                    self.persister.replace_many,
                    batch.entities_to_update(),
                    self.queue.clear_updates,
                )
            if batch.deletes:
                self._flush_step(
                    "delete",
                    self.persister.delete_many_by_identifiers,
                    batch.identifiers_to_delete(),
                    self.queue.clear_deletes,
                )
        finally:
            self._state = SyncState.IDLE if self.queue.is_empty() else SyncState.ACCUMULATING

        self.logger.info(f"[Synchronizer] Flushed {batch.summary()}")
        return batch

    def pre_flush(self) -> ActionBatch:
        """Flush before the transaction commits.

        .. deprecated::
            The index falls out of sync with the database if the commit then
            fails. Use the post-commit policy instead.
        """
        warnings.warn(
            "pre_flush indexes changes regardless of whether the commit succeeds; "
            "use the post_commit flush policy instead",
            DeprecationWarning,
            stacklevel=2,
        )
        return self.flush()

    def post_flush(self, event: FlushEvent) -> ActionBatch:
        """Schedule owners of changed collections, then flush.

        Raises:
            UnsupportedEventError: If ``event`` is not a FlushEvent
            SyncFailureError: If a persister call fails
        """
        for owner in self._collection_owners(event):
            self.notify_collection_changed(owner)
        return self.flush()

    def discard(self) -> int:
        """Drop everything queued without sending it.

        Returns:
            Number of discarded actions
        """
        dropped = len(self.queue)
        self.queue.clear()
        if self._state != SyncState.FLUSHING:
            self._state = SyncState.IDLE
        if dropped:
            self.logger.info(f"[Synchronizer] Discarded {dropped} pending action(s)")
        return dropped

    def checkpoint(self) -> QueueCheckpoint:
        """Capture the queue so changes scheduled afterwards can be rolled back."""
        return self.queue.checkpoint()

    def rollback_to(self, checkpoint: QueueCheckpoint) -> int:
        """Drop changes scheduled since ``checkpoint``, keeping the earlier ones.

        Returns:
            Number of dropped actions
        """
        dropped = self.queue.restore(checkpoint)
        if self._state != SyncState.FLUSHING:
            self._state = SyncState.IDLE if self.queue.is_empty() else SyncState.ACCUMULATING
        if dropped:
            self.logger.info(f"[Synchronizer] Rolled back {dropped} pending action(s)")
        return dropped

    # -------------------------------------------------------------------------
    # Internal Methods
    # -------------------------------------------------------------------------

    def _is_indexable(self, obj: Any) -> bool:
        return self.indexable.is_object_indexable(
            self.config.index_name, self.config.type_name, obj
        )

    def _mark_accumulating(self) -> None:
        if self._state == SyncState.IDLE:
            self._state = SyncState.ACCUMULATING

    @staticmethod
    def _collection_owners(event: Any) -> List[Any]:
        if isinstance(event, FlushEvent):
            return event.owners()
        raise UnsupportedEventError(event)

    def _flush_step(
        self,
        operation: str,
        call: Callable[[Sequence[Any]], None],
        payload: Sequence[Any],
        clear: Callable[[], None],
    ) -> None:
        """Run one persister call and clear its queue according to the failure mode.

        Only the failing step's queue is affected. Steps after it never run, so
        their queues stay pending in both modes and go out on the next flush;
        ``discard`` drops the failed step's actions, ``retain`` keeps them too.

        Raises:
            SyncFailureError: If the persister call fails
        """
        try:
            call(payload)
        except Exception as e:
            if self.config.failure_mode == FailureMode.DISCARD:
                clear()
                self.logger.warning(
                    f"[Synchronizer] Dropped {len(payload)} {operation} action(s) after failure"
                )
            else:
                self.logger.warning(
                    f"[Synchronizer] Keeping {len(payload)} {operation} action(s) for next flush"
                )
            if isinstance(e, SyncFailureError):
                raise
            self.logger.error(f"[Synchronizer] {operation} failed: {e}", exc_info=True)
            raise SyncFailureError(f"[Synchronizer] {operation} failed: {e}") from e

        clear()
