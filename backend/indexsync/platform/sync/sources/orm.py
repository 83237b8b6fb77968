"""SQLAlchemy event source.

Bridges SQLAlchemy mapper and session events to a ChangeQueueSynchronizer.

Mapper events (on the model class, subclasses included):
    after_insert  -> notify_created   (identifier is assigned by then)
    after_update  -> notify_updated
    before_delete -> notify_deleted   (identifier is still readable)

Session events, by flush policy:
    pre_commit:  after_flush_postexec     -> flush
                 after_rollback           -> discard
    post_commit: after_flush              -> record collection changes
                 after_commit             -> post_flush(FlushEvent)
                 after_rollback           -> discard
                 after_transaction_create -> checkpoint (savepoints)
                 after_transaction_end    -> forget checkpoint (savepoints)

SQLAlchemy fires after_commit and after_rollback for SAVEPOINTs
(``begin_nested()``) as well. Releasing a savepoint changes nothing: its changes
now belong to the enclosing transaction and are sent when the outermost
transaction commits. Rolling a savepoint back drops only what was queued inside
it. Under the pre-commit policy every successful database flush has already been
sent, so whatever is still queued at any rollback is discarded.

``after_commit`` runs before the session expires its objects, so loaded
attributes are still readable there. Columns left unloaded by the flush (server
side defaults without ``eager_defaults``) cannot be loaded at that point; give
such models an explicit field list on the transformer.
"""

from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, SessionTransaction, object_session

from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.sync.config import FlushPolicy
from indexsync.platform.sync.events import CollectionChange, CollectionChangeKind, FlushEvent
from indexsync.platform.sync.exceptions import SyncConfigurationError
from indexsync.platform.sync.queue import QueueCheckpoint
from indexsync.platform.sync.synchronizer import ChangeQueueSynchronizer


class SQLAlchemyEventSource:
    """Feeds lifecycle events of one model into a synchronizer."""

    def __init__(
        self,
        synchronizer: ChangeQueueSynchronizer,
        model: type,
        policy: Optional[FlushPolicy] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Initialize the event source.

        Args:
            synchronizer: Synchronizer receiving the notifications
            model: Mapped class whose instances are tracked
            policy: Flush policy (defaults to the synchronizer's config)
            logger: Logger instance
        """
        self.synchronizer = synchronizer
        self.model = model
        self.policy = policy or synchronizer.config.flush_policy
        self.logger = logger or default_logger
        self._session_target: Any = None
        self._listeners: List[Tuple[Any, str, Callable]] = []
        self._collection_changes: List[CollectionChange] = []
        self._savepoints: Dict[SessionTransaction, Tuple[QueueCheckpoint, int]] = {}

    @property
    def is_registered(self) -> bool:
        return bool(self._listeners)

    def register(self, session_target: Any) -> "SQLAlchemyEventSource":
        """Attach listeners to the model and to ``session_target``.

        Args:
            session_target: A Session instance, sessionmaker, scoped_session or
                Session class. A Session instance restricts tracking to objects
                of that session.

        Raises:
            SyncConfigurationError: If the source is already registered
        """
        if self.is_registered:
            raise SyncConfigurationError("Event source is already registered")

        self._session_target = session_target

        self._listen(self.model, "after_insert", self._after_insert, propagate=True)
        self._listen(self.model, "after_update", self._after_update, propagate=True)
        self._listen(self.model, "before_delete", self._before_delete, propagate=True)

        if self.policy == FlushPolicy.PRE_COMMIT:
            self._listen(session_target, "after_flush_postexec", self._after_flush_postexec)
        else:
            self._listen(session_target, "after_flush", self._after_flush)
            self._listen(session_target, "after_commit", self._after_commit)
            self._listen(
                session_target, "after_transaction_create", self._after_transaction_create
            )
            self._listen(session_target, "after_transaction_end", self._after_transaction_end)
        self._listen(session_target, "after_rollback", self._after_rollback)

        self.logger.debug(
            f"[EventSource] Registered for {self.model.__name__} ({self.policy.value})"
        )
        return self

    def unregister(self) -> None:
        """Remove every listener attached by ``register``."""
        for target, identifier, fn in self._listeners:
            event.remove(target, identifier, fn)
        self._listeners.clear()
        self._collection_changes.clear()
        self._savepoints.clear()
        self._session_target = None

    # -------------------------------------------------------------------------
    # Mapper events
    # -------------------------------------------------------------------------

    def _after_insert(self, mapper, connection, target) -> None:
        if self._accepts(target):
            self.synchronizer.notify_created(target)

    def _after_update(self, mapper, connection, target) -> None:
        if self._accepts(target):
            self.synchronizer.notify_updated(target)

    def _before_delete(self, mapper, connection, target) -> None:
        if self._accepts(target):
            self.synchronizer.notify_deleted(target)

    # -------------------------------------------------------------------------
    # Session events
    # -------------------------------------------------------------------------

    def _after_flush_postexec(self, session: Session, flush_context) -> None:
        self.synchronizer.flush()

    def _after_flush(self, session: Session, flush_context) -> None:
        # new/dirty/deleted still describe the flush that just ran
        self._collection_changes.extend(self.collect_collection_changes(session))

    def _after_commit(self, session: Session) -> None:
        if session.in_nested_transaction():
            # Released savepoint; the enclosing transaction may still roll back
            return

        flush_event = FlushEvent(collection_changes=list(self._collection_changes))
        self._collection_changes.clear()
        self.synchronizer.post_flush(flush_event)

    def _after_rollback(self, session: Session) -> None:
        savepoint = session.get_nested_transaction()
        if savepoint is not None and self.policy == FlushPolicy.POST_COMMIT:
            saved = self._savepoints.get(savepoint)
            if saved is not None:
                checkpoint, change_count = saved
                del self._collection_changes[change_count:]
                self.synchronizer.rollback_to(checkpoint)
                return
            self.logger.warning(
                "[EventSource] Savepoint opened before registration rolled back, "
                "discarding all pending changes"
            )

        self._collection_changes.clear()
        self.synchronizer.discard()

    def _after_transaction_create(self, session: Session, transaction: SessionTransaction) -> None:
        if transaction.nested:
            self._savepoints[transaction] = (
                self.synchronizer.checkpoint(),
                len(self._collection_changes),
            )

    def _after_transaction_end(self, session: Session, transaction: SessionTransaction) -> None:
        self._savepoints.pop(transaction, None)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def collect_collection_changes(session: Session) -> List[CollectionChange]:
        """Collection-valued relationships changed on dirty, non-deleted objects."""
        deleted = set(map(id, session.deleted))
        changes = []
        for obj in session.dirty:
            if id(obj) in deleted:
                continue
            state = inspect(obj)
            for relationship in state.mapper.relationships:
                if not relationship.uselist:
                    continue
                history = state.attrs[relationship.key].history
                if not history.has_changes():
                    continue
                kind = (
                    CollectionChangeKind.DELETED
                    if history.deleted and not history.added and not history.unchanged
                    else CollectionChangeKind.UPDATED
                )
                changes.append(CollectionChange(owner=obj, key=relationship.key, kind=kind))
        return changes

    def _accepts(self, target: Any) -> bool:
        if isinstance(self._session_target, Session):
            return object_session(target) is self._session_target
        return True

    def _listen(self, target: Any, identifier: str, fn: Callable, **kwargs) -> None:
        event.listen(target, identifier, fn, **kwargs)
        self._listeners.append((target, identifier, fn))
