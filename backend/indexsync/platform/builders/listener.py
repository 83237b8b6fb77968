"""Listener builder.

Wires persister, indexability oracle, synchronizer and event source for one
model / index type. One listener is built per model that should be indexed.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from elasticsearch import Elasticsearch

from indexsync.core.logging import ContextualLogger, LoggerConfigurator
from indexsync.platform.indexable import CallbackIndexable, Indexable, IndexableCallback
from indexsync.platform.persisters._base import ObjectPersister
from indexsync.platform.persisters.elasticsearch import ElasticsearchPersister
from indexsync.platform.persisters.transformer import ModelTransformer
from indexsync.platform.sync.config import ListenerConfig
from indexsync.platform.sync.sources.orm import SQLAlchemyEventSource
from indexsync.platform.sync.synchronizer import ChangeQueueSynchronizer


@dataclass
class Listener:
    """Everything that keeps one index in step with one model."""

    config: ListenerConfig
    persister: ObjectPersister
    synchronizer: ChangeQueueSynchronizer
    source: SQLAlchemyEventSource
    logger: ContextualLogger

    def close(self) -> None:
        """Detach from SQLAlchemy and drop anything still queued."""
        self.source.unregister()
        self.synchronizer.discard()


class ListenerBuilder:
    """Builds listeners."""

    @classmethod
    def build(
        cls,
        session_target: Any,
        model: type,
        config: ListenerConfig,
        client: Optional[Elasticsearch] = None,
        fields: Optional[Sequence[str]] = None,
        indexable: Optional[Indexable] = None,
        indexable_callback: Optional[IndexableCallback] = None,
        persister: Optional[ObjectPersister] = None,
    ) -> Listener:
        """Build and register a listener.

        Args:
            session_target: Session, sessionmaker or Session class to listen on
            model: Mapped class to index
            config: Listener configuration
            client: Elasticsearch client (created from settings when omitted)
            fields: Document fields (all columns when omitted)
            indexable: Indexability oracle (built from ``indexable_callback`` when omitted)
            indexable_callback: Attribute name or callable deciding indexability
            persister: Custom persister replacing the Elasticsearch one

        Returns:
            Registered Listener
        """
        logger = cls.build_logger(model, config)

        if persister is None:
            persister = ElasticsearchPersister.create(
                model=model,
                index_name=config.index_name,
                client=client,
                transformer=ModelTransformer(identifier=config.identifier, fields=fields),
                logger=logger.with_context(component="persister"),
            )

        if indexable is None:
            callbacks: Mapping[str, IndexableCallback] = (
                {config.index_key: indexable_callback} if indexable_callback is not None else {}
            )
            indexable = CallbackIndexable(callbacks)

        synchronizer = ChangeQueueSynchronizer(
            persister=persister,
            indexable=indexable,
            config=config,
            logger=logger,
        )
        source = SQLAlchemyEventSource(synchronizer, model, logger=logger).register(
            session_target
        )

        logger.info(f"Listener for {model.__name__} ready")
        return Listener(
            config=config,
            persister=persister,
            synchronizer=synchronizer,
            source=source,
            logger=logger,
        )

    @staticmethod
    def build_logger(model: type, config: ListenerConfig) -> ContextualLogger:
        return LoggerConfigurator.configure_logger(
            "indexsync.platform.sync",
            dimensions={
                "model": model.__name__,
                "index_name": config.index_name,
                "type_name": config.type_name,
                "flush_policy": config.flush_policy.value,
                "failure_mode": config.failure_mode.value,
            },
        )
