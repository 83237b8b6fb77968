"""Sync module for indexsync.

Provides:
- ChangeQueueSynchronizer (synchronizer.py): Queues lifecycle changes and flushes them
- ChangeQueue (queue.py): Deduplicated insert/update/delete queues
- ListenerConfig (config.py): Per model / index configuration
- FlushEvent, CollectionChange (events.py): Events delivered by event sources
- SQLAlchemyEventSource (sources/orm.py): SQLAlchemy mapper and session hooks
"""
