"""Sync-specific exceptions for error handling."""


class SyncConfigurationError(Exception):
    """Raised when the synchronizer is wired or called incorrectly.

    This is a programming error, not a runtime condition - nothing retries it.

    Examples:
    - Indexability callback naming an attribute the object does not have
    - Unknown event handed to ``post_flush``
    - Event source registered twice

    Usage:
        raise SyncConfigurationError(f"No attribute {name!r} on {type(obj).__name__}")
    """

    pass


class UnsupportedEventError(SyncConfigurationError):
    """Raised when an event source delivers an event type the synchronizer does not know."""

    def __init__(self, event: object):
        """Keep the offending event for inspection."""
        self.event = event
        super().__init__(f"Unsupported flush event: {type(event).__name__}")


class SyncFailureError(Exception):
    """Raised when a flush cannot be completed.

    This is a non-recoverable error for the current flush - it propagates to the
    code that committed the session. Whether the failed batch stays queued is
    decided by ``ListenerConfig.failure_mode``.

    Examples:
    - Elasticsearch unreachable after retries
    - Bulk request rejected for some documents
    - Flush re-entered while already flushing

    Usage:
        raise SyncFailureError("Bulk request failed for 3 documents") from e
    """

    pass
