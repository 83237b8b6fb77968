"""Listener configuration.

One listener is created per model / index type. The two knobs that change
behaviour are *when* queued changes are sent (``flush_policy``) and what happens
to them if sending fails (``failure_mode``).

Usage:
    from indexsync.platform.sync.config import ListenerConfig

    # Recommended: flush after commit, keep failed batches for the next flush
    config = ListenerConfig(index_name="articles", type_name="article")

    # Legacy: flush before commit, drop batches whether or not they were written
    config = ListenerConfig.legacy(index_name="articles", type_name="article")
"""

import warnings
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FlushPolicy(str, Enum):
    """When queued changes are sent to the persister."""

    PRE_COMMIT = "pre_commit"
    POST_COMMIT = "post_commit"


class FailureMode(str, Enum):
    """What happens to a queue whose persister call raised."""

    DISCARD = "discard"  # cleared anyway, no retry
    RETAIN = "retain"  # kept for the next flush


class ListenerConfig(BaseModel):
    """Declarative listener configuration."""

    model_config = ConfigDict(frozen=True)

    identifier: str = Field("id", min_length=1, description="Identifier field on the object")
    index_name: str = Field(..., min_length=1, description="Elasticsearch index name")
    type_name: str = Field(..., min_length=1, description="Logical type name of the documents")
    flush_policy: FlushPolicy = Field(
        FlushPolicy.POST_COMMIT, description="Send changes before or after commit"
    )
    failure_mode: FailureMode = Field(
        FailureMode.RETAIN, description="Keep or drop a batch whose write failed"
    )

    @model_validator(mode="after")
    def validate_config_logic(self):
        """Warn about combinations that are supported but discouraged."""
        if self.flush_policy == FlushPolicy.PRE_COMMIT:
            warnings.warn(
                "The pre-commit flush policy is deprecated: the index goes out of sync "
                "with the database when the commit fails. Use post_commit.",
                DeprecationWarning,
                stacklevel=2,
            )
        return self

    @classmethod
    def recommended(cls, index_name: str, type_name: str, **kwargs) -> "ListenerConfig":
        """Flush after commit, keep failed batches."""
        return cls(
            index_name=index_name,
            type_name=type_name,
            flush_policy=FlushPolicy.POST_COMMIT,
            failure_mode=FailureMode.RETAIN,
            **kwargs,
        )

    @classmethod
    def legacy(cls, index_name: str, type_name: str, **kwargs) -> "ListenerConfig":
        """Flush before commit and clear queues after every call, failed or not."""
        return cls(
            index_name=index_name,
            type_name=type_name,
            flush_policy=FlushPolicy.PRE_COMMIT,
            failure_mode=FailureMode.DISCARD,
            **kwargs,
        )

    @property
    def index_key(self) -> str:
        """Key used to look up indexability callbacks."""
        return f"{self.index_name}/{self.type_name}"
