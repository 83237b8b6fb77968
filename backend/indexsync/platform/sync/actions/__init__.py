"""Actions module for the change queue.

Types (types.py):
    BaseAction, InsertAction, UpdateAction, DeleteAction, PendingChange, ActionBatch
"""

from .types import (
    ActionBatch,
    BaseAction,
    DeleteAction,
    InsertAction,
    PendingChange,
    UpdateAction,
)

__all__ = [
    "ActionBatch",
    "BaseAction",
    "DeleteAction",
    "InsertAction",
    "PendingChange",
    "UpdateAction",
]
