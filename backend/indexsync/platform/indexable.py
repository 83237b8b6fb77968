"""Indexability oracle.

Decides whether an object belongs in a given index at all. Callbacks are
registered per ``"index/type"`` key and are either callables taking the object,
or the name of an attribute or method on the object.

Usage:
    indexable = CallbackIndexable({
        "articles/article": "is_published",
        "users/user": lambda user: user.active and not user.banned,
    })
    indexable.is_object_indexable("articles", "article", article)
"""

from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from indexsync.platform.sync.exceptions import SyncConfigurationError

IndexableCallback = Union[str, Callable[[Any], Any]]


@runtime_checkable
class Indexable(Protocol):
    """Protocol for indexability oracles."""

    def is_object_indexable(self, index_name: str, type_name: str, obj: Any) -> bool:
        """Return True if ``obj`` should be present in ``index_name``/``type_name``."""
        ...


class AlwaysIndexable:
    """Oracle that accepts every object."""

    def is_object_indexable(self, index_name: str, type_name: str, obj: Any) -> bool:
        return True


class CallbackIndexable:
    """Oracle backed by per index/type callbacks."""

    def __init__(self, callbacks: Optional[Mapping[str, IndexableCallback]] = None):
        """Initialize with a mapping of ``"index/type"`` to callback.

        Raises:
            SyncConfigurationError: If a callback is neither a string nor callable
        """
        self._callbacks: Dict[str, IndexableCallback] = {}
        for key, callback in (callbacks or {}).items():
            self.register(key, callback)

    def register(self, key: str, callback: IndexableCallback) -> None:
        """Register or replace the callback for ``key``."""
        if not (isinstance(callback, str) and callback) and not callable(callback):
            raise SyncConfigurationError(
                f"Indexable callback for {key!r} must be an attribute name or a callable"
            )
        self._callbacks[key] = callback

    def is_object_indexable(self, index_name: str, type_name: str, obj: Any) -> bool:
        callback = self._callbacks.get(f"{index_name}/{type_name}")
        if callback is None:
            return True

        if isinstance(callback, str):
            if not hasattr(obj, callback):
                raise SyncConfigurationError(
                    f"Indexable callback {callback!r} for {index_name}/{type_name} "
                    f"does not exist on {type(obj).__name__}"
                )
            value = getattr(obj, callback)
            return bool(value() if callable(value) else value)

        return bool(callback(obj))
