"""Object identity and identifier lookup.

``IdentityRegistry`` gives each object seen during one accumulation cycle a
stable integer key. It holds a strong reference to every tracked object until
it is reset, so a recycled ``id()`` can never make two objects share a key.

``IdentifierResolver`` reads the configured identifier field (attribute, mapping
key or dotted path) from an object.
"""

from collections.abc import Mapping
from itertools import count
from typing import Any, Dict, Iterator, Optional, Tuple

_MISSING = object()


class IdentityRegistry:
    """Assigns stable integer keys to objects for one accumulation cycle."""

    def __init__(self):
        """Initialize an empty registry."""
        self._keys: Dict[int, int] = {}  # id(obj) -> key
        self._objects: Dict[int, Any] = {}  # key -> obj
        self._counter: Iterator[int] = count(1)

    def key_for(self, obj: Any) -> int:
        """Return the key for ``obj``, registering it on first sight."""
        key = self._keys.get(id(obj))
        if key is None:
            key = next(self._counter)
            self._keys[id(obj)] = key
            self._objects[key] = obj
        return key

    def lookup(self, key: int) -> Optional[Any]:
        """Return the object registered under ``key``, or None."""
        return self._objects.get(key)

    def __contains__(self, obj: Any) -> bool:
        return id(obj) in self._keys and self._objects[self._keys[id(obj)]] is obj

    def __len__(self) -> int:
        return len(self._objects)

    def retain(self, keys) -> None:
        """Forget every object whose key is not in ``keys``."""
        keep = set(keys)
        self._objects = {k: obj for k, obj in self._objects.items() if k in keep}
        self._keys = {id(obj): k for k, obj in self._objects.items()}

    def restore(self, objects: Mapping[int, Any]) -> None:
        """Track exactly ``objects`` (key -> object), e.g. as captured by a queue checkpoint."""
        self._objects = dict(objects)
        self._keys = {id(obj): k for k, obj in self._objects.items()}

    def reset(self) -> None:
        """Forget every tracked object.

        Keys are never reused, even across resets.
        """
        self._keys.clear()
        self._objects.clear()


class IdentifierResolver:
    """Reads an identifier value from an object.

    The field may be an attribute name, a mapping key, or a dotted path mixing
    both (``"author.id"``). Missing segments resolve to None rather than raising.
    """

    def __init__(self, field: str = "id"):
        """Initialize with the identifier field path.

        Args:
            field: Attribute name, mapping key, or dotted path

        Raises:
            ValueError: If the field path is empty or has empty segments
        """
        if not field or any(not part for part in field.split(".")):
            raise ValueError(f"Invalid identifier field: {field!r}")
        self.field = field
        self._path: Tuple[str, ...] = tuple(field.split("."))

    def resolve(self, obj: Any) -> Optional[Any]:
        """Return the identifier value, or None if any path segment is missing."""
        value = obj
        for part in self._path:
            value = self._read(value, part)
            if value is _MISSING:
                return None
        return value

    def has_identifier(self, obj: Any) -> bool:
        """Check whether the object carries a non-empty identifier."""
        return bool(self.resolve(obj))

    @staticmethod
    def _read(value: Any, name: str) -> Any:
        if value is None:
            return _MISSING
        if isinstance(value, Mapping):
            return value.get(name, _MISSING)
        return getattr(value, name, _MISSING)
