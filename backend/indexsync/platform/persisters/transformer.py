"""Object to Elasticsearch document transformation."""

from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import inspect as sa_inspect

from indexsync.platform.sync.identity import IdentifierResolver


class ModelTransformer:
    """Turns mapped objects into ``(document_id, source)`` pairs.

    With an explicit ``fields`` list only those fields are copied (dotted paths
    allowed, stored under the full path name). Without one, every SQLAlchemy
    column attribute of the object is used; plain objects fall back to their
    public instance attributes.
    """

    def __init__(self, identifier: str = "id", fields: Optional[Sequence[str]] = None):
        """Initialize the transformer.

        Args:
            identifier: Identifier field used as the document ``_id``
            fields: Fields to include in the document source
        """
        self.identifier = IdentifierResolver(identifier)
        self.fields = list(fields) if fields is not None else None
        self._field_resolvers = (
            {name: IdentifierResolver(name) for name in self.fields}
            if self.fields is not None
            else {}
        )

    def transform(self, obj: Any) -> Tuple[str, Dict[str, Any]]:
        """Transform ``obj`` into its document id and source.

        Raises:
            ValueError: If the object has no identifier value
        """
        identifier = self.identifier.resolve(obj)
        if identifier is None or identifier == "":
            raise ValueError(
                f"{type(obj).__name__} has no value for identifier {self.identifier.field!r}"
            )
        return str(identifier), self.to_source(obj)

    def to_source(self, obj: Any) -> Dict[str, Any]:
        if self.fields is not None:
            return {
                name: self._serialize(resolver.resolve(obj))
                for name, resolver in self._field_resolvers.items()
            }

        state = sa_inspect(obj, raiseerr=False)
        if state is not None and getattr(state, "mapper", None) is not None:
            return {
                attr.key: self._serialize(getattr(obj, attr.key))
                for attr in state.mapper.column_attrs
            }

        return {
            key: self._serialize(value)
            for key, value in vars(obj).items()
            if not key.startswith("_")
        }

    @classmethod
    def _serialize(cls, value: Any) -> Any:
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, Decimal):
            return float(value)
        if isinstance(value, (list, tuple, set, frozenset)):
            return [cls._serialize(v) for v in value]
        if isinstance(value, dict):
            return {str(k): cls._serialize(v) for k, v in value.items()}
        return value
