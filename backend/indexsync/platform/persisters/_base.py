"""Base persister classes."""

from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger


class ObjectPersister(ABC):
    """Common base persister class. Writes batches of objects to a search index."""

    def __init__(self):
        """Initialize the base persister."""
        self._logger: Optional[ContextualLogger] = None

    @property
    def logger(self):
        """Get the logger for this persister, falling back to default if not set."""
        if self._logger is not None:
            return self._logger
        return default_logger

    def set_logger(self, logger: ContextualLogger) -> None:
        """Set a contextual logger for this persister."""
        self._logger = logger

    @abstractmethod
    def handles_object(self, obj: Any) -> bool:
        """Check whether this persister is responsible for ``obj``."""
        pass

    @abstractmethod
    def insert_many(self, objects: Sequence[Any]) -> None:
        """Add documents for ``objects`` to the index."""
        pass

    @abstractmethod
    def replace_many(self, objects: Sequence[Any]) -> None:
        """Replace the documents of ``objects`` in the index."""
        pass

    @abstractmethod
    def delete_many_by_identifiers(self, identifiers: Sequence[Any]) -> None:
        """Remove the documents with the given identifiers from the index."""
        pass

    def insert_one(self, obj: Any) -> None:
        self.insert_many([obj])

    def replace_one(self, obj: Any) -> None:
        self.replace_many([obj])

    def delete_by_identifier(self, identifier: Any) -> None:
        self.delete_many_by_identifiers([identifier])


class ModelPersister(ObjectPersister):
    """Persister responsible for instances of one model class (and its subclasses)."""

    def __init__(self, model: type):
        """Initialize for ``model``."""
        super().__init__()
        self.model = model

    def handles_object(self, obj: Any) -> bool:
        return isinstance(obj, self.model)
