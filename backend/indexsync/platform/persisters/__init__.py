"""Persisters module.

Contains persister adapters and base classes for writing objects to a search index.

Key Classes:
- ObjectPersister: Abstract base class for all persisters
- ModelPersister: Base class for persisters bound to one model class
- ElasticsearchPersister: Bulk writes to an Elasticsearch index
- ModelTransformer: Object to document conversion
"""

from ._base import ModelPersister, ObjectPersister
from .elasticsearch import ElasticsearchPersister
from .transformer import ModelTransformer

__all__ = [
    "ElasticsearchPersister",
    "ModelPersister",
    "ModelTransformer",
    "ObjectPersister",
]
