"""indexsync: keep an Elasticsearch index in step with SQLAlchemy-managed objects."""

__version__ = "0.1.0"
