"""Tests for ListenerBuilder."""

from unittest.mock import MagicMock, patch

from elasticsearch import Elasticsearch, helpers

from indexsync.core.logging import ContextualLogger
from indexsync.platform.builders import ListenerBuilder
from indexsync.platform.persisters import ElasticsearchPersister
from indexsync.platform.sync.config import ListenerConfig
from indexsync.platform.sync.synchronizer import SyncState
from tests.unit.models import Article


def test_builds_elasticsearch_listener(session):
    client = MagicMock(spec=Elasticsearch)
    config = ListenerConfig(index_name="articles", type_name="article")

    listener = ListenerBuilder.build(
        session, Article, config, client=client, fields=["title"], indexable_callback="is_published"
    )
    try:
        with patch.object(helpers, "bulk", return_value=(1, [])) as bulk:
            article = Article(title="Hello", published=True)
            session.add(article)
            session.add(Article(title="Draft", published=False))
            session.commit()
    finally:
        listener.close()

    assert isinstance(listener.persister, ElasticsearchPersister)
    assert listener.persister.client is client
    bulk.assert_called_once()
    args, _ = bulk.call_args
    assert args[1] == [
        {
            "_op_type": "index",
            "_index": "articles",
            "_id": str(article.id),
            "_source": {"title": "Hello"},
        }
    ]


def test_custom_persister_and_logger_dimensions(session, mock_persister):
    config = ListenerConfig(index_name="articles", type_name="article", identifier="title")

    listener = ListenerBuilder.build(session, Article, config, persister=mock_persister)
    try:
        session.add(Article(title="Hello", published=False))
        session.commit()
    finally:
        listener.close()

    assert listener.persister is mock_persister
    mock_persister.set_logger.assert_called_once_with(listener.logger)
    mock_persister.insert_many.assert_called_once()
    assert isinstance(listener.logger, ContextualLogger)
    assert listener.logger.dimensions == {
        "model": "Article",
        "index_name": "articles",
        "type_name": "article",
        "flush_policy": "post_commit",
        "failure_mode": "retain",
    }


def test_close_detaches_and_discards(session, mock_persister):
    config = ListenerConfig(index_name="articles", type_name="article")
    listener = ListenerBuilder.build(session, Article, config, persister=mock_persister)

    session.add(Article(title="Hello", published=True))
    session.flush()
    assert listener.synchronizer.pending.has_mutations

    listener.close()
    session.commit()

    assert not listener.source.is_registered
    assert listener.synchronizer.state == SyncState.IDLE
    mock_persister.insert_many.assert_not_called()
