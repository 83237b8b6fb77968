"""Tests for ElasticsearchPersister."""

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
from elasticsearch import ConnectionError as ESConnectionError
from elasticsearch import Elasticsearch, helpers

from indexsync.core.config import settings
from indexsync.platform.persisters.elasticsearch import ElasticsearchPersister
from indexsync.platform.persisters.transformer import ModelTransformer
from indexsync.platform.sync.exceptions import SyncFailureError


class _Doc:
    def __init__(self, id, title="t"):
        self.id = id
        self.title = title


class _SpecialDoc(_Doc):
    pass


@pytest.fixture
def client():
    return MagicMock(spec=Elasticsearch)


@pytest.fixture
def persister(client):
    return ElasticsearchPersister(
        client,
        _Doc,
        "articles",
        transformer=ModelTransformer(fields=["title"]),
        chunk_size=50,
        refresh="wait_for",
        max_retries=2,
    )


@pytest.fixture
def bulk():
    with patch.object(helpers, "bulk", return_value=(0, [])) as mock_bulk:
        yield mock_bulk


def _sent_actions(bulk):
    args, _ = bulk.call_args
    return args[1]


# -----------------------------------------------------------------------------
# Actions
# -----------------------------------------------------------------------------


def test_insert_sends_index_actions(persister, client, bulk):
    persister.insert_many([_Doc(1, "a"), _Doc(2, "b")])

    bulk.assert_called_once()
    args, kwargs = bulk.call_args
    assert args[0] is client
    assert args[1] == [
        {"_op_type": "index", "_index": "articles", "_id": "1", "_source": {"title": "a"}},
        {"_op_type": "index", "_index": "articles", "_id": "2", "_source": {"title": "b"}},
    ]
    assert kwargs == {"chunk_size": 50, "refresh": "wait_for", "raise_on_error": False}


def test_replace_overwrites_whole_document(persister, bulk):
    persister.replace_one(_Doc(3, "c"))

    assert _sent_actions(bulk) == [
        {"_op_type": "index", "_index": "articles", "_id": "3", "_source": {"title": "c"}},
    ]


def test_delete_sends_string_ids(persister, bulk):
    persister.delete_many_by_identifiers([4, "five"])

    assert _sent_actions(bulk) == [
        {"_op_type": "delete", "_index": "articles", "_id": "4"},
        {"_op_type": "delete", "_index": "articles", "_id": "five"},
    ]


def test_empty_batch_makes_no_request(persister, bulk):
    persister.insert_many([])
    persister.delete_many_by_identifiers([])

    bulk.assert_not_called()


def test_handles_model_and_subclasses(persister):
    assert persister.handles_object(_Doc(1))
    assert persister.handles_object(_SpecialDoc(1))
    assert not persister.handles_object(SimpleNamespace(id=1))


# -----------------------------------------------------------------------------
# Failures
# -----------------------------------------------------------------------------


def test_deleting_missing_document_is_ignored(persister, bulk):
    bulk.return_value = (0, [{"delete": {"_id": "4", "status": 404}}])

    persister.delete_by_identifier(4)


def test_document_failure_raises(persister, bulk):
    bulk.return_value = (1, [{"index": {"_id": "2", "status": 400, "error": "mapper_parsing"}}])

    with pytest.raises(SyncFailureError, match="1 document"):
        persister.insert_many([_Doc(1), _Doc(2)])


def test_connection_error_is_retried(persister, bulk):
    bulk.side_effect = [ESConnectionError("boom"), (1, [])]

    persister.insert_one(_Doc(1))

    assert bulk.call_count == 2


def test_exhausted_retries_raise(persister, bulk):
    bulk.side_effect = ESConnectionError("down")

    with pytest.raises(SyncFailureError, match="down"):
        persister.insert_one(_Doc(1))

    assert bulk.call_count == 2


def test_missing_identifier_raises(persister, bulk):
    with pytest.raises(SyncFailureError, match="no value for identifier"):
        persister.insert_one(_Doc(None))

    bulk.assert_not_called()


# -----------------------------------------------------------------------------
# Factory
# -----------------------------------------------------------------------------


def test_create_uses_given_client_and_logger(client):
    logger = MagicMock()

    persister = ElasticsearchPersister.create(_Doc, "articles", client=client, logger=logger)

    assert persister.client is client
    assert persister.logger is logger
    assert persister.max_retries == settings.ELASTICSEARCH_MAX_RETRIES
    logger.info.assert_called_once()


def test_create_connects_from_settings():
    with patch("indexsync.platform.persisters.elasticsearch.Elasticsearch") as es_class:
        persister = ElasticsearchPersister.create(_Doc, "articles")

    es_class.assert_called_once()
    args, _ = es_class.call_args
    assert args == (settings.ELASTICSEARCH_URL,)
    assert persister.client is es_class.return_value
