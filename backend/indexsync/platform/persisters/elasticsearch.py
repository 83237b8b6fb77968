"""Elasticsearch persister implementation.

Objects are transformed to documents at call time and written with the bulk
helper. Inserts and replacements are both ``index`` operations (create or
overwrite the whole document); deletions are ``delete`` operations by id.

Connection-level failures are retried with exponential backoff. Per-document
failures are not retried: they are collected and raised as one SyncFailureError.
"""

from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from elasticsearch import ConnectionError as ESConnectionError
from elasticsearch import ConnectionTimeout, Elasticsearch, helpers
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from indexsync.core.config import settings
from indexsync.core.logging import ContextualLogger
from indexsync.core.logging import logger as default_logger
from indexsync.platform.persisters._base import ModelPersister
from indexsync.platform.persisters.transformer import ModelTransformer
from indexsync.platform.sync.exceptions import SyncFailureError

if TYPE_CHECKING:
    from tenacity import RetryCallState

# Deleting a document that was never indexed is not an error
_IGNORED_DELETE_STATUSES = frozenset({404})


class ElasticsearchPersister(ModelPersister):
    """Writes instances of one model to one Elasticsearch index."""

    def __init__(
        self,
        client: Elasticsearch,
        model: type,
        index_name: str,
        transformer: Optional[ModelTransformer] = None,
        chunk_size: Optional[int] = None,
        refresh: Optional[bool | str] = None,
        max_retries: Optional[int] = None,
    ):
        """Initialize the persister.

        Args:
            client: Elasticsearch client
            model: Model class whose instances this persister handles
            index_name: Target index
            transformer: Object to document transformer (all columns by default)
            chunk_size: Actions per bulk request (settings.BULK_CHUNK_SIZE by default)
            refresh: Bulk refresh policy (settings.BULK_REFRESH by default)
            max_retries: Attempts on connection errors (settings.ELASTICSEARCH_MAX_RETRIES)
        """
        super().__init__(model)
        self.client = client
        self.index_name = index_name
        self.transformer = transformer or ModelTransformer()
        self.chunk_size = chunk_size or settings.BULK_CHUNK_SIZE
        self.refresh = settings.BULK_REFRESH if refresh is None else refresh
        self.max_retries = max_retries or settings.ELASTICSEARCH_MAX_RETRIES

    @classmethod
    def create(
        cls,
        model: type,
        index_name: str,
        client: Optional[Elasticsearch] = None,
        transformer: Optional[ModelTransformer] = None,
        logger: Optional[ContextualLogger] = None,
        **kwargs,
    ) -> "ElasticsearchPersister":
        """Create a persister, connecting a client from settings if none is given.

        Args:
            model: Model class whose instances this persister handles
            index_name: Target index
            client: Existing Elasticsearch client
            transformer: Object to document transformer
            logger: Logger instance
            **kwargs: Passed through to the constructor

        Returns:
            Configured ElasticsearchPersister instance
        """
        if client is None:
            client = Elasticsearch(
                settings.ELASTICSEARCH_URL,
                api_key=settings.ELASTICSEARCH_API_KEY,
                request_timeout=settings.ELASTICSEARCH_TIMEOUT,
            )

        instance = cls(client, model, index_name, transformer=transformer, **kwargs)
        instance.set_logger(logger or default_logger)
        instance.logger.info(
            f"[ElasticsearchPersister] Ready for {model.__name__} -> index '{index_name}'"
        )
        return instance

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def insert_many(self, objects: Sequence[Any]) -> None:
        self._bulk("insert", self._index_actions(objects))

    def replace_many(self, objects: Sequence[Any]) -> None:
        self._bulk("replace", self._index_actions(objects))

    def delete_many_by_identifiers(self, identifiers: Sequence[Any]) -> None:
        actions = [
            {"_op_type": "delete", "_index": self.index_name, "_id": str(identifier)}
            for identifier in identifiers
        ]
        self._bulk("delete", actions)

    # -------------------------------------------------------------------------
    # Internal Methods
    # -------------------------------------------------------------------------

    def _index_actions(self, objects: Iterable[Any]) -> List[Dict[str, Any]]:
        actions = []
        for obj in objects:
            try:
                doc_id, source = self.transformer.transform(obj)
            except ValueError as e:
                raise SyncFailureError(f"[ElasticsearchPersister] Cannot index object: {e}") from e
            actions.append(
                {"_op_type": "index", "_index": self.index_name, "_id": doc_id, "_source": source}
            )
        return actions

    def _bulk(self, operation: str, actions: List[Dict[str, Any]]) -> None:
        """Send ``actions`` through the bulk helper.

        Raises:
            SyncFailureError: If the cluster stays unreachable or any document fails
        """
        if not actions:
            return

        self.logger.debug(
            f"[ElasticsearchPersister] Sending {len(actions)} {operation} action(s) "
            f"to '{self.index_name}'"
        )

        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=8),
            retry=retry_if_exception_type((ESConnectionError, ConnectionTimeout)),
            before_sleep=self._log_retry,
            reraise=True,
        )
        try:
            success, errors = retrying(
                helpers.bulk,
                self.client,
                actions,
                chunk_size=self.chunk_size,
                refresh=self.refresh,
                raise_on_error=False,
            )
        except (ESConnectionError, ConnectionTimeout) as e:
            self.logger.error(
                f"[ElasticsearchPersister] {operation} failed, cluster unreachable: {e}"
            )
            raise SyncFailureError(
                f"[ElasticsearchPersister] {operation} of {len(actions)} document(s) failed: {e}"
            ) from e

        failures = [item for item in errors if not self._is_ignorable(item)]
        if failures:
            self.logger.error(
                f"[ElasticsearchPersister] {len(failures)}/{len(actions)} "
                f"{operation} action(s) failed"
            )
            for failure in failures[:5]:
                self.logger.error(f"  Failed: {failure}")
            raise SyncFailureError(
                f"[ElasticsearchPersister] {operation} failed for {len(failures)} document(s); "
                f"first error: {failures[0]}"
            )

        self.logger.info(
            f"[ElasticsearchPersister] {operation} complete: {success} succeeded, "
            f"{len(errors)} ignored"
        )

    @staticmethod
    def _is_ignorable(item: Dict[str, Any]) -> bool:
        result = item.get("delete")
        return result is not None and result.get("status") in _IGNORED_DELETE_STATUSES

    def _log_retry(self, retry_state: "RetryCallState") -> None:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        self.logger.warning(
            f"[ElasticsearchPersister] Bulk attempt {retry_state.attempt_number} failed "
            f"({exception}), retrying"
        )
