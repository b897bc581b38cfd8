"""
Remote Vector Store - The same store operations over HTTP.

Talks to a Tutor Store server (``tutor_store.interfaces.web_app``) with
httpx. Embeddings are generated by the server, so this backend needs no
model of its own.

Error mapping:
    connection error / timeout -> RemoteUnavailable (network=True)
    404                        -> NotFound
    body names an error class  -> that class (EmbeddingError, InvalidFormat...)
    400 / 422                  -> ValidationError
    any other non-2xx          -> StorageError with the server's message
"""

import logging
from typing import Any

import httpx

from tutor_store.config import (
    COLLECTION_NAME,
    DEFAULT_QUERY_LIMIT,
    REMOTE_STORE_URL,
    REMOTE_TIMEOUT,
)
from tutor_store.embeddings.vector_store import StoredRecord, VectorStoreBase
from tutor_store.exceptions import (
    EmbeddingError,
    InvalidFormat,
    NotFound,
    ParseError,
    RemoteUnavailable,
    StorageError,
    TutorStoreError,
    ValidationError,
)
from tutor_store.models import (
    CollectionInfo,
    Problem,
    QueryResult,
    normalize_filter,
    parse_record,
)

logger = logging.getLogger(__name__)


# Error classes the server names in its error bodies; NotFound is rebuilt
# from the record id instead.
_ERROR_CLASSES: dict[str, type[TutorStoreError]] = {
    cls.__name__: cls
    for cls in (
        ValidationError,
        InvalidFormat,
        ParseError,
        EmbeddingError,
        StorageError,
        RemoteUnavailable,
    )
}


def _error_body(response: httpx.Response) -> tuple[str | None, str]:
    """Pull the error class name (if any) and message out of an error response."""
    try:
        body = response.json()
    except ValueError:
        return None, response.text or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if "message" in body:
            return error, str(body["message"])
        if "detail" in body:
            return error, str(body["detail"])
    return None, str(body)


class RemoteVectorStore(VectorStoreBase):
    """
    HTTP client for a remote Tutor Store.

    Example:
        store = RemoteVectorStore("http://tutor-store:8000", timeout=5.0)
        store.put(problem)
        print(store.count)
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        collection_name: str | None = None,
        client: httpx.Client | None = None,
    ):
        """
        Args:
            base_url: Root URL of the server
            timeout: Seconds allowed for each request
            collection_name: Name reported locally until info() is called
            client: Pre-built httpx client (tests pass a FastAPI TestClient)
        """
        super().__init__(collection_name or COLLECTION_NAME)
        self.base_url = (base_url or REMOTE_STORE_URL).rstrip("/")
        self.timeout = REMOTE_TIMEOUT if timeout is None else timeout
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
        )

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    # -- transport ------------------------------------------------------------

    def _request(self, method: str, path: str, record_id: str | None = None, **kwargs) -> Any:
        try:
            response = self._client.request(method, path, timeout=self.timeout, **kwargs)
        except httpx.TimeoutException as e:
            raise RemoteUnavailable(
                f"Remote store timed out after {self.timeout}s: {method} {path}"
            ) from e
        except httpx.TransportError as e:
            raise RemoteUnavailable(f"Remote store unreachable at {self.base_url}: {e}") from e

        if response.is_success:
            return response.json()

        error, message = _error_body(response)
        if response.status_code == 404:
            raise NotFound(record_id or path)
        if error in _ERROR_CLASSES:
            raise _ERROR_CLASSES[error](message)
        if response.status_code in (400, 422):
            raise ValidationError(message)
        raise StorageError(f"Remote store error {response.status_code}: {message}")

    # -- operations -----------------------------------------------------------

    def put(self, record: StoredRecord) -> str:
        path = "/problems" if isinstance(record, Problem) else "/documents"
        payload = record.model_dump(mode="json", by_alias=True, exclude={"embedding"})
        body = self._request("POST", path, json=payload)
        return body["id"]

    def update(self, record: StoredRecord) -> str:
        payload = record.model_dump(mode="json", by_alias=True, exclude={"embedding"})
        body = self._request("PUT", f"/documents/{record.id}", record.id, json=payload)
        return body["id"]

    def get(self, record_id: str) -> StoredRecord:
        body = self._request("GET", f"/documents/{record_id}", record_id)
        try:
            return parse_record(body)
        except ValidationError as e:
            raise StorageError(f"Remote store returned an invalid record: {e}") from e

    def delete(self, record_id: str) -> None:
        self._request("DELETE", f"/documents/{record_id}")

    def query(
        self,
        text: str,
        filter: dict | None = None,
        limit: int | None = None,
    ) -> list[QueryResult]:
        limit = DEFAULT_QUERY_LIMIT if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        # Fail fast on unknown filter keys without a round trip
        normalize_filter(filter)

        payload = {"query": text, "filter": filter or {}, "limit": limit}
        body = self._request("POST", "/query", json=payload)
        return [QueryResult.model_validate(hit) for hit in body.get("results", [])]

    def approve(self, record_id: str, vetted_by: str) -> str:
        body = self._request(
            "POST", f"/documents/{record_id}/approve", record_id, json={"vettedBy": vetted_by}
        )
        return body["id"]

    @property
    def count(self) -> int:
        return self.info().count

    def info(self) -> CollectionInfo:
        body = self._request("GET", "/status")
        info = CollectionInfo.model_validate(body["collection"])
        logger.debug("Remote collection %s holds %d records", info.name, info.count)
        return info
