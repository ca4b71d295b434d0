from __future__ import annotations

from typing import Any, Optional, Sequence


class DropmapError(Exception):
    """Base class for errors raised by dropmap."""


class ConfigError(DropmapError):
    """Required configuration (the API token) is missing or unusable."""


class HTTPError(DropmapError):
    """An HTTP response the client classified as an error.

    Attributes:
        status: HTTP status code of the response
        url: Requested URL
        body: Response body text, truncated, for diagnostics
    """

    def __init__(self, message: str, *, status: int, url: str = "", body: str = ""):
        super().__init__(message)
        self.status = status
        self.url = url
        self.body = body


class AuthError(HTTPError):
    """401 from the API. Terminal for the whole run."""


class RateLimitError(HTTPError):
    """429 from the API. Retryable after a cooldown."""


class TransientServerError(HTTPError):
    """5xx from the API. Retryable with exponential backoff."""


class RetriesExhaustedError(DropmapError):
    def __init__(self, last_error: BaseException, *, attempts: int):
        super().__init__(f"giving up after {attempts} attempts: {last_error}")
        self.last_error = last_error
        self.attempts = attempts

    @property
    def status(self) -> Optional[int]:
        return getattr(self.last_error, "status", None)


class GraphCycleError(DropmapError):
    """A parent chain loops back on itself.

    ``chain`` lists the ids walked from the queried collection up to and
    including the first repeated id.
    """

    def __init__(self, chain: Sequence[Any]):
        self.chain = list(chain)
        super().__init__("collection parent cycle: " + " -> ".join(str(x) for x in self.chain))

    @property
    def collection_id(self) -> Any:
        return self.chain[0] if self.chain else None


class CollectionFetchFailure(DropmapError):
    def __init__(self, collection_id: Any, cause: BaseException):
        super().__init__(f"collection {collection_id}: {cause}")
        self.collection_id = collection_id
        self.cause = cause
