from __future__ import annotations

import time
from typing import Any, Callable, Optional

import httpx

from .errors import AuthError, HTTPError, RateLimitError, RetriesExhaustedError, TransientServerError
from .log import get_logger
from .retry import Fail, RetryPolicy, Succeed, decide

log = get_logger(__name__)

_BODY_SNIPPET = 500


class ResilientClient:
    """Raindrop REST client with bounded retries and a courtesy pause.

    Every request goes through the same state machine (see ``retry.decide``):
    401 aborts at once, 429 and 5xx are retried until ``max_retries`` attempts
    are used up, any other error status or transport failure is raised as is.
    Safe to share between threads; ``httpx.Client`` is.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        *,
        policy: Optional[RetryPolicy] = None,
        timeout_s: float = 30,
        sleep: Callable[[float], None] = time.sleep,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=httpx.Timeout(timeout_s, connect=timeout_s),
            follow_redirects=True,
            transport=transport,
        )

    def __enter__(self) -> "ResilientClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def request(self, method: str, path: str, **options: Any) -> httpx.Response:
        max_attempts = max(1, self.policy.max_retries)
        last_error: Optional[HTTPError] = None
        for attempt in range(1, max_attempts + 1):
            resp = self._client.request(method, path, **options)
            step = decide(resp.status_code, attempt, self.policy)

            if isinstance(step, Succeed):
                if self.policy.request_delay_s > 0:
                    self._sleep(self.policy.request_delay_s)
                return resp

            if isinstance(step, Fail):
                if not step.exhausted:
                    if resp.status_code == 401:
                        log.error("401 Unauthorized for %s %s - check RAINDROP_TOKEN", method, path)
                        raise _error_from(AuthError, resp, "unauthorized")
                    raise httpx.HTTPStatusError(
                        f"HTTP {resp.status_code} for {method} {resp.request.url}",
                        request=resp.request,
                        response=resp,
                    )
                last_error = _error_from(_retryable_error_cls(resp.status_code), resp, step.reason)
                break

            last_error = _error_from(_retryable_error_cls(resp.status_code), resp, step.reason)
            if resp.status_code == 429:
                log.warning("Rate limited (429) on %s; waiting %.1fs before retry...", path, step.delay_s)
            else:
                log.warning("Server error (%d) on %s; retrying in %.1fs...", resp.status_code, path, step.delay_s)
            log.info("  Retry %d/%d for %s", attempt + 1, max_attempts, path)
            self._sleep(step.delay_s)

        assert last_error is not None
        log.error("Giving up on %s %s after %d attempts: %s", method, path, max_attempts, last_error)
        raise RetriesExhaustedError(last_error, attempts=max_attempts) from last_error

    def get_json(self, path: str, **options: Any) -> Any:
        return self.request("GET", path, **options).json()

    def get_text(self, path: str, **options: Any) -> str:
        return self.request("GET", path, **options).text


def _error_from(cls: type, resp: httpx.Response, reason: str) -> HTTPError:
    return cls(
        f"{reason}: HTTP {resp.status_code} for {resp.request.method} {resp.request.url}",
        status=resp.status_code,
        url=str(resp.request.url),
        body=resp.text[:_BODY_SNIPPET],
    )


def _retryable_error_cls(status: int) -> type:
    return RateLimitError if status == 429 else TransientServerError
