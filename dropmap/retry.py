"""Retry/backoff decisions for Raindrop API responses.

``decide`` is a pure function of status code and attempt number, so backoff
timing can be tested without a network or a clock. ``ResilientClient`` in
``client.py`` is the only caller that acts on the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3  # attempts, including the first
    base_delay_s: float = 1.0
    rate_limit_cooldown_s: float = 5.0
    request_delay_s: float = 0.2

    def backoff_s(self, attempt: int) -> float:
        return self.base_delay_s * (2 ** (attempt - 1))


@dataclass(frozen=True)
class Succeed:
    pass


@dataclass(frozen=True)
class Retry:
    delay_s: float
    reason: str


@dataclass(frozen=True)
class Fail:
    reason: str
    exhausted: bool = False


Decision = Union[Succeed, Retry, Fail]


def decide(status: Optional[int], attempt: int, policy: RetryPolicy) -> Decision:
    """What to do after ``attempt`` (1-based) ended with ``status``.

    ``status`` is None for failures that never produced an HTTP response;
    those are never retried.
    """
    if status is None:
        return Fail("transport")
    if status < 400:
        return Succeed()
    if status == 401:
        return Fail("unauthorized")

    if status == 429:
        retry: Optional[Retry] = Retry(policy.rate_limit_cooldown_s, "rate_limited")
    elif status >= 500:
        retry = Retry(policy.backoff_s(attempt), "server_error")
    else:
        retry = None

    if retry is None:
        return Fail(f"http_{status}")
    if attempt >= policy.max_retries:
        return Fail(retry.reason, exhausted=True)
    return retry
