"""Scraper endpoint fetch with exponential backoff.

The scraper sits behind a small web host that sheds load with 429/503 and
occasionally drops connections. A fetch makes up to ``attempts`` tries,
sleeping ``base_delay`` seconds after the first failure and doubling the
wait after each one after that (3 attempts, 2 s base: waits 2 s, then 4 s).

Client errors other than 429 mean the URL or credentials are wrong; they are
raised on the first attempt.
"""
from __future__ import annotations

import logging
import time
from typing import NamedTuple, Optional

import httpx

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})

_TRANSIENT_ERRORS = (httpx.TransportError, OSError)


class RetryPolicy(NamedTuple):
    attempts: int = 3
    base_delay: float = 2.0

    def delay_after(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.base_delay * (2 ** (attempt - 1))

    def schedule(self) -> list[float]:
        """Every wait the policy can incur, in order."""
        return [self.delay_after(n) for n in range(1, self.attempts)]


def fetch_with_retry(
    client: httpx.Client,
    url: str,
    policy: Optional[RetryPolicy] = None,
    headers: Optional[dict[str, str]] = None,
) -> httpx.Response:
    """GET ``url`` through ``client``, retrying transient failures per ``policy``.

    A transient response carrying a numeric Retry-After waits at least that
    long. Raises httpx.HTTPStatusError for a non-transient status, or for the last
    transient one once attempts run out. Transport errors propagate the same way.
    """
    policy = policy or RetryPolicy()
    if policy.attempts < 1:
        raise ValueError(f"attempts must be >= 1, got {policy.attempts}")

    attempt = 1
    while True:
        try:
            resp = client.get(url, headers=headers)
        except _TRANSIENT_ERRORS as exc:
            if attempt >= policy.attempts:
                logger.error("Scraper endpoint %s unreachable after %d attempts: %s", url, attempt, exc)
                raise
            wait = policy.delay_after(attempt)
            reason = type(exc).__name__
        else:
            if resp.status_code < 400:
                return resp
            if resp.status_code not in TRANSIENT_STATUS_CODES or attempt >= policy.attempts:
                resp.raise_for_status()
            wait = max(policy.delay_after(attempt), _retry_after_seconds(resp))
            reason = f"HTTP {resp.status_code}"

        logger.warning(
            "Scraper endpoint %s: %s on attempt %d/%d, next try in %.1fs",
            url, reason, attempt, policy.attempts, wait,
        )
        time.sleep(wait)
        attempt += 1


def _retry_after_seconds(resp: httpx.Response) -> float:
    """Numeric Retry-After in seconds; 0 when absent or given as an HTTP date."""
    value = resp.headers.get("Retry-After")
    if not value:
        return 0.0
    try:
        return max(float(value), 0.0)
    except ValueError:
        return 0.0
