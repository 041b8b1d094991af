"""Pure helpers behind the retry decisions of the request executor."""

import random
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

from cmscli.domain.models.request import IDEMPOTENCY_HEADERS, RetryPolicy

INITIAL_BACKOFF_MS = 250
BACKOFF_FACTOR = 2
MAX_JITTER_MS = 100

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def resolve_retry_policy(method: str, headers: Optional[Mapping[str, str]] = None) -> RetryPolicy:
    """GET is always retry-safe; other methods only with a non-blank idempotency key."""
    if method.upper() == "GET":
        return RetryPolicy(allowed=True, reason="safe_method")

    for key, value in (headers or {}).items():
        if key.lower() in IDEMPOTENCY_HEADERS and value is not None and str(value).strip():
            return RetryPolicy(allowed=True, reason="idempotency_key")

    return RetryPolicy(allowed=False, reason="unsafe_method")


def compute_retry_delay(
    attempt: int,
    retry_after_ms: Optional[int],
    max_delay_ms: int,
    rng: Callable[[], float] = random.random,
) -> int:
    """Delay in ms before the attempt following ``attempt`` (1-based)."""
    if retry_after_ms is not None:
        return max(0, min(retry_after_ms, max_delay_ms))

    exponential = INITIAL_BACKOFF_MS * BACKOFF_FACTOR ** (attempt - 1)
    jitter = int(rng() * MAX_JITTER_MS)
    return min(exponential + jitter, max_delay_ms)


def parse_retry_after(
    value: Optional[str],
    now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
) -> Optional[int]:
    """Converts a Retry-After header (delta-seconds or HTTP-date) to milliseconds."""
    if not value:
        return None

    # delta-seconds: leading integer, trailing text ignored
    match = _LEADING_INT.match(value)
    if match and int(match.group(1)) >= 0:
        return int(match.group(1)) * 1000

    text = value.strip()
    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    delta_ms = int((when - now()).total_seconds() * 1000)
    return max(0, delta_ms)


def sanitize_url_for_log(url: str) -> str:
    """Drops the query string (it may carry draft keys or tokens)."""
    try:
        parts = urlsplit(url)
    except ValueError:
        parts = None
    if parts is not None and parts.scheme and parts.netloc:
        return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))

    index = url.find("?")
    if index == -1:
        return url
    return f"{url[:index]}?<redacted>"
