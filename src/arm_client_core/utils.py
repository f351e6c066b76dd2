"""Header parsing helpers shared by the retry policy, error decoder and poller."""

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime

import httpx


def parse_retry_after(headers: httpx.Headers) -> float | None:
    """Parse the server-suggested delay from response headers.

    Checks, in order:
    - ``retry-after-ms`` / ``x-ms-retry-after-ms``: milliseconds
    - ``Retry-After``: delay-seconds ("120") or HTTP-date
      ("Wed, 21 Oct 2015 07:28:00 GMT")

    Args:
        headers: Response headers

    Returns:
        Delay in seconds, or None if no header is present or parseable
    """
    for name in ("retry-after-ms", "x-ms-retry-after-ms"):
        value = headers.get(name)
        if value:
            try:
                delay = float(value) / 1000
            except ValueError:
                continue
            if delay >= 0:
                return delay

    retry_after = headers.get("retry-after")
    if not retry_after:
        return None

    try:
        delay = float(retry_after)
        # Negative values are invalid
        return delay if delay >= 0 else None
    except ValueError:
        pass

    try:
        retry_date = parsedate_to_datetime(retry_after)
    except (ValueError, TypeError):
        return None

    if retry_date.tzinfo is None:
        retry_date = retry_date.replace(tzinfo=UTC)
    # Clock skew can put the date in the past
    return max((retry_date - datetime.now(UTC)).total_seconds(), 0.0)
