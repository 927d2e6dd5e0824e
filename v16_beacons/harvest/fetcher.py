"""Upstream DATEX2 feed retrieval. Stateless; no retries at this layer."""

from __future__ import annotations

from v16_beacons.common.constants import FETCH_TIMEOUT_SECONDS, USER_AGENT
from v16_beacons.common.http import HttpClient, TimeoutConfig


def fetch_feed(
    url: str,
    timeout: float = FETCH_TIMEOUT_SECONDS,
    *,
    user_agent: str = USER_AGENT,
    http_client: HttpClient | None = None,
) -> bytes:
    timeouts = TimeoutConfig(connect=timeout, total=timeout)
    owns_client = http_client is None
    client = http_client or HttpClient(timeout=timeouts, user_agent=user_agent)
    try:
        return client.get_bytes(url, timeout=timeouts)
    finally:
        if owns_client:
            client.close()
