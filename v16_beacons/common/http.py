"""HTTP client for upstream document retrieval with connect and overall deadlines."""

from __future__ import annotations

import time
from dataclasses import dataclass
from types import TracebackType

import requests

from v16_beacons.common.constants import ACCEPT_XML, FETCH_TIMEOUT_SECONDS, USER_AGENT
from v16_beacons.common.errors import HttpStatusError, TransportError

CHUNK_SIZE = 1024 * 64


@dataclass(frozen=True)
class TimeoutConfig:
    connect: float = FETCH_TIMEOUT_SECONDS
    total: float = FETCH_TIMEOUT_SECONDS


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 1
    multiplier: float = 1.0
    max_wait: float = 10.0


class HttpClient:
    def __init__(
        self,
        *,
        timeout: TimeoutConfig | None = None,
        user_agent: str = USER_AGENT,
    ) -> None:
        self.timeout = timeout or TimeoutConfig()
        self.user_agent = user_agent
        self.session = requests.Session()
        self.session.verify = True

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "HttpClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _headers(self, headers: dict[str, str] | None) -> dict[str, str]:
        out = {"User-Agent": self.user_agent, "Accept": ACCEPT_XML}
        if headers:
            out.update(headers)
        return out

    def _read_body(self, response: requests.Response, deadline: float, url: str) -> bytes:
        chunks: list[bytes] = []
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if time.monotonic() > deadline:
                raise TransportError(f"Timed out reading {url}")
            if chunk:
                chunks.append(chunk)
        return b"".join(chunks)

    def get_bytes(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        timeout: TimeoutConfig | None = None,
    ) -> bytes:
        req_timeout = timeout or self.timeout
        deadline = time.monotonic() + req_timeout.total

        try:
            response = self.session.request(
                method="GET",
                url=url,
                headers=self._headers(headers),
                timeout=(req_timeout.connect, req_timeout.total),
                allow_redirects=True,
                stream=True,
            )
        except requests.RequestException as exc:
            raise TransportError(f"Request to {url} failed: {exc}") from exc

        try:
            status = response.status_code
            if status < 200 or status >= 300:
                raise HttpStatusError(status, url)
            try:
                return self._read_body(response, deadline, url)
            except requests.RequestException as exc:
                raise TransportError(f"Reading {url} failed: {exc}") from exc
        finally:
            response.close()
