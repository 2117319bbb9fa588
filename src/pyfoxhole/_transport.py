"""HTTP transport with conditional requests (ETag) and bounded timeouts."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

import aiohttp

from pyfoxhole._constants import USER_AGENT
from pyfoxhole.config import FoxholeConfig
from pyfoxhole.exceptions import FoxholeTransportError

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoint modules.

    Having a protocol here makes it easy to pass test doubles/mocks while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def get_json(self, endpoint: str) -> Any:
        ...


@dataclass(slots=True)
class _CachedResponse:
    etag: str
    body: Any


class HttpTransport:
    """GET-only JSON transport for the War API.

    Remembers the ``ETag`` of every successful response and sends it back
    as ``If-None-Match``; a ``304 Not Modified`` answer reuses the cached
    body so unchanged regions cost no payload bandwidth.
    """

    def __init__(self, config: FoxholeConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)
        self._etag_cache: dict[str, _CachedResponse] = {}

    async def get_json(self, endpoint: str) -> Any:
        """GET ``base_url + endpoint`` and return the decoded JSON body."""
        url = f"{self._config.base_url}{endpoint}"
        headers: dict[str, str] = {
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }
        cached = self._etag_cache.get(url)
        if cached is not None:
            headers["if-none-match"] = cached.etag

        _logger.debug("GET %s", url)

        try:
            async with self._http.get(url, headers=headers, timeout=self._timeout) as resp:
                if resp.status == 304 and cached is not None:
                    _logger.debug("Not modified: %s", endpoint)
                    return cached.body
                text = await resp.text()
                if resp.status != 200:
                    raise FoxholeTransportError(
                        f"HTTP {resp.status} from {endpoint}: {text[:200]}",
                        status_code=resp.status,
                        endpoint=endpoint,
                    )
                etag = resp.headers.get("ETag")
        except FoxholeTransportError:
            raise
        except TimeoutError as exc:
            raise FoxholeTransportError(
                f"Request to {endpoint} timed out after {self._config.request_timeout}s",
                endpoint=endpoint,
            ) from exc
        except aiohttp.ClientError as exc:
            raise FoxholeTransportError(
                f"Request to {endpoint} failed: {exc}",
                endpoint=endpoint,
            ) from exc

        try:
            body = json.loads(text)
        except json.JSONDecodeError as exc:
            raise FoxholeTransportError(
                f"Invalid JSON from {endpoint}: {text[:200]}",
                endpoint=endpoint,
            ) from exc

        if etag:
            self._etag_cache[url] = _CachedResponse(etag=etag, body=body)
        else:
            self._etag_cache.pop(url, None)
        return body
