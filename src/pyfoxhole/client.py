"""High-level async client for the Foxhole War API."""

from __future__ import annotations

from typing import Any, Protocol

import aiohttp

from pyfoxhole._api.maps import fetch_dynamic_map, fetch_maps
from pyfoxhole._api.war import fetch_war
from pyfoxhole._transport import HttpTransport, Transport
from pyfoxhole.config import FoxholeConfig
from pyfoxhole.exceptions import FoxholeError
from pyfoxhole.models.map import DynamicMap
from pyfoxhole.models.war import WarState


class StateSource(Protocol):
    """The three capabilities the sync engine needs from a remote source."""

    async def get_war(self) -> WarState:
        ...

    async def get_maps(self) -> list[str]:
        ...

    async def get_dynamic_map(self, region: str) -> DynamicMap | None:
        ...


class FoxholeClient:
    """Async client for the Foxhole War API.

    Usage::

        async with FoxholeClient(config) as client:
            war = await client.get_war()
            regions = await client.get_maps()
    """

    def __init__(
        self,
        config: FoxholeConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> FoxholeClient:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise FoxholeError("Client not initialized. Use 'async with FoxholeClient(...) as client:'")
        return self._transport

    # ------------------------------------------------------------------
    # Read endpoints
    # ------------------------------------------------------------------

    async def get_war(self) -> WarState:
        """Fetch the current war (number, start time, winner)."""
        return await fetch_war(self._require_transport())

    async def get_maps(self) -> list[str]:
        """Fetch the names of the currently active regions."""
        return await fetch_maps(self._require_transport())

    async def get_dynamic_map(self, region: str) -> DynamicMap | None:
        """Fetch the dynamic map items of one region."""
        return await fetch_dynamic_map(self._require_transport(), region)
