"""Map endpoints.

Endpoints:
  - /worldconquest/maps (active region names)
  - /worldconquest/maps/{region}/dynamic/public (per-region map items)
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from pyfoxhole._constants import MAPS_ENDPOINT, dynamic_map_endpoint
from pyfoxhole._transport import Transport
from pyfoxhole.exceptions import FoxholeApiError
from pyfoxhole.models.map import DynamicMap

_logger = logging.getLogger(__name__)


async def fetch_maps(transport: Transport) -> list[str]:
    """Fetch the names of the regions active in the current war."""
    payload = await transport.get_json(MAPS_ENDPOINT)
    if not isinstance(payload, list):
        raise FoxholeApiError(
            f"Expected a list from {MAPS_ENDPOINT}, got {type(payload).__name__}",
            endpoint=MAPS_ENDPOINT,
        )
    regions = [str(name) for name in payload if isinstance(name, str) and name.strip()]
    if len(regions) != len(payload):
        _logger.debug("Dropped %d malformed region names", len(payload) - len(regions))
    return regions


async def fetch_dynamic_map(transport: Transport, region: str) -> DynamicMap | None:
    """Fetch the dynamic map of *region*.

    Returns ``None`` when the API has no data for the region (``null``
    body), which callers treat as nothing to reconcile.
    """
    endpoint = dynamic_map_endpoint(region)
    payload = await transport.get_json(endpoint)
    if payload is None:
        return None
    if not isinstance(payload, dict):
        raise FoxholeApiError(
            f"Expected an object from {endpoint}, got {type(payload).__name__}",
            endpoint=endpoint,
        )
    try:
        return DynamicMap.model_validate(payload)
    except ValidationError as exc:
        raise FoxholeApiError(f"Malformed dynamic map for {region}: {exc}", endpoint=endpoint) from exc
