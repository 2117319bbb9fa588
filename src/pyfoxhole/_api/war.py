"""War state endpoint.

Endpoint:
  - /worldconquest/war
"""

from __future__ import annotations

from pydantic import ValidationError

from pyfoxhole._constants import WAR_ENDPOINT
from pyfoxhole._transport import Transport
from pyfoxhole.exceptions import FoxholeApiError
from pyfoxhole.models.war import WarState


async def fetch_war(transport: Transport) -> WarState:
    """Fetch and parse the current war."""
    payload = await transport.get_json(WAR_ENDPOINT)
    if not isinstance(payload, dict):
        raise FoxholeApiError(
            f"Expected an object from {WAR_ENDPOINT}, got {type(payload).__name__}",
            endpoint=WAR_ENDPOINT,
        )
    try:
        return WarState.model_validate(payload)
    except ValidationError as exc:
        raise FoxholeApiError(f"Malformed war payload: {exc}", endpoint=WAR_ENDPOINT) from exc
