"""Internal constants shared across the library."""

BASE_URL = "https://war-service-live.foxholeservices.com/api"
USER_AGENT = "pyfoxhole/0.1 (+territory-tracker)"

SHARD_URLS: dict[str, str] = {
    "live": "https://war-service-live.foxholeservices.com/api",
    "live-2": "https://war-service-live-2.foxholeservices.com/api",
    "live-3": "https://war-service-live-3.foxholeservices.com/api",
}

# ------------------------------------------------------------------
# War API endpoints
# ------------------------------------------------------------------

WAR_ENDPOINT = "/worldconquest/war"
MAPS_ENDPOINT = "/worldconquest/maps"


def dynamic_map_endpoint(region: str) -> str:
    """Endpoint for the public dynamic map data of *region*."""
    return f"/worldconquest/maps/{region}/dynamic/public"


# ------------------------------------------------------------------
# Map item flags (bit field sent as ``flags``)
# ------------------------------------------------------------------

FLAG_VICTORY_BASE = 0x01
FLAG_SCORCHED = 0x10
