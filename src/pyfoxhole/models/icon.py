"""Map icon metadata.

The War API identifies every map item only by a numeric ``iconType``.
This table gives each known type a label and says whether the item is a
territory that can change hands.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class IconInfo:
    label: str
    conquerable: bool = False


ICON_TYPES: dict[int, IconInfo] = {
    5: IconInfo("Static Base 1", conquerable=True),
    6: IconInfo("Static Base 2", conquerable=True),
    7: IconInfo("Static Base 3", conquerable=True),
    8: IconInfo("Forward Base 1"),
    11: IconInfo("Hospital"),
    12: IconInfo("Vehicle Factory"),
    17: IconInfo("Refinery"),
    18: IconInfo("Shipyard"),
    19: IconInfo("Engineering Center"),
    20: IconInfo("Salvage Field"),
    21: IconInfo("Component Field"),
    23: IconInfo("Sulfur Field"),
    27: IconInfo("Keep", conquerable=True),
    28: IconInfo("Observation Tower"),
    29: IconInfo("Fort"),
    32: IconInfo("Sulfur Mine"),
    33: IconInfo("Storage Facility"),
    34: IconInfo("Factory"),
    35: IconInfo("Garrison Station"),
    37: IconInfo("Rocket Site"),
    38: IconInfo("Salvage Mine"),
    39: IconInfo("Construction Yard"),
    40: IconInfo("Component Mine"),
    45: IconInfo("Relic Base 1", conquerable=True),
    46: IconInfo("Relic Base 2", conquerable=True),
    47: IconInfo("Relic Base 3", conquerable=True),
    51: IconInfo("Mass Production Factory"),
    52: IconInfo("Seaport"),
    53: IconInfo("Coastal Gun"),
    54: IconInfo("Soul Factory"),
    56: IconInfo("Town Base 1", conquerable=True),
    57: IconInfo("Town Base 2", conquerable=True),
    58: IconInfo("Town Base 3", conquerable=True),
    59: IconInfo("Storm Cannon"),
    60: IconInfo("Intel Center"),
    61: IconInfo("Coal Field"),
    62: IconInfo("Oil Field"),
}


def icon_info(icon_type: int) -> IconInfo | None:
    return ICON_TYPES.get(icon_type)


def is_conquerable(icon_type: int) -> bool:
    """Return ``True`` for icon types that represent capturable territory."""
    info = ICON_TYPES.get(icon_type)
    return info is not None and info.conquerable
