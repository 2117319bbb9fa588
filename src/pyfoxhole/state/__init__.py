"""State/store layer.

The territory store is the single owner of the last known controller of
every territory.  Only the sync engine writes to it; renderers and
operator surfaces read immutable snapshots.
"""

from pyfoxhole.state.store import TerritoryStore

__all__ = ["TerritoryStore"]
