"""Change-detection policy for territory reconciliation.

This module intentionally contains *no* storage access; the store calls
into it so the rule stays testable on its own.
"""

from __future__ import annotations

from pyfoxhole.models.team import Team


def has_changed(previous_team: Team | None, incoming_team: Team) -> bool:
    """Decide whether an observation changes a territory's controller.

    Policy:
    - A territory never seen before is a change.
    - Otherwise only a different controlling team counts.  Labels are
      descriptive and never part of change detection.
    """
    if previous_team is None:
        return True
    return previous_team != incoming_team


def is_new_war(previous_war_number: int | None, war_number: int) -> bool:
    """A different war number means every stored territory is stale."""
    return previous_war_number is not None and previous_war_number != war_number
