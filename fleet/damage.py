"""DamageReport class for scooter damage incidents."""

from typing import List, Optional


class DamageReport:
    """A reported damage incident on a scooter."""

    def __init__(
        self,
        scooter_id: str,
        description: str,
        reported_at: str,
        resolved: bool = False,
        resolved_at: Optional[str] = None,
    ):
        self.scooter_id = scooter_id
        self.description = description
        self.reported_at = reported_at
        self.resolved = resolved or False
        self.resolved_at = resolved_at


def damage_alert(damages: List[DamageReport]) -> Optional[str]:
    """Alert text for unresolved damages, e.g. '2 damages reported'."""
    unresolved = [d for d in damages if not d.resolved]
    if not unresolved:
        return None
    count = len(unresolved)
    return f"{count} damage{'s' if count > 1 else ''} reported"
