"""Scooter and Fleet classes - the aggregates for fleet data and calculations."""

from typing import Dict, List, Optional

from .calculations import classify_status, km_remaining, next_service_km
from .damage import DamageReport, damage_alert
from .intervals import DEFAULT_RULES, IntervalRules, interval_for
from .service_record import ServiceRecord
from .status import ServiceStatus


class Scooter:
    """A rental scooter with its service history and damage reports."""

    def __init__(
        self,
        scooter_id: str,
        category: Optional[str],
        cc_type: Optional[str],
        current_km: Optional[int] = None,
        next_km: Optional[int] = None,
        services: Optional[List[ServiceRecord]] = None,
        damages: Optional[List[DamageReport]] = None,
        rules: IntervalRules = DEFAULT_RULES,
    ):
        self.id = scooter_id
        self.category = category
        self.cc_type = cc_type
        self._current_km = current_km
        self._next_km = next_km
        self.services = services or []
        self.damages = damages or []
        self.rules = rules

    @property
    def current_km(self) -> Optional[int]:
        """Current reading, falling back to the highest reading in history."""
        if self._current_km is not None:
            return self._current_km
        if self.services:
            return max(s.current_km for s in self.services)
        return None

    @current_km.setter
    def current_km(self, value: Optional[int]) -> None:
        self._current_km = value

    @property
    def interval_km(self) -> int:
        return interval_for(self.cc_type, self.category, self.rules)

    @property
    def last_service(self) -> Optional[ServiceRecord]:
        """Most recent service by date, then by reading."""
        if not self.services:
            return None
        return max(self.services, key=lambda s: (s.service_date, s.current_km))

    @property
    def next_service_km(self) -> int:
        """
        Threshold of the next service.

        Taken from the last service, then from the stored threshold; otherwise
        computed from the current reading (0 when there is no valid reading).
        """
        last = self.last_service
        if last is not None:
            return last.next_km
        if self._next_km:
            return self._next_km
        return next_service_km(self.current_km, self.cc_type, self.category, self.rules)

    @property
    def km_remaining(self) -> Optional[int]:
        return km_remaining(self.current_km, self.next_service_km)

    @property
    def status(self) -> ServiceStatus:
        return classify_status(self.current_km, self.next_service_km)

    @property
    def unresolved_damages(self) -> List[DamageReport]:
        return [d for d in self.damages if not d.resolved]

    @property
    def damage_alert(self) -> Optional[str]:
        return damage_alert(self.damages)

    def history_sorted(self, reverse: bool = True) -> List[ServiceRecord]:
        """Services by date; newest first by default."""
        return sorted(
            self.services, key=lambda s: (s.service_date, s.current_km), reverse=reverse
        )

    def services_between(
        self, start: Optional[str] = None, end: Optional[str] = None
    ) -> List[ServiceRecord]:
        """Services dated within [start, end], both inclusive ISO dates."""
        return [
            s
            for s in self.history_sorted(reverse=False)
            if (start is None or s.service_date >= start)
            and (end is None or s.service_date <= end)
        ]


class Fleet:
    """All scooters grouped by rental category."""

    def __init__(
        self,
        categories: Optional[List[str]] = None,
        scooters: Optional[List[Scooter]] = None,
        rules: IntervalRules = DEFAULT_RULES,
    ):
        self.categories = categories or []
        self.scooters = scooters or []
        self.rules = rules

    def get_scooter(self, scooter_id: str) -> Optional[Scooter]:
        """Find a scooter by id (case-insensitive)."""
        wanted = scooter_id.lower()
        for scooter in self.scooters:
            if scooter.id.lower() == wanted:
                return scooter
        return None

    def scooters_in_category(self, category: str) -> List[Scooter]:
        wanted = category.lower()
        return [
            s for s in self.scooters if s.category and s.category.lower() == wanted
        ]

    def services_for_category(
        self, category: str, start: Optional[str] = None, end: Optional[str] = None
    ) -> List[ServiceRecord]:
        """Services of every scooter in a category, oldest first."""
        records = []
        for scooter in self.scooters_in_category(category):
            records.extend(scooter.services_between(start, end))
        return sorted(records, key=lambda r: (r.service_date, r.scooter_id))

    def status_counts(self, category: Optional[str] = None) -> Dict[ServiceStatus, int]:
        scooters = (
            self.scooters_in_category(category) if category else self.scooters
        )
        counts = {status: 0 for status in ServiceStatus}
        for scooter in scooters:
            counts[scooter.status] += 1
        return counts
