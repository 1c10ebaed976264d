"""ServiceRecord class for completed scooter services."""

from typing import Any, Dict, Optional

from .calculations import next_service_km
from .errors import InvalidKilometerValue, KilometerOrderViolation
from .intervals import DEFAULT_RULES, IntervalRules
from .parsing import parse_date, parse_kilometer


def clean_details(details: Any) -> str:
    """Trim and collapse whitespace in free-text service details."""
    if details is None:
        return ""
    return " ".join(str(details).split())


class ServiceRecord:
    """A maintenance service performed on a scooter."""

    def __init__(
        self,
        scooter_id: str,
        service_date: str,
        current_km: int,
        next_km: int,
        service_details: str = "",
    ):
        if not scooter_id:
            raise ValueError("scooter_id must be non-empty")
        if isinstance(current_km, bool) or current_km < 0:
            raise InvalidKilometerValue(current_km)
        if next_km <= current_km:
            raise KilometerOrderViolation(current_km, next_km)
        self.scooter_id = scooter_id
        self.service_date = service_date
        self.current_km = current_km
        self.next_km = next_km
        self.service_details = clean_details(service_details)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ServiceRecord):
            return NotImplemented
        return self.to_row() == other.to_row()

    def __repr__(self) -> str:
        return (
            f"ServiceRecord({self.scooter_id!r}, {self.service_date!r}, "
            f"{self.current_km}, {self.next_km})"
        )

    @property
    def interval_km(self) -> int:
        return self.next_km - self.current_km

    def to_row(self) -> Dict[str, Any]:
        """Row for bulk insert into the services table."""
        return {
            "scooter_id": self.scooter_id,
            "service_date": self.service_date,
            "current_km": self.current_km,
            "next_km": self.next_km,
            "service_details": self.service_details,
        }


def new_service_record(
    scooter_id: str,
    service_date: Any,
    current_km: Any,
    service_details: Optional[str],
    engine_type: Optional[str],
    category_name: Optional[str],
    rules: IntervalRules = DEFAULT_RULES,
) -> ServiceRecord:
    """
    Build a record from manually entered values.

    The next service threshold is computed from the scooter's interval.
    """
    km = parse_kilometer(current_km)
    next_km = next_service_km(int(km), engine_type, category_name, rules)
    if next_km == 0:
        raise InvalidKilometerValue(current_km)
    return ServiceRecord(
        scooter_id,
        parse_date(service_date),
        int(km),
        next_km,
        service_details or "",
    )
