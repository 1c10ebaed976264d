"""ServiceStatus enum for scooter service urgency."""

from enum import Enum


class ServiceStatus(Enum):
    """Service status derived from current and next-service kilometers."""

    ACTIVE = "active"
    SERVICE_SOON = "service-soon"
    NEEDS_SERVICE = "needs-service"
    UNKNOWN = "unknown"

    @property
    def urgency(self) -> int:
        """Lower value = more urgent."""
        return _URGENCY[self]

    @property
    def label(self) -> str:
        """Human-readable label, e.g. 'service soon'."""
        return self.value.replace("-", " ")


_URGENCY = {
    ServiceStatus.NEEDS_SERVICE: 1,
    ServiceStatus.SERVICE_SOON: 2,
    ServiceStatus.ACTIVE: 3,
    ServiceStatus.UNKNOWN: 4,
}
