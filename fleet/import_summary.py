"""Dataclasses describing the outcome of a spreadsheet import."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .service_record import ServiceRecord


@dataclass
class RowRejection:
    """A row that failed validation. index is 0-based within the data rows."""

    index: int
    kind: str
    reason: str


@dataclass
class ImportSummary:
    """Counts, date range and rejection reasons for an import batch."""

    total_rows: int = 0
    accepted_count: int = 0
    rejected_count: int = 0
    earliest_date: Optional[str] = None
    latest_date: Optional[str] = None
    rejections: List[RowRejection] = field(default_factory=list)

    @property
    def no_valid_records(self) -> bool:
        return self.accepted_count == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRows": self.total_rows,
            "acceptedCount": self.accepted_count,
            "rejectedCount": self.rejected_count,
            "earliestDate": self.earliest_date,
            "latestDate": self.latest_date,
            "noValidRecords": self.no_valid_records,
            "rejections": [
                {"index": r.index, "kind": r.kind, "reason": r.reason}
                for r in self.rejections
            ],
        }


@dataclass
class ImportResult:
    records: List[ServiceRecord]
    summary: ImportSummary
