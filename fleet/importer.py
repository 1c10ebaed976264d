"""
Spreadsheet import pipeline for historical service records.

Rows arrive as dicts keyed by header text, with loosely-typed cells.
Each row is normalized into a ServiceRecord or rejected with a reason;
a bad row never aborts the batch. Missing required columns abort the
whole import before any row is processed.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import KilometerOrderViolation, MissingRequiredColumns, RowError
from .import_summary import ImportResult, ImportSummary, RowRejection
from .parsing import DateEncoding, parse_date, parse_kilometer
from .service_record import ServiceRecord, clean_details

logger = logging.getLogger("fleet.importer")

SERVICE_DATE = "service_date"
CURRENT_KM = "current_km"
NEXT_KM = "next_km"
SERVICE_DETAILS = "service_details"

REQUIRED_COLUMNS = [SERVICE_DATE, CURRENT_KM, NEXT_KM]

# Resolution order matters: the next-km column is claimed first so a header
# like "NEXT SERVICE KM" is never taken as the current reading.
COLUMN_KEYWORDS = [
    (NEXT_KM, ["NEXT SERVICE", "NEXT KM", "NEXT"]),
    (CURRENT_KM, ["MILAGE", "MILEAGE", "CURRENT KM", "ODOMETER", "KM"]),
    (SERVICE_DATE, ["SERVICE DATE", "DATE"]),
    (SERVICE_DETAILS, ["DONE", "DETAILS", "WORK", "NOTES", "DESCRIPTION"]),
]

# A next-service date column is neither the km threshold nor the service date.
COLUMN_EXCLUDES = {
    NEXT_KM: ["DATE"],
    SERVICE_DATE: ["NEXT"],
}


@dataclass
class HeaderValidation:
    """Result of matching spreadsheet headers to logical columns."""

    is_valid: bool
    missing_columns: List[str] = field(default_factory=list)
    columns: Dict[str, str] = field(default_factory=dict)

    @property
    def message(self) -> str:
        if self.is_valid:
            return "Valid spreadsheet structure"
        return f"Missing required columns: {', '.join(self.missing_columns)}"


def validate_headers(headers: Sequence[Any]) -> HeaderValidation:
    """
    Match headers to logical columns by case-insensitive substring.

    Returns the logical-name -> header mapping and any required logical
    columns left without a header.
    """
    available = [h for h in headers if isinstance(h, str) and h.strip()]
    taken = set()
    columns: Dict[str, str] = {}

    for logical, keywords in COLUMN_KEYWORDS:
        excludes = COLUMN_EXCLUDES.get(logical, [])
        candidates = [
            h
            for h in available
            if h not in taken and not any(x in h.upper() for x in excludes)
        ]
        for keyword in keywords:
            match = next(
                (h for h in candidates if keyword in h.strip().upper()),
                None,
            )
            if match is not None:
                columns[logical] = match
                taken.add(match)
                break

    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    return HeaderValidation(not missing, missing, columns)


def _collect_headers(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    """Ordered union of keys across rows."""
    headers: List[str] = []
    seen = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                headers.append(key)
    return headers


def _cell(raw_row: Mapping[str, Any], columns: Dict[str, str], logical: str) -> Any:
    header = columns.get(logical)
    return raw_row.get(header) if header is not None else None


class ImportPipeline:
    """
    Configurable row normalizer and batch processor.

    Args:
        date_encodings: Which date cell encodings are accepted
        dayfirst: Passed to the free-form date parser (01/02/24 is 1 Feb)
    """

    def __init__(
        self,
        date_encodings: DateEncoding = DateEncoding.ALL,
        dayfirst: bool = True,
    ):
        self.date_encodings = date_encodings
        self.dayfirst = dayfirst

    def normalize_row(
        self,
        raw_row: Mapping[str, Any],
        scooter_id: str,
        columns: Optional[Dict[str, str]] = None,
    ) -> ServiceRecord:
        """
        Convert one raw row into a ServiceRecord.

        Without columns, they are matched from the row's own keys and a
        missing cell rejects the row like an empty one.

        Raises a RowError subclass naming the violated rule.
        """
        if columns is None:
            columns = validate_headers(list(raw_row.keys())).columns

        current_km = int(parse_kilometer(_cell(raw_row, columns, CURRENT_KM)))
        next_km = int(parse_kilometer(_cell(raw_row, columns, NEXT_KM)))
        service_date = parse_date(
            _cell(raw_row, columns, SERVICE_DATE), self.date_encodings, self.dayfirst
        )
        if next_km <= current_km:
            raise KilometerOrderViolation(current_km, next_km)

        details_column = columns.get(SERVICE_DETAILS)
        details = raw_row.get(details_column) if details_column else None

        return ServiceRecord(
            scooter_id, service_date, current_km, next_km, clean_details(details)
        )

    def process_batch(
        self,
        raw_rows: Iterable[Mapping[str, Any]],
        scooter_id: str,
        headers: Optional[Sequence[Any]] = None,
    ) -> ImportResult:
        """
        Normalize every row, keeping the good ones and reporting the rest.

        Accepted records are sorted by service date, ascending.
        Raises MissingRequiredColumns before processing any row.
        """
        if not scooter_id:
            raise ValueError("scooter_id must be non-empty")

        rows = list(raw_rows)
        if headers is None:
            headers = _collect_headers(rows)

        summary = ImportSummary(total_rows=len(rows))
        if not rows and not headers:
            logger.warning("Import for %s: no rows found", scooter_id)
            return ImportResult([], summary)

        validation = validate_headers(headers)
        if not validation.is_valid:
            raise MissingRequiredColumns(validation.missing_columns)

        records: List[ServiceRecord] = []
        for index, row in enumerate(rows):
            try:
                records.append(self.normalize_row(row, scooter_id, validation.columns))
            except RowError as e:
                logger.debug("Row %d rejected: %s", index, e)
                summary.rejections.append(RowRejection(index, e.kind, str(e)))

        records.sort(key=lambda r: r.service_date)

        summary.accepted_count = len(records)
        summary.rejected_count = len(summary.rejections)
        if records:
            summary.earliest_date = records[0].service_date
            summary.latest_date = records[-1].service_date

        logger.info(
            "Import for %s: %d accepted, %d rejected of %d rows",
            scooter_id,
            summary.accepted_count,
            summary.rejected_count,
            summary.total_rows,
        )
        if summary.no_valid_records:
            logger.warning("Import for %s: no valid records", scooter_id)

        return ImportResult(records, summary)


default_pipeline = ImportPipeline()


def normalize_row(
    raw_row: Mapping[str, Any], scooter_id: str
) -> Optional[ServiceRecord]:
    """Normalize a row with the default pipeline. None when the row is rejected."""
    try:
        return default_pipeline.normalize_row(raw_row, scooter_id)
    except RowError as e:
        logger.debug("Row rejected: %s", e)
        return None


def process_batch(
    raw_rows: Iterable[Mapping[str, Any]],
    scooter_id: str,
    headers: Optional[Sequence[Any]] = None,
) -> ImportResult:
    """Process a batch with the default pipeline."""
    return default_pipeline.process_batch(raw_rows, scooter_id, headers)
