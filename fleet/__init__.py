"""
Scooter fleet service records.

This package provides the service-interval engine and the spreadsheet
import pipeline, plus the collaborators around them:
- ServiceStatus: Service urgency (needs-service, service-soon, active, unknown)
- IntervalRules: Kilometer intervals by category and engine type
- ServiceRecord: A completed service
- ImportPipeline: Spreadsheet rows to validated service records
- Scooter/Fleet: Aggregates combining history and damage reports
"""

from .status import ServiceStatus
from .errors import (
    ServiceRecordError,
    RowError,
    InvalidDateFormat,
    InvalidKilometerValue,
    KilometerOrderViolation,
    FileError,
    MissingRequiredColumns,
    UnreadableFile,
)
from .intervals import DEFAULT_RULES, IntervalRules, interval_for, forced_engine_type
from .calculations import SERVICE_SOON_KM, next_service_km, classify_status
from .parsing import DateEncoding, parse_date, parse_kilometer
from .service_record import ServiceRecord, new_service_record
from .import_summary import ImportResult, ImportSummary, RowRejection
from .importer import (
    HeaderValidation,
    ImportPipeline,
    validate_headers,
    normalize_row,
    process_batch,
)
from .damage import DamageReport
from .scooter import Scooter, Fleet
from .loader import load_fleet, add_service_records, update_scooter_km

__all__ = [
    "ServiceStatus",
    "ServiceRecordError",
    "RowError",
    "InvalidDateFormat",
    "InvalidKilometerValue",
    "KilometerOrderViolation",
    "FileError",
    "MissingRequiredColumns",
    "UnreadableFile",
    "DEFAULT_RULES",
    "IntervalRules",
    "interval_for",
    "forced_engine_type",
    "SERVICE_SOON_KM",
    "next_service_km",
    "classify_status",
    "DateEncoding",
    "parse_date",
    "parse_kilometer",
    "ServiceRecord",
    "new_service_record",
    "ImportResult",
    "ImportSummary",
    "RowRejection",
    "HeaderValidation",
    "ImportPipeline",
    "validate_headers",
    "normalize_row",
    "process_batch",
    "DamageReport",
    "Scooter",
    "Fleet",
    "load_fleet",
    "add_service_records",
    "update_scooter_km",
]
