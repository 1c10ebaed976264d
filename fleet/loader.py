"""YAML loading and saving utilities for fleet data."""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from .calculations import is_valid_km
from .damage import DamageReport
from .errors import InvalidKilometerValue
from .intervals import IntervalRules, forced_engine_type
from .scooter import Fleet, Scooter
from .service_record import ServiceRecord
from .status import ServiceStatus

logger = logging.getLogger("fleet.loader")


def _parse_object(dct: Dict[str, Any]) -> Union[ServiceRecord, DamageReport, Fleet, dict]:
    """Parse dictionary into appropriate object type."""
    # Service record
    if "serviceDate" in dct and "nextKm" in dct:
        return ServiceRecord(
            str(dct["scooterId"]),
            dct["serviceDate"],
            dct["currentKm"],
            dct["nextKm"],
            dct.get("serviceDetails") or "",
        )
    # Damage report
    elif "description" in dct and "reportedAt" in dct:
        return DamageReport(
            str(dct["scooterId"]),
            dct["description"],
            dct["reportedAt"],
            dct.get("resolved"),
            dct.get("resolvedAt"),
        )
    # Top-level fleet object
    elif "scooters" in dct and "categories" in dct:
        return _build_fleet(dct)
    else:
        # Scooter entries and the intervals section stay as dicts
        return dct


def _build_fleet(dct: Dict[str, Any]) -> Fleet:
    rules = IntervalRules.from_dict(dct.get("intervals"))
    services = dct.get("services") or []
    damages = dct.get("damages") or []

    scooters = []
    for entry in dct.get("scooters") or []:
        scooter_id = str(entry["id"])
        scooters.append(
            Scooter(
                scooter_id,
                entry.get("category"),
                entry.get("ccType"),
                entry.get("currentKm"),
                entry.get("nextKm"),
                [s for s in services if s.scooter_id == scooter_id],
                [d for d in damages if d.scooter_id == scooter_id],
                rules,
            )
        )
    return Fleet(list(dct.get("categories") or []), scooters, rules)


def load_fleet(filename: Union[str, Path]) -> Fleet:
    """Load a fleet from a YAML file."""
    with open(filename, "rb") as fp:
        # default=str turns unquoted YAML dates back into ISO strings
        json_data = json.dumps(
            yaml.load(fp, Loader=yaml.SafeLoader), indent=4, default=str
        )
        return json.loads(json_data, object_hook=_parse_object)


def _read_raw(filename: Union[str, Path]) -> Dict[str, Any]:
    with open(filename, "r") as fp:
        return yaml.load(fp, Loader=yaml.SafeLoader) or {}


def _write_raw(filename: Union[str, Path], data: Dict[str, Any]) -> None:
    with open(filename, "w") as fp:
        yaml.dump(
            data,
            fp,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
            width=120,
        )


def _record_to_dict(record: ServiceRecord) -> Dict[str, Any]:
    """Serialize a ServiceRecord to the YAML dict format (camelCase keys)."""
    d: Dict[str, Any] = {
        "scooterId": record.scooter_id,
        "serviceDate": record.service_date,
        "currentKm": record.current_km,
        "nextKm": record.next_km,
    }
    if record.service_details:
        d["serviceDetails"] = record.service_details
    return d


def _damage_to_dict(report: DamageReport) -> Dict[str, Any]:
    d: Dict[str, Any] = {
        "scooterId": report.scooter_id,
        "description": report.description,
        "reportedAt": report.reported_at,
        "resolved": report.resolved,
    }
    if report.resolved_at is not None:
        d["resolvedAt"] = report.resolved_at
    return d


def _find_scooter_entry(data: Dict[str, Any], scooter_id: str) -> Dict[str, Any]:
    for entry in data.get("scooters") or []:
        if str(entry["id"]).lower() == scooter_id.lower():
            return entry
    raise KeyError(f"Unknown scooter '{scooter_id}'")


def create_fleet(
    filename: Union[str, Path],
    categories: Optional[List[str]] = None,
    rules: Optional[IntervalRules] = None,
) -> None:
    """
    Create a new fleet YAML file.

    Initializes with empty scooters, services and damages.
    """
    data: Dict[str, Any] = {}
    if rules is not None:
        data["intervals"] = rules.to_dict()
    data["categories"] = list(categories or [])
    data["scooters"] = []
    data["services"] = []
    data["damages"] = []
    _write_raw(filename, data)


def add_category(filename: Union[str, Path], name: str) -> None:
    data = _read_raw(filename)
    categories = data.setdefault("categories", [])
    if any(c.lower() == name.lower() for c in categories):
        raise ValueError(f"Category '{name}' already exists")
    categories.append(name)
    _write_raw(filename, data)


def add_scooter(
    filename: Union[str, Path],
    scooter_id: str,
    category: str,
    cc_type: str = "125cc",
    current_km: Optional[int] = None,
) -> str:
    """
    Append a scooter to a fleet file and return the engine type it was saved with.

    Scooters in the Bolt category always carry the Bolt engine type.
    """
    data = _read_raw(filename)
    categories = data.get("categories") or []
    if not any(c.lower() == category.lower() for c in categories):
        raise ValueError(f"Unknown category '{category}'")

    scooters = data.setdefault("scooters", [])
    if any(str(s["id"]).lower() == scooter_id.lower() for s in scooters):
        raise ValueError(f"A scooter with id '{scooter_id}' already exists")

    cc_type = forced_engine_type(category) or cc_type
    entry: Dict[str, Any] = {"id": scooter_id, "category": category, "ccType": cc_type}
    if current_km is not None:
        entry["currentKm"] = current_km
    scooters.append(entry)

    _write_raw(filename, data)
    logger.info("Scooter added: %s (%s, %s)", scooter_id, category, cc_type)
    return cc_type


def delete_scooter(filename: Union[str, Path], scooter_id: str) -> None:
    """Remove a scooter together with its services and damage reports."""
    data = _read_raw(filename)
    entry = _find_scooter_entry(data, scooter_id)
    data["scooters"].remove(entry)
    wanted = str(entry["id"])
    data["services"] = [
        s for s in data.get("services") or [] if str(s["scooterId"]) != wanted
    ]
    data["damages"] = [
        d for d in data.get("damages") or [] if str(d["scooterId"]) != wanted
    ]
    _write_raw(filename, data)
    logger.info("Scooter removed: %s", wanted)


def add_service_records(filename: Union[str, Path], records: List[ServiceRecord]) -> int:
    """Bulk insert service records. Returns the number of records written."""
    if not records:
        return 0
    data = _read_raw(filename)
    for scooter_id in {r.scooter_id for r in records}:
        _find_scooter_entry(data, scooter_id)

    if data.get("services") is None:
        data["services"] = []
    data["services"].extend(_record_to_dict(r) for r in records)

    _write_raw(filename, data)
    logger.info("Service records added: %d", len(records))
    return len(records)


def delete_service_record(
    filename: Union[str, Path], scooter_id: str, index: int
) -> None:
    """
    Remove one of a scooter's service records.

    index counts only that scooter's records, in file order.
    """
    data = _read_raw(filename)
    entry = _find_scooter_entry(data, scooter_id)
    services = data.get("services") or []
    owned = [s for s in services if str(s["scooterId"]) == str(entry["id"])]
    if index < 0 or index >= len(owned):
        raise IndexError(f"Service index {index} out of range (0..{len(owned) - 1})")
    removed = owned[index]
    data["services"] = [s for s in services if s is not removed]
    _write_raw(filename, data)
    logger.info("Service %d on %s deleted", index, entry["id"])


def update_scooter_km(
    filename: Union[str, Path], scooter_id: str, current_km: int
) -> Tuple[int, ServiceStatus]:
    """
    Update a scooter's current reading along with its next-service threshold and status.

    Returns the (next_km, status) pair that was saved. Raises
    InvalidKilometerValue for a reading that is not a non-negative integer.
    """
    if not is_valid_km(current_km):
        raise InvalidKilometerValue(current_km)
    current_km = int(current_km)
    scooter = load_fleet(filename).get_scooter(scooter_id)
    if scooter is None:
        raise KeyError(f"Unknown scooter '{scooter_id}'")
    scooter.current_km = current_km
    next_km = scooter.next_service_km
    status = scooter.status

    data = _read_raw(filename)
    entry = _find_scooter_entry(data, scooter_id)
    entry["currentKm"] = current_km
    entry["nextKm"] = next_km
    entry["status"] = status.value
    _write_raw(filename, data)

    logger.info("Scooter %s at %s km: %s", scooter_id, current_km, status.value)
    return next_km, status


def add_damage_report(filename: Union[str, Path], report: DamageReport) -> None:
    data = _read_raw(filename)
    _find_scooter_entry(data, report.scooter_id)
    if data.get("damages") is None:
        data["damages"] = []
    data["damages"].append(_damage_to_dict(report))
    _write_raw(filename, data)
    logger.info("Damage reported on %s", report.scooter_id)


def resolve_damage(
    filename: Union[str, Path], scooter_id: str, index: int, resolved_at: str
) -> None:
    """
    Mark a scooter's damage report as resolved.

    index counts only that scooter's reports, in file order.
    """
    data = _read_raw(filename)
    entry = _find_scooter_entry(data, scooter_id)
    reports = [
        d for d in data.get("damages") or [] if str(d["scooterId"]) == str(entry["id"])
    ]
    if index < 0 or index >= len(reports):
        raise IndexError(f"Damage index {index} out of range (0..{len(reports) - 1})")
    reports[index]["resolved"] = True
    reports[index]["resolvedAt"] = resolved_at
    _write_raw(filename, data)
    logger.info("Damage %d on %s resolved", index, scooter_id)
