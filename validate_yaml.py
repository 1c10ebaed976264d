#!/usr/bin/env python3
"""Validate fleet YAML files against the schema and check cross-references."""
import sys
from pathlib import Path

import yaml
from jsonschema import validate, ValidationError

from fleet.config import load_settings


def load_schema() -> dict:
    """Load the JSON schema from schema.yaml."""
    schema_path = Path(__file__).parent / "schema.yaml"
    with open(schema_path) as f:
        return yaml.safe_load(f)


def check_consistency(data: dict) -> list[str]:
    """
    Checks the schema cannot express.

    Every scooter must belong to a declared category, services and damages
    must reference a known scooter, and each service must end above the
    reading it was taken at.
    """
    errors = []
    categories = {c.lower() for c in data.get("categories") or []}
    scooter_ids = set()

    for scooter in data.get("scooters") or []:
        scooter_id = str(scooter["id"])
        if scooter_id.lower() in scooter_ids:
            errors.append(f"Duplicate scooter id: {scooter_id}")
        scooter_ids.add(scooter_id.lower())
        if scooter["category"].lower() not in categories:
            errors.append(
                f"Scooter {scooter_id}: unknown category '{scooter['category']}'"
            )

    for i, service in enumerate(data.get("services") or []):
        if str(service["scooterId"]).lower() not in scooter_ids:
            errors.append(f"services.{i}: unknown scooter '{service['scooterId']}'")
        if service["nextKm"] <= service["currentKm"]:
            errors.append(
                f"services.{i}: nextKm ({service['nextKm']}) must be greater "
                f"than currentKm ({service['currentKm']})"
            )

    for i, damage in enumerate(data.get("damages") or []):
        if str(damage["scooterId"]).lower() not in scooter_ids:
            errors.append(f"damages.{i}: unknown scooter '{damage['scooterId']}'")

    return errors


def validate_fleet_file(filepath: Path, schema: dict) -> list[str]:
    """Validate a single fleet YAML file. Returns list of errors."""
    try:
        with open(filepath) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        return [f"Error: {e}"]
    except yaml.YAMLError as e:
        return [f"YAML parse error: {e}"]

    try:
        validate(instance=data, schema=schema)
    except ValidationError as e:
        errors = [f"Schema validation error: {e.message}"]
        if e.path:
            errors.append(f"  at path: {'.'.join(str(p) for p in e.path)}")
        return errors

    return check_consistency(data)


def main(argv=None):
    """Validate the given fleet files, or the configured data file."""
    paths = [Path(p) for p in (argv if argv is not None else sys.argv[1:])]
    if not paths:
        paths = [load_settings().data_file]

    schema = load_schema()
    all_valid = True
    for filepath in paths:
        errors = validate_fleet_file(filepath, schema)
        if errors:
            print(f"FAIL: {filepath.name}")
            for error in errors:
                print(f"  {error}")
            all_valid = False
        else:
            print(f"OK: {filepath.name}")

    return 0 if all_valid else 1


if __name__ == "__main__":
    sys.exit(main())
