#!/usr/bin/env python3
"""Tests for validate_yaml schema validation."""

from pathlib import Path

from fleet.loader import add_scooter, create_fleet, update_scooter_km
from validate_yaml import check_consistency, load_schema, main, validate_fleet_file

EXAMPLE_FILE = Path(__file__).parent.parent / "fleet.example.yaml"


class TestLoadSchema:
    """Tests for load_schema function."""

    def test_returns_dict(self):
        schema = load_schema()
        assert isinstance(schema, dict)

    def test_has_expected_structure(self):
        properties = load_schema()["properties"]
        assert "categories" in properties
        assert "scooters" in properties
        assert "services" in properties


class TestValidateFleetFile:
    """Tests for validate_fleet_file function."""

    def test_example_file_is_valid(self):
        assert validate_fleet_file(EXAMPLE_FILE, load_schema()) == []

    def test_written_file_is_valid(self, tmp_path):
        """Files produced by the loader pass validation."""
        path = tmp_path / "fleet.yaml"
        create_fleet(path, ["Bolt"])
        add_scooter(path, "B-1", "Bolt")
        update_scooter_km(path, "B-1", 1200)
        assert validate_fleet_file(path, load_schema()) == []

    def test_negative_km_returns_errors(self, tmp_path):
        """Negative readings fail with the path of the offending field."""
        path = tmp_path / "invalid.yaml"
        path.write_text("""
categories: [Tourist]
scooters:
  - id: T-1
    category: Tourist
services:
  - scooterId: T-1
    serviceDate: '2024-01-01'
    currentKm: -5
    nextKm: 2500
""")
        errors = validate_fleet_file(path, load_schema())
        assert any("Schema validation" in e for e in errors)
        assert any("services.0.currentKm" in e for e in errors)

    def test_bad_service_date_returns_errors(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("""
categories: [Tourist]
scooters: []
services:
  - scooterId: T-1
    serviceDate: '15-Jan-24'
    currentKm: 0
    nextKm: 2500
""")
        errors = validate_fleet_file(path, load_schema())
        assert len(errors) >= 1

    def test_missing_required_section(self, tmp_path):
        path = tmp_path / "invalid.yaml"
        path.write_text("categories: [Tourist]\n")
        errors = validate_fleet_file(path, load_schema())
        assert any("scooters" in e for e in errors)

    def test_invalid_yaml_returns_parse_error(self, tmp_path):
        """Invalid YAML syntax returns YAML parse error."""
        path = tmp_path / "bad.yaml"
        path.write_text("""
categories: [Tourist
scooters: []
""")
        errors = validate_fleet_file(path, load_schema())
        assert any("YAML" in e for e in errors)

    def test_nonexistent_file_returns_errors(self, tmp_path):
        errors = validate_fleet_file(tmp_path / "missing.yaml", load_schema())
        assert len(errors) == 1
        assert errors[0].startswith("Error:")


class TestCheckConsistency:
    """Tests for cross-reference checks."""

    def test_consistent(self):
        data = {
            "categories": ["Tourist"],
            "scooters": [{"id": 7, "category": "tourist"}],
            "services": [{"scooterId": 7, "currentKm": 0, "nextKm": 2500}],
            "damages": [{"scooterId": "7"}],
        }
        assert check_consistency(data) == []

    def test_unknown_category_and_duplicate_id(self):
        data = {
            "categories": ["Tourist"],
            "scooters": [
                {"id": "T-1", "category": "Racing"},
                {"id": "t-1", "category": "Tourist"},
            ],
        }
        errors = check_consistency(data)
        assert "Scooter T-1: unknown category 'Racing'" in errors
        assert "Duplicate scooter id: t-1" in errors

    def test_dangling_references(self):
        data = {
            "categories": [],
            "scooters": [],
            "services": [{"scooterId": "X-1", "currentKm": 0, "nextKm": 10}],
            "damages": [{"scooterId": "X-2"}],
        }
        assert check_consistency(data) == [
            "services.0: unknown scooter 'X-1'",
            "damages.0: unknown scooter 'X-2'",
        ]

    def test_km_order(self, tmp_path):
        path = tmp_path / "fleet.yaml"
        path.write_text("""
categories: [Tourist]
scooters:
  - id: T-1
    category: Tourist
services:
  - scooterId: T-1
    serviceDate: '2024-01-01'
    currentKm: 5000
    nextKm: 4000
""")
        errors = validate_fleet_file(path, load_schema())
        assert errors == [
            "services.0: nextKm (4000) must be greater than currentKm (5000)"
        ]


class TestMain:
    """Tests for the validate_yaml entry point."""

    def test_all_valid(self, capsys):
        assert main([str(EXAMPLE_FILE)]) == 0
        assert "OK: fleet.example.yaml" in capsys.readouterr().out

    def test_failure(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("categories: []\n")
        assert main([str(EXAMPLE_FILE), str(path)]) == 1
        assert "FAIL: bad.yaml" in capsys.readouterr().out

    def test_defaults_to_configured_file(self, tmp_path, monkeypatch, capsys):
        path = tmp_path / "configured.yaml"
        path.write_text(EXAMPLE_FILE.read_text())
        monkeypatch.setenv("FLEET_DATA_FILE", str(path))
        assert main([]) == 0
        assert "OK: configured.yaml" in capsys.readouterr().out
