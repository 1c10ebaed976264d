#!/usr/bin/env python3
"""
Unified CLI for scooter fleet service records.

Commands:
  status          - Show which scooters need service, soon or now
  history         - View a scooter's service history
  log             - Add a new service entry
  update-km       - Update a scooter's current kilometers
  import          - Import service history from a spreadsheet
  export          - Export a category's service history to CSV or PDF
  intervals       - List service intervals by category and engine type
  damage          - Report damage on a scooter
  resolve-damage  - Mark a damage report as resolved
  init            - Create a new, empty fleet file
  add-category    - Add a rental category
  add-scooter     - Add a scooter to a category
  delete-scooter  - Remove a scooter with its history
  delete-service  - Remove one service record
  resend          - Resend a service notification
"""

import argparse
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from tabulate import tabulate
from typing import List, Optional

from fleet import (
    DamageReport,
    FileError,
    InvalidKilometerValue,
    RowError,
    Scooter,
    ServiceRecord,
    ServiceStatus,
    load_fleet,
    add_service_records,
    new_service_record,
    process_batch,
    update_scooter_km,
)
from fleet.calculations import is_valid_km
from fleet.config import load_settings
from fleet.export import export_csv, export_pdf, filter_by_date_range
from fleet.import_summary import ImportSummary
from fleet.intervals import interval_text
from fleet.loader import (
    add_category,
    add_damage_report,
    add_scooter,
    create_fleet,
    delete_scooter,
    delete_service_record,
    resolve_damage,
)
from fleet.notifications import (
    MessageBirdClient,
    record_service_data,
    resend_service_notification,
    send_service_notification,
)
from fleet.spreadsheet import read_sheet

# Spreadsheet row numbers start at 1 and the header occupies row 1.
FIRST_DATA_ROW = 2

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format kilometers for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_remaining(scooter: Scooter) -> str:
    """Format remaining kilometers for display."""
    remaining = scooter.km_remaining
    if remaining is None:
        return "-"
    if remaining < 0:
        return f"-{abs(remaining):,.0f}"
    return f"{remaining:,.0f}"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if not text:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


# =============================================================================
# Status command
# =============================================================================


def make_status_table(scooters: List[Scooter]) -> List[List[str]]:
    """Convert scooters to status table rows."""
    rows = []
    for scooter in scooters:
        last = scooter.last_service
        rows.append(
            [
                scooter.id,
                scooter.category or "-",
                scooter.cc_type or "-",
                format_km(scooter.current_km),
                format_km(scooter.next_service_km or None),
                format_remaining(scooter),
                last.service_date if last else "-",
                scooter.damage_alert or "-",
            ]
        )
    return rows


def cmd_status(args):
    """Show which scooters need service."""
    fleet = load_fleet(args.fleet_file)

    scooters = fleet.scooters
    if args.category:
        scooters = fleet.scooters_in_category(args.category)

    print(f"Scooters: {len(scooters)}")
    if args.category:
        print(f"Category: {args.category}")
    print()

    headers = [
        "Scooter",
        "Category",
        "Type",
        "Current (km)",
        "Next service (km)",
        "Remaining (km)",
        "Last service",
        "Damage",
    ]

    for status in sorted(ServiceStatus, key=lambda s: s.urgency):
        group = sorted(
            [s for s in scooters if s.status == status], key=lambda s: s.id
        )
        if not group:
            continue
        print(f"{status.label.upper()}:")
        print(tabulate(make_status_table(group), headers=headers, tablefmt="simple"))
        print()

    return 0


# =============================================================================
# History command
# =============================================================================


def make_history_table(records: List[ServiceRecord]) -> List[List[str]]:
    """Convert service records to table rows."""
    return [
        [
            r.service_date,
            format_km(r.current_km),
            format_km(r.next_km),
            truncate(r.service_details, 40),
        ]
        for r in records
    ]


def _get_scooter(fleet, scooter_id: str) -> Optional[Scooter]:
    scooter = fleet.get_scooter(scooter_id)
    if scooter is None:
        print(f"Error: Unknown scooter '{scooter_id}'")
        print("\nAvailable scooters:")
        for s in sorted(fleet.scooters, key=lambda s: s.id):
            print(f"  {s.id} ({s.category})")
    return scooter


def cmd_history(args):
    """View a scooter's service history."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1

    records = scooter.history_sorted(reverse=not args.asc)
    if args.since:
        records = [r for r in records if r.service_date >= args.since]

    print(f"Scooter: {scooter.id} ({scooter.category}, {scooter.cc_type})")
    print(f"Current km: {format_km(scooter.current_km)}")
    interval = interval_text(scooter.cc_type, scooter.category, fleet.rules)
    print(f"Interval: {interval}")
    print(f"Status: {scooter.status.label}")
    print(f"Total services: {len(scooter.services)}")
    if args.since:
        print(f"Showing: {len(records)} (filtered)")
    print()

    if not records:
        print("No service history found.")
        return 0

    headers = ["Date", "Current (km)", "Next service (km)", "Details"]
    rows = make_history_table(records)
    if args.numbered:
        # Numbers follow file order, as used by delete-service and resend
        positions = {id(s): i for i, s in enumerate(scooter.services)}
        headers = ["#"] + headers
        rows = [[positions[id(r)]] + row for r, row in zip(records, rows)]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


# =============================================================================
# Log command
# =============================================================================


def notify(record: ServiceRecord, category: Optional[str]) -> None:
    """Send the new-service WhatsApp notification, if configured."""
    settings = load_settings()
    if not settings.notifications_enabled:
        print("Notifications not configured; skipping.")
        return
    result = send_service_notification(
        MessageBirdClient(settings), record_service_data(record), category
    )
    if result.success:
        print("Notification sent.")
    else:
        print(f"Notification failed: {result.error}")


def cmd_log(args):
    """Add a new service entry."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1

    try:
        record = new_service_record(
            scooter.id,
            args.date or date.today().isoformat(),
            args.km,
            args.details,
            scooter.cc_type,
            scooter.category,
            fleet.rules,
        )
    except RowError as e:
        print(f"Error: {e}")
        return 1

    print(f"Adding service entry to {args.fleet_file}:")
    print(f"  Scooter:      {record.scooter_id}")
    print(f"  Date:         {record.service_date}")
    print(f"  Current km:   {format_km(record.current_km)}")
    print(f"  Next service: {format_km(record.next_km)} ({scooter.interval_km:,} km)")
    if record.service_details:
        print(f"  Details:      {record.service_details}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    add_service_records(args.fleet_file, [record])
    update_scooter_km(args.fleet_file, scooter.id, record.current_km)
    print("Entry saved.")

    if args.notify:
        notify(record, scooter.category)
    return 0


# =============================================================================
# Update km command
# =============================================================================


def cmd_update_km(args):
    """Update a scooter's current kilometers."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1

    if not is_valid_km(args.km):
        print(f"Error: {InvalidKilometerValue(args.km)}")
        return 1

    print(f"Scooter: {scooter.id}")
    print(f"Current km: {format_km(scooter.current_km)}")
    print(f"New km:     {format_km(args.km)}")
    print()

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    next_km, status = update_scooter_km(args.fleet_file, scooter.id, args.km)
    print(f"Kilometers updated. Next service at {format_km(next_km)} ({status.label}).")
    return 0


# =============================================================================
# Import command
# =============================================================================


def print_import_summary(summary: ImportSummary) -> None:
    print(f"Total rows: {summary.total_rows}")
    print(f"Imported:   {summary.accepted_count}")
    print(f"Skipped:    {summary.rejected_count}")
    if summary.earliest_date:
        print(f"Date range: {summary.earliest_date} to {summary.latest_date}")
    if summary.rejections:
        print()
        rows = [
            [r.index + FIRST_DATA_ROW, r.kind, r.reason] for r in summary.rejections
        ]
        print(tabulate(rows, headers=["Row", "Problem", "Detail"], tablefmt="simple"))


def cmd_import(args):
    """Import service history from a spreadsheet."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1

    try:
        sheet = read_sheet(args.sheet)
        result = process_batch(sheet.rows, scooter.id, sheet.headers)
    except FileError as e:
        print(f"Error: {e}")
        return 1

    print(f"Importing {args.sheet} for scooter {scooter.id}")
    print_import_summary(result.summary)
    print()

    if result.summary.no_valid_records:
        print("No valid records found in file.")
        return 1

    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    add_service_records(args.fleet_file, result.records)
    print(f"Saved {len(result.records)} service records.")
    return 0


# =============================================================================
# Export command
# =============================================================================


def cmd_export(args):
    """Export a category's service history."""
    fleet = load_fleet(args.fleet_file)
    if not fleet.scooters_in_category(args.category):
        print(f"Error: No scooters in category '{args.category}'")
        return 1

    records = filter_by_date_range(
        fleet.services_for_category(args.category), args.start, args.end
    )
    output = args.output or Path(
        f"{args.category.lower().replace(' ', '_')}_services.{args.format}"
    )

    if args.format == "csv":
        export_csv(records, output)
    else:
        export_pdf(records, output, args.category, args.start, args.end)

    print(f"Exported {len(records)} services to {output}")
    return 0


# =============================================================================
# Intervals command
# =============================================================================


def cmd_intervals(args):
    """List service intervals."""
    fleet = load_fleet(args.fleet_file)
    rules = fleet.rules

    print(f"Default interval: {rules.default_km:,} km")
    print()
    rows = [[name, f"{km:,} km"] for name, km in rules.engine_types.items()]
    print(tabulate(rows, headers=["Engine type", "Interval"], tablefmt="simple"))
    print()
    rows = [[name, f"{km:,} km"] for name, km in rules.category_overrides.items()]
    print(tabulate(rows, headers=["Category", "Interval"], tablefmt="simple"))
    return 0


# =============================================================================
# Damage commands
# =============================================================================


def cmd_damage(args):
    """Report damage on a scooter."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1

    report = DamageReport(
        scooter.id, args.description, datetime.now().isoformat(timespec="minutes")
    )
    add_damage_report(args.fleet_file, report)
    print(f"Damage reported on {scooter.id}: {args.description}")
    return 0


def cmd_resolve_damage(args):
    """Mark a damage report as resolved."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1

    try:
        resolve_damage(
            args.fleet_file,
            scooter.id,
            args.index,
            datetime.now().isoformat(timespec="minutes"),
        )
    except IndexError as e:
        print(f"Error: {e}")
        return 1
    print(f"Damage {args.index} on {scooter.id} resolved.")
    return 0


# =============================================================================
# Fleet management commands
# =============================================================================


def cmd_init(args):
    """Create a new, empty fleet file."""
    if args.fleet_file.exists():
        print(f"Error: File already exists: {args.fleet_file}")
        return 1
    create_fleet(args.fleet_file, args.category)
    print(f"Created {args.fleet_file}")
    if args.category:
        print(f"Categories: {', '.join(args.category)}")
    return 0


def cmd_add_category(args):
    """Add a rental category."""
    try:
        add_category(args.fleet_file, args.name)
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    print(f"Category added: {args.name}")
    return 0


def cmd_add_scooter(args):
    """Add a scooter to a category."""
    if args.km is not None and not is_valid_km(args.km):
        print(f"Error: {InvalidKilometerValue(args.km)}")
        return 1
    try:
        cc_type = add_scooter(
            args.fleet_file, args.scooter_id, args.category, args.cc_type, args.km
        )
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    print(f"Scooter added: {args.scooter_id} ({args.category}, {cc_type})")
    if cc_type != args.cc_type:
        print(f"Engine type set to {cc_type} for the {args.category} category.")
    return 0


def cmd_delete_scooter(args):
    """Remove a scooter with its services and damage reports."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1

    print(f"Removing {scooter.id} ({scooter.category})")
    print(f"  Services: {len(scooter.services)}")
    print(f"  Damages:  {len(scooter.damages)}")
    if args.dry_run:
        print("(dry run - no changes made)")
        return 0

    delete_scooter(args.fleet_file, scooter.id)
    print("Scooter removed.")
    return 0


def _get_service(scooter: Scooter, index: int) -> Optional[ServiceRecord]:
    if 0 <= index < len(scooter.services):
        return scooter.services[index]
    print(
        f"Error: Service index {index} out of range "
        f"(0..{len(scooter.services) - 1})"
    )
    return None


def cmd_delete_service(args):
    """Remove one service record."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1
    record = _get_service(scooter, args.index)
    if record is None:
        return 1

    delete_service_record(args.fleet_file, scooter.id, args.index)
    print(
        f"Deleted service {args.index} on {scooter.id}: "
        f"{record.service_date} at {format_km(record.current_km)} km"
    )
    return 0


def cmd_resend(args):
    """Resend the notification of a logged service."""
    fleet = load_fleet(args.fleet_file)
    scooter = _get_scooter(fleet, args.scooter_id)
    if scooter is None:
        return 1
    record = _get_service(scooter, args.index)
    if record is None:
        return 1

    settings = load_settings()
    if not settings.notifications_enabled:
        print("Error: Notifications not configured")
        return 1

    result = resend_service_notification(
        MessageBirdClient(settings), record_service_data(record), args.to
    )
    if not result.success:
        print(f"Notification failed: {result.error}")
        return 1
    print(f"Notification resent to the {args.to} number.")
    return 0


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scooter fleet service records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s fleet.yaml status
  %(prog)s fleet.yaml status --category Bolt
  %(prog)s fleet.yaml history S-101 --since 2024-01-01
  %(prog)s fleet.yaml log S-101 12500 "Oil change, new brake pads" --notify
  %(prog)s fleet.yaml update-km S-101 12900
  %(prog)s fleet.yaml import S-101 history.xlsx --dry-run
  %(prog)s fleet.yaml init --category Bolt --category Tourist
  %(prog)s fleet.yaml add-scooter S-101 Tourist --cc-type 50cc --km 1200
  %(prog)s fleet.yaml history S-101 --numbered
  %(prog)s fleet.yaml resend S-101 0 --to bolt
  %(prog)s fleet.yaml export Bolt --start 2024-01-01 --end 2024-06-30 --format pdf
""",
    )
    parser.add_argument("fleet_file", type=Path, help="Path to fleet YAML file")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # Status subcommand
    status_parser = subparsers.add_parser(
        "status", help="Show which scooters need service"
    )
    status_parser.add_argument("--category", type=str, help="Only this category")

    # History subcommand
    history_parser = subparsers.add_parser("history", help="View service history")
    history_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    history_parser.add_argument(
        "--since", type=str, help="Show only entries since date (YYYY-MM-DD)"
    )
    history_parser.add_argument(
        "--asc", action="store_true", help="Sort oldest first instead of newest first"
    )
    history_parser.add_argument(
        "--numbered",
        action="store_true",
        help="Show each record's number for delete-service and resend",
    )

    # Log subcommand
    log_parser = subparsers.add_parser("log", help="Add a new service entry")
    log_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    log_parser.add_argument("km", type=int, help="Kilometers at time of service")
    log_parser.add_argument("details", type=str, help="Work done")
    log_parser.add_argument(
        "--date", type=str, help="Service date (default: today)"
    )
    log_parser.add_argument(
        "--notify", action="store_true", help="Send the WhatsApp notification"
    )
    log_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be added without saving"
    )

    # Update km subcommand
    update_parser = subparsers.add_parser(
        "update-km", help="Update a scooter's current kilometers"
    )
    update_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    update_parser.add_argument("km", type=int, help="Current kilometers")
    update_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be updated without saving"
    )

    # Import subcommand
    import_parser = subparsers.add_parser(
        "import", help="Import service history from a spreadsheet (.xlsx or .csv)"
    )
    import_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    import_parser.add_argument("sheet", type=Path, help="Spreadsheet file")
    import_parser.add_argument(
        "--dry-run", action="store_true", help="Validate without saving"
    )

    # Export subcommand
    export_parser = subparsers.add_parser(
        "export", help="Export a category's service history"
    )
    export_parser.add_argument("category", type=str, help="Category name")
    export_parser.add_argument("--start", type=str, help="First date (YYYY-MM-DD)")
    export_parser.add_argument("--end", type=str, help="Last date (YYYY-MM-DD)")
    export_parser.add_argument(
        "--format", choices=["csv", "pdf"], default="csv", help="Output format"
    )
    export_parser.add_argument("--output", type=Path, help="Output file")

    # Intervals subcommand
    subparsers.add_parser("intervals", help="List service intervals")

    # Damage subcommands
    damage_parser = subparsers.add_parser("damage", help="Report damage")
    damage_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    damage_parser.add_argument("description", type=str, help="What is damaged")

    resolve_parser = subparsers.add_parser(
        "resolve-damage", help="Mark a damage report as resolved"
    )
    resolve_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    resolve_parser.add_argument(
        "index", type=int, help="Report number for this scooter (0 = first)"
    )

    # Fleet management subcommands
    init_parser = subparsers.add_parser("init", help="Create a new, empty fleet file")
    init_parser.add_argument(
        "--category", action="append", default=[], help="Category (repeatable)"
    )

    category_parser = subparsers.add_parser("add-category", help="Add a category")
    category_parser.add_argument("name", type=str, help="Category name")

    add_scooter_parser = subparsers.add_parser("add-scooter", help="Add a scooter")
    add_scooter_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    add_scooter_parser.add_argument("category", type=str, help="Category name")
    add_scooter_parser.add_argument(
        "--cc-type", type=str, default="125cc", help="Engine type (default: 125cc)"
    )
    add_scooter_parser.add_argument("--km", type=int, help="Current kilometers")

    delete_scooter_parser = subparsers.add_parser(
        "delete-scooter", help="Remove a scooter with its history"
    )
    delete_scooter_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    delete_scooter_parser.add_argument(
        "--dry-run", action="store_true", help="Show what would be removed"
    )

    delete_service_parser = subparsers.add_parser(
        "delete-service", help="Remove one service record"
    )
    delete_service_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    delete_service_parser.add_argument(
        "index", type=int, help="Record number from 'history --numbered'"
    )

    resend_parser = subparsers.add_parser(
        "resend", help="Resend a service notification"
    )
    resend_parser.add_argument("scooter_id", type=str, help="Scooter ID")
    resend_parser.add_argument(
        "index", type=int, help="Record number from 'history --numbered'"
    )
    resend_parser.add_argument(
        "--to", choices=["primary", "bolt"], default="primary", help="Which number"
    )

    return parser


COMMANDS = {
    "status": cmd_status,
    "history": cmd_history,
    "log": cmd_log,
    "update-km": cmd_update_km,
    "import": cmd_import,
    "export": cmd_export,
    "intervals": cmd_intervals,
    "damage": cmd_damage,
    "resolve-damage": cmd_resolve_damage,
    "init": cmd_init,
    "add-category": cmd_add_category,
    "add-scooter": cmd_add_scooter,
    "delete-scooter": cmd_delete_scooter,
    "delete-service": cmd_delete_service,
    "resend": cmd_resend,
}


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    # Validate fleet file exists
    if args.command != "init" and not args.fleet_file.exists():
        print(f"Error: File not found: {args.fleet_file}")
        return 1

    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main() or 0)
