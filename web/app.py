"""Flask JSON API for scooter fleet service records."""

import io
import logging
from datetime import date
from pathlib import Path

from flask import Flask, jsonify, request, send_file

# Add parent directory to path for fleet imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from fleet.calculations import is_valid_km
from fleet.config import load_settings
from fleet.errors import FileError, InvalidKilometerValue, RowError
from fleet.export import filter_by_date_range, render_pdf, write_csv
from fleet.importer import process_batch
from fleet.loader import (
    add_category,
    add_scooter,
    add_service_records,
    delete_scooter,
    delete_service_record,
    load_fleet,
    update_scooter_km,
)
from fleet.notifications import (
    MessageBirdClient,
    NotificationQueue,
    record_service_data,
    resend_service_notification,
    send_service_notification,
)
from fleet.parsing import parse_kilometer
from fleet.service_record import new_service_record
from fleet.spreadsheet import read_sheet
from fleet.status import ServiceStatus

logger = logging.getLogger("fleet.web")

settings = load_settings()

app = Flask(__name__)
app.secret_key = settings.secret_key
app.config["FLEET_DATA_FILE"] = settings.data_file


def _deliver(item):
    result = send_service_notification(MessageBirdClient(settings), *item)
    if not result.success:
        logger.warning("Service notification failed: %s", result.error)


notification_queue = NotificationQueue(_deliver, delay=settings.notification_delay)


def get_fleet():
    return load_fleet(app.config["FLEET_DATA_FILE"])


def error_response(message: str, status: int):
    return jsonify({"error": message}), status


def status_counts(fleet, category=None) -> dict:
    counts = fleet.status_counts(category)
    return {status.value: counts[status] for status in ServiceStatus}


def record_json(record) -> dict:
    return {
        "serviceDate": record.service_date,
        "currentKm": record.current_km,
        "nextKm": record.next_km,
        "serviceDetails": record.service_details,
    }


def scooter_json(scooter) -> dict:
    return {
        "id": scooter.id,
        "category": scooter.category,
        "ccType": scooter.cc_type,
        "currentKm": scooter.current_km,
        "nextServiceKm": scooter.next_service_km or None,
        "intervalKm": scooter.interval_km,
        "status": scooter.status.value,
        "damageAlert": scooter.damage_alert,
    }


@app.route("/")
def index():
    """Fleet overview: status counts per category."""
    fleet = get_fleet()
    categories = [
        {
            "name": name,
            "scooters": len(fleet.scooters_in_category(name)),
            "status": status_counts(fleet, name),
        }
        for name in fleet.categories
    ]
    return jsonify({"categories": categories, "status": status_counts(fleet)})


@app.route("/scooter/<scooter_id>")
def scooter_detail(scooter_id: str):
    """Scooter status with its service history, newest first."""
    scooter = get_fleet().get_scooter(scooter_id)
    if scooter is None:
        return error_response(f"Scooter '{scooter_id}' not found", 404)

    data = scooter_json(scooter)
    data["services"] = [record_json(r) for r in scooter.history_sorted()]
    data["damages"] = [
        {
            "description": d.description,
            "reportedAt": d.reported_at,
            "resolved": d.resolved,
            "resolvedAt": d.resolved_at,
        }
        for d in scooter.damages
    ]
    return jsonify(data)


@app.route("/scooter/<scooter_id>/service", methods=["POST"])
def log_service(scooter_id: str):
    """Add a manually entered service and queue its notification."""
    path = app.config["FLEET_DATA_FILE"]
    fleet = load_fleet(path)
    scooter = fleet.get_scooter(scooter_id)
    if scooter is None:
        return error_response(f"Scooter '{scooter_id}' not found", 404)

    form = request.get_json(silent=True) or request.form
    if not form.get("currentKm"):
        return error_response("Please enter the current km", 400)

    try:
        record = new_service_record(
            scooter.id,
            form.get("serviceDate") or date.today().isoformat(),
            form.get("currentKm"),
            form.get("serviceDetails"),
            scooter.cc_type,
            scooter.category,
            fleet.rules,
        )
    except RowError as e:
        return error_response(str(e), 400)

    add_service_records(path, [record])
    _, status = update_scooter_km(path, scooter.id, record.current_km)

    if settings.notifications_enabled:
        notification_queue.enqueue((record_service_data(record), scooter.category))
        notification_queue.start()

    data = record_json(record)
    data["status"] = status.value
    return jsonify(data), 201


@app.route("/scooter/<scooter_id>/km", methods=["POST"])
def update_km(scooter_id: str):
    """Update a scooter's current kilometers."""
    form = request.get_json(silent=True) or request.form
    try:
        km = parse_kilometer(form.get("currentKm"))
    except RowError as e:
        return error_response(str(e), 400)
    if not is_valid_km(km):
        return error_response(str(InvalidKilometerValue(km)), 400)

    try:
        next_km, status = update_scooter_km(app.config["FLEET_DATA_FILE"], scooter_id, km)
    except KeyError:
        return error_response(f"Scooter '{scooter_id}' not found", 404)
    return jsonify({"currentKm": km, "nextKm": next_km, "status": status.value})


@app.route("/category", methods=["POST"])
def create_category():
    """Add a rental category."""
    form = request.get_json(silent=True) or request.form
    name = (form.get("name") or "").strip()
    if not name:
        return error_response("Please enter a category name", 400)
    try:
        add_category(app.config["FLEET_DATA_FILE"], name)
    except ValueError as e:
        return error_response(str(e), 400)
    return jsonify({"name": name}), 201


@app.route("/scooter", methods=["POST"])
def create_scooter():
    """Add a scooter; Bolt scooters always get the Bolt engine type."""
    form = request.get_json(silent=True) or request.form
    scooter_id = (form.get("id") or "").strip()
    category = (form.get("category") or "").strip()
    if not scooter_id or not category:
        return error_response("Please enter a scooter id and category", 400)

    current_km = None
    if form.get("currentKm") not in (None, ""):
        try:
            current_km = parse_kilometer(form.get("currentKm"))
        except RowError as e:
            return error_response(str(e), 400)
        if not is_valid_km(current_km):
            return error_response(str(InvalidKilometerValue(current_km)), 400)

    try:
        cc_type = add_scooter(
            app.config["FLEET_DATA_FILE"],
            scooter_id,
            category,
            form.get("ccType") or "125cc",
            current_km,
        )
    except ValueError as e:
        return error_response(str(e), 400)
    return (
        jsonify(
            {
                "id": scooter_id,
                "category": category,
                "ccType": cc_type,
                "currentKm": current_km,
            }
        ),
        201,
    )


@app.route("/scooter/<scooter_id>", methods=["DELETE"])
def remove_scooter(scooter_id: str):
    """Remove a scooter with its services and damage reports."""
    try:
        delete_scooter(app.config["FLEET_DATA_FILE"], scooter_id)
    except KeyError:
        return error_response(f"Scooter '{scooter_id}' not found", 404)
    return "", 204


@app.route("/scooter/<scooter_id>/service/<int:index>", methods=["DELETE"])
def remove_service(scooter_id: str, index: int):
    """Remove one service record; index counts the scooter's records in file order."""
    try:
        delete_service_record(app.config["FLEET_DATA_FILE"], scooter_id, index)
    except KeyError:
        return error_response(f"Scooter '{scooter_id}' not found", 404)
    except IndexError as e:
        return error_response(str(e), 404)
    return "", 204


@app.route("/scooter/<scooter_id>/service/<int:index>/resend", methods=["POST"])
def resend_notification(scooter_id: str, index: int):
    """Resend the notification of a logged service to one number."""
    scooter = get_fleet().get_scooter(scooter_id)
    if scooter is None:
        return error_response(f"Scooter '{scooter_id}' not found", 404)
    if not 0 <= index < len(scooter.services):
        return error_response(f"Service index {index} out of range", 404)
    if not settings.notifications_enabled:
        return error_response("Notifications not configured", 503)

    form = request.get_json(silent=True) or request.form
    number_type = form.get("numberType") or "primary"
    if number_type not in ("primary", "bolt"):
        return error_response(f"Unknown number type '{number_type}'", 400)

    result = resend_service_notification(
        MessageBirdClient(settings),
        record_service_data(scooter.services[index]),
        number_type,
    )
    if not result.success:
        return error_response(result.error, 502)
    return jsonify({"sent": True, "numberType": number_type})


@app.route("/scooter/<scooter_id>/import", methods=["POST"])
def import_history(scooter_id: str):
    """Import service history from an uploaded spreadsheet."""
    path = app.config["FLEET_DATA_FILE"]
    scooter = load_fleet(path).get_scooter(scooter_id)
    if scooter is None:
        return error_response(f"Scooter '{scooter_id}' not found", 404)

    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return error_response("No file uploaded", 400)

    try:
        sheet = read_sheet(io.BytesIO(upload.read()), upload.filename)
        result = process_batch(sheet.rows, scooter.id, sheet.headers)
    except FileError as e:
        return error_response(str(e), 400)

    summary = result.summary.to_dict()
    if result.summary.no_valid_records:
        summary["error"] = "No valid records found in file"
        return jsonify(summary), 422

    add_service_records(path, result.records)
    return jsonify(summary), 201


@app.route("/category/<name>/export")
def export_category(name: str):
    """Service history of a category as CSV or PDF."""
    fleet = get_fleet()
    if not fleet.scooters_in_category(name):
        return error_response(f"No scooters in category '{name}'", 404)

    start = request.args.get("start") or None
    end = request.args.get("end") or None
    fmt = request.args.get("format", "csv").lower()
    records = filter_by_date_range(fleet.services_for_category(name), start, end)
    basename = f"{name.lower().replace(' ', '_')}_services"

    if fmt == "pdf":
        return send_file(
            io.BytesIO(render_pdf(records, name, start, end)),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=f"{basename}.pdf",
        )
    if fmt != "csv":
        return error_response(f"Unsupported format '{fmt}'", 400)

    buffer = io.StringIO()
    write_csv(records, buffer)
    return send_file(
        io.BytesIO(buffer.getvalue().encode("utf-8")),
        mimetype="text/csv",
        as_attachment=True,
        download_name=f"{basename}.csv",
    )


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s"
    )
    # Using 5001 to avoid conflict with macOS AirPlay Receiver on 5000
    app.run(debug=True, host="0.0.0.0", port=5001)
