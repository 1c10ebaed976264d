"""
WhatsApp service notifications through the MessageBird conversations API.

Delivery is best-effort: failures are logged and reported back as a
NotificationResult, never raised to the caller.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Deque, Dict, Optional, Union

import requests
from dateutil import parser as date_parser

from .config import Settings

logger = logging.getLogger("fleet.notifications")

SEND_URL = "https://conversations.messagebird.com/v1/send"
MAX_DETAILS_LENGTH = 200
_EMPTY = object()
REQUIRED_FIELDS = ["date", "scooterId", "currentKm", "nextKm", "serviceDetails"]


@dataclass
class NotificationResult:
    success: bool
    error: Optional[str] = None


def record_service_data(record) -> Dict[str, Any]:
    """Notification fields for a ServiceRecord."""
    return {
        "date": record.service_date,
        "scooterId": record.scooter_id,
        "currentKm": record.current_km,
        "nextKm": record.next_km,
        "serviceDetails": record.service_details,
    }


def validate_service_data(service_data: Optional[Dict[str, Any]]) -> Optional[str]:
    """Error message naming missing fields, or None when the data is complete."""
    service_data = service_data or {}
    missing = [f for f in REQUIRED_FIELDS if not service_data.get(f)]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    return None


def format_service_details(details: Optional[str]) -> str:
    """Collapse whitespace and cap length for a WhatsApp template parameter."""
    if not details:
        return ""
    return " ".join(details.split())[:MAX_DETAILS_LENGTH]


def format_message_date(value: Union[str, date, datetime]) -> str:
    """Format a date as DD/MM/YYYY; unparseable strings pass through."""
    if isinstance(value, (date, datetime)):
        return value.strftime("%d/%m/%Y")
    try:
        return date_parser.isoparse(value).strftime("%d/%m/%Y")
    except (TypeError, ValueError):
        return str(value or "")


def format_km(km: Any) -> str:
    if not km and km != 0:
        return "0"
    return f"{km:,.0f}"


def build_message_payload(
    settings: Settings, service_data: Dict[str, Any]
) -> Dict[str, Any]:
    """Templated (HSM) message body for a new service."""
    parameters = [
        format_message_date(service_data["date"]),
        str(service_data["scooterId"]),
        format_km(service_data.get("currentKm")),
        format_km(service_data.get("nextKm")),
        format_service_details(service_data.get("serviceDetails")),
    ]
    return {
        "channelId": settings.messagebird_channel_id,
        "type": "hsm",
        "content": {
            "hsm": {
                "namespace": settings.messagebird_namespace,
                "templateName": settings.messagebird_template,
                "language": {"code": "en", "policy": "deterministic"},
                "components": [
                    {
                        "type": "body",
                        "parameters": [{"type": "text", "text": p} for p in parameters],
                    }
                ],
            }
        },
    }


class MessageBirdClient:
    """Sends templated messages; the session is injectable for tests."""

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
    ):
        self.settings = settings
        self.session = session or requests.Session()
        self.timeout = timeout

    def send(
        self, payload: Dict[str, Any], to_number: Optional[str]
    ) -> NotificationResult:
        if not to_number:
            return NotificationResult(False, "No destination number configured")
        try:
            response = self.session.post(
                SEND_URL,
                json={**payload, "to": to_number},
                headers={
                    "Authorization": f"AccessKey {self.settings.messagebird_api_key}"
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning("Send to %s failed: %s", to_number, e)
            return NotificationResult(False, str(e))

        if not response.ok:
            error = _error_description(response)
            logger.warning(
                "Send to %s rejected (%s): %s", to_number, response.status_code, error
            )
            return NotificationResult(False, error)

        logger.info("Notification sent to %s", to_number)
        return NotificationResult(True)


def _error_description(response: requests.Response) -> str:
    try:
        errors = response.json().get("errors") or []
    except ValueError:
        errors = []
    if errors and errors[0].get("description"):
        return errors[0]["description"]
    return "Failed to send message"


@dataclass
class ServiceNotification:
    """Outcome of notifying the primary number and, for Bolt, the Bolt number."""

    primary: NotificationResult
    bolt: NotificationResult

    @property
    def success(self) -> bool:
        return self.primary.success and self.bolt.success

    @property
    def error(self) -> Optional[str]:
        return self.primary.error or self.bolt.error


def send_service_notification(
    client: MessageBirdClient,
    service_data: Dict[str, Any],
    category: Optional[str] = None,
) -> ServiceNotification:
    """Notify the primary number; Bolt-category services also go to the Bolt number."""
    error = validate_service_data(service_data)
    if error:
        logger.warning("Notification skipped: %s", error)
        failed = NotificationResult(False, error)
        return ServiceNotification(failed, failed)

    payload = build_message_payload(client.settings, service_data)
    primary = client.send(payload, client.settings.primary_number)

    bolt = NotificationResult(True)
    if category and "bolt" in category.lower():
        bolt = client.send(payload, client.settings.bolt_number)

    return ServiceNotification(primary, bolt)


def resend_service_notification(
    client: MessageBirdClient,
    service_data: Dict[str, Any],
    number_type: str = "primary",
) -> NotificationResult:
    """Resend a service notification to one number ('primary' or 'bolt')."""
    if not service_data.get("date") or not service_data.get("scooterId"):
        return NotificationResult(False, "Invalid service data for resend")
    payload = build_message_payload(client.settings, service_data)
    if number_type == "bolt":
        return client.send(payload, client.settings.bolt_number)
    return client.send(payload, client.settings.primary_number)


class NotificationQueue:
    """
    FIFO of pending notifications drained with a fixed delay between items.

    Handler exceptions are logged and the next item is processed.
    """

    def __init__(
        self,
        handler: Callable[[Any], Any],
        delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.handler = handler
        self.delay = delay
        self.sleep = sleep
        self._items: Deque[Any] = deque()
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._running = False

    def __len__(self) -> int:
        return len(self._items)

    def enqueue(self, item: Any) -> None:
        with self._lock:
            self._items.append(item)

    def _pop(self) -> Any:
        # The worker gives up its slot under the same lock start() checks,
        # so an item enqueued after this point always gets a new worker.
        with self._lock:
            if self._items:
                return self._items.popleft()
            self._running = False
            return _EMPTY

    def drain(self) -> int:
        """Process queued items in order. Returns the number handled without error."""
        delivered = 0
        first = True
        while True:
            item = self._pop()
            if item is _EMPTY:
                return delivered
            if not first:
                self.sleep(self.delay)
            first = False
            try:
                self.handler(item)
                delivered += 1
            except Exception:
                logger.exception("Background notification error")

    def start(self) -> threading.Thread:
        """Drain in a daemon thread unless a drain is already running."""
        with self._lock:
            if self._running:
                return self._thread
            self._running = True
            self._thread = threading.Thread(
                target=self.drain, name="notification-queue", daemon=True
            )
            self._thread.start()
            return self._thread
