"""Settings read from environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


@dataclass
class Settings:
    """Runtime configuration. Secrets come from the environment, never source."""

    data_file: Path = Path("fleet.yaml")
    messagebird_api_key: Optional[str] = None
    messagebird_channel_id: Optional[str] = None
    messagebird_namespace: Optional[str] = None
    messagebird_template: str = "LA Rentals Service Update"
    primary_number: Optional[str] = None
    bolt_number: Optional[str] = None
    notification_delay: float = 1.0
    secret_key: str = "dev-secret-key-change-in-prod"

    @property
    def notifications_enabled(self) -> bool:
        return bool(
            self.messagebird_api_key
            and self.messagebird_channel_id
            and self.primary_number
        )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables (os.environ by default)."""
    env = os.environ if environ is None else environ
    defaults = Settings()
    return Settings(
        data_file=Path(env.get("FLEET_DATA_FILE", str(defaults.data_file))),
        messagebird_api_key=env.get("MESSAGEBIRD_API_KEY"),
        messagebird_channel_id=env.get("MESSAGEBIRD_CHANNEL_ID"),
        messagebird_namespace=env.get("MESSAGEBIRD_NAMESPACE"),
        messagebird_template=env.get(
            "MESSAGEBIRD_TEMPLATE", defaults.messagebird_template
        ),
        primary_number=env.get("NOTIFY_PRIMARY_NUMBER"),
        bolt_number=env.get("NOTIFY_BOLT_NUMBER"),
        notification_delay=float(
            env.get("NOTIFY_DELAY_SECONDS", defaults.notification_delay)
        ),
        secret_key=env.get("SECRET_KEY", defaults.secret_key),
    )
