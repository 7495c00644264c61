from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

PLACEHOLDER_SHEET_ID = "YOUR_GOOGLE_SHEET_ID_HERE"


def load_environment() -> None:
    """Load environment variables from a .env file if present."""
    env_file = os.getenv("ENV_FILE", ".env")
    env_path = Path(env_file)
    if env_path.is_file():
        load_dotenv(env_path)
    else:
        # Fallback: load .env in current working directory if ENV_FILE is missing
        default_path = Path(".env")
        if default_path.is_file():
            load_dotenv(default_path)


def _number(name: str, default: str, cast=int):
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"Environment variable {name} must be positive, got {raw!r}")
    return value


@dataclass(frozen=True)
class Settings:
    sheet_id: str = PLACEHOLDER_SHEET_ID
    tab_name: str = "Sheet1"
    poll_interval_seconds: float = 60
    credentials_path: Path = Path("credentials.json")
    token_cache_path: Path = Path("token.json")
    service_account_file: Path | None = None
    transport_url: str = "http://localhost:3000"
    transport_session: str = "default"
    transport_api_key: str | None = None
    address_suffix: str = "@c.us"
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 8085
    request_timeout: float = 30
    ready_timeout: float = 300
    log_level: str = "INFO"

    @property
    def sheet_configured(self) -> bool:
        return bool(self.sheet_id) and self.sheet_id != PLACEHOLDER_SHEET_ID

    @classmethod
    def from_env(cls) -> "Settings":
        load_environment()

        service_account_file = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")

        return cls(
            sheet_id=os.getenv("SPREADSHEET_ID", PLACEHOLDER_SHEET_ID).strip(),
            tab_name=os.getenv("SHEET_TAB_NAME", "Sheet1"),
            poll_interval_seconds=_number("POLL_INTERVAL_SECONDS", "60", float),
            credentials_path=Path(
                os.getenv("GOOGLE_CREDENTIALS_FILE", "credentials.json")
            ).expanduser().resolve(),
            token_cache_path=Path(
                os.getenv("GOOGLE_TOKEN_FILE", "token.json")
            ).expanduser().resolve(),
            service_account_file=(
                Path(service_account_file).expanduser().resolve()
                if service_account_file
                else None
            ),
            transport_url=os.getenv("WHATSAPP_API_URL", "http://localhost:3000").rstrip("/"),
            transport_session=os.getenv("WHATSAPP_SESSION", "default"),
            transport_api_key=os.getenv("WHATSAPP_API_KEY") or None,
            address_suffix=os.getenv("WHATSAPP_ADDRESS_SUFFIX", "@c.us"),
            webhook_host=os.getenv("WEBHOOK_HOST", "0.0.0.0"),
            webhook_port=_number("WEBHOOK_PORT", "8085"),
            request_timeout=_number("REQUEST_TIMEOUT", "30", float),
            ready_timeout=_number("READY_TIMEOUT", "300", float),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
