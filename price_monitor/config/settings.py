# price_monitor/config/settings.py

"""Central configuration for the price_monitor bot."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

from price_monitor.models.errors import ConfigurationError

load_dotenv()


class Settings:
    """Central configuration for the price_monitor bot."""

    # --- Scraping ---
    REQUEST_DELAY: float = 1.0          # Seconds between requests
    REQUEST_TIMEOUT: int = 15           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures

    # --- Resilience ---
    CIRCUIT_BREAKER_THRESHOLD: int = 3  # Consecutive failures to trip
    CIRCUIT_BREAKER_COOLDOWN: float = 300.0
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "User-Agent": "Mozilla/5.0",
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,*/*;q=0.8"
        ),
        "Accept-Language": "es-AR,es;q=0.9",
    }

    # --- Vendor ---
    HOMEPAGE: str = "https://www.lareinacorrientes.com.ar/"
    CATEGORIES: dict[str, str] = {
        "cerdo": (
            "https://www.lareinacorrientes.com.ar"
            "/categoria-producto/carniceria/cerdo/"
        ),
        "pollo": (
            "https://www.lareinacorrientes.com.ar"
            "/categoria-producto/carniceria/pollo/"
        ),
    }

    # --- Schedule / locale ---
    TIMEZONE: str = "America/Argentina/Buenos_Aires"
    SCHEDULE_CRON: str = "0 9 * * *"
    SCHEDULE_DESCRIPTION: str = "Monitoreo diario a las 9:00 AM"

    # --- Transport ---
    BOT_TOKEN: str = os.getenv("BOT_TOKEN", "")
    CHAT_ID: str = os.getenv("CHAT_ID", "")

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "price_monitor" / "config" / "selectors.json"
    )
    DATA_DIR: Path = Path(os.getenv("PRICE_MONITOR_DATA_DIR", BASE_DIR / "data"))
    SNAPSHOT_PATH: Path = DATA_DIR / "precios.json"
    LAST_RUN_PATH: Path = DATA_DIR / "last_run.json"
    LOGS_DIR: Path = BASE_DIR / "logs"

    @classmethod
    def validate_transport(cls) -> None:
        """Fail fast when the Telegram credentials are missing."""
        missing = [
            name
            for name in ("BOT_TOKEN", "CHAT_ID")
            if not getattr(cls, name)
        ]
        if missing:
            raise ConfigurationError(
                f"Missing configuration in .env: {', '.join(missing)}"
            )
