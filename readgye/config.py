"""Environment-based client configuration."""

import os
from typing import Optional

from dotenv import load_dotenv
from msgspec import Struct


DEFAULT_POLL_INTERVAL_SECONDS = 8.0


class ClientConfig(Struct, kw_only=True):
    """Runtime configuration for the readgye client."""
    api_base_url: str = "http://localhost:8000"
    guest_email: str = ""
    guest_password: str = ""
    guest_name: str = "게스트"
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    request_timeout_seconds: float = 30.0
    storage_path: str = "readgye_client.db"
    log_level: str = "INFO"
    log_dir: Optional[str] = "logs"
    max_upload_mb: int = 10
    max_pdf_pages: int = 30

    @property
    def is_guest_configured(self) -> bool:
        return bool(self.guest_email)


def load_config(env_file: Optional[str] = None, **overrides) -> ClientConfig:
    """Load configuration from the environment (and an optional .env file).

    Keyword overrides take precedence over environment values; ``None``
    overrides are ignored so argparse defaults can be passed through.
    """
    load_dotenv(env_file)

    values = {
        "api_base_url": os.getenv("API_BASE_URL", "http://localhost:8000").rstrip("/"),
        "guest_email": os.getenv("GUEST_EMAIL", ""),
        "guest_password": os.getenv("GUEST_PASSWORD", ""),
        "poll_interval_seconds": float(
            os.getenv("POLL_INTERVAL_SECONDS", str(DEFAULT_POLL_INTERVAL_SECONDS))
        ),
        "request_timeout_seconds": float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30")),
        "storage_path": os.getenv("STORAGE_PATH", "readgye_client.db"),
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
        "log_dir": os.getenv("LOG_DIR", "logs") or None,
        "max_upload_mb": int(os.getenv("MAX_UPLOAD_MB", "10")),
        "max_pdf_pages": int(os.getenv("MAX_PDF_PAGES", "30")),
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return ClientConfig(**values)
