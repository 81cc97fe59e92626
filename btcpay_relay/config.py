import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

# Force-load .env (process environment wins)
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"

DEFAULT_PORT = 8081


@dataclass(frozen=True)
class Settings:
    webhook_secret: str
    callback_url: str
    callback_token: str
    btcpay_base_url: str
    btcpay_api_key: str
    btcpay_store_id: str
    allowed_origin: Optional[str] = None
    port: int = DEFAULT_PORT
    log_level: str = "INFO"


def _first(env: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return None


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Read settings from the environment, failing fast on anything required.

    When ``env`` is omitted the project ``.env`` file is loaded into
    ``os.environ`` first. Every missing variable is reported at once.
    """
    if env is None:
        load_dotenv(dotenv_path=ENV_PATH)
        env = os.environ

    required = {
        "webhook_secret": ("WEBHOOK_SECRET",),
        "callback_url": ("BACKEND_CALLBACK_URL", "DJANGO_CALLBACK_URL"),
        "callback_token": ("BACKEND_CALLBACK_TOKEN", "DJANGO_CALLBACK_TOKEN"),
        "btcpay_base_url": ("BTCPAY_BASE_URL",),
        "btcpay_api_key": ("BTCPAY_API_KEY",),
        "btcpay_store_id": ("BTCPAY_STORE_ID",),
    }
    values = {}
    missing = []
    for field_name, names in required.items():
        value = _first(env, *names)
        if not value:
            missing.append(names[0])
        values[field_name] = value

    if missing:
        raise RuntimeError(f"{', '.join(missing)} must be set. Check your .env file.")

    port = env.get("PORT") or str(DEFAULT_PORT)
    try:
        values["port"] = int(port)
    except ValueError:
        raise RuntimeError(f"PORT must be an integer, got {port!r}")

    values["allowed_origin"] = env.get("ALLOWED_ORIGIN") or None
    values["log_level"] = (env.get("LOGLEVEL") or "INFO").upper()
    return Settings(**values)
