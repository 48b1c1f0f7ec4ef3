from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


_DEFAULT_TEMPLATE = os.path.join(os.path.dirname(__file__), "templates", "verification_email.html")


@dataclass(frozen=True)
class Settings:
    # Gateway
    gateway_admin_url: str = os.getenv("API_GATEWAY_URL", "http://localhost:8001")
    gateway_timeout_s: int = _env_int("MSREG_GATEWAY_TIMEOUT_S", 10)
    skip_registration: bool = _env_bool("MSREG_SKIP_REGISTRATION", False)

    # Service configuration (JSON file with microservice/services/mail blocks)
    config_file: str = os.getenv("SERVICE_CONFIG_FILE", "/run/secrets/microservice_registration_config.json")
    service_timeout_s: int = _env_int("MSREG_SERVICE_TIMEOUT_S", 10)
    email_template: str = os.getenv("MSREG_EMAIL_TEMPLATE", _DEFAULT_TEMPLATE)

    # Logging
    log_level: str = os.getenv("MSREG_LOG_LEVEL", "INFO")
    log_json: bool = _env_bool("MSREG_LOG_JSON", False)


settings = Settings()
