"""Application settings read from the environment and an optional .env file."""

from __future__ import annotations

import logging
import os
import re
import sys
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_DEFAULT_DURATION = timedelta(seconds=30)
_DEFAULT_INT = 5
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_DEFAULT_WEB_PASSWORD = "password"

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": Decimal("0.000000001"),
    "us": Decimal("0.000001"),
    "µs": Decimal("0.000001"),
    "μs": Decimal("0.000001"),
    "ms": Decimal("0.001"),
    "s": Decimal(1),
    "m": Decimal(60),
    "h": Decimal(3600),
}
_INT_PATTERN = re.compile(r"[+-]?[0-9]+")

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
}


@dataclass
class Config:
    """Settings of the hub."""

    server_port: str
    db_path: str
    poll_interval: timedelta
    max_workers: int
    ts_auth_key: str
    log_level: str
    kiosk_port: str
    retention_days: int
    kiosk_api_key: str
    media_dir: str
    base_url: str

    mqtt_broker_url: str
    mqtt_port: int
    mqtt_client_id: str
    mqtt_username: str
    mqtt_password: str
    mqtt_use_tls: bool
    mqtt_keep_alive: timedelta
    mqtt_clean_start: bool

    postgres_host: str
    postgres_port: int
    postgres_user: str
    postgres_password: str
    postgres_database: str
    postgres_ssl_mode: str
    use_postgres: bool

    jwt_signing_key: str
    jwt_access_token_ttl: timedelta
    jwt_refresh_token_ttl: timedelta
    jwt_issuer: str

    ca_certificate_path: str
    ca_key_path: str
    cert_validity_days: int

    web_username: str
    web_password: str


def parse_duration(s: str) -> timedelta:
    """Parse a duration such as ``30s`` or ``1h30m``; fall back to 30 seconds."""
    parsed = _parse_go_duration(s)
    if parsed is None:
        logger.warning("Invalid time interval, falling back to 30s (value=%r)", s)
        return _DEFAULT_DURATION
    return parsed


def _parse_go_duration(text: str) -> timedelta | None:
    body = text
    negative = False
    if body and body[0] in "+-":
        negative = body[0] == "-"
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        return None

    total = Decimal(0)
    position = 0
    while position < len(body):
        match = _DURATION_PART.match(body, position)
        if match is None:
            return None
        try:
            amount = Decimal(match.group(1))
        except InvalidOperation:
            return None
        total += amount * _UNIT_SECONDS[match.group(2)]
        position = match.end()

    if negative:
        total = -total
    return timedelta(microseconds=float(total * 1_000_000))


def parse_int(s: str) -> int:
    """Parse a decimal integer; fall back to 5 when the text is not one."""
    if _INT_PATTERN.fullmatch(s):
        value = int(s)
        if _INT64_MIN <= value <= _INT64_MAX:
            return value
    logger.warning("Invalid integer, falling back to 5 (value=%r)", s)
    return _DEFAULT_INT


def parse_bool(s: str) -> bool:
    """Return True for ``true``, ``1`` or ``yes``."""
    return s in ("true", "1", "yes")


def init_logger(level: str) -> int:
    """Send log records to stdout at the named level and return that level."""
    log_level = _LOG_LEVELS.get(level, logging.INFO)
    logging.basicConfig(
        stream=sys.stdout,
        level=log_level,
        format="time=%(asctime)s level=%(levelname)s msg=%(message)s",
        force=True,
    )
    return log_level


def _get_env(key: str, fallback: str) -> str:
    return os.environ.get(key, fallback)


_SETTINGS: tuple[tuple[str, str, str, Callable[[str], object]], ...] = (
    ("server_port", "SERVER_PORT", "8081", str),
    ("db_path", "DB_PATH", "freekiosk.db", str),
    ("poll_interval", "POLL_INTERVAL", "30s", parse_duration),
    ("max_workers", "MAX_WORKERS", "5", parse_int),
    ("ts_auth_key", "TS_AUTHKEY", "", str),
    ("log_level", "LOG_LEVEL", "INFO", str),
    ("kiosk_port", "KIOSK_PORT", "8080", str),
    ("retention_days", "RETENTION_DAYS", "31", parse_int),
    ("kiosk_api_key", "KIOSK_API_KEY", "", str),
    ("media_dir", "MEDIA_DIR", "media", str),
    ("base_url", "BASE_URL", "localhost:8081", str),
    ("mqtt_broker_url", "MQTT_BROKER_URL", "localhost", str),
    ("mqtt_port", "MQTT_PORT", "1883", parse_int),
    ("mqtt_client_id", "MQTT_CLIENT_ID", "freekiosk-hub", str),
    ("mqtt_username", "MQTT_USERNAME", "", str),
    ("mqtt_password", "MQTT_PASSWORD", "", str),
    ("mqtt_use_tls", "MQTT_USE_TLS", "false", parse_bool),
    ("mqtt_keep_alive", "MQTT_KEEPALIVE", "60s", parse_duration),
    ("mqtt_clean_start", "MQTT_CLEAN_START", "false", parse_bool),
    ("postgres_host", "POSTGRES_HOST", "localhost", str),
    ("postgres_port", "POSTGRES_PORT", "5432", parse_int),
    ("postgres_user", "POSTGRES_USER", "freekiosk", str),
    ("postgres_password", "POSTGRES_PASSWORD", "", str),
    ("postgres_database", "POSTGRES_DATABASE", "freekiosk", str),
    ("postgres_ssl_mode", "POSTGRES_SSLMODE", "disable", str),
    ("use_postgres", "USE_POSTGRES", "false", parse_bool),
    ("jwt_signing_key", "JWT_SIGNING_KEY", "", str),
    ("jwt_access_token_ttl", "JWT_ACCESS_TOKEN_TTL", "1h", parse_duration),
    ("jwt_refresh_token_ttl", "JWT_REFRESH_TOKEN_TTL", "720h", parse_duration),
    ("jwt_issuer", "JWT_ISSUER", "freekiosk-hub", str),
    ("ca_certificate_path", "CA_CERTIFICATE_PATH", "certs/ca.crt", str),
    ("ca_key_path", "CA_KEY_PATH", "certs/ca.key", str),
    ("cert_validity_days", "CERT_VALIDITY_DAYS", "365", parse_int),
    ("web_username", "WEB_USERNAME", "admin", str),
    ("web_password", "WEB_PASSWORD", _DEFAULT_WEB_PASSWORD, str),
)


def load() -> Config:
    """Read ``.env`` from the working directory, build the settings and set up logging."""
    dotenv_path = Path(".env")
    if dotenv_path.is_file():
        load_dotenv(dotenv_path)
    else:
        logger.info("No .env file found, using system variables or defaults")

    values = {
        field: parse(_get_env(variable, default))
        for field, variable, default, parse in _SETTINGS
    }
    cfg = Config(**values)
    init_logger(cfg.log_level)
    return cfg