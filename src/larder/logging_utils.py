"""Logging setup shared by the CLI and the API server, with secret redaction."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Iterable, List, Pattern, Sequence, Tuple

if TYPE_CHECKING:
    from larder.config import Settings

REDACTED = "[redacted]"

# Each pattern keeps group 1 and masks group 2.
_TOKEN_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"(Bearer\s+)([A-Za-z0-9\-._~+/=]+)", re.IGNORECASE),
    re.compile(r"(api_token=)([^&\s]+)", re.IGNORECASE),
    re.compile(r"(access_token=)([^&\s]+)", re.IGNORECASE),
    re.compile(r"(X-API-Key[=:]\s*)([^&\s]+)", re.IGNORECASE),
)

# Record attributes copied into JSON output when a caller passes them via ``extra``.
STRUCTURED_FIELDS: Tuple[str, ...] = ("request_id", "device_id", "barcode", "collection")

_FOREIGN_LOGGERS: Tuple[str, ...] = ("uvicorn", "uvicorn.error", "uvicorn.access")
# httpx logs full request URLs at INFO.
_CHATTY_LOGGERS: Tuple[str, ...] = ("httpx", "httpcore")


def redact(value: str, secrets: Sequence[str] = ()) -> str:
    """Mask token-looking substrings and any literal ``secrets`` in ``value``."""

    for pattern in _TOKEN_PATTERNS:
        value = pattern.sub(r"\1" + REDACTED, value)
    for secret in secrets:
        if secret:
            value = value.replace(secret, REDACTED)
    return value


class SensitiveDataFilter(logging.Filter):
    """Rewrite log records so tokens never reach a handler."""

    def __init__(self, secrets: Iterable[str]):
        super().__init__()
        self._secrets: List[str] = [secret.strip() for secret in secrets if secret and secret.strip()]

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - standard interface
        message = record.getMessage()
        cleaned = redact(message, self._secrets)
        if cleaned != message:
            record.msg = cleaned
            record.args = ()

        for key, value in list(vars(record).items()):
            if key != "msg" and isinstance(value, str):
                setattr(record, key, redact(value, self._secrets))
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - override
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in STRUCTURED_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=True)


def _build_formatter(fmt: str) -> logging.Formatter:
    if (fmt or "plain").lower() == "json":
        return JsonFormatter()
    return logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S%z",
    )


def configure_logging(level_name: str, fmt: str, secrets: Iterable[str]) -> None:
    """Install a single redacting stream handler on the root logger."""

    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    redaction = SensitiveDataFilter(secrets)

    handler = logging.StreamHandler()
    handler.setFormatter(_build_formatter(fmt))
    handler.addFilter(redaction)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    logging.captureWarnings(True)

    for name in _FOREIGN_LOGGERS:
        foreign = logging.getLogger(name)
        foreign.handlers = []
        foreign.setLevel(level)
        foreign.propagate = True
        foreign.addFilter(redaction)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def configure_from_settings(settings: "Settings") -> None:
    """Apply the logging options carried by application settings."""

    configure_logging(settings.log_level, settings.log_format, [settings.api_token or ""])


__all__ = [
    "JsonFormatter",
    "REDACTED",
    "STRUCTURED_FIELDS",
    "SensitiveDataFilter",
    "configure_from_settings",
    "configure_logging",
    "redact",
]
