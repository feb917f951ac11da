"""Structured logging for the render service.

Every record leaves the process as one JSON object carrying the request id
of the HTTP request that produced it. Two kinds of fields are scrubbed before
formatting:

- Code payloads (the text being encoded) are replaced with ``[REDACTED]``.
- Client addresses are replaced with a short SHA-256 digest, so throttled
  clients can still be followed across log lines without storing addresses.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from app.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Fields whose value is the encoded payload of a code
REDACTED_KEYS_DEFAULT: frozenset[str] = frozenset({"content", "text", "payload"})

# Fields holding a client address; logged as a digest
HASHED_KEYS_DEFAULT: frozenset[str] = frozenset(
    {"client_ip", "client_key", "forwarded_for", "x-forwarded-for"}
)

# Built-in LogRecord attributes, never copied into the JSON extras
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


def set_request_id(request_id: str | None) -> None:
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


def hash_for_log(value: str) -> str:
    """Return a short SHA-256 digest so identifiers can be correlated, not read."""

    return hashlib.sha256(value.encode()).hexdigest()[:16]


class _Scrubber:
    """Applies the redact/hash rules to a field and anything nested under it."""

    def __init__(
        self,
        redact_keys: Iterable[str] | None = None,
        hash_keys: Iterable[str] | None = None,
    ) -> None:
        self.redact_keys = {k.lower() for k in (redact_keys or REDACTED_KEYS_DEFAULT)}
        self.hash_keys = {k.lower() for k in (hash_keys or HASHED_KEYS_DEFAULT)}

    def field(self, key: str, value: Any) -> Any:
        lowered = key.lower()
        if lowered in self.redact_keys:
            return REDACTED
        if lowered in self.hash_keys:
            return hash_for_log(str(value)) if value is not None else None
        return self.value(value)

    def value(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: self.field(str(k), v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return type(value)(self.value(v) for v in value)
        return value

    def extras(self, record: LogRecord) -> dict[str, Any]:
        """Scrubbed ``extra=`` fields of a record."""
        return {
            key: self.field(key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }

    @staticmethod
    def passthrough(record: LogRecord) -> dict[str, Any]:
        """``extra=`` fields of a record that a filter already scrubbed."""
        return {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }


class RequestIdFilter(logging.Filter):
    """Attach request_id from context when absent on the record."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Scrub payload and address fields on the record itself.

    Running as a handler filter means plain-text handlers and any formatter
    downstream only ever see scrubbed values.
    """

    def __init__(
        self,
        redact_keys: Iterable[str] | None = None,
        hash_keys: Iterable[str] | None = None,
    ) -> None:
        super().__init__()
        self._scrubber = _Scrubber(redact_keys, hash_keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "_scrubbed", False):
            return True
        for key, value in self._scrubber.extras(record).items():
            setattr(record, key, value)
        record._scrubbed = True
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, event and extras."""

    def __init__(self, *, ensure_ascii: bool = True) -> None:
        super().__init__()
        self.ensure_ascii = ensure_ascii
        self._scrubber = _Scrubber()

    def format(self, record: LogRecord) -> str:  # noqa: D401
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        if getattr(record, "_scrubbed", False):
            payload.update(self._scrubber.passthrough(record))
        else:
            payload.update(self._scrubber.extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    if log_settings.output.lower() != "file":
        return logging.StreamHandler(sys.stdout)

    file_path = Path(log_settings.file_path or "logs/code-image-service.log")
    file_path.parent.mkdir(parents=True, exist_ok=True)
    if log_settings.max_bytes:
        return RotatingFileHandler(
            file_path,
            maxBytes=log_settings.max_bytes,
            backupCount=log_settings.backup_count,
            encoding="utf-8",
        )
    return logging.FileHandler(file_path, encoding="utf-8")


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single scrubbing handler on the root logger.

    Args:
        log_settings: Optional log settings; defaults to global settings if omitted.
    """

    cfg = log_settings or settings.log

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())

    if cfg.format.lower() == "plain":
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, cfg.level.upper(), logging.INFO))

    # uvicorn installs its own handlers; keep its records off the root handler
    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False
