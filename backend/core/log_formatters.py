"""
Log formatters referenced from ``core.settings.base.LOGGING``.

Every module logs with ``extra={...}`` context (action, component, ids);
these formatters make that context visible in console and file output.
"""

import json
import logging

# Attributes present on every LogRecord; anything else came from ``extra``.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime"}


def _extra_fields(record):
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class StructuredFormatter(logging.Formatter):
    """Human readable line followed by ``key=value`` pairs from ``extra``."""

    def format(self, record):
        base = super().format(record)
        extra = _extra_fields(record)
        if not extra:
            return base
        context = " ".join(f"{key}={value!r}" for key, value in sorted(extra.items()))
        return f"{base} | {context}"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, for log aggregation in production."""

    def format(self, record):
        payload = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)
