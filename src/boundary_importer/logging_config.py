from __future__ import annotations

import contextvars
import json
import logging
import time
from typing import Any

from boundary_importer.redaction import redact_string, redact_structure

# Fields bound by LogContext (archive, member) and appended to every record.
_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "log_context", default=None
)


def get_log_context() -> dict[str, Any]:
    """Get the current logging context."""
    ctx = _log_context.get()
    return ctx.copy() if ctx else {}


def _redacted_context() -> dict[str, Any]:
    return redact_structure(get_log_context())


class LogContext:
    """Bind fields to every record logged inside the block; nested blocks merge."""

    def __init__(self, **kwargs: Any):
        self.kwargs = kwargs
        self.token: contextvars.Token | None = None

    def __enter__(self) -> LogContext:
        current = get_log_context()
        current.update(self.kwargs)
        self.token = _log_context.set(current)
        return self

    def __exit__(self, *args: Any) -> None:
        if self.token is not None:
            _log_context.reset(self.token)


class TextFormatter(logging.Formatter):
    """``time | LEVEL | logger | message | archive=... member=...`` in UTC."""

    def __init__(self) -> None:
        super().__init__("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        # Redact on a copy so other handlers still see the original record.
        redacted = logging.makeLogRecord(record.__dict__)
        redacted.msg = redact_structure(record.msg)
        redacted.args = redact_structure(record.args)
        formatted = super().format(redacted)
        context = _redacted_context()
        if context:
            fields = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
            formatted = f"{formatted} | {fields}"
        return redact_string(formatted)


class JsonFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__()
        self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": self._format_message(record),
        }

        context = _redacted_context()
        if context:
            payload["context"] = {key: str(value) for key, value in context.items()}

        if record.exc_info:
            payload["exc_info"] = redact_string(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False)

    @staticmethod
    def _format_message(record: logging.LogRecord) -> str:
        msg = redact_structure(record.msg)
        args = redact_structure(record.args)
        if args:
            try:
                return redact_string(str(msg) % args)
            except (TypeError, ValueError):
                return redact_string(str(msg))
        return redact_string(str(msg))


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level or "INFO").upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(*, level: str | int | None = None, fmt: str = "text") -> None:
    """Install one stderr handler on the root logger; later calls only adjust the level."""
    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    if root.handlers:
        return
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter() if fmt.lower() == "json" else TextFormatter())
    root.addHandler(handler)


def add_logging_args(parser: Any) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        default="text",
        choices=["text", "json"],
        help="Logging format (default: text)",
    )
