"""Logging setup for the session package.

Hey future me - two output modes:
- text (default): one line per record, exception chains printed compactly
- JSON (log_json=True): python-json-logger, one object per line, for log shippers

Every record gets a correlation_id. It groups the lines of one unit of work,
e.g. one expiry-worker cycle (refresh attempt, SETUSER, teardown all share it).
"""

import contextvars
import logging
import sys
import traceback
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from pythonjsonlogger.json import JsonFormatter

_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "authsession_correlation_id", default=""
)

TEXT_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s"
JSON_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# Loggers that are chatty at INFO and drown out session events
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def get_correlation_id() -> str:
    """Current correlation ID ("" outside any unit of work)."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set the correlation ID for the current context, generating one if None."""
    value = correlation_id or uuid.uuid4().hex
    _correlation_id.set(value)
    return value


@contextmanager
def correlation_scope(prefix: str) -> Iterator[str]:
    """Tag every record logged inside the block with a fresh "<prefix>-<id>".

    The previous ID is restored on exit, so scopes nest.

    Example:
        with correlation_scope("expiry-check"):
            await manager.check_access_token_is_expired(refresh)
    """
    value = f"{prefix}-{uuid.uuid4().hex[:8]}"
    token = _correlation_id.set(value)
    try:
        yield value
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Stamp record.correlation_id from the current context."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


def _exception_chain(exc: BaseException) -> list[BaseException]:
    # Root cause first; guard against cycles in __context__
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain[::-1]


def _package_frames(exc: BaseException) -> Iterator[traceback.FrameSummary]:
    for frame in traceback.extract_tb(exc.__traceback__):
        if "authsession" in frame.filename and "/site-packages/" not in frame.filename:
            yield frame


class CompactExceptionFormatter(logging.Formatter):
    """Text formatter that prints exception chains root cause first.

    Only frames from this package are shown. A failed refresh reads like:

        ╰─► ConnectError: All connection attempts failed
            File "session_manager.py", line 386, in check_access_token_is_expired
              result = await refresh(payload.refresh_token)
        ╰─► TokenRefreshException: All connection attempts failed
    """

    def formatException(self, ei: Any) -> str:
        exc = ei[1]
        if exc is None:
            return ""

        lines: list[str] = []
        for link in _exception_chain(exc):
            lines.append(f"╰─► {type(link).__name__}: {link}")
            for frame in _package_frames(link):
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class SessionJsonFormatter(JsonFormatter):
    """JSON formatter that only emits correlation_id when one is set."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        if not log_record.get("correlation_id"):
            log_record.pop("correlation_id", None)


def build_json_formatter(app_name: str = "authsession") -> SessionJsonFormatter:
    """JSON formatter with short field names and the app name on every line."""
    return SessionJsonFormatter(
        JSON_FORMAT,
        rename_fields={"asctime": "timestamp", "levelname": "level", "name": "logger"},
        static_fields={"app": app_name},
        datefmt="%Y-%m-%dT%H:%M:%S",
    )


# Listen future me, call this ONCE at startup (create_session_manager does it when asked to).
# It replaces the root logger's handlers, so a library that only embeds SessionManager should
# NOT call it - leave logging setup to the host application.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "authsession",
) -> None:
    """Configure root logging.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        json_format: Emit JSON lines instead of text
        app_name: Added as "app" to every JSON line
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        build_json_formatter(app_name)
        if json_format
        else CompactExceptionFormatter(fmt=TEXT_FORMAT, datefmt="%H:%M:%S")
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured (level=%s, json=%s, app=%s)", log_level, json_format, app_name
    )
