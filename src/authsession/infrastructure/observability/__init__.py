"""Observability infrastructure for structured logging."""

from authsession.infrastructure.observability.log_messages import LogMessages, LogTemplate
from authsession.infrastructure.observability.logging import (
    configure_logging,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)

__all__ = [
    "LogMessages",
    "LogTemplate",
    "configure_logging",
    "correlation_scope",
    "get_correlation_id",
    "set_correlation_id",
]
