"""
Audit Logger

Every significant step of an analysis is logged as a structured event.
The audit logger:
- Logs through structlog (JSON lines by default)
- Supports correlation IDs to trace the events of one analysis

Importing this module only configures structlog. Root logger handlers
belong to the host application; call configure_logging() to install one.
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledger_lens.config import get_settings
from ledger_lens.models.audit import AuditEvent, AuditSeverity


def configure_structlog(json_output: Optional[bool] = None) -> None:
    """Configure the structlog processor chain on top of stdlib logging."""
    if json_output is None:
        json_output = get_settings().logging.json_output

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=False)
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(
    level: Optional[str] = None,
    json_output: Optional[bool] = None,
    force: bool = True,
) -> None:
    """
    Configure structlog and the stdlib root handler.

    For standalone use (scripts, tests). Arguments default to
    LoggingSettings. With force=False an already configured root logger
    is left alone.
    """
    level = (level or get_settings().logging.level).upper()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level, logging.INFO),
        force=force,
    )
    configure_structlog(json_output)


# Configure structlog for local logging
configure_structlog()


def get_logger(name: str):
    """structlog logger bound to a module name."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Writes every event to the structured log. With keep_events=True the
    events are also collected in `events`, which is how tests and
    diagnostics inspect a run.
    """

    def __init__(self, keep_events: bool = False):
        self._logger = get_logger("ledger_lens.audit")
        self._keep_events = keep_events
        self.events: list[AuditEvent] = []

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._keep_events:
            self.events.append(event)

    def events_for(self, correlation_id: UUID) -> list[AuditEvent]:
        """Collected events of one analysis, in order."""
        return [e for e in self.events if e.correlation_id == correlation_id]


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of an analysis and pass it through
    all subsequent operations.
    """
    return uuid4()
