"""Audit logging package."""

from ledger_lens.audit.logger import (
    AuditLogger,
    configure_logging,
    configure_structlog,
    create_correlation_id,
    get_logger,
)

__all__ = [
    "AuditLogger",
    "configure_logging",
    "configure_structlog",
    "create_correlation_id",
    "get_logger",
]
