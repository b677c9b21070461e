"""
Audit Models for Ledger Lens

Every significant step of an analysis is recorded as an audit event:
which tool invocations failed, which shape the output had, how many
transactions came out, and why an analysis failed.

Raw tool output only ever appears here (truncated), never in the
message returned to the user.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from ledger_lens.config import get_settings
from ledger_lens.models.ledger import utc_now


DESCRIPTION_LIMIT = 500


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Analysis lifecycle
    ANALYSIS_STARTED = "analysis_started"
    ANALYSIS_COMPLETED = "analysis_completed"
    ANALYSIS_FAILED = "analysis_failed"

    # Tool invocation
    COMMAND_ATTEMPT_FAILED = "command_attempt_failed"
    COMMAND_SUCCEEDED = "command_succeeded"
    COMMAND_CHAIN_EXHAUSTED = "command_chain_exhausted"

    # Extraction
    BALANCE_EXTRACTED = "balance_extracted"
    BALANCE_EXTRACTION_FAILED = "balance_extraction_failed"
    REGISTER_EXTRACTED = "register_extracted"
    REGISTER_DEGRADED = "register_degraded"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Correlation - all events of one analysis share this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one analysis"
    )

    description: str = Field(
        ...,
        max_length=DESCRIPTION_LIMIT,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    @field_validator('description', mode='before')
    @classmethod
    def truncate_description(cls, v):
        """Descriptions may embed paths or commands of any length."""
        if isinstance(v, str) and len(v) > DESCRIPTION_LIMIT:
            return snippet(v, limit=DESCRIPTION_LIMIT - 3)
        return v

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


def snippet(text: Optional[str], limit: Optional[int] = None) -> str:
    """First `limit` characters of some tool output, for logging."""
    if not text:
        return ""
    if limit is None:
        limit = get_settings().logging.snippet_length
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.analysis_started(path, correlation_id)
        event = AuditEventBuilder.register_degraded(reason, correlation_id)
    """

    @staticmethod
    def analysis_started(
        file_path: str,
        original_name: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_STARTED,
            correlation_id=correlation_id,
            description=f"Analysis started: {original_name or file_path}",
            details={
                "file_path": file_path,
                "original_name": original_name,
            },
        )

    @staticmethod
    def analysis_completed(
        transaction_count: int,
        breakdown: dict[str, int],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_COMPLETED,
            correlation_id=correlation_id,
            description=f"Analysis completed with {transaction_count} transactions",
            details={
                "transaction_count": transaction_count,
                "breakdown": breakdown,
            },
        )

    @staticmethod
    def analysis_failed(
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANALYSIS_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Analysis failed",
            error_message=reason,
        )

    @staticmethod
    def command_attempt_failed(
        kind: str,
        command: str,
        reason: str,
        output: Optional[str],
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_ATTEMPT_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"{kind} attempt rejected: {command}",
            error_message=reason,
            details={
                "kind": kind,
                "command": command,
                "output_snippet": snippet(output),
            },
        )

    @staticmethod
    def command_succeeded(
        kind: str,
        command: str,
        attempt_count: int,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_SUCCEEDED,
            correlation_id=correlation_id,
            description=f"{kind} output accepted from: {command}",
            details={
                "kind": kind,
                "command": command,
                "attempt_count": attempt_count,
            },
        )

    @staticmethod
    def command_chain_exhausted(
        kind: str,
        error_message: str,
        attempt_count: int,
        correlation_id: Optional[UUID]
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMMAND_CHAIN_EXHAUSTED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"All {attempt_count} {kind} attempts failed",
            error_message=error_message,
            details={
                "kind": kind,
                "attempt_count": attempt_count,
            },
        )

    @staticmethod
    def balance_extracted(
        shape: str,
        totals: dict[str, str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_EXTRACTED,
            correlation_id=correlation_id,
            description=f"Balance extracted from {shape} output",
            details={
                "shape": shape,
                "totals": totals,
            },
        )

    @staticmethod
    def balance_extraction_failed(
        shape: str,
        reason: str,
        raw: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_EXTRACTION_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Could not extract balance from {shape} output",
            error_message=reason,
            details={
                "shape": shape,
                "output_snippet": snippet(raw),
            },
        )

    @staticmethod
    def register_extracted(
        shape: str,
        transaction_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTER_EXTRACTED,
            correlation_id=correlation_id,
            description=f"Register extracted {transaction_count} transactions from {shape} output",
            details={
                "shape": shape,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def register_degraded(
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTER_DEGRADED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Register unavailable, continuing without transactions",
            error_message=reason,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
