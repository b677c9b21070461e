"""
Data Models Package

This package contains all Pydantic models used in Ledger Lens.
Everything the pipeline produces conforms to these schemas.
"""

from ledger_lens.models.ledger import (
    AccountClass,
    AnalysisError,
    AnalysisOutcome,
    AnalysisResult,
    BalanceExtraction,
    CategoryAmount,
    ExtractionError,
    LedgerLensError,
    LedgerSource,
    LedgerUpload,
    RegisterExtraction,
    Shape,
    Summary,
    Transaction,
)
from ledger_lens.models.command import (
    AttemptOutcome,
    CommandAttempt,
    CommandError,
    CommandErrorKind,
    CommandKind,
    CommandResult,
)
from ledger_lens.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AccountClass",
    "AnalysisError",
    "AnalysisOutcome",
    "AnalysisResult",
    "BalanceExtraction",
    "CategoryAmount",
    "ExtractionError",
    "LedgerLensError",
    "LedgerSource",
    "LedgerUpload",
    "RegisterExtraction",
    "Shape",
    "Summary",
    "Transaction",
    # Command models
    "AttemptOutcome",
    "CommandAttempt",
    "CommandError",
    "CommandErrorKind",
    "CommandKind",
    "CommandResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
