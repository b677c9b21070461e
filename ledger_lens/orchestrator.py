"""
Main Orchestrator for Ledger Lens

This module ties the components together and defines the one
end-to-end flow:

    ledger file → balance run → extract Summary
                → register run → extract Transactions
                → AnalysisResult

DESIGN DECISION: the orchestrator is the error boundary.
- Balance data is required: without it the analysis fails
- Register data is optional: any failure degrades to no transactions
- Nothing raises past analyze(): every failure becomes one
  human-readable message in the AnalysisOutcome
- Every step is audited under one correlation id
"""

from typing import Optional
from uuid import UUID

from ledger_lens.audit import AuditLogger, create_correlation_id, get_logger
from ledger_lens.models.audit import AuditEventBuilder
from ledger_lens.models.command import CommandKind
from ledger_lens.models.ledger import (
    AnalysisOutcome,
    AnalysisResult,
    LedgerSource,
    LedgerUpload,
    Summary,
    Transaction,
    utc_now,
)
from ledger_lens.parsing import balance, register
from ledger_lens.parsing.sniffer import classify
from ledger_lens.services.runner import CommandRunner


logger = get_logger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Unexpected error while analyzing the ledger file"


class LedgerAnalyzer:
    """
    Orchestrates one analysis of a ledger file.

    Flow:
    1. Balance → run the balance chain, extract a Summary (required)
    2. Register → run the register chain, extract Transactions (optional)
    3. Merge → Summary with transactions, stamped and wrapped
    """

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._audit_logger = audit_logger or AuditLogger()
        self._runner = runner or CommandRunner(audit_logger=self._audit_logger)

    async def analyze(
        self,
        source: LedgerSource,
        correlation_id: Optional[UUID] = None,
    ) -> AnalysisOutcome:
        """
        Analyze a ledger given as a path or an upload record.

        Never raises for expected or unexpected failures.
        """
        correlation_id = correlation_id or create_correlation_id()

        if isinstance(source, LedgerUpload):
            file_path, original_name = source.path, source.original_name
        else:
            file_path, original_name = source, None

        try:
            self._audit_logger.log(AuditEventBuilder.analysis_started(
                file_path=file_path,
                original_name=original_name,
                correlation_id=correlation_id,
            ))
            return await self._analyze(file_path, correlation_id)
        except Exception as e:
            logger.exception("analysis_crashed", correlation_id=str(correlation_id))
            self._audit_logger.log(AuditEventBuilder.system_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"file_path": file_path},
                correlation_id=correlation_id,
            ))
            return self._fail(UNEXPECTED_ERROR_MESSAGE, correlation_id)

    async def _analyze(self, file_path: str, correlation_id: UUID) -> AnalysisOutcome:
        # Step 1: balance (required)
        balance_run = await self._runner.run(CommandKind.BALANCE, file_path, correlation_id)
        if not balance_run.success:
            return self._fail(
                balance_run.error.user_message,
                correlation_id,
                audit_reason=balance_run.error.message,
            )

        raw = balance_run.output
        sniffed = classify(raw)
        extraction = balance.extract(sniffed)

        if not extraction.success:
            self._audit_logger.log(AuditEventBuilder.balance_extraction_failed(
                shape=sniffed.shape.value,
                reason=extraction.error.message,
                raw=raw,
                correlation_id=correlation_id,
            ))
            return self._fail(
                f"Could not read balance output: {extraction.error.message}",
                correlation_id,
            )

        self._audit_logger.log(AuditEventBuilder.balance_extracted(
            shape=sniffed.shape.value,
            totals=_totals(extraction.summary),
            correlation_id=correlation_id,
        ))

        # Step 2: register (optional)
        transactions = await self._transactions(file_path, correlation_id)

        # Step 3: merge
        result = AnalysisResult(
            summary=extraction.summary.with_transactions(transactions),
            generated_at=utc_now(),
            raw=raw,
            correlation_id=correlation_id,
        )

        self._audit_logger.log(AuditEventBuilder.analysis_completed(
            transaction_count=len(transactions),
            breakdown=register.breakdown(transactions),
            correlation_id=correlation_id,
        ))

        return AnalysisOutcome(success=True, result=result)

    async def _transactions(self, file_path: str, correlation_id: UUID) -> list[Transaction]:
        """Register transactions, or [] if the register is unavailable."""
        register_run = await self._runner.run(CommandKind.REGISTER, file_path, correlation_id)
        if not register_run.success:
            self._audit_logger.log(AuditEventBuilder.register_degraded(
                reason=register_run.error.message,
                correlation_id=correlation_id,
            ))
            return []

        sniffed = classify(register_run.output)
        extraction = register.extract(sniffed)

        self._audit_logger.log(AuditEventBuilder.register_extracted(
            shape=sniffed.shape.value,
            transaction_count=len(extraction.transactions),
            correlation_id=correlation_id,
        ))
        return extraction.transactions

    def _fail(
        self,
        message: str,
        correlation_id: UUID,
        audit_reason: Optional[str] = None,
    ) -> AnalysisOutcome:
        """Audit the failure and return `message` to the caller."""
        self._audit_logger.log(AuditEventBuilder.analysis_failed(
            reason=audit_reason or message,
            correlation_id=correlation_id,
        ))
        return AnalysisOutcome(success=False, error_message=message)


def _totals(summary: Summary) -> dict[str, str]:
    return {
        "expenses": str(summary.total_expenses),
        "income": str(summary.total_income),
        "assets": str(summary.total_assets),
        "liabilities": str(summary.total_liabilities),
        "net_worth": str(summary.net_worth),
    }


async def analyze(
    source: LedgerSource,
    runner: Optional[CommandRunner] = None,
    audit_logger: Optional[AuditLogger] = None,
) -> AnalysisOutcome:
    """
    Analyze a ledger file with a fresh LedgerAnalyzer.

    Convenience entry point for callers that do not keep components around.
    """
    analyzer = LedgerAnalyzer(runner=runner, audit_logger=audit_logger)
    return await analyzer.analyze(source)
