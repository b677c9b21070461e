"""
Command Runner

Runs the external accounting tool and walks the fallback chain.

Guarantees:
1. One subprocess at a time, never more than one in flight
2. Every invocation is bounded by the configured timeout
3. The process (and anything it spawned) is killed and reaped on every
   exit path: success, non-zero exit, timeout, spawn failure, cancellation
4. Expected failures come back as CommandResult values, never as exceptions

Attempt acceptance:
- structured attempts need output that starts with [ or {
- text attempts need non-blank output
- the last attempt of a chain accepts any output of a zero exit
Any rejected attempt advances the chain. When the chain is exhausted,
the failure of its last attempt is reported.
"""

import asyncio
import os
import signal
import time
from pathlib import Path
from typing import Optional
from uuid import UUID

from ledger_lens.audit import AuditLogger, get_logger
from ledger_lens.config import RunnerSettings, get_settings
from ledger_lens.models.audit import AuditEventBuilder
from ledger_lens.models.command import (
    AttemptOutcome,
    CommandAttempt,
    CommandError,
    CommandErrorKind,
    CommandKind,
    CommandResult,
)
from ledger_lens.services.runner.attempts import chain_for


logger = get_logger(__name__)

_POSIX = os.name == "posix"


def looks_structured(output: str) -> bool:
    """Trimmed output starts like a JSON document."""
    return output.lstrip().startswith(("[", "{"))


async def _reap(process: asyncio.subprocess.Process) -> None:
    """Kill the process group if still running and wait for the process."""
    if process.returncode is not None:
        return
    try:
        if _POSIX:
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass
    await process.wait()


class CommandRunner:
    """
    Invokes hledger / ledger with a hard timeout and a fallback chain.

    Stateless between calls: concurrent analyses may share one runner.
    """

    def __init__(
        self,
        settings: Optional[RunnerSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._settings = settings or get_settings().runner
        self._audit_logger = audit_logger

    @property
    def timeout_ms(self) -> int:
        return self._settings.timeout_ms

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        env["COLUMNS"] = str(self._settings.report_width)
        return env

    async def execute(self, argv: list[str]) -> tuple[Optional[int], str, Optional[CommandError]]:
        """
        Run one command.

        Returns (exit_code, output, error) with stdout and stderr merged
        into output. error is None only for a zero exit.
        """
        binary = argv[0]

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                env=self._env(),
                start_new_session=_POSIX,
            )
        except FileNotFoundError:
            return None, "", CommandError(kind=CommandErrorKind.NOT_FOUND, binary=binary)
        except (OSError, ValueError) as e:
            return None, "", CommandError(
                kind=CommandErrorKind.SYSTEM_ERROR,
                binary=binary,
                detail=str(e),
            )

        try:
            stdout, _ = await asyncio.wait_for(
                process.communicate(),
                timeout=self._settings.timeout_seconds,
            )
        except asyncio.TimeoutError:
            return None, "", CommandError(
                kind=CommandErrorKind.TIMEOUT,
                binary=binary,
                detail=f"{self._settings.timeout_ms}ms",
            )
        finally:
            await _reap(process)

        output = stdout.decode("utf-8", errors="replace")
        exit_code = process.returncode

        if exit_code != 0:
            return exit_code, output, CommandError(
                kind=CommandErrorKind.TOOL_ERROR,
                binary=binary,
                exit_code=exit_code,
                output=output,
            )
        return exit_code, output, None

    async def _run_attempt(
        self,
        attempt: CommandAttempt,
        file_path: str,
        accept_any: bool,
    ) -> AttemptOutcome:
        argv = [attempt.binary, "-f", file_path, *attempt.args]

        started = time.monotonic()
        exit_code, output, error = await self.execute(argv)
        elapsed_ms = int((time.monotonic() - started) * 1000)

        if error is not None:
            accepted = False
        elif accept_any:
            accepted = True
        elif attempt.expects_structured:
            accepted = looks_structured(output)
        else:
            accepted = bool(output.strip())

        return AttemptOutcome(
            attempt=attempt,
            accepted=accepted,
            exit_code=exit_code,
            output=output,
            error=error,
            elapsed_ms=elapsed_ms,
        )

    async def run(
        self,
        kind: CommandKind,
        file_path: str,
        correlation_id: Optional[UUID] = None,
    ) -> CommandResult:
        """
        Produce the report `kind` for the ledger at file_path.

        Relative paths are made absolute before the tool sees them.
        """
        absolute_path = str(Path(file_path).expanduser().absolute())
        chain = chain_for(kind, self._settings)
        outcomes: list[AttemptOutcome] = []

        for index, attempt in enumerate(chain):
            outcome = await self._run_attempt(
                attempt,
                absolute_path,
                accept_any=index == len(chain) - 1,
            )
            outcomes.append(outcome)

            if outcome.accepted:
                logger.info(
                    "command_accepted",
                    kind=kind.value,
                    command=attempt.describe(),
                    attempt=index + 1,
                    elapsed_ms=outcome.elapsed_ms,
                )
                if self._audit_logger:
                    self._audit_logger.log(AuditEventBuilder.command_succeeded(
                        kind=kind.value,
                        command=attempt.describe(),
                        attempt_count=len(outcomes),
                        correlation_id=correlation_id,
                    ))
                return CommandResult(
                    success=True,
                    kind=kind,
                    output=outcome.output,
                    attempts=outcomes,
                )

            logger.info(
                "command_attempt_rejected",
                kind=kind.value,
                command=attempt.describe(),
                reason=outcome.rejection_reason,
            )
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.command_attempt_failed(
                    kind=kind.value,
                    command=attempt.describe(),
                    reason=outcome.rejection_reason or "rejected",
                    output=outcome.output,
                    correlation_id=correlation_id,
                ))

        last_error = outcomes[-1].error
        logger.warning(
            "command_chain_exhausted",
            kind=kind.value,
            attempts=len(outcomes),
            error=last_error.message,
        )
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.command_chain_exhausted(
                kind=kind.value,
                error_message=last_error.message,
                attempt_count=len(outcomes),
                correlation_id=correlation_id,
            ))
        return CommandResult(
            success=False,
            kind=kind,
            error=last_error,
            attempts=outcomes,
        )

    async def run_balance(self, file_path: str, correlation_id: Optional[UUID] = None) -> CommandResult:
        return await self.run(CommandKind.BALANCE, file_path, correlation_id)

    async def run_register(self, file_path: str, correlation_id: Optional[UUID] = None) -> CommandResult:
        return await self.run(CommandKind.REGISTER, file_path, correlation_id)
