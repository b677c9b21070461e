"""
Tests for the Command Runner.

The tools are replaced by shell scripts in tmp_path. Each script sees
the same argument list a real tool would:
    $1 = -f, $2 = ledger path, $3 = subcommand, $4... = flags
"""

import asyncio
import os
import time
from pathlib import Path
from uuid import uuid4

import pytest

from ledger_lens.audit import AuditLogger
from ledger_lens.models.audit import AuditEventType
from ledger_lens.models.command import CommandErrorKind, CommandKind
from ledger_lens.services.runner import CommandRunner, balance_chain, register_chain


def run(runner, kind, path, correlation_id=None):
    return asyncio.run(runner.run(kind, str(path), correlation_id))


def _running(pid):
    """True while pid exists and is not a zombie waiting to be reaped."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except FileNotFoundError:
        return not Path("/proc/self").exists()
    return stat.rsplit(")", 1)[1].split()[0] != "Z"


class TestChains:
    """Tests for the fallback chain descriptors."""

    def test_balance_chain_order(self):
        chain = balance_chain("hledger", "ledger")
        assert [a.describe() for a in chain] == [
            "hledger balance -O json",
            "hledger balance",
            "ledger bal --json",
            "ledger bal -j",
            "ledger bal --format json",
            "ledger bal",
        ]
        assert [a.expects_structured for a in chain] == [True, False, True, True, True, False]

    def test_register_chain_order(self):
        chain = register_chain("hledger", "ledger")
        assert [a.binary for a in chain] == ["hledger", "hledger", "ledger", "ledger"]
        assert chain[0].args == ("register", "-O", "json")
        assert chain[2].args[:2] == ("reg", "--format")
        assert chain[2].args[2].count("|") == 2
        assert chain[3].args == ("reg",)


class TestFallback:
    """Tests for walking the chain."""

    def test_first_json_attempt_accepted(self, fake_tool, missing_tool, make_settings, ledger_file):
        hledger = fake_tool("hledger", """echo '[{"account":"Assets:Cash","total":1}]'""")
        runner = CommandRunner(make_settings(hledger, missing_tool))

        result = run(runner, CommandKind.BALANCE, ledger_file)

        assert result.success is True
        assert result.output.strip() == '[{"account":"Assets:Cash","total":1}]'
        assert len(result.attempts) == 1

    def test_non_json_output_advances_chain(self, fake_tool, missing_tool, make_settings, ledger_file):
        """Exit 0 with text on a JSON attempt is not accepted."""
        hledger = fake_tool("hledger", """
case "$*" in
  *"-O json"*) echo "hledger: unknown flag, printing text instead" ;;
  *) echo "  \\$10  Assets:Cash" ;;
esac
""")
        runner = CommandRunner(make_settings(hledger, missing_tool))

        result = run(runner, CommandKind.BALANCE, ledger_file)

        assert result.success is True
        assert result.accepted_attempt.args == ("balance",)
        assert result.attempts[0].accepted is False
        assert result.attempts[0].exit_code == 0
        assert "Assets:Cash" in result.output

    def test_missing_primary_falls_back_to_secondary(self, fake_tool, missing_tool, make_settings, ledger_file):
        ledger = fake_tool("ledger", """
if [ "$4" = "--json" ]; then
  echo '{"accounts": []}'
else
  exit 1
fi
""")
        runner = CommandRunner(make_settings(missing_tool, ledger))

        result = run(runner, CommandKind.BALANCE, ledger_file)

        assert result.success is True
        assert result.accepted_attempt.describe() == f"{ledger} bal --json"
        assert [o.error.kind for o in result.attempts[:2]] == [
            CommandErrorKind.NOT_FOUND, CommandErrorKind.NOT_FOUND,
        ]

    def test_all_binaries_missing(self, tmp_path, make_settings, ledger_file):
        primary = str(tmp_path / "no-hledger")
        secondary = str(tmp_path / "no-ledger")
        runner = CommandRunner(make_settings(primary, secondary))

        result = run(runner, CommandKind.BALANCE, ledger_file)

        assert result.success is False
        assert result.output is None
        assert result.error.kind == CommandErrorKind.NOT_FOUND
        assert result.error.binary == secondary
        assert len(result.attempts) == 6
        assert "not found" in result.error.message

    def test_last_tool_error_is_surfaced(self, fake_tool, make_settings, ledger_file):
        """Only the failure of the last attempt reaches the caller."""
        hledger = fake_tool("hledger", 'echo "hledger: parse error"; exit 3')
        ledger = fake_tool("ledger", 'echo "While parsing file: bad posting"; exit 2')
        runner = CommandRunner(make_settings(hledger, ledger))

        result = run(runner, CommandKind.REGISTER, ledger_file)

        assert result.success is False
        assert result.error.kind == CommandErrorKind.TOOL_ERROR
        assert result.error.binary == str(ledger)
        assert result.error.exit_code == 2
        assert "bad posting" in result.error.output
        assert "exit code 2" in result.error.message

    def test_stderr_is_merged(self, fake_tool, missing_tool, make_settings, ledger_file):
        hledger = fake_tool("hledger", 'echo "[1]"; echo "warning: old format" >&2')
        runner = CommandRunner(make_settings(hledger, missing_tool))

        result = run(runner, CommandKind.BALANCE, ledger_file)

        assert "warning: old format" in result.output

    def test_last_attempt_accepts_empty_output(self, fake_tool, make_settings, ledger_file):
        """Empty output is rejected until the bare invocation, which accepts it."""
        hledger = fake_tool("hledger", "exit 0")
        ledger = fake_tool("ledger", "exit 0")
        runner = CommandRunner(make_settings(hledger, ledger))

        result = run(runner, CommandKind.REGISTER, ledger_file)

        assert result.success is True
        assert result.output == ""
        assert result.accepted_attempt.args == ("reg",)
        assert len(result.attempts) == 4


class TestInvocation:
    """Tests for how a single subprocess is run."""

    def test_path_argument_is_absolute(self, fake_tool, missing_tool, make_settings, ledger_file, monkeypatch):
        hledger = fake_tool("hledger", """echo "[\\"$1\\", \\"$2\\", \\"$3\\"]" """)
        runner = CommandRunner(make_settings(hledger, missing_tool))
        monkeypatch.chdir(ledger_file.parent)

        result = run(runner, CommandKind.BALANCE, ledger_file.name)

        flag, path, subcommand = result.output.strip()[2:-2].split('", "')
        assert flag == "-f"
        assert path.startswith("/")
        assert path.endswith("/household.journal")
        assert subcommand == "balance"

    def test_columns_are_set(self, fake_tool, missing_tool, make_settings, ledger_file):
        hledger = fake_tool("hledger", 'echo "[$COLUMNS]"')
        runner = CommandRunner(make_settings(hledger, missing_tool, report_width=123))

        result = run(runner, CommandKind.BALANCE, ledger_file)

        assert result.output.strip() == "[123]"

    def test_undecodable_bytes_replaced(self, fake_tool, missing_tool, make_settings, ledger_file):
        hledger = fake_tool("hledger", r"""printf '["caf\351"]\n'""")
        runner = CommandRunner(make_settings(hledger, missing_tool))

        result = run(runner, CommandKind.BALANCE, ledger_file)

        assert result.success is True
        assert "caf\ufffd" in result.output


class TestTimeout:
    """A hung tool is killed and reported, and the chain moves on."""

    def test_hung_tool_times_out(self, fake_tool, missing_tool, make_settings, ledger_file):
        hledger = fake_tool("hledger", "sleep 30")
        runner = CommandRunner(make_settings(hledger, missing_tool, timeout_ms=300))

        started = time.monotonic()
        result = run(runner, CommandKind.BALANCE, ledger_file)
        elapsed = time.monotonic() - started

        timed_out = result.attempts[:2]
        assert [o.error.kind for o in timed_out] == [CommandErrorKind.TIMEOUT] * 2
        assert all(o.elapsed_ms < 300 + 2000 for o in timed_out)
        assert "timed out after 300ms" in timed_out[0].error.message
        # hledger attempts time out, then every ledger attempt is not found
        assert result.success is False
        assert result.error.kind == CommandErrorKind.NOT_FOUND
        assert elapsed < 10

    def test_timeout_kills_child_processes(
        self, fake_tool, missing_tool, make_settings, ledger_file, tmp_path, monkeypatch
    ):
        """Background children of a hung tool die with it."""
        pidfile = tmp_path / "children.pid"
        monkeypatch.setenv("PIDFILE", str(pidfile))
        hledger = fake_tool("hledger", """
sleep 30 &
echo $! >> "$PIDFILE"
wait
""")
        runner = CommandRunner(make_settings(hledger, missing_tool, timeout_ms=300))

        result = run(runner, CommandKind.BALANCE, ledger_file)

        assert result.attempts[0].error.kind == CommandErrorKind.TIMEOUT
        pids = [int(line) for line in pidfile.read_text().split()]
        assert len(pids) == 2

        deadline = time.monotonic() + 2
        while any(_running(pid) for pid in pids) and time.monotonic() < deadline:
            time.sleep(0.05)
        assert not any(_running(pid) for pid in pids)


class TestAudit:
    """Runner events are audited under the caller's correlation id."""

    def test_events_recorded(self, fake_tool, missing_tool, make_settings, ledger_file):
        hledger = fake_tool("hledger", """
case "$*" in
  *"-O json"*) echo "not json" ;;
  *) echo "2024-01-15|Expenses:Food|5" ;;
esac
""")
        audit_logger = AuditLogger(keep_events=True)
        runner = CommandRunner(make_settings(hledger, missing_tool), audit_logger=audit_logger)
        correlation_id = uuid4()

        run(runner, CommandKind.REGISTER, ledger_file, correlation_id)

        events = audit_logger.events_for(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.COMMAND_ATTEMPT_FAILED,
            AuditEventType.COMMAND_SUCCEEDED,
        ]
        assert events[0].details["output_snippet"] == "not json"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
