"""
Shared fixtures.

Runner tests never call a real hledger or ledger: they point the
settings at small shell scripts written into tmp_path.
"""

import stat

import pytest

from ledger_lens.config import RunnerSettings


@pytest.fixture
def fake_tool(tmp_path):
    """Factory writing an executable /bin/sh script that stands in for a tool."""
    def _write(name, body):
        path = tmp_path / name
        path.write_text("#!/bin/sh\n" + body.strip() + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path
    return _write


@pytest.fixture
def ledger_file(tmp_path):
    """A ledger file path; the fake tools never read it."""
    path = tmp_path / "household.journal"
    path.write_text("2024-01-15 Groceries\n    Expenses:Food  $50\n    Assets:Checking\n")
    return path


@pytest.fixture
def missing_tool(tmp_path):
    """Path of a binary that does not exist."""
    return str(tmp_path / "no-such-tool")


@pytest.fixture
def make_settings():
    def _make(primary, secondary, timeout_ms=5000, report_width=200):
        return RunnerSettings(
            primary_binary=str(primary),
            secondary_binary=str(secondary),
            timeout_ms=timeout_ms,
            report_width=report_width,
        )
    return _make
