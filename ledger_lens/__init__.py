"""
Ledger Lens - Source Package

Runs a plain-text accounting ledger through hledger (or ledger-cli)
and turns whatever the tool prints into normalized financial aggregates.

DESIGN PRINCIPLES:
1. The tool is never trusted to be installed, fast, or consistent
2. Every output shape decodes to the same canonical records
3. Expected failures are values, not exceptions
4. Every step must be auditable
"""

__version__ = "1.0.0"
__author__ = "Ledger Lens Team"
