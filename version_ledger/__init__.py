# version_ledger/__init__.py
"""
Version Ledger — shared registry of components, released versions, test setups and test results.
The whole ledger is one JSON document kept in a revisioned store and updated by compare-and-swap.
"""

__version__ = "0.1.0"

from version_ledger.core.types import Component, LedgerDocument, Setup, TestResult, Version
from version_ledger.engine.engine import LedgerEngine, LedgerState, MutationResult
from version_ledger.engine.session import LedgerSession
from version_ledger.storage import create_store

__all__ = [
    "Component", "LedgerDocument", "Setup", "TestResult", "Version",
    "LedgerEngine", "LedgerState", "MutationResult", "LedgerSession", "create_store",
]
