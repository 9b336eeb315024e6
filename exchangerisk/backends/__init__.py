"""Ledger backend implementations for ExchangeRisk."""

from .base import LedgerClient, TransactionReceipt
from .memory import InMemoryLedger, InMemoryLedgerClient


# Lazy import keeps sqlite3 out of memory-only setups
def __getattr__(name):
    if name == 'SQLiteLedger':
        from .sqlite import SQLiteLedger
        return SQLiteLedger
    elif name == 'SQLiteLedgerClient':
        from .sqlite import SQLiteLedgerClient
        return SQLiteLedgerClient
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")


__all__ = [
    'LedgerClient',
    'TransactionReceipt',
    'InMemoryLedger',
    'InMemoryLedgerClient',
    'SQLiteLedger',
    'SQLiteLedgerClient',
]
