"""Dispatch — исполнение решений engine на host ledger.

Host ledger хранит records и балансы, проверяет подписи и коммитит
операцию атомарно. Dispatcher связывает внешние запросы с engine.
"""

from .dispatcher import BasketDispatcher
from .host import (
    ConcurrentModification,
    ContractViolation,
    HostLedger,
    InsufficientFunds,
    LedgerError,
    LedgerTransaction,
    RecordAlreadyExists,
    RecordNotFound,
    SignatureRequired,
)
from .memory_ledger import InMemoryLedger, InMemoryTransaction

__all__ = [
    "BasketDispatcher",
    # Host interface
    "HostLedger",
    "LedgerTransaction",
    # Host errors
    "LedgerError",
    "RecordNotFound",
    "RecordAlreadyExists",
    "InsufficientFunds",
    "ConcurrentModification",
    "ContractViolation",
    "SignatureRequired",
    # In-memory host
    "InMemoryLedger",
    "InMemoryTransaction",
]
