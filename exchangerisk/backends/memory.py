"""In-memory ledger backend for ExchangeRisk."""

import asyncio
import threading
from typing import Dict, List, Optional

from .base import LedgerClient, TransactionReceipt
from ..core.exceptions import LedgerError, WriteConflictError
from ..crypto.hashing import TransactionHasher
from ..crypto.signatures import Signer


class InMemoryLedger:
    """Process-local key/value ledger shared by every client it hands out.

    ``latency`` is awaited before every read and write; even at 0 each call
    yields to the event loop, so concurrent callers interleave the way they
    would against a remote ledger.
    """

    def __init__(self, latency: float = 0.0, hash_algorithm: str = "sha256"):
        self.latency = latency
        self.available = True
        self.hasher = TransactionHasher(hash_algorithm)
        self._data: Dict[str, bytes] = {}
        self._receipts: List[TransactionReceipt] = []
        self._lock = threading.RLock()

    def connect(self, signer: Optional[Signer] = None) -> "InMemoryLedgerClient":
        """Open a client; read-only unless a signer is given."""
        return InMemoryLedgerClient(self, signer=signer)

    @property
    def receipts(self) -> List[TransactionReceipt]:
        with self._lock:
            return list(self._receipts)

    def close(self) -> None:
        """Close the ledger."""
        pass

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data)

    def read(self, key: str) -> bytes:
        with self._lock:
            return self._data.get(key, b"")

    def write(self, client: LedgerClient, key: str, value: bytes) -> TransactionReceipt:
        with self._lock:
            previous_hash = self._receipts[-1].tx_hash if self._receipts else self.hasher.genesis_hash()
            receipt = client._build_receipt(
                self.hasher, key, value, len(self._receipts) + 1, previous_hash
            )
            self._data[key] = bytes(value)
            self._receipts.append(receipt)
            return receipt

    def clear(self) -> None:
        """Clear all keys and receipts (for testing)."""
        with self._lock:
            self._data.clear()
            self._receipts.clear()


class InMemoryLedgerClient(LedgerClient):
    """Client bound to an :class:`InMemoryLedger`."""

    def __init__(self, ledger: InMemoryLedger, signer: Optional[Signer] = None, **kwargs):
        super().__init__(signer=signer, **kwargs)
        self.ledger = ledger

    @property
    def supports_conditional_write(self) -> bool:
        return True

    async def _round_trip(self, operation: str, key: Optional[str] = None) -> None:
        await asyncio.sleep(self.ledger.latency)
        if not self.ledger.available:
            raise LedgerError("Ledger is offline", operation, key=key, backend=self.name)

    async def is_available(self) -> bool:
        await asyncio.sleep(self.ledger.latency)
        return self.ledger.available

    async def get_data(self, key: str) -> bytes:
        await self._round_trip("get_data", key)
        return self.ledger.read(key)

    async def set_data(self, key: str, value: bytes) -> TransactionReceipt:
        self._require_signer(key)
        await self._round_trip("set_data", key)
        return self.ledger.write(self, key, value)

    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> TransactionReceipt:
        self._require_signer(key)
        await self._round_trip("compare_and_set", key)
        # check and write happen without yielding
        with self.ledger._lock:
            if self.ledger.read(key) != expected:
                raise WriteConflictError(key, self.name)
            return self.ledger.write(self, key, value)
