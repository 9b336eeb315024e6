"""Ledger client interface for ExchangeRisk."""

import time
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel

from ..core.exceptions import SignerRequiredError
from ..crypto.hashing import TransactionHasher
from ..crypto.signatures import Signer


class TransactionReceipt(BaseModel):
    """Confirmation of an accepted ledger write."""

    model_config = {"frozen": True}

    tx_hash: str
    key: str
    block_number: int
    timestamp: float
    previous_hash: Optional[str] = None
    signer: Optional[str] = None
    signature: Optional[str] = None


class LedgerClient(ABC):
    """Key/value ledger access, read-only or signer-authenticated.

    Empty bytes from :meth:`get_data` mean the key holds nothing; they are
    never a decoding problem.
    """

    def __init__(self, signer: Optional[Signer] = None, **kwargs):
        self.name = self.__class__.__name__
        self.signer = signer
        self._config = kwargs

    @property
    def can_sign(self) -> bool:
        return self.signer is not None

    @property
    def supports_conditional_write(self) -> bool:
        """Whether :meth:`compare_and_set` is implemented."""
        return False

    @abstractmethod
    async def is_available(self) -> bool:
        """Probe whether the ledger accepts calls.

        Returns:
            True if the ledger is reachable
        """
        pass

    @abstractmethod
    async def get_data(self, key: str) -> bytes:
        """Read the value stored under a key.

        Args:
            key: Ledger key

        Returns:
            Stored bytes, empty if the key was never written

        Raises:
            LedgerError: If the read fails
        """
        pass

    @abstractmethod
    async def set_data(self, key: str, value: bytes) -> TransactionReceipt:
        """Write a value under a key.

        Args:
            key: Ledger key
            value: Bytes to store

        Returns:
            Receipt of the accepted write

        Raises:
            SignerRequiredError: If the client is read-only
            LedgerError: If the write fails
        """
        pass

    async def compare_and_set(self, key: str, expected: bytes, value: bytes) -> TransactionReceipt:
        """Write only if the key still holds ``expected``.

        Raises:
            WriteConflictError: If the stored value differs from ``expected``
        """
        raise NotImplementedError(f"{self.name} has no conditional write")

    def close(self) -> None:
        """Release client resources."""
        pass

    def _require_signer(self, key: str) -> Signer:
        if self.signer is None:
            raise SignerRequiredError(key, self.name)
        return self.signer

    def _build_receipt(
        self,
        hasher: TransactionHasher,
        key: str,
        value: bytes,
        block_number: int,
        previous_hash: Optional[str],
    ) -> TransactionReceipt:
        """Hash and sign one write."""
        signer = self._require_signer(key)
        timestamp = time.time()
        tx_hash = hasher.calculate_hash(key, value, block_number, previous_hash, timestamp)
        return TransactionReceipt(
            tx_hash=tx_hash,
            key=key,
            block_number=block_number,
            timestamp=timestamp,
            previous_hash=previous_hash,
            signer=signer.address,
            signature=signer.sign(tx_hash.encode("utf-8")),
        )
