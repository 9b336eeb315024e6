"""Transaction hashing for ledger receipts."""

import hashlib
import json
from typing import Any, Dict, Optional

from ..core.exceptions import ConfigurationError


class TransactionHasher:
    """Computes chained hashes for accepted ledger writes."""

    SUPPORTED_ALGORITHMS = {
        "sha256": hashlib.sha256,
        "sha512": hashlib.sha512,
        "sha3_256": hashlib.sha3_256,
    }

    def __init__(self, algorithm: str = "sha256"):
        if algorithm not in self.SUPPORTED_ALGORITHMS:
            raise ConfigurationError(
                f"Unsupported algorithm: {algorithm}. "
                f"Supported: {list(self.SUPPORTED_ALGORITHMS.keys())}"
            )

        self.algorithm = algorithm
        self._hash_func = self.SUPPORTED_ALGORITHMS[algorithm]

    def calculate_hash(
        self,
        key: str,
        value: bytes,
        block_number: int,
        previous_hash: Optional[str],
        timestamp: float,
    ) -> str:
        """Calculate the hash of one write.

        Args:
            key: Ledger key written
            value: Bytes written
            block_number: Position of the write in the ledger
            previous_hash: Hash of the preceding write, None for the first
            timestamp: Acceptance time in epoch seconds

        Returns:
            Hex-encoded hash string
        """
        payload: Dict[str, Any] = {
            "key": key,
            "value": self._hash_func(value).hexdigest(),
            "block": block_number,
            "previous_hash": previous_hash,
            "timestamp": timestamp,
        }
        canonical_json = json.dumps(payload, sort_keys=True, separators=(',', ':'))

        hasher = self._hash_func()
        hasher.update(canonical_json.encode('utf-8'))
        return hasher.hexdigest()

    def genesis_hash(self) -> str:
        """Hash that the first write chains to."""
        genesis_data = {
            "genesis": True,
            "algorithm": self.algorithm,
        }
        canonical_json = json.dumps(genesis_data, sort_keys=True)
        hasher = self._hash_func()
        hasher.update(canonical_json.encode('utf-8'))
        return hasher.hexdigest()
