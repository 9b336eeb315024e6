"""Record index kept under a single ledger key."""

import logging
from typing import List, Optional

from .codec import decode_index, encode_index
from .exceptions import ConfigurationError, DecodeError, WriteConflictError
from ..backends.base import LedgerClient, TransactionReceipt

logger = logging.getLogger(__name__)

WRITE_MODES = ("overwrite", "conditional")


class IndexManager:
    """Reads and extends the ordered list of record ids.

    In ``overwrite`` mode :meth:`append_index` is a plain read-modify-write:
    two appends whose reads both land before either write will lose one id.
    ``conditional`` mode writes through the backend's compare-and-set and
    retries on conflict, so concurrent appends all survive.
    """

    def __init__(
        self,
        client: LedgerClient,
        index_key: str = "exchange_keys",
        write_mode: str = "overwrite",
        max_retries: int = 5,
    ):
        if write_mode not in WRITE_MODES:
            raise ConfigurationError(f"Unknown index write mode: {write_mode}")
        if write_mode == "conditional" and not client.supports_conditional_write:
            raise ConfigurationError(f"{client.name} does not support conditional writes")

        self.client = client
        self.index_key = index_key
        self.write_mode = write_mode
        self.max_retries = max_retries

    async def _read(self) -> bytes:
        return await self.client.get_data(self.index_key)

    @staticmethod
    def _parse(raw: bytes) -> List[str]:
        try:
            return decode_index(raw)
        except DecodeError as e:
            logger.error(f"Error parsing record index: {e}")
            return []

    async def load_index(self) -> List[str]:
        """Load the record ids, oldest first.

        A missing or malformed index loads as empty.
        """
        return self._parse(await self._read())

    async def append_index(self, record_id: str) -> Optional[TransactionReceipt]:
        """Add an id to the index.

        Returns:
            Receipt of the index write, or None if the id was already indexed

        Raises:
            LedgerError: If reading or writing the index fails
            WriteConflictError: If conditional retries are exhausted
        """
        if self.write_mode == "conditional":
            return await self._append_conditional(record_id)

        record_ids = await self.load_index()
        if record_id in record_ids:
            return None
        record_ids.append(record_id)
        return await self.client.set_data(self.index_key, encode_index(record_ids))

    async def _append_conditional(self, record_id: str) -> Optional[TransactionReceipt]:
        for attempt in range(1, self.max_retries + 1):
            raw = await self._read()
            record_ids = self._parse(raw)
            if record_id in record_ids:
                return None
            record_ids.append(record_id)
            try:
                return await self.client.compare_and_set(
                    self.index_key, raw, encode_index(record_ids)
                )
            except WriteConflictError:
                logger.warning(
                    f"Index write conflict for {record_id} "
                    f"(attempt {attempt}/{self.max_retries})"
                )
        raise WriteConflictError(self.index_key, self.client.name, attempts=self.max_retries)
