"""Record store: assembles the record set from the ledger."""

import logging
import time
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from .codec import decode_record, encode_record, restatus_record
from .exceptions import (
    DecodeError,
    LedgerError,
    LedgerUnavailableError,
    RecordNotFoundError,
    ValidationError,
)
from .index import IndexManager
from .models import ExchangeRecord, RecordDraft, RecordStatus, generate_record_id
from ..backends.base import LedgerClient
from ..config import Settings

logger = logging.getLogger(__name__)


class RecordStore:
    """Loads, creates and adjudicates exchange records on a ledger.

    The store keeps the last loaded record set in :attr:`records`. Each
    :meth:`load` replaces that list wholesale; nothing patches it in place.
    """

    def __init__(
        self,
        client: LedgerClient,
        index_key: str = "exchange_keys",
        record_key_prefix: str = "exchange_",
        index_write_mode: str = "overwrite",
        index_max_retries: int = 5,
    ):
        self.client = client
        self.record_key_prefix = record_key_prefix
        self.index = IndexManager(
            client,
            index_key=index_key,
            write_mode=index_write_mode,
            max_retries=index_max_retries,
        )
        self._records: List[ExchangeRecord] = []

    @classmethod
    def from_settings(cls, client: LedgerClient, settings: Settings) -> "RecordStore":
        return cls(
            client,
            index_key=settings.index_key,
            record_key_prefix=settings.record_key_prefix,
            index_write_mode=settings.index_write_mode,
            index_max_retries=settings.index_max_retries,
        )

    def bind(self, client: LedgerClient) -> "RecordStore":
        """Return a store with the same key layout on another client."""
        return RecordStore(
            client,
            index_key=self.index.index_key,
            record_key_prefix=self.record_key_prefix,
            index_write_mode=self.index.write_mode,
            index_max_retries=self.index.max_retries,
        )

    @property
    def records(self) -> List[ExchangeRecord]:
        """Records from the last load, newest first."""
        return list(self._records)

    def record_key(self, record_id: str) -> str:
        key = self.record_key_prefix + record_id
        if key == self.index.index_key:
            raise ValidationError(
                f"Record id '{record_id}' collides with the index key",
                field="id",
                value=record_id,
            )
        return key

    async def load(self) -> List[ExchangeRecord]:
        """Rebuild the record set from the index.

        Records that fail to fetch or decode are logged and left out.

        Returns:
            The loaded records, newest first

        Raises:
            LedgerUnavailableError: If the ledger reports itself unavailable
            LedgerError: If the index itself cannot be read
        """
        if not await self.client.is_available():
            raise LedgerUnavailableError("Ledger is not available", self.client.name)

        records = []
        seen = set()
        for record_id in await self.index.load_index():
            if record_id in seen:
                logger.warning(f"Exchange {record_id} is indexed more than once")
                continue
            seen.add(record_id)
            try:
                raw = await self.client.get_data(self.record_key(record_id))
            except (LedgerError, ValidationError) as e:
                logger.error(f"Error loading exchange {record_id}: {e}")
                continue

            if not raw:
                logger.warning(f"Indexed exchange {record_id} has no stored data")
                continue

            try:
                records.append(decode_record(raw, record_id=record_id))
            except DecodeError as e:
                logger.error(f"Error parsing exchange data for {record_id}: {e}")

        records.sort(key=lambda r: r.created_at, reverse=True)
        self._records = records
        logger.debug(f"Loaded {len(records)} exchange record(s)")
        return list(records)

    async def get(self, record_id: str) -> ExchangeRecord:
        """Fetch one record directly from the ledger.

        Raises:
            RecordNotFoundError: If nothing is stored under the id
            DecodeError: If the stored bytes are malformed
        """
        raw = await self.client.get_data(self.record_key(record_id))
        if not raw:
            raise RecordNotFoundError(record_id)
        return decode_record(raw, record_id=record_id)

    async def create(
        self,
        name: str,
        liquidity: float,
        risk_score: int,
        payload: str,
        now: Optional[float] = None,
    ) -> ExchangeRecord:
        """Write a new pending record and index it.

        The record is written before the index. If the index write fails the
        record stays on the ledger unreachable from :meth:`load`.

        Raises:
            ValidationError: If the input is out of range
            LedgerError: If either write fails
        """
        try:
            draft = RecordDraft(
                name=name,
                liquidity=liquidity,
                risk_score=risk_score,
                encrypted_payload=payload,
            )
        except PydanticValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error.get("loc") else None
            raise ValidationError(f"Invalid exchange data: {error['msg']}", field=field, value=error.get("input"))

        now = time.time() if now is None else now
        record = draft.to_record(generate_record_id(now), int(now))
        key = self.record_key(record.id)

        await self.client.set_data(key, encode_record(record))
        logger.info(f"Stored exchange {record.id} ({record.name})")

        try:
            await self.index.append_index(record.id)
        except LedgerError as e:
            logger.error(f"Exchange {record.id} stored but not indexed: {e}")
            raise
        return record

    async def set_status(self, record_id: str, status: RecordStatus) -> ExchangeRecord:
        """Rewrite a record with a new status.

        Raises:
            RecordNotFoundError: If nothing is stored under the id
            DecodeError: If the stored bytes are malformed
            LedgerError: If the write fails
        """
        status = RecordStatus(status)
        key = self.record_key(record_id)
        raw = await self.client.get_data(key)
        if not raw:
            raise RecordNotFoundError(record_id)

        record = decode_record(raw, record_id=record_id)
        if record.status.is_terminal and record.status is not status:
            logger.warning(f"Exchange {record_id} moves from {record.status.value} to {status.value}")

        await self.client.set_data(key, restatus_record(raw, status, record_id=record_id))
        logger.info(f"Exchange {record_id} marked {status.value}")
        return record.with_status(status)
