"""Transaction workflow: status banner and session guard for user actions."""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from pydantic import BaseModel, Field

from .aggregation import RiskSummary, summarize
from .exceptions import (
    ExchangeRiskError,
    LedgerUnavailableError,
    SessionRequiredError,
)
from .models import ExchangeRecord, RecordStatus, TransactionStatus
from .store import RecordStore
from ..backends.base import LedgerClient
from ..config import Settings
from ..crypto.placeholder import PlaceholderEncryptor

logger = logging.getLogger(__name__)

CONNECT_NOTICE = "Please connect wallet first"


class ActionResult(BaseModel):
    """Outcome of one user action."""

    ok: bool
    message: str
    record_id: Optional[str] = None
    # True when the session guard stopped the action before any ledger call
    rejected: bool = False


class DashboardSnapshot(BaseModel):
    """Plain data handed to a rendering layer."""

    records: List[ExchangeRecord] = Field(default_factory=list)
    summary: RiskSummary = Field(default_factory=RiskSummary)
    status: TransactionStatus = Field(default_factory=TransactionStatus.idle)
    connected: bool = False
    account: Optional[str] = None


class TransactionWorkflow:
    """Runs user actions through a pending/success/error status banner.

    Only one banner exists. A new action replaces whatever is showing and
    cancels its scheduled dismissal. Finished banners hide themselves after
    ``status_display_seconds``.
    """

    def __init__(
        self,
        store: RecordStore,
        encryptor: Optional[PlaceholderEncryptor] = None,
        status_display_seconds: float = 3.0,
        processing_delay_seconds: float = 2.0,
        on_status: Optional[Callable[[TransactionStatus], None]] = None,
    ):
        self.store = store
        self.encryptor = encryptor or PlaceholderEncryptor()
        self.status_display_seconds = status_display_seconds
        self.processing_delay_seconds = processing_delay_seconds
        self.on_status = on_status

        self.last_notice: Optional[str] = None
        self._session: Optional[LedgerClient] = None
        self._writer: Optional[RecordStore] = None
        self._status = TransactionStatus.idle()
        self._dismiss_handle: Optional[asyncio.TimerHandle] = None
        # bumped on every banner change; an action only schedules the
        # dismissal of a banner that is still its own
        self._banner_generation = 0

    @classmethod
    def from_settings(
        cls,
        client: LedgerClient,
        settings: Settings,
        **kwargs,
    ) -> "TransactionWorkflow":
        return cls(
            RecordStore.from_settings(client, settings),
            status_display_seconds=settings.status_display_seconds,
            processing_delay_seconds=settings.processing_delay_seconds,
            **kwargs,
        )

    # Session

    def connect(self, session: LedgerClient) -> None:
        """Attach a signer-authenticated client for mutating actions."""
        if not session.can_sign:
            raise SessionRequiredError("Session client cannot sign transactions")
        self._session = session
        self._writer = self.store.bind(session)
        logger.info(f"Connected session {session.signer.address}")

    def disconnect(self) -> None:
        self._session = None
        self._writer = None

    @property
    def is_connected(self) -> bool:
        return self._session is not None

    def require_session(self) -> RecordStore:
        """Return the store bound to the session.

        Raises:
            SessionRequiredError: If no session is connected
        """
        if self._writer is None:
            raise SessionRequiredError(CONNECT_NOTICE)
        return self._writer

    # Derived state

    @property
    def status(self) -> TransactionStatus:
        return self._status

    @property
    def records(self) -> List[ExchangeRecord]:
        return self.store.records

    @property
    def summary(self) -> RiskSummary:
        return summarize(self.store.records)

    def snapshot(self) -> DashboardSnapshot:
        records = self.store.records
        return DashboardSnapshot(
            records=records,
            summary=summarize(records),
            status=self._status,
            connected=self.is_connected,
            account=self._session.signer.address if self._session else None,
        )

    # Banner

    def _show(self, status: TransactionStatus) -> None:
        if self._dismiss_handle is not None:
            self._dismiss_handle.cancel()
            self._dismiss_handle = None
        self._status = status
        self._banner_generation += 1
        if self.on_status is not None:
            self.on_status(status)

    def _schedule_dismiss(self) -> None:
        if self._dismiss_handle is not None:
            self._dismiss_handle.cancel()
        loop = asyncio.get_running_loop()
        self._dismiss_handle = loop.call_later(self.status_display_seconds, self._dismiss)

    def _dismiss(self) -> None:
        self._dismiss_handle = None
        self._show(TransactionStatus.idle())

    def close(self) -> None:
        """Drop any pending dismissal and hide the banner."""
        if self._dismiss_handle is not None:
            self._dismiss_handle.cancel()
            self._dismiss_handle = None
        self._status = TransactionStatus.idle()

    async def _run(
        self,
        pending_message: str,
        success_message: str,
        action: Callable[[RecordStore], Awaitable[Any]],
        reload: bool = True,
    ) -> ActionResult:
        try:
            writer = self.require_session()
        except SessionRequiredError as e:
            logger.warning(f"Action refused: {e.message}")
            self.last_notice = e.message
            return ActionResult(ok=False, message=e.message, rejected=True)

        self._show(TransactionStatus.pending(pending_message))
        try:
            outcome = await action(writer)
        except Exception as e:
            message = "Error: " + (str(e) or "Unknown error")
            logger.error(f"{pending_message.rstrip('.')} failed: {e}")
            self._show(TransactionStatus.error(message))
            self._schedule_dismiss()
            return ActionResult(ok=False, message=message)

        self._show(TransactionStatus.success(success_message))
        generation = self._banner_generation
        if reload:
            await self.refresh()
        if self._banner_generation == generation:
            self._schedule_dismiss()
        else:
            logger.debug("Banner replaced during reload; leaving its dismissal to the newer action")

        record_id = outcome.id if isinstance(outcome, ExchangeRecord) else None
        return ActionResult(ok=True, message=success_message, record_id=record_id)

    # Intents

    async def create(self, name: str, liquidity: float, risk_score: int) -> ActionResult:
        """Encrypt and submit a new exchange record."""
        payload = self.encryptor.encrypt(
            {"name": name, "liquidity": liquidity, "riskScore": risk_score}
        )

        async def action(writer: RecordStore):
            return await writer.create(name, liquidity, risk_score, payload)

        return await self._run("Submitting encrypted data...", "Data Submitted Successfully", action)

    async def _adjudicate(self, record_id: str, status: RecordStatus, verb: str, done: str) -> ActionResult:
        async def action(writer: RecordStore):
            # stands in for confidential-compute latency
            await asyncio.sleep(self.processing_delay_seconds)
            return await writer.set_status(record_id, status)

        return await self._run(f"{verb} with FHE...", done, action)

    async def verify(self, record_id: str) -> ActionResult:
        return await self._adjudicate(record_id, RecordStatus.VERIFIED, "Verifying", "Exchange verified!")

    async def reject(self, record_id: str) -> ActionResult:
        return await self._adjudicate(record_id, RecordStatus.REJECTED, "Rejecting", "Exchange rejected!")

    async def check_availability(self) -> ActionResult:
        """Probe the ledger through the session."""
        async def action(writer: RecordStore):
            if not await writer.client.is_available():
                raise LedgerUnavailableError("FHE not available", writer.client.name)

        return await self._run(
            "Checking FHE availability...", "FHE System Available", action, reload=False
        )

    async def retrieve(self) -> ActionResult:
        """Reload the record set under the status banner."""
        async def action(writer: RecordStore):
            return await self.store.load()

        return await self._run("Retrieving encrypted data...", "Data Retrieved", action, reload=False)

    async def refresh(self) -> List[ExchangeRecord]:
        """Reload without a banner. Failures are logged, never raised."""
        try:
            return await self.store.load()
        except ExchangeRiskError as e:
            logger.error(f"Error loading exchanges: {e}")
            return self.store.records
