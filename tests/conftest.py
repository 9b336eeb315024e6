"""
Pytest configuration and shared fixtures for ExchangeRisk tests.
"""

import pytest

from exchangerisk.backends.memory import InMemoryLedger
from exchangerisk.core.models import ExchangeRecord, RecordStatus
from exchangerisk.core.store import RecordStore
from exchangerisk.core.workflow import TransactionWorkflow
from exchangerisk.crypto.signatures import Ed25519Signer


# =============================================================================
# LEDGER FIXTURES
# =============================================================================

@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger()


@pytest.fixture
def signer() -> Ed25519Signer:
    return Ed25519Signer()


@pytest.fixture
def reader(ledger):
    """Read-only client."""
    return ledger.connect()


@pytest.fixture
def session(ledger, signer):
    """Signer-authenticated client."""
    return ledger.connect(signer=signer)


@pytest.fixture
def store(session) -> RecordStore:
    return RecordStore(session)


# =============================================================================
# WORKFLOW FIXTURES
# =============================================================================

@pytest.fixture
def workflow(reader, session):
    wf = TransactionWorkflow(
        RecordStore(reader),
        status_display_seconds=0.05,
        processing_delay_seconds=0,
    )
    wf.connect(session)
    yield wf
    wf.close()


# =============================================================================
# RECORD FACTORY
# =============================================================================

@pytest.fixture
def make_record():
    """Factory for records with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides) -> ExchangeRecord:
        counter["n"] += 1
        fields = {
            "id": f"1700000000000-rec{counter['n']:04d}",
            "name": f"Exchange_{counter['n']}",
            "liquidity": 10.0 * counter["n"],
            "risk_score": 5,
            "encrypted_payload": f"ENC-{counter['n']}",
            "created_at": 1_700_000_000 + counter["n"] * 86_400,
            "status": RecordStatus.PENDING,
        }
        fields.update(overrides)
        return ExchangeRecord(**fields)

    return _make
