"""ExchangeRisk - Confidential exchange risk records on a key/value ledger.

Submit, list and adjudicate risk records for crypto exchanges, keep a
consistent record index on the ledger, and derive dashboard statistics from
the loaded record set.
"""

from exchangerisk.config import Settings
from exchangerisk.core.models import (
    ExchangeRecord,
    RecordStatus,
    TransactionPhase,
    TransactionStatus,
)
from exchangerisk.core.store import RecordStore
from exchangerisk.core.aggregation import RiskSummary, summarize
from exchangerisk.core.workflow import ActionResult, DashboardSnapshot, TransactionWorkflow
from exchangerisk.core.exceptions import (
    ExchangeRiskError,
    LedgerError,
    LedgerUnavailableError,
    DecodeError,
    RecordNotFoundError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    "Settings",
    "ExchangeRecord",
    "RecordStatus",
    "TransactionPhase",
    "TransactionStatus",
    "RecordStore",
    "RiskSummary",
    "summarize",
    "ActionResult",
    "DashboardSnapshot",
    "TransactionWorkflow",
    "ExchangeRiskError",
    "LedgerError",
    "LedgerUnavailableError",
    "DecodeError",
    "RecordNotFoundError",
    "ValidationError",
]
