"""Data models for ExchangeRisk records and transaction status."""

import random
import string
import time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

_ID_ALPHABET = string.digits + string.ascii_lowercase
_ID_SUFFIX_LENGTH = 7


class RecordStatus(str, Enum):
    """Adjudication status of an exchange record."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not RecordStatus.PENDING

    @classmethod
    def parse(cls, value: Optional[str]) -> "RecordStatus":
        """Parse a stored status, falling back to pending."""
        try:
            return cls(value)
        except ValueError:
            return cls.PENDING


class TransactionPhase(str, Enum):
    """Phase of the transaction status banner."""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


def generate_record_id(now: Optional[float] = None) -> str:
    """Generate a time-based record id with a random suffix."""
    millis = int((time.time() if now is None else now) * 1000)
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(_ID_SUFFIX_LENGTH))
    return f"{millis}-{suffix}"


class ExchangeRecord(BaseModel):
    """Risk attributes of one exchange as stored on the ledger.

    Range checks live on :class:`RecordDraft`; a record read back from the
    ledger is accepted as-is so that foreign or legacy writes still load.
    """

    model_config = {"frozen": True}

    id: str
    name: str
    liquidity: float
    risk_score: int
    encrypted_payload: str = ""
    created_at: int
    status: RecordStatus = RecordStatus.PENDING

    def with_status(self, status: RecordStatus) -> "ExchangeRecord":
        """Return a copy with only the status changed."""
        return self.model_copy(update={"status": status})


class RecordDraft(BaseModel):
    """Validated input for a new record."""

    name: str = Field(min_length=1)
    liquidity: float = Field(ge=0)
    risk_score: int = Field(ge=1, le=10)
    encrypted_payload: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Reject blank names."""
        if not v.strip():
            raise ValueError("Exchange name cannot be blank")
        return v

    def to_record(self, record_id: str, created_at: int) -> ExchangeRecord:
        return ExchangeRecord(
            id=record_id,
            name=self.name,
            liquidity=self.liquidity,
            risk_score=self.risk_score,
            encrypted_payload=self.encrypted_payload,
            created_at=created_at,
            status=RecordStatus.PENDING,
        )


class TransactionStatus(BaseModel):
    """Transient status banner shown for a user action."""

    model_config = {"frozen": True}

    visible: bool = False
    phase: TransactionPhase = TransactionPhase.PENDING
    message: str = ""

    @classmethod
    def idle(cls) -> "TransactionStatus":
        return cls()

    @classmethod
    def pending(cls, message: str) -> "TransactionStatus":
        return cls(visible=True, phase=TransactionPhase.PENDING, message=message)

    @classmethod
    def success(cls, message: str) -> "TransactionStatus":
        return cls(visible=True, phase=TransactionPhase.SUCCESS, message=message)

    @classmethod
    def error(cls, message: str) -> "TransactionStatus":
        return cls(visible=True, phase=TransactionPhase.ERROR, message=message)
