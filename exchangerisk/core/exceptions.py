"""Exception classes for ExchangeRisk."""

from typing import Optional, Any


class ExchangeRiskError(Exception):
    """Base exception for all ExchangeRisk errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class LedgerError(ExchangeRiskError):
    """Raised when a ledger call fails."""

    def __init__(
        self,
        message: str,
        operation: str,
        key: Optional[str] = None,
        backend: Optional[str] = None,
    ):
        details = {"operation": operation, "key": key, "backend": backend}
        super().__init__(message, details)
        self.operation = operation
        self.key = key
        self.backend = backend


class LedgerUnavailableError(LedgerError):
    """Raised when the ledger reports itself unavailable."""

    def __init__(self, message: str = "Ledger not available", backend: Optional[str] = None):
        super().__init__(message, "is_available", backend=backend)


class SignerRequiredError(LedgerError):
    """Raised when a write goes through a read-only client."""

    def __init__(self, key: str, backend: Optional[str] = None):
        super().__init__(
            f"Signer required to write '{key}'",
            "set_data",
            key=key,
            backend=backend,
        )


class WriteConflictError(LedgerError):
    """Raised when a conditional write finds an unexpected value."""

    def __init__(self, key: str, backend: Optional[str] = None, attempts: int = 1):
        super().__init__(
            f"Conflicting write on '{key}' after {attempts} attempt(s)",
            "compare_and_set",
            key=key,
            backend=backend,
        )
        self.attempts = attempts


class DecodeError(ExchangeRiskError):
    """Raised when record or index bytes cannot be decoded."""

    def __init__(self, message: str, record_id: Optional[str] = None, raw: Optional[bytes] = None):
        details = {"record_id": record_id, "size": len(raw) if raw is not None else None}
        super().__init__(message, details)
        self.record_id = record_id


class RecordNotFoundError(ExchangeRiskError):
    """Raised when no record exists under the requested id."""

    def __init__(self, record_id: str):
        super().__init__(f"Exchange not found: {record_id}", {"record_id": record_id})
        self.record_id = record_id


class ValidationError(ExchangeRiskError):
    """Raised when record input validation fails."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {"field": field, "value": value}
        super().__init__(message, details)
        self.field = field
        self.value = value


class ConfigurationError(ExchangeRiskError):
    """Raised when settings are invalid."""


class SessionRequiredError(ExchangeRiskError):
    """Raised when an action needs an authenticated session."""

    def __init__(self, message: str = "Please connect wallet first"):
        super().__init__(message)
