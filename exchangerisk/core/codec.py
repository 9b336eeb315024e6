"""Byte codec for exchange records and the record index.

Records are stored as UTF-8 JSON objects using the field names the web
client has always written (``riskScore``, ``data``, ``timestamp``), so that
ledgers populated by older clients remain readable.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from .exceptions import DecodeError
from .models import ExchangeRecord, RecordStatus

_REQUIRED_FIELDS = ("name", "liquidity", "riskScore", "timestamp")

# 0001-01-01 and 9999-12-31T23:59:59 UTC, the range a datetime can label
MIN_TIMESTAMP = -62_135_596_800
MAX_TIMESTAMP = 253_402_300_799


def record_to_dict(record: ExchangeRecord) -> Dict[str, Any]:
    """Convert a record to its wire dictionary."""
    return {
        "id": record.id,
        "name": record.name,
        "liquidity": record.liquidity,
        "riskScore": record.risk_score,
        "data": record.encrypted_payload,
        "timestamp": record.created_at,
        "status": record.status.value,
    }


def encode_record(record: ExchangeRecord) -> bytes:
    """Serialize a record to bytes."""
    return json.dumps(record_to_dict(record), sort_keys=True).encode("utf-8")


def _load_json(raw: bytes, record_id: Optional[str] = None) -> Any:
    try:
        return json.loads(bytes(raw).decode("utf-8"))
    except (UnicodeDecodeError, ValueError, TypeError) as e:
        raise DecodeError(f"Malformed JSON: {e}", record_id=record_id, raw=raw)


def decode_record(raw: bytes, record_id: Optional[str] = None) -> ExchangeRecord:
    """Deserialize a record.

    Args:
        raw: Stored bytes
        record_id: Id the record was looked up under; used when the payload
            itself carries no id

    Returns:
        The decoded record

    Raises:
        DecodeError: If the bytes do not hold a well-formed record
    """
    data = _load_json(raw, record_id)
    if not isinstance(data, dict):
        raise DecodeError("Record payload is not an object", record_id=record_id, raw=raw)

    missing = [name for name in _REQUIRED_FIELDS if name not in data]
    if missing:
        raise DecodeError(
            f"Record is missing field(s): {', '.join(missing)}",
            record_id=record_id,
            raw=raw,
        )

    stored_id = data.get("id") or record_id
    if not stored_id:
        raise DecodeError("Record has no id", raw=raw)

    # bool is an int subclass; a flag in a numeric slot is corruption
    for name in ("liquidity", "riskScore", "timestamp"):
        if isinstance(data[name], bool) or not isinstance(data[name], (int, float)):
            raise DecodeError(f"Field '{name}' is not numeric", record_id=stored_id, raw=raw)

    if not MIN_TIMESTAMP <= data["timestamp"] <= MAX_TIMESTAMP:
        raise DecodeError(
            f"Timestamp {data['timestamp']} is out of range", record_id=stored_id, raw=raw
        )

    try:
        return ExchangeRecord(
            id=stored_id,
            name=data["name"],
            liquidity=data["liquidity"],
            risk_score=data["riskScore"],
            encrypted_payload=data.get("data") or "",
            created_at=data["timestamp"],
            status=RecordStatus.parse(data.get("status")),
        )
    except PydanticValidationError as e:
        raise DecodeError(f"Invalid record fields: {e}", record_id=stored_id, raw=raw)


def encode_index(record_ids: List[str]) -> bytes:
    """Serialize the record index."""
    return json.dumps(list(record_ids)).encode("utf-8")


def decode_index(raw: bytes) -> List[str]:
    """Deserialize the record index.

    Empty bytes mean the index was never written and decode to ``[]``.

    Raises:
        DecodeError: If the bytes are not a JSON list of strings
    """
    if not raw:
        return []
    data = _load_json(raw)
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise DecodeError("Record index is not a list of ids", raw=raw)
    return data


def restatus_record(raw: bytes, status: RecordStatus, record_id: Optional[str] = None) -> bytes:
    """Rewrite stored record bytes with a new status.

    Every other stored field, including ones this codec does not know, is
    carried over untouched.

    Raises:
        DecodeError: If the bytes do not hold a well-formed record
    """
    decode_record(raw, record_id=record_id)
    data = _load_json(raw, record_id)
    data["status"] = status.value
    return json.dumps(data, sort_keys=True).encode("utf-8")
