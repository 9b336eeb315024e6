"""Tests for the record store facade."""

import asyncio
import json
import logging

import pytest

from exchangerisk.core.aggregation import summarize
from exchangerisk.core.codec import encode_index, encode_record
from exchangerisk.core.exceptions import (
    LedgerError,
    LedgerUnavailableError,
    RecordNotFoundError,
    SignerRequiredError,
    ValidationError,
)
from exchangerisk.core.models import RecordStatus
from exchangerisk.core.store import RecordStore


# =============================================================================
# Create / load
# =============================================================================

class TestCreateAndLoad:
    @pytest.mark.asyncio
    async def test_end_to_end_example(self, store):
        assert await store.load() == []

        created = await store.create("Alpha", 50.0, 8, "ENC-1")
        records = await store.load()

        assert records == [created]
        assert created.status is RecordStatus.PENDING
        summary = summarize(records)
        assert summary.total_count == 1
        assert summary.average_risk == 8
        assert summary.high_risk_count == 1
        assert summary.distribution.model_dump() == {"low": 0, "medium": 0, "high": 1}

        await store.set_status(created.id, RecordStatus.REJECTED)
        records = await store.load()

        assert records[0].status is RecordStatus.REJECTED
        assert records[0].model_dump(exclude={"status"}) == created.model_dump(exclude={"status"})
        after = summarize(records)
        assert after.verified_count == 0
        assert after.average_risk == summary.average_risk
        assert after.distribution == summary.distribution

    @pytest.mark.asyncio
    async def test_record_id_shape(self, store):
        record = await store.create("Alpha", 1.0, 1, "ENC", now=1_700_000_000.5)
        millis, suffix = record.id.split("-")
        assert millis == "1700000000500"
        assert len(suffix) == 7
        assert record.created_at == 1_700_000_000

    @pytest.mark.asyncio
    async def test_load_orders_newest_first(self, store):
        await store.create("Old", 1.0, 2, "ENC", now=1000)
        await store.create("New", 1.0, 2, "ENC", now=3000)
        await store.create("Mid", 1.0, 2, "ENC", now=2000)

        assert [r.name for r in await store.load()] == ["New", "Mid", "Old"]

    @pytest.mark.asyncio
    async def test_load_is_idempotent(self, store):
        for n in range(3):
            await store.create(f"Ex{n}", float(n), n + 1, "ENC", now=1000 + n)

        first = await store.load()
        second = await store.load()

        assert first == second
        assert store.records == second

    @pytest.mark.asyncio
    async def test_load_replaces_previous_set(self, store, reader):
        await store.create("Alpha", 1.0, 1, "ENC")
        snapshot = await store.load()
        snapshot.clear()

        assert len(store.records) == 1

    @pytest.mark.asyncio
    async def test_readonly_store_sees_writes(self, store, reader):
        created = await store.create("Alpha", 1.0, 1, "ENC")
        assert await RecordStore(reader).load() == [created]

    @pytest.mark.asyncio
    async def test_payload_is_carried_unchanged(self, store):
        payload = "FHE-ENCRYPTED-eyJzaW11bGF0ZWQiOiAiZGF0YSJ9"
        created = await store.create("Alpha", 1.0, 1, payload)
        assert (await store.get(created.id)).encrypted_payload == payload


# =============================================================================
# Load failure containment
# =============================================================================

class TestLoadContainment:
    @pytest.mark.asyncio
    async def test_undecodable_record_is_skipped(self, store, session, caplog):
        good = await store.create("Good", 1.0, 3, "ENC")
        await session.set_data("exchange_broken", b"{not json")
        await session.set_data("exchange_keys", encode_index([good.id, "broken"]))

        with caplog.at_level(logging.ERROR):
            records = await store.load()

        assert records == [good]
        assert "broken" in caplog.text

    @pytest.mark.asyncio
    async def test_indexed_id_without_data_is_skipped(self, store, session):
        good = await store.create("Good", 1.0, 3, "ENC")
        await session.set_data("exchange_keys", encode_index(["ghost", good.id]))

        assert await store.load() == [good]

    @pytest.mark.asyncio
    async def test_fetch_failure_for_one_record_is_skipped(self, store, session, mocker):
        first = await store.create("First", 1.0, 3, "ENC", now=1000)
        second = await store.create("Second", 1.0, 3, "ENC", now=2000)
        real_get = session.get_data

        async def flaky_get(key):
            if key == f"exchange_{first.id}":
                raise LedgerError("timeout", "get_data", key=key)
            return await real_get(key)

        mocker.patch.object(session, "get_data", side_effect=flaky_get)

        assert await store.load() == [second]

    @pytest.mark.asyncio
    async def test_legacy_record_without_id_loads(self, store, session):
        legacy = {
            "name": "Legacy",
            "liquidity": 12.5,
            "riskScore": 4,
            "data": "FHE-ENCRYPTED-xyz",
            "timestamp": 1_690_000_000,
        }
        await session.set_data("exchange_1690000000000-legacy1", json.dumps(legacy).encode())
        await session.set_data("exchange_keys", encode_index(["1690000000000-legacy1"]))

        (record,) = await store.load()
        assert record.id == "1690000000000-legacy1"
        assert record.status is RecordStatus.PENDING

    @pytest.mark.asyncio
    async def test_out_of_range_record_loads(self, store, session, make_record):
        odd = make_record(risk_score=15)
        await session.set_data(f"exchange_{odd.id}", encode_record(odd))
        await session.set_data("exchange_keys", encode_index([odd.id]))

        assert await store.load() == [odd]

    @pytest.mark.asyncio
    async def test_record_with_unrepresentable_timestamp_is_skipped(self, store, session):
        good = await store.create("Good", 1.0, 3, "ENC")
        foreign = {"id": "x", "name": "Far", "liquidity": 1.0, "riskScore": 2, "timestamp": 1e15}
        await session.set_data("exchange_x", json.dumps(foreign).encode())
        await session.set_data("exchange_keys", encode_index([good.id, "x"]))

        records = await store.load()

        assert records == [good]
        assert summarize(records).total_count == 1

    @pytest.mark.asyncio
    async def test_repeated_index_ids_load_once(self, store, session):
        good = await store.create("Good", 1.0, 3, "ENC")
        await session.set_data("exchange_keys", encode_index([good.id, good.id, good.id]))

        assert await store.load() == [good]

    @pytest.mark.asyncio
    async def test_unavailable_ledger(self, ledger, store):
        ledger.available = False
        with pytest.raises(LedgerUnavailableError):
            await store.load()


# =============================================================================
# Create failure modes
# =============================================================================

class TestCreateFailures:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "name,liquidity,risk_score,field",
        [
            ("Alpha", 10.0, 0, "risk_score"),
            ("Alpha", 10.0, 11, "risk_score"),
            ("Alpha", -1.0, 5, "liquidity"),
            ("   ", 10.0, 5, "name"),
        ],
    )
    async def test_invalid_input_writes_nothing(self, ledger, store, name, liquidity, risk_score, field):
        with pytest.raises(ValidationError) as excinfo:
            await store.create(name, liquidity, risk_score, "ENC")

        assert excinfo.value.field == field
        assert ledger.receipts == []

    @pytest.mark.asyncio
    async def test_readonly_client_cannot_create(self, ledger, reader):
        with pytest.raises(SignerRequiredError):
            await RecordStore(reader).create("Alpha", 1.0, 1, "ENC")
        assert ledger.keys() == []

    @pytest.mark.asyncio
    async def test_index_failure_orphans_record(self, ledger, store, mocker):
        mocker.patch.object(
            store.index,
            "append_index",
            side_effect=LedgerError("rpc dropped", "set_data", key="exchange_keys"),
        )

        with pytest.raises(LedgerError):
            await store.create("Orphan", 1.0, 1, "ENC")

        orphan_keys = [k for k in ledger.keys() if k.startswith("exchange_") and k != "exchange_keys"]
        assert len(orphan_keys) == 1
        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_concurrent_creates_can_lose_an_index_entry(self, ledger, store):
        await asyncio.gather(
            store.create("Left", 1.0, 1, "ENC"),
            store.create("Right", 2.0, 2, "ENC"),
        )

        record_keys = [k for k in ledger.keys() if k != "exchange_keys"]
        assert len(record_keys) == 2
        assert len(await store.load()) == 1

    @pytest.mark.asyncio
    async def test_conditional_index_keeps_concurrent_creates(self, session):
        store = RecordStore(session, index_write_mode="conditional")
        await asyncio.gather(
            store.create("Left", 1.0, 1, "ENC"),
            store.create("Right", 2.0, 2, "ENC"),
        )
        assert sorted(r.name for r in await store.load()) == ["Left", "Right"]

    def test_record_key_never_hits_index_key(self, store):
        with pytest.raises(ValidationError):
            store.record_key("keys")


# =============================================================================
# Status changes
# =============================================================================

class TestSetStatus:
    @pytest.mark.asyncio
    async def test_verify_changes_only_status(self, store):
        created = await store.create("Alpha", 42.0, 6, "ENC-7")

        updated = await store.set_status(created.id, RecordStatus.VERIFIED)
        reloaded = await store.get(created.id)

        assert updated == reloaded
        assert reloaded.status is RecordStatus.VERIFIED
        assert reloaded.model_dump(exclude={"status"}) == created.model_dump(exclude={"status"})

    @pytest.mark.asyncio
    async def test_status_change_leaves_index_alone(self, ledger, store):
        created = await store.create("Alpha", 42.0, 6, "ENC")
        index_before = ledger.read("exchange_keys")

        await store.set_status(created.id, RecordStatus.REJECTED)

        assert ledger.read("exchange_keys") == index_before

    @pytest.mark.asyncio
    async def test_unknown_id_writes_nothing(self, ledger, store):
        with pytest.raises(RecordNotFoundError) as excinfo:
            await store.set_status("missing", RecordStatus.VERIFIED)

        assert excinfo.value.record_id == "missing"
        assert ledger.receipts == []

    @pytest.mark.asyncio
    async def test_terminal_status_change_is_logged(self, store, caplog):
        created = await store.create("Alpha", 1.0, 1, "ENC")
        await store.set_status(created.id, RecordStatus.VERIFIED)

        with caplog.at_level(logging.WARNING):
            await store.set_status(created.id, RecordStatus.REJECTED)

        assert "moves from verified to rejected" in caplog.text

    @pytest.mark.asyncio
    async def test_accepts_plain_string_status(self, store):
        created = await store.create("Alpha", 1.0, 1, "ENC")
        assert (await store.set_status(created.id, "verified")).status is RecordStatus.VERIFIED
