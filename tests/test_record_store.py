from __future__ import annotations

import asyncio

import pytest

from spellvault.ledger import value_codec
from spellvault.ledger.backend import InMemoryLedger
from spellvault.ledger.constants import record_key
from spellvault.ledger.records import RecordStore
from spellvault.ledger.types import Record, Status
from spellvault.runtime.errors import LedgerTimeout, NotFound, ParseFault, UserRejected, WriteFault


def _rec(rid: str = "rec-1-aaaa", **over) -> Record:
    base = dict(
        id=rid,
        encoded_value=value_codec.encode(42),
        created_at=1_700_000_000,
        author="0xabc",
        category="Fireball",
        declared_cost=42,
        status=Status.PREPARED,
    )
    base.update(over)
    return Record(**base)


def test_write_then_read_returns_equal_record() -> None:
    async def _go():
        led = InMemoryLedger()
        st = RecordStore(led)
        ack = await st.write_record(_rec())
        return ack, await st.read_record("rec-1-aaaa")

    ack, got = asyncio.run(_go())
    assert ack.key == "record_rec-1-aaaa"
    assert ack.version == 1
    assert got == _rec()


def test_missing_or_empty_id_is_not_found() -> None:
    st = RecordStore(InMemoryLedger())
    with pytest.raises(NotFound):
        asyncio.run(st.read_record("rec-nope"))
    with pytest.raises(NotFound):
        asyncio.run(st.read_record(""))


@pytest.mark.parametrize("blob", [b"{not json", b'{"encodedValue": 1}', b"\xff\xfe", b'"just a string"'])
def test_malformed_blob_is_parse_fault(blob: bytes) -> None:
    led = InMemoryLedger()
    led.inject(record_key("rec-bad"), blob)
    with pytest.raises(ParseFault) as ei:
        asyncio.run(RecordStore(led).read_record("rec-bad"))
    assert ei.value.details["record_id"] == "rec-bad"


def test_backend_write_errors_are_mapped() -> None:
    led = InMemoryLedger()
    st = RecordStore(led)

    led.write_error = RuntimeError("disk on fire")
    with pytest.raises(WriteFault):
        asyncio.run(st.write_record(_rec()))

    led.write_error = RuntimeError("User denied transaction signature")
    with pytest.raises(UserRejected):
        asyncio.run(st.write_record(_rec()))


def test_slow_backend_times_out() -> None:
    st = RecordStore(InMemoryLedger(latency_s=0.5), timeout_s=0.01)
    with pytest.raises(LedgerTimeout) as ei:
        asyncio.run(st.read_record("rec-1"))
    assert ei.value.code == "timeout"
