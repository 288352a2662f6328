from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

from state.codec import ObfuscationCodec
from state.coordinator import PersistenceCoordinator
from state.local_slot import DATA_KEY, LocalSlotStore
from state.models import StateHolder, default_document
from state.transfer import (
    EXPORT_VERSION,
    REASON_CORRUPT,
    REASON_INVALID,
    ImportStatus,
    SnapshotTransfer,
)


FIXED = datetime(2025, 3, 9, 14, 5, 7, 123456, tzinfo=timezone.utc)


def _setup(tmp_path):
    slots = LocalSlotStore(tmp_path / "slots.json")
    coord = PersistenceCoordinator(StateHolder(), slots, notify=lambda *_: None)
    return SnapshotTransfer(coord, clock=lambda: FIXED), coord, slots


def _populated():
    doc = default_document()
    doc["transactions"] = [{"id": "t1", "amount": 42, "category": "food"}]
    doc["cards"] = [{"id": "c1", "name": "Visa", "limit": 1000}]
    doc["reminders"] = [{"id": "r1", "date": "2025-03-12"}]
    return doc


def test_export_wraps_document_with_envelope(tmp_path):
    transfer, coord, _ = _setup(tmp_path)
    coord.holder.replace(_populated())

    file = transfer.export_snapshot()
    assert file.filename == "finance-tracker-backup-2025-03-09.txt"
    assert file.media_type == "text/plain"

    payload = ObfuscationCodec().decode(file.content.decode())
    assert payload["exportDate"] == "2025-03-09T14:05:07.123Z"
    assert payload["version"] == EXPORT_VERSION
    assert payload["transactions"] == _populated()["transactions"]


def test_export_then_import_roundtrips(tmp_path):
    transfer, coord, slots = _setup(tmp_path)
    original = _populated()
    coord.holder.replace(original)
    file = transfer.export_snapshot()

    # Live state drifts after the export
    coord.holder.replace(default_document())
    result = asyncio.run(transfer.import_snapshot(file.content, confirm=lambda: True))

    assert result.status is ImportStatus.APPLIED
    assert result.saved is not None and result.saved.ok
    assert coord.holder.document == original
    assert ObfuscationCodec().decode(slots.get(DATA_KEY)) == original


def test_import_of_older_export_keeps_late_sequences(tmp_path):
    transfer, coord, _ = _setup(tmp_path)
    old = _populated()
    del old["reminders"]
    del old["subscriptions"]
    blob = ObfuscationCodec().encode(old)

    result = asyncio.run(transfer.import_snapshot(blob, confirm=lambda: True))
    assert result.applied
    assert coord.holder.document["reminders"] == []
    assert coord.holder.document["subscriptions"] == []


def test_import_accepts_legacy_plain_json(tmp_path):
    transfer, coord, _ = _setup(tmp_path)
    legacy = _populated()
    del legacy["debts"]

    result = asyncio.run(transfer.import_snapshot(json.dumps(legacy).encode(), confirm=lambda: True))
    assert result.applied
    assert coord.holder.document["cards"] == legacy["cards"]
    assert coord.holder.document["debts"] == []


def test_import_rejects_corrupt_file_and_leaves_state(tmp_path):
    transfer, coord, slots = _setup(tmp_path)
    before = coord.holder.snapshot()

    for content in (b"\xff\xfe\x00garbage", b"hello world", b""):
        result = asyncio.run(transfer.import_snapshot(content, confirm=lambda: True))
        assert result.status is ImportStatus.REJECTED
        assert result.reason == REASON_CORRUPT

    assert coord.holder.document == before
    assert slots.get(DATA_KEY) is None


def test_import_rejects_missing_investment_categories(tmp_path):
    transfer, coord, slots = _setup(tmp_path)
    bad = _populated()
    del bad["categories"]["investment"]
    before = coord.holder.snapshot()
    asked = []

    result = asyncio.run(
        transfer.import_snapshot(ObfuscationCodec().encode(bad), confirm=lambda: asked.append(1) or True)
    )
    assert result.status is ImportStatus.REJECTED
    assert result.reason == REASON_INVALID
    assert asked == []
    assert coord.holder.document == before
    assert slots.get(DATA_KEY) is None


def test_declined_import_changes_nothing(tmp_path):
    transfer, coord, slots = _setup(tmp_path)
    before = coord.holder.snapshot()

    result = asyncio.run(
        transfer.import_snapshot(ObfuscationCodec().encode(_populated()), confirm=lambda: False)
    )
    assert result.status is ImportStatus.DECLINED
    assert coord.holder.document == before
    assert slots.get(DATA_KEY) is None


def test_import_merge_is_shallow(tmp_path):
    transfer, coord, _ = _setup(tmp_path)
    live = _populated()
    coord.holder.replace(live)
    incoming = default_document()
    incoming["categories"] = {"income": [], "expense": [], "investment": []}
    incoming.pop("reminders")

    asyncio.run(transfer.import_snapshot(ObfuscationCodec().encode(incoming), confirm=lambda: True))
    doc = coord.holder.document
    assert doc["categories"] == {"income": [], "expense": [], "investment": []}
    assert doc["transactions"] == []
    # Absent in the file -> live value kept
    assert doc["reminders"] == live["reminders"]
