from __future__ import annotations

import json

import pytest

from state.errors import SlotQuotaExceeded
from state.local_slot import DATA_KEY, REMOTE_ID_KEY, LocalSlotStore


def test_missing_file_reads_empty(tmp_path):
    store = LocalSlotStore(tmp_path / "slots.json")
    assert store.read_raw() is None
    assert store.get(REMOTE_ID_KEY) is None


def test_write_persists_across_instances(tmp_path):
    path = tmp_path / "nested" / "slots.json"
    LocalSlotStore(path).write_raw("blob-1")

    again = LocalSlotStore(path)
    assert again.read_raw() == "blob-1"
    assert json.loads(path.read_text(encoding="utf-8")) == {DATA_KEY: "blob-1"}


def test_slots_are_independent(tmp_path):
    store = LocalSlotStore(tmp_path / "slots.json")
    store.write_raw("doc")
    store.set(REMOTE_ID_KEY, "abc")
    store.remove(REMOTE_ID_KEY)
    store.remove("never-set")

    assert store.read_raw() == "doc"
    assert store.get(REMOTE_ID_KEY) is None


def test_corrupt_file_reads_empty(tmp_path):
    path = tmp_path / "slots.json"
    path.write_text("{not json", encoding="utf-8")
    store = LocalSlotStore(path)
    assert store.read_raw() is None

    # Non-text values are dropped rather than surfacing as documents
    path.write_text(json.dumps({DATA_KEY: 5, "other": "x"}), encoding="utf-8")
    store = LocalSlotStore(path)
    assert store.read_raw() is None
    assert store.get("other") == "x"


def test_quota_exceeded_raises_and_keeps_previous_value(tmp_path):
    path = tmp_path / "slots.json"
    store = LocalSlotStore(path, quota=64)
    store.write_raw("small")

    with pytest.raises(SlotQuotaExceeded):
        store.write_raw("x" * 200)

    assert store.read_raw() == "small"
    assert LocalSlotStore(path).read_raw() == "small"


def test_invalid_quota_rejected(tmp_path):
    with pytest.raises(ValueError):
        LocalSlotStore(tmp_path / "slots.json", quota=0)
