from __future__ import annotations

import re
from typing import Any, Callable, Dict, Mapping, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from common.log import get_logger
from common.settings import AppConfig
from state.coordinator import (
    EndpointChange,
    LoadReport,
    Notify,
    PersistenceCoordinator,
    RemotePolicy,
    SaveReport,
)
from state.errors import SlotQuotaExceeded
from state.local_slot import REMINDER_DAYS_KEY, THEME_KEY, LocalSlotStore
from state.models import (
    CATEGORY_DOMAINS,
    RECORD_COLLECTIONS,
    Category,
    Document,
    Preferences,
    StateHolder,
    default_document,
)
from state.transfer import ImportResult, SnapshotFile, SnapshotTransfer


Record = Dict[str, Any]

log = get_logger(__name__)

# Leading integer of a stored setting: "10days" -> 10, "7.5" -> 7
_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def _new_id() -> str:
    return uuid4().hex


def _check_collection(collection: str) -> None:
    if collection not in RECORD_COLLECTIONS:
        raise ValueError(f"unknown record collection: {collection!r}")


def _check_domain(domain: str) -> None:
    if domain not in CATEGORY_DOMAINS:
        raise ValueError(f"unknown category domain: {domain!r}")


class TrackerSession:
    """
    One application session: the live document, its store and the settings slots.

    The form layer calls the mutation methods below; each one changes the
    document and awaits exactly one save before returning. Renderers read
    `snapshot()`.
    """

    def __init__(
        self,
        coordinator: PersistenceCoordinator,
        slots: LocalSlotStore,
        *,
        transfer: Optional[SnapshotTransfer] = None,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._coordinator = coordinator
        self._slots = slots
        self._transfer = transfer or SnapshotTransfer(coordinator)
        self._new_id = id_factory

    @classmethod
    def from_config(
        cls,
        config: Optional[AppConfig] = None,
        *,
        notify: Optional[Notify] = None,
    ) -> "TrackerSession":
        cfg = config or AppConfig.from_env()
        slots = LocalSlotStore(cfg.slot_path, quota=cfg.slot_quota)
        policy = RemotePolicy.REVERSIBLE if cfg.allow_remote_unset else RemotePolicy.ONE_WAY
        coordinator = PersistenceCoordinator(
            StateHolder(), slots, notify=notify, policy=policy, config=cfg
        )
        return cls(coordinator, slots)

    @property
    def coordinator(self) -> PersistenceCoordinator:
        return self._coordinator

    def snapshot(self) -> Document:
        return self._coordinator.holder.snapshot()

    async def start(self) -> LoadReport:
        return await self._coordinator.load()

    # -------- Records --------
    async def add_record(self, collection: str, record: Mapping[str, Any]) -> Record:
        _check_collection(collection)
        stored: Record = dict(record)
        if not stored.get("id"):
            stored["id"] = self._new_id()

        def _add(doc: Document) -> None:
            doc.setdefault(collection, []).append(stored)

        await self._coordinator.commit(_add)
        return stored

    async def update_record(self, collection: str, record_id: str, record: Mapping[str, Any]) -> bool:
        """Replace the record with `record_id`; returns False when it does not exist."""
        _check_collection(collection)
        items = self._coordinator.holder.document.get(collection) or []
        if not any(r.get("id") == record_id for r in items):
            return False
        replacement: Record = {**record, "id": record_id}

        def _update(doc: Document) -> None:
            doc[collection] = [replacement if r.get("id") == record_id else r for r in doc[collection]]

        await self._coordinator.commit(_update)
        return True

    async def delete_record(self, collection: str, record_id: str) -> bool:
        _check_collection(collection)
        items = self._coordinator.holder.document.get(collection) or []
        if not any(r.get("id") == record_id for r in items):
            return False

        def _delete(doc: Document) -> None:
            doc[collection] = [r for r in doc[collection] if r.get("id") != record_id]

        await self._coordinator.commit(_delete)
        return True

    # -------- Categories --------
    async def add_category(self, domain: str, name: str, color: str) -> Record:
        _check_domain(domain)
        category = Category(id=self._new_id(), name=name, color=color).model_dump()

        def _add(doc: Document) -> None:
            doc["categories"].setdefault(domain, []).append(category)

        await self._coordinator.commit(_add)
        return category

    async def update_category(self, domain: str, category_id: str, name: str, color: str) -> bool:
        _check_domain(domain)
        cats = self._coordinator.holder.document["categories"].get(domain) or []
        if not any(c.get("id") == category_id for c in cats):
            return False
        updated = Category(id=category_id, name=name, color=color).model_dump()

        def _update(doc: Document) -> None:
            doc["categories"][domain] = [
                updated if c.get("id") == category_id else c for c in doc["categories"][domain]
            ]

        await self._coordinator.commit(_update)
        return True

    async def delete_category(self, domain: str, category_id: str) -> bool:
        # Records pointing at a deleted category are left as-is; readers show a fallback label
        _check_domain(domain)
        cats = self._coordinator.holder.document["categories"].get(domain) or []
        if not any(c.get("id") == category_id for c in cats):
            return False

        def _delete(doc: Document) -> None:
            doc["categories"][domain] = [c for c in doc["categories"][domain] if c.get("id") != category_id]

        await self._coordinator.commit(_delete)
        return True

    async def clear_all_data(self, confirm: Callable[[], bool]) -> Optional[SaveReport]:
        """Reset to the built-in defaults after `confirm()`; None when declined."""
        if not confirm():
            return None
        log.info("data_cleared")
        return await self._coordinator.commit(lambda _doc: default_document())

    # -------- Export / import --------
    def export_snapshot(self) -> SnapshotFile:
        return self._transfer.export_snapshot()

    async def import_snapshot(self, content: Union[bytes, str], confirm: Callable[[], bool]) -> ImportResult:
        return await self._transfer.import_snapshot(content, confirm)

    # -------- Settings --------
    async def set_remote_endpoint(self, identifier: Optional[str]) -> EndpointChange:
        return await self._coordinator.set_remote_endpoint(identifier)

    async def clear_remote_endpoint(self) -> SaveReport:
        return await self._coordinator.clear_remote_endpoint()

    def preferences(self) -> Preferences:
        days = Preferences().reminder_days
        m = _LEADING_INT_RE.match(self._slots.get(REMINDER_DAYS_KEY) or "")
        if m:
            try:
                days = Preferences(reminder_days=int(m.group(1))).reminder_days
            except ValidationError:
                pass
        theme = "light" if self._slots.get(THEME_KEY) == "light" else "dark"
        return Preferences(reminder_days=days, theme=theme)

    def set_reminder_window(self, days: int) -> bool:
        """Store a reminder lookahead of 1-30 days; anything else is ignored."""
        try:
            prefs = Preferences(reminder_days=days)
        except ValidationError:
            return False
        return self._set_slot(REMINDER_DAYS_KEY, str(prefs.reminder_days))

    def toggle_theme(self) -> str:
        """Flip the theme; returns the theme in effect afterwards."""
        current = self.preferences().theme
        flipped = "light" if current == "dark" else "dark"
        return flipped if self._set_slot(THEME_KEY, flipped) else current

    def _set_slot(self, key: str, value: str) -> bool:
        try:
            self._slots.set(key, value)
        except (SlotQuotaExceeded, OSError) as ex:
            log.error("preference_store_failed", key=key, error=str(ex))
            return False
        return True


__all__ = ["TrackerSession"]
