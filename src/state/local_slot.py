from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Optional

from common.log import get_logger
from common.settings import DEFAULT_SLOT_QUOTA

from .errors import SlotQuotaExceeded


# Fixed slot names
DATA_KEY = "financeTrackerData"
REMOTE_ID_KEY = "googleScriptKey"
REMINDER_DAYS_KEY = "reminderDaysThreshold"
THEME_KEY = "financeTrackerTheme"

log = get_logger(__name__)


class LocalSlotStore:
    """
    On-device key/value slots backed by a single JSON file.

    - File layout: { slot_name: text, ... }
    - Every value is text; callers do their own encoding.
    - Writes are synchronous and rewrite the whole file (via a temp file + rename).
    - `quota` caps the serialized file size in bytes; a write that would exceed
      it raises `SlotQuotaExceeded` and leaves the file untouched.
    - A missing or corrupt file reads as empty.
    """

    def __init__(self, path: os.PathLike[str] | str, *, quota: int = DEFAULT_SLOT_QUOTA) -> None:
        if quota <= 0:
            raise ValueError("quota must be > 0")
        self._path = Path(path)
        self._quota = quota
        self._data: Dict[str, str] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as ex:
            log.warning("slot_file_unreadable", path=str(self._path), error=str(ex))
            return
        if isinstance(raw, dict):
            self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _flush(self, data: Dict[str, str]) -> None:
        payload = json.dumps(data, separators=(",", ":"), sort_keys=True).encode("utf-8")
        if len(payload) > self._quota:
            raise SlotQuotaExceeded(
                f"local storage quota exceeded ({len(payload)} > {self._quota} bytes)"
            )
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_name(self._path.name + ".tmp")
        with tmp.open("wb") as f:
            f.write(payload)
        os.replace(tmp, self._path)

    # -------- Slot operations --------
    def get(self, key: str) -> Optional[str]:
        self._ensure_loaded()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._ensure_loaded()
        updated = {**self._data, key: value}
        self._flush(updated)
        self._data = updated

    def remove(self, key: str) -> None:
        self._ensure_loaded()
        if key not in self._data:
            return
        updated = {k: v for k, v in self._data.items() if k != key}
        self._flush(updated)
        self._data = updated

    # -------- Backing-store capability --------
    def read_raw(self) -> Optional[str]:
        return self.get(DATA_KEY)

    def write_raw(self, text: str) -> None:
        self.set(DATA_KEY, text)


__all__ = [
    "LocalSlotStore",
    "DATA_KEY",
    "REMOTE_ID_KEY",
    "REMINDER_DAYS_KEY",
    "THEME_KEY",
]
