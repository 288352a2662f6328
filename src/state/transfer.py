from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Callable, Optional, Union

from common.log import get_logger

from .codec import recover_document
from .coordinator import PersistenceCoordinator, SaveReport
from .models import Document, shallow_merge
from .schema import is_valid


EXPORT_VERSION = "1.0.0"
# Envelope fields added on export; not part of the State Document
ENVELOPE_FIELDS = ("exportDate", "version")

REASON_CORRUPT = "corrupt or foreign file"
REASON_INVALID = "invalid structure"

log = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(UTC)


def _iso_millis(dt: datetime) -> str:
    # 2025-01-31T09:15:00.123Z
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class SnapshotFile:
    filename: str
    content: bytes
    media_type: str = "text/plain"


class ImportStatus(str, Enum):
    APPLIED = "applied"
    REJECTED = "rejected"
    DECLINED = "declined"


@dataclass
class ImportResult:
    status: ImportStatus
    reason: Optional[str] = None
    saved: Optional[SaveReport] = None

    @property
    def applied(self) -> bool:
        return self.status is ImportStatus.APPLIED


class SnapshotTransfer:
    """
    Export the live document to a portable file and import it back.

    - Export: document + `exportDate` + `version`, encoded, as a text file named
      `finance-tracker-backup-YYYY-MM-DD.txt`.
    - Import: decode, else legacy JSON; validate the structure; ask `confirm()`;
      shallow-merge onto the live document and save once.
    """

    def __init__(
        self,
        coordinator: PersistenceCoordinator,
        *,
        clock: Callable[[], datetime] = _now,
    ) -> None:
        self._coordinator = coordinator
        self._codec = coordinator.codec
        self._clock = clock

    def export_snapshot(self) -> SnapshotFile:
        captured = self._clock()
        payload: Document = {
            **self._coordinator.holder.snapshot(),
            "exportDate": _iso_millis(captured),
            "version": EXPORT_VERSION,
        }
        blob = self._codec.encode(payload)
        filename = f"finance-tracker-backup-{captured.date().isoformat()}.txt"
        log.info("snapshot_exported", filename=filename, bytes=len(blob))
        return SnapshotFile(filename=filename, content=blob.encode("ascii"))

    def read_snapshot(self, content: Union[bytes, str]) -> Optional[Document]:
        """Recover the document held in a snapshot file, or None."""
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8")
            except UnicodeDecodeError:
                return None
        chain = recover_document(self._codec, content.strip())
        return chain.value if chain.hit else None

    async def import_snapshot(
        self,
        content: Union[bytes, str],
        confirm: Callable[[], bool],
    ) -> ImportResult:
        recovered = self.read_snapshot(content)
        if recovered is None:
            log.warning("snapshot_rejected", reason=REASON_CORRUPT)
            return ImportResult(ImportStatus.REJECTED, reason=REASON_CORRUPT)
        if not is_valid(recovered):
            log.warning("snapshot_rejected", reason=REASON_INVALID)
            return ImportResult(ImportStatus.REJECTED, reason=REASON_INVALID)
        if not confirm():
            return ImportResult(ImportStatus.DECLINED)

        incoming = {k: v for k, v in recovered.items() if k not in ENVELOPE_FIELDS}
        saved = await self._coordinator.commit(lambda live: shallow_merge(live, incoming))
        log.info("snapshot_imported", fields=sorted(incoming))
        return ImportResult(ImportStatus.APPLIED, saved=saved)


__all__ = [
    "SnapshotTransfer",
    "SnapshotFile",
    "ImportResult",
    "ImportStatus",
    "EXPORT_VERSION",
    "REASON_CORRUPT",
    "REASON_INVALID",
]
