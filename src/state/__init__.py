"""
Persistent state store for the finance tracker.

The live State Document is obfuscated (JSON -> repeating-key XOR -> base64)
before it leaves memory and kept either in a local slot file or at a remote
HTTP endpoint, with plaintext-JSON migration and portable export/import.
"""

from .codec import ObfuscationCodec
from .coordinator import LoadReport, PersistenceCoordinator, RemotePolicy, SaveReport
from .errors import RemoteEndpointLocked, RemoteStoreError, SlotQuotaExceeded, StateStoreError
from .local_slot import LocalSlotStore
from .models import StateHolder, default_document
from .remote_endpoint import RemoteEndpointStore
from .schema import is_valid
from .transfer import ImportResult, ImportStatus, SnapshotFile, SnapshotTransfer

__all__ = [
    "ObfuscationCodec",
    "PersistenceCoordinator",
    "RemotePolicy",
    "LoadReport",
    "SaveReport",
    "StateStoreError",
    "SlotQuotaExceeded",
    "RemoteStoreError",
    "RemoteEndpointLocked",
    "LocalSlotStore",
    "RemoteEndpointStore",
    "StateHolder",
    "default_document",
    "is_valid",
    "SnapshotTransfer",
    "SnapshotFile",
    "ImportResult",
    "ImportStatus",
]
