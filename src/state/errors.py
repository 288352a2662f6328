from __future__ import annotations


class StateStoreError(RuntimeError):
    """Base error for the persistent state store."""


class SlotQuotaExceeded(StateStoreError):
    """A local slot write would exceed the device storage quota."""


class RemoteStoreError(StateStoreError):
    """The remote endpoint was unreachable or answered with a failure signal."""


class RemoteEndpointLocked(StateStoreError):
    """Clearing the remote endpoint is not allowed under the one-way policy."""


__all__ = [
    "StateStoreError",
    "SlotQuotaExceeded",
    "RemoteStoreError",
    "RemoteEndpointLocked",
]
