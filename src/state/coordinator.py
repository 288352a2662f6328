from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from common.log import get_logger
from common.settings import AppConfig

from .codec import STRATEGY_LEGACY, ObfuscationCodec, recover_document
from .errors import RemoteEndpointLocked, RemoteStoreError, SlotQuotaExceeded
from .fallback import Failed, Hit, Outcome, Strategy, arun_chain
from .local_slot import REMOTE_ID_KEY, LocalSlotStore
from .models import (
    Document,
    StateHolder,
    default_document,
    ensure_late_collections,
    has_records,
    shallow_merge,
)
from .remote_endpoint import RemoteEndpointStore, endpoint_url


Notify = Callable[[str, str], None]
RemoteFactory = Callable[[str], RemoteEndpointStore]

log = get_logger(__name__)


class RemotePolicy(str, Enum):
    """Whether a configured remote endpoint may be cleared again."""

    ONE_WAY = "one-way"
    REVERSIBLE = "reversible"


@dataclass(frozen=True)
class LocalTarget:
    pass


@dataclass(frozen=True)
class RemoteTarget:
    identifier: str


BackingTarget = Union[LocalTarget, RemoteTarget]


@dataclass
class SaveReport:
    target: str  # "local" | "remote" | "none"
    ok: bool
    fell_back: bool = False
    error: Optional[str] = None
    blob: Optional[str] = None


@dataclass
class LoadReport:
    source: str  # remote | remote-legacy | local | local-legacy | defaults
    saved: Optional[SaveReport] = None


@dataclass
class EndpointChange:
    ok: bool
    verified: bool
    message: str
    saved: Optional[SaveReport] = None


def _log_notify(level: str, message: str) -> None:
    log.info("notification", level=level, message=message)


class PersistenceCoordinator:
    """
    Loads and saves the live State Document through the configured backing store.

    - The backing store is picked once per operation: a stored remote endpoint
      identifier selects the remote store, otherwise the local slot.
    - Load: remote (decode -> legacy) -> local (decode -> legacy) -> defaults.
    - Save: remote -> local safety net; local only when no remote is configured.
    - Neither operation raises; failures come back in the report and through
      `notify(level, message)`.
    - One asyncio.Lock serializes load/save/commit so saves never interleave.
    """

    def __init__(
        self,
        holder: StateHolder,
        slots: LocalSlotStore,
        *,
        codec: Optional[ObfuscationCodec] = None,
        remote_factory: Optional[RemoteFactory] = None,
        notify: Optional[Notify] = None,
        policy: RemotePolicy = RemotePolicy.ONE_WAY,
        config: Optional[AppConfig] = None,
    ) -> None:
        cfg = config or AppConfig()
        self._holder = holder
        self._slots = slots
        self._codec = codec or ObfuscationCodec()
        self._remote_factory = remote_factory or (
            lambda ident: RemoteEndpointStore(
                endpoint_url(ident, cfg.remote_url_template), timeout=cfg.remote_timeout
            )
        )
        self._notify = notify or _log_notify
        self._policy = policy
        self._lock = asyncio.Lock()

    @property
    def holder(self) -> StateHolder:
        return self._holder

    @property
    def codec(self) -> ObfuscationCodec:
        return self._codec

    @property
    def policy(self) -> RemotePolicy:
        return self._policy

    def select_target(self) -> BackingTarget:
        identifier = self._slots.get(REMOTE_ID_KEY)
        return RemoteTarget(identifier) if identifier else LocalTarget()

    # -------- Load --------
    async def load(self) -> LoadReport:
        async with self._lock:
            target = self.select_target()
            recovered: Optional[Document] = None
            source = "defaults"
            consult_local = True

            if isinstance(target, RemoteTarget):
                fetched = await self._read_remote(target.identifier)
                if isinstance(fetched, Hit):
                    body = fetched.value
                    if not body:
                        # Reachable but empty: the remote is authoritative
                        consult_local = False
                    else:
                        chain = recover_document(self._codec, body)
                        if chain.hit:
                            recovered = chain.value
                            source = "remote-legacy" if chain.name == STRATEGY_LEGACY else "remote"
                            consult_local = False
                        else:
                            log.warning("remote_document_unreadable", bytes=len(body))
                else:
                    self._notify("warning", "Could not load from remote storage; using local data.")

            if consult_local:
                text = self._read_local()
                if text:
                    chain = recover_document(self._codec, text)
                    if chain.hit:
                        recovered = chain.value
                        source = "local-legacy" if chain.name == STRATEGY_LEGACY else "local"
                    else:
                        log.warning("local_document_unreadable", bytes=len(text))

            doc = default_document()
            if recovered is not None:
                doc = shallow_merge(doc, recovered)
            ensure_late_collections(doc)
            self._holder.replace(doc)
            log.info("state_loaded", source=source)

            # One write covers both legacy migration and format normalization
            saved = None
            if source.endswith("-legacy") or has_records(doc):
                saved = await self._save_unlocked()
            return LoadReport(source=source, saved=saved)

    def _read_local(self) -> Optional[str]:
        try:
            return self._slots.read_raw()
        except OSError as ex:
            log.warning("local_read_failed", error=str(ex))
            return None

    async def _read_remote(self, identifier: str) -> "Outcome[str]":
        try:
            async with self._remote_factory(identifier) as remote:
                return Hit(await remote.read_raw())
        except RemoteStoreError as ex:
            log.warning("remote_read_failed", error=str(ex))
            return Failed(ex)

    # -------- Save --------
    async def save(self) -> SaveReport:
        async with self._lock:
            return await self._save_unlocked()

    async def commit(self, mutate: Callable[[Document], Optional[Document]]) -> SaveReport:
        """Apply `mutate` to the live document, then save, as one exclusive step.

        `mutate` may edit the document in place (return None) or return a
        replacement document.
        """
        async with self._lock:
            replacement = mutate(self._holder.document)
            if replacement is not None:
                self._holder.replace(replacement)
            return await self._save_unlocked()

    async def _save_unlocked(self) -> SaveReport:
        try:
            blob = self._codec.encode(self._holder.document)
        except (TypeError, ValueError) as ex:
            log.error("encode_failed", error=str(ex))
            self._notify("error", "Could not save data: document is not serializable.")
            return SaveReport(target="none", ok=False, error=str(ex))

        target = self.select_target()
        strategies = [Strategy("local", lambda: self._write_local(blob))]
        if isinstance(target, RemoteTarget):
            strategies.insert(0, Strategy("remote", lambda: self._write_remote(target.identifier, blob)))

        chain = await arun_chain(strategies)
        fell_back = isinstance(target, RemoteTarget) and chain.name != "remote"
        if fell_back:
            self._notify("warning", "Remote save failed; data kept in local storage.")
        if not chain.hit:
            err = "; ".join(str(e) for e in chain.errors)
            self._notify("error", f"Could not save data: {err}")
            return SaveReport(target="none", ok=False, fell_back=fell_back, error=err, blob=blob)

        log.info("state_saved", target=chain.name, fell_back=fell_back, bytes=len(blob))
        err = "; ".join(str(e) for e in chain.errors) or None
        return SaveReport(target=chain.name or "none", ok=True, fell_back=fell_back, error=err, blob=blob)

    def _write_local(self, blob: str) -> "Outcome[None]":
        try:
            self._slots.write_raw(blob)
        except (SlotQuotaExceeded, OSError) as ex:
            return Failed(ex)
        return Hit(None)

    async def _write_remote(self, identifier: str, blob: str) -> "Outcome[None]":
        try:
            async with self._remote_factory(identifier) as remote:
                await remote.write_raw(blob)
        except RemoteStoreError as ex:
            return Failed(ex)
        return Hit(None)

    # -------- Remote endpoint configuration --------
    async def set_remote_endpoint(self, identifier: Optional[str]) -> EndpointChange:
        """Store a remote endpoint identifier and migrate the document to it.

        The identifier is kept even when the probe read fails; in that case no
        migration save is attempted.
        """
        identifier = (identifier or "").strip()
        if not identifier:
            return EndpointChange(ok=False, verified=False, message="Please enter a valid API key")

        async with self._lock:
            probe = await self._read_remote(identifier)
            try:
                self._slots.set(REMOTE_ID_KEY, identifier)
            except (SlotQuotaExceeded, OSError) as ex:
                log.error("remote_id_store_failed", error=str(ex))
                return EndpointChange(ok=False, verified=isinstance(probe, Hit), message=str(ex))

            if isinstance(probe, Hit):
                saved = await self._save_unlocked()
                return EndpointChange(
                    ok=True,
                    verified=True,
                    message="API key saved successfully! Data will now be stored remotely.",
                    saved=saved,
                )
            return EndpointChange(
                ok=True,
                verified=False,
                message="API key saved, but could not verify connection. Please check the remote deployment.",
            )

    async def clear_remote_endpoint(self) -> SaveReport:
        """Forget the remote endpoint and write the live document locally.

        Raises RemoteEndpointLocked under `RemotePolicy.ONE_WAY`.
        """
        if self._policy is RemotePolicy.ONE_WAY:
            raise RemoteEndpointLocked("remote endpoint cannot be cleared under the one-way policy")
        async with self._lock:
            try:
                self._slots.remove(REMOTE_ID_KEY)
            except (SlotQuotaExceeded, OSError) as ex:
                return SaveReport(target="none", ok=False, error=str(ex))
            return await self._save_unlocked()

    async def push_local_to_remote(self) -> SaveReport:
        """Copy the Local Slot Store's blob to the configured remote as-is."""
        async with self._lock:
            target = self.select_target()
            if not isinstance(target, RemoteTarget):
                return SaveReport(target="none", ok=False, error="no remote endpoint configured")
            blob = self._read_local()
            if not blob:
                return SaveReport(target="none", ok=False, error="local slot is empty")
            outcome = await self._write_remote(target.identifier, blob)
            if isinstance(outcome, Failed):
                self._notify("warning", "Could not push local data to remote storage.")
                return SaveReport(target="remote", ok=False, error=str(outcome.error), blob=blob)
            return SaveReport(target="remote", ok=True, blob=blob)


__all__ = [
    "PersistenceCoordinator",
    "RemotePolicy",
    "LocalTarget",
    "RemoteTarget",
    "BackingTarget",
    "SaveReport",
    "LoadReport",
    "EndpointChange",
]
