"""Per-correspondent key records cached in memory and persisted as one blob."""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from chatpgp.exceptions import KeyStoreNotReadyError, PersistenceError
from chatpgp.storage.backends import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "pgp-encryption-keys"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(frozen=True)
class KeyRecord:
    """Keys configured for one correspondent.

    ``public_key`` encrypts messages sent to the correspondent and
    ``private_key`` decrypts messages received from them. Either may be
    empty, but a record with both empty is never stored.
    """

    public_key: str = ""
    private_key: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.public_key and not self.private_key

    def to_dict(self) -> dict[str, str]:
        return {"publicKey": self.public_key, "privateKey": self.private_key}

    @classmethod
    def from_dict(cls, data: Any) -> "KeyRecord":
        """Build a record from its persisted form.

        Raises:
            ValueError: If the entry is not a mapping of string fields

        """
        if not isinstance(data, dict):
            error_msg = f"Expected a mapping, got {type(data).__name__}"
            raise ValueError(error_msg)
        public_key = data.get("publicKey") or ""
        private_key = data.get("privateKey") or ""
        if not isinstance(public_key, str) or not isinstance(private_key, str):
            error_msg = "publicKey and privateKey must be strings"
            raise ValueError(error_msg)
        return cls(public_key=public_key, private_key=private_key)


class KeyStoreState(Enum):
    """Lifecycle of the in-memory cache."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


class KeyStore:
    """Cache of key records over an asynchronous key-value store.

    The cache is filled by a single load shared by every concurrent caller of
    :meth:`init`. Synchronous reads through :meth:`get` are only allowed once
    that load has finished. Each mutation re-persists the whole cache; saves
    are serialized, and a mutation already captured by a finished save does
    not trigger another write.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        storage_key: str = STORAGE_KEY,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the key store.

        Args:
            backend: Persistence substrate holding the serialized cache
            storage_key: Name of the blob inside the substrate
            timeout: Upper bound in seconds for each substrate call, None for no limit

        """
        self.backend = backend
        self.storage_key = storage_key
        self.timeout = timeout

        self._cache: dict[str, KeyRecord] = {}
        self._state = KeyStoreState.UNINITIALIZED
        self._load_task: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()
        self._revision = 0
        self._saved_revision = 0

    @property
    def state(self) -> KeyStoreState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is KeyStoreState.READY

    async def init(self) -> None:
        """Load the cache once; concurrent callers share the same load.

        Raises:
            PersistenceError: If the substrate cannot be read. The store stays
                uninitialized and the next call retries.

        """
        if self._state is KeyStoreState.READY:
            return
        if self._load_task is None:
            self._state = KeyStoreState.LOADING
            self._load_task = asyncio.create_task(self._load())
            self._load_task.add_done_callback(_retrieve_load_error)
        await asyncio.shield(self._load_task)

    def get(self, correspondent_id: str) -> KeyRecord | None:
        """Return the cached record for ``correspondent_id``.

        Raises:
            KeyStoreNotReadyError: If :meth:`init` has not completed yet

        """
        if self._state is not KeyStoreState.READY:
            error_msg = (
                f"Key store is {self._state.value}; await init() before reading"
            )
            raise KeyStoreNotReadyError(error_msg)
        return self._cache.get(correspondent_id)

    async def lookup(self, correspondent_id: str) -> KeyRecord | None:
        """Load if needed, then read; a failed load reads as "no keys"."""
        try:
            await self.init()
        except PersistenceError as e:
            logger.warning(
                f"Key store unavailable, no keys for {correspondent_id}: {e.message}",
            )
            return None
        return self._cache.get(correspondent_id)

    async def put(self, correspondent_id: str, record: KeyRecord) -> None:
        """Store ``record`` for ``correspondent_id`` and persist the cache.

        A record with both keys empty removes the entry instead. The change
        is visible to :meth:`get` before the save completes, and is undone
        again if the save fails.

        Raises:
            PersistenceError: If loading or saving fails

        """
        await self.init()
        previous = self._cache.get(correspondent_id)
        if record.is_empty:
            self._cache.pop(correspondent_id, None)
            logger.info(f"Removed keys for correspondent {correspondent_id}")
        else:
            self._cache[correspondent_id] = record
            logger.info(f"Stored keys for correspondent {correspondent_id}")
        try:
            await self._persist()
        except PersistenceError:
            self._rollback(correspondent_id, None if record.is_empty else record, previous)
            raise

    async def delete(self, correspondent_id: str) -> None:
        """Remove the record for ``correspondent_id``.

        Raises:
            PersistenceError: If loading or saving fails

        """
        await self.put(correspondent_id, KeyRecord())

    async def get_all(self) -> dict[str, KeyRecord]:
        """Return a snapshot copy of every stored record.

        Raises:
            PersistenceError: If the initial load fails

        """
        await self.init()
        return dict(self._cache)

    async def clear(self) -> None:
        """Remove every record and persist the empty state.

        Raises:
            PersistenceError: If saving fails

        """
        if self._load_task is not None:
            try:
                await asyncio.shield(self._load_task)
            except PersistenceError as e:
                logger.warning(f"Discarding failed key load before clearing: {e}")
        self._cache = {}
        self._state = KeyStoreState.READY
        logger.info("Cleared all stored keys")
        await self._persist()

    def _rollback(
        self,
        correspondent_id: str,
        applied: KeyRecord | None,
        previous: KeyRecord | None,
    ) -> None:
        # A later mutation of the same entry wins over the rollback.
        if applied is previous or self._cache.get(correspondent_id) is not applied:
            return
        if previous is None:
            self._cache.pop(correspondent_id, None)
        else:
            self._cache[correspondent_id] = previous
        logger.warning(f"Reverted unsaved keys for correspondent {correspondent_id}")

    async def _load(self) -> None:
        try:
            blob = await asyncio.wait_for(
                self.backend.get(self.storage_key),
                timeout=self.timeout,
            )
            records = self._decode(blob)
        except Exception as e:
            self._state = KeyStoreState.UNINITIALIZED
            self._load_task = None
            error_msg = f"Failed to load '{self.storage_key}': {e}"
            raise PersistenceError(error_msg, e) from e

        self._cache = records
        self._state = KeyStoreState.READY
        self._load_task = None
        logger.debug(f"Loaded keys for {len(records)} correspondent(s)")

    async def _persist(self) -> None:
        self._revision += 1
        revision = self._revision
        async with self._write_lock:
            if self._saved_revision >= revision:
                return
            snapshot_revision = self._revision
            payload = {
                correspondent_id: record.to_dict()
                for correspondent_id, record in self._cache.items()
            }
            try:
                await asyncio.wait_for(
                    self.backend.set(self.storage_key, payload),
                    timeout=self.timeout,
                )
            except Exception as e:
                error_msg = f"Failed to save '{self.storage_key}': {e}"
                raise PersistenceError(error_msg, e) from e
            self._saved_revision = snapshot_revision

    @staticmethod
    def _decode(blob: Any) -> dict[str, KeyRecord]:
        if blob is None:
            return {}
        if not isinstance(blob, dict):
            error_msg = f"Stored keys must be a mapping, got {type(blob).__name__}"
            raise TypeError(error_msg)

        records: dict[str, KeyRecord] = {}
        for correspondent_id, entry in blob.items():
            try:
                record = KeyRecord.from_dict(entry)
            except ValueError as e:
                logger.warning(
                    f"Skipping malformed key entry for {correspondent_id}: {e}",
                )
                continue
            if record.is_empty:
                logger.warning(f"Skipping empty key entry for {correspondent_id}")
                continue
            records[str(correspondent_id)] = record
        return records


def _retrieve_load_error(task: "asyncio.Task[None]") -> None:
    # Marks the failure as retrieved when every awaiter was cancelled.
    if not task.cancelled():
        task.exception()
