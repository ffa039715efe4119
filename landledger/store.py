"""
State store abstraction.

The registry never owns durable state. It talks to a StateStore that offers
single-key ``get`` / ``put`` with each call atomic, and nothing more. Multi-key
operations are staged in a StateTransaction and written in a fixed order at
commit; when a put fails the transaction reports which keys already landed.

Backends:
    InMemoryStateStore   dict-backed, versioned, used by tests and embedding
    JsonFileStateStore   one canonical JSON file, used by the CLI
"""

from __future__ import annotations

import base64
import json
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from landledger.errors import StoreWriteError
from landledger.observability import LedgerLayer, get_logger

logger = get_logger("store", LedgerLayer.STORE)


class StoreError(Exception):
    """A backend could not complete a get or put."""
    pass


class StateStore(ABC):
    """Key/value state as exposed by the host ledger."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Return the value under key, or None if it was never written."""

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        """Write value under key. Raises StoreError on failure."""

    @abstractmethod
    def keys(self) -> List[str]:
        """All keys currently holding a value."""


@dataclass(frozen=True)
class VersionedState:
    """A stored value with its write version."""
    value: bytes
    version: int
    updated_at: str


class InMemoryStateStore(StateStore):
    """
    Thread-safe in-memory store with per-key versions.

    ``fail_on`` names keys whose puts raise StoreError, for exercising
    partial-failure paths.
    """

    def __init__(self, initial: Optional[Dict[str, bytes]] = None, fail_on: Iterable[str] = ()):
        self._data: Dict[str, VersionedState] = {}
        self._lock = threading.RLock()
        self._version = 0
        self.fail_on = set(fail_on)
        for key, value in (initial or {}).items():
            self.put(key, value)

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            state = self._data.get(key)
            return state.value if state is not None else None

    def get_versioned(self, key: str) -> Optional[VersionedState]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise StoreError(f"value for {key!r} must be bytes, got {type(value).__name__}")
        with self._lock:
            if key in self.fail_on:
                raise StoreError(f"injected write failure for key {key!r}")
            self._version += 1
            self._data[key] = VersionedState(
                value=bytes(value),
                version=self._version,
                updated_at=datetime.now(timezone.utc).isoformat(),
            )

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())

    def snapshot(self) -> Dict[str, bytes]:
        """Copy of the current key/value map."""
        with self._lock:
            return {k: v.value for k, v in self._data.items()}


def _encode_value(value: bytes) -> Union[str, Dict[str, str]]:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return {"base64": base64.b64encode(value).decode("ascii")}


def _decode_value(raw: Union[str, Dict[str, str]]) -> bytes:
    if isinstance(raw, str):
        return raw.encode("utf-8")
    if isinstance(raw, dict) and isinstance(raw.get("base64"), str):
        return base64.b64decode(raw["base64"])
    raise StoreError(f"unrecognised stored value: {raw!r}")


class JsonFileStateStore(StateStore):
    """
    State persisted as one JSON object mapping key -> value.

    Every put rewrites the file through a temporary file and an atomic
    rename, so a crash leaves either the old or the new map on disk.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.RLock()
        self._data: Dict[str, bytes] = self._load()

    def _load(self) -> Dict[str, bytes]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"cannot read state file {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raise StoreError(f"state file {self.path} must contain a JSON object")
        return {str(k): _decode_value(v) for k, v in raw.items()}

    def _flush(self, data: Dict[str, bytes]) -> None:
        payload = json.dumps(
            {k: _encode_value(v) for k, v in data.items()},
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(payload + "\n", encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StoreError(f"cannot write state file {self.path}: {e}") from e

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise StoreError(f"value for {key!r} must be bytes, got {type(value).__name__}")
        with self._lock:
            updated = dict(self._data)
            updated[key] = bytes(value)
            self._flush(updated)
            self._data = updated

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())


@dataclass(frozen=True)
class WriteReceipt:
    """One confirmed put of a committed transaction."""
    key: str
    size: int
    sequence: int


class StateTransaction:
    """
    Staged writes against a StateStore.

    Reads go through the staged overlay first, so logic that reads a key it
    has already staged sees its own write. Nothing reaches the store until
    ``commit``, which issues puts in staging order and stops at the first
    failure.
    """

    def __init__(self, store: StateStore):
        self.store = store
        self._staged: Dict[str, bytes] = {}
        self._order: List[str] = []
        self._committed = False

    def get(self, key: str) -> Optional[bytes]:
        if key in self._staged:
            return self._staged[key]
        return self.store.get(key)

    def put(self, key: str, value: bytes) -> None:
        if self._committed:
            raise RuntimeError("transaction already committed")
        # Restaging a key replaces its value but keeps its first position.
        if key not in self._staged:
            self._order.append(key)
        self._staged[key] = bytes(value)

    @property
    def pending(self) -> List[Tuple[str, bytes]]:
        return [(k, self._staged[k]) for k in self._order]

    @property
    def pending_keys(self) -> List[str]:
        return list(self._order)

    def commit(self) -> List[WriteReceipt]:
        """Write every staged key in order. Raises StoreWriteError on the first failed put."""
        if self._committed:
            raise RuntimeError("transaction already committed")
        self._committed = True

        receipts: List[WriteReceipt] = []
        for key, value in self.pending:
            try:
                self.store.put(key, value)
            except (StoreError, OSError) as e:
                landed = [r.key for r in receipts]
                logger.error(
                    "state write failed",
                    error_code=StoreWriteError.error_code,
                    key=key,
                    landed=landed,
                )
                raise StoreWriteError(key, landed, cause=e) from e
            receipts.append(WriteReceipt(key=key, size=len(value), sequence=len(receipts)))

        logger.debug("transaction committed", keys=[r.key for r in receipts])
        return receipts
