"""Persistence helpers for user-model state and the event log."""

from __future__ import annotations

import json
import logging
import pickle
import threading
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from .types import UserModelState

LOGGER = logging.getLogger(__name__)
STATE_FILENAME = "state.pkl"
EVENTS_FILENAME = "events.log"


class StateStore:
    """On-disk home of the per-user ``UserModelState`` snapshot."""

    def __init__(self, root_dir: Path) -> None:
        self.root_dir = root_dir.expanduser()
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self._state_path = self.root_dir / "data" / STATE_FILENAME

    @property
    def state_path(self) -> Path:
        return self._state_path

    def load(self) -> UserModelState:
        """Return the stored snapshot, or a fresh one when missing or corrupt."""

        path = self._state_path
        if not path.exists():
            return UserModelState()
        try:
            with path.open("rb") as handle:
                state = pickle.load(handle)
        except Exception:
            LOGGER.warning("Failed to load user-model state from %s", path, exc_info=True)
            self._quarantine_corrupt_file(path)
            return UserModelState()
        if not isinstance(state, UserModelState):
            LOGGER.warning("Unexpected object in %s; starting from empty state", path)
            self._quarantine_corrupt_file(path)
            return UserModelState()
        return state

    def save(self, state: UserModelState) -> Path:
        """Persist a snapshot using an atomic pickle write."""

        def _write(tmp_path: Path) -> None:
            with tmp_path.open("wb") as handle:
                pickle.dump(state, handle)

        self._atomic_write(self._state_path, _write)
        return self._state_path

    def _atomic_write(self, target: Path, writer: Callable[[Path], None]) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_name = f".{target.name}.{uuid.uuid4().hex}.tmp"
        tmp_path = target.with_name(tmp_name)
        try:
            writer(tmp_path)
            tmp_path.replace(target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink(missing_ok=True)

    def _quarantine_corrupt_file(self, path: Path) -> None:
        if not path.exists():
            return
        suffix = ".corrupt"
        candidate = path.with_name(f"{path.name}{suffix}")
        counter = 1
        while candidate.exists():
            counter += 1
            candidate = path.with_name(f"{path.name}{suffix}{counter}")
        path.replace(candidate)


@dataclass(frozen=True)
class EventRecord:
    """JSON serialisable representation of a user-model event."""

    tag: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_json(self) -> str:
        body = {
            "timestamp": self.timestamp.isoformat(),
            "event": self.tag,
            "payload": dict(self.payload),
        }
        return json.dumps(body, separators=(",", ":"), default=_json_default)


class EventLogger:
    """Simple JSON-lines logger with coarse rotation."""

    def __init__(self, path: Path, *, max_bytes: int = 5_000_000, backups: int = 3) -> None:
        self._path = path
        self._max_bytes = max_bytes
        self._backups = backups
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(self, record: EventRecord) -> None:
        encoded = record.to_json() + "\n"
        data_size = len(encoded.encode("utf-8"))
        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            if self._should_rotate(data_size):
                self._rotate()
            with self._path.open("a", encoding="utf-8") as handle:
                handle.write(encoded)

    def _should_rotate(self, incoming: int) -> bool:
        if not self._path.exists():
            return False
        try:
            current_size = self._path.stat().st_size
        except OSError:
            return False
        return current_size + incoming > self._max_bytes

    def _rotate(self) -> None:
        oldest = self._backup_path(self._backups)
        if oldest.exists():
            oldest.unlink()
        for index in range(self._backups, 0, -1):
            source = self._path if index == 1 else self._backup_path(index - 1)
            destination = self._backup_path(index)
            if source.exists():
                source.replace(destination)

    def _backup_path(self, index: int) -> Path:
        return self._path.with_name(f"{self._path.name}.{index}")


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return str(value)


__all__ = [
    "EVENTS_FILENAME",
    "EventLogger",
    "EventRecord",
    "StateStore",
]
