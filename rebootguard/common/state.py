"""
Persisted Enforcement State

The only durable record: last notification time, user-chosen reboot time
and the running notification count. Stored as a single JSON document and
always read and written as a whole record.

Uses a writer lock file on Unix systems and write-and-rename everywhere so a
crash mid-write never leaves a truncated record behind.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import datetime
from pathlib import Path
from typing import Any

from .exceptions import StateCorruptionError, StateStoreError
from .timestamp import parse_iso, to_iso, utc_now_iso

# Record field names
LAST_NOTIFICATION_TIME = "LastNotificationTime"
SCHEDULED_REBOOT_TIME = "ScheduledRebootTime"
NOTIFICATION_COUNT = "NotificationCount"

DEFAULT_STATE_FILE = Path(
    os.environ.get("REBOOTGUARD_STATE_FILE", "/var/lib/rebootguard/state.json")
)


@dataclass(frozen=True)
class PersistedState:
    """Durable enforcement state"""
    last_notification_time: datetime | None = None
    scheduled_reboot_time: datetime | None = None
    notification_count: int = 0

    def with_notification(self, now: datetime) -> "PersistedState":
        """State after a delivered notification"""
        return replace(
            self,
            last_notification_time=now,
            notification_count=self.notification_count + 1,
        )

    def with_schedule(self, scheduled: datetime | None) -> "PersistedState":
        """State with the user schedule set or cleared"""
        return replace(self, scheduled_reboot_time=scheduled)

    def for_reboot(self) -> "PersistedState":
        """State written just before a reboot executes; the count survives"""
        return replace(self, last_notification_time=None, scheduled_reboot_time=None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the on-disk record"""
        return {
            LAST_NOTIFICATION_TIME: (
                to_iso(self.last_notification_time)
                if self.last_notification_time else None
            ),
            SCHEDULED_REBOOT_TIME: (
                to_iso(self.scheduled_reboot_time)
                if self.scheduled_reboot_time else None
            ),
            NOTIFICATION_COUNT: self.notification_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PersistedState":
        """
        Create from the on-disk record.

        Raises:
            StateCorruptionError: If any field is malformed
        """
        if not isinstance(data, dict):
            raise StateCorruptionError(f"record is {type(data).__name__}, not an object")

        try:
            last = data.get(LAST_NOTIFICATION_TIME)
            scheduled = data.get(SCHEDULED_REBOOT_TIME)
            last_dt = parse_iso(last) if last else None
            scheduled_dt = parse_iso(scheduled) if scheduled else None
        except ValueError as e:
            raise StateCorruptionError(f"bad timestamp: {e}")

        count = data.get(NOTIFICATION_COUNT, 0)
        if count is None:
            count = 0
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise StateCorruptionError(f"bad {NOTIFICATION_COUNT}: {count!r}")

        return cls(
            last_notification_time=last_dt,
            scheduled_reboot_time=scheduled_dt,
            notification_count=count,
        )


class StateStore(ABC):
    """Whole-record load/save of PersistedState"""

    @abstractmethod
    def load(self) -> PersistedState:
        """
        Load the record. Missing record means first run.

        Raises:
            StateCorruptionError: Record exists but is unparsable
            StateStoreError: Record could not be read
        """

    @abstractmethod
    def save(self, state: PersistedState) -> None:
        """
        Replace the record.

        Raises:
            StateStoreError: Record could not be written
        """

    @abstractmethod
    def clear(self) -> bool:
        """Delete the record. Returns True if one existed."""


class JsonStateStore(StateStore):
    """JSON file backend for PersistedState"""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else DEFAULT_STATE_FILE
        self.lock_path = self.path.with_suffix(".lock")

    def _ensure_dir(self) -> None:
        """Ensure state directory exists"""
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> PersistedState:
        if not self.path.exists():
            return PersistedState()

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except UnicodeDecodeError as e:
            raise StateCorruptionError(f"not UTF-8: {e}", str(self.path))
        except OSError as e:
            raise StateStoreError(f"Cannot read state: {e}", str(self.path))

        if not raw.strip():
            return PersistedState()

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateCorruptionError(f"invalid JSON: {e}", str(self.path))

        return PersistedState.from_dict(data)

    def save(self, state: PersistedState) -> None:
        data_with_meta = {
            **state.to_dict(),
            "_updated_at": utc_now_iso(),
        }

        try:
            self._ensure_dir()
            temp_path = self.path.with_suffix(".tmp")

            if os.name == "nt":
                # Windows: write to temp file, then rename (atomic on same filesystem)
                with open(temp_path, "w", encoding="utf-8") as f:
                    json.dump(data_with_meta, f, indent=2)
                temp_path.replace(self.path)
            else:
                # Unix: writers serialize on a sidecar lock file, which the
                # rename below never replaces
                import fcntl
                with open(self.lock_path, "a") as lock:
                    fcntl.flock(lock.fileno(), fcntl.LOCK_EX)
                    try:
                        with open(temp_path, "w", encoding="utf-8") as f:
                            json.dump(data_with_meta, f, indent=2)
                            f.flush()
                            os.fsync(f.fileno())
                        temp_path.replace(self.path)
                    finally:
                        fcntl.flock(lock.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            raise StateStoreError(f"Cannot write state: {e}", str(self.path))

    def clear(self) -> bool:
        try:
            if self.path.exists():
                self.path.unlink()
                return True
        except OSError as e:
            raise StateStoreError(f"Cannot delete state: {e}", str(self.path))
        return False
