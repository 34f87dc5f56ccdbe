"""
Progress persistence for in-flight booking sessions.

Progress is stored as ``{"draft": ..., "step": ...}`` keyed by salon id and
scoped to one browsing session. Anything unreadable, expired or structurally
invalid is treated as if nothing had been stored.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict

import pendulum

from ..domain.workflow import BookingSession

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 120

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class ProgressStore:
    """
    Shared save/restore/clear logic; subclasses provide raw storage.
    """

    def __init__(self, ttl_minutes: int | None = DEFAULT_TTL_MINUTES) -> None:
        self.ttl_minutes = ttl_minutes

    def save(self, session: BookingSession) -> None:
        """
        Persist the session's draft and step.

        Storage failures are logged and ignored.
        """
        record = session.to_progress()
        record["savedAt"] = pendulum.now("UTC").to_iso8601_string()
        try:
            self._write(session.salon_id, json.dumps(record))
        except OSError as exc:
            logger.warning("Could not save booking progress for salon %s: %s", session.salon_id, exc)

    def restore(self, salon_id: str, hide_staff_selection: bool = False) -> BookingSession | None:
        """
        Load the stored session for a salon.

        Returns:
            The restored session, or None if nothing usable is stored
        """
        raw = self._read(salon_id)
        if raw is None:
            return None

        try:
            record = json.loads(raw)
            if self._is_expired(record):
                logger.info("Discarding expired booking progress for salon %s", salon_id)
                self.clear(salon_id)
                return None
            return BookingSession.from_progress(
                salon_id,
                record,
                hide_staff_selection=hide_staff_selection,
            )
        except (ValueError, TypeError, AttributeError) as exc:
            logger.warning("Ignoring invalid booking progress for salon %s: %s", salon_id, exc)
            return None

    def clear(self, salon_id: str) -> None:
        try:
            self._delete(salon_id)
        except OSError as exc:
            logger.warning("Could not clear booking progress for salon %s: %s", salon_id, exc)

    def _is_expired(self, record: Dict[str, Any]) -> bool:
        if not self.ttl_minutes:
            return False

        saved_at = record.get("savedAt")
        if not saved_at:
            return False

        saved = pendulum.parse(saved_at)
        return pendulum.now("UTC").diff(saved).in_minutes() >= self.ttl_minutes

    def _read(self, salon_id: str) -> str | None:
        raise NotImplementedError

    def _write(self, salon_id: str, payload: str) -> None:
        raise NotImplementedError

    def _delete(self, salon_id: str) -> None:
        raise NotImplementedError


class InMemoryProgressStore(ProgressStore):
    """Progress kept for the lifetime of the process."""

    def __init__(self, ttl_minutes: int | None = DEFAULT_TTL_MINUTES) -> None:
        super().__init__(ttl_minutes)
        self._records: Dict[str, str] = {}

    def _read(self, salon_id: str) -> str | None:
        return self._records.get(salon_id)

    def _write(self, salon_id: str, payload: str) -> None:
        self._records[salon_id] = payload

    def _delete(self, salon_id: str) -> None:
        self._records.pop(salon_id, None)


class FileProgressStore(ProgressStore):
    """
    Progress kept as JSON files under ``<directory>/<session_id>/<salon_id>.json``.
    """

    def __init__(
        self,
        directory: Path,
        session_id: str,
        ttl_minutes: int | None = DEFAULT_TTL_MINUTES,
    ) -> None:
        super().__init__(ttl_minutes)
        self.directory = Path(directory).expanduser() / _safe_key(session_id)

    def _path_for(self, salon_id: str) -> Path:
        return self.directory / f"{_safe_key(salon_id)}.json"

    def _read(self, salon_id: str) -> str | None:
        path = self._path_for(salon_id)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not read booking progress %s: %s", path, exc)
            return None

    def _write(self, salon_id: str, payload: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path_for(salon_id).write_text(payload, encoding="utf-8")

    def _delete(self, salon_id: str) -> None:
        self._path_for(salon_id).unlink(missing_ok=True)


def _safe_key(value: str) -> str:
    return _UNSAFE_KEY_CHARS.sub("_", value) or "_"
