"""Session store for completed recommendation runs.

Every backend exposes a single shared connection, so the store serialises
all operations on it behind one lock. Writes report success as a bool and
never raise; lookups propagate unexpected errors to the caller.
"""

import logging
import secrets
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from dish_recommender.domain.sessions import DishRecord, SessionRecord, TableRecord

logger = logging.getLogger(__name__)

SESSION_ID_PREFIX = "AI"
SESSION_ID_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
SESSION_ID_SUFFIX_DIGITS = 16


class RestaurantRepository(Protocol):
    """Persistence interface over the restaurant database connection."""

    def get_table_by_number(self, table_number: str) -> TableRecord | None:
        """Return a table by its business identifier, if present."""

    def list_recommended_dishes(self) -> list[DishRecord]:
        """Return available recommended dishes, best sellers first."""

    def insert_session(self, record: SessionRecord) -> None:
        """Insert a new session row, raising on any failure."""

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""

    def list_sessions(
        self, table_id: int | None, user_id: str | None, limit: int
    ) -> list[SessionRecord]:
        """Return the most recent sessions matching the filters."""

    def update_feedback(
        self,
        session_id: str,
        score: int,
        comment: str,
        updated_at: datetime,
    ) -> bool:
        """Set feedback on a session; return whether a row was updated."""

    def close(self) -> None:
        """Release the underlying connection."""


def generate_session_id(now: datetime) -> str:
    """Build ``AI`` + second-resolution timestamp + fixed-width random digits."""
    low = 10 ** (SESSION_ID_SUFFIX_DIGITS - 1)
    suffix = low + secrets.randbelow(9 * low)
    return f"{SESSION_ID_PREFIX}{now.strftime(SESSION_ID_TIMESTAMP_FORMAT)}{suffix}"


@dataclass
class SessionStore:
    """Lock-guarded access to the single restaurant repository."""

    repository: RestaurantRepository
    clock: Callable[[], datetime] = datetime.now
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def generate_session_id(self) -> str:
        """Return a new session id stamped with the current wall-clock time."""
        return generate_session_id(self.clock())

    def create_session(self, record: SessionRecord) -> bool:
        """Insert a session record; return false on any failure."""
        with self._lock:
            try:
                self.repository.insert_session(record)
            except Exception:
                logger.exception(
                    "Failed to persist recommendation session: session_id=%s",
                    record.session_id,
                )
                return False
        return True

    def update_feedback(self, session_id: str, score: int, comment: str) -> bool:
        """Record feedback; a missing session and an I/O error both return false."""
        with self._lock:
            try:
                updated = self.repository.update_feedback(
                    session_id, score, comment, updated_at=datetime.now(tz=UTC)
                )
            except Exception:
                logger.exception(
                    "Failed to update session feedback: session_id=%s", session_id
                )
                return False
        if not updated:
            logger.warning(
                "No session matched feedback update: session_id=%s", session_id
            )
        return updated

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a stored session, if present."""
        with self._lock:
            return self.repository.get_session(session_id)

    def list_sessions(
        self,
        table_id: int | None = None,
        user_id: str | None = None,
        limit: int = 10,
    ) -> list[SessionRecord]:
        """Return the most recent sessions, optionally filtered."""
        with self._lock:
            return self.repository.list_sessions(table_id, user_id, limit)

    def get_table_by_number(self, table_number: str) -> TableRecord | None:
        """Resolve a table by its business identifier."""
        with self._lock:
            return self.repository.get_table_by_number(table_number)

    def list_recommended_dishes(self) -> list[DishRecord]:
        """Return the recommended dishes on the menu."""
        with self._lock:
            return self.repository.list_recommended_dishes()

    def close(self) -> None:
        """Close the underlying repository."""
        with self._lock:
            self.repository.close()
