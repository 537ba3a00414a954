"""
Session record stores.

One record per user: (user_id, session_id, created_at). Every mutating call is
a single atomic operation so concurrent logins/rotations for the same user
resolve to exactly one winning record:
- put: upsert, overwrite on conflict
- swap: replace session_id only if it still equals the expected one
- delete_if_matches: delete only if session_id still matches
- delete_lineage: delete only if created_at still matches, i.e. the record
  descends from the same login (rotation keeps created_at)
- delete: unconditional revoke
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from models.base_model import _uuid_str, as_utc
from models.session_record import SessionRecord
from utils.exceptions import StoreFailure

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass(frozen=True)
class StoredSession:
    user_id: str
    session_id: str
    created_at: datetime


class SessionStore:
    """Interface consumed by services.sessions.SessionManager."""

    def put(self, user_id: str, session_id: str, created_at: datetime) -> None:
        raise NotImplementedError

    def get(self, user_id: str) -> Optional[StoredSession]:
        raise NotImplementedError

    def swap(self, user_id: str, expected_session_id: str, new_session_id: str) -> bool:
        raise NotImplementedError

    def delete_if_matches(self, user_id: str, session_id: str) -> bool:
        raise NotImplementedError

    def delete_lineage(self, user_id: str, created_at: datetime) -> bool:
        raise NotImplementedError

    def delete(self, user_id: str) -> bool:
        raise NotImplementedError


class SQLSessionStore(SessionStore):
    """SessionStore over DBStorage; the unique user_id constraint is the arbiter."""

    def __init__(self, storage):
        self._storage = storage
        self._table = SessionRecord.__table__

    def _execute(self, stmt, action: str, fetch: bool = False):
        """Run one statement in its own transaction; returns the first row or the rowcount."""
        session = self._storage.get_session()
        try:
            result = session.execute(stmt)
            outcome = result.first() if fetch else result.rowcount
            session.commit()
            return outcome
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("session store %s failed", action)
            raise StoreFailure(f"session store {action} failed") from exc

    def put(self, user_id, session_id, created_at):
        session = self._storage.get_session()
        dialect = session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise StoreFailure(f"upsert not supported on {dialect}")
        stmt = insert(self._table).values(
            id=_uuid_str(),
            user_id=user_id,
            session_id=session_id,
            created_at=created_at,
            updated_at=created_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[self._table.c.user_id],
            set_={
                "session_id": stmt.excluded.session_id,
                "created_at": stmt.excluded.created_at,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        self._execute(stmt, "put")

    def get(self, user_id):
        t = self._table
        stmt = select(t.c.user_id, t.c.session_id, t.c.created_at).where(t.c.user_id == user_id)
        row = self._execute(stmt, "get", fetch=True)
        if row is None:
            return None
        return StoredSession(user_id=row.user_id, session_id=row.session_id, created_at=as_utc(row.created_at))

    def swap(self, user_id, expected_session_id, new_session_id):
        t = self._table
        stmt = (
            update(t)
            .where(t.c.user_id == user_id, t.c.session_id == expected_session_id)
            .values(session_id=new_session_id)
        )
        return self._execute(stmt, "swap") == 1

    def delete_if_matches(self, user_id, session_id):
        t = self._table
        stmt = delete(t).where(t.c.user_id == user_id, t.c.session_id == session_id)
        return self._execute(stmt, "delete_if_matches") == 1

    def delete_lineage(self, user_id, created_at):
        t = self._table
        stmt = delete(t).where(t.c.user_id == user_id, t.c.created_at == created_at)
        return self._execute(stmt, "delete_lineage") == 1

    def delete(self, user_id):
        t = self._table
        stmt = delete(t).where(t.c.user_id == user_id)
        return self._execute(stmt, "delete") > 0


class MemorySessionStore(SessionStore):
    """Process-local store; one lock serialises every operation."""

    def __init__(self):
        self._records: Dict[str, StoredSession] = {}
        self._lock = threading.Lock()

    def put(self, user_id, session_id, created_at):
        with self._lock:
            self._records[user_id] = StoredSession(user_id, session_id, created_at)

    def get(self, user_id):
        with self._lock:
            return self._records.get(user_id)

    def swap(self, user_id, expected_session_id, new_session_id):
        with self._lock:
            current = self._records.get(user_id)
            if current is None or current.session_id != expected_session_id:
                return False
            self._records[user_id] = StoredSession(user_id, new_session_id, current.created_at)
            return True

    def delete_if_matches(self, user_id, session_id):
        with self._lock:
            current = self._records.get(user_id)
            if current is None or current.session_id != session_id:
                return False
            del self._records[user_id]
            return True

    def delete_lineage(self, user_id, created_at):
        with self._lock:
            current = self._records.get(user_id)
            if current is None or current.created_at != created_at:
                return False
            del self._records[user_id]
            return True

    def delete(self, user_id):
        with self._lock:
            return self._records.pop(user_id, None) is not None
