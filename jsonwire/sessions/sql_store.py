"""
JSONWire — SQL Session Store
==============================

What:  Store persisting sessions in the `sessions` table through async
       SQLAlchemy, shared by every worker connected to the database.
How:   Each operation runs in its own short transaction. Validity is decided
       by the database (`expires_at >= now`), and every successful read or
       write slides `expires_at` forward by the session's ttl.
Who:   Plugged into SessionManager:

           engine = create_engine("postgresql+asyncpg://...")
           await create_table(engine)     # or `alembic upgrade head`
           manager = SessionManager(InCookieSimple("sid"), SQLStore(engine))

Error handling:
    Unknown, malformed and expired ids raise SessionNotFound. Database errors
    (SQLAlchemyError) propagate unchanged to the caller.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from jsonwire.database import Base, create_session_factory, get_engine
from jsonwire.exceptions import SessionNotFound
from jsonwire.models.session import SessionRecord
from jsonwire.sessions.base import InternalData, SessionMap, Store

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _dump(data: Mapping[str, InternalData]) -> Dict[str, Any]:
    return {k: v.to_dict() for k, v in data.items()}


def _load(raw: Optional[Mapping[str, Any]]) -> SessionMap:
    return {k: InternalData.from_dict(v) for k, v in (raw or {}).items()}


def _parse_id(sid: str) -> uuid.UUID:
    try:
        return uuid.UUID(sid)
    except (TypeError, ValueError):
        raise SessionNotFound(f"session not exists: {sid}")


async def create_table(engine: AsyncEngine) -> None:
    """Create the sessions table (and its index) if it does not exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, tables=[SessionRecord.__table__])


class SQLStore(Store):
    """
    Args:
        engine: Async engine to use, defaults to jsonwire.database.get_engine().
    """

    def __init__(self, engine: Optional[AsyncEngine] = None):
        self._engine = engine
        self._factory: Optional[async_sessionmaker] = None

    def _session(self) -> AsyncSession:
        if self._factory is None:
            self._factory = create_session_factory(self._engine or get_engine())
        return self._factory()

    async def new(self, ttl: float) -> str:
        now = _now()
        ttl_ms = int(ttl * 1000)
        record = SessionRecord(
            id=uuid.uuid4(),
            data={},
            ttl=ttl_ms,
            last_used=now,
            expires_at=now + timedelta(milliseconds=ttl_ms),
        )
        async with self._session() as db, db.begin():
            db.add(record)
        return str(record.id)

    async def _touch(self, db: AsyncSession, sid: str) -> SessionRecord:
        now = _now()
        stmt = (
            select(SessionRecord)
            .where(SessionRecord.id == _parse_id(sid))
            .where(SessionRecord.expires_at >= now)
        )
        record = (await db.execute(stmt)).scalar_one_or_none()
        if record is None:
            raise SessionNotFound(f"session not exists or expired: {sid}")

        record.last_used = now
        record.expires_at = now + timedelta(milliseconds=record.ttl)
        return record

    async def get(self, sid: str) -> SessionMap:
        async with self._session() as db, db.begin():
            record = await self._touch(db, sid)
            return _load(record.data)

    async def set(self, sid: str, data: Mapping[str, InternalData]) -> None:
        async with self._session() as db, db.begin():
            record = await self._touch(db, sid)
            record.data = _dump(data)

    async def unset(self, sid: str) -> None:
        try:
            key = _parse_id(sid)
        except SessionNotFound:
            return
        async with self._session() as db, db.begin():
            await db.execute(delete(SessionRecord).where(SessionRecord.id == key))

    async def gc(self) -> None:
        async with self._session() as db, db.begin():
            result = await db.execute(delete(SessionRecord).where(SessionRecord.expires_at < _now()))
        if result.rowcount:
            logger.debug("Removed %d expired sessions", result.rowcount)
