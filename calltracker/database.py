"""
SQL-backed call store using async SQLAlchemy.

Every mutation is a single guarded UPDATE so two callbacks racing for the
same call cannot both see it as PENDING.
"""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import DateTime, String, delete, func, or_, select, update
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from calltracker.exceptions.custom import StoreUnavailableError
from calltracker.schemas.calls import Call, CallStatus, Workflow
from calltracker.store import CallStore, InMemoryCallStore

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class CallRecord(Base):
    __tablename__ = "calls"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    customer_name: Mapped[str] = mapped_column(String(80))
    phone_number: Mapped[str] = mapped_column(String(20))
    workflow: Mapped[str] = mapped_column(String(16))
    status: Mapped[str] = mapped_column(String(16), index=True)
    provider_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)


def _utc(value: datetime | None) -> datetime | None:
    # SQLite hands timestamps back without tzinfo
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _to_call(record: CallRecord) -> Call:
    return Call(
        id=record.id,
        customer_name=record.customer_name,
        phone_number=record.phone_number,
        workflow=Workflow(record.workflow),
        status=CallStatus(record.status),
        provider_id=record.provider_id,
        scheduled_at=_utc(record.scheduled_at),
        created_at=_utc(record.created_at),
    )


def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return
    if url.database and url.database != ":memory:":
        Path(url.database).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)


class SqlCallStore:
    """Call store on any SQLAlchemy async driver (aiosqlite by default)."""

    def __init__(self, database_url: str, *, echo: bool = False) -> None:
        _ensure_sqlite_directory(database_url)
        self._engine = create_async_engine(database_url, echo=echo)
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def init_schema(self) -> None:
        try:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            logger.error("Could not create call schema: %s", exc)
            raise StoreUnavailableError(f"Could not create call schema: {exc}") from exc

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            logger.error("Call store error: %s", exc)
            raise StoreUnavailableError(f"Call store error: {exc}") from exc

    async def create(self, call: Call) -> Call:
        async with self._session() as session:
            session.add(CallRecord(
                id=call.id,
                customer_name=call.customer_name,
                phone_number=call.phone_number,
                workflow=call.workflow.value,
                status=call.status.value,
                provider_id=call.provider_id,
                scheduled_at=call.scheduled_at,
                created_at=call.created_at,
            ))
        return call

    async def get(self, call_id: str) -> Call | None:
        async with self._session() as session:
            record = await session.get(CallRecord, call_id)
            return _to_call(record) if record is not None else None

    async def list_recent(self, limit: int = 100) -> list[Call]:
        stmt = select(CallRecord).order_by(CallRecord.created_at.desc()).limit(limit)
        async with self._session() as session:
            result = await session.execute(stmt)
            return [_to_call(record) for record in result.scalars().all()]

    async def conditional_update(
        self,
        call_id: str,
        *,
        expected_status: CallStatus,
        status: CallStatus | None = None,
        provider_id: str | None = None,
        require_unassigned: bool = False,
        expected_provider_id: str | None = None,
    ) -> Call | None:
        stmt = update(CallRecord).where(
            CallRecord.id == call_id,
            CallRecord.status == expected_status.value,
        )
        if require_unassigned:
            stmt = stmt.where(CallRecord.provider_id.is_(None))
        if expected_provider_id is not None:
            stmt = stmt.where(or_(
                CallRecord.provider_id.is_(None),
                CallRecord.provider_id == expected_provider_id,
            ))

        values: dict[str, object] = {}
        if status is not None:
            values["status"] = status.value
        if provider_id is not None:
            values["provider_id"] = func.coalesce(CallRecord.provider_id, provider_id)
        if not values:
            values["status"] = expected_status.value

        async with self._session() as session:
            result = await session.execute(
                stmt.values(**values).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            record = await session.get(CallRecord, call_id)
            return _to_call(record) if record is not None else None

    async def delete_all(self) -> int:
        async with self._session() as session:
            result = await session.execute(
                delete(CallRecord).execution_options(synchronize_session=False)
            )
            return result.rowcount or 0

    async def close(self) -> None:
        await self._engine.dispose()


async def open_call_store(database_url: str) -> CallStore:
    """In-memory store when no database is configured, SQL store otherwise."""
    if not database_url:
        logger.info("No DATABASE_URL configured, using in-memory call store")
        return InMemoryCallStore()

    store = SqlCallStore(database_url)
    await store.init_schema()
    logger.info("Call store ready on %s", make_url(database_url).render_as_string(hide_password=True))
    return store
