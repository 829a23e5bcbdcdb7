# locale_sync/history.py
"""
周期历史的持久化层：每个 `WorkerResult` 作为一条只追加的历史记录，
按开始时间存入 `worker_results` 表。
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

import structlog
from sqlalchemy import JSON, Boolean, DateTime, Integer, String, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from locale_sync.core.exceptions import ConfigurationError, HistoryError
from locale_sync.core.types import WorkerResult, utcnow

logger = structlog.get_logger(__name__)


class Base(DeclarativeBase):
    pass


class WorkerResultRecord(Base):
    """一次同步周期的历史记录。"""

    __tablename__ = "worker_results"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    successful: Mapped[bool] = mapped_column(Boolean, nullable=False)
    last_status: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)


class SQLAlchemyHistoryStore:
    """`HistoryStore` 协议的 SQLAlchemy 异步实现。"""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    @classmethod
    def from_url(cls, database_url: str) -> "SQLAlchemyHistoryStore":
        if "+aiosqlite" not in database_url and "+asyncpg" not in database_url:
            raise ConfigurationError(f"不支持的数据库类型或驱动: '{database_url}'")
        engine = create_async_engine(database_url)
        return cls(async_sessionmaker(engine, expire_on_commit=False))

    @property
    def engine(self) -> Optional[AsyncEngine]:
        return self._sessionmaker.kw.get("bind")

    async def connect(self) -> None:
        """建立连接并确保表结构存在。"""
        engine = self.engine
        if engine is None:
            raise HistoryError("sessionmaker 没有绑定数据库引擎。")
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise HistoryError(f"初始化历史数据库失败: {e}") from e
        logger.info("历史数据库连接已建立", url=engine.url.render_as_string(hide_password=True))

    async def close(self) -> None:
        engine = self.engine
        if engine is not None:
            await engine.dispose()
        logger.info("历史数据库引擎已关闭。")

    async def save(self, result: WorkerResult) -> None:
        record = WorkerResultRecord(
            start_time=result.start_time,
            end_time=result.end_time,
            successful=result.successful,
            last_status=result.last_status.value,
            payload=result.model_dump(mode="json"),
        )
        try:
            async with self._sessionmaker.begin() as session:
                session.add(record)
        except SQLAlchemyError as e:
            raise HistoryError(f"保存周期结果失败: {e}") from e
        logger.debug("周期结果已保存", start_time=result.start_time.isoformat())

    async def load_last(self) -> Optional[WorkerResult]:
        recent = await self.list_recent(limit=1)
        return recent[0] if recent else None

    async def list_recent(self, limit: int = 10) -> list[WorkerResult]:
        stmt = (
            select(WorkerResultRecord.payload)
            .order_by(WorkerResultRecord.start_time.desc(), WorkerResultRecord.id.desc())
            .limit(limit)
        )
        try:
            async with self._sessionmaker() as session:
                payloads = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as e:
            raise HistoryError(f"查询周期历史失败: {e}") from e
        return [WorkerResult.model_validate(p) for p in payloads]

    async def delete_older_than(self, days: int) -> int:
        """删除开始时间早于 `days` 天前的记录，返回删除的行数。"""
        cutoff = utcnow() - timedelta(days=days)
        stmt = delete(WorkerResultRecord).where(WorkerResultRecord.start_time < cutoff)
        try:
            async with self._sessionmaker.begin() as session:
                deleted = (await session.execute(stmt)).rowcount or 0
        except SQLAlchemyError as e:
            raise HistoryError(f"清理周期历史失败: {e}") from e
        if deleted:
            logger.info("已清理过期的周期历史", deleted=deleted, days=days)
        return deleted
