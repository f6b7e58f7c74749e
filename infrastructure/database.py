"""
数据库配置和连接管理
"""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker
from sqlalchemy.engine import make_url

from core.config import settings
from infrastructure.models import Base

# 创建异步引擎
def _build_async_url(database_url: str) -> str:
    """确保数据库URL使用异步驱动"""
    url = make_url(database_url)
    drivername = url.drivername

    if "+" in drivername:
        return database_url

    driver_map = {
        "postgresql": "postgresql+asyncpg",
        "postgres": "postgresql+asyncpg",
        "sqlite": "sqlite+aiosqlite",
    }

    if drivername not in driver_map:
        raise ValueError(f"Unsupported database driver: {drivername}. Use an async driver in DATABASE__URL")

    async_driver = driver_map[drivername]
    return str(url.set(drivername=async_driver))


def enable_sqlite_foreign_keys(async_engine: AsyncEngine) -> None:
    """SQLite 默认不执行外键约束，删除卡片时需要级联删除交易"""
    if async_engine.dialect.name != "sqlite":
        return

    @event.listens_for(async_engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    _build_async_url(settings.database.url),
    echo=settings.database.echo,
    future=True
)
enable_sqlite_foreign_keys(engine)

# 创建异步会话工厂
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
)


async def create_tables():
    """
    创建所有表

    根据models中定义的所有模型创建对应的数据库表
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
