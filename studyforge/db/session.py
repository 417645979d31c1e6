from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from studyforge.core.config import settings

# Create async engine
engine = create_async_engine(
    str(settings.SQLALCHEMY_DATABASE_URI),
    echo=False,
    future=True,
)

# Each request gets its own session; stores commit per write
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)
