from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker
from community.core.config import settings

engine = create_async_engine(
    settings.DB_URL.replace("psycopg2", "asyncpg"),
    echo=settings.DB_ECHO,
)
SessionLocal = sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

async def get_db():
    async with SessionLocal() as session:
        yield session
