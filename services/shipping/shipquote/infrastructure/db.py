from typing import Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from shipquote.core_settings import Settings, get_settings
from shipquote.domain.models import Base


def build_engine(settings: Settings) -> Engine:
    url = settings.database_url
    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        return create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": settings.DB_TIMEOUT_SECONDS},
            poolclass=StaticPool,
            future=True,
        )
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=settings.DB_TIMEOUT_SECONDS,
        connect_args={
            "connect_timeout": settings.DB_TIMEOUT_SECONDS,
            "options": f"-c statement_timeout={settings.DB_TIMEOUT_SECONDS * 1000}",
        },
        future=True,
    )


engine = build_engine(get_settings())
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_models() -> None:
    Base.metadata.create_all(engine)


def ping() -> None:
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
