from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from validation_portal.core.config import settings


def _engine_kwargs(dsn: str) -> dict:
    if dsn.startswith("sqlite"):
        # Partition reads run on worker threads.
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": 30,
    }


engine = create_engine(settings.DATABASE_DSN, **_engine_kwargs(settings.DATABASE_DSN))

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
