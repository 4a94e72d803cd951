from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache, wraps
import logging

from core.exceptions import PlanningPokerException

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    database_url: str = "sqlite:///./planning_poker.db"
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # 0 disables the idle-room purge task
    room_idle_ttl_minutes: int = 0
    idle_purge_interval_seconds: int = 300

    model_config = SettingsConfigDict(env_file=".env")


@lru_cache()
def get_settings():
    return Settings()


settings = get_settings()

# SQLite needs check_same_thread=False because FastAPI serves sync routes from a threadpool
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
    pool_pre_ping=True
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """
    FastAPI dependency: one Session per request

    The session is closed after the response is sent.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def transactional(func):
    """
    Transaction decorator: commit on success, rollback on any exception

    Usage:
        @transactional
        def reveal_votes(db: Session, room_code: str):
            room = with_room_lock(room_code, db).first()
            room.votes_revealed = True
            queue_event(db, room.code, EventKind.VOTES_REVEALED, ...)

    Room events queued on the session are published by the commit and
    dropped by the rollback. Business rule failures (PlanningPokerException)
    are expected and logged without a traceback; anything else is logged
    as an error. Either way the exception is re-raised.

    Notes:
        - the first argument (or the `db` kwarg) must be the Session
        - never commit inside the decorated function
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        db = None
        if args and isinstance(args[0], Session):
            db = args[0]
        elif 'db' in kwargs:
            db = kwargs['db']

        if db is None:
            raise ValueError(
                f"@transactional requires 'db: Session' as first argument, "
                f"but got args={args}, kwargs={kwargs}"
            )

        try:
            result = func(*args, **kwargs)
            db.commit()
            return result
        except PlanningPokerException as e:
            logger.info(f"Transaction rejected in {func.__name__}: {e}")
            db.rollback()
            raise
        except Exception as e:
            logger.error(f"Transaction failed in {func.__name__}: {e}", exc_info=True)
            db.rollback()
            raise

    return wrapper
