import logging
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from backend.core import config
from backend.core.errors import InternalError

logger = logging.getLogger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith('sqlite'):
        return {'connect_args': {'check_same_thread': False}}
    return {'pool_pre_ping': True}


engine = create_engine(config.DATABASE_URL, **_engine_options(config.DATABASE_URL))

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_interview_schema_checked = False
_resource_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def store_failure(db: Session, exc: SQLAlchemyError) -> InternalError:
    db.rollback()
    logger.exception('Database operation failed')
    return InternalError(str(exc))


def ensure_interview_schema() -> None:
    global _interview_schema_checked

    if _interview_schema_checked:
        return

    with _schema_lock:
        if _interview_schema_checked:
            return

        inspector = inspect(engine)

        if 'interviews' not in inspector.get_table_names():
            _interview_schema_checked = True
            return

        # Supports the per-user slot conflict lookup; not unique because
        # cancelled interviews may share a slot with a live one.
        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_interviews_user_slot ON interviews(user_id, date, time)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_interviews_user_status ON interviews(user_id, status)')
            )

        _interview_schema_checked = True


def ensure_resource_schema() -> None:
    global _resource_schema_checked

    if _resource_schema_checked:
        return

    with _schema_lock:
        if _resource_schema_checked:
            return

        inspector = inspect(engine)

        if 'resources' not in inspector.get_table_names():
            _resource_schema_checked = True
            return

        with engine.begin() as connection:
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_resources_category_type ON resources(category, type)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_resources_difficulty ON resources(difficulty)')
            )

        _resource_schema_checked = True
