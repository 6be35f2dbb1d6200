import sys
from pathlib import Path

# Ensure repository root is on sys.path so 'import backend' works
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# Force pytest-anyio to use asyncio backend (avoid requiring 'trio')
@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def engine():
    from backend.wellspring.db.base import Base
    from backend.wellspring.models import sql_models  # noqa: F401

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_fks(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def chat_service(db):
    from backend.wellspring.repositories.chat import ChatRepository
    from backend.wellspring.services.chat import ChatService

    return ChatService(ChatRepository(db))


@pytest.fixture()
def journal_service(db):
    from backend.wellspring.repositories.journal import JournalRepository
    from backend.wellspring.services.journal import JournalService

    return JournalService(JournalRepository(db))


@pytest.fixture()
def mood_service(db):
    from backend.wellspring.repositories.journal import JournalRepository
    from backend.wellspring.repositories.mood import MoodRepository
    from backend.wellspring.services.mood import MoodService

    return MoodService(MoodRepository(db), JournalRepository(db))


@pytest.fixture()
def test_settings():
    from backend.wellspring.config import Settings

    return Settings(
        GEMINI_API_KEY="test-key",
        COMPLETION_MODEL="gemini-test",
        COMPLETION_API_BASE="https://llm.test/v1beta",
        MOOD_MODEL_API_URL="http://classifier.test/predict",
    )
