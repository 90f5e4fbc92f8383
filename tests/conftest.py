import os

os.environ.setdefault("DB_BACKEND", "sqlite")
os.environ.setdefault("AUTO_MIGRATE_ON_STARTUP", "false")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from core.db import DB, enable_sqlite_foreign_keys
from core.models import Base
from core.services import parts as part_service


@pytest.fixture
def server_db(tmp_path):
    db_path = tmp_path / "partlink.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    previous_engine = DB.engine
    previous_session = DB.SessionLocal
    DB.engine = engine
    DB.SessionLocal = sessionmaker(bind=engine)
    try:
        yield DB
    finally:
        DB.engine = previous_engine
        DB.SessionLocal = previous_session
        engine.dispose()


@pytest.fixture
def db_session(server_db):
    session = server_db.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def part_ids(server_db):
    """Ids of three freshly stored parts A, B and C."""
    ids = []
    for name in ("Part A", "Part B", "Part C"):
        result = part_service.part_create(name=name)
        assert result["status"] == "stored"
        ids.append(result["id"])
    return ids
