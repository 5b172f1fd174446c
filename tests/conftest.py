import sqlite3
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from load_hunter.database import Base, build_engine
from load_hunter.models import hunt, load_email, lookups  # noqa: F401  (register tables)
from load_hunter.services.load_ids import ensure_load_id_counters


sqlite3.register_adapter(Decimal, float)


@pytest.fixture()
def db_session():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    db = session_factory()
    ensure_load_id_counters(db)
    db.commit()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()
