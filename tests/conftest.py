import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from impfix.models import Base
from impfix.rule_store import RuleStore


@pytest.fixture
def store():
    """RuleStore over a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield RuleStore(sessionmaker(bind=engine, expire_on_commit=False))
    engine.dispose()
