"""Test fixtures for Safeguard integration tests.

Uses a temp-file SQLite database built by the production engine factory, so
the BEGIN IMMEDIATE and SAVEPOINT handling under test is the real one.
"""

import pytest
from sqlalchemy.orm import Session

from safeguard.classification.models import (  # noqa: F401 -- ensure models registered
    ClassificationCode,
    EstablishmentClassification,
)
from safeguard.config import get_settings
from safeguard.db.base import Base
from safeguard.db.engine import create_db_engine
from safeguard.establishments.models import Establishment  # noqa: F401
from safeguard.establishments.service import create_establishment


@pytest.fixture(scope="session")
def test_engine(tmp_path_factory):
    """Create a temp SQLite engine with all tables."""
    db_path = tmp_path_factory.mktemp("db") / "safeguard_test.db"
    engine = create_db_engine(f"sqlite:///{db_path}", echo=False)

    Base.metadata.create_all(engine)

    yield engine

    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db_session(test_engine):
    """Create a database session for each test.

    The session runs inside an outer connection transaction and turns its own
    commits and rollbacks into SAVEPOINTs, so everything is undone afterwards.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        expire_on_commit=False,
    )

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def settings_env(monkeypatch):
    """Override SAFEGUARD_* settings for one test.

    Usage: settings_env(inherit_catalog_risk="true")
    """

    def _apply(**overrides):
        for key, value in overrides.items():
            monkeypatch.setenv(f"SAFEGUARD_{key.upper()}", str(value))
        get_settings.cache_clear()
        return get_settings()

    yield _apply

    get_settings.cache_clear()


@pytest.fixture
def establishment(db_session):
    """Create a test establishment: Fazenda Boa Vista."""
    return create_establishment(db_session, "Fazenda Boa Vista")


@pytest.fixture
def establishment_2(db_session):
    """Create a second test establishment: Mercado Central."""
    return create_establishment(db_session, "Mercado Central")
