"""Shared pytest fixtures for transaction core tests."""

from collections.abc import Generator
from itertools import count
from unittest.mock import MagicMock

import pytest

from tests.factories import create_entity
from transaction_core.application import HookRegistry, UnitOfWork
from transaction_core.domain.models import Entity
from transaction_core.infrastructure import Database


@pytest.fixture
def mock_entity_store() -> MagicMock:
    """Create mock EntityStore that hands out sequential ids on save."""
    sequence = count(1)

    def save(entity: Entity) -> str:
        return entity.id or f"01TESTGUID{next(sequence):016d}"

    store = MagicMock()
    store.load = MagicMock(return_value=None)
    store.save = MagicMock(side_effect=save)
    store.query_by_metadata = MagicMock(return_value=[])
    return store


@pytest.fixture
def mock_relationship_store() -> MagicMock:
    """Create mock RelationshipStore with no relationships."""
    store = MagicMock()
    store.add_relationship = MagicMock(return_value=True)
    store.query_relationship = MagicMock(return_value=[])
    return store


@pytest.fixture
def mock_uow(mock_entity_store: MagicMock, mock_relationship_store: MagicMock) -> MagicMock:
    """Create mock Unit of Work with both stores."""
    uow = MagicMock(spec=UnitOfWork)
    uow.entities = mock_entity_store
    uow.relationships = mock_relationship_store
    return uow


@pytest.fixture
def hooks() -> HookRegistry:
    """Create empty hook registry."""
    return HookRegistry()


@pytest.fixture
def sample_merchant() -> Entity:
    """Create sample merchant entity."""
    return create_entity("01MERCHANT0000000000000001", subtype="merchant", title="Acme Store")


@pytest.fixture
def sample_customer() -> Entity:
    """Create sample customer entity."""
    return create_entity("01CUSTOMER0000000000000001", subtype="user", title="Jane Buyer")


@pytest.fixture
def database() -> Generator[Database, None, None]:
    """Create in-memory SQLite database with the schema applied."""
    db = Database("sqlite://")
    db.create_schema()
    yield db
    db.close()


@pytest.fixture
def uow(database: Database) -> Generator[UnitOfWork, None, None]:
    """Create Unit of Work over a session of the in-memory database."""
    with database.session() as session:
        yield UnitOfWork(session)
