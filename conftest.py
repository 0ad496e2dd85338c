"""Pytest configuration for SoftDelete Toolkit."""

import pytest
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, create_engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from softdelete_toolkit.config import SoftDeleteConfig, set_config
from softdelete_toolkit.soft_delete import SoftDeletable, SoftDeleteMixin

Base = declarative_base()


class Article(Base, SoftDeleteMixin):
    """Soft-deletable entity using the conventional columns."""

    __tablename__ = "articles"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True)
    title = Column(String(100))
    status = Column(String(50))


class Author(Base, SoftDeleteMixin):
    """Parent entity cascading to its books and notes."""

    __tablename__ = "authors"
    __allow_unmapped__ = True
    __soft_delete_cascade__ = ("books", "notes")

    id = Column(Integer, primary_key=True)
    name = Column(String(100))
    books = relationship("Book", back_populates="author")
    notes = relationship("AuthorNote", cascade="all, delete-orphan")


class Book(Base, SoftDeleteMixin):
    """Soft-deletable dependent of Author."""

    __tablename__ = "books"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True)
    title = Column(String(100))
    author_id = Column(Integer, ForeignKey("authors.id"))
    author = relationship("Author", back_populates="books")


class AuthorNote(Base):
    """Plain dependent of Author, removed outright on cascade."""

    __tablename__ = "author_notes"

    id = Column(Integer, primary_key=True)
    body = Column(String(200))
    author_id = Column(Integer, ForeignKey("authors.id"))


class LegacyOrder(Base, SoftDeletable):
    """Entity with a custom marker column, composite key and status flag."""

    __tablename__ = "legacy_orders"
    __soft_delete_field__ = "removed_at"
    __soft_delete_actor_field__ = "removed_by"

    region = Column(String(10), primary_key=True)
    number = Column(Integer, primary_key=True)
    removed_at = Column(DateTime)
    removed_by = Column(String(100))
    del_flag = Column("DEL_FLAG", String(1))


class Flagged(Base, SoftDeleteMixin):
    """Entity whose table may carry a status flag column it does not map."""

    __tablename__ = "flagged"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True)
    name = Column(String(100))


class Misconfigured(Base, SoftDeletable):
    """Entity whose configured marker column does not exist."""

    __tablename__ = "misconfigured"
    __soft_delete_field__ = "archived_at"

    id = Column(Integer, primary_key=True)
    name = Column(String(100))


@pytest.fixture(autouse=True)
def default_config():
    """Give every test a fresh default configuration."""
    config = SoftDeleteConfig()
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create a database session for testing."""
    session = session_factory()
    yield session
    session.close()


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line("markers", "integration: test touching a database")
