"""Shared fixtures.

Provides an in-memory SQLite engine seeded with three authors, four posts
and two comments, plus a search service bound to a fresh registry.
"""

from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fastapi_granular_search import FuzzyMode, GranularSearch, GranularSearchSettings, SearchRegistry

from tests.models import Author, Base, Comment, Post, StatusEnum


@pytest.fixture
def engine():
    """Function-scoped :memory: SQLite engine shared across threads."""
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(bind=engine)
    sess = factory()
    yield sess
    sess.close()


@pytest.fixture
def seeded(session):
    ada = Author(id=1, name="Ada Lovelace", email="ada@example.com", password="secret", age=36)
    alan = Author(id=2, name="Alan Turing", email="alan@example.com", age=41)
    grace = Author(id=3, name="Grace Hopper", email="grace@example.com", age=85, is_active=False)
    session.add_all([ada, alan, grace])
    session.add_all([
        Post(id=1, title="Notes on the Analytical Engine", body="Bernoulli numbers",
             status=StatusEnum.PUBLISHED, views=120, author=ada, reviewer=alan,
             created_at=datetime(2024, 1, 5, 10, 0)),
        Post(id=2, title="Computing Machinery and Intelligence", body="The imitation game",
             status=StatusEnum.PUBLISHED, views=300, author=alan, reviewer=grace,
             created_at=datetime(2024, 1, 6, 9, 0)),
        Post(id=3, title="On Computable Numbers", body="Entscheidungsproblem",
             status=StatusEnum.ARCHIVED, views=80, author=alan,
             created_at=datetime(2024, 1, 6, 15, 30)),
        Post(id=4, title="The first bug", body="A moth in the relay",
             status=StatusEnum.DRAFT, views=5, author=grace, reviewer=ada,
             created_at=datetime(2024, 1, 20, 8, 0)),
    ])
    session.add_all([
        Comment(id=1, body="Lovely cat picture", post_id=4),
        Comment(id=2, body="Brilliant", post_id=1),
    ])
    session.commit()
    return session


@pytest.fixture
def registry():
    return SearchRegistry()


@pytest.fixture
def settings():
    return GranularSearchSettings(fuzzy_mode=FuzzyMode.CONTIGUOUS)


@pytest.fixture
def searcher(registry, settings):
    return GranularSearch(registry=registry, settings=settings)

