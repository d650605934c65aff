import os

import pytest
from app.core.security import create_access_token
from app.db.session import build_engine, get_db
from app.main import app
from app.models import Base, Book
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


@pytest.fixture()
def engine():
    # Override at runtime: TEST_DATABASE_URL=postgresql+psycopg://... pytest
    url = os.getenv("TEST_DATABASE_URL")
    if url:
        eng = build_engine(url)
    else:
        # Default to in-memory SQLite so tests run without external services.
        eng = build_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    Base.metadata.create_all(bind=eng)
    yield eng
    Base.metadata.drop_all(bind=eng)
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory, monkeypatch):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    # No Redis in tests: the rate limiter fails open.
    monkeypatch.setattr("app.api.rate_limit.get_redis", lambda: None)

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    def _headers(user_id: str = "user-1") -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture()
def make_book(db_session):
    def _make(title: str, author: str, **fields) -> Book:
        book = Book(title=title, author=author, **fields)
        db_session.add(book)
        db_session.commit()
        return book

    return _make
