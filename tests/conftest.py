"""Pytest configuration and fixtures."""

import os

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from src.api.dependencies import get_vision_service
from src.database import Base, get_db, get_session_factory
from src.main import app
from src.models.category import Category
from src.services.image_encoder import EncodedImage, encode_image
from src.services.vision import VisionService


class AuthHeaders(dict):
    """Dict subclass that also stores user_id."""

    def __init__(self, *args, user_id: int | None = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id


class FakeVisionService(VisionService):
    """Vision service that returns a canned reply (or raises) without calling Claude."""

    def __init__(self, reply: str = "", error: Exception | None = None):
        super().__init__(client=None)
        self.reply = reply
        self.error = error
        self.prompts: list[str] = []

    @property
    def is_configured(self) -> bool:
        return True

    async def complete(self, prompt, image, temperature=None, max_tokens=None) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply


# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/recipe_box", "/recipe_box_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

connect_args = {"check_same_thread": False} if "sqlite" in SQLALCHEMY_DATABASE_URL else {}
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args=connect_args)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Smallest valid PNG header; contents are never decoded
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    Base.metadata.create_all(bind=engine)
    yield
    # Don't drop database - just leave it for next run (each test cleans up after itself)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()


@pytest.fixture
def session_factory():
    """Session factory bound to the test database."""
    return TestingSessionLocal


@pytest.fixture
def make_vision():
    """Build a fake vision service with a canned reply or error."""
    return FakeVisionService


@pytest.fixture
def vision():
    """Fake vision service; set .reply or .error in the test."""
    return FakeVisionService()


@pytest.fixture(scope="function")
def client(db, vision):
    """Create a test client with database and vision overrides."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_vision_service] = lambda: vision
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(client):
    """Create a user and return auth headers with user info."""
    # Register user
    response = client.post(
        "/api/v1/auth/register",
        json={
            "email": "test@example.com",
            "username": "testcook",
            "password": "testpass123",
            "display_name": "Test Cook",
        },
    )
    assert response.status_code == 201
    data = response.json()
    token = data["access_token"]
    user_id = data["user"]["id"]

    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id)


@pytest.fixture
def second_auth_headers(client):
    """Create a second user and return auth headers with user info."""
    response = client.post(
        "/api/v1/auth/register",
        json={"email": "other@example.com", "username": "othercook", "password": "otherpass123"},
    )
    assert response.status_code == 201
    data = response.json()
    return AuthHeaders(
        {"Authorization": f"Bearer {data['access_token']}"}, user_id=data["user"]["id"]
    )


@pytest.fixture
def author(db):
    """A user created directly in the database."""
    from src.models.user import User

    user = User(email="author@example.com", username="author", password_hash="not-a-real-hash")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def categories(db):
    """Seed a small closed set of categories."""
    rows = [
        Category(name="Breakfast", slug="breakfast"),
        Category(name="Desserts", slug="desserts"),
    ]
    db.add_all(rows)
    db.commit()
    return rows


@pytest.fixture
def png_image() -> EncodedImage:
    return encode_image(PNG_BYTES, "image/png")
