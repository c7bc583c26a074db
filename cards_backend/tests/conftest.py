import itertools
import os

# cards_database.db reads DATABASE_URL at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient

from cards_backend.api.deps import get_db, get_storage
from cards_backend.api.main import app
from cards_backend.errors import UpstreamStorageError
from cards_backend.services import users_service
from cards_database.db import make_engine, make_session_factory
from cards_database.models import Base


class FakeStorage:
    """In-memory stand-in for the Supabase bucket."""
    prefix = "https://storage.test/object/public/cards/"

    def __init__(self):
        self.objects = {}
        self.deleted = []
        self.fail_uploads = False
        self._ids = itertools.count(1)

    def upload_image(self, data, filename, mime_type, owner_id):
        if self.fail_uploads:
            raise UpstreamStorageError("Failed to upload image (503).")
        path = f"{owner_id}/{next(self._ids)}-{filename}"
        url = self.prefix + path
        self.objects[url] = data
        return {"url": url, "path": path}

    def delete_image(self, url):
        self.deleted.append(url)
        return self.objects.pop(url, None) is not None

    def is_managed_url(self, url):
        return bool(url) and url.startswith(self.prefix)


@pytest.fixture(scope="session")
def sqlite_url():
    """Fixture to provide a SQLite in-memory database URL for testing."""
    return "sqlite://"

@pytest.fixture(scope="session")
def engine(sqlite_url):
    """Fixture for a persistent in-memory SQLite engine for the test session."""
    return make_engine(sqlite_url)

@pytest.fixture
def tables(engine):
    """Fresh tables for every test."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db_session(engine, tables):
    """Provide a SQLAlchemy session for isolated test usage."""
    TestingSessionLocal = make_session_factory(engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

@pytest.fixture
def storage():
    return FakeStorage()

@pytest.fixture
def client(db_session, storage):
    """Fixture for FastAPI TestClient with test DB and storage dependency overrides."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()

@pytest.fixture
def user_data():
    """Returns default user data for registration."""
    return {
        "username": "alice",
        "email": "alice@example.com",
        "password": "alicepassword123"
    }

@pytest.fixture
def second_user_data():
    """Returns a second user's data."""
    return {
        "username": "bob",
        "email": "bob@example.com",
        "password": "bobpassword456"
    }

def register_and_auth(client, username, email, password):
    """Helper for registering then logging in to get JWT token."""
    r1 = client.post("/api/auth/register", json={
        "username": username, "email": email, "password": password
    })
    assert r1.status_code == 201

    r2 = client.post("/api/auth/login", data={
        "username": username, "password": password
    })
    assert r2.status_code == 200
    return r2.json()["access_token"]

def login(client, username, password):
    r = client.post("/api/auth/login", data={"username": username, "password": password})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['access_token']}"}

@pytest.fixture
def auth_header(client, user_data):
    """Returns {'Authorization': 'Bearer <token>'} for default user."""
    token = register_and_auth(client, user_data["username"], user_data["email"], user_data["password"])
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def second_auth_header(client, second_user_data):
    """Returns auth header for second user."""
    token = register_and_auth(client, second_user_data["username"], second_user_data["email"], second_user_data["password"])
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def admin_header(client, db_session):
    """Auth header for an administrator."""
    users_service.ensure_admin(db_session, "root", "root@example.com", "rootpassword")
    return login(client, "root", "rootpassword")

@pytest.fixture
def card_data():
    return {
        "title": "Finca Lérida",
        "subtitle": "Specialty coffee",
        "sections": [
            {"label": "RÉGION", "content": "Boquete", "layout": "inline", "italic": True},
            {"label": "Notes", "content": "jasmine, bergamot", "font_family": "Lora", "font_size": "large"},
        ],
        "background_color": "#112233",
    }
