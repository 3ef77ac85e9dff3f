import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

import config
import health
from database import create_document, get_db
from main import app
from schemas import Content, User
from security import create_access_token, hash_password


def make_user(db, username="bob", email="bob@example.com", password="secret123", role="user", is_active=True):
    user = User(username=username, email=email, password_hash=hash_password(password), role=role, is_active=is_active)
    user_id = create_document(db, "user", user)
    return db["user"].find_one({"_id": ObjectId(user_id)})


def make_content(db, creator=None, **fields):
    data = {
        "platform": "Netflix",
        "title": "Untitled",
        "primaryLanguage": "Hindi",
        "year": 2021,
        "durationHours": 2.0,
    }
    data.update(fields)
    doc = Content.model_validate(data).model_dump(by_alias=True)
    doc.update(isActive=True, createdBy=creator["_id"] if creator else None)
    content_id = create_document(db, "content", doc)
    return db["content"].find_one({"_id": ObjectId(content_id)})


def bearer(user):
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def db():
    return mongomock.MongoClient()["ott_catalog_test"]


@pytest.fixture
def error_log(tmp_path, monkeypatch):
    path = tmp_path / "csv-import-errors.log"
    monkeypatch.setattr(config, "CSV_IMPORT_ERROR_LOG", str(path))
    return path


@pytest.fixture
def client(db, error_log):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[health.current_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def admin(db):
    return make_user(db, username="root", email="root@example.com", role="admin")


@pytest.fixture
def user_headers(user):
    return bearer(user)


@pytest.fixture
def admin_headers(admin):
    return bearer(admin)
