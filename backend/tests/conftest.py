"""Shared fixtures: an isolated app per test on in-memory SQLite."""

import base64
import os
import sys

# Settings are read at import time, so configure the environment first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ANTHROPIC_API_KEY"] = ""
os.environ["BLOB_READ_WRITE_TOKEN"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["APP_URL"] = "http://testserver"

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from fastapi.testclient import TestClient

from tempo.config import settings
from tempo.database import Database
from tempo.main import create_app

AUDIO_BYTES = b"RIFF fake audio payload"
AUDIO_B64 = base64.b64encode(AUDIO_BYTES).decode("ascii")


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
def database():
    db = Database("sqlite://")
    yield db
    db.dispose()


@pytest.fixture
def client(upload_dir, database):
    app = create_app(database=database)
    return TestClient(app)


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def signup_teacher(client, email="teacher@example.com", name="Ms Teacher", password="password123") -> dict:
    r = client.post("/api/auth/signup", json={"email": email, "password": password, "name": name})
    assert r.status_code == 201, r.text
    return r.json()


def invite_and_accept(client, teacher_token, email="student@example.com", name="Sam Student", password="password123") -> dict:
    r = client.post(
        "/api/students/invite",
        json={"email": email, "name": name},
        headers=auth_header(teacher_token),
    )
    assert r.status_code == 201, r.text
    invite_token = r.json()["invite_token"]
    r = client.post("/api/students/accept-invite", json={"token": invite_token, "password": password})
    assert r.status_code == 200, r.text
    return r.json()


@pytest.fixture
def teacher(client):
    return signup_teacher(client)


@pytest.fixture
def student(client, teacher):
    return invite_and_accept(client, teacher["token"])
