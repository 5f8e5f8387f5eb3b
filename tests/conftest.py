"""
Pytest configuration and fixtures for the Room Status Tracker.
"""
import os
import sys

import pytest

# Add parent directory to path to import the app modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app
from db import EXTENSION_KEY


@pytest.fixture
def app(tmp_path):
    """App bound to a fresh temporary database."""
    app = create_app({
        "TESTING": True,
        "DB_PATH": str(tmp_path / "test_rooms.db"),
        "RATELIMIT_ENABLED": False,
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def conn(app):
    """Direct connection to the test database, outside any request."""
    conn = app.extensions[EXTENSION_KEY].connect()
    yield conn
    conn.close()


@pytest.fixture
def call_api(client):
    """POST an action with a JSON body and return (status, payload)."""
    def call(action, **params):
        response = client.post("/api", json={"action": action, **params})
        return response.status_code, response.get_json()
    return call
