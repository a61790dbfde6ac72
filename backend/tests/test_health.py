import pytest
from fastapi.testclient import TestClient
from pydantic import ValidationError

from app.core.config import Settings
from app.main import app

client = TestClient(app)


def test_root():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "running"


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_db():
    response = client.get("/health/db")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "db": "ok"}


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("PROGRESS_CACHE_SECONDS", "30")
    monkeypatch.setenv("MOVING_AVERAGE_WINDOW", "3")

    settings = Settings()

    assert settings.PROGRESS_CACHE_SECONDS == 30
    assert settings.MOVING_AVERAGE_WINDOW == 3
    assert settings.LOG_LEVEL == "INFO"


def test_settings_reject_non_positive_window(monkeypatch):
    monkeypatch.setenv("MOVING_AVERAGE_WINDOW", "0")

    with pytest.raises(ValidationError):
        Settings()
