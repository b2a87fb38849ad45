"""Shared test fixtures and configuration for backend tests."""
import pytest
from fastapi.testclient import TestClient

from fakes import FakeProvider
from panel.auth.session import SessionIdentity, issue_session_token, set_session_resolver
from panel.config import AppSettings, set_config
from panel.main import app
from panel.uploads.service import UploadService, set_upload_service


@pytest.fixture(autouse=True)
def app_settings():
    """Use default settings so tests never read panel.*.yaml from the CWD."""
    settings = AppSettings()
    set_config(settings)
    set_session_resolver(None)
    yield settings
    set_config(None)
    set_session_resolver(None)
    set_upload_service(None)


@pytest.fixture
def provider() -> FakeProvider:
    """Install a FakeProvider-backed UploadService as the global singleton."""
    fake = FakeProvider()
    set_upload_service(UploadService(fake))
    return fake


@pytest.fixture
def session_token(app_settings) -> str:
    return issue_session_token(
        SessionIdentity(user_id="admin-1", email="admin@example.com"),
        config=app_settings,
    )


@pytest.fixture
def auth_headers(session_token) -> dict:
    return {"Authorization": f"Bearer {session_token}"}


@pytest.fixture
def api_client():
    """Provide a TestClient for the main FastAPI app."""
    return TestClient(app)
