"""
Pytest configuration and shared fixtures.
"""
import os

os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["DB_CONFIG__URL"] = "http://localhost:54321"
os.environ["DB_CONFIG__SERVICE_ROLE_KEY"] = "service-role-key"
os.environ["STRIPE_CONFIG__SECRET_KEY"] = "sk_test_123"
os.environ["STRIPE_CONFIG__WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["EMAIL_CONFIG__API_KEY"] = "re_test_123"
os.environ["ADMIN_KEY"] = "admin-key"
os.environ["BCRYPT_ROUNDS"] = "4"

import pytest
from fastapi.testclient import TestClient

from app.depends.services import get_db, get_email_service, get_stripe_service
from app.main import app
from app.repository.licenses_repository import LicensesRepository
from app.services.licenses.state_machine import LicenseStateMachine
from app.tests.fakes import FakeSupabase, RecordingEmailService


@pytest.fixture
def fake_db():
    """Fixture for the in-memory store."""
    return FakeSupabase()


@pytest.fixture
def licenses_repository(fake_db):
    return LicensesRepository(fake_db)


@pytest.fixture
def state_machine(licenses_repository):
    return LicenseStateMachine(licenses_repository)


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def client(fake_db, email_service):
    """API client wired to the fake store and the recording email sender."""
    app.dependency_overrides[get_db] = lambda: fake_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def override_stripe():
    def _override(service):
        app.dependency_overrides[get_stripe_service] = lambda: service
    return _override

