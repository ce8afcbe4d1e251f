"""
Test configuration and fixtures for the mailpass auth server.

Everything runs against in-memory collaborators; no MongoDB or SMTP server
is needed.
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from api.app import create_app
from auth.sessions import SessionService
from auth.verification_store import VerificationStore
from config.settings import Settings
from tests.fakes import FakeClock, FakeIdentityStore, RecordingDelivery

VALID_EMAIL = "user@example.com"
VALID_CODE = "123456"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FakeIdentityStore:
    return FakeIdentityStore()


@pytest.fixture
def delivery() -> RecordingDelivery:
    return RecordingDelivery()


@pytest.fixture
def verifications(clock) -> VerificationStore:
    return VerificationStore(clock=clock)


@pytest.fixture
def sessions(store, clock) -> SessionService:
    return SessionService(store, clock=clock)


@pytest.fixture
def settings() -> Settings:
    return Settings(verification_code_override=VALID_CODE)


@pytest.fixture
def test_app(settings, store, delivery):
    """FastAPI application wired to the in-memory store."""
    return create_app(settings, store=store, delivery=delivery)


@pytest.fixture
def client(test_app) -> Generator[TestClient, None, None]:
    """
    Create a test client for making HTTP requests.
    A fresh application per test keeps pending codes isolated.
    """
    with TestClient(test_app) as test_client:
        yield test_client
