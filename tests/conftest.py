# tests/conftest.py

"""
Pytest configuration and shared fixtures for testing.
"""

import pytest
from fastapi.testclient import TestClient
from typing import Generator

from fakes import FakeSupabase, RecordingBus
from main import create_app
from dependencies.auth import get_bus, get_db, reset_session_registry
from services.permission_resolution import PermissionResolutionService
from services.role_permission_store import RolePermissionStore


@pytest.fixture
def db() -> FakeSupabase:
    """Empty in-memory Supabase."""
    return FakeSupabase()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


@pytest.fixture
def store(db, bus) -> RolePermissionStore:
    return RolePermissionStore(db, bus)


@pytest.fixture
def resolver(store) -> PermissionResolutionService:
    return PermissionResolutionService(store)


@pytest.fixture
def app(db, bus):
    """FastAPI app wired to the fake client and recording bus."""
    reset_session_registry()
    application = create_app()
    application.dependency_overrides[get_db] = lambda: db
    application.dependency_overrides[get_bus] = lambda: bus
    yield application
    application.dependency_overrides.clear()
    reset_session_registry()


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client
