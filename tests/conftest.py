"""
pytest configuration and fixtures for the Drive Case Folder API test suite
Drive and the case registry are replaced by in-memory fakes
"""

import os
import sys

# Settings are read at import time
os.environ.setdefault("ENV", "TEST")
os.environ.setdefault("PORTAL_BASE_URL", "https://portal.example.com/portal")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest
from fastapi.testclient import TestClient

from app import app
from services.cases_service import get_cases_service
from services.drive_gateway import get_drive_gateway
from services.portal_token_service import PortalTokenService, get_portal_token_service
from fakes import InMemoryDrive, InMemoryCasesService


@pytest.fixture
def drive():
    """Empty in-memory Drive"""
    return InMemoryDrive()


@pytest.fixture
def token_service():
    """Token service with fixed test secrets"""
    return PortalTokenService(
        portal_secret="test-portal-secret",
        reviewer_secret="test-reviewer-secret",
        issuer="drive-case-api-test",
        audience="drive-case-portal",
        default_ttl=3600,
    )


@pytest.fixture
def cases_service():
    return InMemoryCasesService()


@pytest.fixture
def client(drive, token_service, cases_service):
    """TestClient wired to the fakes; the lifespan is not run"""
    app.dependency_overrides[get_drive_gateway] = lambda: drive
    app.dependency_overrides[get_portal_token_service] = lambda: token_service
    app.dependency_overrides[get_cases_service] = lambda: cases_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def case_tree(client):
    """A case tree with two doc types built through the API"""
    response = client.post("/create-case-folders", json={
        "rootName": "Case 1042 - Jane Doe",
        "docTypes": ["ID", "Bank Statements"],
    })
    assert response.status_code == 200
    return response.json()
