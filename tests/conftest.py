# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import json

import pytest
import requests
from unittest.mock import MagicMock

from adapta_core.api.client import RemoteApiClient
from adapta_core.errors import NetworkError
from adapta_core.models import Role, Session, User
from adapta_core.offline.local_database import open_local_database
from adapta_core.state.session import SessionContext


# =============================================================================
# STORE FIXTURES
# =============================================================================

@pytest.fixture
def store(tmp_path):
    """Empty local store in a temporary directory"""
    database = open_local_database(tmp_path / "adaptacoes.db", seed=False)
    yield database
    database.close()


@pytest.fixture
def seeded_store(tmp_path):
    """Local store with the default users and sample data"""
    database = open_local_database(tmp_path / "seeded.db", seed=True)
    yield database
    database.close()


@pytest.fixture
def coordinator():
    return User(id="u-coord", email="coordenador@escola.com", name="Maria Silva", role=Role.COORDINATOR)


@pytest.fixture
def teacher():
    return User(id="u-prof", email="professor@escola.com", name="João Santos", role=Role.TEACHER)


@pytest.fixture
def session_context(store):
    return SessionContext(store)


@pytest.fixture
def signed_in_teacher(session_context, teacher):
    """Session context with the teacher signed in"""
    session_context.set(Session(token="mock-token-u-prof", user=teacher))
    return session_context


@pytest.fixture
def signed_in_coordinator(session_context, coordinator):
    session_context.set(Session(token="mock-token-u-coord", user=coordinator))
    return session_context


# =============================================================================
# MOCK FIXTURES
# =============================================================================

@pytest.fixture
def mock_api():
    """API client double whose list calls return empty lists"""
    api = MagicMock(spec=RemoteApiClient)
    api.list_students.return_value = []
    api.list_adaptations.return_value = []
    api.list_reports.return_value = []
    api.list_users.return_value = []
    return api


@pytest.fixture
def offline_api(mock_api):
    """API client double where every call fails with a network error"""
    failure = NetworkError("API request failed: connection refused")
    for name in (
        "create", "update", "delete", "authenticate", "get_me", "list_users",
        "list_students", "list_adaptations", "list_reports", "get_student_report",
    ):
        getattr(mock_api, name).side_effect = failure
    return mock_api


@pytest.fixture
def mock_streamlit():
    """Mock Streamlit for testing"""
    import sys

    # Create mock streamlit module
    mock_st = MagicMock()
    mock_st.session_state = {}
    mock_st.cache_data = lambda f: f
    mock_st.cache_resource = lambda f: f

    # Store original and replace
    original_st = sys.modules.get('streamlit')
    sys.modules['streamlit'] = mock_st

    yield mock_st

    # Restore original
    if original_st:
        sys.modules['streamlit'] = original_st
    else:
        sys.modules.pop('streamlit', None)


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_response(status_code=200, body=None, reason="OK", text=None):
    """Build a requests.Response carrying a JSON (or raw text) body"""
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason
    response.encoding = "utf-8"
    if text is not None:
        response._content = text.encode("utf-8")
    elif body is None:
        response._content = b""
    else:
        response._content = json.dumps(body).encode("utf-8")
    return response


@pytest.fixture
def response_factory():
    return make_response
