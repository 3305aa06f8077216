"""
Pytest configuration and fixtures for Evently client tests.

This module provides shared fixtures for testing client functionality,
including mock API clients, temporary configuration files, sessions and
sample server payloads.
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
import yaml

from evently.session_store import AuthContext


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def temp_config_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for configuration and session files.

    Yields:
        Path to temporary directory
    """
    with tempfile.TemporaryDirectory(prefix="evently_test_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def client_config() -> dict:
    """Sample client configuration."""
    return {
        "server_url": "http://localhost:8000",
        "timeout_seconds": 10,
        "log_level": "DEBUG",
        "currency": "IDR",
        "payment_methods": ["va", "qris"],
    }


@pytest.fixture
def client_config_file(temp_config_dir: Path, client_config: dict) -> Path:
    """
    Write the sample configuration to a temporary YAML file.

    Returns:
        Path to the configuration file
    """
    config_path = temp_config_dir / "client-config.yaml"
    with open(config_path, "w") as f:
        yaml.dump(client_config, f)
    return config_path


@pytest.fixture
def clean_environment(monkeypatch) -> None:
    """
    Remove Evently environment variables so tests see file/default values.
    """
    for var in (
        "EVENTLY_SERVER_URL",
        "EVENTLY_LOG_LEVEL",
        "EVENTLY_CONFIG_PATH",
    ):
        monkeypatch.delenv(var, raising=False)


# ============================================================================
# Session Fixtures
# ============================================================================


@pytest.fixture
def mock_server_url() -> str:
    return "http://localhost:8000"


@pytest.fixture
def mock_token() -> str:
    return "eyJhbGciOiJIUzI1NiJ9.test-token.signature"


@pytest.fixture
def mock_email() -> str:
    return "ana@example.com"


@pytest.fixture
def auth_context(mock_token: str, mock_email: str) -> AuthContext:
    """An authenticated session."""
    return AuthContext(token=mock_token, email=mock_email, name="Ana")


@pytest.fixture
def anonymous_context() -> AuthContext:
    return AuthContext.anonymous()


# ============================================================================
# Event Fixtures
# ============================================================================


@pytest.fixture
def free_event_payload() -> dict:
    """A free event without approval, as returned by GET /events/{id}."""
    return {
        "id": "evt_free_001",
        "name": "Community Meetup",
        "description": "Monthly meetup",
        "location": "Jakarta",
        "visibility": True,
        "tags": ["community", "tech"],
        "status": "PUBLISHED",
        "requireApproval": False,
        "capacity": 50,
        "attendeeCount": 12,
        "ticketPrice": 0,
        "startDate": "2026-11-01T10:00:00.000Z",
        "endDate": "2026-11-01T12:00:00.000Z",
        "organizerId": "usr_org_001",
        "users": {"id": "usr_org_001", "name": "Budi", "email": "budi@example.com"},
    }


@pytest.fixture
def paid_event_payload(free_event_payload: dict) -> dict:
    """A paid event without approval."""
    return {
        **free_event_payload,
        "id": "evt_paid_001",
        "name": "Jazz Night",
        "ticketPrice": 150000,
    }


@pytest.fixture
def approval_event_payload(free_event_payload: dict) -> dict:
    """A free event that requires organizer approval."""
    return {
        **free_event_payload,
        "id": "evt_appr_001",
        "name": "Private Workshop",
        "requireApproval": True,
    }


@pytest.fixture
def notification_payload() -> dict:
    return {
        "id": "ntf_001",
        "title": "Registration approved",
        "message": "You're in for Jazz Night",
        "type": "REGISTRATION_APPROVED",
        "isRead": False,
        "userId": "usr_001",
        "eventId": "evt_paid_001",
        "createdAt": datetime(2026, 10, 16, 9, 0, tzinfo=timezone.utc).isoformat(),
        "updatedAt": datetime(2026, 10, 16, 9, 0, tzinfo=timezone.utc).isoformat(),
        "events": {"id": "evt_paid_001", "name": "Jazz Night"},
    }


# ============================================================================
# Mock HTTP / API Client Fixtures
# ============================================================================


@pytest.fixture
def mock_response():
    """Factory for mock httpx responses."""

    def _make(status_code: int, body=None) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        if isinstance(body, Exception):
            response.json.side_effect = body
        else:
            response.json.return_value = body
        return response

    return _make


@pytest.fixture
def mock_api_client():
    """Create a mock EventlyApiClient."""
    client = MagicMock()
    client.get_event = AsyncMock()
    client.get_join_status = AsyncMock(return_value={"isJoined": False, "status": "not_joined"})
    client.register_for_event = AsyncMock(return_value={"message": "Successfully registered"})
    client.unregister_from_event = AsyncMock(return_value={"message": "Successfully unregistered"})
    client.check_payment = AsyncMock(return_value=False)
    client.get_events = AsyncMock(return_value={"events": [], "pagination": {}})
    client.get_notifications = AsyncMock(return_value={"notifications": [], "pagination": {}})
    client.get_unread_count = AsyncMock(return_value=0)
    client.mark_notification_read = AsyncMock(return_value={})
    client.mark_all_notifications_read = AsyncMock(return_value={"message": "All notifications marked as read"})
    client.delete_notification = AsyncMock(return_value={"message": "Notification deleted"})
    client.get_registered_events = AsyncMock(return_value=[])
    client.create_payment = AsyncMock()
    client.get_payment_status = AsyncMock()
    client.login = AsyncMock()
    client.register_account = AsyncMock()
    client.get_profile = AsyncMock(
        return_value={"id": "usr_001", "name": "Ana", "email": "ana@example.com"}
    )
    client.close = AsyncMock()
    return client


# ============================================================================
# CLI Fixtures
# ============================================================================


@pytest.fixture
def cli_runner():
    """Create a Click CLI runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def isolated_config(temp_config_dir: Path, clean_environment, monkeypatch) -> Path:
    """
    Point the CLI at a configuration file inside the temporary directory.

    Returns:
        Path of the (not yet existing) configuration file
    """
    config_path = temp_config_dir / "client-config.yaml"
    monkeypatch.setenv("EVENTLY_CONFIG_PATH", str(config_path))
    return config_path
