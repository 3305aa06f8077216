"""
Client wiring.

Builds configured API clients and join controllers from the local
configuration and stored session, and sets up logging.
"""

import logging
from typing import Optional

from evently.api_client import EventlyApiClient
from evently.config import ClientConfig
from evently.join_controller import EventJoinController, NoticeHandler
from evently.models import Event
from evently.session_store import AuthContext, SessionStore


# ============================================================================
# Logging Setup
# ============================================================================


def setup_logging(level: str = "INFO") -> logging.Logger:
    """
    Setup logging for the client.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    return logging.getLogger("evently")


# ============================================================================
# Factories
# ============================================================================


def load_auth_context(store: Optional[SessionStore] = None) -> AuthContext:
    """Load the stored session, or an anonymous context."""
    return (store or SessionStore()).load()


def build_api_client(
    config: ClientConfig,
    auth: Optional[AuthContext] = None,
) -> EventlyApiClient:
    """Create an API client for the configured server and session."""
    return EventlyApiClient(
        server_url=config.server_url,
        token=auth.token if auth else None,
        timeout=config.timeout_seconds,
    )


def build_join_controller(
    api_client: EventlyApiClient,
    auth: AuthContext,
    event: Event,
    on_notice: Optional[NoticeHandler] = None,
) -> EventJoinController:
    """Create a join controller for a parsed event."""
    return EventJoinController.for_event(
        api_client,
        auth,
        event,
        on_notice=on_notice,
    )
