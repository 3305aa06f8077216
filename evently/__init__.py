"""
Evently Client - Event participation client for the Evently API.

This package provides an async client for the Evently event-management
API together with the join/payment eligibility logic that decides which
action a user may take on an event.

Key modules:
- eligibility: Pure decision function over registration and payment state
- join_controller: Join/leave/payment workflow for one event/user pair
- api_client: HTTP client for server communication
- session_store: Encrypted local storage for the authenticated session
- config: Client configuration management
- notifications: Notification models and display helpers
- payments: Payment formatting and validation helpers
"""

from importlib.metadata import PackageNotFoundError, version

DISTRIBUTION_NAME = "evently-client"


def _get_version() -> str:
    """Get the installed distribution version, or a development marker."""
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        return "0.0.0+unknown"


__version__ = _get_version()
