"""
Evently API client for server communication.

Provides the async HTTP client used for authentication, event discovery,
event registration, payment checks and notifications. Maps HTTP outcomes
onto a small exception hierarchy so callers can tell network failures,
conflicts and missing resources apart.
"""

import logging
from typing import Any, Optional

import httpx

from evently import __version__

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

API_BASE_PATH = "/api"
DEFAULT_TIMEOUT = 30.0  # seconds
USER_AGENT = f"Evently-Client/{__version__}"

# Substrings the server uses in 400 responses to POST /events/{id}/register
ALREADY_REGISTERED_MARKER = "already registered"
EVENT_FULL_MARKER = "event is full"


# ============================================================================
# Exceptions
# ============================================================================


class ApiError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ConnectionError(ApiError):
    """Raised when the server cannot be reached or the request times out."""

    pass


class AuthenticationError(ApiError):
    """Raised when a call needs a valid session and has none."""

    pass


class ConflictError(ApiError):
    """Raised when the server refuses a state change (HTTP 400)."""

    pass


class AlreadyRegisteredError(ConflictError):
    """Raised when the user is already registered for the event."""

    pass


class EventFullError(ConflictError):
    """Raised when the event has reached its capacity."""

    pass


class NotFoundError(ApiError):
    """Raised when the requested resource does not exist."""

    pass


class ServerError(ApiError):
    """Raised for unexpected statuses and malformed response bodies."""

    pass


# ============================================================================
# Response Helpers
# ============================================================================


def _json_body(response: httpx.Response) -> Any:
    """Decode a response body, raising ServerError when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        raise ServerError(
            "Malformed response from server",
            status_code=response.status_code,
        )


def _error_message(response: httpx.Response, default: str) -> str:
    """
    Extract a readable message from an error body.

    Looks at ``error``, then ``message``, then the first ``errors[].msg``
    (validation failures). Only non-empty strings are used.
    """
    try:
        body = response.json()
    except ValueError:
        return default
    if not isinstance(body, dict):
        return default

    for key in ("error", "message"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value

    errors = body.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        value = errors[0].get("msg")
        if isinstance(value, str) and value:
            return value
    return default


# ============================================================================
# EventlyApiClient Class
# ============================================================================


class EventlyApiClient:
    """
    HTTP client for the Evently API.

    Attributes:
        server_url: Base URL of the Evently server
        token: Optional bearer token for authenticated requests
    """

    def __init__(
        self,
        server_url: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """
        Initialize the API client.

        Args:
            server_url: Base URL of the Evently server
            token: Optional bearer token for authenticated requests
            timeout: Request timeout in seconds

        Raises:
            ValueError: If server_url is empty
        """
        if not server_url:
            raise ValueError("server_url is required")

        self._server_url = server_url.rstrip("/")
        self._token = token
        self._timeout = timeout

        headers = {
            "User-Agent": USER_AGENT,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=self._server_url,
            headers=headers,
            timeout=timeout,
        )

    @property
    def server_url(self) -> str:
        """Get the server URL."""
        return self._server_url

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        """
        Send a request under the API base path.

        Raises:
            ConnectionError: If connection to server fails or times out
        """
        url = f"{API_BASE_PATH}{path}"
        logger.debug(f"{method} {url} params={params}")
        try:
            return await self._client.request(method, url, params=params, json=json)
        except httpx.TimeoutException as e:
            raise ConnectionError(f"Connection timed out: {e}")
        except httpx.TransportError as e:
            raise ConnectionError(f"Failed to connect to server: {e}")

    def _require_token(self) -> None:
        if not self._token:
            raise AuthenticationError("Authentication required")

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    async def login(self, email: str, password: str) -> dict[str, Any]:
        """
        Log in with email and password.

        Returns:
            Response containing ``token`` and ``user``

        Raises:
            AuthenticationError: If the credentials are rejected
            ConnectionError: If connection to server fails
        """
        response = await self._send(
            "POST", "/auth/login", json={"email": email, "password": password}
        )

        if response.status_code == 200:
            body = _json_body(response)
            if not isinstance(body, dict) or not body.get("token"):
                raise ServerError("Login response did not include a token")
            return body
        elif response.status_code in (400, 401):
            raise AuthenticationError(
                _error_message(response, "Login failed"),
                status_code=response.status_code,
            )
        else:
            raise ServerError(
                f"Login failed with status {response.status_code}",
                status_code=response.status_code,
            )

    async def register_account(
        self, name: str, email: str, password: str
    ) -> dict[str, Any]:
        """
        Create a new user account.

        Returns:
            Response containing ``token`` and ``user``

        Raises:
            ConflictError: If the email is taken or the input is invalid
            ConnectionError: If connection to server fails
        """
        response = await self._send(
            "POST",
            "/auth/register",
            json={"name": name, "email": email, "password": password},
        )

        if response.status_code in (200, 201):
            body = _json_body(response)
            if not isinstance(body, dict) or not body.get("token"):
                raise ServerError("Registration response did not include a token")
            return body
        elif response.status_code == 400:
            raise ConflictError(
                _error_message(response, "Registration failed"), status_code=400
            )
        else:
            raise ServerError(
                f"Registration failed with status {response.status_code}",
                status_code=response.status_code,
            )

    async def get_profile(self) -> dict[str, Any]:
        """Get the profile of the authenticated user."""
        self._require_token()
        response = await self._send("GET", "/users/profile")

        if response.status_code == 200:
            body = _json_body(response)
            if not isinstance(body, dict):
                raise ServerError("Malformed profile response")
            return body
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        elif response.status_code == 404:
            raise NotFoundError("User not found", status_code=404)
        else:
            raise ServerError(
                f"Profile request failed with status {response.status_code}",
                status_code=response.status_code,
            )

    async def get_registered_events(self) -> list[dict[str, Any]]:
        """
        List the events the authenticated user is registered for.

        Returns:
            Event payloads, each with ``registrationStatus`` and ``registeredAt``
        """
        self._require_token()
        response = await self._send("GET", "/users/registered-events")

        if response.status_code == 200:
            body = _json_body(response)
            if not isinstance(body, list):
                raise ServerError("Malformed registered events response")
            return [item for item in body if isinstance(item, dict)]
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        else:
            raise ServerError(
                f"Failed to fetch registered events (status {response.status_code})",
                status_code=response.status_code,
            )

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    async def get_events(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        tags: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        List public events.

        Returns:
            Response with ``events`` and ``pagination``
        """
        params: dict[str, Any] = {}
        if page:
            params["page"] = page
        if limit:
            params["limit"] = limit
        if search:
            params["search"] = search
        if tags:
            params["tags"] = tags

        response = await self._send("GET", "/events", params=params)

        if response.status_code == 200:
            return _json_body(response)
        else:
            raise ServerError(
                f"Failed to fetch events (status {response.status_code})",
                status_code=response.status_code,
            )

    async def get_event(self, event_id: str) -> dict[str, Any]:
        """
        Get a single event.

        Raises:
            NotFoundError: If the event does not exist
        """
        response = await self._send("GET", f"/events/{event_id}")

        if response.status_code == 200:
            return _json_body(response)
        elif response.status_code == 404:
            raise NotFoundError("Event not found", status_code=404)
        else:
            raise ServerError(
                f"Failed to fetch event (status {response.status_code})",
                status_code=response.status_code,
            )

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    async def get_join_status(self, event_id: str) -> dict[str, Any]:
        """
        Get the caller's registration status for an event.

        Returns:
            Response with ``isJoined`` and optional ``status``

        Raises:
            AuthenticationError: If the session is missing or expired
            NotFoundError: If the event does not exist
            ConnectionError: If connection to server fails
        """
        self._require_token()
        response = await self._send("GET", f"/events/{event_id}/join-status")

        if response.status_code == 200:
            body = _json_body(response)
            if not isinstance(body, dict):
                raise ServerError("Malformed join status response")
            return body
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        elif response.status_code == 404:
            raise NotFoundError("Event not found", status_code=404)
        else:
            raise ServerError(
                f"Join status request failed with status {response.status_code}",
                status_code=response.status_code,
            )

    async def register_for_event(self, event_id: str) -> dict[str, Any]:
        """
        Register the caller for an event.

        Returns:
            Response body; may contain ``requireApproval``

        Raises:
            AuthenticationError: If the session is missing or expired
            AlreadyRegisteredError: If the caller is already registered
            EventFullError: If the event is at capacity
            ConflictError: For any other 400 response
            NotFoundError: If the event does not exist
            ConnectionError: If connection to server fails
        """
        self._require_token()
        response = await self._send("POST", f"/events/{event_id}/register")

        if response.status_code in (200, 201):
            try:
                body = response.json()
            except ValueError:
                body = {}
            return body if isinstance(body, dict) else {}
        elif response.status_code == 400:
            message = _error_message(response, "Cannot join event")
            lowered = message.lower()
            if ALREADY_REGISTERED_MARKER in lowered:
                raise AlreadyRegisteredError(message, status_code=400)
            if EVENT_FULL_MARKER in lowered:
                raise EventFullError(message, status_code=400)
            raise ConflictError(message, status_code=400)
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        elif response.status_code == 404:
            raise NotFoundError("Event not found", status_code=404)
        else:
            raise ServerError(
                f"Registration failed with status {response.status_code}",
                status_code=response.status_code,
            )

    async def unregister_from_event(self, event_id: str) -> dict[str, Any]:
        """
        Cancel the caller's registration (or pending request) for an event.

        Raises:
            AuthenticationError: If the session is missing or expired
            NotFoundError: If there is no registration to cancel
            ConnectionError: If connection to server fails
        """
        self._require_token()
        response = await self._send("DELETE", f"/events/{event_id}/register")

        if response.status_code == 200:
            try:
                body = response.json()
            except ValueError:
                body = {}
            return body if isinstance(body, dict) else {}
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        elif response.status_code == 404:
            raise NotFoundError(
                _error_message(response, "Registration not found"), status_code=404
            )
        elif response.status_code == 400:
            raise ConflictError(
                _error_message(response, "Cannot leave event"), status_code=400
            )
        else:
            raise ServerError(
                _error_message(
                    response, f"Leave failed with status {response.status_code}"
                ),
                status_code=response.status_code,
            )

    # -------------------------------------------------------------------------
    # Payments
    # -------------------------------------------------------------------------

    async def check_payment(self, event_id: str, email: str) -> bool:
        """
        Check whether a completed payment exists for an event and email.

        Returns:
            True if the server has recorded a completed payment

        Raises:
            ServerError: If the response is malformed or unexpected
            ConnectionError: If connection to server fails
        """
        self._require_token()
        response = await self._send(
            "GET", f"/payments/check/{event_id}", params={"email": email}
        )

        if response.status_code == 200:
            body = _json_body(response)
            data = body.get("data") if isinstance(body, dict) else None
            if not isinstance(data, dict) or not isinstance(data.get("hasPaid"), bool):
                raise ServerError("Malformed payment check response")
            return data["hasPaid"]
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        elif response.status_code == 400:
            raise ConflictError(
                _error_message(response, "Invalid payment check"), status_code=400
            )
        else:
            raise ServerError(
                f"Payment check failed with status {response.status_code}",
                status_code=response.status_code,
            )

    async def create_payment(
        self,
        event_id: str,
        quantity: int,
        payment_method: str,
        buyer_name: str,
        buyer_email: str,
        buyer_phone: str,
    ) -> dict[str, Any]:
        """
        Start a ticket payment with the payment provider.

        Returns:
            The ``data`` object: ``paymentId``, ``paymentUrl``, ``amount``,
            ``referenceId`` and ``paymentMethod``

        Raises:
            ConflictError: If the server rejects the request (free event,
                not enough tickets, invalid method or missing fields)
            NotFoundError: If the event does not exist
            ServerError: If the response is malformed or unexpected
        """
        self._require_token()
        response = await self._send(
            "POST",
            "/payments/create",
            json={
                "eventId": event_id,
                "quantity": quantity,
                "paymentMethod": payment_method,
                "buyerName": buyer_name,
                "buyerEmail": buyer_email,
                "buyerPhone": buyer_phone,
            },
        )

        if response.status_code in (200, 201):
            return self._payment_data(response, "Malformed payment response")
        elif response.status_code == 400:
            raise ConflictError(
                _error_message(response, "Payment request rejected"), status_code=400
            )
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        elif response.status_code == 404:
            raise NotFoundError("Event not found", status_code=404)
        else:
            raise ServerError(
                _error_message(
                    response, f"Payment failed with status {response.status_code}"
                ),
                status_code=response.status_code,
            )

    async def get_payment_status(self, payment_id: str) -> dict[str, Any]:
        """
        Get the state of one payment.

        Returns:
            The ``data`` object: ``status``, ``amount``, ``quantity``,
            ``referenceId`` and ``event``

        Raises:
            NotFoundError: If the payment does not exist
        """
        self._require_token()
        response = await self._send("GET", f"/payments/{payment_id}/status")

        if response.status_code == 200:
            return self._payment_data(response, "Malformed payment status response")
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        elif response.status_code == 404:
            raise NotFoundError("Payment not found", status_code=404)
        else:
            raise ServerError(
                f"Payment status request failed with status {response.status_code}",
                status_code=response.status_code,
            )

    def _payment_data(self, response: httpx.Response, malformed: str) -> dict[str, Any]:
        body = _json_body(response)
        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise ServerError(malformed)
        return data

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    async def get_notifications(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        is_read: Optional[bool] = None,
        notification_type: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        List the caller's notifications.

        Returns:
            Response with ``notifications`` and ``pagination``
        """
        self._require_token()
        params: dict[str, Any] = {}
        if page:
            params["page"] = page
        if limit:
            params["limit"] = limit
        if is_read is not None:
            params["isRead"] = "true" if is_read else "false"
        if notification_type:
            params["type"] = notification_type

        response = await self._send("GET", "/notifications", params=params)
        return self._notification_result(response, "Failed to fetch notifications")

    async def get_unread_count(self) -> int:
        """Get the number of unread notifications."""
        self._require_token()
        response = await self._send("GET", "/notifications/unread-count")
        body = self._notification_result(response, "Failed to fetch unread count")
        count = body.get("count") if isinstance(body, dict) else None
        if not isinstance(count, int):
            raise ServerError("Malformed unread count response")
        return count

    async def mark_notification_read(self, notification_id: str) -> dict[str, Any]:
        """Mark one notification as read."""
        self._require_token()
        response = await self._send(
            "PATCH", f"/notifications/{notification_id}/read"
        )
        return self._notification_result(response, "Failed to mark notification")

    async def mark_all_notifications_read(self) -> dict[str, Any]:
        """Mark every notification of the caller as read."""
        self._require_token()
        response = await self._send("PATCH", "/notifications/mark-all-read")
        return self._notification_result(response, "Failed to mark notifications")

    async def delete_notification(self, notification_id: str) -> dict[str, Any]:
        """Delete one notification."""
        self._require_token()
        response = await self._send("DELETE", f"/notifications/{notification_id}")
        return self._notification_result(response, "Failed to delete notification")

    def _notification_result(
        self, response: httpx.Response, failure: str
    ) -> dict[str, Any]:
        if response.status_code == 200:
            body = _json_body(response)
            if not isinstance(body, dict):
                raise ServerError("Malformed notification response")
            return body
        elif response.status_code == 401:
            raise AuthenticationError("Session expired", status_code=401)
        elif response.status_code == 404:
            raise NotFoundError(
                _error_message(response, "Notification not found"), status_code=404
            )
        else:
            raise ServerError(
                _error_message(response, f"{failure} (status {response.status_code})"),
                status_code=response.status_code,
            )

    # -------------------------------------------------------------------------
    # Cleanup
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "EventlyApiClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
