"""
Unit tests for the events and event CLI commands.

Tests event listing, the eligibility view and the join/leave/check-payment
commands against a mocked API client.
"""

import pytest
from unittest.mock import patch

from evently.api_client import (
    ConnectionError as EventlyConnectionError,
    EventFullError,
    NotFoundError,
)
from evently.config import ClientConfig


@pytest.fixture
def patched_cli(isolated_config, auth_context, mock_api_client):
    """Patch the events CLI helpers with test doubles."""
    with patch("evently_cli.events._get_config") as mock_config, patch(
        "evently_cli.events._load_auth"
    ) as mock_auth, patch("evently_cli.events._get_api_client") as mock_client:
        mock_config.return_value = ClientConfig(config_path=isolated_config)
        mock_auth.return_value = auth_context
        mock_client.return_value = mock_api_client
        yield mock_auth


class TestEventsList:
    """Tests for 'evently events list'."""

    def test_lists_events(self, cli_runner, patched_cli, mock_api_client, free_event_payload, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_events.return_value = {
            "events": [free_event_payload, paid_event_payload],
            "pagination": {"page": 1, "limit": 10, "total": 2, "totalPages": 1},
        }

        result = cli_runner.invoke(cli, ["events", "list", "--search", "jazz"])

        assert result.exit_code == 0
        assert "Community Meetup" in result.output
        assert "Free" in result.output
        assert "Jazz Night" in result.output
        assert "Rp150.000" in result.output
        assert "12/50" in result.output
        assert "Page 1 of 1 (Total: 2)" in result.output
        mock_api_client.get_events.assert_awaited_once_with(page=None, limit=None, search="jazz", tags=None)
        mock_api_client.close.assert_awaited_once()

    def test_no_events(self, cli_runner, patched_cli):
        from evently_cli.main import cli

        result = cli_runner.invoke(cli, ["events", "list"])

        assert result.exit_code == 0
        assert "No events found." in result.output

    def test_show_missing_event(self, cli_runner, patched_cli, mock_api_client):
        from evently_cli.main import cli

        mock_api_client.get_event.side_effect = NotFoundError("Event not found", status_code=404)

        result = cli_runner.invoke(cli, ["events", "show", "evt_missing"])

        assert result.exit_code == 1
        assert "Event not found." in result.output


class TestEventStatus:
    """Tests for 'evently event status'."""

    def test_paid_event_shows_buy_tickets(self, cli_runner, patched_cli, mock_api_client, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = paid_event_payload

        result = cli_runner.invoke(cli, ["event", "status", "evt_paid_001"])

        assert result.exit_code == 0
        assert "Buy Tickets" in result.output
        assert "Payment methods:" in result.output
        assert "QRIS" in result.output
        mock_api_client.check_payment.assert_awaited_once_with("evt_paid_001", "ana@example.com")

    def test_anonymous_user_sees_login(
        self, cli_runner, patched_cli, mock_api_client, free_event_payload, anonymous_context
    ):
        from evently_cli.main import cli

        patched_cli.return_value = anonymous_context
        mock_api_client.get_event.return_value = free_event_payload

        result = cli_runner.invoke(cli, ["event", "status", "evt_free_001"])

        assert result.exit_code == 0
        assert "Log in to join" in result.output
        mock_api_client.get_join_status.assert_not_called()


class TestEventJoin:
    """Tests for 'evently event join'."""

    def test_join_free_event(self, cli_runner, patched_cli, mock_api_client, free_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = free_event_payload
        mock_api_client.get_join_status.side_effect = [
            {"isJoined": False, "status": "not_joined"},
            {"isJoined": True, "status": "joined"},
        ]

        result = cli_runner.invoke(cli, ["event", "join", "evt_free_001"])

        assert result.exit_code == 0
        assert "Successfully joined event!" in result.output
        assert "Leave Event" in result.output
        mock_api_client.register_for_event.assert_awaited_once_with("evt_free_001")

    def test_join_full_event(self, cli_runner, patched_cli, mock_api_client, free_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = free_event_payload
        mock_api_client.register_for_event.side_effect = EventFullError("Event is full", status_code=400)

        result = cli_runner.invoke(cli, ["event", "join", "evt_free_001"])

        assert result.exit_code == 2
        assert "Event is full" in result.output
        assert "Join Event" in result.output

    def test_join_when_payment_needed_first(self, cli_runner, patched_cli, mock_api_client, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = paid_event_payload

        result = cli_runner.invoke(cli, ["event", "join", "evt_paid_001"])

        assert result.exit_code == 0
        assert "Nothing to join: Buy Tickets" in result.output
        mock_api_client.register_for_event.assert_not_called()

    def test_join_requires_login(self, cli_runner, patched_cli, mock_api_client, anonymous_context):
        from evently_cli.main import cli

        patched_cli.return_value = anonymous_context

        result = cli_runner.invoke(cli, ["event", "join", "evt_free_001"])

        assert result.exit_code == 1
        assert "Not logged in" in result.output
        mock_api_client.get_event.assert_not_called()

    def test_join_server_unreachable(self, cli_runner, patched_cli, mock_api_client):
        from evently_cli.main import cli

        mock_api_client.get_event.side_effect = EventlyConnectionError("Failed to connect to server")

        result = cli_runner.invoke(cli, ["event", "join", "evt_free_001"])

        assert result.exit_code == 1
        assert "Cannot reach http://localhost:8000" in result.output
        mock_api_client.close.assert_awaited_once()


class TestEventLeave:
    """Tests for 'evently event leave'."""

    def test_cancel_pending_request(self, cli_runner, patched_cli, mock_api_client, approval_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = approval_event_payload
        mock_api_client.get_join_status.side_effect = [
            {"isJoined": False, "status": "pending"},
            {"isJoined": False, "status": "not_joined"},
        ]

        result = cli_runner.invoke(cli, ["event", "leave", "evt_appr_001"])

        assert result.exit_code == 0
        assert "Request canceled" in result.output
        mock_api_client.unregister_from_event.assert_awaited_once_with("evt_appr_001")

    def test_leave_when_not_registered(self, cli_runner, patched_cli, mock_api_client, free_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = free_event_payload

        result = cli_runner.invoke(cli, ["event", "leave", "evt_free_001"])

        assert result.exit_code == 2
        assert "Not registered" in result.output


class TestEventCheckPayment:
    """Tests for 'evently event check-payment'."""

    def test_payment_auto_joins(self, cli_runner, patched_cli, mock_api_client, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = paid_event_payload
        mock_api_client.check_payment.side_effect = [False, True]
        mock_api_client.get_join_status.side_effect = [
            {"isJoined": False, "status": "not_joined"},
            {"isJoined": True, "status": "joined"},
        ]

        result = cli_runner.invoke(cli, ["event", "check-payment", "evt_paid_001"])

        assert result.exit_code == 0
        assert "Successfully joined event!" in result.output
        assert "Paid:         yes" in result.output
        mock_api_client.register_for_event.assert_awaited_once_with("evt_paid_001")


class TestEventsMalformedPayloads:
    """Tests for server payloads that cannot be parsed as events."""

    def test_list_skips_event_without_id(self, cli_runner, patched_cli, mock_api_client, free_event_payload):
        from evently_cli.main import cli

        broken = {key: value for key, value in free_event_payload.items() if key != "id"}
        mock_api_client.get_events.return_value = {
            "events": [broken, free_event_payload],
            "pagination": {},
        }

        result = cli_runner.invoke(cli, ["events", "list"])

        assert result.exit_code == 0
        assert "Skipped 1 malformed event(s) from server." in result.output
        assert "Community Meetup" in result.output

    def test_show_event_without_id(self, cli_runner, patched_cli, mock_api_client, free_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = {"name": "Community Meetup"}

        result = cli_runner.invoke(cli, ["events", "show", "evt_free_001"])

        assert result.exit_code == 1
        assert "Malformed event data" in result.output
        mock_api_client.close.assert_awaited_once()


class TestMyEvents:
    """Tests for 'evently events mine'."""

    def test_lists_registered_events(self, cli_runner, patched_cli, mock_api_client, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_registered_events.return_value = [
            {**paid_event_payload, "registrationStatus": "CONFIRMED"}
        ]

        result = cli_runner.invoke(cli, ["events", "mine"])

        assert result.exit_code == 0
        assert "evt_paid_001  Jazz Night  [2026-11-01 10:00]  confirmed" in result.output
        mock_api_client.close.assert_awaited_once()

    def test_no_registrations(self, cli_runner, patched_cli):
        from evently_cli.main import cli

        result = cli_runner.invoke(cli, ["events", "mine"])

        assert result.exit_code == 0
        assert "You have not joined any events." in result.output

    def test_requires_login(self, cli_runner, patched_cli, mock_api_client, anonymous_context):
        from evently_cli.main import cli

        patched_cli.return_value = anonymous_context

        result = cli_runner.invoke(cli, ["events", "mine"])

        assert result.exit_code == 1
        assert "Not logged in" in result.output
        mock_api_client.get_registered_events.assert_not_called()


class TestEventPay:
    """Tests for 'evently event pay'."""

    def test_starts_payment(self, cli_runner, patched_cli, mock_api_client, paid_event_payload, mock_email):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = paid_event_payload
        mock_api_client.create_payment.return_value = {
            "paymentId": "pay_001",
            "paymentUrl": "http://localhost:3000/payment/mock?paymentId=pay_001",
            "amount": 300000,
            "referenceId": "EVT-evt_paid_001-1760000000000",
            "paymentMethod": "va",
        }

        result = cli_runner.invoke(
            cli,
            ["event", "pay", "evt_paid_001", "--method", "va", "--quantity", "2", "--phone", "08123456789"],
        )

        assert result.exit_code == 0
        assert "Payment started" in result.output
        assert "EVT-evt_paid_001-1760000000000" in result.output
        assert "Rp 300.000" in result.output
        assert "http://localhost:3000/payment/mock?paymentId=pay_001" in result.output
        assert "evently event check-payment evt_paid_001" in result.output
        mock_api_client.create_payment.assert_awaited_once_with(
            event_id="evt_paid_001",
            quantity=2,
            payment_method="va",
            buyer_name="Ana",
            buyer_email=mock_email,
            buyer_phone="08123456789",
        )

    def test_phone_is_prompted(self, cli_runner, patched_cli, mock_api_client, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = paid_event_payload
        mock_api_client.create_payment.return_value = {"paymentId": "pay_002", "amount": 150000}

        result = cli_runner.invoke(cli, ["event", "pay", "evt_paid_001"], input="0811\n")

        assert result.exit_code == 0
        assert "Phone number" in result.output
        assert mock_api_client.create_payment.await_args.kwargs["buyer_phone"] == "0811"
        assert mock_api_client.create_payment.await_args.kwargs["payment_method"] == "qris"

    def test_free_event_has_nothing_to_pay(self, cli_runner, patched_cli, mock_api_client, free_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = free_event_payload

        result = cli_runner.invoke(cli, ["event", "pay", "evt_free_001", "--phone", "0811"])

        assert result.exit_code == 0
        assert "Nothing to pay" in result.output
        mock_api_client.create_payment.assert_not_called()

    def test_already_paid_has_nothing_to_pay(self, cli_runner, patched_cli, mock_api_client, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = paid_event_payload
        mock_api_client.check_payment.return_value = True
        mock_api_client.get_join_status.return_value = {"isJoined": True, "status": "joined"}

        result = cli_runner.invoke(cli, ["event", "pay", "evt_paid_001", "--phone", "0811"])

        assert result.exit_code == 0
        assert "Nothing to pay" in result.output
        mock_api_client.create_payment.assert_not_called()

    def test_invalid_quantity(self, cli_runner, patched_cli, mock_api_client, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = paid_event_payload

        result = cli_runner.invoke(
            cli, ["event", "pay", "evt_paid_001", "--quantity", "11", "--phone", "0811"]
        )

        assert result.exit_code == 1
        assert "Quantity must be between 1 and 10" in result.output
        mock_api_client.create_payment.assert_not_called()
        mock_api_client.close.assert_awaited_once()

    def test_unknown_method(self, cli_runner, patched_cli, mock_api_client, paid_event_payload):
        from evently_cli.main import cli

        mock_api_client.get_event.return_value = paid_event_payload

        result = cli_runner.invoke(
            cli, ["event", "pay", "evt_paid_001", "--method", "convenience_store", "--phone", "0811"]
        )

        assert result.exit_code == 1
        assert "Unsupported payment method 'convenience_store'" in result.output
        mock_api_client.create_payment.assert_not_called()


class TestPaymentStatus:
    """Tests for 'evently event payment-status'."""

    def test_shows_status(self, cli_runner, patched_cli, mock_api_client):
        from evently_cli.main import cli

        mock_api_client.get_payment_status.return_value = {
            "id": "pay_001",
            "status": "success",
            "amount": 300000,
            "quantity": 2,
            "referenceId": "EVT-evt_paid_001-1760000000000",
            "event": {"id": "evt_paid_001", "name": "Jazz Night"},
        }

        result = cli_runner.invoke(cli, ["event", "payment-status", "pay_001"])

        assert result.exit_code == 0
        assert "Status:     success" in result.output
        assert "Event:      Jazz Night" in result.output
        assert "Rp 300.000" in result.output
        assert "Tickets:    2" in result.output
        mock_api_client.get_payment_status.assert_awaited_once_with("pay_001")

    def test_unknown_payment(self, cli_runner, patched_cli, mock_api_client):
        from evently_cli.main import cli

        mock_api_client.get_payment_status.side_effect = NotFoundError("Payment not found", status_code=404)

        result = cli_runner.invoke(cli, ["event", "payment-status", "pay_missing"])

        assert result.exit_code == 1
        assert "Payment not found." in result.output
