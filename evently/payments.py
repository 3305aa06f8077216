"""
Payment display and validation helpers.

Ticket amounts are whole units of the configured currency (IDR by
default); amounts are grouped with dots and shown without decimals.
"""

import time
from dataclasses import dataclass
from typing import Iterable, Optional

CURRENCY_SYMBOLS = {
    "IDR": "Rp",
    "USD": "$",
    "EUR": "€",
}

MIN_AMOUNT = 10_000
MAX_AMOUNT = 50_000_000
DEFAULT_QUANTITY = 1
MAX_QUANTITY = 10


@dataclass(frozen=True)
class PaymentMethod:
    id: str
    name: str
    description: str
    enabled: bool = True
    featured: bool = False


PAYMENT_METHODS: tuple[PaymentMethod, ...] = (
    PaymentMethod("va", "Virtual Account", "Bank Transfer via Virtual Account"),
    PaymentMethod("cc", "Credit Card", "Visa, MasterCard, JCB"),
    PaymentMethod(
        "qris",
        "QRIS",
        "Scan QR Code with any e-wallet",
        featured=True,
    ),
    PaymentMethod(
        "convenience_store",
        "Convenience Store",
        "Alfamart, Indomaret",
        enabled=False,
    ),
)


def _group_thousands(amount: float) -> str:
    return f"{round(amount):,}".replace(",", ".")


def format_amount(amount: float, currency: str = "IDR") -> str:
    """Format an amount as ``"Rp 10.000"``."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    return f"{symbol} {_group_thousands(amount)}"


def format_currency(amount: float, currency: str = "IDR") -> str:
    """Format an amount as ``"Rp10.000"`` (symbol attached, no decimals)."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), currency.upper())
    return f"{symbol}{_group_thousands(amount)}"


def validate_payment_amount(amount: float) -> tuple[bool, Optional[str]]:
    """
    Check an amount against the accepted payment range.

    Returns:
        Tuple of (valid, message); message is None when valid
    """
    if amount < MIN_AMOUNT:
        return False, f"Minimum amount is {format_amount(MIN_AMOUNT)}"
    if amount > MAX_AMOUNT:
        return False, f"Maximum amount is {format_amount(MAX_AMOUNT)}"
    return True, None


def validate_quantity(quantity: int) -> bool:
    return DEFAULT_QUANTITY <= quantity <= MAX_QUANTITY


def generate_payment_reference(event_id: str, now_ms: Optional[int] = None) -> str:
    """Build a payment reference of the form ``EVT-<event id>-<epoch ms>``."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"EVT-{event_id}-{now_ms}"


def available_payment_methods(
    enabled_ids: Optional[Iterable[str]] = None,
) -> list[PaymentMethod]:
    """
    List payment methods that are enabled and allowed by configuration.

    Args:
        enabled_ids: Method ids allowed by configuration (defaults to va, cc, qris)
    """
    allowed = set(enabled_ids) if enabled_ids is not None else {"va", "cc", "qris"}
    return [m for m in PAYMENT_METHODS if m.enabled and m.id in allowed]


# ============================================================================
# Ticket Checkout
# ============================================================================


class PaymentValidationError(ValueError):
    """Raised when a ticket purchase cannot be submitted as requested."""

    pass


@dataclass(frozen=True)
class TicketOrder:
    """A validated ticket purchase, ready to send to the payment endpoint."""

    event_id: str
    quantity: int
    method: PaymentMethod
    amount: float


def prepare_ticket_order(
    event_id: str,
    ticket_price: Optional[float],
    quantity: int,
    method_id: str,
    enabled_ids: Optional[Iterable[str]] = None,
) -> TicketOrder:
    """
    Validate a ticket purchase before it is sent to the server.

    Args:
        event_id: Event to buy tickets for
        ticket_price: Price per ticket
        quantity: Number of tickets
        method_id: Payment method id (va, cc, qris...)
        enabled_ids: Method ids allowed by configuration

    Returns:
        The validated order with its total amount

    Raises:
        PaymentValidationError: If the event is free, or the quantity,
            method or total amount is not accepted
    """
    if not ticket_price or ticket_price <= 0:
        raise PaymentValidationError("This is a free event, no payment required")

    if not validate_quantity(quantity):
        raise PaymentValidationError(
            f"Quantity must be between {DEFAULT_QUANTITY} and {MAX_QUANTITY}"
        )

    methods = {m.id: m for m in available_payment_methods(enabled_ids)}
    method = methods.get(method_id)
    if method is None:
        raise PaymentValidationError(
            f"Unsupported payment method '{method_id}'. "
            f"Available: {', '.join(methods) or 'none'}"
        )

    amount = ticket_price * quantity
    valid, message = validate_payment_amount(amount)
    if not valid:
        raise PaymentValidationError(message)

    return TicketOrder(event_id=event_id, quantity=quantity, method=method, amount=amount)


@dataclass(frozen=True)
class PaymentSession:
    """A payment started with the provider; the user completes it at ``payment_url``."""

    payment_id: str
    payment_url: Optional[str]
    amount: float
    reference_id: str
    method_id: str

    @classmethod
    def from_api(cls, data: dict, order: TicketOrder) -> "PaymentSession":
        """Build a session from ``POST /payments/create`` data, filling gaps from the order."""
        amount = data.get("amount")
        return cls(
            payment_id=str(data.get("paymentId") or ""),
            payment_url=data.get("paymentUrl"),
            amount=float(amount) if isinstance(amount, (int, float)) else order.amount,
            reference_id=data.get("referenceId")
            or generate_payment_reference(order.event_id),
            method_id=data.get("paymentMethod") or order.method.id,
        )
