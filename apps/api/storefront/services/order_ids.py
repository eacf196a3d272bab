"""Display identifiers for orders.

New orders get ``ORD`` followed by the sequence number zero-padded to five
digits. Orders imported from the previous storefront carry ``#``-prefixed
numbers such as ``#000018``. Lookups accept either form and also the
opaque database UUID.
"""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from storefront.models.order import Order

ORDER_ID_PREFIX = "ORD"
ORDER_ID_DIGITS = 5
MAX_ORDER_SEQUENCE = 10**ORDER_ID_DIGITS - 1
LEGACY_ORDER_ID_PREFIX = "#"
MAX_IDENTIFIER_LENGTH = 64

_ORDER_ID_RE = re.compile(rf"^{ORDER_ID_PREFIX}(\d{{{ORDER_ID_DIGITS}}})$")
_LEGACY_ORDER_ID_RE = re.compile(r"^#(\d+)$")


@dataclass
class OrderIdentifierError(Exception):
    identifier: str | None
    message: str

    def __str__(self) -> str:
        return f"{self.message}: {self.identifier!r}"


class InvalidOrderIdentifierError(OrderIdentifierError):
    def __init__(self, identifier: str | None, message: str = "Invalid order identifier") -> None:
        super().__init__(identifier=identifier, message=message)


class OrderNotFoundError(OrderIdentifierError):
    def __init__(self, identifier: str | None, message: str = "Order not found") -> None:
        super().__init__(identifier=identifier, message=message)


class OrderSequenceExhaustedError(ValueError):
    def __init__(self, sequence: int) -> None:
        super().__init__(
            f"Order sequence {sequence} exceeds {MAX_ORDER_SEQUENCE}; "
            f"{ORDER_ID_PREFIX} identifiers are limited to {ORDER_ID_DIGITS} digits"
        )
        self.sequence = sequence


def format_order_id(sequence: int) -> str:
    if isinstance(sequence, bool) or not isinstance(sequence, int):
        raise TypeError("Order sequence must be an integer")
    if sequence < 1:
        raise ValueError("Order sequence must be positive")
    if sequence > MAX_ORDER_SEQUENCE:
        raise OrderSequenceExhaustedError(sequence)
    return f"{ORDER_ID_PREFIX}{sequence:0{ORDER_ID_DIGITS}d}"


def parse_order_sequence(identifier: str) -> int | None:
    """Return the sequence encoded in ``ORD00042`` or legacy ``#000042``."""
    match = _ORDER_ID_RE.match(identifier) or _LEGACY_ORDER_ID_RE.match(identifier)
    if match is None:
        return None
    sequence = int(match.group(1))
    return sequence if sequence >= 1 else None


def next_order_sequence(db: Session) -> int:
    current = db.scalar(select(func.max(Order.sequence)))
    return (current or 0) + 1


def normalize_order_identifier(identifier: str | None) -> str:
    if identifier is None:
        raise InvalidOrderIdentifierError(identifier, "Order identifier is required")

    cleaned = identifier.strip()
    if cleaned.startswith(LEGACY_ORDER_ID_PREFIX):
        cleaned = cleaned[len(LEGACY_ORDER_ID_PREFIX) :]

    if not cleaned:
        raise InvalidOrderIdentifierError(identifier, "Order identifier must not be empty")
    if len(cleaned) > MAX_IDENTIFIER_LENGTH:
        raise InvalidOrderIdentifierError(
            identifier, f"Order identifier exceeds max length {MAX_IDENTIFIER_LENGTH}"
        )
    return cleaned


def _as_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except (ValueError, TypeError):
        return None


def resolve_order(db: Session, identifier: str | None) -> Order:
    cleaned = normalize_order_identifier(identifier)

    order = db.scalar(select(Order).where(Order.order_number == cleaned))
    if order is None:
        # rows imported from the old storefront keep the "#" in order_number
        order = db.scalar(
            select(Order).where(Order.order_number == f"{LEGACY_ORDER_ID_PREFIX}{cleaned}")
        )
    if order is None:
        opaque_id = _as_uuid(cleaned)
        if opaque_id is not None:
            order = db.get(Order, opaque_id)

    if order is None:
        raise OrderNotFoundError(identifier)
    return order
