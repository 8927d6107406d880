"""
Order Status State Machine

    placed -> preparing -> ready -> served
    placed | preparing -> canceled

served and canceled are terminal.
"""

from qrmenu.core.exceptions import InvalidTransitionError
from qrmenu.models import OrderStatus

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELED}),
    OrderStatus.READY: frozenset({OrderStatus.SERVED}),
    OrderStatus.SERVED: frozenset(),
    OrderStatus.CANCELED: frozenset(),
}

CUSTOMER_CANCELABLE = frozenset({OrderStatus.PLACED, OrderStatus.PREPARING})

PENDING_STATUSES = (OrderStatus.PLACED, OrderStatus.PREPARING)


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: OrderStatus, requested: OrderStatus) -> None:
    """Raise InvalidTransitionError unless current -> requested is allowed."""
    if not can_transition(current, requested):
        raise InvalidTransitionError(current.value, requested.value)


def is_terminal(status: OrderStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]
