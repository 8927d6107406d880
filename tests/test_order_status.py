import itertools

import pytest

from qrmenu.core.exceptions import InvalidTransitionError
from qrmenu.models import OrderStatus
from qrmenu.services.order_status import (
    CUSTOMER_CANCELABLE,
    can_transition,
    ensure_transition,
    is_terminal,
)

PLACED, PREPARING, READY, SERVED, CANCELED = (
    OrderStatus.PLACED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
    OrderStatus.CANCELED,
)

ALLOWED = {
    (PLACED, PREPARING),
    (PLACED, CANCELED),
    (PREPARING, READY),
    (PREPARING, CANCELED),
    (READY, SERVED),
}


@pytest.mark.parametrize("current, requested", list(itertools.product(OrderStatus, repeat=2)))
def test_transition_table(current, requested):
    allowed = (current, requested) in ALLOWED

    assert can_transition(current, requested) is allowed
    if allowed:
        ensure_transition(current, requested)
    else:
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(current, requested)
        assert exc_info.value.current == current.value
        assert exc_info.value.requested == requested.value


def test_invalid_transition_error_details():
    with pytest.raises(InvalidTransitionError) as exc_info:
        ensure_transition(SERVED, CANCELED)

    error = exc_info.value
    assert error.status_code == 400
    assert "served" in error.message and "canceled" in error.message
    assert error.to_dict()["errors"] == [
        {"field": "status", "current": "served", "requested": "canceled"}
    ]


def test_terminal_states():
    assert is_terminal(SERVED)
    assert is_terminal(CANCELED)
    assert not any(is_terminal(s) for s in (PLACED, PREPARING, READY))


def test_customers_cancel_only_before_ready():
    assert CUSTOMER_CANCELABLE == {PLACED, PREPARING}
