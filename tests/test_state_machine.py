import pytest

from orders.exceptions import InvalidTransition
from orders.models import Order
from orders.state_machine import (
    ORDER_STATE_TRANSITIONS,
    apply_transition,
    can_cancel,
    can_transition,
    get_status_display_name,
    get_valid_next_statuses,
    is_final_state,
    validate_transition,
)

S = Order.OrderStatus
P = Order.PaymentMethod

LEGAL_EDGES = {
    (S.PENDING, S.PROCESSING),
    (S.PENDING, S.CANCELLED),
    (S.PROCESSING, S.SHIPPED),
    (S.PROCESSING, S.CANCELLED),
    (S.SHIPPED, S.DELIVERED),
    (S.SHIPPED, S.RETURNED),
    (S.DELIVERED, S.RETURNED),
}


def test_table_covers_every_status():
    assert set(ORDER_STATE_TRANSITIONS) == set(S.values)


@pytest.mark.parametrize('current', S.values)
@pytest.mark.parametrize('new', S.values)
def test_can_transition_matches_table(current, new):
    expected = current == new or (current, new) in LEGAL_EDGES
    assert can_transition(current, new) is expected


@pytest.mark.parametrize('status', [S.CANCELLED, S.RETURNED])
def test_final_states_have_no_exits(status):
    assert is_final_state(status)
    assert get_valid_next_statuses(status) == ()
    for other in S.values:
        if other != status:
            assert not can_transition(status, other)


def test_can_cancel_only_pending_and_processing():
    assert [s for s in S.values if can_cancel(s)] == [S.PENDING, S.PROCESSING]


def test_validate_transition_error_lists_alternatives():
    result = validate_transition(S.PENDING, S.DELIVERED)

    assert not result.valid
    assert '"PENDING"' in result.error
    assert '"DELIVERED"' in result.error
    assert 'PROCESSING, CANCELLED' in result.error


def test_validate_transition_error_for_final_state():
    result = validate_transition(S.CANCELLED, S.PROCESSING)

    assert not result.valid
    assert 'none (final state)' in result.error


def test_same_status_is_a_noop():
    order = Order(status=S.SHIPPED)

    result = apply_transition(order, S.SHIPPED)

    assert result.updates == {'status': S.SHIPPED}


def test_delivering_unpaid_cod_order_marks_it_paid():
    order = Order(status=S.SHIPPED, payment_method=P.COD, is_paid=False)

    result = apply_transition(order, S.DELIVERED)

    assert result.status == S.DELIVERED
    assert result.updates['is_paid'] is True
    assert result.updates['delivered_at'] is not None


def test_delivering_prepaid_order_leaves_payment_alone():
    order = Order(status=S.SHIPPED, payment_method=P.MOMO, is_paid=True)

    result = apply_transition(order, S.DELIVERED)

    assert 'is_paid' not in result.updates


def test_shipping_records_timestamp():
    order = Order(status=S.PROCESSING)

    result = apply_transition(order, S.SHIPPED)

    assert result.updates['shipped_at'] is not None


@pytest.mark.parametrize('method', [P.STRIPE, P.MOMO, P.VNPAY])
def test_cancelling_paid_online_order_requires_refund(method):
    order = Order(status=S.PROCESSING, payment_method=method, is_paid=True)

    result = apply_transition(order, S.CANCELLED)

    assert result.updates == {'status': S.CANCELLED, 'requires_refund': True}


@pytest.mark.parametrize('method', [P.COD, P.QR])
def test_cancelling_offline_order_needs_no_refund(method):
    order = Order(status=S.PROCESSING, payment_method=method, is_paid=True)

    result = apply_transition(order, S.CANCELLED)

    assert 'requires_refund' not in result.updates


def test_illegal_transition_raises_without_touching_order():
    order = Order(status=S.PENDING)

    with pytest.raises(InvalidTransition) as excinfo:
        apply_transition(order, S.DELIVERED)

    assert 'Cannot transition order from "PENDING" to "DELIVERED"' in str(excinfo.value.detail)
    assert order.status == S.PENDING
    assert order.delivered_at is None


def test_status_display_name():
    assert get_status_display_name(S.PROCESSING) == 'Processing'
    assert get_status_display_name('UNKNOWN') == 'UNKNOWN'
