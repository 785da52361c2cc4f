import pytest

from tableside.models import Order, OrderStatus, PaymentMethod, PaymentStatus
from tableside.services.orders import (
    InvalidStatusTransition,
    OrderError,
    apply_tip,
    calculate_totals,
    checkout_line_items,
    to_money,
    transition_status,
)
from tableside.services.payment import to_cents


def test_totals_round_half_up():
    totals = calculate_totals([{"price": 10.00, "quantity": 1}], tax_rate=0.0825)
    # 0.825 rounds up, not to even
    assert totals.tax == 0.83
    assert totals.total == 10.83


def test_totals_include_tip_and_fee():
    lines = [{"price": 14.99, "quantity": 2}, {"price": 3.99, "quantity": 1}]
    totals = calculate_totals(lines, tax_rate=0.08, tip=5, delivery_fee=3.99)
    assert totals.subtotal == 33.97
    assert totals.tax == 2.72
    assert totals.total == round(33.97 + 2.72 + 5 + 3.99, 2)


def test_totals_reject_negative_tip():
    with pytest.raises(ValueError):
        calculate_totals([{"price": 1, "quantity": 1}], tax_rate=0.08, tip=-1)


def test_to_money_avoids_float_drift():
    assert str(to_money(0.1 + 0.2)) == "0.30"
    assert to_cents(19.99) == 1999
    assert to_cents(-5) == 0


def _order(**overrides) -> Order:
    fields = dict(
        items=[{"name": "Tiramisu", "price": 7.99, "quantity": 2}],
        subtotal=15.98,
        tax=1.28,
        tip=0.0,
        delivery_fee=0.0,
        total=17.26,
        status=OrderStatus.PENDING,
        payment_method=PaymentMethod.CASH,
        payment_status=PaymentStatus.PENDING,
    )
    fields.update(overrides)
    return Order(**fields)


def test_checkout_lines_add_tax_tip_and_fee():
    order = _order(tip=2.0, delivery_fee=3.99)
    names = [line.name for line in checkout_line_items(order)]
    assert names == ["Tiramisu", "Tax", "Tip", "Delivery Fee"]
    assert checkout_line_items(order)[0].unit_amount == 799


def test_lifecycle_happy_path():
    order = _order()
    for status in (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.DELIVERED):
        assert transition_status(order, status) is True
    assert order.status == OrderStatus.DELIVERED
    # Cash is collected on hand-over
    assert order.payment_status == PaymentStatus.COMPLETED


def test_lifecycle_same_status_is_noop():
    order = _order(status=OrderStatus.CONFIRMED)
    assert transition_status(order, OrderStatus.CONFIRMED) is False


def test_lifecycle_rejects_skips_and_terminal_moves():
    with pytest.raises(InvalidStatusTransition):
        transition_status(_order(), OrderStatus.DELIVERED)
    with pytest.raises(InvalidStatusTransition):
        transition_status(_order(status=OrderStatus.CANCELLED), OrderStatus.CONFIRMED)


def test_cancel_allowed_from_any_open_state():
    for status in (OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY):
        assert transition_status(_order(status=status), OrderStatus.CANCELLED) is True


def test_card_payment_not_completed_by_delivery():
    order = _order(
        status=OrderStatus.READY,
        payment_method=PaymentMethod.CARD,
        payment_status=PaymentStatus.PROCESSING,
    )
    transition_status(order, OrderStatus.DELIVERED)
    assert order.payment_status == PaymentStatus.PROCESSING


def test_apply_tip_recomputes_total():
    order = _order()
    totals = apply_tip(order, 3.5)
    assert totals.total == 20.76
    assert order.tip == 3.5


def test_apply_tip_rejects_cancelled_and_processing():
    with pytest.raises(OrderError):
        apply_tip(_order(status=OrderStatus.CANCELLED), 2)
    with pytest.raises(OrderError) as exc:
        apply_tip(_order(payment_status=PaymentStatus.PROCESSING), 2)
    assert exc.value.status_code == 409


def test_apply_tip_rejected_after_card_capture():
    order = _order(payment_method=PaymentMethod.CARD, payment_status=PaymentStatus.COMPLETED)
    with pytest.raises(OrderError) as exc:
        apply_tip(order, 5)
    assert exc.value.status_code == 409
    assert order.total == 17.26

    cash = _order(status=OrderStatus.DELIVERED, payment_status=PaymentStatus.COMPLETED)
    assert apply_tip(cash, 2).total == 19.26
