from datetime import date, datetime, timedelta

import pytest

from partstock.core.exceptions import InvalidReportRequest
from partstock.db.models import Inventory, Reservation
from partstock.services.alerts import determine_urgency, alert_message
from partstock.services.maintenance import health_score, months_ago
from partstock.services.reports import day_bounds, shift_month, parse_month


@pytest.mark.parametrize('stock,reorder_level,expected', [
    (0, 10, 'critical'),
    (-1, 10, 'critical'),
    (5, 10, 'high'),
    (7, 10, 'medium'),
    (8, 10, 'low'),
    (10, 10, 'low'),
])
def test_determine_urgency(stock, reorder_level, expected):
    assert determine_urgency(stock, reorder_level) == expected


def test_alert_messages():
    assert alert_message('Brake Pads', 0, 'critical') == \
        'CRITICAL: Brake Pads is out of stock! Immediate restocking required.'
    assert alert_message('Brake Pads', 3, 'medium') == \
        'MEDIUM: Brake Pads stock is below recommended levels (3 units remaining).'
    assert alert_message('Brake Pads', 9, 'low') == \
        'LOW: Brake Pads is approaching reorder level (9 units remaining).'


def test_health_score():
    assert health_score(0, 0, 0) == 0
    assert health_score(10, 0, 0) == 100
    assert health_score(10, 10, 10) == 20
    assert health_score(4, 2, 1) == 72


def test_shift_month_crosses_years():
    assert shift_month(date(2024, 1, 1), -1) == date(2023, 12, 1)
    assert shift_month(date(2024, 12, 1), 1) == date(2025, 1, 1)
    assert shift_month(date(2024, 3, 1), -24) == date(2022, 3, 1)


def test_months_ago_clamps_day():
    assert months_ago(datetime(2024, 3, 31, 1, 30), 1) == datetime(2024, 2, 29, 1, 30)
    assert months_ago(datetime(2024, 5, 15), 12) == datetime(2023, 5, 15)


def test_parse_month():
    assert parse_month('2024-02') == date(2024, 2, 1)
    with pytest.raises(InvalidReportRequest):
        parse_month('02/2024')


def test_day_bounds():
    start, end = day_bounds(date(2024, 2, 29))
    assert start == datetime(2024, 2, 29)
    assert end == datetime(2024, 3, 1)


def test_stock_status_ladder():
    item = Inventory(item_id='BRK-PAD-001', stock=5, reorder_level=10)
    assert item.stock_status(5) == 'Available'
    assert item.stock_status(6) == 'Partial'
    item.stock = 0
    assert item.stock_status(1) == 'Backorder'
    assert item.is_low_stock is True


def test_reservation_priority_follows_status():
    reservation = Reservation(item_id='BRK-PAD-001', quantity=1, requested_by='Desk')
    reservation.set_status('pending')
    assert reservation.priority_level == 1
    reservation.set_status('approved')
    assert reservation.priority_level == 2
    reservation.set_status('completed')
    assert reservation.priority_level == 5
    reservation.set_status('rejected')
    assert reservation.priority_level == 6


def test_reservation_expiry_only_applies_while_active():
    reservation = Reservation(item_id='BRK-PAD-001', quantity=1, requested_by='Desk')
    reservation.set_status('approved')
    reservation.expires_at = datetime.utcnow() - timedelta(minutes=1)
    assert reservation.is_expired() is True

    reservation.set_status('completed')
    assert reservation.is_expired() is False
