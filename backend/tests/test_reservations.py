from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from partstock.db.models import Reservation, StockTransaction, Archive
from partstock.services import reservations as reservation_service

pytestmark = pytest.mark.integration


async def _reserve(client, item_id='BRK-PAD-001', quantity=2, job_order='JO-1001', **extra):
    payload = {'item_id': item_id, 'quantity': quantity, 'job_order_number': job_order}
    payload.update(extra)
    return await client.post('/api/reservations/reserve', json=payload)


async def _available(client, item_id='BRK-PAD-001'):
    r = await client.get(f'/api/inventory/{item_id}')
    return r.json()['data']['available_stock']


@pytest.mark.anyio
async def test_reserve_creates_pending_hold(client: AsyncClient, test_session, make_item, auth_headers):
    await make_item('BRK-PAD-001', stock=10)

    r = await client.post(
        '/api/reservations/reserve',
        json={'item_id': 'BRK-PAD-001', 'quantity': 3, 'job_order_number': 'JO-1001', 'is_urgent': True},
        headers=auth_headers,
    )
    assert r.status_code == 201
    data = r.json()['data']
    assert data['status'] == 'pending'
    assert data['priority_level'] == 1
    assert data['is_urgent'] is True
    assert data['requested_by'] == 'Jane Mechanic'
    assert data['expires_at'] is not None

    # Pending reservations do not hold stock yet
    assert await _available(client) == 10

    res = await test_session.execute(
        select(StockTransaction).where(StockTransaction.transaction_type == 'reservation')
    )
    hold = res.scalar_one()
    assert hold.quantity == -3
    assert hold.previous_stock == hold.new_stock == 10
    assert hold.reference_number == 'JO-1001'

    res = await test_session.execute(
        select(Archive).where(Archive.entity_type == 'reservation', Archive.action == 'created')
    )
    archive = res.scalar_one()
    assert archive.reference_number == 'JO-1001'
    assert archive.new_data['status'] == 'pending'


@pytest.mark.anyio
async def test_reserve_more_than_available_fails(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=4)
    r = await _reserve(client, quantity=5)
    assert r.status_code == 400
    assert r.json()['detail'] == 'Insufficient stock for BRK-PAD-001. Available: 4, Requested: 5'


@pytest.mark.anyio
async def test_reserve_rejects_past_expiry(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=4)
    past = (datetime.utcnow() - timedelta(hours=1)).isoformat()
    r = await _reserve(client, quantity=1, expires_at=past)
    assert r.status_code == 400
    assert 'future' in r.json()['detail']


@pytest.mark.anyio
async def test_reserve_unknown_item_is_404(client: AsyncClient):
    r = await _reserve(client, item_id='NOPE-001')
    assert r.status_code == 404


@pytest.mark.anyio
async def test_approve_places_hold_and_complete_deducts(client: AsyncClient, test_session, make_item):
    await make_item('BRK-PAD-001', stock=10)
    r = await _reserve(client, quantity=4)
    reservation_id = r.json()['data']['id']

    r = await client.put(f'/api/reservations/{reservation_id}/approve', json={'approved_by': 'Shop Manager'})
    assert r.status_code == 200
    data = r.json()['data']
    assert data['status'] == 'approved'
    assert data['priority_level'] == 2
    assert data['approved_by'] == 'Shop Manager'
    assert data['approved_date'] is not None
    assert await _available(client) == 6

    r = await client.put(f'/api/reservations/{reservation_id}/complete', json={'actual_quantity_used': 3})
    assert r.status_code == 200
    data = r.json()['data']
    assert data['reservation']['status'] == 'completed'
    assert data['reservation']['priority_level'] == 5
    assert data['stock_deducted'] == 3
    assert data['new_stock_level'] == 7

    # Hold released, only the used parts left physical stock
    assert await _available(client) == 7

    res = await test_session.execute(
        select(StockTransaction).where(StockTransaction.transaction_type == 'sale')
    )
    sale = res.scalar_one()
    assert sale.quantity == -3
    assert sale.reference_number == 'JO-1001'
    assert sale.notes == f'Completed reservation #{reservation_id}'


@pytest.mark.anyio
async def test_approve_without_body_uses_actor(client: AsyncClient, make_item, auth_headers):
    await make_item('BRK-PAD-001', stock=10)
    r = await _reserve(client, quantity=1)
    reservation_id = r.json()['data']['id']

    r = await client.put(f'/api/reservations/{reservation_id}/approve', headers=auth_headers)
    assert r.status_code == 200
    assert r.json()['data']['approved_by'] == 'Jane Mechanic'


@pytest.mark.anyio
async def test_approve_checks_other_holds(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=10)
    first = (await _reserve(client, quantity=7, job_order='JO-1')).json()['data']['id']
    second = (await _reserve(client, quantity=7, job_order='JO-2')).json()['data']['id']

    r = await client.put(f'/api/reservations/{first}/approve')
    assert r.status_code == 200

    r = await client.put(f'/api/reservations/{second}/approve')
    assert r.status_code == 400
    assert r.json()['detail'] == 'Insufficient stock for BRK-PAD-001. Available: 3, Requested: 7'


@pytest.mark.anyio
async def test_complete_cannot_use_parts_held_for_other_job_orders(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=10)
    first = (await _reserve(client, quantity=5, job_order='JO-1')).json()['data']['id']
    second = (await _reserve(client, quantity=5, job_order='JO-2')).json()['data']['id']
    await client.put(f'/api/reservations/{first}/approve')
    await client.put(f'/api/reservations/{second}/approve')

    r = await client.put(f'/api/reservations/{first}/complete', json={'actual_quantity_used': 10})
    assert r.status_code == 400
    assert r.json()['detail'] == 'Insufficient stock for BRK-PAD-001. Available: 5, Requested: 10'

    r = await client.get(f'/api/reservations/{first}')
    assert r.json()['data']['status'] == 'approved'

    # Both job orders can still be completed as held
    r = await client.put(f'/api/reservations/{first}/complete')
    assert r.json()['data']['new_stock_level'] == 5
    r = await client.put(f'/api/reservations/{second}/complete')
    assert r.status_code == 200
    assert r.json()['data']['new_stock_level'] == 0


@pytest.mark.anyio
async def test_complete_may_use_more_than_held_from_free_stock(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=10)
    first = (await _reserve(client, quantity=3, job_order='JO-1')).json()['data']['id']
    second = (await _reserve(client, quantity=4, job_order='JO-2')).json()['data']['id']
    await client.put(f'/api/reservations/{first}/approve')
    await client.put(f'/api/reservations/{second}/approve')

    # 6 free for the first job order: its own 3 plus 3 unheld
    r = await client.put(f'/api/reservations/{first}/complete', json={'actual_quantity_used': 6})
    assert r.status_code == 200
    assert r.json()['data']['stock_deducted'] == 6
    assert await _available(client) == 0


@pytest.mark.anyio
async def test_state_machine_rejects_invalid_transitions(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=10)
    reservation_id = (await _reserve(client, quantity=1)).json()['data']['id']

    r = await client.put(f'/api/reservations/{reservation_id}/complete')
    assert r.status_code == 400
    assert r.json()['detail'] == f"Cannot complete reservation {reservation_id} in status 'pending'"

    r = await client.put(f'/api/reservations/{reservation_id}/reject', json={'notes': 'Wrong part'})
    assert r.status_code == 200
    assert r.json()['data']['status'] == 'rejected'
    assert r.json()['data']['priority_level'] == 6

    r = await client.put(f'/api/reservations/{reservation_id}/approve')
    assert r.status_code == 400

    r = await client.put(f'/api/reservations/{reservation_id}/cancel', json={'reason': 'Too late'})
    assert r.status_code == 400


@pytest.mark.anyio
async def test_reject_and_cancel_require_reason(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=10)
    reservation_id = (await _reserve(client, quantity=1)).json()['data']['id']

    r = await client.put(f'/api/reservations/{reservation_id}/reject', json={})
    assert r.status_code == 422
    r = await client.put(f'/api/reservations/{reservation_id}/cancel', json={})
    assert r.status_code == 422


@pytest.mark.anyio
async def test_cancel_approved_releases_hold(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=10)
    reservation_id = (await _reserve(client, quantity=6)).json()['data']['id']
    await client.put(f'/api/reservations/{reservation_id}/approve')
    assert await _available(client) == 4

    r = await client.put(f'/api/reservations/{reservation_id}/cancel', json={'reason': 'Customer declined repair'})
    assert r.status_code == 200
    assert r.json()['data']['status'] == 'cancelled'
    assert r.json()['data']['notes'] == 'Customer declined repair'
    assert await _available(client) == 10


@pytest.mark.anyio
async def test_approve_expired_reservation_fails(client: AsyncClient, test_session, make_item):
    await make_item('BRK-PAD-001', stock=10)
    reservation = await reservation_service.reserve(test_session, 'BRK-PAD-001', 1, 'JO-9', 'Desk')
    reservation.expires_at = datetime.utcnow() - timedelta(minutes=5)
    await test_session.commit()

    r = await client.put(f'/api/reservations/{reservation.id}/approve')
    assert r.status_code == 400
    assert r.json()['detail'] == f'Reservation {reservation.id} has expired'


@pytest.mark.anyio
async def test_reserve_multiple_is_all_or_nothing(client: AsyncClient, test_session, make_item):
    await make_item('BRK-PAD-001', stock=10)
    await make_item('ENG-OIL-5W30', item_name='Engine Oil 5W-30', stock=3)

    r = await client.post('/api/reservations/reserve-multiple', json={
        'job_order_number': 'JO-3001',
        'items': [
            {'item_id': 'BRK-PAD-001', 'quantity': 2},
            {'item_id': 'ENG-OIL-5W30', 'quantity': 5},
        ],
    })
    assert r.status_code == 400
    res = await test_session.execute(select(Reservation))
    assert res.scalars().all() == []

    r = await client.post('/api/reservations/reserve-multiple', json={
        'job_order_number': 'JO-3001',
        'items': [
            {'item_id': 'BRK-PAD-001', 'quantity': 2},
            {'item_id': 'ENG-OIL-5W30', 'quantity': 3},
        ],
    })
    assert r.status_code == 201
    data = r.json()['data']
    assert len(data) == 2
    assert {d['job_order_number'] for d in data} == {'JO-3001'}


@pytest.mark.anyio
async def test_reserve_multiple_sums_lines_for_same_sku(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=5)
    r = await client.post('/api/reservations/reserve-multiple', json={
        'job_order_number': 'JO-3002',
        'items': [
            {'item_id': 'BRK-PAD-001', 'quantity': 3},
            {'item_id': 'BRK-PAD-001', 'quantity': 3},
        ],
    })
    assert r.status_code == 400
    assert 'Requested: 6' in r.json()['detail']

    r = await client.post('/api/reservations/reserve-multiple', json={'job_order_number': 'JO-3003', 'items': []})
    assert r.status_code == 422


@pytest.mark.anyio
async def test_list_get_and_summary(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=20)
    ids = []
    for job in ('JO-1', 'JO-2', 'JO-3'):
        ids.append((await _reserve(client, quantity=1, job_order=job)).json()['data']['id'])
    await client.put(f'/api/reservations/{ids[0]}/approve')
    await client.put(f'/api/reservations/{ids[1]}/reject', json={'notes': 'No'})

    r = await client.get('/api/reservations/')
    data = r.json()['data']
    assert data['total'] == 3
    # Newest request first
    assert [i['id'] for i in data['items']] == list(reversed(ids))

    r = await client.get('/api/reservations/', params={'status': 'approved'})
    assert [i['id'] for i in r.json()['data']['items']] == [ids[0]]

    r = await client.get('/api/reservations/', params={'job_order': 'JO-3'})
    assert [i['id'] for i in r.json()['data']['items']] == [ids[2]]

    r = await client.get(f'/api/reservations/{ids[2]}')
    assert r.json()['data']['job_order_number'] == 'JO-3'
    r = await client.get('/api/reservations/99999')
    assert r.status_code == 404

    r = await client.get('/api/reservations/summary')
    summary = r.json()['data']
    assert summary['total_active'] == 2
    assert summary['pending_approvals'] == 1
    assert summary['by_status']['rejected'] == 1
    # Default expiry is a week out, beyond the expiring-soon window
    assert summary['expiring_soon'] == 0


@pytest.mark.anyio
async def test_summary_counts_expiring_soon(test_session, make_item):
    await make_item('BRK-PAD-001', stock=20)
    soon = datetime.utcnow() + timedelta(days=1)
    reservation = await reservation_service.reserve(
        test_session, 'BRK-PAD-001', 1, 'JO-7', 'Desk', expires_at=soon,
    )
    await reservation_service.approve(test_session, reservation.id, 'Manager')

    summary = await reservation_service.summary(test_session)
    assert summary['expiring_soon'] == 1

    # Already past expiry: stale, not expiring soon
    reservation.expires_at = datetime.utcnow() - timedelta(hours=2)
    await test_session.commit()
    summary = await reservation_service.summary(test_session)
    assert summary['expiring_soon'] == 0


@pytest.mark.anyio
async def test_expire_stale_cancels_and_archives(test_session, make_item):
    await make_item('BRK-PAD-001', stock=20)
    stale = await reservation_service.reserve(test_session, 'BRK-PAD-001', 2, 'JO-8', 'Desk')
    fresh = await reservation_service.reserve(test_session, 'BRK-PAD-001', 2, 'JO-9', 'Desk')
    stale.expires_at = datetime.utcnow() - timedelta(days=1)
    await test_session.commit()

    expired = await reservation_service.expire_stale(test_session)
    assert expired == 1
    assert stale.status == 'cancelled'
    assert stale.priority_level == 6
    assert fresh.status == 'pending'

    res = await test_session.execute(
        select(Archive).where(Archive.entity_type == 'reservation', Archive.action == 'expired')
    )
    archive = res.scalar_one()
    assert archive.entity_id == stale.id
    assert archive.user_id == 'System'
