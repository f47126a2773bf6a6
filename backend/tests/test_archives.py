from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from partstock.db.models import Report

pytestmark = pytest.mark.integration


@pytest.mark.anyio
async def test_stock_changes_are_archived(client: AsyncClient, make_item, auth_headers):
    item = await make_item('BRK-PAD-001', stock=25)
    await client.post('/api/inventory/add-stock', json={
        'item_id': 'BRK-PAD-001', 'quantity': 10, 'reference_number': 'PO-881',
    }, headers=auth_headers)
    await client.post('/api/inventory/deduct-stock', json={
        'item_id': 'BRK-PAD-001', 'quantity': 3, 'reference_number': 'JO-12',
    }, headers=auth_headers)

    r = await client.get('/api/archives/', params={'entity_type': 'inventory', 'entity_id': item.id})
    data = r.json()['data']
    assert data['total'] == 3
    assert [a['action'] for a in data['items']] == ['sale', 'procurement', 'created']

    sale = data['items'][0]
    assert sale['old_data'] == {'previous_stock': 35}
    assert sale['new_data']['current_stock'] == 32
    assert sale['user_id'] == 'Jane Mechanic'
    assert sale['reference_number'] == 'JO-12'
    assert sale['notes'] == 'Stock sale operation'

    r = await client.get('/api/archives/', params={'action': 'procurement'})
    assert [a['reference_number'] for a in r.json()['data']['items']] == ['PO-881']

    r = await client.get(f"/api/archives/{sale['id']}")
    assert r.json()['data']['action'] == 'sale'

    r = await client.get('/api/archives/99999')
    assert r.status_code == 404
    assert r.json()['detail'] == 'Archive 99999 not found'


@pytest.mark.anyio
async def test_archive_date_filters_are_inclusive_days(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=25)
    today = datetime.utcnow().date()

    r = await client.get('/api/archives/', params={'start_date': today.isoformat(), 'end_date': today.isoformat()})
    assert r.json()['data']['total'] == 1

    yesterday = (today - timedelta(days=1)).isoformat()
    r = await client.get('/api/archives/', params={'end_date': yesterday})
    assert r.json()['data']['total'] == 0

    r = await client.get('/api/archives/', params={'entity_type': 'supplier'})
    assert r.status_code == 422


@pytest.mark.anyio
async def test_low_stock_alert_fires_only_on_the_way_down(client: AsyncClient, test_session, make_item):
    await make_item('BRK-PAD-001', stock=12, reorder_level=10)

    async def low_stock_reports():
        res = await test_session.execute(select(Report).where(Report.report_type == 'low_stock_alert'))
        return list(res.scalars().all())

    assert await low_stock_reports() == []

    await client.post('/api/inventory/deduct-stock', json={
        'item_id': 'BRK-PAD-001', 'quantity': 8, 'reference_number': 'JO-20',
    })
    reports = await low_stock_reports()
    assert len(reports) == 1
    assert reports[0].generated_by == 'System - Auto Alert'
    assert reports[0].data_summary['current_stock'] == 4
    assert reports[0].data_summary['alert_level'] == 'high'
    assert reports[0].data_summary['suggested_order_quantity'] == 20

    # A restock that leaves the part below its reorder level does not re-alert
    await client.post('/api/inventory/add-stock', json={'item_id': 'BRK-PAD-001', 'quantity': 2})
    assert len(await low_stock_reports()) == 1


@pytest.mark.anyio
async def test_transactions_api(client: AsyncClient, make_item):
    await make_item('BRK-PAD-001', stock=25)
    await make_item('ENG-OIL-5W30', item_name='Engine Oil 5W-30', stock=10)
    await client.post('/api/inventory/deduct-stock', json={
        'item_id': 'BRK-PAD-001', 'quantity': 4, 'reference_number': 'JO-30',
    })

    r = await client.get('/api/transactions/')
    data = r.json()['data']
    assert data['total'] == 3
    newest = data['items'][0]
    assert newest['transaction_type'] == 'sale'
    assert newest['quantity'] == -4
    assert newest['previous_stock'] == 25
    assert newest['new_stock'] == 21
    assert newest['impact'] == 'negative'

    r = await client.get('/api/transactions/', params={'item_id': 'BRK-PAD-001', 'transaction_type': 'procurement'})
    items = r.json()['data']['items']
    assert len(items) == 1
    assert items[0]['reference_number'] == 'INITIAL_STOCK'
    assert items[0]['impact'] == 'positive'

    today = datetime.utcnow().date().isoformat()
    r = await client.get('/api/transactions/', params={'start_date': today, 'end_date': today})
    assert r.json()['data']['total'] == 3

    r = await client.get('/api/transactions/', params={'page_size': 1, 'page': 2})
    data = r.json()['data']
    assert data['page'] == 2
    assert len(data['items']) == 1

    r = await client.get(f"/api/transactions/{newest['id']}")
    assert r.json()['data']['reference_number'] == 'JO-30'

    r = await client.get('/api/transactions/99999')
    assert r.status_code == 404
    assert r.json()['detail'] == 'Transaction 99999 not found'
