from datetime import date, datetime, timedelta

import pytest
from sqlalchemy import select

from partstock.db.models import Alert, Archive, Report, Reservation
from partstock.scheduler import get_scheduler_status, trigger_job
from partstock.services.maintenance import run_maintenance
from partstock.services.reservations import reserve


async def _stock_shop(make_item):
    await make_item('BRK-PAD-001', stock=25)
    await make_item('OIL-FLT-5W30', item_name='Oil Filter', category='Filters', stock=5, reorder_level=20, unit_price=10)
    await make_item('SPARK-PLG-NGK', item_name='NGK Spark Plugs', category='Engine', stock=0, reorder_level=15)


@pytest.mark.anyio
async def test_unknown_maintenance_type(test_session):
    with pytest.raises(ValueError, match='Unknown maintenance type: vacuum'):
        await run_maintenance(test_session, 'vacuum')


@pytest.mark.anyio
async def test_reports_step_on_first_of_month(test_session):
    results = await run_maintenance(test_session, 'reports', now=datetime(2024, 3, 1, 1, 0))

    assert results['type'] == 'reports'
    assert set(results['reports']) == {'daily_usage', 'monthly_procurement', 'reconciliation'}
    assert 'alerts' not in results

    daily = await test_session.get(Report, results['reports']['daily_usage'])
    assert daily.report_date == date(2024, 2, 29)
    assert daily.generated_by == 'System - Automated Job'
    assert daily.data_summary['generated_automatically'] is True

    monthly = await test_session.get(Report, results['reports']['monthly_procurement'])
    assert monthly.data_summary['month'] == '2024-02'

    recon = await test_session.get(Report, results['reports']['reconciliation'])
    assert recon.report_date == date(2024, 3, 1)
    assert recon.data_summary['summary']['accuracy_percentage'] == 100


@pytest.mark.anyio
async def test_reports_step_mid_month_skips_procurement(test_session):
    results = await run_maintenance(test_session, 'reports', now=datetime(2024, 3, 15, 1, 0))
    assert set(results['reports']) == {'daily_usage', 'reconciliation'}


@pytest.mark.anyio
async def test_alerts_step(test_session, make_item):
    await _stock_shop(make_item)

    results = await run_maintenance(test_session, 'alerts')
    alerts = results['alerts']
    assert alerts['alerts_created'] == 2
    assert alerts['total_low_stock_items'] == 2

    report = await test_session.get(Report, alerts['low_stock_report'])
    assert report.report_type == 'low_stock_alert'
    assert report.data_summary['total_low_stock_items'] == 2
    assert report.data_summary['critical_items'] == 1
    assert report.data_summary['items'][0]['item_id'] == 'SPARK-PLG-NGK'


@pytest.mark.anyio
async def test_alerts_step_without_low_stock(test_session, make_item):
    await make_item('BRK-PAD-001', stock=25)
    results = await run_maintenance(test_session, 'alerts')
    assert results['alerts'] == {'alerts_created': 0, 'total_low_stock_items': 0}


@pytest.mark.anyio
async def test_cleanup_step(test_session, make_item):
    await make_item('BRK-PAD-001', stock=25)
    now = datetime.utcnow()

    test_session.add_all([
        Report(report_type='daily_usage', generated_date=now - timedelta(days=400),
               report_date=(now - timedelta(days=400)).date(), data_summary={}),
        Report(report_type='daily_usage', generated_date=now - timedelta(days=30),
               report_date=(now - timedelta(days=30)).date(), data_summary={}),
        Archive(entity_type='inventory', entity_id=1, action='updated',
                archived_date=now - timedelta(days=800)),
        Alert(item_id='BRK-PAD-001', item_name='Brake Pads', current_stock=2, reorder_level=10,
              category='Brakes', acknowledged=True, acknowledged_by='Jane Mechanic',
              acknowledged_at=now - timedelta(days=40)),
        Alert(item_id='BRK-PAD-001', item_name='Brake Pads', current_stock=2, reorder_level=10,
              category='Brakes'),
    ])
    await test_session.commit()

    stale = await reserve(test_session, 'BRK-PAD-001', 2, 'JO-40', 'Desk')
    stale.expires_at = now - timedelta(hours=1)
    await test_session.commit()

    results = await run_maintenance(test_session, 'cleanup', now=now)
    assert results['cleanup'] == {
        'reports_deleted': 1,
        'archives_deleted': 1,
        'alerts_deleted': 1,
        'reservations_expired': 1,
    }

    remaining_alerts = (await test_session.execute(select(Alert))).scalars().all()
    assert [a.acknowledged for a in remaining_alerts] == [False]

    reservation = (await test_session.execute(select(Reservation))).scalar_one()
    assert reservation.status == 'cancelled'


@pytest.mark.anyio
async def test_metrics_step(test_session, make_item):
    await _stock_shop(make_item)

    results = await run_maintenance(test_session, 'metrics')
    assert results['metrics'] == {
        'total_active_items': 3,
        'low_stock_items': 2,
        'out_of_stock_items': 1,
        'total_inventory_value': 1199.75,
        'health_score': 63,
    }


@pytest.mark.anyio
async def test_run_all(test_session, make_item):
    await _stock_shop(make_item)
    results = await run_maintenance(test_session, 'all')
    assert {'reports', 'alerts', 'cleanup', 'metrics'} <= set(results)


@pytest.mark.anyio
async def test_trigger_unknown_job():
    result = await trigger_job('defrag')
    assert result == {'status': 'error', 'message': 'Unknown job: defrag'}


@pytest.mark.anyio
async def test_scheduler_status_when_not_started():
    status = get_scheduler_status()
    assert status['enabled'] is False
    assert status['running'] is False
    assert status['scheduled_jobs'] == []
