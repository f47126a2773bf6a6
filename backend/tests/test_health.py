import pytest
from partstock.core.config import settings
from partstock.api.health import healthz

pytestmark = pytest.mark.integration


class FakeRedis:
    def __init__(self, healthy):
        self.healthy = healthy

    def health_check(self):
        return self.healthy


@pytest.mark.anyio
async def test_healthz():
    assert healthz() == {"status": "ok"}


@pytest.mark.anyio
async def test_readyz_db_ok(client):
    # With the test DB fixture, readyz should return ready
    res = await client.get('/readyz')
    assert res.status_code == 200
    assert res.json() == {"status": "ready"}


@pytest.mark.anyio
async def test_readyz_skips_redis_when_broadcast_disabled(monkeypatch, client):
    monkeypatch.setattr(settings, 'EVENT_BROADCAST_ENABLED', False)
    # Even if redis health is bad, readyz should pass
    monkeypatch.setattr('partstock.api.health.redis_client', FakeRedis(False))

    res = await client.get('/readyz')
    assert res.status_code == 200


@pytest.mark.anyio
async def test_readyz_fails_when_redis_bad_and_broadcast_enabled(monkeypatch, client):
    monkeypatch.setattr(settings, 'EVENT_BROADCAST_ENABLED', True)
    monkeypatch.setattr('partstock.api.health.redis_client', FakeRedis(False))

    res = await client.get('/readyz')
    assert res.status_code == 503
    assert res.json()['detail'] == 'Not ready'


@pytest.mark.anyio
async def test_readyz_ok_when_redis_healthy_and_broadcast_enabled(monkeypatch, client):
    monkeypatch.setattr(settings, 'EVENT_BROADCAST_ENABLED', True)
    monkeypatch.setattr('partstock.api.health.redis_client', FakeRedis(True))

    res = await client.get('/readyz')
    assert res.status_code == 200


@pytest.mark.anyio
async def test_api_health(client):
    res = await client.get('/api/health')
    assert res.status_code == 200
    body = res.json()
    assert body['success'] is True
    assert body['message'] == 'Inventory API is healthy'
    assert body['version'] == settings.APP_VERSION
    assert body['timestamp']
