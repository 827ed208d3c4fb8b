import types

import ntplib
import pytest
from sqlalchemy.exc import OperationalError

from campusvote.operations import health_monitor, time_sync


class FakeNTPClient:
    offset = 0.01

    def request(self, server, version=3, timeout=2):
        return types.SimpleNamespace(offset=self.offset)


class UnreachableNTPClient:
    def request(self, server, version=3, timeout=2):
        raise ntplib.NTPException("No response received from %s." % server)


@pytest.fixture
def enough_disk(monkeypatch):
    monkeypatch.setattr(health_monitor, 'MIN_FREE_DISK_GB', 0.0)


def test_time_sync_ok(monkeypatch):
    monkeypatch.setattr(time_sync.ntplib, 'NTPClient', FakeNTPClient)
    res = time_sync.check_time_sync()
    assert res['overall_ok'] is True
    assert res['average_offset_s'] == 0.01
    assert all(r['status'] == 'ok' for r in res['results'])


def test_time_sync_drifted(monkeypatch):
    class Drifted(FakeNTPClient):
        offset = 2.5

    monkeypatch.setattr(time_sync.ntplib, 'NTPClient', Drifted)
    res = time_sync.check_time_sync()
    assert res['overall_ok'] is False
    assert res['results'][0]['status'] == 'drifted'


def test_time_sync_unreachable(monkeypatch):
    monkeypatch.setattr(time_sync.ntplib, 'NTPClient', UnreachableNTPClient)
    res = time_sync.check_time_sync()
    assert res['overall_ok'] is False
    assert res['average_offset_s'] is None
    assert {r['status'] for r in res['results']} == {'failed'}


def test_ready_endpoint(client, enough_disk):
    rv = client.get('/ready')
    assert rv.status_code == 200
    body = rv.get_json()
    assert body['db']['ok'] is True
    assert body['overall_ok'] is True


def test_health_endpoint_reports_clock(client, enough_disk, monkeypatch):
    monkeypatch.setattr(time_sync.ntplib, 'NTPClient', FakeNTPClient)
    assert client.get('/health').status_code == 200

    monkeypatch.setattr(time_sync.ntplib, 'NTPClient', UnreachableNTPClient)
    rv = client.get('/health')
    assert rv.status_code == 503
    assert rv.get_json()['time']['overall_ok'] is False


def test_not_ready_when_database_is_down(app, enough_disk, monkeypatch):
    def broken_execute(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr(health_monitor.db.session, "execute", broken_execute)
    res = health_monitor.check_readiness()
    assert res["overall_ok"] is False
    assert res["db"] == {"ok": False, "detail": "database unreachable"}
