"""Tests for /health, /api/health and /api/health/<service>/reset endpoints."""
import pytest

from teedclub.services.circuit_breaker import get_breaker


class TestHealth:

    def test_liveness(self, client):
        resp = client.get('/health')
        assert resp.status_code == 200
        assert resp.get_json() == {'status': 'healthy'}


class TestApiHealth:
    """GET /api/health returns circuit breaker states."""

    def test_returns_services_dict(self, client):
        data = client.get('/api/health').get_json()
        # init_breakers is called in create_app
        assert 'scoring_config' in data['services']
        assert data['status'] == 'healthy'

    def test_service_has_expected_fields(self, client):
        svc = client.get('/api/health').get_json()['services']['scoring_config']
        for key in ('name', 'state', 'failure_count', 'failure_threshold',
                    'total_success', 'total_failure'):
            assert key in svc

    def test_reports_config_source(self, client):
        data = client.get('/api/health').get_json()
        assert data['scoring_config'] == {'source': 'default', 'version': '1.0.0'}

    def test_open_breaker_degrades(self, client):
        breaker = get_breaker('scoring_config')
        for _ in range(breaker.failure_threshold):
            with pytest.raises(ConnectionError):
                breaker.call(self._fail)
        data = client.get('/api/health').get_json()
        assert data['status'] == 'degraded'
        assert data['services']['scoring_config']['state'] == 'open'

    @staticmethod
    def _fail():
        raise ConnectionError('config service down')


class TestResetCircuit:
    """POST /api/health/<service>/reset resets a circuit breaker."""

    def test_reset_known_service(self, client):
        breaker = get_breaker('scoring_config')
        with pytest.raises(ConnectionError):
            breaker.call(TestApiHealth._fail)
        resp = client.post('/api/health/scoring_config/reset')
        assert resp.status_code == 200
        data = resp.get_json()
        assert data['ok'] is True
        assert data['state'] == 'closed'
        assert data['failure_count'] == 0

    def test_reset_unknown_service_404(self, client):
        resp = client.post('/api/health/nonexistent/reset')
        assert resp.status_code == 404
