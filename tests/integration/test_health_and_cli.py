"""
Integration tests for the health check, metrics endpoint and CLI commands.
"""

from prometheus_client import REGISTRY

from erpcompras.database import get_session
from erpcompras.models import Supplier


class TestHealth:
    """GET /health and /metrics"""

    def test_health(self, client):
        response = client.get('/health')

        assert response.status_code == 200
        assert response.get_json()['database'] == 'connected'

    def test_metrics_exposed(self, client):
        client.get('/health')
        response = client.get('/metrics')

        assert response.status_code == 200
        assert b'erpcompras_http_requests_total' in response.data


class TestCliCommands:
    """flask init-db and flask recompute-totals"""

    def test_init_db_seeds_suppliers(self, app):
        runner = app.test_cli_runner()

        result = runner.invoke(args=['init-db'])

        assert result.exit_code == 0
        with app.app_context():
            assert get_session().query(Supplier).count() == 2

    def test_init_db_does_not_duplicate_seed(self, app, supplier_id):
        result = app.test_cli_runner().invoke(args=['init-db'])

        assert result.exit_code == 0
        with app.app_context():
            assert get_session().query(Supplier).count() == 1

    def test_recompute_totals(self, app, make_order, sample_lines):
        order_id = make_order(lines=sample_lines)

        result = app.test_cli_runner().invoke(args=['recompute-totals', str(order_id)])

        assert result.exit_code == 0
        assert 'total=607.32' in result.output

    def test_recompute_totals_unknown_order(self, app):
        result = app.test_cli_runner().invoke(args=['recompute-totals', '999'])
        assert result.exit_code != 0


class TestOrderMutationMetrics:
    """erpcompras_order_mutation_failures_total"""

    def _failures(self, endpoint, status):
        value = REGISTRY.get_sample_value(
            'erpcompras_order_mutation_failures_total',
            {'endpoint': endpoint, 'http_status': str(status)}
        )
        return value or 0

    def test_failed_line_update_is_counted(self, client):
        before = self._failures('lines.update_line', 404)

        assert client.put('/lines/8080', json={'quantity': 1}).status_code == 404

        assert self._failures('lines.update_line', 404) == before + 1

    def test_reads_are_not_counted(self, client):
        before = self._failures('orders.get_order', 404)

        assert client.get('/orders/8080').status_code == 404

        assert self._failures('orders.get_order', 404) == before
