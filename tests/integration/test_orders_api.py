"""
Integration tests for the purchase order endpoints.
"""

import pytest

from erpcompras.models import PurchaseOrder, PurchaseOrderLine


def order_payload(supplier_id, number='OC-2024-0100', lines=None, **fields):
    order = {'supplier_id': supplier_id, 'order_number': number, 'order_date': '2024-03-01'}
    order.update(fields)
    return {'order': order, 'lines': lines if lines is not None else []}


class TestCreateOrder:
    """POST /orders"""

    def test_create_order_with_lines(self, client, supplier_id, sample_lines):
        response = client.post('/orders', json=order_payload(
            supplier_id, lines=sample_lines, expected_delivery_date='2024-03-15', notes='Urgente'
        ))

        assert response.status_code == 201
        body = response.get_json()
        assert body['success'] is True
        order = body['data']
        assert order['status'] == 'Pendiente'
        assert order['status_code'] == 'PENDIENTE'
        assert order['supplier_name'] == 'Distribuidora Central S.A.'
        assert order['subtotal'] == 542.25
        assert order['tax'] == 65.07
        assert order['total'] == 607.32
        assert [line['line_number'] for line in order['lines']] == [1, 2]
        assert order['lines'][0]['line_total'] == 271.32

    def test_missing_order_number_returns_400(self, client, session, supplier_id, sample_lines):
        payload = order_payload(supplier_id, lines=sample_lines)
        del payload['order']['order_number']

        response = client.post('/orders', json=payload)

        assert response.status_code == 400
        body = response.get_json()
        assert body['success'] is False
        assert body['missing_fields'] == ['order_number']
        assert session.query(PurchaseOrder).count() == 0
        assert session.query(PurchaseOrderLine).count() == 0

    def test_non_json_body_returns_400(self, client):
        response = client.post('/orders', data='no es json', content_type='text/plain')
        assert response.status_code == 400
        assert response.get_json()['success'] is False

    def test_unknown_supplier_returns_404(self, client):
        response = client.post('/orders', json=order_payload(999))
        assert response.status_code == 404

    def test_duplicate_order_number_returns_409(self, client, supplier_id):
        assert client.post('/orders', json=order_payload(supplier_id)).status_code == 201

        response = client.post('/orders', json=order_payload(supplier_id))
        assert response.status_code == 409
        assert response.get_json()['error'] == 'ConflictError'


class TestReadOrders:
    """GET /orders and GET /orders/<id>"""

    def test_list_and_filter(self, client, make_order):
        first = make_order()
        make_order()
        client.put(f'/orders/{first}/status', json={'status': 'APROBADA'})

        response = client.get('/orders')
        assert response.status_code == 200
        assert len(response.get_json()['data']) == 2

        approved = client.get('/orders?status=APROBADA').get_json()['data']
        assert [order['id'] for order in approved] == [first]

    def test_list_with_unknown_status_filter(self, client):
        assert client.get('/orders?status=PERDIDA').status_code == 400

    def test_detail_lines_ordered(self, client, make_order):
        order_id = make_order(lines=[
            {'product_id': 3, 'quantity': 1, 'unit_price': 1, 'line_number': 3},
            {'product_id': 1, 'quantity': 1, 'unit_price': 1, 'line_number': 1},
        ])

        response = client.get(f'/orders/{order_id}')

        assert response.status_code == 200
        lines = response.get_json()['data']['lines']
        assert [line['line_number'] for line in lines] == [1, 3]

    def test_detail_not_found(self, client):
        response = client.get('/orders/424242')
        assert response.status_code == 404
        assert response.get_json()['success'] is False


class TestOrderStatus:
    """PUT /orders/<id>/status"""

    def test_approve(self, client, make_order):
        order_id = make_order()

        response = client.put(f'/orders/{order_id}/status', json={'status': 'APROBADA'})

        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'Aprobada'

    def test_completed_order_rejects_status_change(self, client, make_order):
        order_id = make_order()
        assert client.put(f'/orders/{order_id}/status', json={'status': 'ENTREGADA'}).status_code == 200

        response = client.put(f'/orders/{order_id}/status', json={'status': 'APROBADA'})

        assert response.status_code == 400
        body = response.get_json()
        assert body['error'] == 'InvalidTransitionError'
        assert body['current_status'] == 'Completada'
        assert client.get(f'/orders/{order_id}').get_json()['data']['status'] == 'Completada'

    def test_unknown_status_returns_400(self, client, make_order):
        order_id = make_order()
        response = client.put(f'/orders/{order_id}/status', json={'status': 'ENVIADA'})
        assert response.status_code == 400

    def test_missing_order_returns_404(self, client):
        response = client.put('/orders/999/status', json={'status': 'APROBADA'})
        assert response.status_code == 404

    def test_status_change_keeps_totals(self, client, make_order, sample_lines):
        order_id = make_order(lines=sample_lines)

        data = client.put(f'/orders/{order_id}/status', json={'status': 'EN_PROCESO'}).get_json()['data']

        assert data['status'] == 'En proceso'
        assert data['total'] == 607.32


class TestOrderHeader:
    """PUT and DELETE /orders/<id>"""

    def test_update_header_fields(self, client, make_order):
        order_id = make_order()

        response = client.put(f'/orders/{order_id}', json={
            'expected_delivery_date': '2024-04-10',
            'notes': 'Entregar en bodega 2',
            'payment_terms': '60 días',
            'total': 1,
        })

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['expected_delivery_date'] == '2024-04-10'
        assert data['notes'] == 'Entregar en bodega 2'
        assert data['payment_terms'] == '60 días'
        assert data['total'] == 0.0

    def test_delete_order_removes_lines(self, client, session, make_order, sample_lines):
        order_id = make_order(lines=sample_lines)

        response = client.delete(f'/orders/{order_id}')

        assert response.status_code == 200
        assert client.get(f'/orders/{order_id}').status_code == 404
        session.expire_all()
        assert session.query(PurchaseOrderLine).filter_by(order_id=order_id).count() == 0


class TestOrderLines:
    """POST /orders/<id>/lines, PUT and DELETE /lines/<id>"""

    def test_line_lifecycle_keeps_totals_in_sync(self, client, make_order):
        order_id = make_order()

        response = client.post(f'/orders/{order_id}/lines', json={
            'product_id': 101, 'quantity': 10, 'unit_price': 25.50, 'discount_pct': 5.0
        })
        assert response.status_code == 201
        data = response.get_json()['data']
        line_id = data['line']['id']
        assert data['line']['line_subtotal'] == 242.25
        assert data['line']['line_tax'] == 29.07
        assert data['order']['total'] == 271.32

        response = client.put(f'/lines/{line_id}', json={'quantity': 20})
        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['line']['line_subtotal'] == 484.5
        assert data['order']['subtotal'] == 484.5
        assert data['order']['tax'] == 58.14
        assert data['order']['total'] == 542.64

        response = client.delete(f'/lines/{line_id}')
        assert response.status_code == 200
        order = response.get_json()['data']['order']
        assert order['subtotal'] == 0.0
        assert order['tax'] == 0.0
        assert order['total'] == 0.0

    def test_invalid_line_returns_400(self, client, make_order):
        order_id = make_order()
        response = client.post(f'/orders/{order_id}/lines', json={
            'product_id': 1, 'quantity': 0, 'unit_price': 10
        })
        assert response.status_code == 400
        assert client.get(f'/orders/{order_id}').get_json()['data']['lines'] == []

    def test_add_line_to_missing_order(self, client):
        response = client.post('/orders/999/lines', json={'product_id': 1, 'quantity': 1, 'unit_price': 1})
        assert response.status_code == 404

    def test_duplicate_line_number_returns_409(self, client, make_order, sample_lines):
        order_id = make_order(lines=sample_lines)
        response = client.post(f'/orders/{order_id}/lines', json={
            'product_id': 1, 'quantity': 1, 'unit_price': 1, 'line_number': 1
        })
        assert response.status_code == 409

    @pytest.mark.parametrize('method', ['put', 'delete'])
    def test_missing_line_returns_404(self, client, method):
        kwargs = {'json': {'quantity': 1}} if method == 'put' else {}
        response = getattr(client, method)('/lines/5555', **kwargs)
        assert response.status_code == 404


class TestErrorEnvelope:
    """Unknown routes and methods answer with the JSON envelope."""

    def test_unknown_route(self, client):
        response = client.get('/no-existe')
        assert response.status_code == 404
        assert response.get_json()['success'] is False

    def test_method_not_allowed(self, client, make_order):
        order_id = make_order()
        response = client.patch(f'/orders/{order_id}/status', json={'status': 'APROBADA'})
        assert response.status_code == 405
        assert response.get_json()['success'] is False
