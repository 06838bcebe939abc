"""
Integration tests for the supplier endpoints.
"""

from erpcompras.models import Supplier


class TestSuppliers:
    """CRUD on /suppliers."""

    def test_create_and_get(self, client):
        response = client.post('/suppliers', json={
            'name': 'Ferretería El Martillo',
            'email': 'Compras@ElMartillo.com.gt',
            'phone': '24456789',
        })

        assert response.status_code == 201
        data = response.get_json()['data']
        assert data['email'] == 'compras@elmartillo.com.gt'
        assert data['status'] == 'Activo'
        assert data['country'] == 'Guatemala'

        detail = client.get(f"/suppliers/{data['id']}")
        assert detail.status_code == 200
        assert detail.get_json()['data']['name'] == 'Ferretería El Martillo'

    def test_create_requires_name_and_email(self, client):
        response = client.post('/suppliers', json={'name': 'Sin correo'})
        assert response.status_code == 400

    def test_invalid_email(self, client):
        response = client.post('/suppliers', json={'name': 'X', 'email': 'no-es-email'})
        assert response.status_code == 400

    def test_duplicate_email_returns_409(self, client, supplier_id):
        response = client.post('/suppliers', json={
            'name': 'Otro', 'email': 'VENTAS@distcentral.com.gt'
        })
        assert response.status_code == 409

    def test_list_with_search(self, client, supplier_id):
        client.post('/suppliers', json={'name': 'Ferretería El Martillo', 'email': 'a@martillo.com'})

        everything = client.get('/suppliers').get_json()['data']
        found = client.get('/suppliers?q=martillo').get_json()['data']

        assert len(everything) == 2
        assert [supplier['name'] for supplier in found] == ['Ferretería El Martillo']

    def test_update(self, client, supplier_id):
        response = client.put(f'/suppliers/{supplier_id}', json={'phone': '55550000', 'city': 'Mixco'})

        assert response.status_code == 200
        data = response.get_json()['data']
        assert data['phone'] == '55550000'
        assert data['city'] == 'Mixco'
        assert data['email'] == 'ventas@distcentral.com.gt'

    def test_soft_delete_marks_inactive(self, client, supplier_id):
        response = client.delete(f'/suppliers/{supplier_id}')

        assert response.status_code == 200
        assert response.get_json()['data']['status'] == 'Inactivo'
        inactive = client.get('/suppliers?status=Inactivo').get_json()['data']
        assert [supplier['id'] for supplier in inactive] == [supplier_id]

    def test_hard_delete(self, client, session, supplier_id):
        response = client.delete(f'/suppliers/{supplier_id}/hard')

        assert response.status_code == 200
        session.expire_all()
        assert session.get(Supplier, supplier_id) is None

    def test_hard_delete_refused_with_orders(self, client, make_order, supplier_id):
        make_order()

        response = client.delete(f'/suppliers/{supplier_id}/hard')

        assert response.status_code == 409
        assert response.get_json()['order_count'] == 1
        assert client.get(f'/suppliers/{supplier_id}').status_code == 200

    def test_not_found(self, client):
        assert client.get('/suppliers/31337').status_code == 404
