import itertools
import pytest

from erpcompras import create_app
from erpcompras.database import create_tables, drop_tables, get_session
from erpcompras.models import Supplier
from erpcompras.services.order_aggregate_service import create_order_with_lines
from erpcompras.services.order_store import OrderStore


@pytest.fixture(scope='function')
def app():
    """Create application instance backed by a fresh in-memory database."""
    app = create_app('config.TestingConfig')
    create_tables()
    yield app
    get_session().remove()
    drop_tables()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def app_ctx(app):
    """Push an application context for service-level tests."""
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def session(app_ctx):
    """Database session (scoped) for the current context."""
    session = get_session()
    yield session
    session.rollback()


@pytest.fixture(scope='function')
def store(session):
    """Order store over the test session."""
    return OrderStore(session)


@pytest.fixture(scope='function')
def supplier_id(app):
    """Create an active supplier and return its id."""
    with app.app_context():
        session = get_session()
        supplier = Supplier(
            name='Distribuidora Central S.A.',
            tax_id='1234567-8',
            contact_name='Ana López',
            phone='22334455',
            email='ventas@distcentral.com.gt',
            address='6a Avenida 10-20 Zona 1',
            city='Guatemala',
            country='Guatemala'
        )
        session.add(supplier)
        session.commit()
        return supplier.id


@pytest.fixture(scope='function')
def make_order(app, supplier_id):
    """Factory: create an order (optionally with lines) and return its id."""
    numbers = itertools.count(1)

    def _make(lines=None, **order_fields):
        order = {
            'supplier_id': supplier_id,
            'order_number': f'OC-TEST-{next(numbers):04d}',
            'order_date': '2024-03-01',
        }
        order.update(order_fields)
        with app.app_context():
            created = create_order_with_lines(
                {'order': order, 'lines': lines or []},
                OrderStore(get_session())
            )
            return created.id

    return _make


@pytest.fixture
def sample_lines():
    """Two lines: 10 x 25.50 at 5% discount and 3 x 100.00 without discount."""
    return [
        {'product_id': 101, 'quantity': 10, 'unit_price': 25.50, 'discount_pct': 5.0,
         'product_description': 'Resma papel bond carta'},
        {'product_id': 202, 'quantity': 3, 'unit_price': '100.00',
         'product_description': 'Tóner negro'},
    ]
