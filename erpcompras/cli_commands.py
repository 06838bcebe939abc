"""
Flask CLI commands for database bootstrap and maintenance.

Commands:
- flask init-db: Create tables and seed example suppliers
- flask recompute-totals: Recompute order totals from their lines
"""

import logging
import click
from erpcompras.database import create_tables, get_session
from erpcompras.exceptions import ErpError
from erpcompras.models import PurchaseOrder, Supplier
from erpcompras.services.order_aggregate_service import recompute_totals
from erpcompras.services.order_store import OrderStore

logger = logging.getLogger(__name__)

SEED_SUPPLIERS = (
    {
        'name': 'Proveedor Ejemplo S.A.',
        'contact_name': 'Juan Pérez',
        'phone': '33205976',
        'email': 'contacto@proveedor.com',
        'address': 'Calle Falsa 123',
        'city': 'Ciudad de México',
        'country': 'México',
    },
    {
        'name': 'Importadora La Economica S.A.',
        'contact_name': 'Pedro Perez',
        'phone': '55636363',
        'email': 'contacto@laeconomica.com',
        'address': 'Avenida Petapa, 23-06 Zona 12',
        'city': 'Guatemala',
        'country': 'Guatemala',
    },
)


def seed_suppliers(session):
    """Insert the example suppliers when the table is empty. Returns how many were added."""
    if session.query(Supplier.id).first() is not None:
        return 0

    for data in SEED_SUPPLIERS:
        session.add(Supplier(**data))
    session.commit()
    return len(SEED_SUPPLIERS)


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    @click.option('--seed/--no-seed', default=True, help='Insert example suppliers into an empty database')
    def init_db_command(seed):
        """Create missing tables and optionally seed example data."""
        create_tables()
        click.echo(click.style('✅ Tablas verificadas/creadas', fg='green'))

        if not seed:
            return

        session = get_session()
        try:
            added = seed_suppliers(session)
            if added:
                click.echo(click.style(f'✅ {added} proveedores de ejemplo insertados', fg='green'))
            else:
                click.echo('ℹ️ Ya existen proveedores, no se insertaron datos de ejemplo')
        except Exception as e:
            # Seed data is optional; the schema is already in place
            session.rollback()
            logger.warning(f"Seeding example suppliers failed: {e}")
            click.echo(click.style(f'⚠️ No se pudieron insertar datos de ejemplo: {e}', fg='yellow'))

    @app.cli.command('recompute-totals')
    @click.argument('order_id', required=False, type=int)
    def recompute_totals_command(order_id):
        """Recompute subtotal, tax and total of one order (or all) from its lines."""
        session = get_session()
        store = OrderStore(session)

        if order_id is not None:
            order_ids = [order_id]
        else:
            order_ids = [row[0] for row in session.query(PurchaseOrder.id).order_by(PurchaseOrder.id).all()]

        failures = 0
        for current_id in order_ids:
            try:
                store.begin_transaction()
                if store.get_order(current_id, for_update=True) is None:
                    store.rollback()
                    click.echo(click.style(f'❌ Orden {current_id} no encontrada', fg='red'))
                    failures += 1
                    continue
                order = recompute_totals(current_id, store)
                store.commit()
                click.echo(f'Orden {order.order_number}: subtotal={order.subtotal} tax={order.tax} total={order.total}')
            except ErpError as e:
                store.rollback()
                failures += 1
                click.echo(click.style(f'❌ Orden {current_id}: {e.message}', fg='red'))

        if failures:
            raise click.ClickException(f'{failures} órdenes no pudieron recalcularse')
        click.echo(click.style(f'✅ {len(order_ids)} órdenes recalculadas', fg='green'))
