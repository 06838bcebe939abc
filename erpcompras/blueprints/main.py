"""Main blueprint with health check endpoints."""
from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from erpcompras.database import get_session

main_bp = Blueprint('main', __name__)


@main_bp.route('/health')
def health():
    """
    Health check endpoint that validates database connection.

    Returns:
        200: Healthy (DB connected)
        500: Unhealthy (DB error)
    """
    session = get_session()
    try:
        # Execute simple query to test connection
        result = session.execute(text("SELECT 1 as health_check"))
        row = result.fetchone()

        if row and row[0] == 1:
            return jsonify({
                'success': True,
                'status': 'healthy',
                'database': 'connected',
                'message': 'Database connection successful'
            }), 200
        else:
            return jsonify({
                'success': False,
                'status': 'unhealthy',
                'database': 'error',
                'message': 'Unexpected query result'
            }), 500

    except SQLAlchemyError as e:
        session.rollback()
        return jsonify({
            'success': False,
            'status': 'unhealthy',
            'database': 'disconnected',
            'error': str(e),
            'message': 'Failed to connect to database'
        }), 500
