"""Flask application factory."""
import logging
import os
import traceback
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException
from erpcompras.database import init_db


def _configure_logging(app):
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )
    app.logger.setLevel(level)


def create_app(config_object='config.Config'):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json.sort_keys = False

    _configure_logging(app)

    # Initialize Sentry for error tracking in production
    sentry_dsn = app.config.get('SENTRY_DSN')
    if sentry_dsn and app.config.get('ENV') == 'production':
        import sentry_sdk
        from sentry_sdk.integrations.flask import FlaskIntegration

        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,  # 10% of transactions for performance monitoring
            environment=app.config.get('ENV'),
            release=os.getenv('GIT_COMMIT', 'unknown')
        )

    # Setup Prometheus metrics instrumentation
    from erpcompras.blueprints.metrics import setup_metrics_instrumentation
    setup_metrics_instrumentation(app)

    # Production: Enable ProxyFix for HTTPS behind a reverse proxy
    if app.config.get('ENV') == 'production':
        from werkzeug.middleware.proxy_fix import ProxyFix
        app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for=1,      # Trust X-Forwarded-For with 1 proxy
            x_proto=1,    # Trust X-Forwarded-Proto
            x_host=1,     # Trust X-Forwarded-Host
            x_port=1,     # Trust X-Forwarded-Port
            x_prefix=0    # No prefix (not behind a URL prefix)
        )

    # Initialize database
    init_db(app)

    # Error Handlers
    from erpcompras.exceptions import ErpError, StoreError

    @app.errorhandler(ErpError)
    def handle_erp_error(error):
        """Handle custom application exceptions."""
        if isinstance(error, StoreError):
            app.logger.error(f"{type(error).__name__} [{error.status_code}]: {error.message}")
        else:
            app.logger.info(f"{type(error).__name__} [{error.status_code}]: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        """Routing errors (404, 405, ...) in the JSON envelope."""
        return jsonify({
            'success': False,
            'message': error.description,
            'error': error.name
        }), error.code

    @app.errorhandler(500)
    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error(f"Unhandled Exception: {error}")
        app.logger.error(f"Traceback: {traceback.format_exc()}")
        return jsonify({
            'success': False,
            'message': 'Error interno del servidor',
            'error': type(error).__name__
        }), 500

    # Register blueprints
    from erpcompras.blueprints.main import main_bp
    from erpcompras.blueprints.suppliers import suppliers_bp
    from erpcompras.blueprints.orders import orders_bp, lines_bp
    from erpcompras.blueprints.metrics import metrics_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(lines_bp)
    app.register_blueprint(metrics_bp)

    # Register CLI commands
    from erpcompras.cli_commands import init_cli_commands
    init_cli_commands(app)

    app.logger.info(f"TAX_RATE={app.config.get('TAX_RATE')}")

    return app
