# app.py
"""
Flask Application Factory for the Item service

This application factory wires together:
- Environment-based configuration
- Logging with console and rotating file handlers
- SQLAlchemy database access and migrations
- Rate limiting and CORS for the JSON API
- The Item blueprint and centralized error handling
- Health checks and request timing
"""

import os
import logging
import logging.handlers
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, request, jsonify, g
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event, text
from sqlalchemy.orm import sessionmaker

from api.items import items_bp
from config.settings import get_config
from core.database_models import db
from core.email_validator import DeliverableEmailValidator
from core.item_repository import ItemRepository
from middleware.error_handlers import register_error_handlers
from services.item_service import ItemService


def setup_logging(app: Flask) -> None:
    """
    Configure application logging

    - Console output with a compact, journal-style format
    - Rotating debug log file in development
    - Quieter third-party loggers outside debug mode
    """
    # Remove default Flask handlers to avoid duplicate logs
    app.logger.handlers.clear()

    journal_formatter = logging.Formatter(
        fmt='%(name)s[%(process)d]: %(levelname)s %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    detailed_formatter = logging.Formatter(
        fmt='%(asctime)s %(name)-20s %(levelname)-8s %(funcName)-15s:%(lineno)-4d %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO').upper(), logging.INFO)
    app.logger.setLevel(log_level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(journal_formatter)
    console_handler.setLevel(log_level)
    app.logger.addHandler(console_handler)

    # Module loggers (core.*, services.*, api.*) share the console handler
    for name in ('core', 'services', 'api'):
        module_logger = logging.getLogger(name)
        module_logger.setLevel(log_level)
        if console_handler not in module_logger.handlers:
            module_logger.handlers = [console_handler]

    if app.config.get('FLASK_ENV') == 'development':
        log_dir = Path(app.config.get('LOG_DIR', 'logs'))
        log_dir.mkdir(exist_ok=True, parents=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / 'items.log',
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5
        )
        file_handler.setFormatter(detailed_formatter)
        file_handler.setLevel(logging.DEBUG)
        app.logger.addHandler(file_handler)

    if not app.debug:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)


def configure_database(app: Flask) -> SQLAlchemy:
    """
    Configure SQLAlchemy and build the item store

    Features:
    - Engine options tuned per backend
    - Slow query logging
    - A session factory for per-operation transactions
    """
    database_url = app.config.get('DATABASE_URL', 'sqlite:///items.db')

    engine_options = dict(app.config.get('SQLALCHEMY_ENGINE_OPTIONS', {}))
    engine_options['echo'] = app.debug

    if database_url.startswith('sqlite'):
        engine_options['connect_args'] = {
            'check_same_thread': False,
            'timeout': app.config.get('SQLITE_BUSY_TIMEOUT', 20),
        }
    elif 'postgresql' in database_url:
        engine_options.update({
            'pool_size': app.config.get('DB_POOL_SIZE', 20),
            'max_overflow': app.config.get('DB_MAX_OVERFLOW', 30),
            'pool_recycle': 3600,
            'connect_args': {
                'application_name': 'item_service',
                'connect_timeout': 10,
            }
        })

    app.config['SQLALCHEMY_DATABASE_URI'] = database_url
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options

    db.init_app(app)

    with app.app_context():
        engine = db.engine

        @event.listens_for(engine, "before_cursor_execute")
        def receive_before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            context._query_start_time = time.perf_counter()

        @event.listens_for(engine, "after_cursor_execute")
        def receive_after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
            total = time.perf_counter() - context._query_start_time
            if total > app.config.get('SLOW_QUERY_THRESHOLD', 1.0):
                app.logger.warning(f"Slow query ({total:.2f}s): {statement[:100]}...")

        session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    app.item_repository = ItemRepository(session_factory)

    app.logger.info(f"Database configured: {database_url.split('@')[-1] if '@' in database_url else database_url}")
    return db


def configure_security(app: Flask) -> Limiter:
    """
    Configure rate limiting and CORS for the API
    """
    limiter = Limiter(
        get_remote_address,
        app=app,
        storage_uri=app.config.get('RATELIMIT_STORAGE_URI', 'memory://'),
        default_limits=[app.config.get('RATELIMIT_DEFAULT', '1000 per hour')],
        headers_enabled=app.config.get('RATELIMIT_HEADERS_ENABLED', True)
    )

    CORS(app,
         resources={r'/api/*': {'origins': app.config.get('CORS_ORIGINS', [])}},
         allow_headers=['Content-Type', 'Authorization'])

    app.logger.info("Rate limiting and CORS configured")
    return limiter


def register_blueprints(app: Flask) -> None:
    """
    Register all application blueprints with proper URL prefixes
    """
    app.register_blueprint(items_bp, url_prefix='/api/items')
    app.logger.info("Application blueprints registered")


def configure_health_checks(app: Flask, db: SQLAlchemy) -> None:
    """
    Configure health check endpoints for monitoring and load balancing
    """
    @app.route('/health')
    def health_check():
        """Basic health check endpoint"""
        return jsonify({
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'version': app.config.get('VERSION', '1.0.0')
        })

    @app.route('/health/detailed')
    def detailed_health_check():
        """Detailed health check with component status"""
        health_status = {
            'status': 'healthy',
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'components': {}
        }

        try:
            db.session.execute(text('SELECT 1'))
            health_status['components']['database'] = 'healthy'
        except Exception as e:
            app.logger.error(f"Database health check failed: {e}")
            health_status['components']['database'] = f'unhealthy: {str(e)}'
            health_status['status'] = 'unhealthy'

        status_code = 200 if health_status['status'] == 'healthy' else 503
        return jsonify(health_status), status_code


def configure_request_middleware(app: Flask) -> None:
    """
    Configure request/response hooks for monitoring
    """
    @app.before_request
    def before_request():
        g.start_time = time.perf_counter()

    @app.after_request
    def after_request(response):
        if hasattr(g, 'start_time'):
            duration = (time.perf_counter() - g.start_time) * 1000
            if duration > app.config.get('SLOW_REQUEST_THRESHOLD', 1000):
                app.logger.warning(f"Slow request ({duration:.0f}ms): {request.method} {request.path}")
        return response


def create_app(config_name: str = None, config_overrides: Optional[Dict[str, Any]] = None) -> Flask:
    """
    Flask application factory

    Args:
        config_name: Configuration environment ('development', 'testing', 'production')
        config_overrides: Extra settings applied after the environment config

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__, instance_relative_config=True)

    config_name = config_name or os.environ.get('FLASK_ENV', 'production')
    app.config.from_object(get_config(config_name))
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app)
    app.logger.info(f"Starting Item service in {config_name} mode")

    db = configure_database(app)
    app.db = db
    app.migrate = Migrate(app, db)

    app.email_validator = DeliverableEmailValidator.from_config(app.config)
    app.item_service = ItemService(
        app.item_repository,
        max_concurrency=app.config.get('BATCH_MAX_CONCURRENCY', 16)
    )

    app.limiter = configure_security(app)

    register_blueprints(app)
    register_error_handlers(app)
    configure_health_checks(app, db)
    configure_request_middleware(app)

    # Create database tables (in production, use migrations instead)
    if config_name in ('development', 'testing'):
        with app.app_context():
            db.create_all()
            app.logger.info(f"Database tables created ({config_name} mode)")

    app.logger.info("Flask application factory completed successfully")
    return app


if __name__ == '__main__':
    app = create_app('development')
    app.run(host='0.0.0.0', port=5000, debug=True)
