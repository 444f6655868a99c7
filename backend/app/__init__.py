from flask import Flask, current_app
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()

PDR_STORE_BACKENDS = ('sql', 'memory')


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _default_config() -> Dict[str, Any]:
    return {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        # sql: SQLAlchemy tables; memory: process-local store for demos
        'PDR_STORE': os.getenv('PDR_STORE', 'sql'),
        'PDR_NOTIFICATIONS_ENABLED': _env_flag('PDR_NOTIFICATIONS_ENABLED', True),
    }


def _bind_database(db_url: str):
    global db_engine, SessionLocal
    engine_kwargs: Dict[str, Any] = {'echo': False, 'future': True}
    if db_url.endswith(':memory:'):
        # One shared connection, otherwise every session sees an empty database
        engine_kwargs.update(connect_args={'check_same_thread': False}, poolclass=StaticPool)
    db_engine = create_engine(db_url, **engine_kwargs)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))


def _error_payload(status: int, title: str, detail: str):
    return {'error': {'status': status, 'title': title, 'detail': detail}}, status


def _register_error_handlers(app: Flask):
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_payload(e.code, e.name, e.description)
        # PDRDomainError lands here too: an unparseable status/role reached the core
        app.logger.exception('Unhandled exception')
        return _error_payload(500, 'Internal Server Error', 'Unexpected error')


def create_app(config: Optional[Dict[str, Any]] = None):
    app = Flask(__name__)
    app.config.update(_default_config())
    if config:
        app.config.update(config)

    backend = app.config['PDR_STORE']
    if backend not in PDR_STORE_BACKENDS:
        raise ValueError(f"Unsupported PDR_STORE {backend!r} (expected one of {', '.join(PDR_STORE_BACKENDS)})")

    _bind_database(app.config['DATABASE_URL'])
    jwt.init_app(app)

    if backend == 'memory':
        from .services.pdr_store import InMemoryPDRStore
        app.extensions['pdr_store'] = InMemoryPDRStore()

    from .routes.pdrs import pdr_bp
    app.register_blueprint(pdr_bp, url_prefix='/pdrs')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.teardown_appcontext
    def remove_session(exc=None):
        SessionLocal.remove()

    _register_error_handlers(app)
    app.logger.info('PDR service configured (store=%s, notifications=%s)',
                    backend, app.config['PDR_NOTIFICATIONS_ENABLED'])
    return app


def get_db():
    return SessionLocal()


def get_pdr_store():
    """Store configured for the running app (in-memory instance or a session-bound SQL store)."""
    store = current_app.extensions.get('pdr_store')
    if store is not None:
        return store
    from .services.pdr_store import SqlPDRStore
    return SqlPDRStore(get_db())
