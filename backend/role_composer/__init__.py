from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _error_body(status: int, title: str, detail: str):
    return {'error': {'status': status, 'title': title, 'detail': detail}}, status


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['ROLE_DIRECTORY_URL'] = os.getenv('ROLE_DIRECTORY_URL', 'http://localhost:4000/api')
    app.config['ROLE_DIRECTORY_TIMEOUT'] = float(os.getenv('ROLE_DIRECTORY_TIMEOUT', '10'))
    app.config['EDITOR_SESSION_TTL'] = int(os.getenv('EDITOR_SESSION_TTL', '1800'))
    # Reject checked permissions outside selected groups instead of dropping them
    app.config['STRICT_SELECTION'] = _env_flag('STRICT_SELECTION')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    logging.basicConfig(format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    logging.getLogger('role_composer').setLevel(app.config['LOG_LEVEL'])

    # Database (audit trail only)
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False, future=True)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .services.sessions import SessionRegistry
    app.extensions['editor_sessions'] = SessionRegistry(ttl=app.config['EDITOR_SESSION_TTL'])

    from .routes.editor import editor_bp
    from .routes.audit import audit_bp
    app.register_blueprint(editor_bp, url_prefix='/editor')
    app.register_blueprint(audit_bp, url_prefix='/audit')

    @app.route('/healthz')
    def health():
        return {'status': 'ok', 'open_sessions': len(app.extensions['editor_sessions'])}

    from .services.directory import DirectoryError
    from .services.serializer import SelectionConsistencyError

    @app.errorhandler(DirectoryError)
    def handle_directory_error(e):  # type: ignore
        app.logger.warning('Role directory error (%s): %s', e.status, e.message)
        return _error_body(502, 'Bad Gateway', e.message)

    @app.errorhandler(SelectionConsistencyError)
    def handle_selection_error(e):  # type: ignore
        return _error_body(409, 'Conflict', str(e))

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_body(e.code, e.name, e.description)
        app.logger.exception('Unhandled exception')
        return _error_body(500, 'Internal Server Error', 'Unexpected error')

    @app.teardown_appcontext
    def remove_session(exc=None):
        SessionLocal.remove()

    return app


def get_db():
    return SessionLocal()
