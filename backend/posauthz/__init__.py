from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()

GENERIC_FAILURE = 'Action failed, please retry'


def _error_body(status_code: int, message: str):
    return {'status': 'fail' if status_code < 500 else 'error', 'message': message}, status_code


@jwt.unauthorized_loader
def _missing_token(reason):
    return _error_body(401, 'Authentication required')


@jwt.invalid_token_loader
def _invalid_token(reason):
    return _error_body(401, 'Authentication required')


@jwt.expired_token_loader
def _expired_token(jwt_header, jwt_payload):
    return _error_body(401, 'Session expired')


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    from .config.settings import load_settings
    app = Flask(__name__)

    app.config.update(load_settings())

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    # Module loggers (posauthz.*) propagate to the app logger
    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))

    # Database
    db_url = app.config['DATABASE_URL']
    if db_url.endswith(':memory:'):
        # Ensure a single shared in-memory SQLite database across all sessions
        db_engine = create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        db_engine = create_engine(db_url, echo=False)
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.auth import auth_bp
    from .routes.permissions import perms_bp
    from .routes.roles import roles_bp
    from .routes.users import users_bp
    prefix = app.config['API_PREFIX']
    app.register_blueprint(auth_bp, url_prefix=f'{prefix}/auth')
    app.register_blueprint(perms_bp, url_prefix=f'{prefix}/permissions')
    app.register_blueprint(roles_bp, url_prefix=f'{prefix}/roles')
    app.register_blueprint(users_bp, url_prefix=f'{prefix}/users')

    @app.teardown_appcontext
    def close_session(exc):  # type: ignore
        SessionLocal.remove()

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    from .errors import AuthzError

    @app.errorhandler(AuthzError)
    def handle_authz_error(e):  # type: ignore
        return e.to_dict(), e.status_code

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error_body(e.code, e.description)
        # Unhandled exception: log details, never expose them
        app.logger.exception('Unhandled exception')
        SessionLocal.rollback()
        return _error_body(500, GENERIC_FAILURE)

    return app


def get_db():
    return SessionLocal()
