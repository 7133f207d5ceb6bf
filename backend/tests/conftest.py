import os, sys, pytest
# Ensure backend directory is on path so 'posauthz' can be imported without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from posauthz import create_app, get_db
from posauthz.models.authz import Base
import posauthz.models.audit  # noqa: F401  registers audit_logs before create_all
from posauthz.seed import ensure_roles
from posauthz.services.permissions import sync_permissions

TEST_CONFIG = {
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
    'TESTING': True,
}


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app(TEST_CONFIG)
    with app.app_context():
        session = get_db()
        Base.metadata.create_all(session.get_bind())
        sync_permissions(session)
        ensure_roles(session)
        session.commit()
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def db(app_instance):
    session = get_db()
    yield session
    session.rollback()
