import os, sys, pytest
# Ensure backend directory is on path so 'asset_transfer' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
import asset_transfer
from asset_transfer import create_app
from asset_transfer.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import asset_transfer.models.transfer  # noqa: F401
import asset_transfer.models.audit  # noqa: F401
from asset_transfer.services.permissions import resolver


@pytest.fixture(scope='session')
def app_instance():
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
        'ENFORCE_DEPARTMENT_SCOPE': False,
        'TESTING': True,
    })
    yield app


@pytest.fixture(autouse=True)
def fresh_db(app_instance):
    """Every test starts from an empty schema and a cold permission cache."""
    asset_transfer.SessionLocal.remove()
    Base.metadata.drop_all(asset_transfer.db_engine)
    Base.metadata.create_all(asset_transfer.db_engine)
    resolver.invalidate()
    with app_instance.app_context():
        yield
    asset_transfer.SessionLocal.remove()


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def department_scope(app_instance, monkeypatch):
    monkeypatch.setitem(app_instance.config, 'ENFORCE_DEPARTMENT_SCOPE', True)
    yield
