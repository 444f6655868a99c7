import os, sys, pytest
# Ensure backend directory is on path so 'app' can be imported without installing
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from app import create_app, get_db
from app.models.base import Base
# Import all model modules to ensure tables are registered before create_all
import app.models.pdr  # noqa: F401
import app.models.audit  # noqa: F401
import app.models.notification  # noqa: F401

@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    app = create_app({
        'TESTING': True,
        'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-for-hs256',
        'PDR_STORE': 'sql',
    })
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app

@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance

@pytest.fixture()
def client(app_context):
    return app_context.test_client()
