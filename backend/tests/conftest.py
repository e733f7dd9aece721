import os, sys, pytest
# Ensure backend directory is on path so 'role_composer' imports without an install
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from flask_jwt_extended import create_access_token
from role_composer import create_app, get_db
from role_composer.constants.roles import PERM_ROLE_MANAGE
from role_composer.models.audit import Base
from role_composer.models.catalog import Catalog
from role_composer.services.directory import DirectoryError

# Group A = {p1, p2}, Group B = {p3}, Group C = {p4, p5, p6}
CATALOG_ROWS = [
    {'id': 'A', 'name': 'Members', 'description': 'Member records',
     'permissions': [{'id': 'p1', 'name': 'members.read'}, {'id': 'p2', 'name': 'members.write'}]},
    {'id': 'B', 'name': 'Finance', 'description': 'Collections',
     'permissions': [{'id': 'p3', 'name': 'finance.read'}]},
    {'id': 'C', 'name': 'Attendance', 'description': 'Services & programs',
     'permissions': [{'id': 'p4', 'name': 'attendance.read'}, {'id': 'p5', 'name': 'attendance.record'},
                     {'id': 'p6', 'name': 'attendance.export'}]},
]


class FakeDirectory:
    """In-process stand-in for the Role Directory Service."""

    def __init__(self):
        self.groups = [dict(g) for g in CATALOG_ROWS]
        self.roles = {}
        self.fail_catalog = None
        self.fail_role = None
        self.fail_submit = None
        self.created = []
        self.updated = []
        self.tokens = []
        self.before_create = None

    def bind(self, token=None):
        self.tokens.append(token)
        return self

    def list_permission_groups(self):
        if self.fail_catalog:
            raise DirectoryError(self.fail_catalog, 503)
        return Catalog.from_wire(self.groups)

    def get_role(self, role_id):
        if self.fail_role:
            raise DirectoryError(self.fail_role, 503)
        if role_id not in self.roles:
            raise DirectoryError('Role not found', 404)
        return self.roles[role_id]

    def create_role(self, payload):
        if self.fail_submit:
            raise DirectoryError(self.fail_submit, 400)
        if self.before_create:
            self.before_create()
        self.created.append(payload)
        return {'message': 'Role created', 'role': {'id': 'r-new'}}

    def update_role(self, role_id, payload, branch_id=None):
        if self.fail_submit:
            raise DirectoryError(self.fail_submit, 400)
        self.updated.append((role_id, payload, branch_id))
        return {}


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret-key-with-enough-length-0123456789',
        'ROLE_DIRECTORY_URL': 'http://directory.test/api',
    })
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def catalog():
    return Catalog.from_wire(CATALOG_ROWS)


@pytest.fixture()
def directory(monkeypatch):
    fake = FakeDirectory()
    import role_composer.routes.editor as editor_mod
    monkeypatch.setattr(editor_mod, 'get_directory', fake.bind)
    return fake


@pytest.fixture()
def make_headers(app_instance):
    def _make(identity='operator-1', perms=(PERM_ROLE_MANAGE,)):
        with app_instance.app_context():
            token = create_access_token(identity=identity, additional_claims={'perms': list(perms)})
        return {'Authorization': f'Bearer {token}'}
    return _make


@pytest.fixture()
def headers(make_headers):
    return make_headers()
