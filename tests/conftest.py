import pytest

from campus_ballot import create_app, db
from campus_ballot.config import TestingConfig

SELECTIONS = {
    'president': 'Sarah Johnson',
    'vicepresident': 'Michael Chen',
    'secretary': 'Emily Brown',
}


class FakeClock:
    """Settable millisecond clock handed to the voting window."""
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    # One hour into the default voting period
    return FakeClock(TestingConfig.VOTING_START + 60 * 60 * 1000)


@pytest.fixture
def app(tmp_path, clock):
    app = create_app(
        'campus_ballot.config.TestingConfig',
        SQLALCHEMY_DATABASE_URI=f"sqlite:///{tmp_path / 'ballot.db'}",
        AUDIT_LOG_DIR=str(tmp_path / 'logs'),
        CLOCK=clock,
    )
    yield app
    with app.app_context():
        db.session.remove()
        db.engine.dispose()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def services(app):
    with app.app_context():
        yield app.extensions['campus_ballot']


@pytest.fixture
def register_student(services):
    def register(student_id='STU001', password='Abc123!', question='pet name', answer='rex', name=None):
        return services.registration.register(
            student_id, password, password, question, answer, display_name=name)
    return register


@pytest.fixture
def admin_headers(client):
    resp = client.post('/api/admin/login', json={'password': TestingConfig.ADMIN_PASSWORD})
    token = resp.get_json()['token']
    return {'Authorization': f'Bearer {token}'}
