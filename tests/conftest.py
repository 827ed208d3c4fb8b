import os
import tempfile
from datetime import timedelta

# Configure the app before campusvote is imported anywhere
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['RATELIMIT_ENABLED'] = 'false'
os.environ['MAIL_SUPPRESS_SEND'] = 'true'
os.environ['MAIL_DEFAULT_SENDER'] = 'noreply@campus.test'
os.environ['AUDIT_LOG_DIR'] = tempfile.mkdtemp(prefix='campusvote-audit-')
os.environ['JWT_SECRET_KEY'] = 'test-secret-key-that-is-long-enough-for-hs256'

import pytest
from flask_jwt_extended import create_access_token

from campusvote import app as flask_app, db
from campusvote import routes
from campusvote.elections.candidates import CandidateRegistry
from campusvote.elections.lifecycle import ElectionLifecycleService
from campusvote.encryption.password_hashing import PasswordHashingService
from campusvote.operations.time_sync import utcnow
from campusvote.security.intrusion_detection import IntrusionDetection
from campusvote.voting.vote_ledger import VoteLedger


@pytest.fixture
def app(monkeypatch, fast_hasher):
    flask_app.config['TESTING'] = True
    # No progressive delay between attempts; lockout after repeated failures still applies
    monkeypatch.setattr(routes, 'intrusion_detection', IntrusionDetection(base_delay_seconds=0))
    # Production Argon2 parameters make every login test take seconds
    monkeypatch.setattr(routes.auth_gate, 'password_service', fast_hasher)
    monkeypatch.setattr(routes.password_reset, 'password_service', fast_hasher)
    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def fast_hasher():
    return PasswordHashingService(time_cost=1, memory_cost=1024, parallelism=1)


@pytest.fixture
def lifecycle():
    return ElectionLifecycleService()


@pytest.fixture
def registry():
    return CandidateRegistry()


@pytest.fixture
def ledger():
    return VoteLedger()


@pytest.fixture
def make_election(app, lifecycle):
    def _make(start_offset=timedelta(hours=-1), end_offset=timedelta(hours=1), title='Student Council 2025'):
        now = utcnow()
        return lifecycle.create_election(
            title, 'Annual council election', now + start_offset, now + end_offset, 'admin@nec.edu'
        )
    return _make


@pytest.fixture
def ongoing_election(make_election, registry):
    """An open election with two candidates."""
    election = make_election()
    alice = registry.create_candidate('Alice Johnson', 'President', election.id, 'Computer Science')
    brian = registry.create_candidate('Brian Smith', 'President', election.id, 'Mathematics')
    return election, alice, brian


@pytest.fixture
def admin_headers(app):
    token = create_access_token(identity='1', additional_claims={'email': 'admin@nec.edu', 'role': 'admin'})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def student_headers(app):
    def _headers(student_id='S1'):
        token = create_access_token(identity='1', additional_claims={
            'email': f'{student_id.lower()}@campus.edu',
            'studentId': student_id,
            'role': 'student',
        })
        return {'Authorization': f'Bearer {token}'}
    return _headers
