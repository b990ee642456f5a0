import os
import sys
import pytest

# Ensure the backend root (containing the `quizroom` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizroom import create_app, db, socketio
from quizroom.services.games import (
    Channels, Question, QuizScript, RoomRegistry, SessionOrchestrator, TaskScheduler,
)

QUIZ_ID = '3f2b8c1e-9d4a-4e6b-8f7c-1a2b3c4d5e6f'
TEACHER_ID = '7c9e6679-7425-40de-944b-e07fc1f90ae7'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    CORS_ORIGINS = ['http://localhost:5173']
    SOCKETIO_NAMESPACE = '/'


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingTransport:
    """Collects every emit as (to, event, payload)."""

    def __init__(self):
        self.sent = []

    def emit(self, event, payload, to):
        self.sent.append((to, event, payload))

    def events(self, to, event):
        return [payload for sid, name, payload in self.sent if sid == to and name == event]

    def names(self, to):
        return [name for sid, name, _ in self.sent if sid == to]

    def clear(self):
        self.sent = []


def build_script(quiz_id=QUIZ_ID, title='General Knowledge', specs=((20, 15), (10, 15))):
    """A quiz script whose questions all have the correct answer at index 0."""
    questions = tuple(
        Question(
            text=f'Question {i + 1}',
            options=('right', 'wrong', 'also wrong', 'nope'),
            correct_option_index=0,
            time_limit_seconds=limit,
            base_points=points,
        )
        for i, (points, limit) in enumerate(specs)
    )
    return QuizScript(id=quiz_id, title=title, questions=questions)


# ---- Flask app fixtures ----

@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import quizroom.models  # noqa: F401
        db.create_all()
    # Requests push their own app context so login state does not leak through `g`
    yield application
    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _make(flask_test_client=None):
        test_client = socketio.test_client(flask_app, flask_test_client=flask_test_client)
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass


# ---- In-memory orchestrator fixtures ----

@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def transport():
    return RecordingTransport()


@pytest.fixture()
def quiz_store():
    return {QUIZ_ID: build_script()}


@pytest.fixture()
def orchestrator(clock, transport, quiz_store):
    def resolve(quiz_id, owner_id=None):
        return quiz_store.get(quiz_id)

    return SessionOrchestrator(
        registry=RoomRegistry(clock=clock),
        channels=Channels(transport),
        quiz_resolver=resolve,
        scheduler=TaskScheduler(enabled=False),
    )


@pytest.fixture()
def make_script():
    return build_script
