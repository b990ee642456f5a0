from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_login import LoginManager
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
bcrypt = Bcrypt()
login_manager = LoginManager()
migrate = Migrate()
socketio = SocketIO(async_mode=None)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))
    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])

    db.init_app(flask_app)
    bcrypt.init_app(flask_app)
    login_manager.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from quizroom.main import main
    flask_app.register_blueprint(main)

    from quizroom.api.quizzes import quizzes
    flask_app.register_blueprint(quizzes, url_prefix='/api/quizzes')

    # One room registry per app; handlers bind to this orchestrator
    orchestrator = _build_orchestrator(flask_app)
    flask_app.extensions['quizroom'] = orchestrator
    from quizroom.socketio_events import register_socketio_handlers
    register_socketio_handlers(orchestrator, namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    from quizroom.models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'error': 'Authentication required'}), 401

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database."""
        from quizroom.schemas import QuizIn
        from quizroom.services.quizzes import create_quiz
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            teacher = User(email='teacher@example.com', role='TEACHER')
            teacher.set_password('password')
            db.session.add(teacher)
            db.session.commit()

            quiz = create_quiz(teacher.id, QuizIn.model_validate({
                'title': 'Warm-up',
                'questions': [
                    {'question_text': '2 + 2 = ?', 'options': ['3', '4', '5'], 'correct_idx': 1, 'points': 20},
                    {'question_text': 'Capital of France?', 'options': ['Paris', 'Rome'], 'correct_idx': 0, 'points': 10},
                ],
            }))
            print('Database has been reset and seeded!')
            print(f'teacher id={teacher.id} quiz id={quiz.id}')

    flask_app.cli.add_command(db_reset_command)

    return flask_app


def _build_orchestrator(flask_app):
    from quizroom.services.games import (
        Channels, RoomRegistry, SessionOrchestrator, SocketIOTransport, TaskScheduler,
    )
    from quizroom.services.quizzes import resolve_quiz

    cfg = flask_app.config
    timers_enabled = not cfg.get('TESTING') or cfg.get('ENABLE_SCHEDULER_IN_TESTS')
    scheduler = TaskScheduler(
        socketio,
        enabled=bool(timers_enabled),
        logger=flask_app.logger,
        heartbeat_sec=int(cfg.get('TIMER_HEARTBEAT_SEC', 0)),
    )
    channels = Channels(SocketIOTransport(socketio, namespace=cfg.get('SOCKETIO_NAMESPACE', '/')))
    return SessionOrchestrator(
        registry=RoomRegistry(),
        channels=channels,
        quiz_resolver=resolve_quiz,
        scheduler=scheduler,
        logger=flask_app.logger,
        evict_delay=int(cfg.get('ROOM_EVICT_DELAY_SEC', 60)),
        host_loss_evict_delay=int(cfg.get('HOST_LOSS_EVICT_DELAY_SEC', 5)),
    )
