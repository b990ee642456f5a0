from flask import current_app, request
from flask_login import current_user

from quizroom import socketio
from quizroom.services.games import SessionOrchestrator


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _identity():
    """Id of the logged-in user on this socket's session, if any."""
    if current_user.is_authenticated:
        return current_user.get_id()
    return None


def register_socketio_handlers(orchestrator: SessionOrchestrator, namespace: str = '/') -> None:
    """Bind the room protocol's socket events to ``orchestrator``."""

    def handle_connect(auth=None):
        current_app.logger.info(f"[connect] sid={_get_sid()}")

    def handle_disconnect(*args):
        current_app.logger.info(f"[disconnect] sid={_get_sid()}")
        orchestrator.disconnect(_get_sid())

    def handle_create_room(data=None):
        orchestrator.create_room(_get_sid(), data, identity=_identity())

    def handle_join_room(data=None):
        orchestrator.join_room(_get_sid(), data)

    def handle_start_game(data=None):
        orchestrator.start_game(_get_sid(), data)

    def handle_submit_answer(data=None):
        orchestrator.submit_answer(_get_sid(), data)

    def handle_next(data=None):
        orchestrator.next_question(_get_sid(), data)

    def handle_end(data=None):
        orchestrator.end_game(_get_sid(), data)

    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('create_room', handle_create_room, namespace=namespace)
    socketio.on_event('join_room', handle_join_room, namespace=namespace)
    socketio.on_event('start_game', handle_start_game, namespace=namespace)
    socketio.on_event('submit_answer', handle_submit_answer, namespace=namespace)
    socketio.on_event('game:next', handle_next, namespace=namespace)
    socketio.on_event('game:end', handle_end, namespace=namespace)
