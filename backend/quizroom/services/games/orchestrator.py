import functools
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from quizroom.errors import InvalidTransition, NoActiveQuestion, NotFound, SessionError, Unauthorized
from quizroom.schemas import CreateRoomMessage, JoinRoomMessage, RoomCommand, SubmitAnswerMessage, parse_message
from .channels import Channels
from .registry import RoomRegistry
from .room import LATE_GRACE_SEC, QuizScript, Room, RoomStatus
from .scheduler import TaskScheduler

ROOM_EVICT_DELAY_SEC = 60
HOST_LOSS_EVICT_DELAY_SEC = 5


@dataclass
class ConnectionContext:
    room_code: str
    is_host: bool = False


def session_handler(failure_message: str):
    """Report failures of a handler to the sending connection only.

    SessionError subclasses carry their own client-visible message; anything
    else is logged and answered with ``failure_message``.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, connection_id, data=None, **kwargs):
            try:
                fn(self, connection_id, data, **kwargs)
            except SessionError as exc:
                self.logger.info(f"[rejected] event={fn.__name__} sid={connection_id} "
                                 f"error={type(exc).__name__} msg={exc.message}")
                self.channels.send(connection_id, 'error_message', {'msg': exc.message})
            except Exception:
                self.logger.exception(f"[handler-error] event={fn.__name__} sid={connection_id}")
                self.channels.send(connection_id, 'error_message', {'msg': failure_message})
        return wrapper
    return decorator


class SessionOrchestrator:
    """Binds inbound connection messages to Room operations.

    Owns the connection -> room bindings and every timer. Each handler holds
    the target room's lock for the Room operation and the messages it emits,
    so rooms stay consistent when handlers run on parallel threads.
    """

    def __init__(self, registry: RoomRegistry, channels: Channels,
                 quiz_resolver: Callable[[str, Optional[str]], Optional[QuizScript]],
                 scheduler: TaskScheduler, logger: Optional[logging.Logger] = None,
                 evict_delay: float = ROOM_EVICT_DELAY_SEC,
                 host_loss_evict_delay: float = HOST_LOSS_EVICT_DELAY_SEC):
        self.registry = registry
        self.channels = channels
        self.quiz_resolver = quiz_resolver
        self.scheduler = scheduler
        self.logger = logger or logging.getLogger(__name__)
        self.evict_delay = evict_delay
        self.host_loss_evict_delay = host_loss_evict_delay
        self._connections: Dict[str, ConnectionContext] = {}
        self._connections_lock = threading.Lock()

    # ---- inbound messages ----

    @session_handler('Failed to create room')
    def create_room(self, connection_id: str, data, identity: Optional[str] = None) -> None:
        msg = parse_message(CreateRoomMessage, data)
        if identity is not None and identity.lower() != msg.user_id.lower():
            raise Unauthorized('User ID does not match the signed-in account')
        self._require_unbound(connection_id)

        quiz = self.quiz_resolver(msg.quiz_id, msg.user_id)
        if quiz is None:
            raise NotFound('Quiz not found')

        room = self.registry.create(quiz, connection_id)
        self._bind(connection_id, ConnectionContext(room.code, is_host=True))
        self.channels.join(room.code, connection_id)
        self.logger.info(f"[room-created] room={room.code} quiz={quiz.id} host={connection_id}")
        self.channels.send(connection_id, 'room_created', {
            'roomCode': room.code,
            'quizTitle': room.quiz_title,
            'questionCount': room.question_count,
        })

    @session_handler('Failed to join room')
    def join_room(self, connection_id: str, data) -> None:
        msg = parse_message(JoinRoomMessage, data)
        self._require_unbound(connection_id)
        room = self._require_room(msg.room_code)
        with room.lock:
            if room.status is not RoomStatus.WAITING:
                raise InvalidTransition('Game already started')
            player = room.add_player(connection_id, msg.nickname)
            self._bind(connection_id, ConnectionContext(room.code))
            self.channels.join(room.code, connection_id)
            self.logger.info(f"[player-joined] room={room.code} name={player.display_name} sid={connection_id}")

            self.channels.send(connection_id, 'player_joined_success', {
                'status': 'OK',
                'quizTitle': room.quiz_title,
                'questionCount': room.question_count,
            })
            self.channels.broadcast(room.code, 'player_joined', self._roster(room, player.display_name))

    @session_handler('Failed to start game')
    def start_game(self, connection_id: str, data) -> None:
        msg = parse_message(RoomCommand, data)
        room = self._require_room(msg.room_code)
        with room.lock:
            self._require_host(room, connection_id, 'Only host can start the game')
            if room.status is not RoomStatus.WAITING:
                raise InvalidTransition('Game already started')
            if not room.players:
                raise InvalidTransition('No players in room')
            room.start()
            room.mark_question_started()
            self.logger.info(f"[game-started] room={room.code} questions={room.question_count} "
                             f"players={len(room.players)}")

            self.channels.broadcast(room.code, 'game:started', {
                'questionCount': room.question_count,
                'quizId': room.quiz_id,
            })
            self._begin_question(room)

    @session_handler('Failed to submit answer')
    def submit_answer(self, connection_id: str, data) -> None:
        msg = parse_message(SubmitAnswerMessage, data)
        room = self._require_room(msg.room_code)
        with room.lock:
            if room.status is not RoomStatus.ACTIVE:
                raise InvalidTransition('Game is not active')
            question = room.current_question()
            if question is None:
                raise NoActiveQuestion()

            # Server clock is authoritative; the client value only covers a missing start stamp
            elapsed = room.elapsed()
            if elapsed is None:
                elapsed = msg.time_elapsed or 0.0
            result = room.submit_answer(connection_id, msg.answer_idx, elapsed)
            self.logger.debug(f"[answer] room={room.code} sid={connection_id} idx={msg.answer_idx} "
                              f"correct={result.is_correct} points={result.points_awarded}")

            self.channels.send(connection_id, 'answer_result', {
                'isCorrect': result.is_correct,
                'scoreEarned': result.points_awarded,
                'currentTotal': result.new_total,
                'correctAnswerIdx': question.correct_option_index,
            })
            self.channels.send(room.host_connection_id, 'live_stats', room.live_stats())

    @session_handler('Failed to move to next question')
    def next_question(self, connection_id: str, data) -> None:
        msg = parse_message(RoomCommand, data)
        room = self._require_room(msg.room_code)
        with room.lock:
            self._require_host(room, connection_id, 'Only host can control game')
            if room.status is RoomStatus.ENDED:
                raise InvalidTransition('Game already ended')
            previous = room.current_question()

            if not room.advance():
                room.end_game()
                self.logger.info(f"[game-ended] room={room.code} reason=completed")
                self.channels.broadcast(room.code, 'game:ended', {'finalLeaderboard': room.leaderboard()})
                self._schedule_eviction(room, self.evict_delay)
                return

            room.mark_question_started()
            self.channels.broadcast(room.code, 'question_end', {
                'correctAnswerIdx': previous.correct_option_index if previous else None,
            })
            self.channels.broadcast(room.code, 'update_leaderboard', {'leaderboard': room.leaderboard()})
            self._begin_question(room)

    @session_handler('Failed to end game')
    def end_game(self, connection_id: str, data) -> None:
        msg = parse_message(RoomCommand, data)
        room = self._require_room(msg.room_code)
        with room.lock:
            self._require_host(room, connection_id, 'Only host can end game')
            room.end_game()
            leaderboard = room.leaderboard()
            self.logger.info(f"[game-ended] room={room.code} reason=host")
            self.channels.broadcast(room.code, 'final_results', {
                'winner': leaderboard[0]['name'] if leaderboard else None,
                'top3': leaderboard[:3],
            })
            self._schedule_eviction(room, self.evict_delay)

    def disconnect(self, connection_id: str) -> None:
        """Drop a connection; losing the host force-ends its room."""
        with self._connections_lock:
            ctx = self._connections.pop(connection_id, None)
        self.channels.leave_all(connection_id)
        if ctx is None:
            return
        room = self.registry.get(ctx.room_code)
        if room is None:
            return
        try:
            with room.lock:
                if room.host_connection_id == connection_id:
                    room.end_game()
                    self.logger.info(f"[host-lost] room={room.code} sid={connection_id}")
                    self.channels.broadcast(room.code, 'error_message', {'msg': 'Host disconnected'})
                    self._schedule_eviction(room, self.host_loss_evict_delay)
                elif room.status is not RoomStatus.ENDED:
                    room.remove_player(connection_id)
                    self.logger.info(f"[player-left] room={room.code} sid={connection_id}")
                    self.channels.broadcast(room.code, 'player_joined', self._roster(room, ''))
        except Exception:
            self.logger.exception(f"[handler-error] event=disconnect sid={connection_id}")

    # ---- timers ----

    def _begin_question(self, room: Room) -> None:
        question = room.current_question()
        self.channels.broadcast(room.code, 'question_start', {
            'qIndex': room.current_index,
            'qText': question.text,
            'imageUrl': question.image_ref,
            'options': list(question.options),
            'duration': question.time_limit_seconds,
            'points': question.base_points,
        })
        self.scheduler.call_later(
            question.time_limit_seconds + LATE_GRACE_SEC,
            self._on_question_deadline, room, room.current_index,
            key=(room.code, 'deadline', room.current_index, id(room)),
        )

    def _on_question_deadline(self, room: Room, question_index: int) -> None:
        if self.registry.get(room.code) is not room:
            return
        with room.lock:
            # Only reveal the question this timer was armed for
            if room.status is not RoomStatus.ACTIVE or room.current_index != question_index:
                self.logger.info(f"[timer-abort] room={room.code} armed_for={question_index} "
                                 f"status={room.status.value} current={room.current_index}")
                return
            question = room.current_question()
            self.channels.broadcast(room.code, 'question_end', {'correctAnswerIdx': question.correct_option_index})
            self.channels.broadcast(room.code, 'update_leaderboard', {'leaderboard': room.leaderboard()})

    def _schedule_eviction(self, room: Room, delay: float) -> None:
        self.scheduler.call_later(delay, self._evict, room.code, room, key=(room.code, 'evict', delay, id(room)))

    def _evict(self, room_code: str, room: Room) -> None:
        with room.lock:
            if not self.registry.remove(room_code, room):
                return
            self.channels.close(room_code)
            with self._connections_lock:
                for sid in [sid for sid, ctx in self._connections.items() if ctx.room_code == room_code]:
                    del self._connections[sid]
        self.logger.info(f"[room-evicted] room={room_code}")

    # ---- helpers ----

    def room_for(self, connection_id: str) -> Optional[Room]:
        with self._connections_lock:
            ctx = self._connections.get(connection_id)
        return self.registry.get(ctx.room_code) if ctx else None

    def _bind(self, connection_id: str, ctx: ConnectionContext) -> None:
        with self._connections_lock:
            self._connections[connection_id] = ctx

    def _require_room(self, code: str) -> Room:
        room = self.registry.get(code)
        if room is None:
            raise NotFound('Room not found')
        return room

    def _require_host(self, room: Room, connection_id: str, message: str) -> None:
        if room.host_connection_id != connection_id:
            raise Unauthorized(message)

    def _require_unbound(self, connection_id: str) -> None:
        """Reject a connection bound to a live room; forget a binding to an ended one."""
        with self._connections_lock:
            ctx = self._connections.get(connection_id)
        if ctx is None:
            return
        room = self.registry.get(ctx.room_code)
        if room is not None and room.status is not RoomStatus.ENDED:
            raise InvalidTransition(f"Connection is already in room {ctx.room_code}")
        with self._connections_lock:
            if self._connections.get(connection_id) is ctx:
                del self._connections[connection_id]
        self.channels.leave(ctx.room_code, connection_id)

    def _roster(self, room: Room, name: str) -> dict:
        return {
            'name': name,
            'totalPlayers': len(room.players),
            'players': room.player_names(),
        }
