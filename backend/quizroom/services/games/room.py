import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from quizroom.errors import (
    DuplicateSubmission,
    InvalidOption,
    InvalidTransition,
    LateSubmission,
    NameConflict,
    NoActiveQuestion,
    Unauthorized,
)
from .scoring import score

# Answers may arrive this long after the question's time limit and still count
LATE_GRACE_SEC = 2

STAT_KEYS = ('a', 'b', 'c', 'd')


class RoomStatus(str, Enum):
    WAITING = 'WAITING'
    ACTIVE = 'ACTIVE'
    ENDED = 'ENDED'


@dataclass(frozen=True)
class Question:
    text: str
    options: Tuple[str, ...]
    correct_option_index: int
    time_limit_seconds: int = 15
    base_points: int = 20
    image_ref: Optional[str] = None

    def __post_init__(self):
        if not 2 <= len(self.options) <= 4:
            raise ValueError('A question needs 2 to 4 options')
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError('Correct option index is out of range')
        if not 5 <= self.time_limit_seconds <= 60:
            raise ValueError('Time limit must be between 5 and 60 seconds')
        if not 1 <= self.base_points <= 100:
            raise ValueError('Base points must be between 1 and 100')


@dataclass(frozen=True)
class QuizScript:
    """The fixed question script a room plays, as resolved from the quiz store."""
    id: str
    title: str
    questions: Tuple[Question, ...]


@dataclass
class Player:
    connection_id: str
    display_name: str
    score: int = 0


@dataclass(frozen=True)
class Submission:
    answerer_id: str
    chosen_option_index: int
    server_received_at: float
    elapsed_seconds: float


@dataclass(frozen=True)
class AnswerResult:
    is_correct: bool
    points_awarded: int
    new_total: int


@dataclass
class Room:
    """One live match.

    State machine: WAITING -> ACTIVE via start(); ACTIVE -> ACTIVE via
    advance() while questions remain; ACTIVE -> ENDED via advance() running
    out of questions or end_game(). ENDED is absorbing.

    The room does no locking of its own; callers hold ``lock`` around every
    operation so check-then-act sequences stay atomic.
    """
    code: str
    quiz_id: str
    quiz_title: str
    host_connection_id: str
    questions: Tuple[Question, ...]
    clock: Callable[[], float] = time.monotonic
    status: RoomStatus = RoomStatus.WAITING
    current_index: int = -1
    question_started_at: Optional[float] = None
    players: List[Player] = field(default_factory=list)
    submissions: Dict[str, Submission] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def get_player(self, connection_id: str) -> Optional[Player]:
        for player in self.players:
            if player.connection_id == connection_id:
                return player
        return None

    def player_names(self) -> List[str]:
        return [p.display_name for p in self.players]

    def add_player(self, connection_id: str, display_name: str) -> Player:
        if self.status is RoomStatus.ENDED:
            raise InvalidTransition('Game has ended')
        folded = display_name.casefold()
        if any(p.display_name.casefold() == folded for p in self.players):
            raise NameConflict()
        player = Player(connection_id=connection_id, display_name=display_name)
        self.players.append(player)
        return player

    def remove_player(self, connection_id: str) -> None:
        if self.status is RoomStatus.ENDED:
            return
        self.players = [p for p in self.players if p.connection_id != connection_id]
        self.submissions.pop(connection_id, None)

    def start(self) -> None:
        if self.status is not RoomStatus.WAITING:
            raise InvalidTransition('Game already started or ended')
        if not self.questions:
            raise InvalidTransition('No questions in quiz')
        self.status = RoomStatus.ACTIVE
        self.current_index = 0

    def advance(self) -> bool:
        """Move to the next question; False once the script is exhausted."""
        if self.status is RoomStatus.ENDED:
            return False
        if self.status is RoomStatus.WAITING:
            raise InvalidTransition('Game has not started')
        if self.current_index >= self.question_count - 1:
            self.status = RoomStatus.ENDED
            return False
        self.current_index += 1
        self.submissions.clear()
        return True

    def mark_question_started(self, at: Optional[float] = None) -> None:
        self.question_started_at = self.clock() if at is None else at

    def elapsed(self) -> Optional[float]:
        """Seconds since the current question started, per the server clock."""
        if self.question_started_at is None:
            return None
        return self.clock() - self.question_started_at

    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_index < self.question_count:
            return self.questions[self.current_index]
        return None

    def submit_answer(self, connection_id: str, option_index: int, elapsed_seconds: float) -> AnswerResult:
        """Record one answer for the current question and score it.

        ``elapsed_seconds`` is only used for the late-submission check. Points
        are always computed from the room's own clock.
        """
        player = self.get_player(connection_id)
        if player is None:
            raise Unauthorized('Only players in this room can answer')
        if connection_id in self.submissions:
            raise DuplicateSubmission()
        question = self.current_question()
        if question is None or self.status is not RoomStatus.ACTIVE:
            raise NoActiveQuestion()
        if not 0 <= option_index < len(question.options):
            raise InvalidOption()
        if elapsed_seconds > question.time_limit_seconds + LATE_GRACE_SEC:
            raise LateSubmission()

        now = self.clock()
        server_elapsed = self.elapsed()
        if server_elapsed is None:
            server_elapsed = elapsed_seconds
        self.submissions[connection_id] = Submission(
            answerer_id=connection_id,
            chosen_option_index=option_index,
            server_received_at=now,
            elapsed_seconds=server_elapsed,
        )
        is_correct = option_index == question.correct_option_index
        points = score(server_elapsed, question.base_points, is_correct)
        player.score += points
        return AnswerResult(is_correct=is_correct, points_awarded=points, new_total=player.score)

    def leaderboard(self) -> List[dict]:
        # sorted() is stable, so tied players keep their join order
        ranked = sorted(self.players, key=lambda p: p.score, reverse=True)
        return [
            {'name': p.display_name, 'score': p.score, 'rank': idx + 1}
            for idx, p in enumerate(ranked)
        ]

    def live_stats(self) -> Optional[Dict[str, int]]:
        if self.current_question() is None:
            return None
        stats = {key: 0 for key in STAT_KEYS}
        for submission in self.submissions.values():
            idx = submission.chosen_option_index
            if 0 <= idx < len(STAT_KEYS):
                stats[STAT_KEYS[idx]] += 1
        return stats

    def end_game(self) -> None:
        self.status = RoomStatus.ENDED
