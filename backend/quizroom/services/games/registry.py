import random
import string
import threading
import time
from typing import Callable, Dict, List, Optional

from .room import QuizScript, Room

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits
ROOM_CODE_LENGTH = 6


class RoomCodeGenerator:
    """Mints short, human-typeable room codes."""

    def __init__(self, length: int = ROOM_CODE_LENGTH, rng: Optional[random.Random] = None):
        self.length = length
        self._rng = rng or random.SystemRandom()

    def draw(self) -> str:
        return ''.join(self._rng.choices(ROOM_CODE_ALPHABET, k=self.length))

    def next(self, exists: Callable[[str], bool]) -> str:
        """Return a code for which ``exists`` is false.

        Collisions are rare in a 36^6 space, so there is no retry limit.
        """
        while True:
            code = self.draw()
            if not exists(code):
                return code


class RoomRegistry:
    """Process-scoped store of live rooms, keyed by room code.

    Only ``create`` and ``remove`` mutate the map, each under the registry
    lock so minting a code and claiming it happen as one step.
    """

    def __init__(self, code_generator: Optional[RoomCodeGenerator] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.code_generator = code_generator or RoomCodeGenerator()
        self.clock = clock
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def create(self, quiz: QuizScript, host_connection_id: str) -> Room:
        with self._lock:
            code = self.code_generator.next(lambda c: c in self._rooms)
            room = Room(
                code=code,
                quiz_id=quiz.id,
                quiz_title=quiz.title,
                host_connection_id=host_connection_id,
                questions=tuple(quiz.questions),
                clock=self.clock,
            )
            self._rooms[code] = room
            return room

    def get(self, code: str) -> Optional[Room]:
        return self._rooms.get(code)

    def remove(self, code: str, room: Optional[Room] = None) -> bool:
        """Drop a room. When ``room`` is given, only if the code still maps to it."""
        with self._lock:
            current = self._rooms.get(code)
            if current is None or (room is not None and current is not room):
                return False
            del self._rooms[code]
            return True

    def codes(self) -> List[str]:
        return list(self._rooms)

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code) -> bool:
        return code in self._rooms
