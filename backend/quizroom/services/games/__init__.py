"""Game domain services: rooms, scoring, timers and session orchestration.

This package holds the live-match logic that socket handlers call into,
keeping transport concerns separated from core game mechanics.
"""

from .channels import Channels, SocketIOTransport
from .orchestrator import SessionOrchestrator
from .registry import RoomCodeGenerator, RoomRegistry
from .room import Question, QuizScript, Room, RoomStatus
from .scheduler import TaskScheduler
from .scoring import score
