"""Inbound message and request payload schemas.

Every socket message and REST body is parsed through one of these models
before it reaches room or storage code. Failures surface as MalformedInput.
"""
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt, ValidationError, field_validator, model_validator

from quizroom.errors import MalformedInput

UUID_PATTERN = r'^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$'
ROOM_CODE_PATTERN = r'^[A-Z0-9]{6}$'
EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
MAX_NICKNAME_LENGTH = 32

M = TypeVar('M', bound=BaseModel)


class Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class CreateRoomMessage(Message):
    quiz_id: str = Field(alias='quizId', title='Quiz ID', pattern=UUID_PATTERN)
    user_id: str = Field(alias='userId', title='User ID', pattern=UUID_PATTERN)


class RoomCommand(Message):
    room_code: str = Field(alias='roomCode', title='room code', pattern=ROOM_CODE_PATTERN)

    @field_validator('room_code', mode='before')
    @classmethod
    def _upper(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class JoinRoomMessage(RoomCommand):
    nickname: str = Field(title='Nickname', max_length=MAX_NICKNAME_LENGTH)

    @field_validator('nickname')
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError('Nickname is required')
        return value


class SubmitAnswerMessage(RoomCommand):
    answer_idx: StrictInt = Field(alias='answerIdx', title='answer index')
    time_elapsed: Optional[float] = Field(default=None, alias='timeElapsed', title='elapsed time', ge=0)


class RegisterRequest(Message):
    email: str = Field(title='Email', pattern=EMAIL_PATTERN, max_length=255)
    password: str = Field(title='Password', min_length=6)
    role: str = Field(default='TEACHER', title='Role')

    @field_validator('role')
    @classmethod
    def _known_role(cls, value: str) -> str:
        value = value.upper()
        if value not in ('ADMIN', 'TEACHER'):
            raise ValueError('Role must be ADMIN or TEACHER')
        return value


class LoginRequest(Message):
    email: str = Field(title='Email', pattern=EMAIL_PATTERN)
    password: str = Field(title='Password', min_length=1)


class QuestionIn(Message):
    question_text: str = Field(title='Question text', min_length=1)
    image_url: Optional[str] = None
    options: List[str] = Field(title='Options', min_length=2, max_length=4)
    correct_idx: StrictInt = Field(title='Correct index', ge=0, le=3)
    time_limit: StrictInt = Field(default=15, title='Time limit', ge=5, le=60)
    points: StrictInt = Field(default=20, title='Points', ge=1, le=100)

    @model_validator(mode='after')
    def _correct_idx_in_options(self):
        if self.correct_idx >= len(self.options):
            raise ValueError('Correct index must point at one of the options')
        return self


class QuizIn(Message):
    title: str = Field(title='Title', min_length=1, max_length=255)
    description: Optional[str] = None
    questions: List[QuestionIn] = Field(title='Questions', min_length=1)


def _describe(model: Type[BaseModel], error: dict) -> str:
    loc = error.get('loc') or ()
    label = 'Payload'
    if loc:
        name = loc[0]
        for field_name, info in model.model_fields.items():
            if name in (field_name, info.alias):
                label = info.title or field_name
                break
    kind = error.get('type', '')
    if kind == 'missing':
        return f"{label} is required"
    if kind == 'string_pattern_mismatch':
        return f"Invalid {label} format"
    if kind == 'value_error':
        return str(error.get('ctx', {}).get('error') or error.get('msg'))
    return f"Invalid {label}: {error.get('msg')}"


def parse_message(model: Type[M], data) -> M:
    """Validate ``data`` against ``model``, raising MalformedInput with a readable message."""
    if not isinstance(data, dict):
        raise MalformedInput('Payload must be an object')
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise MalformedInput(_describe(model, exc.errors()[0])) from exc
