"""Failures a room session can report back to the connection that caused them."""


class SessionError(Exception):
    """Base class for recoverable, client-visible session failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MalformedInput(SessionError):
    pass


class NotFound(SessionError):
    pass


class Unauthorized(SessionError):
    pass


class InvalidTransition(SessionError):
    pass


class NoActiveQuestion(SessionError):
    def __init__(self, message: str = 'No active question'):
        super().__init__(message)


class DuplicateSubmission(SessionError):
    def __init__(self, message: str = 'Answer already submitted for this question'):
        super().__init__(message)


class LateSubmission(SessionError):
    def __init__(self, message: str = 'Submission too late'):
        super().__init__(message)


class InvalidOption(SessionError):
    def __init__(self, message: str = 'Invalid answer index'):
        super().__init__(message)


class NameConflict(SessionError):
    def __init__(self, message: str = 'Nickname already taken'):
        super().__init__(message)
