"""
Errors raised by the quiz and flashcard session drivers
"""


class SessionError(Exception):
    pass


class InvalidTransition(SessionError):
    """The action is not allowed in the session's current state"""


class InvalidAnswer(SessionError):
    pass
