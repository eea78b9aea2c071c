"""Room session error taxonomy.

Every error carries a user-facing ``message``. Raising one of these means the
operation was rejected as a whole and no session state changed.
"""

from __future__ import annotations

from typing import Optional


class RoomError(Exception):
    default_message = "Something went wrong in the room."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ConnectivityError(RoomError):
    default_message = "Connection issues detected. Trying to reconnect..."


class SessionClosed(RoomError):
    default_message = "You have left this room."


class SessionNotReady(RoomError):
    default_message = "Questions have not been received yet."


class GuardViolation(RoomError):
    """A user action that the room rules do not allow right now."""


class NavigationDenied(GuardViolation):
    pass


class CannotAdvance(NavigationDenied):
    default_message = (
        "Complete the current question or wait for timer to expire before moving on."
    )


class CannotGoBack(NavigationDenied):
    default_message = "You cannot go back to completed questions."


class NoAdjacentQuestion(NavigationDenied):
    default_message = "There is no question in that direction."


class SubmissionRejected(GuardViolation):
    default_message = "All test cases must pass before submission."


class QuestionLocked(GuardViolation):
    default_message = "This question has already been submitted."


class ExecutionInProgress(GuardViolation):
    default_message = "Your code is already running."


class UnsupportedLanguage(RoomError):
    default_message = "Unsupported language."
