"""Coding room session core exports."""

from .models import Difficulty, Language, Participant, ParticipantStatus, Question, TestCase
from .scoring import calculate_score
from .session import RoomSession, SessionManager

__all__ = [
    "Difficulty",
    "Language",
    "Participant",
    "ParticipantStatus",
    "Question",
    "TestCase",
    "calculate_score",
    "RoomSession",
    "SessionManager",
]
