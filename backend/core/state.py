# backend/core/state.py

from enum import Enum


class TurnPhase(str, Enum):
    IDLE = "idle"
    PLAYING_QUESTION = "playing-question"
    RECORDING = "recording"
    PROCESSING_SPEECH = "processing-speech"
    EVALUATING = "evaluating"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    PAUSED = "paused"


class SpeakerRole(str, Enum):
    INTERVIEWER = "interviewer"
    CANDIDATE = "candidate"
