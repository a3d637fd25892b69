"""
Legal phase transitions.
Anything may fall back to IDLE (session end, mic off, failures).
"""

from core.state import TurnPhase

ALLOWED_TRANSITIONS = {
    TurnPhase.IDLE: {
        TurnPhase.PLAYING_QUESTION,
        TurnPhase.RECORDING,
    },
    TurnPhase.PLAYING_QUESTION: {
        TurnPhase.RECORDING,
        TurnPhase.IDLE,
    },
    TurnPhase.RECORDING: {
        TurnPhase.PROCESSING_SPEECH,
        TurnPhase.EVALUATING,
        TurnPhase.IDLE,
    },
    TurnPhase.PROCESSING_SPEECH: {
        TurnPhase.EVALUATING,
        TurnPhase.RECORDING,
        TurnPhase.IDLE,
    },
    TurnPhase.EVALUATING: {
        TurnPhase.PLAYING_QUESTION,
        TurnPhase.RECORDING,
        TurnPhase.IDLE,
    },
}

MAX_HISTORY = 200

# Transition reasons
REASON_START = "interview_start"
REASON_NEXT_QUESTION = "next_question"
REASON_CLOSING_REMARK = "closing_remark"
REASON_PLAYBACK_DONE = "playback_done"
REASON_PLAYBACK_DONE_MIC_OFF = "playback_done_mic_off"
REASON_SUBMITTED = "answer_submitted"
REASON_COMPLETED = "interview_complete"
REASON_EVALUATION_FAILED = "evaluation_failed"
REASON_INIT_FAILED = "initialization_failed"
REASON_MIC_OFF = "mic_disabled"
REASON_MIC_ON = "mic_enabled"
REASON_SESSION_END = "session_end"
REASON_CAPTURE_BLOCKED = "capture_blocked"


def is_allowed(current: TurnPhase, target: TurnPhase) -> bool:
    if target == TurnPhase.IDLE:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, set())
