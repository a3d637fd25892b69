class InterviewError(Exception):
    """Base error for the interview coordinator."""


class EvaluationError(InterviewError):
    """The evaluation backend could not produce a result for this turn."""


class MissingTokenError(EvaluationError):
    """No usable auth token is attached to the session."""


class AdmissionError(InterviewError):
    """Passcode exchange failed or was rejected."""


class TurnTransitionError(InterviewError):
    def __init__(self, current, target, reason: str = ""):
        self.current = current
        self.target = target
        self.reason = reason
        super().__init__(f"illegal turn transition {current} -> {target} ({reason or 'no reason'})")


class AdmissionUnavailableError(AdmissionError):
    """The admission service could not be reached."""
