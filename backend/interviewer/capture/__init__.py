from interviewer.capture.coordinator import CaptureCoordinator
from interviewer.capture.recovery import RecoveryDecision, RecoveryPolicy
from interviewer.capture.service import CaptureEngine, CaptureListener

__all__ = ["CaptureCoordinator", "CaptureEngine", "CaptureListener", "RecoveryDecision", "RecoveryPolicy"]
