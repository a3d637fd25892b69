from interviewer.transcript.models import TranscriptFragment
from interviewer.transcript.state import TranscriptBuffer

__all__ = ["TranscriptBuffer", "TranscriptFragment"]
