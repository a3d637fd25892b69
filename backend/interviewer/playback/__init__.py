from interviewer.playback.coordinator import PlaybackCoordinator
from interviewer.playback.service import PlaybackService, SilentPlayback

__all__ = ["PlaybackCoordinator", "PlaybackService", "SilentPlayback"]
