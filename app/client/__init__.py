"""Client-side components: microphone capture, playback and the conversation session."""

from app.client.capture import AudioBlob, AudioCapture, RecordingSession
from app.client.chat import ChangeSubscription, VoiceChatClient
from app.client.playback import PlaybackController, PyAudioPlayer

__all__ = [
    "AudioBlob",
    "AudioCapture",
    "RecordingSession",
    "ChangeSubscription",
    "VoiceChatClient",
    "PlaybackController",
    "PyAudioPlayer",
]
