"""Error taxonomy for the voice message pipeline."""


class VoiceChatError(Exception):
    """Base class for every pipeline failure. ``message`` is shown to the user."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DeviceUnavailable(VoiceChatError):
    """Microphone permission denied or no input device present."""


class InvalidInput(VoiceChatError):
    """A required gateway field is missing or malformed."""

    status_code = 400


class ConfigMissing(VoiceChatError):
    """A provider credential is absent from server-side configuration."""


class UpstreamError(VoiceChatError):
    """The provider answered with a non-success HTTP status."""

    status_code = 502

    def __init__(self, status: int, body: str) -> None:
        super().__init__(f"Sarvam AI error: {status} - {body}")
        self.status = status
        self.body = body


class UpstreamEmptyResult(VoiceChatError):
    """The provider answered successfully but without the expected payload."""

    status_code = 502


class NoSpeechDetected(VoiceChatError):
    """Transcription returned no text."""

    status_code = 422


class PersistenceError(VoiceChatError):
    """Writing the message to the store failed."""
