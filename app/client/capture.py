"""Microphone capture with incremental FLAC encoding and a live level meter."""

import asyncio
import importlib
import io
import logging
import threading
from collections.abc import AsyncIterator
from dataclasses import dataclass
from types import ModuleType

import numpy as np
import soundfile as sf

from app.client.notify import Notifier, log_notifier
from app.errors import DeviceUnavailable

logger = logging.getLogger("parley.client")

# Requested from the OS audio stack; PortAudio has no per-stream switch for these
PROCESSING_HINTS = {"echo_cancellation": True, "noise_suppression": True, "auto_gain_control": True}


@dataclass(frozen=True)
class AudioBlob:
    """A finalized recording."""

    data: bytes
    mime_type: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        return "." + self.mime_type.split("/")[-1].split(";")[0]


class RecordingSession:
    """State of one recording: flag, rolling level and the encoder fed chunk by chunk."""

    FORMAT = "FLAC"
    MIME_TYPE = "audio/flac"

    def __init__(self, sample_rate: int, channels: int) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.is_recording = True
        self.level = 0.0
        self.chunk_count = 0
        self.hints = dict(PROCESSING_HINTS)
        self._buffer = io.BytesIO()
        self._encoder = sf.SoundFile(
            self._buffer, mode="w", samplerate=sample_rate, channels=channels, format=self.FORMAT, subtype="PCM_16"
        )
        self._lock = threading.Lock()

    def write(self, pcm: bytes) -> None:
        """Encode one chunk of int16 PCM and update the level. Ignored once stopped."""
        samples = np.frombuffer(pcm, dtype=np.int16)
        with self._lock:
            if not self.is_recording or samples.size == 0:
                return
            self._encoder.write(samples.reshape(-1, self.channels))
            self.chunk_count += 1
            rms = float(np.sqrt(np.mean(samples.astype(np.float32) ** 2))) / 32768.0
            self.level = min(1.0, rms)

    def finalize(self) -> AudioBlob:
        with self._lock:
            self.is_recording = False
            self.level = 0.0
            if not self._encoder.closed:
                self._encoder.close()
            return AudioBlob(data=self._buffer.getvalue(), mime_type=self.MIME_TYPE)


class AudioCapture:
    """Records one clip at a time from the default input device.

    PyAudio is imported lazily so the client imports without it; tests pass
    a stand-in ``backend`` module.
    """

    SAMPLE_RATE = 16000
    CHANNELS = 1
    CHUNK_FRAMES = 1600  # 100 ms

    def __init__(
        self,
        notifier: Notifier | None = None,
        backend: ModuleType | None = None,
        sample_rate: int = SAMPLE_RATE,
        chunk_frames: int = CHUNK_FRAMES,
    ) -> None:
        self.notify = notifier or log_notifier
        self.sample_rate = sample_rate
        self.chunk_frames = chunk_frames
        self.recorded_blob: AudioBlob | None = None
        self._backend = backend
        self._session: RecordingSession | None = None
        self._pyaudio = None
        self._stream = None

    @property
    def is_recording(self) -> bool:
        return self._session is not None and self._session.is_recording

    @property
    def level(self) -> float:
        """Normalized 0-1 input level; 0.0 whenever not recording."""
        return self._session.level if self.is_recording else 0.0

    def _load_backend(self) -> ModuleType:
        if self._backend is None:
            try:
                self._backend = importlib.import_module("pyaudio")
            except ImportError as e:
                raise DeviceUnavailable("PyAudio is not installed; microphone capture is unavailable") from e
        return self._backend

    def _on_audio(self, in_data, frame_count, time_info, status):
        session = self._session
        if session is not None:
            session.write(in_data)
        return (None, self._backend.paContinue)

    def _open_stream(self) -> None:
        backend = self._load_backend()
        pyaudio = backend.PyAudio()
        try:
            # Raises OSError when there is no input device or access is denied
            pyaudio.get_default_input_device_info()
            self._session = RecordingSession(self.sample_rate, self.CHANNELS)
            stream = pyaudio.open(
                format=backend.paInt16,
                channels=self.CHANNELS,
                rate=self.sample_rate,
                input=True,
                frames_per_buffer=self.chunk_frames,
                stream_callback=self._on_audio,
                start=False,
            )
            stream.start_stream()
        except OSError:
            pyaudio.terminate()
            raise
        self._pyaudio = pyaudio
        self._stream = stream

    def start(self) -> RecordingSession:
        """Acquire the microphone and begin encoding. Raises DeviceUnavailable."""
        if self.is_recording:
            return self._session  # type: ignore[return-value]

        self.recorded_blob = None
        try:
            self._open_stream()
        except (OSError, DeviceUnavailable) as e:
            self._session = None
            logger.error("Error starting recording: %s", e)
            self.notify("Recording Error", "Could not access microphone. Please check permissions.", "destructive")
            if isinstance(e, DeviceUnavailable):
                raise
            raise DeviceUnavailable(f"Could not access microphone: {e}") from e

        logger.info("Recording started: %d Hz, hints=%s", self.sample_rate, self._session.hints)  # type: ignore[union-attr]
        return self._session  # type: ignore[return-value]

    def stop(self) -> AudioBlob | None:
        """Finalize the recording and release the device. No-op when not recording."""
        if not self.is_recording:
            return None

        session = self._session
        session.is_recording = False  # type: ignore[union-attr]
        try:
            if self._stream is not None:
                self._stream.stop_stream()
                self._stream.close()
        finally:
            if self._pyaudio is not None:
                self._pyaudio.terminate()
            self._stream = None
            self._pyaudio = None
            # What was captured before a failed close is still kept
            blob = session.finalize()  # type: ignore[union-attr]
            self.recorded_blob = blob
        logger.info("Recording stopped: %d chunks, %d bytes", session.chunk_count, blob.size)  # type: ignore[union-attr]
        return blob

    def clear(self) -> None:
        """Discard the finalized recording."""
        self.recorded_blob = None
        if not self.is_recording:
            self._session = None

    async def levels(self, interval: float = 1 / 60) -> AsyncIterator[float]:
        """Yield the input level once per refresh tick; ends as soon as recording stops."""
        while self.is_recording:
            yield self.level
            await asyncio.sleep(interval)
