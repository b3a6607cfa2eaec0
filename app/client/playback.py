"""Single-stream audio playback for message audio."""

import base64
import binascii
import importlib
import io
import logging
import threading
from collections.abc import Callable
from types import ModuleType
from typing import Protocol

import numpy as np
import soundfile as sf

from app.client.notify import Notifier, log_notifier

logger = logging.getLogger("parley.client")

PLAYBACK_ERRORS = (OSError, ValueError, RuntimeError, ImportError)


class PlayerHandle(Protocol):
    def play(self) -> None: ...

    def stop(self) -> None: ...


# (url, on_end, on_error) -> handle
PlayerFactory = Callable[[str, Callable[[], None], Callable[[Exception], None]], PlayerHandle]


def decode_data_uri(url: str) -> bytes:
    """Bytes of a ``data:<mime>;base64,<payload>`` URI."""
    header, sep, payload = url.partition(",")
    if not header.startswith("data:") or not sep or not header.endswith(";base64"):
        raise ValueError(f"Unsupported audio URL: {url[:40]}")
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Audio URL payload is not valid base64: {e}") from e


class PyAudioPlayer:
    """Plays a data-URI through the default output device.

    Decoding happens up front, so a corrupt payload fails in the constructor.
    ``on_end`` and ``on_error`` are called from the PortAudio thread.
    """

    def __init__(
        self,
        url: str,
        on_end: Callable[[], None],
        on_error: Callable[[Exception], None],
        backend: ModuleType | None = None,
    ) -> None:
        samples, self.sample_rate = sf.read(io.BytesIO(decode_data_uri(url)), dtype="int16", always_2d=True)
        self.channels = samples.shape[1]
        self._pcm = np.ascontiguousarray(samples).tobytes()
        self._frame_bytes = 2 * self.channels
        self._offset = 0
        self._on_end = on_end
        self._on_error = on_error
        self._backend = backend or importlib.import_module("pyaudio")
        self._pyaudio = None
        self._stream = None

    def _feed(self, in_data, frame_count, time_info, status):
        size = frame_count * self._frame_bytes
        chunk = self._pcm[self._offset : self._offset + size]
        self._offset += len(chunk)
        if len(chunk) < size:
            self._on_end()
            return (chunk + b"\x00" * (size - len(chunk)), self._backend.paComplete)
        return (chunk, self._backend.paContinue)

    def play(self) -> None:
        self._pyaudio = self._backend.PyAudio()
        try:
            self._stream = self._pyaudio.open(
                format=self._backend.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                output=True,
                stream_callback=self._feed,
            )
        except OSError as e:
            self._release()
            self._on_error(e)

    def stop(self) -> None:
        if self._stream is not None:
            self._stream.stop_stream()
            self._stream.close()
        self._release()

    def _release(self) -> None:
        if self._pyaudio is not None:
            self._pyaudio.terminate()
        self._pyaudio = None
        self._stream = None


class PlaybackController:
    """Owns the one audio handle that may be audible at a time.

    ``play`` on the current URL stops it; any other URL replaces it, stopping
    the old handle before the new one is created. Handles are stopped outside
    the lock because their end callbacks take it from the audio thread.
    A handle that ends on its own cannot be stopped from that thread, so it
    is kept in ``_finished`` and torn down on the next ``play`` or ``stop``.
    """

    def __init__(self, notifier: Notifier | None = None, player_factory: PlayerFactory | None = None) -> None:
        self.notify = notifier or log_notifier
        self._factory: PlayerFactory = player_factory or PyAudioPlayer
        self._lock = threading.RLock()
        self._handle: PlayerHandle | None = None
        self._token: object | None = None
        self._finished: list[PlayerHandle] = []
        self.currently_playing: str | None = None

    def play(self, url: str) -> None:
        with self._lock:
            was_playing = self.currently_playing
            stale = self._take_stale()
        for handle in stale:
            handle.stop()
        if was_playing == url:
            return

        token = object()

        def on_end() -> None:
            with self._lock:
                handle = self._release(token)
                if handle is not None:
                    self._finished.append(handle)

        def on_error(exc: Exception) -> None:
            logger.error("Audio playback failed: %s", exc)
            if self._release(token) is not None:
                self.notify("Error", "Failed to play audio", "destructive")

        try:
            handle = self._factory(url, on_end, on_error)
        except PLAYBACK_ERRORS as e:
            logger.error("Could not open audio: %s", e)
            self.notify("Error", "Failed to play audio", "destructive")
            return

        with self._lock:
            self._handle = handle
            self._token = token
            self.currently_playing = url
        handle.play()

    def stop(self) -> None:
        with self._lock:
            stale = self._take_stale()
        for handle in stale:
            handle.stop()

    def _take_stale(self) -> list[PlayerHandle]:
        """Detach the current handle and collect it with any that already finished."""
        stale, self._finished = self._finished, []
        current = self._detach()
        if current is not None:
            stale.append(current)
        return stale

    def _detach(self) -> PlayerHandle | None:
        handle = self._handle
        self._handle = None
        self._token = None
        self.currently_playing = None
        return handle

    def _release(self, token: object) -> PlayerHandle | None:
        """Detach and return the handle that ended, unless it was already replaced."""
        with self._lock:
            if self._token is not token:
                return None
            return self._detach()
