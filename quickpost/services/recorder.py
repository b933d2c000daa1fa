"""
Recorder: captures one microphone session into an immutable artifact.

The recorder owns the audio source for exactly one acquire/release
cycle per session. Chunks are buffered in arrival order and only
become a ``RecordingSession`` once ``stop()`` finalizes them. Audio
arriving after ``max_seconds`` is dropped, so the buffer stays bounded.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Protocol

from quickpost.config import get_settings
from quickpost.logging_config import get_logger
from quickpost.schemas.voice import RecordingSession

settings = get_settings()
logger = get_logger(__name__)


class AudioSource(Protocol):
    """A capture backend (microphone, file replay, test double)."""

    mime_type: str

    def open(self, on_chunk: Callable[[bytes], None]) -> None:
        """Acquire the device; raise PermissionDenied or UnsupportedDevice."""
        ...

    def close(self) -> None: ...

    def finalize(self, data: bytes) -> bytes:
        """Wrap raw buffered bytes in the container ``mime_type`` names."""
        ...


class Recorder:
    """Start/stop state machine around an ``AudioSource``."""

    def __init__(
        self,
        source: AudioSource,
        clock: Callable[[], float] = time.monotonic,
        max_seconds: Optional[float] = None,
    ) -> None:
        self.source = source
        self.max_seconds = settings.max_recording_seconds if max_seconds is None else max_seconds
        self._clock = clock
        self._chunks: list[bytes] = []
        self._started_at: Optional[float] = None
        self._active = False
        self._limit_reached = False

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        return max(0.0, self._clock() - self._started_at)

    @property
    def limit_reached(self) -> bool:
        """True once the session hit ``max_seconds`` and began dropping audio."""
        return self._limit_reached

    def start(self) -> None:
        """Acquire the source and begin buffering."""
        if self._active:
            raise RuntimeError("Recorder already active. Call stop() first.")

        self._chunks = []
        self._limit_reached = False
        self._started_at = self._clock()
        # Active before open(): replay sources emit chunks synchronously
        self._active = True
        try:
            self.source.open(self._on_chunk)
        except Exception:
            self._active = False
            self._started_at = None
            raise
        logger.info("recording_started", mime_type=self.source.mime_type)

    def stop(self) -> RecordingSession | None:
        """
        Release the source and finalize the buffer.

        Returns None when the recorder was not active.
        """
        if not self._active:
            return None

        duration = min(self.elapsed_seconds, self.max_seconds)
        self._release()
        audio = self.source.finalize(b"".join(self._chunks))
        self._chunks = []

        session = RecordingSession(
            audio=audio,
            mime_type=self.source.mime_type,
            duration_seconds=round(duration, 3),
            is_active=False,
        )
        logger.info(
            "recording_stopped",
            duration_seconds=session.duration_seconds,
            size_bytes=session.size_bytes,
        )
        return session

    def discard(self) -> None:
        """Drop whatever was captured and release the source."""
        if self._active:
            self._release()
            logger.info("recording_discarded")
        self._chunks = []

    @contextmanager
    def recording(self) -> Iterator[RecordingHandle]:
        """
        Scoped capture: the source is released even if the body raises.

        The finalized session is available as ``handle.session`` after
        the block exits normally.
        """
        handle = RecordingHandle()
        self.start()
        try:
            yield handle
        except BaseException:
            self.discard()
            raise
        handle.session = self.stop()

    def _on_chunk(self, chunk: bytes) -> None:
        if not self._active or not chunk:
            return
        if self.elapsed_seconds >= self.max_seconds:
            if not self._limit_reached:
                self._limit_reached = True
                logger.warning("recording_limit_reached", max_seconds=self.max_seconds)
            return
        self._chunks.append(bytes(chunk))

    def _release(self) -> None:
        self._active = False
        self._started_at = None
        self.source.close()


class RecordingHandle:
    """Filled in with the finalized session when a ``recording()`` block ends."""

    def __init__(self) -> None:
        self.session: Optional[RecordingSession] = None
