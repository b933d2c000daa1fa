"""
Audio sources for the Recorder.

``SoundDeviceMicrophone`` captures live 16 kHz mono PCM through
sounddevice/PortAudio and finalizes it as WAV. ``FileAudioSource``
replays an existing recording, which is how the scripts feed audio
files through the same pipeline.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np
from scipy.io import wavfile

from quickpost.config import get_settings
from quickpost.exceptions import PermissionDenied, UnsupportedDevice
from quickpost.logging_config import get_logger

settings = get_settings()
logger = get_logger(__name__)

MIME_BY_SUFFIX: dict[str, str] = {
    ".webm": "audio/webm",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".mp3": "audio/mpeg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
}

SAMPLE_WIDTH_BYTES = 2  # int16


class SoundDeviceMicrophone:
    """Live microphone capture via a sounddevice RawInputStream."""

    mime_type = "audio/wav"

    def __init__(
        self,
        sample_rate: int | None = None,
        channels: int | None = None,
        device: int | str | None = None,
    ) -> None:
        self.sample_rate = sample_rate or settings.recording_sample_rate
        self.channels = channels or settings.recording_channels
        self.device = device
        self._stream: Any = None
        self._on_chunk: Optional[Callable[[bytes], None]] = None

    def open(self, on_chunk: Callable[[bytes], None]) -> None:
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            # OSError: the wheel is installed but PortAudio is missing
            raise UnsupportedDevice("No audio input backend is available on this device.") from e

        try:
            sd.check_input_settings(
                device=self.device,
                channels=self.channels,
                samplerate=self.sample_rate,
                dtype="int16",
            )
        except ValueError as e:
            raise UnsupportedDevice(f"No usable microphone: {e}") from e

        self._on_chunk = on_chunk
        try:
            self._stream = sd.RawInputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                device=self.device,
                callback=self._callback,
            )
            self._stream.start()
        except sd.PortAudioError as e:
            self._stream = None
            raise PermissionDenied("Please allow microphone access to use voice posting.") from e

        logger.info("microphone_opened", sample_rate=self.sample_rate, channels=self.channels)

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.stop()
        finally:
            self._stream.close()
            self._stream = None
            logger.info("microphone_closed")

    def finalize(self, data: bytes) -> bytes:
        frame = SAMPLE_WIDTH_BYTES * self.channels
        samples = np.frombuffer(data[: len(data) - len(data) % frame], dtype=np.int16)
        if self.channels > 1:
            samples = samples.reshape(-1, self.channels)
        buffer = io.BytesIO()
        wavfile.write(buffer, self.sample_rate, samples)
        return buffer.getvalue()

    def _callback(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if status:
            logger.warning("microphone_status", status=str(status))
        if self._on_chunk is not None:
            self._on_chunk(bytes(indata))


class FileAudioSource:
    """Replays an audio file as a stream of chunks."""

    def __init__(self, path: str | Path, chunk_size: int = 32 * 1024, mime_type: str | None = None) -> None:
        self.path = Path(path)
        self.chunk_size = chunk_size
        self.mime_type = mime_type or MIME_BY_SUFFIX.get(self.path.suffix.lower(), "audio/webm")
        self._open = False

    def open(self, on_chunk: Callable[[bytes], None]) -> None:
        if not self.path.is_file():
            raise UnsupportedDevice(f"Audio file not found: {self.path}")
        self._open = True
        with self.path.open("rb") as fh:
            while chunk := fh.read(self.chunk_size):
                on_chunk(chunk)

    def close(self) -> None:
        self._open = False

    def finalize(self, data: bytes) -> bytes:
        return data
