# audio/capture.py
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import pyaudio

import config as cfg
from audio.pcm import TARGET_SAMPLE_RATE, merge_frames, linear_resample, float_to_pcm16, encode_payload
from audio.utils import resolve_input_device, suppress_alsa_warnings_if_linux

log = logging.getLogger("dicta.capture")


class CaptureError(RuntimeError):
    """Base class for client-side capture failures (message is user-facing)."""


class DeviceUnavailable(CaptureError):
    pass


class EmptyCapture(CaptureError):
    pass


class CaptureInProgress(CaptureError):
    pass


@dataclass(frozen=True)
class CapturedAudio:
    payload: str              # base64 PCM16 LE mono at target_rate
    source_rate: int
    target_rate: int
    samples: int              # sample count after resampling

    @property
    def duration_sec(self) -> float:
        return self.samples / float(self.target_rate) if self.target_rate else 0.0


class AudioCaptureEngine:
    """
    Records one utterance from the microphone at the device's native rate.

    PyAudio drives `_on_audio` from its own thread; each callback appends one
    float32 chunk. `stop()` merges the chunks, releases the device and returns
    the utterance resampled to `target_rate` as base64 PCM16.
    """

    def __init__(
        self,
        target_rate: int = TARGET_SAMPLE_RATE,
        chunk: Optional[int] = None,
        device_index: Optional[int] = None,
    ) -> None:
        s = cfg.settings
        self.target_rate = int(target_rate)
        self.chunk = int(chunk or s.chunk)
        self.device_index = device_index if device_index is not None else s.input_device_index

        self._lock = threading.Lock()
        self._chunks: List[np.ndarray] = []
        self._pa: Optional[pyaudio.PyAudio] = None
        self._stream = None
        self._source_rate: Optional[int] = None
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    @property
    def source_rate(self) -> Optional[int]:
        return self._source_rate

    def _on_audio(self, in_data, frame_count, time_info, status):
        if in_data:
            frame = np.frombuffer(in_data, dtype=np.float32).copy()
            with self._lock:
                if self._active:
                    self._chunks.append(frame)
        return (None, pyaudio.paContinue)

    def start(self) -> None:
        with self._lock:
            if self._active:
                raise CaptureInProgress("A recording is already in progress.")
            self._active = True
            self._chunks = []

        try:
            with suppress_alsa_warnings_if_linux():
                try:
                    self._pa = pyaudio.PyAudio()
                except OSError as e:
                    raise DeviceUnavailable(f"Audio system could not be initialized: {e}") from e
                try:
                    idx, name, rate = resolve_input_device(self._pa, self.device_index)
                except (LookupError, OSError) as e:
                    raise DeviceUnavailable(str(e)) from e

                try:
                    self._stream = self._pa.open(
                        format=pyaudio.paFloat32,
                        channels=1,
                        rate=rate,
                        input=True,
                        frames_per_buffer=self.chunk,
                        input_device_index=idx,
                        stream_callback=self._on_audio,
                    )
                except OSError as e:
                    raise DeviceUnavailable(
                        f"Microphone [{idx}] {name} could not be opened: {e}. Check permission settings."
                    ) from e
            self._source_rate = rate
            try:
                self._stream.start_stream()
            except OSError as e:
                raise DeviceUnavailable(
                    f"Microphone [{idx}] {name} could not be started: {e}. Check permission settings."
                ) from e
        except BaseException:
            self._release()
            raise

        log.info("🎤 Capture started on [%d] %s @ %d Hz", idx, name, rate)

    def stop(self) -> CapturedAudio:
        """
        Stop recording and return the encoded utterance.

        The device is released before resampling, whatever happens while
        merging. Raises EmptyCapture when no audio frames arrived.
        """
        with self._lock:
            was_active = self._active
            chunks, self._chunks = self._chunks, []
            source_rate = self._source_rate or self.target_rate

        try:
            merged = merge_frames(chunks)
        finally:
            self._release()

        if not was_active or merged.size == 0:
            raise EmptyCapture("No audio was captured, please try again.")

        resampled = linear_resample(merged, source_rate, self.target_rate)
        payload = encode_payload(float_to_pcm16(resampled))
        log.info(
            "🎙️ Capture stopped | %d frames @ %d Hz → %d samples @ %d Hz",
            merged.size, source_rate, resampled.size, self.target_rate,
        )
        return CapturedAudio(
            payload=payload,
            source_rate=source_rate,
            target_rate=self.target_rate,
            samples=int(resampled.size),
        )

    def _release(self) -> None:
        stream, pa = self._stream, self._pa
        self._stream = None
        self._pa = None
        try:
            if stream is not None:
                try:
                    if stream.is_active():
                        stream.stop_stream()
                except Exception as e:
                    log.warning("Failed to stop capture stream: %s", e)
                stream.close()
        finally:
            if pa is not None:
                pa.terminate()
            with self._lock:
                self._active = False
                self._source_rate = None
