# audio/pcm.py
from __future__ import annotations

import base64
import math
from typing import Iterable, Sequence

import numpy as np

TARGET_SAMPLE_RATE = 16_000


def merge_frames(chunks: Sequence[np.ndarray] | Iterable[np.ndarray]) -> np.ndarray:
    """Concatenate captured float32 chunks into one mono array."""
    parts = [np.asarray(c, dtype=np.float32).reshape(-1) for c in chunks]
    if not parts:
        return np.zeros(0, dtype=np.float32)
    return np.concatenate(parts).astype(np.float32, copy=False)


def resampled_length(n: int, src_hz: int, dst_hz: int) -> int:
    if src_hz == dst_hz:
        return n
    ratio = float(src_hz) / float(dst_hz)
    # Half rounds up, not to even
    return int(math.floor(n / ratio + 0.5))


def linear_resample(audio: np.ndarray, src_hz: int, dst_hz: int = TARGET_SAMPLE_RATE) -> np.ndarray:
    """
    Linear-interpolation resampler.

    Output sample i reads source position i * (src_hz / dst_hz); the upper
    neighbour is clamped to the last source sample. Output length is
    floor(len(audio) / ratio + 0.5).
    """
    if src_hz <= 0 or dst_hz <= 0:
        raise ValueError(f"sample rates must be positive (src={src_hz}, dst={dst_hz})")
    x = np.asarray(audio, dtype=np.float32).reshape(-1)
    if src_hz == dst_hz or x.size == 0:
        return x

    ratio = float(src_hz) / float(dst_hz)
    n = resampled_length(x.size, src_hz, dst_hz)

    origin = np.arange(n, dtype=np.float64) * ratio
    lower = np.floor(origin).astype(np.int64)
    # Guard the last index against float error in origin
    np.minimum(lower, x.size - 1, out=lower)
    upper = np.minimum(lower + 1, x.size - 1)
    weight = origin - lower

    lo = x[lower].astype(np.float64)
    hi = x[upper].astype(np.float64)
    return (lo + (hi - lo) * weight).astype(np.float32)


def float_to_pcm16(audio: np.ndarray) -> bytes:
    """Clamp to [-1, 1], scale asymmetrically and pack as little-endian int16."""
    x = np.clip(np.asarray(audio, dtype=np.float64).reshape(-1), -1.0, 1.0)
    scaled = np.where(x < 0, x * 32768.0, x * 32767.0)
    # Truncate toward zero, matching an Int16 store of a float value
    return np.trunc(scaled).astype("<i2").tobytes()


def pcm16_to_float(data: bytes) -> np.ndarray:
    pcm = np.frombuffer(data, dtype="<i2").astype(np.float32)
    return np.where(pcm < 0, pcm / 32768.0, pcm / 32767.0).astype(np.float32)


def encode_payload(pcm: bytes) -> str:
    return base64.b64encode(pcm).decode("ascii")


def prepare_payload(audio: np.ndarray, src_hz: int, dst_hz: int = TARGET_SAMPLE_RATE) -> str:
    """Resample float audio to dst_hz and return base64 PCM16 LE mono."""
    return encode_payload(float_to_pcm16(linear_resample(audio, src_hz, dst_hz)))
