# audio/utils.py
from __future__ import annotations
import os
import sys
import contextlib
import logging
from typing import Any, List, Optional, Tuple

log = logging.getLogger("dicta.audio")


@contextlib.contextmanager
def suppress_alsa_warnings_if_linux():
    """
    On Linux, temporarily redirect stderr to /dev/null while opening PyAudio streams
    to suppress benign ALSA warnings. Guard against environments where fileno()
    is unavailable (e.g., some notebook/stdout captures).
    """
    if not sys.platform.startswith("linux"):
        yield
        return

    try:
        stderr_fileno = sys.stderr.fileno()
    except Exception:
        yield
        return

    with open(os.devnull, "w") as devnull:
        old_stderr = os.dup(stderr_fileno)
        try:
            os.dup2(devnull.fileno(), stderr_fileno)
            yield
        finally:
            try:
                os.dup2(old_stderr, stderr_fileno)
            finally:
                os.close(old_stderr)


def list_input_devices(pa: Any) -> List[Tuple[int, str]]:
    """Return [(index, name)] for input-capable devices of an open PyAudio handle."""
    devices: List[Tuple[int, str]] = []
    for i in range(pa.get_device_count()):
        info = pa.get_device_info_by_index(i)
        if info.get("maxInputChannels", 0) > 0:
            devices.append((i, str(info.get("name", f"index {i}"))))
    return devices


def resolve_input_device(pa: Any, index: Optional[int] = None) -> Tuple[int, str, int]:
    """
    Pick the capture device and report its native sample rate.

    Returns (index, name, sample_rate). Explicit `index` wins; otherwise the
    system default input, then the first input-capable device. Raises
    LookupError when nothing can capture.
    """
    if index is not None:
        info = pa.get_device_info_by_index(index)
        if info.get("maxInputChannels", 0) <= 0:
            raise LookupError(f"Device [{index}] has no input channels.")
    else:
        try:
            info = pa.get_default_input_device_info()
        except Exception:
            devices = list_input_devices(pa)
            if not devices:
                raise LookupError("No input devices found. Check microphone permissions.")
            info = pa.get_device_info_by_index(devices[0][0])

    idx = int(info.get("index", index if index is not None else 0))
    name = str(info.get("name", f"index {idx}"))
    rate = int(round(float(info.get("defaultSampleRate", 16_000))))
    return idx, name, rate
