# scripts/dictate.py
from __future__ import annotations

import sys

import pyaudio

import config as cfg
from audio.capture import CaptureError
from audio.utils import list_input_devices, suppress_alsa_warnings_if_linux
from backend.util.logging_setup import init_logging
from client.api import get_health
from client.dictation import DictationController


def print_devices() -> None:
    with suppress_alsa_warnings_if_linux():
        p = pyaudio.PyAudio()
        try:
            print("Available input devices:")
            for i, name in list_input_devices(p):
                rate = int(p.get_device_info_by_index(i).get("defaultSampleRate", 0))
                print(f"[{i}] {name} | Default rate: {rate} Hz")
        finally:
            p.terminate()


def main(argv: list[str]) -> int:
    s = cfg.settings
    init_logging(s.log_level)

    if "--devices" in argv:
        print_devices()
        return 0

    health = get_health()
    if health.get("status") != "ok":
        print(f"⚠️ Server at {s.server_url} is not reachable: {health.get('error', 'unknown error')}")

    ctl = DictationController()
    print("Enter: start/stop recording | r: reset transcript | q: quit")
    try:
        while True:
            cmd = input("🎤 " if ctl.listening else "> ").strip().lower()
            if cmd == "q":
                break
            if cmd == "r":
                ctl.reset_transcript()
                print("🧹 Transcript cleared.")
                continue
            if not ctl.listening:
                if not ctl.start_listening():
                    print(f"❌ {ctl.error}")
                continue

            print("⏳ Recognizing…")
            text = ctl.stop_listening()
            if text is None:
                print(f"❌ {ctl.error}")
            else:
                print("🗣️ You said:", text)
                print("--- transcript ---")
                print(ctl.transcript)
    except (KeyboardInterrupt, EOFError):
        print("\n🛑 Exiting...")
    finally:
        if ctl.listening:
            try:
                ctl.engine.stop()
            except CaptureError:
                pass
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
