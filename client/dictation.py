# client/dictation.py
from __future__ import annotations

import logging
from typing import Callable, Optional, Union

from audio.capture import AudioCaptureEngine, CaptureError, EmptyCapture
from client.api import SpeechServiceError, post_speech

log = logging.getLogger("dicta.client")

SendFn = Callable[..., str]


class DictationController:
    """
    Push-to-talk dictation: one recording per start/stop pair, one HTTP
    request per recording. Recognized utterances accumulate line by line in
    `transcript`; the latest user-facing problem is kept in `error`.
    """

    def __init__(
        self,
        engine: Optional[AudioCaptureEngine] = None,
        send: SendFn = post_speech,
        user_id: Optional[str] = None,
    ) -> None:
        self.engine = engine or AudioCaptureEngine()
        self._send = send
        self.user_id = user_id

        self.transcript = ""
        self.error: Optional[str] = None
        self.listening = False
        self.processing = False

    def start_listening(self) -> bool:
        if self.listening or self.processing:
            return False
        self.error = None
        try:
            self.engine.start()
        except CaptureError as e:
            self.error = str(e) or "Microphone access failed, check permission settings."
            return False
        self.listening = True
        return True

    def stop_listening(self) -> Optional[str]:
        """Stop recording, recognize the utterance and append it. Returns the new text."""
        if not self.listening:
            return None
        self.listening = False

        try:
            captured = self.engine.stop()
        except EmptyCapture:
            self.error = "No usable audio was captured, please try again."
            return None
        except (CaptureError, ValueError) as e:
            log.warning("Audio encoding failed: %s", e)
            self.error = "Audio encoding failed, please try again."
            return None

        self.processing = True
        try:
            text = self._send(captured.payload, user_id=self.user_id).strip()
        except SpeechServiceError as e:
            self.error = e.message or "Speech recognition failed, please try again later."
            return None
        finally:
            self.processing = False

        if not text:
            self.error = "No speech was recognized, please try again."
            return None

        self.transcript = f"{self.transcript}\n{text}" if self.transcript else text
        self.error = None
        return text

    def reset_transcript(self) -> None:
        self.transcript = ""
        self.error = None

    def set_transcript(self, value: Union[str, Callable[[str], str]]) -> None:
        self.transcript = value(self.transcript) if callable(value) else value
