"""Speech output relayed to the HTTP client.

The API server has no speaker. Engines driven through the API write their
output here and routes hand it to the client app, which does the playback.
Outputs queue up in production order: a single speak call is answered with
take(), while background narration is collected with drain().
Playback controls are no-ops because the client owns the audio.
"""

import base64

from fanreader.services.speech.base import (
    AudioSinkBase,
    DeviceSpeechBackendBase,
    SpeechAudio,
    Utterance,
)


class SpeechRelay(DeviceSpeechBackendBase, AudioSinkBase):
    """Queues utterances and audio clips until a route collects them."""

    def __init__(self):
        self._pending: list[dict] = []

    async def speak(self, utterance: Utterance) -> None:
        self._pending.append(
            {
                "utterance": {
                    "text": utterance.text,
                    "language": utterance.language,
                    "rate": utterance.rate,
                    "pitch": utterance.pitch,
                }
            }
        )

    async def play(self, audio: SpeechAudio) -> None:
        self._pending.append(
            {
                "audio": {
                    "mime_type": audio.mime_type,
                    "data": base64.b64encode(audio.data).decode("ascii"),
                }
            }
        )

    async def stop(self) -> None:
        pass

    async def pause(self) -> None:
        pass

    async def resume(self) -> None:
        pass

    def take(self) -> dict:
        """Return the newest output and clear the queue ({} when nothing was produced)."""
        pending, self._pending = self._pending, []
        return pending[-1] if pending else {}

    def drain(self) -> list[dict]:
        """Return every queued output, oldest first, and clear the queue."""
        pending, self._pending = self._pending, []
        return pending
