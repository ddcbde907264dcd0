"""Speech engine backed by the platform's own synthesizer."""

from fanreader.logging import get_logger
from fanreader.schemas.preferences import SpeechSettings
from fanreader.services.speech.base import DeviceSpeechBackendBase, SpeechEngine, Utterance

logger = get_logger(__name__)


class DeviceSpeechEngine(SpeechEngine):
    """Hands text and voice parameters to a DeviceSpeechBackendBase."""

    provider = "device"

    def __init__(self, backend: DeviceSpeechBackendBase, settings: SpeechSettings):
        super().__init__(settings)
        self._backend = backend

    async def speak(self, text: str) -> None:
        await self.stop()
        utterance = Utterance(
            text=text,
            language=self._settings.language,
            rate=self._settings.rate,
            pitch=self._settings.pitch,
        )
        self._active = True
        try:
            await self._backend.speak(utterance)
        finally:
            self._active = False
            self._paused = False

    async def stop(self) -> None:
        await self._backend.stop()
        self._active = False
        self._paused = False

    async def pause(self) -> None:
        if self._active and not self._paused:
            await self._backend.pause()
            self._paused = True

    async def resume(self) -> None:
        if self._paused:
            await self._backend.resume()
            self._paused = False
