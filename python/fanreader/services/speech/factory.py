"""Speech engine factory.

Engines are built on demand from SpeechSettings and cached by provider:
- Same provider as the cached engine: settings are applied to it and it is reused
- Different provider: the cached engine is stopped and replaced

Owned by the reader session. There is no module-level engine instance.
"""

from collections.abc import Callable

import httpx

from fanreader.logging import get_logger
from fanreader.schemas.preferences import SpeechProvider, SpeechSettings
from fanreader.services.speech.base import AudioSinkBase, DeviceSpeechBackendBase, SpeechEngine
from fanreader.services.speech.device import DeviceSpeechEngine
from fanreader.services.speech.gemini import DEFAULT_MODEL, GeminiSpeechEngine

logger = get_logger(__name__)


class SpeechEngineFactory:
    """Builds and caches the active speech engine."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        device_backend: DeviceSpeechBackendBase,
        audio_sink: AudioSinkBase,
        gemini_api_key: str | None = None,
        gemini_model: str = DEFAULT_MODEL,
    ):
        """Initialize with the collaborators engines need.

        Args:
            client: Shared httpx.AsyncClient for remote synthesis.
            device_backend: Platform synthesizer for the device engine.
            audio_sink: Playback target for remotely synthesized audio.
            gemini_api_key: Key for the gemini engine.
            gemini_model: Model for the gemini engine.
        """
        self._builders: dict[SpeechProvider, Callable[[SpeechSettings], SpeechEngine]] = {
            SpeechProvider.DEVICE: lambda s: DeviceSpeechEngine(device_backend, s),
            SpeechProvider.GEMINI: lambda s: GeminiSpeechEngine(
                client, audio_sink, s, api_key=gemini_api_key, model=gemini_model
            ),
        }
        self._provider: SpeechProvider | None = None
        self._engine: SpeechEngine | None = None

    @property
    def current(self) -> SpeechEngine | None:
        return self._engine

    async def get(self, settings: SpeechSettings) -> SpeechEngine:
        """Return the engine for settings.provider, reusing the cached one when possible."""
        if self._engine is not None and self._provider == settings.provider:
            self._engine.update_settings(settings)
            return self._engine

        if self._engine is not None:
            await self._engine.stop()
            logger.info(
                "speech_engine_replaced",
                old_provider=self._provider.value if self._provider else None,
                new_provider=settings.provider.value,
            )

        self._engine = self._builders[settings.provider](settings)
        self._provider = settings.provider
        return self._engine

    async def shutdown(self) -> None:
        """Stop and forget the cached engine."""
        if self._engine is not None:
            await self._engine.stop()
        self._engine = None
        self._provider = None
