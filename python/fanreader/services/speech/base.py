"""Speech engine interface and the collaborators engines drive.

Every engine exposes the same capability set (speak, stop, pause, resume,
is_active). Callers pick an engine by provider name through the factory and
never inspect its concrete type.

Rules:
- speak() returns once the text has been handed off and played (or stopped)
- stop() is safe to call when idle
- Engines never log the spoken text
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from fanreader.schemas.preferences import SpeechSettings


@dataclass(frozen=True)
class Utterance:
    """Text plus voice parameters for an on-device synthesizer."""

    text: str
    language: str
    rate: float
    pitch: float


@dataclass(frozen=True)
class SpeechAudio:
    """Synthesized audio ready for playback."""

    data: bytes
    mime_type: str


class DeviceSpeechBackendBase(ABC):
    """Platform text-to-speech used by the device engine."""

    @abstractmethod
    async def speak(self, utterance: Utterance) -> None:
        """Speak the utterance, returning when it finishes or is stopped."""
        ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    async def pause(self) -> None: ...

    @abstractmethod
    async def resume(self) -> None: ...


class AudioSinkBase(ABC):
    """Audio output used by engines that synthesize remotely."""

    @abstractmethod
    async def play(self, audio: SpeechAudio) -> None:
        """Play the clip, returning when playback finishes or is stopped."""
        ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    async def pause(self) -> None: ...

    @abstractmethod
    async def resume(self) -> None: ...


class SpeechEngine(ABC):
    """Abstract base class for speech engines."""

    provider: str = ""

    def __init__(self, settings: SpeechSettings):
        self._settings = settings
        self._active = False
        self._paused = False

    @property
    def settings(self) -> SpeechSettings:
        return self._settings

    def update_settings(self, settings: SpeechSettings) -> None:
        """Apply new voice parameters to subsequent speak() calls."""
        self._settings = settings

    def is_active(self) -> bool:
        """True while speech is playing or paused."""
        return self._active

    def is_paused(self) -> bool:
        return self._paused

    @abstractmethod
    async def speak(self, text: str) -> None:
        """Speak text, stopping anything already playing.

        Raises:
            SpeechError: If synthesis fails or the engine is not configured.
        """
        ...

    @abstractmethod
    async def stop(self) -> None: ...

    @abstractmethod
    async def pause(self) -> None: ...

    @abstractmethod
    async def resume(self) -> None: ...
