"""Text-to-speech for chapter narration.

Provides one engine interface with two providers:

- device: the client platform's synthesizer
- gemini: remote synthesis through the Gemini API

Usage:
    from fanreader.services.speech import SpeechEngineFactory, Narrator

    factory = SpeechEngineFactory(httpx_client, device_backend=relay, audio_sink=relay)
    engine = await factory.get(settings)
    narrator = Narrator(engine, paragraphs)
    await narrator.play_from(0)
"""

from fanreader.services.speech.base import (
    AudioSinkBase,
    DeviceSpeechBackendBase,
    SpeechAudio,
    SpeechEngine,
    Utterance,
)
from fanreader.services.speech.device import DeviceSpeechEngine
from fanreader.services.speech.factory import SpeechEngineFactory
from fanreader.services.speech.gemini import GeminiSpeechEngine, extract_audio
from fanreader.services.speech.narrator import Narrator
from fanreader.services.speech.relay import SpeechRelay

__all__ = [
    # Interfaces
    "SpeechEngine",
    "DeviceSpeechBackendBase",
    "AudioSinkBase",
    "Utterance",
    "SpeechAudio",
    # Engines
    "DeviceSpeechEngine",
    "GeminiSpeechEngine",
    "extract_audio",
    # Orchestration
    "SpeechEngineFactory",
    "Narrator",
    "SpeechRelay",
]
