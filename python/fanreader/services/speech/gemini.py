"""Gemini speech engine.

Synthesis request:
- POST https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent
- Header: x-goog-api-key: <key> (never in the query string)

Request body:
{
  "contents": [{"parts": [{"text": "..."}]}],
  "generationConfig": {
    "responseModalities": ["AUDIO"],
    "speechConfig": {
      "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": "Zephyr"}}
    }
  }
}

Response:
- audio = first candidates[0].content.parts[].inlineData.data (base64)
- mime type from inlineData.mimeType, audio/wav when absent
"""

import base64
import binascii

import httpx

from fanreader.errors import ApiErrorCode, SpeechError
from fanreader.logging import get_logger
from fanreader.schemas.preferences import SpeechSettings
from fanreader.services.speech.base import AudioSinkBase, SpeechAudio, SpeechEngine

logger = get_logger(__name__)

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
DEFAULT_MODEL = "gemini-2.5-flash-preview-tts"
DEFAULT_MIME_TYPE = "audio/wav"
DEFAULT_TIMEOUT_S = 60


def extract_audio(data: dict) -> SpeechAudio | None:
    """Return the first inline audio part of a generateContent response."""
    candidates = data.get("candidates") or []
    if not candidates:
        return None

    parts = (candidates[0].get("content") or {}).get("parts") or []
    for part in parts:
        inline = part.get("inlineData") or {}
        encoded = inline.get("data")
        if not encoded:
            continue
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError):
            return None
        return SpeechAudio(data=raw, mime_type=inline.get("mimeType") or DEFAULT_MIME_TYPE)
    return None


class GeminiSpeechEngine(SpeechEngine):
    """Synthesizes speech with Gemini and plays it through an AudioSinkBase."""

    provider = "gemini"

    def __init__(
        self,
        client: httpx.AsyncClient,
        sink: AudioSinkBase,
        settings: SpeechSettings,
        *,
        api_key: str | None,
        model: str = DEFAULT_MODEL,
        timeout_s: int = DEFAULT_TIMEOUT_S,
    ):
        """Initialize with the shared HTTP client and an audio sink.

        Args:
            client: Shared httpx.AsyncClient for connection pooling.
            sink: Where synthesized audio is played.
            settings: Voice selection.
            api_key: Gemini API key. speak() fails when it is missing.
            model: Model that produces audio output.
            timeout_s: Request timeout in seconds.
        """
        super().__init__(settings)
        self._client = client
        self._sink = sink
        self._api_key = api_key
        self._model = model
        self._timeout_s = timeout_s

    def _build_headers(self) -> dict[str, str]:
        return {
            "x-goog-api-key": self._api_key or "",
            "Content-Type": "application/json",
        }

    def _build_request_body(self, text: str) -> dict:
        return {
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": {
                "responseModalities": ["AUDIO"],
                "speechConfig": {
                    "voiceConfig": {
                        "prebuiltVoiceConfig": {"voiceName": self._settings.gemini_voice},
                    }
                },
            },
        }

    async def synthesize(self, text: str) -> SpeechAudio:
        """Request audio for text without playing it.

        Raises:
            SpeechError: E_SPEECH_NOT_CONFIGURED without an API key,
                E_SPEECH_FAILED on HTTP errors or a response without audio.
        """
        if not self._api_key:
            raise SpeechError(ApiErrorCode.E_SPEECH_NOT_CONFIGURED, "Gemini API key not configured")

        url = f"{GEMINI_BASE_URL}/{self._model}:generateContent"
        try:
            response = await self._client.post(
                url,
                headers=self._build_headers(),
                json=self._build_request_body(text),
                timeout=httpx.Timeout(self._timeout_s, connect=10.0),
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning("gemini_speech_http_error", status_code=e.response.status_code)
            raise SpeechError(
                ApiErrorCode.E_SPEECH_FAILED, f"Gemini returned {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("gemini_speech_request_failed", error_type=type(e).__name__)
            raise SpeechError(ApiErrorCode.E_SPEECH_FAILED, "Gemini request failed") from e
        except ValueError as e:
            raise SpeechError(ApiErrorCode.E_SPEECH_FAILED, "Gemini returned invalid JSON") from e

        audio = extract_audio(data)
        if audio is None:
            raise SpeechError(ApiErrorCode.E_SPEECH_FAILED, "No audio data in Gemini response")
        return audio

    async def speak(self, text: str) -> None:
        await self.stop()
        self._active = True
        try:
            audio = await self.synthesize(text)
            await self._sink.play(audio)
        finally:
            self._active = False
            self._paused = False

    async def stop(self) -> None:
        await self._sink.stop()
        self._active = False
        self._paused = False

    async def pause(self) -> None:
        if self._active and not self._paused:
            await self._sink.pause()
            self._paused = True

    async def resume(self) -> None:
        if self._paused:
            await self._sink.resume()
            self._paused = False
