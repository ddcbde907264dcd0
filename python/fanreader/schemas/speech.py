"""Speech request/response schemas."""

from pydantic import BaseModel, ConfigDict, Field


class SpeakRequest(BaseModel):
    text: str = Field(min_length=1, max_length=20_000)

    model_config = ConfigDict(extra="forbid")


class UtteranceOut(BaseModel):
    """Text for the client's on-device synthesizer."""

    text: str
    language: str
    rate: float
    pitch: float


class AudioOut(BaseModel):
    """Synthesized audio, base64 encoded."""

    mime_type: str
    data: str


class SpeechOut(BaseModel):
    """Result of a speak call. Exactly one of utterance/audio is set."""

    provider: str
    paragraph_index: int | None = None
    utterance: UtteranceOut | None = None
    audio: AudioOut | None = None


class PlayRequest(BaseModel):
    """Start continuous narration. Without paragraph_index, from the current paragraph."""

    paragraph_index: int | None = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


class NarrationOut(BaseModel):
    """Narration state plus the outputs produced since the last poll, oldest first."""

    provider: str
    playing: bool
    paused: bool
    paragraph_index: int
    paragraph_count: int
    outputs: list[SpeechOut] = Field(default_factory=list)
