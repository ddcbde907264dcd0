"""Reader typography and speech preference schemas.

Both are persisted as JSON blobs in the key-value store. Update schemas carry
only the fields being changed; unset fields keep their stored value.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class SpeechProvider(str, Enum):
    """Available speech engines."""

    DEVICE = "device"
    GEMINI = "gemini"


# =============================================================================
# Stored Preferences
# =============================================================================


class ReaderPreferences(BaseModel):
    """Typography used to render chapter text."""

    font_size: int = Field(default=16, ge=12, le=32)
    line_height: int = Field(default=24, ge=16, le=48)
    paragraph_spacing: int = Field(default=12, ge=0, le=40)
    padding: int = Field(default=20, ge=0, le=60)


class SpeechSettings(BaseModel):
    """Speech engine selection and voice parameters."""

    provider: SpeechProvider = SpeechProvider.DEVICE
    language: str = Field(default="pt-BR", min_length=2, max_length=35)
    rate: float = Field(default=1.0, ge=0.1, le=4.0)
    pitch: float = Field(default=1.0, ge=0.1, le=2.0)
    gemini_voice: str = Field(default="Zephyr", min_length=1, max_length=64)


# =============================================================================
# Request Schemas
# =============================================================================


class UpdateReaderPreferencesRequest(BaseModel):
    font_size: int | None = Field(default=None, ge=12, le=32)
    line_height: int | None = Field(default=None, ge=16, le=48)
    paragraph_spacing: int | None = Field(default=None, ge=0, le=40)
    padding: int | None = Field(default=None, ge=0, le=60)

    model_config = ConfigDict(extra="forbid")


class UpdateSpeechSettingsRequest(BaseModel):
    provider: SpeechProvider | None = None
    language: str | None = Field(default=None, min_length=2, max_length=35)
    rate: float | None = Field(default=None, ge=0.1, le=4.0)
    pitch: float | None = Field(default=None, ge=0.1, le=2.0)
    gemini_voice: str | None = Field(default=None, min_length=1, max_length=64)

    model_config = ConfigDict(extra="forbid")
