"""Persistence of reader typography and speech settings.

Each settings object is stored as one JSON blob:
- prefs.reader: ReaderPreferences
- prefs.speech: SpeechSettings

A blob that is missing or fails validation reads as the defaults.
"""

import json

from pydantic import BaseModel, ValidationError

from fanreader.logging import get_logger
from fanreader.schemas.preferences import (
    ReaderPreferences,
    SpeechSettings,
    UpdateReaderPreferencesRequest,
    UpdateSpeechSettingsRequest,
)
from fanreader.storage import KeyValueStoreBase

logger = get_logger(__name__)

READER_PREFS_KEY = "prefs.reader"
SPEECH_PREFS_KEY = "prefs.speech"


class PreferencesService:
    """Load and update preference blobs in the key-value store."""

    def __init__(self, store: KeyValueStoreBase):
        self._store = store

    async def _load(self, key: str, model: type[BaseModel]) -> BaseModel:
        raw = await self._store.get(key)
        if not raw:
            return model()
        try:
            return model.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError):
            logger.warning("preferences_blob_invalid", key=key)
            return model()

    async def _merge(self, key: str, model: type[BaseModel], update: BaseModel) -> BaseModel:
        current = await self._load(key, model)
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        merged = model.model_validate({**current.model_dump(), **changes})
        await self._store.set(key, merged.model_dump_json())
        logger.info("preferences_updated", key=key, fields=sorted(changes))
        return merged

    async def get_reader(self) -> ReaderPreferences:
        return await self._load(READER_PREFS_KEY, ReaderPreferences)

    async def update_reader(self, update: UpdateReaderPreferencesRequest) -> ReaderPreferences:
        return await self._merge(READER_PREFS_KEY, ReaderPreferences, update)

    async def get_speech(self) -> SpeechSettings:
        return await self._load(SPEECH_PREFS_KEY, SpeechSettings)

    async def update_speech(self, update: UpdateSpeechSettingsRequest) -> SpeechSettings:
        return await self._merge(SPEECH_PREFS_KEY, SpeechSettings, update)
