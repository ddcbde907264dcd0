"""Preference routes for typography and speech settings."""

from typing import Annotated

from fastapi import APIRouter, Depends

from fanreader.api.deps import get_preferences
from fanreader.responses import success_response
from fanreader.schemas.preferences import (
    UpdateReaderPreferencesRequest,
    UpdateSpeechSettingsRequest,
)
from fanreader.services.preferences import PreferencesService

router = APIRouter()


@router.get("/preferences/reader")
async def get_reader_preferences(
    prefs: Annotated[PreferencesService, Depends(get_preferences)],
) -> dict:
    result = await prefs.get_reader()
    return success_response(result.model_dump(mode="json"))


@router.patch("/preferences/reader")
async def update_reader_preferences(
    body: UpdateReaderPreferencesRequest,
    prefs: Annotated[PreferencesService, Depends(get_preferences)],
) -> dict:
    """Update typography. Omitted fields keep their stored value."""
    result = await prefs.update_reader(body)
    return success_response(result.model_dump(mode="json"))


@router.get("/preferences/speech")
async def get_speech_settings(
    prefs: Annotated[PreferencesService, Depends(get_preferences)],
) -> dict:
    result = await prefs.get_speech()
    return success_response(result.model_dump(mode="json"))


@router.patch("/preferences/speech")
async def update_speech_settings(
    body: UpdateSpeechSettingsRequest,
    prefs: Annotated[PreferencesService, Depends(get_preferences)],
) -> dict:
    """Update speech settings. A provider change takes effect on the next speak call."""
    result = await prefs.update_speech(body)
    return success_response(result.model_dump(mode="json"))
