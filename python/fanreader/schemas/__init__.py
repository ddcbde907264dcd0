"""Pydantic schemas for request/response models.

All schemas are re-exported here for convenient imports.
"""

from fanreader.schemas.comments import AuthorOut, CommentOut, CommentPageOut, ReplyOut
from fanreader.schemas.preferences import (
    ReaderPreferences,
    SpeechProvider,
    SpeechSettings,
    UpdateReaderPreferencesRequest,
    UpdateSpeechSettingsRequest,
)
from fanreader.schemas.reader import ChapterLinkOut, OpenChapterRequest, ReaderStateOut
from fanreader.schemas.session import LoginRequest, SessionOut
from fanreader.schemas.speech import (
    AudioOut,
    NarrationOut,
    PlayRequest,
    SpeakRequest,
    SpeechOut,
    UtteranceOut,
)

__all__ = [
    # Comments
    "AuthorOut",
    "CommentOut",
    "CommentPageOut",
    "ReplyOut",
    # Preferences
    "ReaderPreferences",
    "SpeechProvider",
    "SpeechSettings",
    "UpdateReaderPreferencesRequest",
    "UpdateSpeechSettingsRequest",
    # Reader
    "ChapterLinkOut",
    "OpenChapterRequest",
    "ReaderStateOut",
    # Session
    "LoginRequest",
    "SessionOut",
    # Speech
    "AudioOut",
    "NarrationOut",
    "PlayRequest",
    "SpeakRequest",
    "SpeechOut",
    "UtteranceOut",
]
