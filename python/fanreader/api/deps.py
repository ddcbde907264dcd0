"""FastAPI dependencies for route handlers.

All shared objects are created in the app lifespan and stored in app.state.
"""

from fastapi import Request

from fanreader.services.archive_client import ArchiveClient
from fanreader.services.preferences import PreferencesService
from fanreader.services.reader_session import ReaderSession
from fanreader.services.speech import SpeechRelay


def get_archive_client(request: Request) -> ArchiveClient:
    return request.app.state.archive_client


def get_reader_session(request: Request) -> ReaderSession:
    return request.app.state.reader_session


def get_preferences(request: Request) -> PreferencesService:
    return request.app.state.preferences


def get_speech_relay(request: Request) -> SpeechRelay:
    """Relay that receives speech output for the HTTP response."""
    return request.app.state.speech_relay
