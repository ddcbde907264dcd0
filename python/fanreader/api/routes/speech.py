"""Speech routes.

The server synthesizes (gemini) or prepares (device) speech and returns it
in the response; the client plays it.

- speak, paragraphs/{index}, next, previous: one utterance per call
- play, toggle: continuous narration of the current chapter in the background
- pause, resume, stop: control that narration
- GET narration: state plus every output produced since the last call
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from fanreader.api.deps import get_preferences, get_reader_session, get_speech_relay
from fanreader.errors import ApiErrorCode, InvalidRequestError
from fanreader.responses import success_response
from fanreader.schemas.speech import NarrationOut, PlayRequest, SpeakRequest, SpeechOut
from fanreader.services.preferences import PreferencesService
from fanreader.services.reader_session import ReaderSession
from fanreader.services.speech import Narrator, SpeechRelay

router = APIRouter()


def _speech_out(provider: str, relay: SpeechRelay, paragraph_index: int | None = None) -> dict:
    return SpeechOut(
        provider=provider, paragraph_index=paragraph_index, **relay.take()
    ).model_dump(mode="json")


def _narration_out(narrator: Narrator, relay: SpeechRelay) -> dict:
    provider = narrator.engine.provider
    return NarrationOut(
        provider=provider,
        playing=narrator.is_playing(),
        paused=narrator.is_paused(),
        paragraph_index=narrator.index,
        paragraph_count=narrator.paragraph_count,
        outputs=[SpeechOut(provider=provider, **output) for output in relay.drain()],
    ).model_dump(mode="json")


@router.post("/speech/speak")
async def speak_text(
    body: SpeakRequest,
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    prefs: Annotated[PreferencesService, Depends(get_preferences)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    """Speak arbitrary text with the configured engine."""
    engine = await session.speech_factory.get(await prefs.get_speech())
    await engine.speak(body.text)
    return success_response(_speech_out(engine.provider, relay))


@router.post("/speech/paragraphs/{index}")
async def speak_paragraph(
    index: int,
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    """Speak one paragraph of the open chapter."""
    narrator = await session.narrator()
    if not 0 <= index < narrator.paragraph_count:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST, f"Paragraph index {index} out of range"
        )
    await narrator.speak_one(index)
    return success_response(_speech_out(narrator.engine.provider, relay, narrator.index))


@router.post("/speech/next")
async def speak_next_paragraph(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    """Speak the paragraph after the last one spoken. Empty output at the end."""
    narrator = await session.narrator()
    await narrator.next()
    return success_response(_speech_out(narrator.engine.provider, relay, narrator.index))


@router.post("/speech/previous")
async def speak_previous_paragraph(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    narrator = await session.narrator()
    await narrator.previous()
    return success_response(_speech_out(narrator.engine.provider, relay, narrator.index))


@router.post("/speech/stop")
async def stop_speech(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    await session.stop_speech()
    relay.drain()
    return success_response({"stopped": True})


@router.post("/speech/play")
async def play_narration(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
    body: PlayRequest | None = None,
) -> dict:
    """Start reading the open chapter in the background.

    Outputs are collected with GET /speech/narration.
    """
    relay.drain()
    index = body.paragraph_index if body is not None else None
    narrator = await session.start_narration(index)
    return success_response(_narration_out(narrator, relay))


@router.post("/speech/toggle")
async def toggle_narration(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    """Stop continuous reading, or start it from the current paragraph."""
    narrator = await session.toggle_narration()
    return success_response(_narration_out(narrator, relay))


@router.post("/speech/pause")
async def pause_narration(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    narrator = await session.narrator()
    await narrator.pause()
    return success_response(_narration_out(narrator, relay))


@router.post("/speech/resume")
async def resume_narration(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    narrator = await session.narrator()
    await narrator.resume()
    return success_response(_narration_out(narrator, relay))


@router.get("/speech/narration")
async def get_narration(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    relay: Annotated[SpeechRelay, Depends(get_speech_relay)],
) -> dict:
    """Narration state and the outputs produced since the last call."""
    narrator = await session.narrator()
    return success_response(_narration_out(narrator, relay))
