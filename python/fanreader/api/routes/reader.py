"""Reader routes.

Routes are transport-only:
- Call exactly one ReaderSession operation
- Return success(...) with the resulting reader state, or raise ApiError

A navigation overtaken by a newer one still answers 200 with whatever state
is current; the overtaken result itself is discarded.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from fanreader.api.deps import get_reader_session
from fanreader.responses import success_response
from fanreader.schemas.reader import ChapterLinkOut, OpenChapterRequest, ReaderStateOut
from fanreader.services.reader_session import ReaderSession, ReaderState

router = APIRouter()


def state_out(state: ReaderState) -> dict:
    chapter = state.chapter
    return ReaderStateOut(
        url=state.url,
        index=state.index,
        work_title=chapter.work_title if chapter else "",
        chapter_title=chapter.chapter_title if chapter else "",
        body_html=chapter.body_html if chapter else "",
        paragraphs=state.paragraphs,
        chapters=[ChapterLinkOut.model_validate(link) for link in state.chapters],
        source=state.source,
        has_next=state.has_next,
        has_previous=state.has_previous,
    ).model_dump(mode="json")


@router.get("/reader")
async def get_reader_state(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
) -> dict:
    return success_response(state_out(session.state))


@router.post("/reader/open")
async def open_chapter(
    body: OpenChapterRequest,
    session: Annotated[ReaderSession, Depends(get_reader_session)],
) -> dict:
    """Open a work or chapter URL.

    Tries the logged-in session first, then the browser fallback.
    """
    await session.open(body.url)
    return success_response(state_out(session.state))


@router.post("/reader/next")
async def next_chapter(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
) -> dict:
    await session.next_chapter()
    return success_response(state_out(session.state))


@router.post("/reader/previous")
async def previous_chapter(
    session: Annotated[ReaderSession, Depends(get_reader_session)],
) -> dict:
    await session.previous_chapter()
    return success_response(state_out(session.state))


@router.post("/reader/chapters/{index}")
async def go_to_chapter(
    index: int,
    session: Annotated[ReaderSession, Depends(get_reader_session)],
) -> dict:
    await session.go_to(index)
    return success_response(state_out(session.state))
