"""Comment routes.

Comments are best-effort: an unreachable comments page answers 200 with an
empty page rather than an error.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from fanreader.api.deps import get_archive_client, get_reader_session
from fanreader.errors import ApiError, ApiErrorCode
from fanreader.responses import success_response
from fanreader.schemas.comments import CommentPageOut
from fanreader.services.archive_client import ArchiveClient
from fanreader.services.archive_urls import validate_reader_url
from fanreader.services.comments import load_comments, paginate_comments
from fanreader.services.reader_session import ReaderSession

router = APIRouter()


@router.get("/comments")
async def get_comments(
    request: Request,
    client: Annotated[ArchiveClient, Depends(get_archive_client)],
    session: Annotated[ReaderSession, Depends(get_reader_session)],
    url: Annotated[str | None, Query(max_length=2048, description="Chapter URL")] = None,
    page: Annotated[int, Query(ge=0, description="Zero-based page of root comments")] = 0,
) -> dict:
    """List one page of a chapter's comments.

    Defaults to the chapter currently open in the reader.
    """
    chapter_url = url or session.state.url
    if not chapter_url:
        raise ApiError(ApiErrorCode.E_NO_ACTIVE_WORK, "No chapter is open")
    chapter_url = validate_reader_url(chapter_url, client.base_url)

    roots = await load_comments(client, chapter_url)
    result = paginate_comments(roots, page, request.app.state.settings.comments_page_size)
    return success_response(CommentPageOut.model_validate(result).model_dump(mode="json"))
