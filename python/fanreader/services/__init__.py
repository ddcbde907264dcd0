"""Reader services.

Services are called by route handlers and orchestrate archive access,
extraction, persistence and narration.
"""

from fanreader.services.archive_client import ArchiveClient, LoginForm, extract_identity
from fanreader.services.chapter_extract import (
    ChapterLink,
    ChapterPageData,
    extract_chapter,
    extract_paragraphs,
)
from fanreader.services.comments import (
    Comment,
    CommentPage,
    Reply,
    iter_replies,
    load_comments,
    paginate_comments,
    parse_comments,
)
from fanreader.services.cookie_store import CookieStore, parse_set_cookie
from fanreader.services.preferences import PreferencesService
from fanreader.services.reader_session import ReaderSession, ReaderState

__all__ = [
    "ArchiveClient",
    "LoginForm",
    "extract_identity",
    "ChapterLink",
    "ChapterPageData",
    "extract_chapter",
    "extract_paragraphs",
    "Comment",
    "CommentPage",
    "Reply",
    "iter_replies",
    "load_comments",
    "paginate_comments",
    "parse_comments",
    "CookieStore",
    "parse_set_cookie",
    "PreferencesService",
    "ReaderSession",
    "ReaderState",
]
