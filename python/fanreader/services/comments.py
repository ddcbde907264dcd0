"""Comment forest reconstruction from a chapter page rendered with comments.

The archive renders every comment and reply as an <li class="... comment ...">
with id="comment_<n>". Replies sit inside an <ol class="thread"> nested in the
parent's <li>. Structure is recovered from the text alone:

1. Scan: find each comment element's opening tag. Its markup runs to the first
   </li> after it, or to the next comment element, whichever comes first.
2. Depth: an element is a reply when the last thread-open tag before it comes
   after the last comment-item-open tag before it.
3. Parent: the nearest preceding <li id="comment_<n>"> is the reply's parent.
4. Assembly: roots first, then replies in document order. A reply attaches to
   a root or to an already attached reply with the parent id; otherwise it is
   dropped.

This is a positional heuristic, not bracket matching. Sibling replies after
the first in one thread are seen as roots, and a thread list wrapping the
top-level comments turns the first of them into a parentless reply.

Elements without body text are dropped. Pagination slices the root list only;
replies always travel with their root.
"""

import html
import math
import re
from bisect import bisect_left
from collections.abc import Iterator
from dataclasses import dataclass, field

from fanreader.errors import ApiErrorCode, ArchiveNetworkError
from fanreader.logging import get_logger
from fanreader.services.archive_client import ArchiveClient
from fanreader.services.archive_urls import build_comments_url
from fanreader.services.chapter_extract import clean_text

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 30

ANONYMOUS_NAME = "Anonymous"
UNKNOWN_DATE = "Unknown Date"
UNKNOWN_CHAPTER = "Unknown Chapter"

# Class and id may appear in either order on the element.
COMMENT_ELEMENT_RE = re.compile(
    r'<li(?=[^>]*class="[^"]*comment[^"]*")(?=[^>]*id="comment_(\d+)")[^>]*>', re.IGNORECASE
)
THREAD_OPEN_RE = re.compile(r'<ol[^>]*class="[^"]*thread[^"]*"[^>]*>', re.IGNORECASE)
COMMENT_ITEM_OPEN_RE = re.compile(r'<li[^>]*class="[^"]*comment[^"]*"[^>]*>', re.IGNORECASE)
COMMENT_ID_OPEN_RE = re.compile(r'<li[^>]*id="comment_(\d+)"[^>]*>', re.IGNORECASE)
LI_CLOSE_RE = re.compile(r"</li>", re.IGNORECASE)

AVATAR_RE = re.compile(
    r'<div[^>]*class="icon"[^>]*>[\s\S]*?<img[^>]*src="([^"]*active_storage[^"]*)"',
    re.IGNORECASE,
)
AUTHOR_RE = re.compile(
    r'<a[^>]*href="/users/([^"]+)/pseuds/[^"]*"[^>]*>([^<]+)</a>', re.IGNORECASE
)
POSTED_SPAN_RE = re.compile(
    r'<span[^>]*class="posted datetime"[^>]*>([\s\S]*?)</span>', re.IGNORECASE
)
PUBLISHED_ABBR_RE = re.compile(
    r'<abbr[^>]*class="published"[^>]*title="[^"]*"[^>]*>([^<]+)</abbr>', re.IGNORECASE
)
BODY_RE = re.compile(
    r'<blockquote[^>]*class="userstuff"[^>]*>([\s\S]*?)</blockquote>', re.IGNORECASE
)
CHAPTER_LINK_RE = re.compile(
    r'<a[^>]*href="/works/\d+/chapters/\d+"[^>]*>([^<]+)</a>', re.IGNORECASE
)


@dataclass(frozen=True)
class Author:
    display_name: str
    profile_path: str


@dataclass
class Reply:
    """A comment nested under another comment or reply."""

    id: str
    author: Author
    avatar_url: str | None
    date_posted: str
    body_text: str
    replies: list["Reply"] = field(default_factory=list)


@dataclass
class Comment:
    """A top-level comment on a chapter."""

    id: str
    author: Author
    avatar_url: str | None
    date_posted: str
    body_text: str
    chapter_title: str
    replies: list[Reply] = field(default_factory=list)


@dataclass(frozen=True)
class ScannedElement:
    """One comment element found in the page, before field extraction."""

    id: str
    start: int
    markup: str
    is_reply: bool
    parent_id: str | None


@dataclass(frozen=True)
class CommentFields:
    author: Author
    avatar_url: str | None
    date_posted: str
    body_text: str


@dataclass(frozen=True)
class CommentPage:
    """One page of root comments."""

    items: list[Comment]
    page: int
    page_size: int
    total: int
    total_pages: int


def _last_before(positions: list[int], start: int) -> int:
    """Index into positions of the last entry strictly before start, or -1."""
    return bisect_left(positions, start) - 1


def scan_comments(page_html: str) -> list[ScannedElement]:
    """Locate comment elements and classify each as root or reply."""
    openings = list(COMMENT_ELEMENT_RE.finditer(page_html))

    thread_positions = [m.start() for m in THREAD_OPEN_RE.finditer(page_html)]
    item_positions = [m.start() for m in COMMENT_ITEM_OPEN_RE.finditer(page_html)]
    id_matches = list(COMMENT_ID_OPEN_RE.finditer(page_html))
    id_positions = [m.start() for m in id_matches]

    scanned: list[ScannedElement] = []
    seen_ids: set[str] = set()

    for index, opening in enumerate(openings):
        comment_id = opening.group(1)
        start = opening.start()

        next_start = openings[index + 1].start() if index + 1 < len(openings) else len(page_html)
        close = LI_CLOSE_RE.search(page_html, opening.end(), next_start)
        end = close.end() if close else next_start

        if comment_id in seen_ids:
            logger.debug("comment_duplicate_id_skipped", comment_id=comment_id)
            continue
        seen_ids.add(comment_id)

        thread_idx = _last_before(thread_positions, start)
        item_idx = _last_before(item_positions, start)
        last_thread = thread_positions[thread_idx] if thread_idx >= 0 else -1
        last_item = item_positions[item_idx] if item_idx >= 0 else -1
        is_reply = last_thread > last_item

        parent_id = None
        if is_reply:
            parent_idx = _last_before(id_positions, start)
            if parent_idx >= 0:
                parent_id = id_matches[parent_idx].group(1)

        scanned.append(
            ScannedElement(
                id=comment_id,
                start=start,
                markup=page_html[start:end],
                is_reply=is_reply,
                parent_id=parent_id,
            )
        )

    return scanned


def extract_comment_fields(markup: str) -> CommentFields | None:
    """Pull author, avatar, date and body out of one element's markup.

    Returns:
        The fields, or None when the element has no body text.
    """
    body_match = BODY_RE.search(markup)
    body_text = clean_text(body_match.group(1)) if body_match else ""
    if not body_text:
        return None

    avatar_match = AVATAR_RE.search(markup)

    author_match = AUTHOR_RE.search(markup)
    if author_match:
        author = Author(
            display_name=html.unescape(author_match.group(2)).strip(),
            profile_path=f"/users/{author_match.group(1)}",
        )
    else:
        author = Author(display_name=ANONYMOUS_NAME, profile_path="")

    date_posted = UNKNOWN_DATE
    posted_match = POSTED_SPAN_RE.search(markup)
    if posted_match:
        date_posted = clean_text(posted_match.group(1)) or UNKNOWN_DATE
    if date_posted == UNKNOWN_DATE:
        published_match = PUBLISHED_ABBR_RE.search(markup)
        if published_match:
            date_posted = html.unescape(published_match.group(1)).strip() or UNKNOWN_DATE

    return CommentFields(
        author=author,
        avatar_url=avatar_match.group(1) if avatar_match else None,
        date_posted=date_posted,
        body_text=body_text,
    )


def build_comment_tree(scanned: list[ScannedElement]) -> list[Comment]:
    """Assemble scanned elements into a forest of root comments."""
    roots: list[Comment] = []
    root_by_id: dict[str, Comment] = {}

    for element in scanned:
        if element.is_reply:
            continue
        fields = extract_comment_fields(element.markup)
        if fields is None:
            continue
        chapter_match = CHAPTER_LINK_RE.search(element.markup)
        comment = Comment(
            id=element.id,
            author=fields.author,
            avatar_url=fields.avatar_url,
            date_posted=fields.date_posted,
            body_text=fields.body_text,
            chapter_title=(
                html.unescape(chapter_match.group(1)).strip() if chapter_match else UNKNOWN_CHAPTER
            ),
        )
        roots.append(comment)
        root_by_id[comment.id] = comment

    reply_by_id: dict[str, Reply] = {}
    for element in scanned:
        if not element.is_reply or element.parent_id is None:
            continue
        fields = extract_comment_fields(element.markup)
        if fields is None:
            continue
        reply = Reply(
            id=element.id,
            author=fields.author,
            avatar_url=fields.avatar_url,
            date_posted=fields.date_posted,
            body_text=fields.body_text,
        )
        parent = root_by_id.get(element.parent_id) or reply_by_id.get(element.parent_id)
        if parent is None:
            logger.debug("comment_reply_orphaned", comment_id=element.id, parent_id=element.parent_id)
            continue
        parent.replies.append(reply)
        reply_by_id[reply.id] = reply

    return roots


def parse_comments(page_html: str) -> list[Comment]:
    """Parse a comments page into a forest of root comments."""
    return build_comment_tree(scan_comments(page_html))


def iter_replies(node: Comment | Reply) -> Iterator[tuple[int, Reply]]:
    """Yield (depth, reply) for every reply under node, depth-first in document order.

    Direct replies have depth 1. Uses an explicit stack, so nesting depth is
    not bounded by the interpreter's recursion limit.
    """
    stack = [(1, reply) for reply in reversed(node.replies)]
    while stack:
        depth, reply = stack.pop()
        yield depth, reply
        stack.extend((depth + 1, child) for child in reversed(reply.replies))


def count_replies(roots: list[Comment]) -> int:
    return sum(1 for root in roots for _ in iter_replies(root))


def paginate_comments(
    roots: list[Comment], page: int = 0, page_size: int = DEFAULT_PAGE_SIZE
) -> CommentPage:
    """Slice the root list into fixed-size pages.

    Args:
        roots: Parsed root comments.
        page: Zero-based page index. Pages past the end are empty.
        page_size: Roots per page.

    Raises:
        ValueError: If page is negative or page_size is below 1.
    """
    if page < 0:
        raise ValueError("page must be >= 0")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")

    total = len(roots)
    start = page * page_size
    return CommentPage(
        items=roots[start : start + page_size],
        page=page,
        page_size=page_size,
        total=total,
        total_pages=math.ceil(total / page_size),
    )


async def load_comments(client: ArchiveClient, chapter_url: str) -> list[Comment]:
    """Fetch a chapter's comments page and parse it.

    Best-effort: transport failures and non-success statuses are logged and
    yield an empty list.
    """
    url = build_comments_url(chapter_url)
    try:
        response = await client.authenticated_get(url)
    except ArchiveNetworkError:
        logger.warning(
            "comments_unavailable",
            code=ApiErrorCode.E_COMMENTS_UNAVAILABLE.value,
            reason="network",
        )
        return []

    if not response.is_success:
        logger.warning(
            "comments_unavailable",
            code=ApiErrorCode.E_COMMENTS_UNAVAILABLE.value,
            reason="status",
            status_code=response.status_code,
        )
        return []

    roots = parse_comments(response.text)
    logger.info("comments_parsed", roots=len(roots), replies=count_replies(roots))
    return roots
