"""URL validation and normalization for archive pages.

Functions:
- validate_reader_url(): Strict validation of a URL the reader is asked to open
- normalize_chapter_href(): Resolve a chapter link against the archive origin
- extract_work_id(): Recover the work id from a work or chapter URL
- is_work_root(): Whether a URL is a work page without a chapter
- build_comments_url(): Chapter URL with comments expanded

Key behaviors:
- Scheme must be http or https
- Length must be <= 2048 characters
- Host must match the archive origin's host
- Fragment (#...) is stripped when validating
"""

import html
import re
from urllib.parse import urlparse, urlunparse

from fanreader.errors import ApiErrorCode, InvalidRequestError

MAX_URL_LENGTH = 2048

ALLOWED_SCHEMES = {"http", "https"}

ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
BARE_CHAPTER_ID_RE = re.compile(r"^\d+$")
WORK_ID_RE = re.compile(r"/works/(\d+)")
WORK_ROOT_PATH_RE = re.compile(r"^/works/\d+/?$")


def validate_reader_url(url: str, base_url: str) -> str:
    """Validate a work/chapter URL and return it without its fragment.

    Args:
        url: The URL to open.
        base_url: Archive origin; the URL must point at the same host.

    Returns:
        The URL with scheme and host lowercased and any fragment removed.

    Raises:
        InvalidRequestError: If the URL is not an archive http(s) URL.
    """
    if not url or len(url) > MAX_URL_LENGTH:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "URL is empty or too long")

    parsed = urlparse(url.strip())
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "URL must use http or https")

    if not parsed.hostname:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "URL must have a host")

    archive_host = urlparse(base_url).hostname
    if parsed.hostname.lower() != (archive_host or "").lower():
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_REQUEST, "URL must point at the archive site"
        )

    return urlunparse(
        (
            parsed.scheme.lower(),
            parsed.netloc.lower(),
            parsed.path,
            parsed.params,
            parsed.query,
            "",
        )
    )


def extract_work_id(page_url: str) -> str | None:
    """Return the numeric work id in page_url's path, if any."""
    match = WORK_ID_RE.search(urlparse(page_url).path)
    return match.group(1) if match else None


def is_work_root(url: str) -> bool:
    """True for a work page URL that names no chapter, like /works/123."""
    return bool(WORK_ROOT_PATH_RE.match(urlparse(url).path))


def normalize_chapter_href(href: str | None, page_url: str, origin: str) -> str | None:
    """Resolve a chapter link to an absolute URL.

    - Absolute http(s) URLs are returned unchanged
    - A bare numeric id becomes {origin}/works/{workId}/chapters/{id}, with the
      work id taken from page_url
    - Site-relative paths get the origin prepended
    - Anything else is joined to the origin with a slash

    Returns:
        The absolute URL, or None for an empty href.
    """
    if not href:
        return None
    href = html.unescape(href).strip()
    if not href:
        return None

    origin = origin.rstrip("/")

    if ABSOLUTE_URL_RE.match(href):
        return href

    if BARE_CHAPTER_ID_RE.match(href):
        work_id = extract_work_id(page_url)
        if work_id:
            return f"{origin}/works/{work_id}/chapters/{href}"

    if href.startswith("/"):
        return f"{origin}{href}"

    return f"{origin}/{href}"


def build_comments_url(chapter_url: str) -> str:
    """Return chapter_url with show_comments=true and a #comments fragment."""
    base, _, _ = chapter_url.partition("#")
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}show_comments=true#comments"
