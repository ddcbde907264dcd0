"""Chapter extraction from raw archive page HTML.

Extraction is pattern based, tuned to the archive's markup. Nothing here is a
general HTML parser: nested elements of the same tag end a container early.

Body containers, tried in order (first non-empty capture wins, returned as-is):
1. div whose class contains "userstuff ... module"
2. div#chapters
3. div whose class contains "workskin"
4. div#chapter-<anything>

Chapter links:
- Options of the select#selected_id chapter picker (value + label)
- Otherwise anchors inside ol.chapter, #chapter_index, .chapter_list, .chapters
- Deduplicated by absolute URL, first occurrence kept
"""

import html
import re
from dataclasses import dataclass, field

from fanreader.errors import ContentNotFoundError
from fanreader.services.archive_urls import normalize_chapter_href

BODY_PATTERNS = (
    re.compile(
        r"""<div[^>]*class=(?:"|')?[^"'<>]*userstuff[^"'<>]*module[^"'<>]*?(?:"|')?[^>]*>([\s\S]*?)</div>""",
        re.IGNORECASE,
    ),
    re.compile(r"""<div[^>]*id=(?:"|')?chapters(?:"|')?[^>]*>([\s\S]*?)</div>""", re.IGNORECASE),
    re.compile(
        r"""<div[^>]*class=(?:"|')?[^"'<>]*workskin[^"'<>]*?(?:"|')?[^>]*>([\s\S]*?)</div>""",
        re.IGNORECASE,
    ),
    re.compile(
        r"""<div[^>]*id=(?:"|')?chapter-[^"'<>]+(?:"|')?[^>]*>([\s\S]*?)</div>""", re.IGNORECASE
    ),
)

CHAPTER_SELECT_RE = re.compile(
    r"""<select[^>]*\bid=["']?selected_id["']?[^>]*>([\s\S]*?)</select>""", re.IGNORECASE
)
OPTION_RE = re.compile(r"<option\b([^>]*)>([\s\S]*?)</option>", re.IGNORECASE)
VALUE_ATTR_RE = re.compile(r"""\bvalue=["']([^"']*)["']""", re.IGNORECASE)
SELECTED_ATTR_RE = re.compile(r"\bselected\b", re.IGNORECASE)
ANCHOR_RE = re.compile(r"""<a\b[^>]*\bhref=["']([^"']*)["'][^>]*>([\s\S]*?)</a>""", re.IGNORECASE)

WORK_TITLE_RE = re.compile(
    r"""<h2[^>]*class=["'](?:[^"']*\s)?title(?:\s[^"']*)?["'][^>]*>([\s\S]*?)</h2>""",
    re.IGNORECASE,
)
CHAPTER_HEADING_RE = re.compile(
    r"""<h3[^>]*class=["'](?:[^"']*\s)?title(?:\s[^"']*)?["'][^>]*>([\s\S]*?)</h3>""",
    re.IGNORECASE,
)
DOCUMENT_TITLE_RE = re.compile(r"<title[^>]*>([\s\S]*?)</title>", re.IGNORECASE)

PARAGRAPH_RE = re.compile(r"<p(?:\s[^>]*)?>(.*?)</p>", re.IGNORECASE | re.DOTALL)
TAG_RE = re.compile(r"<[^>]+>")
WHITESPACE_RE = re.compile(r"\s+")


def _class_container(class_name: str, tag: str = r"[a-z][a-z0-9]*") -> re.Pattern[str]:
    return re.compile(
        rf"""<(?P<tag>{tag})\b[^>]*\bclass=["'](?:[^"']*\s)?{class_name}(?:\s[^"']*)?["'][^>]*>"""
        r"(?P<inner>[\s\S]*?)</(?P=tag)>",
        re.IGNORECASE,
    )


LINK_CONTAINER_PATTERNS = (
    _class_container("chapter", tag="ol"),
    re.compile(
        r"""<(?P<tag>[a-z][a-z0-9]*)\b[^>]*\bid=["']chapter_index["'][^>]*>"""
        r"(?P<inner>[\s\S]*?)</(?P=tag)>",
        re.IGNORECASE,
    ),
    _class_container("chapter_list"),
    _class_container("chapters"),
)


@dataclass(frozen=True)
class ChapterLink:
    """One entry of a work's chapter list."""

    url: str
    label: str


@dataclass(frozen=True)
class ChapterPageData:
    """Everything the reader needs from one chapter page."""

    work_title: str
    chapter_title: str
    body_html: str
    sibling_chapters: list[ChapterLink] = field(default_factory=list)
    selected_chapter_url: str | None = None


def clean_text(fragment: str) -> str:
    """Strip tags, decode entities and collapse whitespace."""
    text = TAG_RE.sub(" ", fragment)
    text = html.unescape(text)
    return WHITESPACE_RE.sub(" ", text).strip()


def extract_body(page_html: str) -> str:
    """Return the inner markup of the first recognized chapter container.

    Raises:
        ContentNotFoundError: If no container yields non-empty markup.
    """
    for pattern in BODY_PATTERNS:
        match = pattern.search(page_html)
        if match and match.group(1).strip():
            return match.group(1)
    raise ContentNotFoundError()


def _dedupe(links: list[ChapterLink]) -> list[ChapterLink]:
    seen: set[str] = set()
    unique: list[ChapterLink] = []
    for link in links:
        if link.url in seen:
            continue
        seen.add(link.url)
        unique.append(link)
    return unique


def _picker_options(page_html: str) -> list[tuple[str, str, bool]]:
    """Return (value, label, selected) for each chapter-picker option."""
    select = CHAPTER_SELECT_RE.search(page_html)
    if not select:
        return []
    options = []
    for attrs, label in OPTION_RE.findall(select.group(1)):
        value_match = VALUE_ATTR_RE.search(attrs)
        value = value_match.group(1) if value_match else ""
        options.append((value, clean_text(label), bool(SELECTED_ATTR_RE.search(attrs))))
    return options


def extract_chapter_links(page_html: str, page_url: str, origin: str) -> list[ChapterLink]:
    """Return the work's chapter links in document order, deduplicated."""
    links: list[ChapterLink] = []
    for value, label, _ in _picker_options(page_html):
        url = normalize_chapter_href(value, page_url, origin)
        if url:
            links.append(ChapterLink(url=url, label=label))

    if not links:
        found: list[tuple[int, ChapterLink]] = []
        for pattern in LINK_CONTAINER_PATTERNS:
            for container in pattern.finditer(page_html):
                offset = container.start("inner")
                for anchor in ANCHOR_RE.finditer(container.group("inner")):
                    url = normalize_chapter_href(anchor.group(1), page_url, origin)
                    if url:
                        link = ChapterLink(url=url, label=clean_text(anchor.group(2)))
                        found.append((offset + anchor.start(), link))
        found.sort(key=lambda item: item[0])
        links = [link for _, link in found]

    return _dedupe(links)


def extract_selected_chapter_url(page_html: str, page_url: str, origin: str) -> str | None:
    """URL of the picker option marked selected, or None without one."""
    for value, _, selected in _picker_options(page_html):
        if selected:
            return normalize_chapter_href(value, page_url, origin)
    return None


def extract_work_title(page_html: str) -> str:
    match = WORK_TITLE_RE.search(page_html)
    if match:
        title = clean_text(match.group(1))
        if title:
            return title
    match = DOCUMENT_TITLE_RE.search(page_html)
    return clean_text(match.group(1)) if match else ""


def extract_chapter_title(page_html: str, work_title: str) -> str:
    """Selected picker option, else the chapter heading, else the work title.

    With no option marked selected, the first option counts as selected.
    """
    options = _picker_options(page_html)
    if options:
        selected = next((o for o in options if o[2]), options[0])
        if selected[1]:
            return selected[1]

    match = CHAPTER_HEADING_RE.search(page_html)
    if match:
        heading = clean_text(match.group(1))
        if heading:
            return heading

    return work_title


def extract_chapter(page_html: str, page_url: str, origin: str) -> ChapterPageData:
    """Extract chapter body, titles and sibling links from a chapter page.

    Args:
        page_html: Raw page HTML.
        page_url: URL the page was loaded from (used to resolve bare chapter ids).
        origin: Archive origin used to absolutize links.

    Raises:
        ContentNotFoundError: If the page has no chapter body.
    """
    body_html = extract_body(page_html)
    work_title = extract_work_title(page_html)
    return ChapterPageData(
        work_title=work_title,
        chapter_title=extract_chapter_title(page_html, work_title),
        body_html=body_html,
        sibling_chapters=extract_chapter_links(page_html, page_url, origin),
        selected_chapter_url=extract_selected_chapter_url(page_html, page_url, origin),
    )


def extract_paragraphs(body_html: str) -> list[str]:
    """Return the plain text of each non-empty <p> in body_html, in order.

    Inline tags are removed without a gap so "<em>word</em>." stays "word.".
    """
    paragraphs = []
    for inner in PARAGRAPH_RE.findall(body_html):
        text = clean_text(TAG_RE.sub("", inner))
        if text:
            paragraphs.append(text)
    return paragraphs
