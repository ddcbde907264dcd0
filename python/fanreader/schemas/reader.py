"""Reader navigation and chapter schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Where the current chapter's HTML came from
CHAPTER_SOURCES = Literal["session", "browser"]


class OpenChapterRequest(BaseModel):
    """Open a work or chapter by URL."""

    url: str = Field(min_length=1, max_length=2048)

    model_config = ConfigDict(extra="forbid")


class ChapterLinkOut(BaseModel):
    url: str
    label: str

    model_config = ConfigDict(from_attributes=True)


class ReaderStateOut(BaseModel):
    """Current reader position and chapter content.

    index is the position of the current chapter in chapters, or -1 when the
    current URL is not in the list.
    """

    url: str | None = None
    index: int = -1
    work_title: str = ""
    chapter_title: str = ""
    body_html: str = ""
    paragraphs: list[str] = Field(default_factory=list)
    chapters: list[ChapterLinkOut] = Field(default_factory=list)
    source: CHAPTER_SOURCES | None = None
    has_next: bool = False
    has_previous: bool = False
