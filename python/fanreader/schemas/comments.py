"""Comment forest response schemas."""

from pydantic import BaseModel, ConfigDict


class AuthorOut(BaseModel):
    display_name: str
    profile_path: str

    model_config = ConfigDict(from_attributes=True)


class ReplyOut(BaseModel):
    """A reply and everything nested under it."""

    id: str
    author: AuthorOut
    avatar_url: str | None = None
    date_posted: str
    body_text: str
    replies: list["ReplyOut"] = []

    model_config = ConfigDict(from_attributes=True)


class CommentOut(BaseModel):
    id: str
    author: AuthorOut
    avatar_url: str | None = None
    date_posted: str
    body_text: str
    chapter_title: str
    replies: list["ReplyOut"] = []

    model_config = ConfigDict(from_attributes=True)


class CommentPageOut(BaseModel):
    """One page of root comments. page is zero-based."""

    items: list[CommentOut]
    page: int
    page_size: int
    total: int
    total_pages: int

    model_config = ConfigDict(from_attributes=True)
