"""Reader session: current chapter, navigation and narration.

Navigation flow for one URL:
1. Take a new navigation token (monotonic counter)
2. Fetch the page with the archive session and extract the chapter
3. Only if step 2 yields no chapter, hand the URL to the page acquirer
4. Commit the result only if the token is still the newest one

Steps 2 and 3 never overlap for one navigation. A navigation that was
overtaken by a newer one is discarded, including its errors, and never
touches the session state.
"""

import asyncio
import itertools
from dataclasses import dataclass, field
from urllib.parse import urlparse

from fanreader.errors import (
    ApiError,
    ApiErrorCode,
    ArchiveNetworkError,
    ContentNotFoundError,
    InvalidRequestError,
)
from fanreader.logging import get_logger, set_navigation_token
from fanreader.services.archive_client import ArchiveClient
from fanreader.services.archive_urls import is_work_root, validate_reader_url
from fanreader.services.browser_fallback import AcquisitionError, PageAcquirerBase
from fanreader.services.chapter_extract import (
    ChapterLink,
    ChapterPageData,
    extract_chapter,
    extract_paragraphs,
)
from fanreader.services.preferences import PreferencesService
from fanreader.services.speech import Narrator, SpeechEngineFactory

logger = get_logger(__name__)

SOURCE_SESSION = "session"
SOURCE_BROWSER = "browser"


@dataclass
class ReaderState:
    """Snapshot of what the reader is showing."""

    url: str | None = None
    index: int = -1
    chapter: ChapterPageData | None = None
    chapters: list[ChapterLink] = field(default_factory=list)
    paragraphs: list[str] = field(default_factory=list)
    source: str | None = None

    @property
    def has_next(self) -> bool:
        return 0 <= self.index < len(self.chapters) - 1

    @property
    def has_previous(self) -> bool:
        return self.index > 0


def _path_key(url: str) -> str:
    return urlparse(url).path.rstrip("/")


def find_chapter_index(chapters: list[ChapterLink], url: str) -> int:
    """Position of url in chapters, compared by path. -1 when absent."""
    key = _path_key(url)
    for i, link in enumerate(chapters):
        if _path_key(link.url) == key:
            return i
    return -1


class ReaderSession:
    """Single-reader navigation state over an ArchiveClient."""

    def __init__(
        self,
        client: ArchiveClient,
        acquirer: PageAcquirerBase,
        preferences: PreferencesService,
        speech_factory: SpeechEngineFactory,
    ):
        self._client = client
        self._acquirer = acquirer
        self._preferences = preferences
        self.speech_factory = speech_factory
        self._counter = itertools.count(1)
        self._current_token = 0
        self._state = ReaderState()
        self._narrator: Narrator | None = None
        self._narration_task: asyncio.Task | None = None

    @property
    def state(self) -> ReaderState:
        return self._state

    @property
    def current_token(self) -> int:
        return self._current_token

    def _is_current(self, token: int) -> bool:
        return token == self._current_token

    async def _fetch_with_session(self, url: str) -> ChapterPageData | None:
        try:
            response = await self._client.authenticated_get(url)
        except ArchiveNetworkError:
            logger.warning("chapter_fetch_failed", source=SOURCE_SESSION)
            return None

        if not response.is_success:
            logger.info("chapter_fetch_not_ok", status_code=response.status_code)
            return None

        try:
            return extract_chapter(response.text, str(response.url), self._client.base_url)
        except ContentNotFoundError:
            logger.info("chapter_body_missing", source=SOURCE_SESSION)
            return None

    async def open(self, url: str, *, index: int | None = None) -> bool:
        """Navigate to url.

        Args:
            url: Work or chapter URL on the archive.
            index: Position in the chapter list, when navigating by index.

        Returns:
            True if this navigation was committed, False if a newer one overtook it.

        Raises:
            InvalidRequestError: If url is not an archive URL.
            ContentNotFoundError: If neither source produced a chapter body.
            ArchiveNetworkError: If the browser fallback could not load the page.
        """
        url = validate_reader_url(url, self._client.base_url)
        token = next(self._counter)
        self._current_token = token
        set_navigation_token(token)
        logger.info("navigation_started", navigation_token=token, index=index)

        chapter = await self._fetch_with_session(url)
        source = SOURCE_SESSION

        if chapter is None:
            if not self._is_current(token):
                logger.info("stale_navigation_discarded", navigation_token=token)
                return False

            result = await self._acquirer.acquire(url)
            if not self._is_current(token):
                logger.info("stale_navigation_discarded", navigation_token=token)
                return False

            if isinstance(result, AcquisitionError):
                logger.warning(
                    "chapter_unavailable", navigation_token=token, code=result.error_code.value
                )
                if result.error_code == ApiErrorCode.E_NETWORK:
                    raise ArchiveNetworkError(result.message)
                raise ContentNotFoundError()

            chapter = result.chapter
            source = SOURCE_BROWSER

        if not self._is_current(token):
            logger.info("stale_navigation_discarded", navigation_token=token)
            return False

        await self._commit(url, chapter, source, index)
        logger.info(
            "navigation_committed",
            navigation_token=token,
            source=source,
            index=self._state.index,
            chapters=len(self._state.chapters),
        )
        return True

    async def _commit(
        self, url: str, chapter: ChapterPageData, source: str, index: int | None
    ) -> None:
        # A page without a chapter list keeps the one already known for the work.
        chapters = chapter.sibling_chapters or self._state.chapters
        found = find_chapter_index(chapters, url)
        if found < 0 and chapter.selected_chapter_url:
            found = find_chapter_index(chapters, chapter.selected_chapter_url)
        if found < 0 and index is not None and 0 <= index < len(chapters):
            found = index
        if found < 0 and chapters and is_work_root(url):
            found = 0

        # No await between the caller's last token check and the state swap.
        previous_narrator = self._narrator
        self._narrator = None
        self._state = ReaderState(
            url=url,
            index=found,
            chapter=chapter,
            chapters=list(chapters),
            paragraphs=extract_paragraphs(chapter.body_html),
            source=source,
        )

        if previous_narrator is not None:
            await previous_narrator.stop()

    async def go_to(self, index: int) -> bool:
        """Open the chapter at index in the current chapter list."""
        if not self._state.chapters:
            raise ApiError(ApiErrorCode.E_NO_ACTIVE_WORK, "No work is open")
        if not 0 <= index < len(self._state.chapters):
            raise InvalidRequestError(
                ApiErrorCode.E_CHAPTER_OUT_OF_RANGE, f"Chapter index {index} out of range"
            )
        return await self.open(self._state.chapters[index].url, index=index)

    async def next_chapter(self) -> bool:
        if self._state.url is None:
            raise ApiError(ApiErrorCode.E_NO_ACTIVE_WORK, "No work is open")
        return await self.go_to(self._state.index + 1)

    async def previous_chapter(self) -> bool:
        if self._state.url is None:
            raise ApiError(ApiErrorCode.E_NO_ACTIVE_WORK, "No work is open")
        return await self.go_to(self._state.index - 1)

    async def narrator(self) -> Narrator:
        """Narrator for the current chapter using the configured speech engine."""
        if self._state.chapter is None:
            raise ApiError(ApiErrorCode.E_NO_ACTIVE_WORK, "No chapter is open")

        settings = await self._preferences.get_speech()
        engine = await self.speech_factory.get(settings)
        if self._narrator is None or self._narrator.engine is not engine:
            if self._narrator is not None:
                await self._narrator.stop()
            self._narrator = Narrator(engine, self._state.paragraphs)
        return self._narrator

    async def _narrate(self, narrator: Narrator, index: int) -> None:
        try:
            await narrator.play_from(index)
        except ApiError as e:
            logger.warning("narration_failed", code=e.code.value, paragraph_index=narrator.index)

    async def start_narration(self, index: int | None = None) -> Narrator:
        """Read the chapter aloud in the background from index (default: current paragraph).

        Raises:
            ApiError: E_NO_ACTIVE_WORK if no chapter is open.
            InvalidRequestError: If index is outside the chapter's paragraphs.
        """
        narrator = await self.narrator()
        start = narrator.index if index is None else index
        if not 0 <= start < narrator.paragraph_count:
            raise InvalidRequestError(
                ApiErrorCode.E_INVALID_REQUEST, f"Paragraph index {start} out of range"
            )
        await narrator.stop()
        self._narration_task = asyncio.create_task(self._narrate(narrator, start))
        # Run the task up to its first suspension before returning.
        await asyncio.sleep(0)
        logger.info("narration_started", paragraph_index=start)
        return narrator

    async def toggle_narration(self) -> Narrator:
        """Stop continuous reading, or start it from the current paragraph."""
        narrator = await self.narrator()
        if narrator.is_playing():
            await narrator.stop()
        elif narrator.paragraph_count:
            await self.start_narration()
        return narrator

    async def stop_speech(self) -> None:
        """Stop narration and whatever the current engine is saying."""
        if self._narrator is not None:
            await self._narrator.stop()
        engine = self.speech_factory.current
        if engine is not None:
            await engine.stop()

    async def wait_narration(self) -> None:
        """Wait for background narration to finish."""
        if self._narration_task is not None:
            await asyncio.gather(self._narration_task, return_exceptions=True)

    async def close(self) -> None:
        if self._narrator is not None:
            await self._narrator.stop()
            self._narrator = None
        if self._narration_task is not None:
            self._narration_task.cancel()
            await asyncio.gather(self._narration_task, return_exceptions=True)
            self._narration_task = None
        await self.speech_factory.shutdown()
