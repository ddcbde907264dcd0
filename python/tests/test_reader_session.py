"""Tests for reader navigation.

Tests cover:
- Session fetch first, browser fallback only after it fails
- Errors surfaced when both sources fail
- Overtaken navigations discarded (results and errors)
- Chapter list navigation and index errors
- Narrator lifecycle across navigations
"""

import asyncio

import httpx
import pytest

from fanreader.errors import (
    ApiError,
    ApiErrorCode,
    ArchiveNetworkError,
    ContentNotFoundError,
    InvalidRequestError,
)
from fanreader.services.browser_fallback import (
    AcquiredPage,
    AcquisitionError,
    PageAcquirerBase,
)
from fanreader.services.chapter_extract import ChapterLink, ChapterPageData
from fanreader.services.preferences import PreferencesService
from fanreader.services.reader_session import ReaderSession, find_chapter_index
from fanreader.services.speech import SpeechEngineFactory, SpeechRelay
from fanreader.storage import MemoryStore
from tests.fixtures import (
    CHAPTER_ONE_HTML,
    CHAPTER_ONE_URL,
    CHAPTER_THREE_URL,
    CHAPTER_TWO_HTML,
    CHAPTER_TWO_URL,
    CHAPTER_WITHOUT_LIST_HTML,
    WORK_URL,
)
from tests.helpers import FakeAcquirer, RecordingBackend, make_archive_client

PAGES = {
    "/works/1": CHAPTER_ONE_HTML,
    "/works/1/chapters/101": CHAPTER_ONE_HTML,
    "/works/1/chapters/102": CHAPTER_TWO_HTML,
    "/works/1/chapters/103": CHAPTER_WITHOUT_LIST_HTML,
}

BROWSER_CHAPTER = ChapterPageData(
    work_title="The Long Rain",
    chapter_title="Locked Chapter",
    body_html="<p>Seen through the browser.</p>",
    sibling_chapters=[ChapterLink(url=CHAPTER_ONE_URL, label="1. Beginnings")],
)


def serve_pages(request: httpx.Request) -> httpx.Response:
    html = PAGES.get(request.url.path)
    if html is None:
        return httpx.Response(404, text="<html>Not found</html>")
    return httpx.Response(200, text=html)


def make_session(
    handler=serve_pages,
    acquirer: PageAcquirerBase | None = None,
    backend: RecordingBackend | None = None,
) -> ReaderSession:
    client, store = make_archive_client(handler)
    factory = SpeechEngineFactory(
        httpx.AsyncClient(),
        device_backend=backend or RecordingBackend(),
        audio_sink=SpeechRelay(),
    )
    return ReaderSession(
        client,
        acquirer or FakeAcquirer(),
        PreferencesService(store),
        factory,
    )


# =============================================================================
# Source Selection
# =============================================================================


class TestOpen:
    """Tests for ReaderSession.open."""

    @pytest.mark.asyncio
    async def test_session_fetch_success_skips_fallback(self):
        acquirer = FakeAcquirer()
        session = make_session(acquirer=acquirer)

        assert await session.open(CHAPTER_ONE_URL) is True

        state = session.state
        assert state.source == "session"
        assert state.url == CHAPTER_ONE_URL
        assert state.index == 0
        assert len(state.chapters) == 3
        assert state.paragraphs[0] == "The rain had not stopped in three days."
        assert acquirer.calls == []

    @pytest.mark.asyncio
    async def test_fallback_used_after_session_failure(self):
        acquirer = FakeAcquirer(AcquiredPage(final_url=CHAPTER_TWO_URL, chapter=BROWSER_CHAPTER))
        session = make_session(handler=lambda r: httpx.Response(403), acquirer=acquirer)

        assert await session.open(CHAPTER_TWO_URL) is True

        assert acquirer.calls == [CHAPTER_TWO_URL]
        assert session.state.source == "browser"
        assert session.state.chapter.chapter_title == "Locked Chapter"
        assert session.state.paragraphs == ["Seen through the browser."]

    @pytest.mark.asyncio
    async def test_fallback_used_after_network_failure(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        acquirer = FakeAcquirer(AcquiredPage(final_url=CHAPTER_ONE_URL, chapter=BROWSER_CHAPTER))
        session = make_session(handler=refuse, acquirer=acquirer)

        assert await session.open(CHAPTER_ONE_URL) is True
        assert session.state.source == "browser"

    @pytest.mark.asyncio
    async def test_fallback_used_when_page_has_no_body(self):
        acquirer = FakeAcquirer(AcquiredPage(final_url=CHAPTER_ONE_URL, chapter=BROWSER_CHAPTER))
        session = make_session(
            handler=lambda r: httpx.Response(200, text="<html>warning</html>"),
            acquirer=acquirer,
        )

        await session.open(CHAPTER_ONE_URL)

        assert acquirer.calls == [CHAPTER_ONE_URL]

    @pytest.mark.asyncio
    async def test_both_sources_fail_content_not_found(self):
        session = make_session(handler=lambda r: httpx.Response(404))

        with pytest.raises(ContentNotFoundError):
            await session.open(CHAPTER_ONE_URL)
        assert session.state.url is None

    @pytest.mark.asyncio
    async def test_fallback_network_error_surfaces(self):
        acquirer = FakeAcquirer(
            AcquisitionError(error_code=ApiErrorCode.E_NETWORK, message="timeout")
        )
        session = make_session(handler=lambda r: httpx.Response(404), acquirer=acquirer)

        with pytest.raises(ArchiveNetworkError):
            await session.open(CHAPTER_ONE_URL)

    @pytest.mark.asyncio
    async def test_invalid_url_rejected_before_fetch(self):
        acquirer = FakeAcquirer()
        session = make_session(acquirer=acquirer)

        with pytest.raises(InvalidRequestError):
            await session.open("https://example.org/works/1")
        assert acquirer.calls == []

    @pytest.mark.asyncio
    async def test_page_without_list_keeps_known_chapters(self):
        session = make_session()
        await session.open(CHAPTER_ONE_URL)

        await session.open(CHAPTER_THREE_URL)

        assert len(session.state.chapters) == 3
        assert session.state.index == 2
        assert session.state.has_next is False
        assert session.state.has_previous is True


# =============================================================================
# Overtaken Navigations
# =============================================================================


class BlockingAcquirer(PageAcquirerBase):
    """Acquirer that waits for a release signal, then fails."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def acquire(self, url: str) -> AcquiredPage | AcquisitionError:
        self.started.set()
        await self.release.wait()
        return AcquisitionError(error_code=ApiErrorCode.E_NETWORK, message="too late")


class TestStaleNavigation:
    """Only the newest navigation may change state."""

    @pytest.mark.asyncio
    async def test_overtaken_result_discarded(self):
        first_started = asyncio.Event()
        release_first = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/works/1/chapters/101":
                first_started.set()
                await release_first.wait()
            return serve_pages(request)

        session = make_session(handler=handler)
        first = asyncio.create_task(session.open(CHAPTER_ONE_URL))
        await first_started.wait()

        assert await session.open(CHAPTER_TWO_URL) is True
        release_first.set()

        assert await first is False
        assert session.state.url == CHAPTER_TWO_URL
        assert session.state.chapter.chapter_title == "2. Middles"

    @pytest.mark.asyncio
    async def test_overtaken_error_discarded(self):
        acquirer = BlockingAcquirer()

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/works/1/chapters/101":
                return httpx.Response(404)
            return serve_pages(request)

        session = make_session(handler=handler, acquirer=acquirer)
        first = asyncio.create_task(session.open(CHAPTER_ONE_URL))
        await acquirer.started.wait()

        assert await session.open(CHAPTER_TWO_URL) is True
        acquirer.release.set()

        assert await first is False
        assert session.state.url == CHAPTER_TWO_URL

    @pytest.mark.asyncio
    async def test_state_swapped_before_old_narrator_stops(self):
        seen_at_stop: list[str | None] = []
        session = None

        def record_state():
            seen_at_stop.append(session.state.url)

        session = make_session(backend=RecordingBackend(on_stop=record_state))
        await session.open(CHAPTER_ONE_URL)
        await session.narrator()

        await session.open(CHAPTER_TWO_URL)

        assert seen_at_stop == [CHAPTER_TWO_URL]

    @pytest.mark.asyncio
    async def test_tokens_increase(self):
        session = make_session()
        await session.open(CHAPTER_ONE_URL)
        first = session.current_token
        await session.open(CHAPTER_TWO_URL)

        assert session.current_token > first


# =============================================================================
# Chapter Navigation
# =============================================================================


class TestChapterNavigation:
    """Tests for index-based navigation."""

    @pytest.mark.asyncio
    async def test_next_and_previous(self):
        session = make_session()
        await session.open(CHAPTER_ONE_URL)

        await session.next_chapter()
        assert session.state.url == CHAPTER_TWO_URL
        assert session.state.index == 1

        await session.previous_chapter()
        assert session.state.url == CHAPTER_ONE_URL
        assert session.state.index == 0

    @pytest.mark.asyncio
    async def test_work_url_starts_at_selected_chapter(self):
        session = make_session()

        await session.open(WORK_URL)

        assert session.state.url == WORK_URL
        assert session.state.index == 0
        assert session.state.has_next is True

        await session.next_chapter()
        assert session.state.url == CHAPTER_TWO_URL
        assert session.state.index == 1

    @pytest.mark.asyncio
    async def test_work_url_without_selected_option_starts_at_first_chapter(self):
        page = CHAPTER_ONE_HTML.replace('selected="selected" ', "")
        session = make_session(handler=lambda r: httpx.Response(200, text=page))

        await session.open(WORK_URL)

        assert session.state.index == 0
        assert session.state.has_next is True

    @pytest.mark.asyncio
    async def test_previous_at_first_chapter_out_of_range(self):
        session = make_session()
        await session.open(CHAPTER_ONE_URL)

        with pytest.raises(ApiError) as exc_info:
            await session.previous_chapter()

        assert exc_info.value.code == ApiErrorCode.E_CHAPTER_OUT_OF_RANGE
        assert session.state.url == CHAPTER_ONE_URL

    @pytest.mark.asyncio
    async def test_go_to_out_of_range(self):
        session = make_session()
        await session.open(CHAPTER_ONE_URL)

        with pytest.raises(ApiError) as exc_info:
            await session.go_to(3)

        assert exc_info.value.code == ApiErrorCode.E_CHAPTER_OUT_OF_RANGE

    @pytest.mark.asyncio
    async def test_navigation_without_work(self):
        session = make_session()

        with pytest.raises(ApiError) as exc_info:
            await session.next_chapter()

        assert exc_info.value.code == ApiErrorCode.E_NO_ACTIVE_WORK

    def test_find_chapter_index_ignores_trailing_slash_and_query(self):
        chapters = [
            ChapterLink(url=CHAPTER_ONE_URL, label="1"),
            ChapterLink(url=CHAPTER_TWO_URL, label="2"),
        ]

        assert find_chapter_index(chapters, f"{CHAPTER_TWO_URL}/?view_adult=true") == 1
        assert find_chapter_index(chapters, CHAPTER_THREE_URL) == -1


# =============================================================================
# Narration
# =============================================================================


class TestNarrator:
    """Tests for the session's narrator."""

    @pytest.mark.asyncio
    async def test_narrator_requires_open_chapter(self):
        session = make_session()

        with pytest.raises(ApiError) as exc_info:
            await session.narrator()

        assert exc_info.value.code == ApiErrorCode.E_NO_ACTIVE_WORK

    @pytest.mark.asyncio
    async def test_narrator_reads_current_paragraphs(self):
        session = make_session()
        await session.open(CHAPTER_ONE_URL)

        narrator = await session.narrator()

        assert narrator.paragraph_count == 2
        assert await session.narrator() is narrator

    @pytest.mark.asyncio
    async def test_navigation_replaces_narrator(self):
        session = make_session()
        await session.open(CHAPTER_ONE_URL)
        first = await session.narrator()

        await session.next_chapter()
        second = await session.narrator()

        assert second is not first
        assert second.paragraph_count == 1

    @pytest.mark.asyncio
    async def test_background_narration_reads_chapter(self):
        backend = RecordingBackend()
        session = make_session(backend=backend)
        await session.open(CHAPTER_ONE_URL)

        await session.start_narration()
        await session.wait_narration()

        assert backend.spoken == [
            "The rain had not stopped in three days.",
            "She opened the door & waited.",
        ]

    @pytest.mark.asyncio
    async def test_pause_holds_background_narration(self):
        release = asyncio.Event()

        async def hold_first(utterance):
            if utterance.text.startswith("The rain"):
                await release.wait()

        backend = RecordingBackend(on_speak=hold_first)
        session = make_session(backend=backend)
        await session.open(CHAPTER_ONE_URL)
        narrator = await session.start_narration(0)

        assert narrator.is_playing() is True
        assert await narrator.pause() is True
        assert "pause" in backend.calls

        release.set()
        for _ in range(10):
            await asyncio.sleep(0)

        assert backend.spoken == ["The rain had not stopped in three days."]
        assert narrator.is_paused() is True

        assert await narrator.resume() is True
        await session.wait_narration()

        assert backend.spoken[-1] == "She opened the door & waited."
        assert narrator.is_playing() is False

    @pytest.mark.asyncio
    async def test_toggle_stops_running_narration(self):
        release = asyncio.Event()

        async def hold(utterance):
            await release.wait()

        session = make_session(backend=RecordingBackend(on_speak=hold))
        await session.open(CHAPTER_ONE_URL)
        narrator = await session.start_narration(0)

        await session.toggle_narration()
        release.set()
        await session.wait_narration()

        assert narrator.is_playing() is False
        assert narrator.index == 0

    @pytest.mark.asyncio
    async def test_start_narration_out_of_range(self):
        session = make_session()
        await session.open(CHAPTER_ONE_URL)

        with pytest.raises(InvalidRequestError):
            await session.start_narration(5)
