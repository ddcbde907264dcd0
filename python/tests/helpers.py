"""Test helpers for archive access and speech.

Provides:
- Fake page acquirer with configurable result
- Recording speech backend
- ArchiveClient construction over an httpx mock transport
"""

from collections.abc import Callable

import httpx

from fanreader.errors import ApiErrorCode
from fanreader.services.archive_client import ArchiveClient
from fanreader.services.browser_fallback import (
    AcquiredPage,
    AcquisitionError,
    PageAcquirerBase,
)
from fanreader.services.cookie_store import CookieStore
from fanreader.services.speech.base import DeviceSpeechBackendBase, Utterance
from fanreader.storage import MemoryStore
from tests.fixtures import ARCHIVE


class FakeAcquirer(PageAcquirerBase):
    """Page acquirer returning a fixed result and recording requested URLs."""

    def __init__(self, result: AcquiredPage | AcquisitionError | None = None):
        self.result = result or AcquisitionError(
            error_code=ApiErrorCode.E_CONTENT_NOT_FOUND, message="no page"
        )
        self.calls: list[str] = []

    async def acquire(self, url: str) -> AcquiredPage | AcquisitionError:
        self.calls.append(url)
        return self.result


class RecordingBackend(DeviceSpeechBackendBase):
    """Device backend that records utterances and control calls.

    on_speak, when set, runs after each utterance is recorded. on_stop runs
    on every stop call.
    """

    def __init__(
        self,
        on_speak: Callable[[Utterance], object] | None = None,
        on_stop: Callable[[], object] | None = None,
    ):
        self.utterances: list[Utterance] = []
        self.calls: list[str] = []
        self.on_speak = on_speak
        self.on_stop = on_stop

    async def speak(self, utterance: Utterance) -> None:
        self.utterances.append(utterance)
        self.calls.append("speak")
        if self.on_speak is not None:
            result = self.on_speak(utterance)
            if hasattr(result, "__await__"):
                await result

    async def stop(self) -> None:
        self.calls.append("stop")
        if self.on_stop is not None:
            result = self.on_stop()
            if hasattr(result, "__await__"):
                await result

    async def pause(self) -> None:
        self.calls.append("pause")

    async def resume(self) -> None:
        self.calls.append("resume")

    @property
    def spoken(self) -> list[str]:
        return [u.text for u in self.utterances]


def make_archive_client(
    handler,
    store: MemoryStore | None = None,
) -> tuple[ArchiveClient, MemoryStore]:
    """Build an ArchiveClient whose HTTP traffic goes to handler.

    Args:
        handler: Sync or async function taking an httpx.Request.
        store: Backing store for the cookie jar (fresh MemoryStore if None).

    Returns:
        The client and its backing store.
    """
    store = store if store is not None else MemoryStore()
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    client = ArchiveClient(http, CookieStore(store), base_url=ARCHIVE)
    return client, store


class RecordingLogger:
    """Stands in for a module logger; keeps (level, event, fields) tuples."""

    def __init__(self):
        self.entries: list[tuple[str, str, dict]] = []

    def _record(self, level: str):
        def log(event: str, **fields) -> None:
            self.entries.append((level, event, fields))

        return log

    def __getattr__(self, level: str):
        if level in ("debug", "info", "warning", "error", "exception"):
            return self._record(level)
        raise AttributeError(level)

    def events(self, event: str) -> list[tuple[str, dict]]:
        return [(level, fields) for level, name, fields in self.entries if name == event]
