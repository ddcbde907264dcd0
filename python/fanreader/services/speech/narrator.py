"""Paragraph-by-paragraph narration of the current chapter.

- play_from(i) reads paragraphs i, i+1, ... until the end or until stopped
- toggle() stops continuous reading, or starts it from the current paragraph
- pause()/resume() hold continuous reading between paragraphs and pause the engine
- next()/previous() stop continuous reading and read one neighbouring paragraph
"""

import asyncio

from fanreader.logging import get_logger
from fanreader.services.speech.base import SpeechEngine

logger = get_logger(__name__)


class Narrator:
    """Reads a list of paragraphs through a speech engine."""

    def __init__(self, engine: SpeechEngine, paragraphs: list[str]):
        self.engine = engine
        self._paragraphs = list(paragraphs)
        self._index = 0
        self._playing = False
        # Bumped on every stop so a continuous loop from an earlier play ends.
        self._generation = 0
        # Set while not paused; the continuous loop waits on it between paragraphs.
        self._unpaused = asyncio.Event()
        self._unpaused.set()

    @property
    def index(self) -> int:
        return self._index

    @property
    def paragraph_count(self) -> int:
        return len(self._paragraphs)

    def is_playing(self) -> bool:
        return self._playing

    def is_paused(self) -> bool:
        return not self._unpaused.is_set()

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._paragraphs):
            raise IndexError(f"paragraph index {index} out of range")

    async def play_from(self, index: int) -> None:
        """Read from index to the end, skipping empty paragraphs."""
        self._check_index(index)
        await self.stop()

        generation = self._generation
        self._playing = True
        self._index = index
        try:
            while self._index < len(self._paragraphs):
                await self._unpaused.wait()
                if generation != self._generation:
                    return
                text = self._paragraphs[self._index]
                if text:
                    await self.engine.speak(text)
                if generation != self._generation:
                    return
                if self._index == len(self._paragraphs) - 1:
                    break
                self._index += 1
        finally:
            if generation == self._generation:
                self._playing = False

    async def speak_one(self, index: int) -> None:
        """Stop continuous reading and read a single paragraph."""
        self._check_index(index)
        await self.stop()
        self._index = index
        text = self._paragraphs[index]
        if text:
            await self.engine.speak(text)

    async def toggle(self) -> None:
        if self._playing:
            await self.stop()
        elif self._paragraphs:
            await self.play_from(self._index)

    async def pause(self) -> bool:
        """Hold continuous reading. Returns False when nothing is playing."""
        if not self._playing or self.is_paused():
            return False
        self._unpaused.clear()
        await self.engine.pause()
        logger.info("narration_paused", paragraph_index=self._index)
        return True

    async def resume(self) -> bool:
        """Continue after pause(). Returns False when not paused."""
        if not self.is_paused():
            return False
        self._unpaused.set()
        await self.engine.resume()
        logger.info("narration_resumed", paragraph_index=self._index)
        return True

    async def next(self) -> bool:
        """Read the following paragraph. Returns False at the last one."""
        if self._index >= len(self._paragraphs) - 1:
            return False
        await self.speak_one(self._index + 1)
        return True

    async def previous(self) -> bool:
        """Read the preceding paragraph. Returns False at the first one."""
        if self._index <= 0:
            return False
        await self.speak_one(self._index - 1)
        return True

    async def stop(self) -> None:
        self._generation += 1
        self._playing = False
        self._unpaused.set()
        await self.engine.stop()
