"""Headless-browser acquisition of chapter pages.

Used only after the session fetch fails to produce a chapter body. Loads the
page in Chromium (Playwright) with the stored session cookies, runs an
extraction script in the page and converts its result to ChapterPageData.

The script prefers DOM selectors over the regex patterns used for fetched
HTML, since the browser has a real DOM:
    .userstuff.module, #chapters .chapter, .workskin .userstuff.module,
    .workskin, [id^="chapter-"]

acquire() never raises for expected failures. It returns AcquisitionError
instead, so the caller can decide what to surface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from fanreader.errors import ApiErrorCode
from fanreader.logging import get_logger
from fanreader.services.chapter_extract import ChapterLink, ChapterPageData
from fanreader.services.cookie_store import CookieStore

logger = get_logger(__name__)

DEFAULT_TIMEOUT_MS = 30_000

# Evaluated with the archive origin as its argument.
EXTRACTION_SCRIPT = """
(origin) => {
  function abs(href) {
    if (!href) return null;
    if (/^https?:\\/\\//i.test(href)) return href;
    if (/^\\d+$/.test(href)) {
      const m = window.location.pathname.match(/works\\/(\\d+)/);
      if (m) return origin + "/works/" + m[1] + "/chapters/" + href;
    }
    if (href.startsWith("/")) return origin + href;
    return origin + "/" + href;
  }

  const links = [];
  const select = document.querySelector("select#selected_id");
  if (select) {
    Array.from(select.options).forEach((o) => {
      if (o.value) links.push({ href: abs(o.value), text: (o.textContent || "").trim() });
    });
  }
  if (links.length === 0) {
    document
      .querySelectorAll("ol.chapter a, #chapter_index a, .chapter_list a, .chapters a")
      .forEach((a) => {
        const href = a.getAttribute("href");
        if (href) links.push({ href: abs(href), text: (a.textContent || "").trim() });
      });
  }
  const seen = new Set();
  const unique = links.filter((l) => {
    if (!l.href || seen.has(l.href)) return false;
    seen.add(l.href);
    return true;
  });

  const contentEl =
    document.querySelector(".userstuff.module") ||
    document.querySelector("#chapters .chapter") ||
    document.querySelector(".workskin .userstuff.module") ||
    document.querySelector(".workskin") ||
    document.querySelector('[id^="chapter-"]');
  const heading = document.querySelector("h2.title");
  const title = (heading && heading.innerText.trim()) || document.title || "";
  const current = document.querySelector("select#selected_id option:checked");

  return {
    title: title,
    chapterTitle: current ? current.textContent.trim() : title,
    content: contentEl ? contentEl.innerHTML : null,
    links: unique,
  };
}
"""


@dataclass
class AcquiredPage:
    """Chapter data extracted by the browser."""

    final_url: str
    chapter: ChapterPageData


@dataclass
class AcquisitionError:
    """Browser acquisition failure."""

    error_code: ApiErrorCode
    message: str


def page_data_from_script(result: dict) -> ChapterPageData | None:
    """Convert the extraction script's result. None when it found no body."""
    content = result.get("content")
    if not content or not str(content).strip():
        return None

    title = str(result.get("title") or "").strip()
    links: list[ChapterLink] = []
    seen: set[str] = set()
    for item in result.get("links") or []:
        href = (item or {}).get("href")
        if not href or href in seen:
            continue
        seen.add(href)
        links.append(ChapterLink(url=href, label=str(item.get("text") or "").strip()))

    return ChapterPageData(
        work_title=title,
        chapter_title=str(result.get("chapterTitle") or "").strip() or title,
        body_html=content,
        sibling_chapters=links,
    )


class PageAcquirerBase(ABC):
    """Secondary source of chapter pages."""

    @abstractmethod
    async def acquire(self, url: str) -> AcquiredPage | AcquisitionError:
        """Load url and extract chapter data.

        Returns:
            AcquiredPage on success, AcquisitionError on failure.
        """
        ...


class DisabledAcquirer(PageAcquirerBase):
    """Acquirer used when the browser fallback is turned off."""

    async def acquire(self, url: str) -> AcquiredPage | AcquisitionError:
        return AcquisitionError(
            error_code=ApiErrorCode.E_CONTENT_NOT_FOUND,
            message="Browser fallback is disabled",
        )


class PlaywrightAcquirer(PageAcquirerBase):
    """Loads pages in headless Chromium with the archive session cookies."""

    def __init__(
        self,
        cookie_store: CookieStore,
        *,
        base_url: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        user_agent: str | None = None,
        headless: bool = True,
    ):
        self._cookies = cookie_store
        self._base_url = base_url.rstrip("/")
        self._timeout_ms = timeout_ms
        self._user_agent = user_agent
        self._headless = headless

    async def _browser_cookies(self) -> list[dict]:
        cookies = await self._cookies.get_cookies()
        return [{"name": n, "value": v, "url": self._base_url} for n, v in cookies.items()]

    async def acquire(self, url: str) -> AcquiredPage | AcquisitionError:
        cookies = await self._browser_cookies()
        try:
            async with async_playwright() as p:
                browser = await p.chromium.launch(headless=self._headless)
                try:
                    context = await browser.new_context(user_agent=self._user_agent)
                    if cookies:
                        await context.add_cookies(cookies)
                    page = await context.new_page()
                    await page.goto(url, wait_until="domcontentloaded", timeout=self._timeout_ms)
                    result = await page.evaluate(EXTRACTION_SCRIPT, self._base_url)
                    final_url = page.url
                finally:
                    await browser.close()
        except PlaywrightTimeoutError:
            logger.warning("browser_fallback_timeout", timeout_ms=self._timeout_ms)
            return AcquisitionError(
                error_code=ApiErrorCode.E_NETWORK,
                message=f"Page load timeout after {self._timeout_ms}ms",
            )
        except PlaywrightError as e:
            logger.warning("browser_fallback_failed", error=str(e)[:200])
            return AcquisitionError(
                error_code=ApiErrorCode.E_NETWORK,
                message="Browser could not load the page",
            )

        chapter = page_data_from_script(result or {})
        if chapter is None:
            return AcquisitionError(
                error_code=ApiErrorCode.E_CONTENT_NOT_FOUND,
                message="Browser found no chapter content",
            )
        return AcquiredPage(final_url=final_url, chapter=chapter)
