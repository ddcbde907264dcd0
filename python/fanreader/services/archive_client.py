"""Authenticated HTTP access to the archive site.

Login handshake:
- GET /users/login and pull the authenticity_token out of the form
- POST form-encoded credentials plus token with redirects disabled
- The archive answers 302 for both success and failure, so the status code
  is ignored; login succeeded iff a Set-Cookie header names the session cookie

Identity discovery:
- GET the homepage with the stored cookies
- Match a /users/<name> link: greeting link first, then the user dropdown,
  then any profile link

Every request carries an explicit Cookie header built from the CookieStore.
The shared httpx client's own cookie jar never decides what is sent.
"""

import re
from dataclasses import dataclass, field
from urllib.parse import unquote

import httpx

from fanreader.errors import ArchiveNetworkError, TokenNotFoundError
from fanreader.logging import get_logger
from fanreader.services.cookie_store import CookieStore, parse_set_cookie

logger = get_logger(__name__)

DEFAULT_BASE_URL = "https://archiveofourown.org"
DEFAULT_SESSION_COOKIE = "_otwarchive_session"
DEFAULT_TIMEOUT_S = 30.0

TOKEN_RE = re.compile(r'name="authenticity_token" value="([^"]+)"')

# Ordered from most to least specific.
IDENTITY_PATTERNS = (
    re.compile(r'<a[^>]*href="/users/([^"/?#]+)"[^>]*>\s*Hi,', re.IGNORECASE),
    re.compile(
        r'<li[^>]*class="[^"]*dropdown[^"]*"[^>]*>\s*<a[^>]*href="/users/([^"/?#]+)"',
        re.IGNORECASE,
    ),
    re.compile(r'href="/users/([^"/?#]+)"', re.IGNORECASE),
)

# Account-flow routes that live under /users/ but are not profiles.
RESERVED_USER_SEGMENTS = frozenset({"login", "logout", "password", "new", "sign_up", "confirmation"})


@dataclass(frozen=True)
class LoginForm:
    """Anti-forgery token plus any cookies the login page handed out."""

    authenticity_token: str
    cookies: dict[str, str] = field(default_factory=dict)


def extract_identity(html: str) -> str | None:
    """Return the URL-decoded user name from the first matching profile link."""
    for pattern in IDENTITY_PATTERNS:
        for match in pattern.finditer(html):
            segment = unquote(match.group(1))
            if segment and segment.lower() not in RESERVED_USER_SEGMENTS:
                return segment
    return None


class ArchiveClient:
    """Session-aware client for the archive site.

    Rules:
    - No retries
    - Transport failures surface as ArchiveNetworkError
    - Credential rejection is a False return, never an exception
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cookie_store: CookieStore,
        *,
        base_url: str = DEFAULT_BASE_URL,
        session_cookie: str = DEFAULT_SESSION_COOKIE,
        user_agent: str | None = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ):
        """Initialize with the shared HTTP client and the cookie store.

        Args:
            client: Shared httpx.AsyncClient for connection pooling.
            cookie_store: Persisted cookie jar for the archive session.
            base_url: Archive origin.
            session_cookie: Cookie name whose presence signals a successful login.
            user_agent: Optional User-Agent header.
            timeout_s: Per-request timeout in seconds.
        """
        self._client = client
        self._cookies = cookie_store
        self._base_url = base_url.rstrip("/")
        self._session_cookie = session_cookie
        self._user_agent = user_agent
        self._timeout = httpx.Timeout(timeout_s, connect=10.0)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def cookie_store(self) -> CookieStore:
        return self._cookies

    def _headers(self, cookie_header: str) -> dict[str, str]:
        headers = {"Cookie": cookie_header}
        if self._user_agent:
            headers["User-Agent"] = self._user_agent
        return headers

    async def fetch_login_form(self) -> LoginForm:
        """Load the login page and extract its anti-forgery token.

        Raises:
            TokenNotFoundError: If the page has no authenticity_token field.
            ArchiveNetworkError: If the request fails.
        """
        url = f"{self._base_url}/users/login"
        try:
            response = await self._client.get(
                url,
                headers=self._headers(await self._cookies.build_cookie_header()),
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("login_form_fetch_failed", error_type=type(e).__name__)
            raise ArchiveNetworkError("Could not load the login page") from e

        match = TOKEN_RE.search(response.text)
        if not match:
            logger.warning("login_token_not_found", status_code=response.status_code)
            raise TokenNotFoundError()

        cookies = parse_set_cookie(", ".join(response.headers.get_list("set-cookie")))
        return LoginForm(authenticity_token=match.group(1), cookies=cookies)

    async def login(self, username: str, password: str) -> bool:
        """Log in and persist the returned cookies.

        Returns:
            True if the response set the session cookie, False otherwise.

        Raises:
            TokenNotFoundError: If the login page has no token.
            ArchiveNetworkError: If either request fails.
        """
        form = await self.fetch_login_form()

        data = {
            "user[login]": username,
            "user[password]": password,
            "authenticity_token": form.authenticity_token,
            "commit": "Log in",
        }
        cookie_header = "; ".join(f"{k}={v}" for k, v in form.cookies.items())

        try:
            response = await self._client.post(
                f"{self._base_url}/users/login",
                data=data,
                headers=self._headers(cookie_header),
                follow_redirects=False,
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("login_request_failed", error_type=type(e).__name__)
            raise ArchiveNetworkError("Could not send login request") from e

        raw_set_cookie = ", ".join(response.headers.get_list("set-cookie"))
        if self._session_cookie not in raw_set_cookie:
            logger.info("login_rejected", status_code=response.status_code)
            return False

        await self._cookies.save(raw_set_cookie)
        logger.info("login_succeeded", status_code=response.status_code)

        identity = await self.resolve_identity(refresh=True)
        if identity is None:
            logger.info("identity_not_resolved_after_login")
        return True

    async def resolve_identity(self, *, refresh: bool = False) -> str | None:
        """Return the logged-in user's name, discovering it from the homepage if needed.

        Args:
            refresh: Ignore the cached identity and fetch the homepage again.

        Returns:
            The user name, or None if it cannot be determined.
        """
        if not refresh:
            cached = await self._cookies.get_identity()
            if cached:
                return cached

        try:
            response = await self.authenticated_get(f"{self._base_url}/")
        except ArchiveNetworkError:
            logger.warning("identity_fetch_failed")
            return None

        if not response.is_success:
            logger.info("identity_fetch_not_ok", status_code=response.status_code)
            return None

        identity = extract_identity(response.text)
        if identity:
            await self._cookies.set_identity(identity)
        return identity

    async def authenticated_get(self, url: str) -> httpx.Response:
        """GET url with the stored cookies attached. No retry.

        Raises:
            ArchiveNetworkError: If the request cannot be completed.
        """
        try:
            return await self._client.get(
                url,
                headers=self._headers(await self._cookies.build_cookie_header()),
                follow_redirects=True,
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            logger.warning("authenticated_get_failed", error_type=type(e).__name__)
            raise ArchiveNetworkError(f"Request to archive failed: {type(e).__name__}") from e

    async def is_logged_in(self) -> bool:
        return await self._cookies.has_cookie(self._session_cookie)

    async def logout(self) -> None:
        await self._cookies.clear()
        logger.info("logged_out")
