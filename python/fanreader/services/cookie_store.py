"""Cookie jar for the archive session, persisted through the key-value store.

Set-Cookie headers are reduced to name/value pairs; attributes such as path,
expires and HttpOnly are discarded. Several cookies may arrive in one header
joined by commas, and an Expires date also contains a comma, so entries are
only split at a comma that is followed by a new `name=` token.

Storage layout:
- session.cookies: JSON object of name -> value
- session.identity: display name of the logged-in user
"""

import json
import re

from fanreader.logging import get_logger
from fanreader.storage import KeyValueStoreBase

logger = get_logger(__name__)

COOKIES_KEY = "session.cookies"
IDENTITY_KEY = "session.identity"

_ENTRY_SPLIT_RE = re.compile(r",\s*(?=[^;,=\s]+=)")
_COOKIE_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def parse_set_cookie(raw: str | None) -> dict[str, str]:
    """Extract name/value pairs from raw Set-Cookie text.

    Best-effort: entries without a usable `name=` prefix are skipped, so
    malformed input yields an empty dict instead of raising. When the same
    name appears twice the later entry wins.
    """
    pairs: dict[str, str] = {}
    if not raw:
        return pairs

    for entry in _ENTRY_SPLIT_RE.split(raw):
        first = entry.split(";", 1)[0].strip()
        if "=" not in first:
            continue
        name, value = first.split("=", 1)
        name = name.strip()
        if not name or not _COOKIE_NAME_RE.match(name):
            continue
        pairs[name] = value.strip()

    return pairs


class CookieStore:
    """Persisted cookie jar plus cached identity for one archive account."""

    def __init__(self, store: KeyValueStoreBase):
        self._store = store

    async def get_cookies(self) -> dict[str, str]:
        """Return the stored cookies. A corrupt blob reads as empty."""
        raw = await self._store.get(COOKIES_KEY)
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("cookie_blob_invalid")
            return {}
        if not isinstance(data, dict):
            logger.warning("cookie_blob_invalid")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    async def save(self, raw_set_cookie: str | None) -> dict[str, str]:
        """Replace the stored cookies with those from a Set-Cookie header.

        The jar belongs to one login: earlier cookies and the cached identity
        are dropped. Nothing changes when the header yields no pairs.

        Returns:
            The pairs parsed from this header (possibly empty).
        """
        parsed = parse_set_cookie(raw_set_cookie)
        if not parsed:
            return parsed

        await self._store.set(COOKIES_KEY, json.dumps(parsed))
        await self._store.remove(IDENTITY_KEY)
        logger.info("cookies_saved", cookie_names=sorted(parsed))
        return parsed

    async def build_cookie_header(self) -> str:
        """Return a Cookie request header value, or "" when nothing is stored."""
        cookies = await self.get_cookies()
        return "; ".join(f"{name}={value}" for name, value in cookies.items())

    async def has_cookie(self, name: str) -> bool:
        cookies = await self.get_cookies()
        return name in cookies

    async def get_identity(self) -> str | None:
        return await self._store.get(IDENTITY_KEY)

    async def set_identity(self, identity: str) -> None:
        await self._store.set(IDENTITY_KEY, identity)

    async def clear(self) -> None:
        """Forget every cookie and the cached identity."""
        await self._store.remove(COOKIES_KEY)
        await self._store.remove(IDENTITY_KEY)
        logger.info("cookies_cleared")
