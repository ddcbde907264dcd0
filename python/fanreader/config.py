"""Application settings loaded from environment variables.

Environment Configuration:
    FANREADER_ENV: Deployment environment (local | test | prod)
    LOG_JSON: Emit JSON logs (true) or console-friendly logs (false)

Archive Configuration:
    ARCHIVE_BASE_URL: Origin of the archive site (trailing slash stripped)
    ARCHIVE_SESSION_COOKIE: Cookie name whose presence signals a successful login
    ARCHIVE_USER_AGENT: User-Agent sent on outbound requests
    HTTP_TIMEOUT_S: Timeout for archive requests in seconds

Persistence:
    STORE_PATH: JSON file backing the key-value store

Reader Configuration:
    COMMENTS_PAGE_SIZE: Root comments per page
    BROWSER_FALLBACK_ENABLED: Load pages in headless Chromium when the session fetch fails
    BROWSER_TIMEOUT_MS: Page-load timeout for the browser fallback

Speech Configuration:
    GEMINI_API_KEY: API key for the gemini speech engine (optional)
    GEMINI_TTS_MODEL: Model used for gemini speech synthesis
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables and an optional .env file.
    Validation rules:
    - COMMENTS_PAGE_SIZE must be >= 1
    - BROWSER_TIMEOUT_MS must be >= 1000
    """

    fanreader_env: Environment = Field(default=Environment.LOCAL, alias="FANREADER_ENV")
    log_json: bool = Field(default=True, alias="LOG_JSON")

    # Archive site
    archive_base_url: str = Field(default="https://archiveofourown.org", alias="ARCHIVE_BASE_URL")
    archive_session_cookie: str = Field(
        default="_otwarchive_session", alias="ARCHIVE_SESSION_COOKIE"
    )
    archive_user_agent: str = Field(default="fanreader/0.1", alias="ARCHIVE_USER_AGENT")
    http_timeout_s: float = Field(default=30.0, alias="HTTP_TIMEOUT_S")

    # Key-value persistence
    store_path: str = Field(default=".fanreader/store.json", alias="STORE_PATH")

    # Reader
    comments_page_size: int = Field(default=30, alias="COMMENTS_PAGE_SIZE")
    browser_fallback_enabled: bool = Field(default=True, alias="BROWSER_FALLBACK_ENABLED")
    browser_timeout_ms: int = Field(default=30_000, alias="BROWSER_TIMEOUT_MS")

    # Speech
    gemini_api_key: str | None = Field(default=None, alias="GEMINI_API_KEY")
    gemini_tts_model: str = Field(
        default="gemini-2.5-flash-preview-tts", alias="GEMINI_TTS_MODEL"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("comments_page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("COMMENTS_PAGE_SIZE must be >= 1")
        return v

    @field_validator("browser_timeout_ms")
    @classmethod
    def validate_browser_timeout(cls, v: int) -> int:
        if v < 1000:
            raise ValueError("BROWSER_TIMEOUT_MS must be >= 1000")
        return v

    @property
    def normalized_base_url(self) -> str:
        """Return the archive origin with trailing slash stripped."""
        return self.archive_base_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If settings are invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
