"""Configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Live feed / roster directory
    feed_base_url: str = "https://volleyball.ronesse.no"
    live_path: str = "/live"
    roster_path: str = "/teams"
    roster_page_size: int = 200

    # Polling cadence (seconds). Roster refreshes independently and less often.
    live_poll_seconds: float = 5.0
    roster_poll_seconds: float = 300.0
    request_timeout_seconds: float = 10.0

    # Country string in the roster that marks the home federation
    home_federation_country: str = "Norge"

    # Start times on match cards are shown in this zone
    display_timezone: str = "Europe/Oslo"

    # Viewer sessions
    max_sessions: int = 50
    # A session with no board read or event for this long is torn down
    session_idle_seconds: float = 300.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
