"""Change-stream client settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Client settings (environment prefix ``DENCH_CLIENT_``)."""

    base_url: str = "http://127.0.0.1:8100"
    tree_path: str = "/api/workspace/tree"
    watch_path: str = "/api/workspace/watch"

    change_debounce_ms: int = 300  # refetch once per burst of change events
    poll_interval_seconds: float = 5.0  # fallback while the stream is down
    backoff_initial_seconds: float = 1.0
    backoff_max_seconds: float = 30.0
    request_timeout_seconds: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="DENCH_CLIENT_",
        env_file=[".env", ".env.local"],
        env_file_encoding="utf-8",
        extra="ignore",
    )


client_settings = ClientSettings()
