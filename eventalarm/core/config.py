"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Event Alarm Dispatcher"
    debug: bool = False

    # Databases
    store_database_url: str = "sqlite:///./eventalarm_store.db"  # device-side event store
    edge_database_url: str = "sqlite:///./eventalarm_edge.db"  # dispatcher state + dedupe ledger

    # Local evaluator loops
    foreground_interval_seconds: int = 10
    background_interval_seconds: int = 30
    schedule_id: str | None = None  # None = most recently updated schedule

    # Sync to the edge dispatcher
    edge_url: str = "http://localhost:8000"
    sync_interval_seconds: int = 60
    sync_refresh_minutes: int = 60  # resend unchanged payload so the edge never sees it as stale
    push_endpoint: str = ""
    push_p256dh: str = ""
    push_auth: str = ""

    # Edge dispatcher
    edge_tick_seconds: int = 60
    dedupe_ttl_seconds: int = 3600
    state_retention_days: int = 7

    # Notifications
    notification_title: str = "Event reminder"
    default_icon: str = "/icon-192.png"

    # Web Push (VAPID)
    vapid_private_key: str = ""
    vapid_subject: str = "mailto:admin@example.com"


settings = Settings()
