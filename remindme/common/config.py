"""Central environment-driven settings shared by the scheduler processes.

Each process loads this once at startup. Behavior is controlled by
environment variables (see `.env.example`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class CommonSettings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "reminder-scheduler"
    log_level: str = "INFO"
    redis_url: str = "redis://redis:6379/0"
    reminder_queue_key: str = "reminder_queue"
    poll_interval_ms: int = 100
    store_timeout_seconds: float = 5.0
    api_key: str
    delivery_webhook_url: str | None = None
    delivery_timeout_seconds: float = 5.0
    reminder_message_prefix: str = "Reminder: "
    dispatcher_enabled: bool = True
    tracing_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://otel-collector:4318/v1/traces"
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = CommonSettings()
