from pydantic_settings import BaseSettings, SettingsConfigDict


class TelemetrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PERFWATCH_")

    # Query timing
    slow_query_threshold_ms: float = 100.0
    query_timing_enabled: bool = True

    # Buffer capacities (oldest entries are evicted beyond these)
    query_capacity: int = 1000
    vitals_capacity: int = 1000
    event_capacity: int = 1000
    image_capacity: int = 100
    error_capacity: int = 100
    issue_capacity: int = 50

    # Error tracking
    error_tracking_enabled: bool = True

    # Logging
    log_level: str = "INFO"
