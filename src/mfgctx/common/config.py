"""Application configuration via environment variables."""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend entity services, probed in this order
    source_urls: dict[str, str] = {
        "erp": "http://localhost:7001",
        "mes": "http://localhost:7002",
        "scada": "http://localhost:7003",
    }
    source_timeout_seconds: float = 5.0  # Per HTTP call; expiry counts as "not found"

    # Context graph
    graph_cache_ttl_seconds: int = 1800  # 30 minutes

    # App
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @field_validator("source_urls")
    @classmethod
    def _strip_trailing_slashes(cls, value: dict[str, str]) -> dict[str, str]:
        if not value:
            raise ValueError("SOURCE_URLS must name at least one backend service.")
        return {name: url.rstrip("/") for name, url in value.items()}

    @field_validator("source_timeout_seconds")
    @classmethod
    def _positive_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("SOURCE_TIMEOUT_SECONDS must be positive.")
        return value


settings = Settings()
