from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PAGE_SIZE_OPTIONS = [10, 20, 30, 40, 50]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="OB_", extra="ignore")

    app_name: str = "Order Browser"
    env: str = "dev"
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./orders.db"
    test_database_url: str = "sqlite+pysqlite:///:memory:"

    default_page_limit: int = Field(default=50, ge=1)
    max_page_limit: int = Field(default=500, ge=1)

    page_size_options: list[int] = Field(default_factory=lambda: list(DEFAULT_PAGE_SIZE_OPTIONS))
    default_page_size: int = 20
    cache_staleness_seconds: float = Field(default=600.0, gt=0, description="10 minutes")
    jump_debounce_seconds: float = Field(default=1.0, ge=0)

    # Client transport: local | http
    transport: str = "local"
    api_base_url: str = "http://localhost:8000"
    http_timeout_seconds: float = 15.0

    bootstrap_demo_on_startup: bool = False
    demo_order_count: int = Field(default=45, ge=0)
    demo_rng_seed: int = 7

    @field_validator("page_size_options")
    @classmethod
    def _check_page_size_options(cls, value: list[int]) -> list[int]:
        if not value or any(int(v) < 1 for v in value):
            raise ValueError("page_size_options must be non-empty positive integers")
        return sorted({int(v) for v in value})

    def model_post_init(self, __context) -> None:
        if self.default_page_size not in self.page_size_options:
            raise ValueError(
                f"default_page_size={self.default_page_size} must be one of {self.page_size_options}"
            )
        if self.default_page_limit > self.max_page_limit:
            raise ValueError("default_page_limit must not exceed max_page_limit")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
