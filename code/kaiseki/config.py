from functools import lru_cache

from pydantic import BaseModel, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FFLogsConfig(BaseModel):
    client_id: str = ""
    client_secret: SecretStr = SecretStr("")
    api_url: str = "https://www.fflogs.com/api/v2/client"
    oauth_url: str = "https://www.fflogs.com/oauth/token"
    locale: str = "ja"
    translate: bool = True
    max_retries: int = 4
    request_timeout_ms: int = 0  # 0 = no per-request timeout


class XivApiConfig(BaseModel):
    enabled: bool = True
    base_url: str = "https://xivapi.com"
    language: str = "ja"
    cache_path: str = "out/xivapi_ability_cache.json"
    max_retries: int = 2
    timeout_ms: int = 2500
    concurrency: int = 8


class AbilityConfig(BaseModel):
    overrides_path: str = "out/ability_overrides.json"


class DatabaseConfig(BaseModel):
    url: str = ""  # empty = durable store disabled
    echo: bool = False
    pool_size: int = 5
    max_overflow: int = 10


class CacheConfig(BaseModel):
    result_ttl_minutes: int = 30
    unresolved_ttl_days: int = 3


class RankingsConfig(BaseModel):
    soft_limit_ms: int = 22000
    max_retries: int = 1
    request_timeout_ms: int = 6000


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    debug: bool = False
    log_level: str = "INFO"
    api_key: str = ""  # empty = auth disabled
    output_dir: str = "out"
    fflogs: FFLogsConfig = FFLogsConfig()
    xivapi: XivApiConfig = XivApiConfig()
    abilities: AbilityConfig = AbilityConfig()
    db: DatabaseConfig = DatabaseConfig()
    cache: CacheConfig = CacheConfig()
    rankings: RankingsConfig = RankingsConfig()

    @model_validator(mode="after")
    def _check_cross_field_deps(self):
        if self.xivapi.concurrency < 1:
            raise ValueError("XIVAPI__CONCURRENCY must be >= 1")
        if self.fflogs.max_retries < 0:
            raise ValueError("FFLOGS__MAX_RETRIES must be >= 0")
        if self.rankings.soft_limit_ms <= 0:
            raise ValueError("RANKINGS__SOFT_LIMIT_MS must be > 0")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
