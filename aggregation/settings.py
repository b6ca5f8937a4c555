"""Configuration models for the news aggregation core."""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Annotated, Any, List, Literal, Optional

from pydantic import Field, PositiveFloat, PositiveInt, SecretStr, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

KNOWN_PROVIDERS = ("newsapi", "gnews", "newscatcher")


class Settings(BaseSettings):
    """뉴스 집계용 환경 설정."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    news_api_key: Optional[SecretStr] = Field(None, alias="NEWS_API_KEY", description="NewsAPI.org 인증 키.")
    gnews_api_key: Optional[SecretStr] = Field(None, alias="GNEWS_API_KEY", description="GNews 인증 키.")
    newscatcher_api_key: Optional[SecretStr] = Field(
        None,
        alias="NEWSCATCHER_API_KEY",
        description="NewsCatcher 인증 키.",
    )
    news_api_endpoint: str = Field(
        "https://newsapi.org/v2/top-headlines",
        alias="NEWS_API_ENDPOINT",
        description="NewsAPI 엔드포인트",
    )
    gnews_endpoint: str = Field(
        "https://gnews.io/api/v4/top-headlines",
        alias="GNEWS_ENDPOINT",
        description="GNews 엔드포인트",
    )
    newscatcher_endpoint: str = Field(
        "https://api.newscatcher.com/v1/search",
        alias="NEWSCATCHER_ENDPOINT",
        description="NewsCatcher 엔드포인트",
    )
    news_providers: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: list(KNOWN_PROVIDERS),
        alias="NEWS_PROVIDERS",
        description="우선순위 순서의 프로바이더 목록 (콤마 구분 또는 JSON 배열).",
    )
    provider_timeout_seconds: PositiveInt = Field(
        10,
        alias="PROVIDER_TIMEOUT_SECONDS",
        description="프로바이더 호출 타임아웃(초)",
    )
    news_cache_ttl_seconds: PositiveInt = Field(300, alias="NEWS_CACHE_TTL_SECONDS", description="뉴스 캐시 TTL.")
    preferences_cache_ttl_seconds: PositiveInt = Field(
        600,
        alias="PREFERENCES_CACHE_TTL_SECONDS",
        description="사용자 선호도 캐시 TTL.",
    )
    cache_sweep_interval_seconds: PositiveInt = Field(
        120,
        alias="CACHE_SWEEP_INTERVAL_SECONDS",
        description="만료 항목 정리 주기(초).",
    )
    cache_backend: Literal["memory", "redis"] = Field("memory", alias="CACHE_BACKEND", description="캐시 저장소 종류.")
    cache_redis_url: Optional[str] = Field(None, alias="CACHE_REDIS_URL", description="캐시용 Redis DSN.")
    cache_redis_socket_timeout_seconds: PositiveFloat = Field(
        0.5,
        alias="CACHE_REDIS_SOCKET_TIMEOUT_SECONDS",
        description="Redis 명령 소켓 타임아웃(초).",
    )
    database_url: str = Field(
        "sqlite:///./var/storage/app.db",
        alias="DATABASE_URL",
        description="사용자 선호도 저장소 연결 문자열.",
    )
    log_level: str = Field("INFO", alias="LOG_LEVEL", description="로그 레벨.")
    log_json: bool = Field(False, alias="LOG_JSON", description="로그를 JSON 형식으로 출력할지 여부.")

    @field_validator("news_providers", mode="before")
    @classmethod
    def _parse_news_providers(cls, value: Any) -> List[Any]:
        if value in (None, "", []):
            return list(KNOWN_PROVIDERS)
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                try:
                    return json.loads(text)
                except json.JSONDecodeError as exc:
                    raise ValueError("NEWS_PROVIDERS는 JSON 배열 또는 콤마 구분 문자열이어야 합니다.") from exc
            return [part for part in text.split(",") if part.strip()]
        if isinstance(value, (list, tuple)):
            return list(value)
        raise ValueError("NEWS_PROVIDERS는 리스트 형태여야 합니다.")

    @field_validator("news_providers")
    @classmethod
    def _validate_news_providers(cls, value: List[str]) -> List[str]:
        names: List[str] = []
        for raw in value:
            name = str(raw).strip().lower()
            if name not in KNOWN_PROVIDERS:
                raise ValueError(f"알 수 없는 프로바이더입니다: {name}")
            if name in names:
                raise ValueError(f"중복된 프로바이더 항목이 존재합니다: {name}")
            names.append(name)
        if not names:
            raise ValueError("NEWS_PROVIDERS는 비어 있을 수 없습니다.")
        return names

    @field_validator("database_url")
    @classmethod
    def _validate_database_url(cls, value: str) -> str:
        if "://" not in value:
            raise ValueError("DATABASE_URL은 유효한 DSN 문자열이어야 합니다.")
        return value

    @model_validator(mode="after")
    def _require_redis_url(self) -> "Settings":
        if self.cache_backend == "redis" and not self.cache_redis_url:
            raise ValueError("CACHE_BACKEND=redis 인 경우 CACHE_REDIS_URL이 필요합니다.")
        return self


@lru_cache()
def get_settings() -> Settings:
    """환경 변수를 기준으로 Settings 인스턴스를 반환한다."""
    try:
        return Settings()
    except ValidationError as exc:
        raise RuntimeError(f"환경 변수 검증에 실패했습니다: {exc}") from exc


def reset_settings_cache() -> None:
    """Settings LRU 캐시를 초기화한다 (테스트 용도)."""
    get_settings.cache_clear()  # type: ignore[attr-defined]
