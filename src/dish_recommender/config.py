"""Application configuration."""

import os
from dataclasses import dataclass, field
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    dashscope_api_key: str
    model_base_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1"
    vision_model: str = "qwen3-vl-plus"
    text_model: str = "qwen-plus"
    model_timeout_seconds: float = 30.0
    model_max_tokens: int = 2048
    vision_temperature: float = 0.7
    text_temperature: float = 0.8
    storage_backend: Literal["sqlite", "supabase"] = "sqlite"
    database_path: str = "wisdom_restaurant.db"
    seed_sample_data: bool = True
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    restaurant_timezone: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
        frozen=True,
    )


@dataclass(frozen=True)
class ModelConfig:
    """Immutable model-provider configuration shared by both inference stages."""

    api_key: str = field(repr=False)
    base_url: str
    vision_model: str
    text_model: str
    timeout_seconds: float
    max_tokens: int
    vision_temperature: float
    text_temperature: float

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelConfig":
        """Snapshot the model settings once at startup."""
        return cls(
            api_key=settings.dashscope_api_key,
            base_url=settings.model_base_url,
            vision_model=settings.vision_model,
            text_model=settings.text_model,
            timeout_seconds=settings.model_timeout_seconds,
            max_tokens=settings.model_max_tokens,
            vision_temperature=settings.vision_temperature,
            text_temperature=settings.text_temperature,
        )
