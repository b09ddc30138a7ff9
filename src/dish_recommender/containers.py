"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from dish_recommender.adapters.openai_chat_client import OpenAIChatClient
from dish_recommender.adapters.sqlite_restaurant_repository import (
    SqliteRestaurantRepository,
)
from dish_recommender.adapters.supabase_restaurant_repository import (
    SupabaseRestaurantRepository,
)
from dish_recommender.config import ModelConfig, Settings
from dish_recommender.services.context import restaurant_clock
from dish_recommender.services.pipeline import RecommendationPipeline
from dish_recommender.services.recommendations import RecommendationService
from dish_recommender.services.sessions import RestaurantRepository, SessionStore
from dish_recommender.services.vision import VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    model_config: ModelConfig
    session_store: SessionStore
    vision_service: VisionService
    recommendation_service: RecommendationService
    pipeline: RecommendationPipeline
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    model_config = ModelConfig.from_settings(resolved_settings)
    clock = restaurant_clock(resolved_settings.restaurant_timezone)
    session_store = SessionStore(
        repository=build_repository(resolved_settings), clock=clock
    )
    chat_client = OpenAIChatClient.create(
        api_key=model_config.api_key,
        base_url=model_config.base_url,
        timeout_seconds=model_config.timeout_seconds,
    )
    vision_service = VisionService(client=chat_client, config=model_config)
    recommendation_service = RecommendationService(
        client=chat_client, config=model_config
    )
    pipeline = RecommendationPipeline(
        vision_stage=vision_service,
        recommendation_stage=recommendation_service,
        session_store=session_store,
        clock=clock,
    )

    async def close_resources() -> None:
        await chat_client.close()
        session_store.close()

    return AppContainer(
        settings=resolved_settings,
        model_config=model_config,
        session_store=session_store,
        vision_service=vision_service,
        recommendation_service=recommendation_service,
        pipeline=pipeline,
        close_resources=close_resources,
    )


def build_repository(settings: Settings) -> RestaurantRepository:
    """Open the configured storage backend."""
    if settings.storage_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the "
                "supabase storage backend"
            )
        return SupabaseRestaurantRepository(
            create_client(settings.supabase_url, settings.supabase_service_key)
        )
    return SqliteRestaurantRepository.connect(
        settings.database_path, seed_sample_data=settings.seed_sample_data
    )
