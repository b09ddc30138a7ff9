"""Shared test fixtures."""

import io
import json
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime

import pytest

from dish_recommender.adapters.sqlite_restaurant_repository import (
    SqliteRestaurantRepository,
)
from dish_recommender.app_logging import configure_logging
from dish_recommender.config import ModelConfig, Settings
from dish_recommender.containers import AppContainer
from dish_recommender.domain.recommendations import (
    DishSuggestion,
    RecommendationOutcome,
)
from dish_recommender.domain.sessions import DishRecord, SessionRecord, TableRecord
from dish_recommender.domain.vision import CustomerProfile, VisionOutcome
from dish_recommender.errors import CallFailure, PersistenceFailure
from dish_recommender.services.llm import ChatClient
from dish_recommender.services.pipeline import RecommendationPipeline
from dish_recommender.services.recommendations import RecommendationService
from dish_recommender.services.sessions import RestaurantRepository, SessionStore
from dish_recommender.services.vision import VisionService

VISION_MODEL = "vision-model"
TEXT_MODEL = "text-model"
FIXED_NOW = datetime(2026, 7, 15, 12, 30)

SEASON_BY_MONTH = {
    1: "winter",
    2: "winter",
    3: "spring",
    4: "spring",
    5: "spring",
    6: "summer",
    7: "summer",
    8: "summer",
    9: "autumn",
    10: "autumn",
    11: "autumn",
    12: "winter",
}

VISION_ANSWER = json.dumps(
    {
        "people_count": "2",
        "customers": [
            {"age_bracket": "child", "gender": "woman", "body_type": "thin"},
            {"age_bracket": "middle-aged", "gender": "man", "body_type": "average"},
        ],
    }
)

RECOMMENDATION_ANSWER = json.dumps(
    [
        {
            "dish_name": "Sweet and Sour Pork",
            "reason": "Children enjoy sweet flavours",
            "taste_level": "mildly sweet",
            "nutrition_note": "Rich in protein",
        },
        {
            "dish_name": "Steamed Sea Bass",
            "reason": "Light and easy to digest",
            "taste_level": "light",
            "nutrition_note": "High in omega-3",
        },
        {
            "dish_name": "Stir-fried Greens",
            "reason": "Balances the meal",
            "taste_level": "lightly salted",
            "nutrition_note": "Adds fibre",
        },
    ]
)

SAMPLE_IMAGE = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
    "nGNgYGD4DwABBAEAwS2OUAAAAABJRU5ErkJggg=="
)


@dataclass
class FakeChatClient(ChatClient):
    """Fake chat client answering per model and recording calls."""

    answers: dict[str, str] = field(
        default_factory=lambda: {
            VISION_MODEL: VISION_ANSWER,
            TEXT_MODEL: RECOMMENDATION_ANSWER,
        }
    )
    failures: dict[str, CallFailure] = field(default_factory=dict)
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        messages: list[dict[str, object]],
        max_tokens: int,
        temperature: float,
        timeout: float,
    ) -> str:
        self.calls.append(
            {
                "model": model,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": temperature,
                "timeout": timeout,
            }
        )
        if model in self.failures:
            raise self.failures[model]
        return self.answers.get(model, "")

    def calls_for(self, model: str) -> list[dict[str, object]]:
        return [call for call in self.calls if call["model"] == model]


def make_table(table_number: str = "T001", table_id: int = 1) -> TableRecord:
    return TableRecord(
        id=table_id,
        table_number=table_number,
        table_name="Table 1",
        seat_count=4,
        table_type="normal",
        status="available",
        location="Main hall",
    )


def make_session(
    session_id: str = "AI202607151230001234567890123456",
    table_id: int = 1,
    user_id: str | None = "guest-1",
    created_at: datetime = FIXED_NOW,
) -> SessionRecord:
    return SessionRecord(
        session_id=session_id,
        table_id=table_id,
        user_id=user_id,
        image_payload=SAMPLE_IMAGE,
        vision=VisionOutcome(
            people_count=1,
            profiles=[CustomerProfile(age_bracket="senior", gender="man")],
            succeeded=True,
            partial=True,
        ),
        recommendation=RecommendationOutcome(
            suggestions=[
                DishSuggestion(dish_name="Congee", reason="Gentle on the stomach"),
                DishSuggestion(dish_name="Steamed Egg", reason="Soft texture"),
            ],
            succeeded=True,
        ),
        season="winter",
        meal_time="breakfast",
        people_count=1,
        processing_time_ms=1200,
        created_at=created_at,
        updated_at=created_at,
    )


@dataclass
class InMemoryRestaurantRepository(RestaurantRepository):
    """In-memory restaurant repository for tests."""

    tables: dict[str, TableRecord] = field(
        default_factory=lambda: {"T001": make_table()}
    )
    dishes: list[DishRecord] = field(default_factory=list)
    sessions: dict[str, SessionRecord] = field(default_factory=dict)
    fail_writes: bool = False
    closed: bool = False

    def get_table_by_number(self, table_number: str) -> TableRecord | None:
        return self.tables.get(table_number)

    def list_recommended_dishes(self) -> list[DishRecord]:
        return list(self.dishes)

    def insert_session(self, record: SessionRecord) -> None:
        if self.fail_writes:
            raise PersistenceFailure("disk full")
        if record.session_id in self.sessions:
            raise PersistenceFailure("duplicate session_id")
        self.sessions[record.session_id] = record

    def get_session(self, session_id: str) -> SessionRecord | None:
        return self.sessions.get(session_id)

    def list_sessions(
        self, table_id: int | None, user_id: str | None, limit: int
    ) -> list[SessionRecord]:
        matches = [
            session
            for session in self.sessions.values()
            if (table_id is None or session.table_id == table_id)
            and (not user_id or session.user_id == user_id)
        ]
        matches.sort(key=lambda session: session.created_at, reverse=True)
        return matches[:limit]

    def update_feedback(
        self, session_id: str, score: int, comment: str, updated_at: datetime
    ) -> bool:
        if self.fail_writes:
            raise PersistenceFailure("disk full")
        session = self.sessions.get(session_id)
        if session is None:
            return False
        self.sessions[session_id] = replace(
            session,
            feedback_score=score,
            feedback_comment=comment,
            updated_at=updated_at,
        )
        return True

    def close(self) -> None:
        self.closed = True


def _default_vision_outcome() -> VisionOutcome:
    return VisionOutcome(
        people_count=2,
        profiles=[
            CustomerProfile(age_bracket="child", gender="woman", body_type="thin"),
            CustomerProfile(age_bracket="senior", gender="man", body_type="heavy"),
        ],
        succeeded=True,
    )


def _default_recommendation_outcome() -> RecommendationOutcome:
    return RecommendationOutcome(
        suggestions=[
            DishSuggestion(
                dish_name="Sweet and Sour Pork",
                reason="Children enjoy sweet flavours",
                taste_level="mildly sweet",
                nutrition_note="Rich in protein",
            )
        ],
        succeeded=True,
    )


@dataclass
class StubVisionStage:
    """Vision stage returning a fixed outcome and counting calls."""

    outcome: VisionOutcome = field(default_factory=_default_vision_outcome)
    calls: int = 0

    async def analyze(self, image_payload: str) -> VisionOutcome:
        self.calls += 1
        return self.outcome


@dataclass
class StubRecommendationStage:
    """Recommendation stage returning a fixed outcome and recording context."""

    outcome: RecommendationOutcome = field(
        default_factory=_default_recommendation_outcome
    )
    calls: list[tuple[str, str]] = field(default_factory=list)

    async def recommend(
        self, vision: VisionOutcome, season: str, meal_time: str
    ) -> RecommendationOutcome:
        self.calls.append((season, meal_time))
        return self.outcome


@pytest.fixture
def settings() -> Settings:
    return Settings(
        dashscope_api_key="test-key",
        database_path=":memory:",
        vision_model=VISION_MODEL,
        text_model=TEXT_MODEL,
    )


@pytest.fixture
def model_config(settings: Settings) -> ModelConfig:
    return ModelConfig.from_settings(settings)


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def sqlite_repository() -> SqliteRestaurantRepository:
    return SqliteRestaurantRepository.connect(":memory:")


@pytest.fixture
def session_store(sqlite_repository: SqliteRestaurantRepository) -> SessionStore:
    return SessionStore(repository=sqlite_repository, clock=lambda: FIXED_NOW)


@pytest.fixture
def container(
    settings: Settings,
    model_config: ModelConfig,
    chat_client: FakeChatClient,
    session_store: SessionStore,
) -> AppContainer:
    vision_service = VisionService(client=chat_client, config=model_config)
    recommendation_service = RecommendationService(
        client=chat_client, config=model_config
    )
    pipeline = RecommendationPipeline(
        vision_stage=vision_service,
        recommendation_stage=recommendation_service,
        session_store=session_store,
        clock=lambda: FIXED_NOW,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        model_config=model_config,
        session_store=session_store,
        vision_service=vision_service,
        recommendation_service=recommendation_service,
        pipeline=pipeline,
        close_resources=close_resources,
    )


@pytest.fixture
def log_output() -> Iterator[io.StringIO]:
    """Capture what the configured application handler writes."""
    logger = logging.getLogger("dish_recommender")
    logger.handlers.clear()
    configure_logging()
    stream = io.StringIO()
    logger.handlers[0].setStream(stream)
    yield stream
    logger.handlers.clear()
