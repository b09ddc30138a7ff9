"""Recommendation pipeline: vision, then recommendation, then persistence.

Inference success is mandatory and any stage failure ends the run. The
persistence step is best-effort: a failed write is logged and the caller
still gets the generated session id.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Protocol

from dish_recommender.domain.context import MealTime, Season
from dish_recommender.domain.recommendations import RecommendationOutcome
from dish_recommender.domain.sessions import SessionRecord, TableRecord
from dish_recommender.domain.vision import VisionOutcome
from dish_recommender.errors import (
    NotFoundError,
    PipelineError,
    StageFailure,
    ValidationError,
)
from dish_recommender.services.context import resolve_dining_context
from dish_recommender.services.sessions import SessionStore

logger = logging.getLogger(__name__)


class PipelineState(StrEnum):
    """States of a single pipeline invocation."""

    VALIDATING = "validating"
    TABLE_RESOLVING = "table-resolving"
    VISION_RUNNING = "vision-running"
    RECOMMENDATION_RUNNING = "recommendation-running"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class VisionStage(Protocol):
    """Interface for the image analysis stage."""

    async def analyze(self, image_payload: str) -> VisionOutcome:
        """Return the customer profiles found in the image."""


class RecommendationStage(Protocol):
    """Interface for the dish suggestion stage."""

    async def recommend(
        self, vision: VisionOutcome, season: str, meal_time: str
    ) -> RecommendationOutcome:
        """Return dish suggestions for the analysed customers."""


@dataclass(frozen=True)
class RecommendationRequest:
    """Caller input for one pipeline invocation."""

    image_payload: str
    table_number: str
    user_id: str | None = None
    season: str | None = None
    meal_time: str | None = None


@dataclass(frozen=True)
class InferenceResult:
    """Outcome of both inference stages."""

    table: TableRecord
    season: str
    meal_time: str
    vision: VisionOutcome
    recommendation: RecommendationOutcome
    processing_time_ms: int


@dataclass(frozen=True)
class PersistenceAttempt:
    """Outcome of the best-effort session write."""

    session_id: str
    persisted: bool


@dataclass(frozen=True)
class PipelineResult:
    """Mandatory inference result composed with the persistence attempt."""

    inference: InferenceResult
    persistence: PersistenceAttempt

    @property
    def session_id(self) -> str:
        return self.persistence.session_id

    @property
    def people_count(self) -> int:
        return self.inference.vision.people_count


@dataclass
class RecommendationPipeline:
    """Runs one recommendation request end to end."""

    vision_stage: VisionStage
    recommendation_stage: RecommendationStage
    session_store: SessionStore
    clock: Callable[[], datetime] = datetime.now

    async def run(self, request: RecommendationRequest) -> PipelineResult:
        """Run the pipeline, raising ``PipelineError`` when it fails."""
        table_number = request.table_number
        state = self._enter(PipelineState.VALIDATING, table_number)
        try:
            _validate(request)

            state = self._enter(PipelineState.TABLE_RESOLVING, table_number)
            table = await asyncio.to_thread(
                self.session_store.get_table_by_number, table_number
            )
            if table is None:
                raise NotFoundError(f"Table {table_number} does not exist")

            season, meal_time = resolve_dining_context(
                request.season, request.meal_time, self.clock()
            )

            state = self._enter(PipelineState.VISION_RUNNING, table_number)
            started = time.perf_counter()
            vision = await self.vision_stage.analyze(request.image_payload)
            if not vision.succeeded:
                raise StageFailure(
                    "vision-failed",
                    f"Vision analysis failed: {vision.error_detail}",
                    vision.error_detail,
                )
            logger.info(
                "Vision analysis found %d people: table_number=%s",
                vision.people_count,
                table_number,
            )

            state = self._enter(PipelineState.RECOMMENDATION_RUNNING, table_number)
            recommendation = await self.recommendation_stage.recommend(
                vision, season, meal_time
            )
            if not recommendation.succeeded:
                raise StageFailure(
                    "recommendation-failed",
                    f"Recommendation failed: {recommendation.error_detail}",
                    recommendation.error_detail,
                )
            processing_time_ms = int((time.perf_counter() - started) * 1000)
            logger.info(
                "Recommended %d dishes in %d ms: table_number=%s",
                len(recommendation.suggestions),
                processing_time_ms,
                table_number,
            )
        except PipelineError as exc:
            logger.warning(
                "Pipeline entering %s from %s: table_number=%s reason=%s detail=%s",
                PipelineState.FAILED,
                state,
                table_number,
                exc.reason,
                exc.detail or exc.message,
            )
            raise

        inference = InferenceResult(
            table=table,
            season=season,
            meal_time=meal_time,
            vision=vision,
            recommendation=recommendation,
            processing_time_ms=processing_time_ms,
        )
        self._enter(PipelineState.PERSISTING, table_number)
        persistence = await self._persist(request, inference)
        self._enter(PipelineState.DONE, table_number, persistence.session_id)
        return PipelineResult(inference=inference, persistence=persistence)

    async def _persist(
        self, request: RecommendationRequest, inference: InferenceResult
    ) -> PersistenceAttempt:
        session_id = self.session_store.generate_session_id()
        now = datetime.now(tz=UTC)
        record = SessionRecord(
            session_id=session_id,
            table_id=inference.table.id,
            user_id=request.user_id or None,
            image_payload=request.image_payload,
            vision=inference.vision,
            recommendation=inference.recommendation,
            season=inference.season,
            meal_time=inference.meal_time,
            people_count=inference.vision.people_count,
            processing_time_ms=inference.processing_time_ms,
            created_at=now,
            updated_at=now,
        )
        persisted = await asyncio.to_thread(self.session_store.create_session, record)
        if not persisted:
            logger.warning(
                "Recommendation session was not persisted: session_id=%s "
                "table_number=%s",
                session_id,
                request.table_number,
            )
        return PersistenceAttempt(session_id=session_id, persisted=persisted)

    @staticmethod
    def _enter(
        state: PipelineState, table_number: str, session_id: str | None = None
    ) -> PipelineState:
        if session_id:
            logger.info(
                "Pipeline entering %s: table_number=%s session_id=%s",
                state,
                table_number,
                session_id,
            )
        else:
            logger.info("Pipeline entering %s: table_number=%s", state, table_number)
        return state


def _validate(request: RecommendationRequest) -> None:
    if not request.image_payload.strip() or not request.table_number.strip():
        raise ValidationError("image_base64 and table_number must not be empty")
    if request.season and request.season not in set(Season):
        raise ValidationError(
            f"season must be one of: {', '.join(Season)}", request.season
        )
    if request.meal_time and request.meal_time not in set(MealTime):
        raise ValidationError(
            f"meal_time must be one of: {', '.join(MealTime)}", request.meal_time
        )
