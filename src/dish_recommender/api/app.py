"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from dish_recommender.api.models import (
    DEFAULT_CONFIDENCE,
    FeedbackBody,
    RecommendationBody,
)
from dish_recommender.app_logging import configure_logging
from dish_recommender.containers import AppContainer
from dish_recommender.domain.sessions import DishRecord, SessionRecord
from dish_recommender.errors import PipelineError
from dish_recommender.services.pipeline import PipelineResult, RecommendationRequest

_MAX_HISTORY_LIMIT = 100


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(RequestValidationError)
    async def invalid_body(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.info("Rejected malformed request body: path=%s", request.url.path)
        return _error(400, "Invalid request body")

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/recommendation")
    async def recommend(body: RecommendationBody, request: Request) -> JSONResponse:
        """Analyse a photo of the table and recommend dishes."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.pipeline.run(
                RecommendationRequest(
                    image_payload=body.image_base64,
                    table_number=body.table_number,
                    user_id=body.user_id,
                    season=body.season,
                    meal_time=body.meal_time,
                )
            )
        except PipelineError as exc:
            return _error(exc.status_code, exc.message)
        except Exception:
            logger.exception(
                "Unexpected failure handling recommendation: table_number=%s",
                body.table_number,
            )
            return _error(500, "Internal server error")
        return _success("Recommendation succeeded", _format_result(body, result))

    @app.post("/recommendation/feedback")
    def recommendation_feedback(body: FeedbackBody, request: Request) -> JSONResponse:
        """Store a score and optional comment for a recommendation session."""
        state_container: AppContainer = request.app.state.container
        if not body.session_id:
            return _error(400, "session_id must not be empty")
        updated = state_container.session_store.update_feedback(
            body.session_id, body.score, body.comment or ""
        )
        if not updated:
            return _error(500, "Failed to submit feedback")
        return _success("Feedback submitted", {})

    @app.get("/recommendation/history")
    def recommendation_history(
        request: Request,
        table_number: str | None = None,
        user_id: str | None = None,
        limit: int = 10,
    ) -> JSONResponse:
        """Return recent recommendation sessions."""
        state_container: AppContainer = request.app.state.container
        store = state_container.session_store
        limit = max(1, min(limit, _MAX_HISTORY_LIMIT))
        try:
            sessions: list[SessionRecord] = []
            table = store.get_table_by_number(table_number) if table_number else None
            if not table_number or table is not None:
                sessions = store.list_sessions(
                    table_id=table.id if table else None,
                    user_id=user_id,
                    limit=limit,
                )
        except Exception:
            logger.exception("Failed to load recommendation history")
            return _error(500, "Internal server error")
        return _success(
            "History loaded",
            {
                "recommendations": [_format_session(s) for s in sessions],
                "total": len(sessions),
                "limit": limit,
            },
        )

    @app.get("/recommendation/sessions/{session_id}")
    def recommendation_session(session_id: str, request: Request) -> JSONResponse:
        """Return one stored recommendation session."""
        state_container: AppContainer = request.app.state.container
        try:
            session = state_container.session_store.get_session(session_id)
        except Exception:
            logger.exception(
                "Failed to load recommendation session: session_id=%s", session_id
            )
            return _error(500, "Internal server error")
        if session is None:
            return _error(404, "Session not found")
        return _success("Session loaded", _format_session(session))

    @app.get("/dishes/recommended")
    def recommended_dishes(request: Request) -> JSONResponse:
        """Return the dishes the restaurant recommends."""
        state_container: AppContainer = request.app.state.container
        try:
            dishes = state_container.session_store.list_recommended_dishes()
        except Exception:
            logger.exception("Failed to load recommended dishes")
            return _error(500, "Internal server error")
        return _success(
            "Recommended dishes loaded",
            {"dishes": [_format_dish(dish) for dish in dishes], "total": len(dishes)},
        )

    return app


def _success(message: str, data: dict[str, object]) -> JSONResponse:
    return JSONResponse(
        status_code=200, content={"code": 200, "message": message, "data": data}
    )


def _error(code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=code, content={"code": code, "message": message, "data": {}}
    )


def _format_result(
    body: RecommendationBody, result: PipelineResult
) -> dict[str, object]:
    """Build the success payload; confidence is a fixed placeholder."""
    inference = result.inference
    return {
        "session_id": result.session_id,
        "table_number": body.table_number,
        "people_count": result.people_count,
        "season": inference.season,
        "meal_time": inference.meal_time,
        "processing_time": inference.processing_time_ms,
        "recommendations": [
            {
                "dish_name": suggestion.dish_name,
                "reason": suggestion.reason,
                "confidence": DEFAULT_CONFIDENCE,
            }
            for suggestion in inference.recommendation.suggestions
        ],
    }


def _format_session(session: SessionRecord) -> dict[str, object]:
    """Serialise a stored session without its image payload."""
    return {
        "session_id": session.session_id,
        "table_id": session.table_id,
        "user_id": session.user_id,
        "season": session.season,
        "meal_time": session.meal_time,
        "people_count": session.people_count,
        "processing_time": session.processing_time_ms,
        "customers": [profile.model_dump() for profile in session.vision.profiles],
        "recommendations": [
            suggestion.model_dump()
            for suggestion in session.recommendation.suggestions
        ],
        "feedback_score": session.feedback_score,
        "feedback_comment": session.feedback_comment,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
    }


def _format_dish(dish: DishRecord) -> dict[str, object]:
    return {
        "id": dish.id,
        "dish_code": dish.dish_code,
        "dish_name": dish.dish_name,
        "price": dish.price,
        "description": dish.description,
        "taste_tags": dish.taste_tags,
        "image_url": dish.image_url,
        "is_signature": dish.is_signature,
        "rating": dish.rating,
        "sales_count": dish.sales_count,
    }
