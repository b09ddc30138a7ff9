"""Supabase-backed restaurant repository."""

from dataclasses import dataclass
from datetime import datetime

from supabase import Client

from dish_recommender.domain.recommendations import RecommendationOutcome
from dish_recommender.domain.sessions import DishRecord, SessionRecord, TableRecord
from dish_recommender.domain.vision import VisionOutcome
from dish_recommender.errors import PersistenceFailure
from dish_recommender.services.sessions import RestaurantRepository

_TABLE_COLUMNS = (
    "id, table_number, table_name, seat_count, table_type, status, location"
)
_DISH_COLUMNS = (
    "id, dish_code, dish_name, price, description, taste_tags, image_url,"
    " is_signature, rating, sales_count"
)
_SESSION_COLUMNS = (
    "session_id, table_id, user_id, image_base64, vision_result,"
    " recommendation_result, season, meal_time, people_count, processing_time,"
    " feedback_score, feedback_comment, created_at, updated_at"
)


@dataclass
class SupabaseRestaurantRepository(RestaurantRepository):
    """Supabase implementation of the restaurant repository."""

    client: Client

    def get_table_by_number(self, table_number: str) -> TableRecord | None:
        """Return a table by number, if present."""
        response = (
            self.client.table("tables")
            .select(_TABLE_COLUMNS)
            .eq("table_number", table_number)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return TableRecord(
            id=int(row["id"]),
            table_number=row["table_number"],
            table_name=row.get("table_name"),
            seat_count=int(row.get("seat_count") or 0),
            table_type=row.get("table_type") or "normal",
            status=row.get("status") or "available",
            location=row.get("location"),
        )

    def list_recommended_dishes(self) -> list[DishRecord]:
        """Return available recommended dishes ordered by sales."""
        response = (
            self.client.table("dishes")
            .select(_DISH_COLUMNS)
            .eq("is_recommended", True)
            .eq("is_available", True)
            .order("sales_count", desc=True)
            .execute()
        )
        return [
            DishRecord(
                id=int(row["id"]),
                dish_code=row["dish_code"],
                dish_name=row["dish_name"],
                price=float(row["price"]),
                description=row.get("description"),
                taste_tags=row.get("taste_tags"),
                image_url=row.get("image_url"),
                is_signature=bool(row.get("is_signature")),
                rating=float(row.get("rating") or 0.0),
                sales_count=int(row.get("sales_count") or 0),
            )
            for row in response.data or []
        ]

    def insert_session(self, record: SessionRecord) -> None:
        """Insert a session row."""
        response = (
            self.client.table("ai_recommendations")
            .insert(
                {
                    "session_id": record.session_id,
                    "table_id": record.table_id,
                    "user_id": record.user_id,
                    "image_base64": record.image_payload,
                    "vision_result": record.vision.model_dump(mode="json"),
                    "recommendation_result": record.recommendation.model_dump(
                        mode="json"
                    ),
                    "season": record.season,
                    "meal_time": record.meal_time,
                    "people_count": record.people_count,
                    "processing_time": record.processing_time_ms,
                    "created_at": record.created_at.isoformat(),
                    "updated_at": record.updated_at.isoformat(),
                }
            )
            .execute()
        )
        if not response.data:
            raise PersistenceFailure(f"Failed to insert session {record.session_id}")

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("ai_recommendations")
            .select(_SESSION_COLUMNS)
            .eq("session_id", session_id)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _to_session(response.data[0])

    def list_sessions(
        self, table_id: int | None, user_id: str | None, limit: int
    ) -> list[SessionRecord]:
        """Return recent sessions, newest first."""
        query = self.client.table("ai_recommendations").select(_SESSION_COLUMNS)
        if table_id is not None:
            query = query.eq("table_id", table_id)
        if user_id:
            query = query.eq("user_id", user_id)
        response = query.order("created_at", desc=True).limit(limit).execute()
        return [_to_session(row) for row in response.data or []]

    def update_feedback(
        self,
        session_id: str,
        score: int,
        comment: str,
        updated_at: datetime,
    ) -> bool:
        """Set the feedback columns on an existing session."""
        response = (
            self.client.table("ai_recommendations")
            .update(
                {
                    "feedback_score": score,
                    "feedback_comment": comment,
                    "updated_at": updated_at.isoformat(),
                }
            )
            .eq("session_id", session_id)
            .execute()
        )
        return bool(response.data)

    def close(self) -> None:
        """Nothing to release; the client is shared."""


def _to_session(row: dict[str, object]) -> SessionRecord:
    return SessionRecord(
        session_id=str(row["session_id"]),
        table_id=int(row["table_id"]),  # type: ignore[arg-type]
        user_id=row.get("user_id"),  # type: ignore[arg-type]
        image_payload=str(row.get("image_base64") or ""),
        vision=VisionOutcome.model_validate(row["vision_result"]),
        recommendation=RecommendationOutcome.model_validate(
            row["recommendation_result"]
        ),
        season=str(row.get("season") or ""),
        meal_time=str(row.get("meal_time") or ""),
        people_count=int(row.get("people_count") or 0),  # type: ignore[arg-type]
        processing_time_ms=int(
            row.get("processing_time") or 0  # type: ignore[arg-type]
        ),
        created_at=datetime.fromisoformat(str(row["created_at"])),
        updated_at=datetime.fromisoformat(str(row["updated_at"])),
        feedback_score=row.get("feedback_score"),  # type: ignore[arg-type]
        feedback_comment=row.get("feedback_comment"),  # type: ignore[arg-type]
    )
