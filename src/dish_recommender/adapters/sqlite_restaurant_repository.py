"""SQLite-backed restaurant repository over a single connection.

The connection is shared across threads; callers must serialise access,
which ``SessionStore`` does.
"""

import sqlite3
from dataclasses import dataclass
from datetime import datetime

from dish_recommender.domain.recommendations import RecommendationOutcome
from dish_recommender.domain.sessions import DishRecord, SessionRecord, TableRecord
from dish_recommender.domain.vision import VisionOutcome
from dish_recommender.errors import PersistenceFailure
from dish_recommender.services.sessions import RestaurantRepository

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS tables (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        table_number TEXT UNIQUE NOT NULL,
        table_name TEXT,
        seat_count INTEGER DEFAULT 4,
        table_type TEXT DEFAULT 'normal',
        status TEXT DEFAULT 'available',
        location TEXT,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS dishes (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        dish_code TEXT UNIQUE NOT NULL,
        dish_name TEXT NOT NULL,
        price REAL NOT NULL,
        description TEXT,
        taste_tags TEXT,
        image_url TEXT,
        is_recommended BOOLEAN DEFAULT 0,
        is_signature BOOLEAN DEFAULT 0,
        is_available BOOLEAN DEFAULT 1,
        sales_count INTEGER DEFAULT 0,
        rating REAL DEFAULT 0.0,
        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ai_recommendations (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        session_id TEXT UNIQUE NOT NULL,
        table_id INTEGER NOT NULL,
        user_id TEXT,
        image_base64 TEXT,
        vision_result TEXT NOT NULL,
        recommendation_result TEXT NOT NULL,
        season TEXT,
        meal_time TEXT,
        people_count INTEGER,
        processing_time INTEGER,
        feedback_score INTEGER,
        feedback_comment TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (table_id) REFERENCES tables(id)
    )
    """,
)

_SAMPLE_TABLES = (
    ("T001", "Table 1", 4, "normal", "available", "Main hall"),
    ("T002", "Table 2", 6, "vip", "available", "Private room"),
    ("T003", "Table 3", 2, "normal", "occupied", "Window"),
    ("T004", "Table 4", 8, "family", "available", "Main hall"),
    ("T005", "Table 5", 4, "normal", "available", "Main hall"),
)

# (code, name, price, description, taste tags, recommended, signature)
_SAMPLE_DISHES = (
    ("D001", "Kung Pao Chicken", 28.0, "Classic Sichuan stir-fry", "spicy", 1, 1),
    ("D002", "Red-Braised Pork", 35.0, "Rich but not greasy", "sweet,salty", 1, 0),
    ("D003", "Steamed Sea Bass", 48.0, "Fresh and light", "light,fresh", 1, 1),
    ("D004", "Mapo Tofu", 18.0, "Silky tofu in chilli sauce", "spicy", 0, 0),
    ("D005", "Sweet and Sour Pork", 32.0, "Crisp and tender", "sweet,sour", 1, 0),
)

_SESSION_COLUMNS = (
    "session_id, table_id, user_id, image_base64, vision_result, "
    "recommendation_result, season, meal_time, people_count, processing_time, "
    "feedback_score, feedback_comment, created_at, updated_at"
)


@dataclass
class SqliteRestaurantRepository(RestaurantRepository):
    """SQLite implementation of the restaurant repository."""

    connection: sqlite3.Connection

    @classmethod
    def connect(
        cls, database_path: str, seed_sample_data: bool = True
    ) -> "SqliteRestaurantRepository":
        """Open the database, create the schema and optionally seed it."""
        connection = sqlite3.connect(database_path, check_same_thread=False)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        repository = cls(connection)
        repository.create_schema()
        if seed_sample_data:
            repository.seed_sample_data()
        return repository

    def create_schema(self) -> None:
        """Create tables that do not exist yet."""
        with self.connection:
            for statement in _SCHEMA:
                self.connection.execute(statement)

    def seed_sample_data(self) -> None:
        """Insert the sample tables and dishes, skipping existing codes."""
        with self.connection:
            self.connection.executemany(
                "INSERT OR IGNORE INTO tables (table_number, table_name, seat_count,"
                " table_type, status, location) VALUES (?, ?, ?, ?, ?, ?)",
                _SAMPLE_TABLES,
            )
            self.connection.executemany(
                "INSERT OR IGNORE INTO dishes (dish_code, dish_name, price,"
                " description, taste_tags, is_recommended, is_signature)"
                " VALUES (?, ?, ?, ?, ?, ?, ?)",
                _SAMPLE_DISHES,
            )

    def get_table_by_number(self, table_number: str) -> TableRecord | None:
        """Return a table by number, if present."""
        row = self.connection.execute(
            "SELECT id, table_number, table_name, seat_count, table_type, status,"
            " location FROM tables WHERE table_number = ?",
            (table_number,),
        ).fetchone()
        if row is None:
            return None
        return TableRecord(
            id=row["id"],
            table_number=row["table_number"],
            table_name=row["table_name"],
            seat_count=row["seat_count"],
            table_type=row["table_type"],
            status=row["status"],
            location=row["location"],
        )

    def list_recommended_dishes(self) -> list[DishRecord]:
        """Return available recommended dishes ordered by sales."""
        rows = self.connection.execute(
            "SELECT id, dish_code, dish_name, price, description, taste_tags,"
            " image_url, is_signature, rating, sales_count FROM dishes"
            " WHERE is_recommended = 1 AND is_available = 1"
            " ORDER BY sales_count DESC, id"
        ).fetchall()
        return [
            DishRecord(
                id=row["id"],
                dish_code=row["dish_code"],
                dish_name=row["dish_name"],
                price=row["price"],
                description=row["description"],
                taste_tags=row["taste_tags"],
                image_url=row["image_url"],
                is_signature=bool(row["is_signature"]),
                rating=row["rating"],
                sales_count=row["sales_count"],
            )
            for row in rows
        ]

    def insert_session(self, record: SessionRecord) -> None:
        """Insert a session row."""
        try:
            with self.connection:
                self.connection.execute(
                    f"INSERT INTO ai_recommendations ({_SESSION_COLUMNS})"  # noqa: S608
                    " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.session_id,
                        record.table_id,
                        record.user_id,
                        record.image_payload,
                        record.vision.model_dump_json(),
                        record.recommendation.model_dump_json(),
                        record.season,
                        record.meal_time,
                        record.people_count,
                        record.processing_time_ms,
                        record.feedback_score,
                        record.feedback_comment,
                        record.created_at.isoformat(),
                        record.updated_at.isoformat(),
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceFailure(
                f"Failed to insert session {record.session_id}: {exc}"
            ) from exc

    def get_session(self, session_id: str) -> SessionRecord | None:
        """Return a session by id, if present."""
        row = self.connection.execute(
            f"SELECT {_SESSION_COLUMNS} FROM ai_recommendations"  # noqa: S608
            " WHERE session_id = ?",
            (session_id,),
        ).fetchone()
        return _to_session(row) if row is not None else None

    def list_sessions(
        self, table_id: int | None, user_id: str | None, limit: int
    ) -> list[SessionRecord]:
        """Return recent sessions, newest first."""
        clauses: list[str] = []
        params: list[object] = []
        if table_id is not None:
            clauses.append("table_id = ?")
            params.append(table_id)
        if user_id:
            clauses.append("user_id = ?")
            params.append(user_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = self.connection.execute(
            f"SELECT {_SESSION_COLUMNS} FROM ai_recommendations{where}"  # noqa: S608
            " ORDER BY created_at DESC, id DESC LIMIT ?",
            (*params, limit),
        ).fetchall()
        return [_to_session(row) for row in rows]

    def update_feedback(
        self,
        session_id: str,
        score: int,
        comment: str,
        updated_at: datetime,
    ) -> bool:
        """Set the feedback columns on an existing session."""
        try:
            with self.connection:
                cursor = self.connection.execute(
                    "UPDATE ai_recommendations SET feedback_score = ?,"
                    " feedback_comment = ?, updated_at = ? WHERE session_id = ?",
                    (score, comment, updated_at.isoformat(), session_id),
                )
        except sqlite3.Error as exc:
            raise PersistenceFailure(
                f"Failed to update feedback for {session_id}: {exc}"
            ) from exc
        return cursor.rowcount > 0

    def close(self) -> None:
        """Close the connection."""
        self.connection.close()


def _to_session(row: sqlite3.Row) -> SessionRecord:
    return SessionRecord(
        session_id=row["session_id"],
        table_id=row["table_id"],
        user_id=row["user_id"],
        image_payload=row["image_base64"] or "",
        vision=VisionOutcome.model_validate_json(row["vision_result"]),
        recommendation=RecommendationOutcome.model_validate_json(
            row["recommendation_result"]
        ),
        season=row["season"],
        meal_time=row["meal_time"],
        people_count=row["people_count"] or 0,
        processing_time_ms=row["processing_time"] or 0,
        created_at=datetime.fromisoformat(row["created_at"]),
        updated_at=datetime.fromisoformat(row["updated_at"]),
        feedback_score=row["feedback_score"],
        feedback_comment=row["feedback_comment"],
    )
