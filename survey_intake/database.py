"""
Database access layer for the survey intake backend.

DatabaseManager encapsulates every SQLite interaction. The two survey
tables are append-only: rows are inserted, listed, and only ever removed
by the bulk reset. Ratings cross the storage boundary through
encode_ratings/decode_ratings; callers never see ratings_json parsing.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List

from survey_intake.errors import StorageError
from survey_intake.logging_utils import get_logger
from survey_intake.models import (
    COMMUNITY,
    PATIENT,
    SurveyResponseBase,
    decode_ratings,
    response_type_for,
)

SURVEY_TABLES: Dict[str, str] = {
    PATIENT: "patient_responses",
    COMMUNITY: "community_responses",
}


@dataclass
class DatabaseManager:
    """
    Manage connections and operations on the SQLite database.

    Parameters
    ----------
    db_path : str
        Path to the SQLite database file. Tests use ':memory:' or a temp file.
    """

    db_path: str
    connection: sqlite3.Connection | None = None

    def connect(self) -> None:
        """
        Open the SQLite connection with dict-like rows.
        """
        with self._storage_errors("connect"):
            self.connection = sqlite3.connect(self.db_path)
            self.connection.row_factory = sqlite3.Row

    def create_tables(self) -> None:
        """
        Create both survey tables if they do not exist. Idempotent.
        """
        connection = self._require_connection()
        with self._storage_errors("create_tables"):
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS patient_responses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    pid TEXT,
                    name TEXT,
                    visit_date TEXT,
                    ratings_json TEXT,
                    comments TEXT,
                    submitted_at TEXT DEFAULT (datetime('now'))
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS community_responses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT,
                    area TEXT,
                    ratings_json TEXT,
                    comments TEXT,
                    submitted_at TEXT DEFAULT (datetime('now')),
                    visit_date TEXT
                )
                """
            )
            connection.commit()

    def close(self) -> None:
        """
        Close the database connection if it is open.
        """
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def insert_response(self, response: SurveyResponseBase) -> int:
        """
        Insert a response into its survey table and return the new row id.
        """
        connection = self._require_connection()
        identity = response.identity_field
        with self._storage_errors("insert_response"):
            cursor = connection.cursor()
            cursor.execute(
                f"""
                INSERT INTO {response.table} (
                    {identity},
                    name,
                    visit_date,
                    ratings_json,
                    comments,
                    submitted_at
                )
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    getattr(response, identity),
                    response.name,
                    response.visit_date,
                    response.ratings_json,
                    response.comments,
                    response.submitted_at,
                ),
            )
            connection.commit()
        return int(cursor.lastrowid)

    def get_responses(self, survey: str, month: str | None = None) -> List[Dict[str, Any]]:
        """
        Return rows for a survey, newest id first.

        Parameters
        ----------
        survey:
            "patient" or "community".
        month:
            Optional YYYY-MM prefix matched against visit_date.
        """
        connection = self._require_connection()
        table = self._table_for(survey)
        identity = response_type_for(survey).identity_field
        query = [
            f"""
            SELECT id, {identity}, name, visit_date, ratings_json, comments, submitted_at
            FROM {table}
            """
        ]
        params: List[object] = []
        if month:
            query.append("WHERE substr(visit_date, 1, 7) = ?")
            params.append(month)
        query.append("ORDER BY id DESC")

        with self._storage_errors("get_responses"):
            cursor = connection.cursor()
            cursor.execute("\n".join(query), params)
            rows = cursor.fetchall()
        return [self._row_to_dict(row) for row in rows]

    def count_responses(self, survey: str) -> int:
        """Return COUNT(*) for the survey's table."""
        connection = self._require_connection()
        table = self._table_for(survey)
        with self._storage_errors("count_responses"):
            cursor = connection.cursor()
            cursor.execute(f"SELECT COUNT(*) AS row_count FROM {table}")
            result = cursor.fetchone()
        return int(result["row_count"] if result is not None else 0)

    def delete_all_responses(self) -> None:
        """
        Delete every row from both survey tables in a single transaction.
        """
        connection = self._require_connection()
        with self._storage_errors("delete_all_responses"):
            try:
                cursor = connection.cursor()
                for table in SURVEY_TABLES.values():
                    cursor.execute(f"DELETE FROM {table}")
                connection.commit()
            except sqlite3.Error:
                connection.rollback()
                raise

    def _row_to_dict(self, row: sqlite3.Row) -> Dict[str, Any]:
        """Convert a DB row into a plain dict with decoded ratings."""
        record = {key: row[key] for key in row.keys()}
        record["ratings"] = decode_ratings(record.get("ratings_json"))
        return record

    def _table_for(self, survey: str) -> str:
        """Map a survey type to its internally controlled table name."""
        return response_type_for(survey).table

    def _require_connection(self) -> sqlite3.Connection:
        if self.connection is None:
            raise RuntimeError("Database connection not established. Call connect() first.")
        return self.connection

    @contextmanager
    def _storage_errors(self, operation: str) -> Iterator[None]:
        """Log sqlite failures and re-raise them as StorageError."""
        try:
            yield
        except sqlite3.Error as exc:
            get_logger().exception("storage_error operation=%s db=%s", operation, self.db_path)
            raise StorageError(f"{operation}: {exc}") from exc
