"""
Unit tests for the database layer (DatabaseManager).

The tests use an in-memory SQLite database (':memory:') so each test has a
clean, isolated store and nothing is written to disk.
"""

import sqlite3
import unittest
from datetime import datetime, timezone

from survey_intake.database import DatabaseManager
from survey_intake.errors import StorageError
from survey_intake.models import build_response

NOW = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)


class TestDatabaseManager(unittest.TestCase):
    def setUp(self) -> None:
        self.db_manager = DatabaseManager(":memory:")
        self.db_manager.connect()
        self.db_manager.create_tables()

    def tearDown(self) -> None:
        self.db_manager.close()

    def _insert(self, survey: str, **payload: object) -> int:
        return self.db_manager.insert_response(build_response(survey, payload, now=NOW))

    def test_create_tables_creates_both_survey_tables(self) -> None:
        assert self.db_manager.connection is not None
        cursor = self.db_manager.connection.cursor()
        cursor.execute("SELECT name FROM sqlite_master WHERE type='table'")
        tables = {row[0] for row in cursor.fetchall()}
        self.assertIn("patient_responses", tables)
        self.assertIn("community_responses", tables)

    def test_create_tables_is_idempotent(self) -> None:
        self._insert("patient", name="A")
        self.db_manager.create_tables()
        self.assertEqual(1, self.db_manager.count_responses("patient"))

    def test_insert_returns_increasing_ids_per_table(self) -> None:
        first = self._insert("patient", name="A")
        second = self._insert("patient", name="B")
        community_first = self._insert("community", name="C")
        self.assertEqual(1, first)
        self.assertEqual(2, second)
        self.assertEqual(1, community_first)

    def test_get_responses_decodes_ratings_and_orders_newest_first(self) -> None:
        self._insert("patient", name="old", ratings={"q1": 1})
        self._insert("patient", name="new", ratings={"q1": 5, "q2": "yes"})

        rows = self.db_manager.get_responses("patient")

        self.assertEqual(["new", "old"], [row["name"] for row in rows])
        self.assertEqual({"q1": 5, "q2": "yes"}, rows[0]["ratings"])
        self.assertEqual("2024-05-01T09:30:00.000Z", rows[0]["submitted_at"])
        self.assertIn("pid", rows[0])
        self.assertNotIn("area", rows[0])

    def test_get_responses_filters_by_month_prefix(self) -> None:
        self._insert("community", area="N", visit_date="2024-05-03")
        self._insert("community", area="S", visit_date="2024-06-01")
        self._insert("community", area="E", visit_date="2024-05-28")

        rows = self.db_manager.get_responses("community", month="2024-05")

        self.assertEqual(["E", "N"], [row["area"] for row in rows])

    def test_month_without_matches_returns_empty_list(self) -> None:
        self._insert("patient", visit_date="2024-05-03")
        self.assertEqual([], self.db_manager.get_responses("patient", month="2023-01"))

    def test_malformed_stored_ratings_decode_to_empty(self) -> None:
        assert self.db_manager.connection is not None
        self.db_manager.connection.execute(
            "INSERT INTO patient_responses (pid, ratings_json) VALUES (?, ?)",
            ("P1", "{broken"),
        )
        self.db_manager.connection.execute("INSERT INTO patient_responses (pid) VALUES ('P2')")
        self.db_manager.connection.commit()

        rows = self.db_manager.get_responses("patient")

        self.assertEqual([{}, {}], [row["ratings"] for row in rows])

    def test_delete_all_responses_clears_both_tables(self) -> None:
        self._insert("patient")
        self._insert("community")

        self.db_manager.delete_all_responses()

        self.assertEqual(0, self.db_manager.count_responses("patient"))
        self.assertEqual(0, self.db_manager.count_responses("community"))

    def test_sqlite_failures_become_storage_error(self) -> None:
        assert self.db_manager.connection is not None
        self.db_manager.connection.execute("DROP TABLE patient_responses")

        with self.assertRaises(StorageError) as ctx:
            self.db_manager.get_responses("patient")

        self.assertEqual("server error", ctx.exception.message)
        self.assertIsInstance(ctx.exception.__cause__, sqlite3.Error)

    def test_operations_require_connection(self) -> None:
        manager = DatabaseManager(":memory:")
        with self.assertRaises(RuntimeError):
            manager.get_responses("patient")

    def test_close_is_safe_to_call_twice(self) -> None:
        self.db_manager.close()
        self.db_manager.close()
        self.assertIsNone(self.db_manager.connection)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
