"""
Service layer for the survey intake backend.

SurveyService holds the operations behind each API route. All public
methods are decorated with log_action so every call is captured in the
application log.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping

from survey_intake.database import DatabaseManager
from survey_intake.errors import ValidationError
from survey_intake.exporter import responses_to_csv
from survey_intake.filters import ResponseQuery
from survey_intake.logging_utils import get_logger, log_action
from survey_intake.models import build_response, parse_survey_type


@dataclass
class SurveyService:
    """Submission, listing, export and reset over a DatabaseManager."""

    db_manager: DatabaseManager

    @log_action("SUBMIT_RESPONSE")
    def submit(self, survey: Any, payload: Any, now: datetime | None = None) -> int:
        """
        Validate the survey type, normalise the payload and insert one row.

        Returns the new row id.
        """
        survey_type = parse_survey_type(survey, message="unknown survey")
        if not isinstance(payload, Mapping):
            raise ValidationError("missing data")
        response = build_response(survey_type, payload, now=now)
        response_id = self.db_manager.insert_response(response)
        get_logger().info("submitted survey=%s id=%s", survey_type, response_id)
        return response_id

    @log_action("LIST_RESPONSES")
    def list_responses(self, query: ResponseQuery) -> List[Dict[str, Any]]:
        """Rows for the query's survey, newest first, ratings decoded."""
        return self.db_manager.get_responses(query.survey, query.month)

    @log_action("EXPORT_RESPONSES")
    def export_csv(self, query: ResponseQuery) -> str:
        """CSV text for the same rows list_responses returns."""
        rows = self.db_manager.get_responses(query.survey, query.month)
        return responses_to_csv(query.survey, rows)

    @log_action("RESET_RESPONSES")
    def reset(self) -> None:
        """Irreversibly delete all rows from both survey tables."""
        self.db_manager.delete_all_responses()
        get_logger().warning("all survey responses deleted")
