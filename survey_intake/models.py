"""
Domain models for the survey intake backend.

Two survey types exist, each backed by its own table:

- "patient"   -> PatientResponse   (identified by pid)
- "community" -> CommunityResponse (identified by area)

Ratings are kept as a plain mapping in memory and as JSON text in storage.
encode_ratings/decode_ratings are the only place that conversion happens.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, Mapping, Tuple

from survey_intake.errors import InvalidSurvey

PATIENT = "patient"
COMMUNITY = "community"
SURVEY_TYPES: Tuple[str, ...] = (PATIENT, COMMUNITY)


def parse_survey_type(value: Any, default: str | None = None, message: str | None = None) -> str:
    """
    Return a recognised survey type.

    Empty or missing values fall back to ``default`` when one is given;
    anything else outside SURVEY_TYPES raises InvalidSurvey.
    """
    if value is None or value == "":
        if default is not None:
            return default
        raise InvalidSurvey("missing data")
    if not isinstance(value, str) or value not in SURVEY_TYPES:
        raise InvalidSurvey(message)
    return value


# --- Ratings codec -----------------------------------------------------------


def encode_ratings(ratings: Any) -> str:
    """Serialise a ratings mapping to JSON text. Non-mappings encode as {}."""
    if not isinstance(ratings, Mapping):
        return "{}"
    return json.dumps(dict(ratings))


def decode_ratings(encoded: str | bytes | None) -> Dict[str, Any]:
    """
    Decode stored ratings text back into a dict.

    Absent, malformed or non-object JSON yields an empty dict so a single
    bad row never breaks a listing or export.
    """
    if not encoded:
        return {}
    try:
        decoded = json.loads(encoded)
    except (TypeError, ValueError):
        return {}
    if not isinstance(decoded, dict):
        return {}
    return decoded


# --- Timestamps --------------------------------------------------------------


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_instant(moment: datetime) -> str:
    """ISO-8601 UTC instant with millisecond precision, e.g. 2024-05-01T09:30:00.000Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


# --- Entities ----------------------------------------------------------------


def _text(payload: Mapping[str, Any], key: str) -> str:
    """
    Read an optional free-text field.

    None, false and missing become ''; other non-strings are written as JSON
    (true, 12, {"a": 1}) rather than as Python reprs.
    """
    value = payload.get(key)
    if value is None or value is False:
        return ""
    return value if isinstance(value, str) else json.dumps(value)


@dataclass
class SurveyResponseBase:
    """Fields shared by both survey types."""

    name: str = ""
    visit_date: str = ""
    ratings: Dict[str, Any] = field(default_factory=dict)
    comments: str = ""
    submitted_at: str = ""
    id: int | None = None

    survey: ClassVar[str] = ""
    table: ClassVar[str] = ""
    identity_field: ClassVar[str] = ""

    @property
    def ratings_json(self) -> str:
        return encode_ratings(self.ratings)

    @classmethod
    def base_columns(cls) -> Tuple[str, ...]:
        """Non-rating columns in export order."""
        return ("id", cls.identity_field, "name", "visit_date", "comments", "submitted_at")


@dataclass
class PatientResponse(SurveyResponseBase):
    """A submission of the patient survey."""

    pid: str = ""

    survey: ClassVar[str] = PATIENT
    table: ClassVar[str] = "patient_responses"
    identity_field: ClassVar[str] = "pid"


@dataclass
class CommunityResponse(SurveyResponseBase):
    """A submission of the community survey."""

    area: str = ""

    survey: ClassVar[str] = COMMUNITY
    table: ClassVar[str] = "community_responses"
    identity_field: ClassVar[str] = "area"


RESPONSE_TYPES: Dict[str, type[SurveyResponseBase]] = {
    PATIENT: PatientResponse,
    COMMUNITY: CommunityResponse,
}


def response_type_for(survey: str) -> type[SurveyResponseBase]:
    """Return the entity class for a survey type."""
    try:
        return RESPONSE_TYPES[survey]
    except KeyError:
        raise InvalidSurvey() from None


def build_response(
    survey: str,
    payload: Mapping[str, Any],
    now: datetime | None = None,
) -> SurveyResponseBase:
    """
    Normalise a submitted payload into a new, unsaved response.

    Every payload field is optional. ``submitted_at`` is always stamped from
    ``now``; any id or submitted_at in the payload is ignored.
    """
    if not isinstance(payload, Mapping):
        raise TypeError("payload must be a mapping")

    moment = now or utc_now()
    response_cls = response_type_for(survey)
    ratings = payload.get("ratings")

    return response_cls(
        name=_text(payload, "name"),
        visit_date=_text(payload, "visit_date") or moment.astimezone(timezone.utc).date().isoformat(),
        ratings=dict(ratings) if isinstance(ratings, Mapping) else {},
        comments=_text(payload, "comments"),
        submitted_at=format_instant(moment),
        **{response_cls.identity_field: _text(payload, response_cls.identity_field)},
    )
