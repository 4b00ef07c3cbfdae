"""Query parameter parsing for the admin listing and export routes."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Mapping

from survey_intake.errors import ValidationError
from survey_intake.models import PATIENT, parse_survey_type

MONTH_PATTERN = re.compile(r"[0-9]{4}-(0[1-9]|1[0-2])")


@dataclass(frozen=True)
class ResponseQuery:
    """Which survey table to read and an optional YYYY-MM visit month."""

    survey: str = PATIENT
    month: str | None = None

    @classmethod
    def from_request_args(cls, args: Mapping[str, str]) -> "ResponseQuery":
        """
        Build a ResponseQuery from request args.

        A missing survey defaults to "patient"; an unknown one raises
        InvalidSurvey. Empty strings are normalised to None. A month that is
        not YYYY-MM raises ValidationError.
        """
        if not isinstance(args, Mapping):
            raise TypeError("args must be a mapping of str keys to str values")

        return cls(
            survey=parse_survey_type(_normalise_str(args.get("survey")), default=PATIENT),
            month=_parse_month(args.get("month")),
        )

    @property
    def export_filename(self) -> str:
        return f"{self.survey}_{self.month or 'all'}.csv"


def _parse_month(value: str | None) -> str | None:
    """Accept only YYYY-MM months; blank means no filter."""
    month = _normalise_str(value)
    if month is None:
        return None
    if not MONTH_PATTERN.fullmatch(month):
        raise ValidationError("invalid month")
    return month


def _normalise_str(value: str | None) -> str | None:
    """Trim whitespace and convert empty strings to None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
