"""
CSV export utilities for the survey intake backend.
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Dict, Iterable, List, Mapping

from survey_intake.models import response_type_for


def rating_columns(rows: Iterable[Mapping[str, Any]], base_columns: Iterable[str]) -> Dict[str, str]:
    """
    Map each rating key seen across rows (first-seen order) to its CSV column.

    Keys that clash with a base column are written as rating_<key>.
    """
    reserved = set(base_columns)
    columns: Dict[str, str] = {}
    for row in rows:
        for key in row.get("ratings") or {}:
            if key in columns:
                continue
            column = str(key)
            while column in reserved or column in columns.values():
                column = f"rating_{column}"
            columns[key] = column
    return columns


def _cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list, bool)):
        return json.dumps(value)
    return value


def responses_to_csv(survey: str, rows: List[Mapping[str, Any]]) -> str:
    """
    Serialise listed responses to CSV text.

    Base columns come first, then one column per rating key. Rows without a
    given rating leave that cell blank. With no rows only the header is written.
    """
    base_columns = list(response_type_for(survey).base_columns())
    ratings_map = rating_columns(rows, base_columns)

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(base_columns + list(ratings_map.values()))
    for row in rows:
        ratings = row.get("ratings") or {}
        record = [_cell(row.get(column)) for column in base_columns]
        record.extend(_cell(ratings.get(key)) for key in ratings_map)
        writer.writerow(record)
    return output.getvalue()
