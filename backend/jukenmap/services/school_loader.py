"""Reading the school CSV and reading/writing the schools.json dataset."""

import csv
import io
import json
import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import ValidationError

from jukenmap.schemas.school import School

logger = logging.getLogger(__name__)


class DatasetError(Exception):
    """The dataset file is missing, unreadable or not a list of schools."""


# Fixed column positions of the ingestion CSV
COL_STUDY_ID = 0
COL_MEXT_CODE = 1
COL_NAME = 2
COL_SCORE = 3
COL_ESTABLISHMENT = 4
COL_SCHOOL_TYPE = 5
COL_AREA = 6
COL_PREFECTURE = 7
COL_ADDRESS = 8
COL_POSTAL_CODE = 9
COL_STUDY_URL = 10
MIN_COLUMNS = COL_ADDRESS + 1


def _cell(cols: list[str], idx: int) -> str | None:
    """Stripped cell value, None if missing or blank."""
    if idx >= len(cols):
        return None
    value = cols[idx].strip()
    return value or None


def _parse_score(value: str | None) -> int | None:
    if not value:
        return None
    try:
        score = int(float(value))
    except ValueError:
        return None
    return score if score > 0 else None


def parse_schools_csv(text: str) -> list[School]:
    """Parse the school CSV (header row first, fixed column order).

    Short or otherwise malformed rows are skipped with a warning.
    """
    text = text.lstrip("\ufeff")
    reader = csv.reader(io.StringIO(text))
    schools: list[School] = []

    for line_no, cols in enumerate(reader, start=1):
        if line_no == 1 or not any(c.strip() for c in cols):
            continue

        if len(cols) < MIN_COLUMNS:
            logger.warning(f"Skipping CSV line {line_no}: expected at least {MIN_COLUMNS} columns, got {len(cols)}")
            continue

        study_id = _cell(cols, COL_STUDY_ID)
        name = _cell(cols, COL_NAME)
        address = _cell(cols, COL_ADDRESS)
        if not (study_id and name and address):
            logger.warning(f"Skipping CSV line {line_no}: missing id, name or address")
            continue

        try:
            schools.append(School(
                id=study_id,
                study_id=study_id,
                mext_code=_cell(cols, COL_MEXT_CODE),
                school_name=name,
                yotsuya_deviation_value=_parse_score(_cell(cols, COL_SCORE)),
                establishment=_cell(cols, COL_ESTABLISHMENT),
                school_type=_cell(cols, COL_SCHOOL_TYPE),
                area=_cell(cols, COL_AREA) or "",
                prefecture=_cell(cols, COL_PREFECTURE) or "",
                address=address,
                postal_code=_cell(cols, COL_POSTAL_CODE),
                study_url=_cell(cols, COL_STUDY_URL),
            ))
        except ValidationError as e:
            logger.warning(f"Skipping CSV line {line_no} ({name}): {e.error_count()} invalid field(s)")

    return schools


def read_schools_csv(path: Path | str) -> list[School]:
    with open(path, encoding="utf-8-sig", newline="") as f:
        return parse_schools_csv(f.read())


def load_dataset(path: Path | str) -> list[School]:
    """Load schools.json. Invalid records are skipped with a warning."""
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise DatasetError(f"Cannot read dataset {path}: {e}") from e

    if not isinstance(raw, list):
        raise DatasetError(f"Dataset {path} is not a JSON list")

    schools = []
    for record in raw:
        try:
            schools.append(School.model_validate(record))
        except ValidationError as e:
            record_id = record.get("study_id") if isinstance(record, dict) else None
            logger.warning(f"Skipping invalid dataset record {record_id}: {e.error_count()} invalid field(s)")
    return schools


def write_dataset(path: Path | str, schools: Iterable[School]) -> int:
    """Write schools.json (UTF-8, Japanese kept readable). Returns the record count."""
    records = [school.model_dump(mode="json") for school in schools]
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(records, f, ensure_ascii=False, indent=2)
        f.write("\n")
    return len(records)
