"""
Read a Synthea-style CSV export into Person objects.

patients.csv   : Id, BIRTHDATE, DEATHDATE, ...
conditions.csv : START, STOP, PATIENT, ENCOUNTER, [SYSTEM], CODE, DESCRIPTION

Headers are normalized to snake_case lowercase and renamed with RENAME_MAP.
Row problems do not raise; they are recorded on the notepad and the row is
skipped.
"""

import logging
import typing

import pandas as pd
from stairval.notepad import Notepad

from .person import Person
from .record import Code, Condition, Encounter
from .timeutil import to_millis

logger = logging.getLogger(__name__)

# Columns that need renaming → target field names
RENAME_MAP = {
    "id": "patient_id",
    "patient": "patient_id",
    "birthdate": "birth_date",
    "deathdate": "death_date",
    "encounter": "encounter_id",
    "description": "display",
}

PATIENT_KEY_COLUMNS = {"patient_id", "birth_date"}
CONDITION_KEY_COLUMNS = {"patient_id", "start", "code"}


def _normalize_headers(df: pd.DataFrame) -> pd.DataFrame:
    df.columns = (
        df.columns.str.strip()
        .str.replace(r"\s+", "_", regex=True)  # spaces → underscore
        .str.lower()
    )
    return df.rename(
        columns={orig: target for orig, target in RENAME_MAP.items() if orig in df.columns}
    )


def read_table(path: str) -> pd.DataFrame:
    """Read one CSV file as strings, keeping empty cells as ''."""
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    return _normalize_headers(df)


def load_export_tables(patients_path: str, conditions_path: str) -> dict[str, pd.DataFrame]:
    return {
        "patients": read_table(patients_path),
        "conditions": read_table(conditions_path),
    }


def _cell(row: pd.Series, column: str) -> str:
    return str(row.get(column, "") or "").strip()


def _parse_patient_row(row: pd.Series, notepad: Notepad) -> typing.Optional[Person]:
    patient_id = _cell(row, "patient_id")
    if not patient_id:
        notepad.add_error("Patients: row without an Id")
        return None
    try:
        birthdate = to_millis(_cell(row, "birth_date"))
        death_cell = _cell(row, "death_date")
        deathdate = to_millis(death_cell) if death_cell else None
    except ValueError as e:
        notepad.add_error(f"Patient {patient_id!r}: {e}")
        return None
    return Person(id=patient_id, birthdate=birthdate, deathdate=deathdate)


def _parse_condition_row(row: pd.Series, notepad: Notepad) -> typing.Optional[Condition]:
    patient_id = _cell(row, "patient_id")
    code = _cell(row, "code")
    if not code:
        notepad.add_warning(f"Patient {patient_id!r}: condition without a code")
        return None
    try:
        start = to_millis(_cell(row, "start"))
        stop_cell = _cell(row, "stop")
        stop = to_millis(stop_cell) if stop_cell else 0
    except ValueError as e:
        notepad.add_error(f"Patient {patient_id!r}, condition {code!r}: {e}")
        return None
    system = _cell(row, "system") or "SNOMED-CT"
    return Condition(codes=[Code(code=code, system=system, display=_cell(row, "display"))],
                     start=start, stop=stop)


def _missing_columns(df: pd.DataFrame, required: set[str], name: str, notepad: Notepad) -> bool:
    missing = required - set(df.columns)
    if missing:
        notepad.add_error(f"{name}: missing required columns {sorted(missing)}")
        return True
    return False


def build_people(tables: dict[str, pd.DataFrame], notepad: Notepad) -> list[Person]:
    """
    Convert export tables into Person objects with their encounters.
    Conditions are grouped into encounters by encounter id, in first-seen order.
    """
    patients = tables["patients"]
    conditions = tables["conditions"]
    if _missing_columns(patients, PATIENT_KEY_COLUMNS, "Patients", notepad):
        return []

    people: dict[str, Person] = {}
    for _, row in patients.iterrows():
        person = _parse_patient_row(row, notepad)
        if person is None:
            continue
        if person.id in people:
            notepad.add_warning(f"Patient {person.id!r} listed more than once; keeping the first")
            continue
        people[person.id] = person

    if _missing_columns(conditions, CONDITION_KEY_COLUMNS, "Conditions", notepad):
        return list(people.values())

    encounters: dict[tuple[str, str], Encounter] = {}
    for _, row in conditions.iterrows():
        patient_id = _cell(row, "patient_id")
        person = people.get(patient_id)
        if person is None:
            notepad.add_warning(f"Condition for unknown patient {patient_id!r} skipped")
            continue
        condition = _parse_condition_row(row, notepad)
        if condition is None:
            continue
        encounter_id = _cell(row, "encounter_id")
        key = (patient_id, encounter_id)
        if key not in encounters:
            encounters[key] = Encounter(id=encounter_id)
            person.encounters.append(encounters[key])
        encounters[key].conditions.append(condition)

    logger.info(f"Built {len(people)} people with {sum(len(e.conditions) for e in encounters.values())} conditions")
    return list(people.values())
