"""
Disability weight reference table.

High level
----------
Each clinical code (e.g. SNOMED CT "44054006") that carries a disability
burden has three severity-tier weights taken from the GBD disability weight
tables. The table is read from a CSV resource with a header row; columns are
located by name:

    CODE,LOW,MED,HIGH

- Missing columns and empty cells are read as 0.0.
- A non-empty cell that is not a number raises `FormatError`.
- Duplicate codes: the last row wins.
- Any other read/parse failure raises `LoadError`.

Codes absent from the table are "not disability-bearing": lookups return
None and calculations skip them.

Environment
-----------
HALYS_DISABILITY_WEIGHTS : Optional path overriding the bundled
                           `resources/gbd_disability_weights.csv` for
                           `default_table()`.
"""

from __future__ import annotations

import logging
import os
import pathlib
import threading
import typing
from collections.abc import Mapping
from dataclasses import dataclass

import pandas as pd

logger = logging.getLogger(__name__)

DEFAULT_WEIGHTS_PATH = (
    pathlib.Path(__file__).parent / "resources" / "gbd_disability_weights.csv"
)

CODE_COLUMN = "CODE"
# dataclass field -> CSV header
WEIGHT_COLUMNS = {"low": "LOW", "medium": "MED", "high": "HIGH"}

WeightSource = typing.Union[str, os.PathLike, typing.TextIO]


class LoadError(RuntimeError):
    """Raised when the disability weight dataset cannot be read or is structurally invalid."""


class FormatError(LoadError, ValueError):
    """Raised when a non-empty weight cell is not a real number."""


@dataclass(frozen=True)
class DisabilityWeight:
    """
    Severity-tier disability weights for one clinical code.

    Attributes:
        code: Clinical terminology code, e.g. '44054006'.
        low: Weight of the mild tier.
        medium: Weight of the moderate tier (used by the calculator).
        high: Weight of the severe tier.
    """

    code: str
    low: float = 0.0
    medium: float = 0.0
    high: float = 0.0


class DisabilityWeightTable(Mapping):
    """
    Read-only mapping of clinical code -> DisabilityWeight.
    """

    def __init__(self, weights: typing.Iterable[DisabilityWeight] = ()):
        self._weights: dict[str, DisabilityWeight] = {}
        for weight in weights:
            self._weights[weight.code] = weight

    def __getitem__(self, code: str) -> DisabilityWeight:
        return self._weights[code]

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._weights)

    def __len__(self) -> int:
        return len(self._weights)

    def __repr__(self) -> str:
        return f"DisabilityWeightTable({len(self._weights)} codes)"


def _parse_weight(value: typing.Any, code: str, column: str) -> float:
    if value is None:
        return 0.0
    text = str(value).strip()
    if not text:
        return 0.0
    try:
        return float(text)
    except ValueError as e:
        raise FormatError(
            f"Code {code!r}: {column} value {text!r} is not a number"
        ) from e


def _read_table(source: WeightSource) -> pd.DataFrame:
    try:
        df = pd.read_csv(source, dtype=str, keep_default_na=False)
    except (OSError, ValueError, pd.errors.ParserError) as e:
        raise LoadError(f"Unable to read disability weights from {source!r}: {e}") from e
    df.columns = df.columns.str.strip().str.upper()
    if CODE_COLUMN not in df.columns:
        raise LoadError(
            f"Disability weights from {source!r} have no {CODE_COLUMN} column "
            f"(found {list(df.columns)})"
        )
    return df


def load_disability_weights(source: WeightSource) -> DisabilityWeightTable:
    """
    Build a DisabilityWeightTable from a CSV path or an open text buffer.
    """
    df = _read_table(source)
    weights: list[DisabilityWeight] = []
    for _, row in df.iterrows():
        code = str(row[CODE_COLUMN]).strip()
        values = {
            field: _parse_weight(row.get(column), code, column)
            for field, column in WEIGHT_COLUMNS.items()
        }
        weights.append(DisabilityWeight(code=code, **values))
    table = DisabilityWeightTable(weights)
    logger.debug(f"Read {len(df)} weight rows into {len(table)} codes")
    return table


# ------------------------------------------------------------------------------
# Process-wide table
# ------------------------------------------------------------------------------

_default_table: typing.Optional[DisabilityWeightTable] = None
_default_table_lock = threading.Lock()


def default_weights_path() -> pathlib.Path:
    override = os.getenv("HALYS_DISABILITY_WEIGHTS")
    return pathlib.Path(override) if override else DEFAULT_WEIGHTS_PATH


def default_table() -> DisabilityWeightTable:
    """
    Return the process-wide table, building it on first use.

    The build happens at most once even when many threads ask for the table
    at the same time. A failed build raises LoadError and leaves the cache
    empty.
    """
    global _default_table
    table = _default_table
    if table is not None:
        return table
    with _default_table_lock:
        if _default_table is None:
            path = default_weights_path()
            logger.info(f"Loading disability weights from {path}")
            try:
                _default_table = load_disability_weights(path)
            except LoadError as e:
                logger.error(f"Unable to load disability weights: {e}")
                raise
        return _default_table


def reset_default_table() -> None:
    """Forget the cached process-wide table (next `default_table()` rebuilds it)."""
    global _default_table
    with _default_table_lock:
        _default_table = None
