import os
import pytest

from halys.person import Person
from halys.record import Code, Condition, Encounter
from halys.timeutil import days_to_millis, to_millis
from halys.weights import DisabilityWeightTable, load_disability_weights, reset_default_table


@pytest.fixture(scope="session")
def fpath_test_dir() -> str:
    """
    Path to `tests/data/` folder.
    """
    return os.path.join(os.path.dirname(__file__), "data")


@pytest.fixture(scope="session")
def fpath_weights(fpath_test_dir: str) -> str:
    return os.path.join(fpath_test_dir, "disability_weights.csv")


@pytest.fixture(scope="session")
def table(fpath_weights: str) -> DisabilityWeightTable:
    """
    Small weight table: 44054006 has MED 0.2, 195967001 has MED 0.133.
    """
    return load_disability_weights(fpath_weights)


@pytest.fixture(autouse=True)
def fresh_default_table():
    # each test starts without a cached process-wide table
    reset_default_table()
    yield
    reset_default_table()


# 1990-01-01T00:00:00Z
BIRTH = 631152000000


def make_person(*conditions: Condition, deathdate=None) -> Person:
    return Person(
        id="P1",
        birthdate=BIRTH,
        deathdate=deathdate,
        encounters=[Encounter(id="E1", conditions=list(conditions))],
    )


def diabetes(start: int, stop: int = 0) -> Condition:
    return Condition(codes=[Code("44054006", display="Diabetes")], start=start, stop=stop)


def at_age(years: int, extra_days: int = 0) -> int:
    # a calendar-year birthday at UTC midnight, plus optional days
    return to_millis(f"{1990 + years}-01-01") + days_to_millis(extra_days)
