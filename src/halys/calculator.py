"""
Health-adjusted life year calculations.

    DALY = YLL + YLD
    YLL  = standard life expectancy at the age of death (0 while alive)
    YLD  = sum over each year of life of the age-weighted disability weight
    QALY = age - YLD

Life expectancy is a cubic fit to the IHME GBD 2015 reference life table
(R^2 = 0.99978). Age weighting follows the WHO environmental burden of
disease guidance: age_weight = 0.1658 * age * e^(-0.04 * age).

Every function here is pure; the only shared state read is the (immutable)
disability weight table.
"""

from __future__ import annotations

import math
import typing
from collections import namedtuple

from .person import Person
from .record import Condition
from .timeutil import days_to_millis
from .weights import DisabilityWeightTable

HealthAdjustedLifeYears = namedtuple("HealthAdjustedLifeYears", ["daly", "qaly", "qol"])
# daly and qaly are cumulative; qol = 1 - age-adjusted disability weight of the current year

DAYS_PER_YEAR = 365.25


def life_expectancy(age: int) -> float:
    # 6E-5x^3 - 0.0054x^2 - 0.8502x + 86.16, unclamped; the fit means nothing past ~100
    return (0.00006 * age ** 3) - (0.0054 * age ** 2) - (0.8502 * age) + 86.16


def age_weight(age: float) -> float:
    """Relative value of a year lived at `age`; 0 at birth, peaks at 25."""
    return 0.1658 * age * math.exp(-0.04 * age)


def weight(disability_weight: float, age: int) -> float:
    """
    Age-adjusted disability weight for a single year of life.
    Not clamped; `calculate` caps each year at 1.0.
    """
    return age_weight(age) * disability_weight


def year_window(birthdate: int, year_index: int) -> tuple[int, int]:
    """
    (start, stop) timestamps of the `year_index`-th year of life,
    using 365.25-day years truncated to whole days.
    """
    start = birthdate + days_to_millis(int(DAYS_PER_YEAR * year_index))
    stop = birthdate + days_to_millis(int(DAYS_PER_YEAR * (year_index + 1) - 1))
    return start, stop


def conditions_in_year(
    conditions: typing.Iterable[Condition],
    start: int,
    stop: int,
    table: DisabilityWeightTable,
) -> list[Condition]:
    """
    Subset of `conditions` that carry a disability weight and count as active
    in the period from `start` to `stop`.

    A condition is kept when its primary code is in `table` and
        start >= condition.start
        and condition.start <= stop
        and (condition.stop > start or condition.stop == 0)
    The first clause compares against the period start, so a condition that
    begins part way through the period is not counted until the next one.
    """
    in_year: list[Condition] = []
    for condition in conditions:
        if condition.primary_code not in table:
            continue
        # stop == 0 for conditions that have not ended yet
        if (
            start >= condition.start
            and condition.start <= stop
            and (condition.stop > start or condition.stop == 0)
        ):
            in_year.append(condition)
    return in_year


def calculate(person: Person, time: int, table: DisabilityWeightTable) -> HealthAdjustedLifeYears:
    """
    Cumulative DALY and QALY for `person` as of `time`, and their current
    quality of life.
    """
    age = person.age_in_years(time)

    yll = 0.0
    if not person.alive(time):
        yll = life_expectancy(age)

    all_conditions = list(person.conditions())

    yld = 0.0
    disability_weight = 0.0
    for i in range(age + 1):
        year_start, year_end = year_window(person.birthdate, i)
        active = conditions_in_year(all_conditions, year_start, year_end, table)

        disability_weight = sum(table[c.primary_code].medium for c in active)
        disability_weight = min(1.0, weight(disability_weight, i + 1))
        yld += disability_weight

    return HealthAdjustedLifeYears(
        daly=yll + yld,
        qaly=age - yld,
        qol=1 - disability_weight,
    )
