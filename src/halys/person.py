"""
Subject domain model.

Defines the Person dataclass evaluated by the quality of life module and the
QualityOfLife structure holding its year-indexed results.
"""

from collections.abc import Iterator
from dataclasses import dataclass, field
import typing

from .record import Condition, Encounter
from .timeutil import years_between


@dataclass
class QualityOfLife:
    """
    Year-indexed health-adjusted life year results for one subject.

    The three mappings keep insertion order so they iterate by year.
    A year, once recorded, is never overwritten.

    Attributes:
        daly: Calendar year -> cumulative DALY.
        qaly: Calendar year -> cumulative QALY.
        qol: Calendar year -> quality of life (1 = full health).
        most_recent_daly: DALY of the latest recorded year.
        most_recent_qaly: QALY of the latest recorded year.
    """

    daly: dict[int, float] = field(default_factory=dict)
    qaly: dict[int, float] = field(default_factory=dict)
    qol: dict[int, float] = field(default_factory=dict)
    most_recent_daly: typing.Optional[float] = None
    most_recent_qaly: typing.Optional[float] = None

    def has_year(self, year: int) -> bool:
        return year in self.qaly

    def record(self, year: int, daly: float, qaly: float, qol: float) -> bool:
        """
        Store the values for `year` unless that year is already present.
        Returns True if anything was written.
        """
        if self.has_year(year):
            return False
        self.daly[year] = daly
        self.qaly[year] = qaly
        self.qol[year] = qol
        self.most_recent_daly = daly
        self.most_recent_qaly = qaly
        return True


@dataclass
class Person:
    """
    A simulated subject.

    Attributes:
        id: Unique subject identifier.
        birthdate: Birth timestamp in epoch milliseconds.
        deathdate: Death timestamp in epoch milliseconds, None while alive.
        encounters: Clinical encounters in chronological order.
        quality_of_life: Results recorded by the quality of life module.
    """

    id: str
    birthdate: int
    deathdate: typing.Optional[int] = None
    encounters: list[Encounter] = field(default_factory=list)
    quality_of_life: QualityOfLife = field(default_factory=QualityOfLife)

    def alive(self, time: int) -> bool:
        return self.deathdate is None or self.deathdate > time

    def age_in_years(self, time: int) -> int:
        return years_between(self.birthdate, time)

    def conditions(self) -> Iterator[Condition]:
        """All conditions across all encounters."""
        for encounter in self.encounters:
            yield from encounter.conditions
