"""
Health record domain model.

Defines the Code, Condition and Encounter dataclasses that make up a
subject's clinical history.
"""

from dataclasses import dataclass, field
import typing


@dataclass(frozen=True)
class Code:
    """
    A clinical terminology code.

    Attributes:
        code: Code value, e.g. '44054006'.
        system: Terminology system, e.g. 'SNOMED-CT'.
        display: Human-readable label.
    """

    code: str
    system: str = "SNOMED-CT"
    display: str = ""


@dataclass
class Condition:
    """
    A diagnosed condition.

    Attributes:
        codes: Codes describing the condition; the first one is the primary code.
        start: Onset timestamp in epoch milliseconds.
        stop: Resolution timestamp in epoch milliseconds, 0 while still active.
    """

    codes: list[Code]
    start: int
    stop: int = 0

    @property
    def primary_code(self) -> typing.Optional[str]:
        return self.codes[0].code if self.codes else None

    @property
    def active(self) -> bool:
        return self.stop == 0


@dataclass
class Encounter:
    """
    A clinical encounter and the conditions diagnosed during it.
    """

    id: str
    conditions: list[Condition] = field(default_factory=list)
