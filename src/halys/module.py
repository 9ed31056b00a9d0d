"""
Quality of life simulation module.

The surrounding simulation calls `process(person, time)` once per time step.
The first call within a calendar year computes the subject's cumulative
DALY/QALY and current quality of life and records them under that year;
later calls in the same year change nothing.
"""

import logging
import typing
from collections import namedtuple

from .calculator import calculate
from .person import Person
from .timeutil import get_year
from .weights import DisabilityWeightTable, default_table

logger = logging.getLogger(__name__)

AttributeInventory = namedtuple(
    "AttributeInventory", ["module", "attribute", "read", "write", "example"]
)

# attribute name -> (read, write, example value type)
_DECLARED_ATTRIBUTES = {
    "QALY": (True, True, "dict[int, float]"),
    "DALY": (True, True, "dict[int, float]"),
    "QOL": (True, True, "dict[int, float]"),
    "birthdate": (True, False, None),
    "most-recent-daly": (False, True, "Numeric"),
    "most-recent-qaly": (False, True, "Numeric"),
}


class QualityOfLifeModule:
    name = "Quality of Life"

    def __init__(self, table: typing.Optional[DisabilityWeightTable] = None):
        """
        - table: disability weights to use; the process-wide default table
          when omitted (loaded now, so a bad dataset fails at construction).
        """
        self.table = table if table is not None else default_table()

    def process(self, person: Person, time: int) -> bool:
        """
        Record this year's metrics for `person` if not already recorded.
        Always returns False: the module never finishes.
        """
        year = get_year(time)
        results = person.quality_of_life
        if results.has_year(year):
            return False

        values = calculate(person, time, self.table)
        results.record(year, daly=values.daly, qaly=values.qaly, qol=values.qol)
        logger.debug(
            f"{person.id} {year}: DALY={values.daly:.4f} QALY={values.qaly:.4f} QOL={values.qol:.4f}"
        )
        return False

    @classmethod
    def inventory_attributes(
        cls, inventory: dict[str, list[AttributeInventory]]
    ) -> dict[str, list[AttributeInventory]]:
        """
        Add the attributes this module reads and writes to `inventory`,
        keyed by attribute name. Returns the same dict.
        """
        module_name = cls.__name__
        for attribute, (read, write, example) in _DECLARED_ATTRIBUTES.items():
            inventory.setdefault(attribute, []).append(
                AttributeInventory(module_name, attribute, read, write, example)
            )
        return inventory
