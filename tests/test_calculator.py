"""
Age weighting, year filtering and the DALY/QALY aggregation.
"""

import io
import math

import pytest

from conftest import BIRTH, at_age, diabetes, make_person
from halys.calculator import (
    age_weight,
    calculate,
    conditions_in_year,
    life_expectancy,
    weight,
    year_window,
)
from halys.record import Code, Condition, Encounter
from halys.timeutil import days_to_millis, to_millis
from halys.weights import DisabilityWeightTable, load_disability_weights


# --- age weight ----------------------------------------------------------------

def test_age_weight_zero_at_birth():
    assert age_weight(0) == 0.0


@pytest.mark.parametrize("age", [0, 1, 5, 25, 60, 100, 250, 1000])
def test_age_weight_non_negative(age):
    assert age_weight(age) >= 0.0


def test_age_weight_peaks_at_25():
    assert age_weight(25) > age_weight(24)
    assert age_weight(25) > age_weight(26)
    assert age_weight(25) == pytest.approx(0.1658 * 25 * math.exp(-1))


def test_age_weight_vanishes_for_large_ages():
    assert age_weight(1000) < 1e-10


def test_weight_scales_disability_weight():
    assert weight(0.5, 10) == pytest.approx(0.5 * age_weight(10))
    assert weight(0.0, 10) == 0.0


def test_life_expectancy_polynomial():
    assert life_expectancy(0) == pytest.approx(86.16)
    assert life_expectancy(30) == pytest.approx(57.414)


def test_life_expectancy_is_unclamped_beyond_the_fitted_range():
    # the cubic bottoms out near 105 and rises again
    assert life_expectancy(105) == pytest.approx(6.8115)
    assert life_expectancy(110) == pytest.approx(7.158)
    assert life_expectancy(110) > life_expectancy(105)


# --- year filter ---------------------------------------------------------------

@pytest.fixture
def window():
    return 50, 150


def _condition(start, stop, code="44054006"):
    return Condition(codes=[Code(code)], start=start, stop=stop)


def test_active_condition_started_before_window_is_included(table, window):
    c = _condition(start=40, stop=0)
    assert conditions_in_year([c], *window, table) == [c]


def test_condition_starting_at_window_start_is_included(table, window):
    c = _condition(start=50, stop=0)
    assert conditions_in_year([c], *window, table) == [c]


def test_condition_starting_inside_window_is_not_counted(table, window):
    # the window start must not precede the condition start
    c = _condition(start=100, stop=0)
    assert conditions_in_year([c], *window, table) == []


def test_condition_resolved_before_window_is_excluded(table, window):
    c = _condition(start=10, stop=40)
    assert conditions_in_year([c], *window, table) == []


def test_condition_resolving_at_window_start_is_excluded(table, window):
    c = _condition(start=10, stop=50)
    assert conditions_in_year([c], *window, table) == []


def test_condition_resolving_inside_window_is_included(table, window):
    c = _condition(start=10, stop=51)
    assert conditions_in_year([c], *window, table) == [c]


def test_unknown_code_is_excluded(table, window):
    c = _condition(start=10, stop=0, code="162864005")
    assert conditions_in_year([c], *window, table) == []


def test_condition_without_codes_is_excluded(table, window):
    c = Condition(codes=[], start=10)
    assert conditions_in_year([c], *window, table) == []


def test_only_primary_code_is_consulted(table, window):
    c = Condition(codes=[Code("162864005"), Code("44054006")], start=10)
    assert conditions_in_year([c], *window, table) == []


def test_year_window_uses_truncated_quarter_days():
    start, stop = year_window(BIRTH, 10)
    assert start == BIRTH + days_to_millis(3652)
    assert stop == BIRTH + days_to_millis(4016)
    assert year_window(BIRTH, 0) == (BIRTH, BIRTH + days_to_millis(364))


# --- aggregation ---------------------------------------------------------------

ONSET_AGE_10 = BIRTH + days_to_millis(int(365.25 * 10))
AT_30 = to_millis("2020-06-01")


def _expected_yld(first_year=10, last_year=30, medium=0.2):
    return sum(min(1.0, medium * age_weight(year + 1)) for year in range(first_year, last_year + 1))


def test_healthy_person():
    person = make_person()
    result = calculate(person, AT_30, DisabilityWeightTable())
    assert result.daly == 0.0
    assert result.qaly == 30
    assert result.qol == 1.0


def test_alive_person_with_chronic_condition(table):
    person = make_person(diabetes(ONSET_AGE_10))
    result = calculate(person, AT_30, table)

    yld = _expected_yld()
    assert result.daly == pytest.approx(yld)
    assert result.qaly == pytest.approx(30 - yld)
    assert result.qol == pytest.approx(1 - 0.2 * age_weight(31))


def test_deceased_person_adds_years_of_life_lost(table):
    person = make_person(diabetes(ONSET_AGE_10), deathdate=AT_30)
    result = calculate(person, AT_30, table)

    yll = 0.00006 * 30 ** 3 - 0.0054 * 30 ** 2 - 0.8502 * 30 + 86.16
    yld = _expected_yld()
    assert result.daly == pytest.approx(yll + yld)
    assert result.qaly == pytest.approx(30 - yld)


def test_person_alive_until_after_reference_time_has_no_yll(table):
    person = make_person(diabetes(ONSET_AGE_10), deathdate=AT_30 + 1)
    result = calculate(person, AT_30, table)
    assert result.daly == pytest.approx(_expected_yld())


def test_daly_minus_qaly_identity(table):
    person = make_person(diabetes(ONSET_AGE_10), deathdate=AT_30)
    result = calculate(person, AT_30, table)
    yld = 30 - result.qaly
    assert result.daly == pytest.approx(life_expectancy(30) + yld)


def test_resolved_condition_does_not_affect_current_qol(table):
    resolved = diabetes(start=BIRTH + days_to_millis(365 * 2), stop=at_age(5))
    person = make_person(resolved)
    result = calculate(person, AT_30, table)
    assert result.qol == 1.0
    assert result.qaly < 30


def test_yearly_weight_is_capped_at_one():
    heavy = load_disability_weights(io.StringIO("CODE,LOW,MED,HIGH\nX,0.9,0.9,0.9\n"))
    conditions = [Condition(codes=[Code("X")], start=BIRTH) for _ in range(3)]
    person = make_person(*conditions)
    result = calculate(person, at_age(25, extra_days=10), heavy)
    # 2.7 * age_weight(26) > 1
    assert result.qol == 0.0
    assert result.qaly == pytest.approx(25 - sum(min(1.0, 2.7 * age_weight(i + 1)) for i in range(26)))


def test_conditions_across_encounters_are_summed(table):
    person = make_person(diabetes(BIRTH))
    person.encounters.append(
        Encounter(id="E2", conditions=[Condition(codes=[Code("195967001")], start=BIRTH)])
    )
    result = calculate(person, AT_30, table)
    assert result.qol == pytest.approx(1 - (0.2 + 0.133) * age_weight(31))
