"""
Command‑line interface for halys.

    halys weights [CODE ...]          inspect the disability weight table
    halys score -p ... -c ...         DALY/QALY/QOL for every patient of a CSV export
    halys inventory                   attributes read/written by the module
"""

import logging
import sys
import typing
from datetime import datetime, timezone

import click
from stairval.notepad import create_notepad

from .loader import build_people, load_export_tables
from .module import QualityOfLifeModule
from .person import Person
from .timeutil import get_year, to_millis
from .weights import LoadError, DisabilityWeightTable, default_table, load_disability_weights

weights_path_option = click.option(
    "-w",
    "--weights-path",
    "weights_path",
    type=click.Path(exists=True, dir_okay=False),
    help="CSV of disability weights (default: bundled GBD table or $HALYS_DISABILITY_WEIGHTS)",
)


@click.group()
def main():
    """halys: health-adjusted life years (DALY, QALY, QOL) for simulated patients."""
    pass


def _configure_logging(verbose_logging: bool, log_file_path: typing.Optional[str]) -> None:
    handlers: list[logging.Handler] = []
    if log_file_path:
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    if verbose_logging:
        handlers.append(logging.StreamHandler(sys.stderr))
    if handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose_logging else logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            handlers=handlers,
        )


def _load_table(weights_path: typing.Optional[str]) -> DisabilityWeightTable:
    try:
        if weights_path:
            return load_disability_weights(weights_path)
        return default_table()
    except LoadError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _report_issues(notepad):
    # if there were errors, show them
    if notepad.has_errors(include_subsections=True):
        click.echo("Errors found in export:")
        for err in notepad.errors():
            click.echo(f"- {err}")
    # show any warnings but keep going
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found in export:")
        for w in notepad.warnings():
            click.echo(f"- {w}")


def _evaluation_times(person: Person, at: int, history: bool) -> list[int]:
    # the dead are evaluated at their death date
    end = min(at, person.deathdate) if person.deathdate is not None else at
    if not history:
        return [end]
    first_year = get_year(person.birthdate) + 1
    last_year = get_year(end)
    times = [to_millis(f"{year}-01-01") for year in range(first_year, last_year)]
    times.append(end)
    return times


@main.command(name="weights")
@weights_path_option
@click.argument("codes", nargs=-1)
def weights(weights_path: typing.Optional[str], codes: tuple[str, ...]):
    """
    Load the disability weight table and show the weights of CODES.
    """
    table = _load_table(weights_path)
    click.echo(f"Loaded {len(table)} disability weights")
    for code in codes:
        weight = table.get(code)
        if weight is None:
            click.echo(f"{code}: not disability-bearing")
        else:
            click.echo(f"{code}: LOW={weight.low} MED={weight.medium} HIGH={weight.high}")


@main.command(name="score")
@click.option(
    "-p",
    "--patients-path",
    "patients_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to patients.csv",
)
@click.option(
    "-c",
    "--conditions-path",
    "conditions_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="path to conditions.csv",
)
@click.option(
    "--at",
    "at",
    default=None,
    type=str,
    help="reference date YYYY-MM-DD (default: today)",
)
@click.option("--history", is_flag=True, help="Record every calendar year from birth to the reference date")
@weights_path_option
@click.option("--verbose-logging", is_flag=True, help="Also emit debug logs to stderr")
@click.option(
    "--log-file-path",
    type=click.Path(dir_okay=False, writable=True),
    help="Append timestamped logs to this file",
)
def score(
    patients_path: str,
    conditions_path: str,
    at: typing.Optional[str],
    history: bool,
    weights_path: typing.Optional[str],
    verbose_logging: bool,
    log_file_path: typing.Optional[str],
):
    """
    Compute DALY, QALY and QOL for every patient in a CSV export and print
    one line per recorded year.
    """
    _configure_logging(verbose_logging, log_file_path)

    try:
        at_millis = to_millis(at) if at else to_millis(datetime.now(timezone.utc).date())
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    module = QualityOfLifeModule(_load_table(weights_path))

    logging.info(f"Reading export {patients_path!r} / {conditions_path!r}")
    notepad = create_notepad("export")
    try:
        tables = load_export_tables(patients_path, conditions_path)
    except (OSError, ValueError) as e:
        click.echo(f"Error: unable to read export: {e}", err=True)
        sys.exit(1)
    people = build_people(tables, notepad)
    _report_issues(notepad)

    click.echo("patient\tyear\tDALY\tQALY\tQOL")
    for person in people:
        if person.birthdate > at_millis:
            logging.warning(f"Patient {person.id!r} born after the reference date; skipped")
            continue
        for time in _evaluation_times(person, at_millis, history):
            module.process(person, time)
        results = person.quality_of_life
        for year in results.qaly:
            click.echo(
                f"{person.id}\t{year}\t{results.daly[year]:.4f}\t{results.qaly[year]:.4f}\t{results.qol[year]:.4f}"
            )

    click.echo(f"Scored {len(people)} patients")


@main.command(name="inventory")
def inventory():
    """List the patient attributes the quality of life module reads and writes."""
    entries = QualityOfLifeModule.inventory_attributes({})
    for attribute, declared in entries.items():
        for entry in declared:
            access = ("R" if entry.read else "-") + ("W" if entry.write else "-")
            click.echo(f"{entry.module:22} {access} {attribute:18} {entry.example or ''}")


if __name__ == "__main__":
    main()
