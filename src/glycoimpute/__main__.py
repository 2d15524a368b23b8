"""
Command-line interface for glycoimpute.
Reads a table of NMR measurements (one row per sample), imputes glycoprotein
concentrations, and writes the table back out with one extra column per analyte.
"""

import json
import logging
import sys
import typing

import click
import pandas as pd

from stairval.notepad import create_notepad

from .imputation import impute_all
from .loader import load_measurement_table
from .models import ANALYTE_MODELS, get_model
from .reference import default_reference_tables, load_reference_tables


@click.group()
def main():
    """glycoimpute: impute serum glycoproteins (A1AT, AGP, HP, TF) from NMR measurements."""
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


@main.command(name="impute")
@click.option(
    "-i",
    "--input-path",
    "input_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False),
    help="CSV/TSV/Excel table, one row per sample, one column per measurement",
)
@click.option(
    "-o",
    "--output-path",
    "output_path",
    type=click.Path(dir_okay=False, writable=True),
    help="where to write the CSV result (default: stdout)",
)
@click.option(
    "-a",
    "--analyte",
    "analytes",
    multiple=True,
    help="analyte to impute: A1AT (or AAT), AGP, HP, TF; repeatable (default: all)",
)
@click.option("--range-check/--no-range-check", default=True, help="Set out-of-range inputs and outputs to NA (default: on).")
@click.option("--standardised/--raw", default=False, help="Inputs are log transformed and standardised; output z-scores.")
@click.option("--na-omit/--na-fill", default=True, help="Keep missing inputs missing, or fill them with medians.")
@click.option("--ranges-path", type=click.Path(exists=True, dir_okay=False), help="custom measurement range table (CSV)")
@click.option("--coefficients-path", type=click.Path(exists=True, dir_okay=False), help="custom coefficient table (CSV)")
@click.option("--verbose-logging", is_flag=True, help="Also emit debug logs to stderr")
@click.option("--log-file-path", type=click.Path(dir_okay=False, writable=True), help="Append timestamped logs to this file")
def impute(
    input_path: str,
    output_path: typing.Optional[str],
    analytes: tuple[str, ...],
    range_check: bool,
    standardised: bool,
    na_omit: bool,
    ranges_path: typing.Optional[str],
    coefficients_path: typing.Optional[str],
    verbose_logging: bool,
    log_file_path: typing.Optional[str],
):
    """
    Impute glycoprotein concentrations for every sample in INPUT_PATH.
    """
    _configure_logging(verbose_logging, log_file_path)

    try:
        models = [get_model(a) for a in analytes] if analytes else list(ANALYTE_MODELS.values())
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--analyte")

    if ranges_path or coefficients_path:
        tables = load_reference_tables(ranges_path, coefficients_path)
    else:
        tables = default_reference_tables()

    logging.info(f"Reading measurements from '{input_path}'")
    frame = load_measurement_table(input_path)
    logging.debug(f"Loaded {len(frame)} samples with columns: {list(frame.columns)}")

    notepad = create_notepad("imputation")
    try:
        imputed = impute_all(
            frame,
            analytes=[model.analyte for model in models],
            range_check=range_check,
            standardised=standardised,
            na_omit=na_omit,
            tables=tables,
            notepad=notepad,
        )
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    result = pd.concat([frame, imputed.add_prefix("imputed_")], axis=1)
    # summary goes to stderr when the table itself goes to stdout
    to_stderr = output_path is None
    if output_path:
        result.to_csv(output_path)
    else:
        click.echo(result.to_csv(), nl=False)

    _report_issues(notepad, err=to_stderr)
    for analyte in imputed.columns:
        n_present = int(imputed[analyte].notna().sum())
        click.echo(f"Imputed {analyte} for {n_present} of {len(imputed)} samples", err=to_stderr)
    if output_path:
        click.echo(f"Wrote {len(result)} rows to {output_path}")


@main.command(name="ranges")
@click.option("-r", "--raw-json", is_flag=True, help="print JSON instead of a table")
def ranges(raw_json: bool):
    """
    Print the acceptable range of every measurement.
    """
    entries = default_reference_tables().ranges.values()
    if raw_json:
        payload = [
            {
                "name": e.name,
                "min_val": e.min_val,
                "max_val": e.max_val,
                "median_val": e.median_val,
                "units": e.units,
                "description": e.description,
            }
            for e in entries
        ]
        click.echo(json.dumps(payload, indent=2))
        return
    click.echo(f"{'NAME':15}{'MIN':>12}{'MAX':>12}{'MEDIAN':>12}  UNITS")
    for e in entries:
        click.echo(f"{e.name:15}{e.min_val:>12g}{e.max_val:>12g}{e.median_val:>12g}  {e.units}")


@main.command(name="models")
def models():
    """
    List the imputation models with their predictors.
    """
    for model in ANALYTE_MODELS.values():
        click.echo(f"{model.analyte} ({model.label}): {len(model.predictors)} predictors")
        click.echo("  " + ", ".join(model.predictors))
        if model.linear_terms:
            click.echo("  untransformed: " + ", ".join(sorted(model.linear_terms)))


def _report_issues(notepad, err: bool = False):
    # show any warnings but keep going
    if notepad.has_warnings(include_subsections=True):
        click.echo("Warnings found in imputation:", err=err)
        for issue in notepad.warnings():
            click.echo(f"- {issue.message}", err=err)


if __name__ == "__main__":
    main()
