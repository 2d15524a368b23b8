"""
Reference data model.

Defines the measurement range table and the regression coefficient table used by
the imputation engine, and loads both from the CSV files bundled in `data/`.

Both tables are read once per process and never mutated afterwards.
"""

from __future__ import annotations

import pathlib
import types
import typing

from dataclasses import dataclass
from functools import lru_cache

import pandas as pd

from .models import ANALYTE_MODELS

DATA_DIR = pathlib.Path(__file__).parent / "data"
DEFAULT_RANGES_PATH = DATA_DIR / "measurement_ranges.csv"
DEFAULT_COEFFICIENTS_PATH = DATA_DIR / "coefficients.csv"

INTERCEPT_TERM = "(Intercept)"
MODEL_VARIANTS = ("raw", "standardised")

RANGE_COLUMNS = {"name", "min_val", "max_val", "median_val", "units"}
COEFFICIENT_COLUMNS = {"analyte", "variant", "term", "coefficient"}


@dataclass(frozen=True)
class RangeEntry:
    """
    Acceptable range of values for one measurement in the training cohort.

    Attributes:
        name: Measurement name (e.g. 'GlycA', 'VLDL.D', 'Age').
        min_val: Lowest acceptable value.
        max_val: Highest acceptable value.
        median_val: Value substituted for missing entries in raw mode.
        units: Display units (e.g. 'mmol/L').
        description: Human-readable label.
    """

    name: str
    min_val: float
    max_val: float
    median_val: float
    units: str
    description: str = ""

    def __post_init__(self):
        if not self.min_val <= self.median_val <= self.max_val:
            raise ValueError(
                f"Invalid range for {self.name!r}: expected min_val <= median_val <= max_val, "
                f"got {self.min_val} / {self.median_val} / {self.max_val}"
            )

    def describe(self) -> str:
        # e.g. '0.869--2.24 mmol/L'
        return f"{self.min_val:g}--{self.max_val:g} {self.units}"


@dataclass(frozen=True)
class CoefficientRecord:
    """
    One fitted linear model: an intercept plus one coefficient per predictor.
    """

    analyte: str
    variant: str
    intercept: float
    coefficients: typing.Mapping[str, float]

    @property
    def terms(self) -> frozenset[str]:
        return frozenset(self.coefficients)


@dataclass(frozen=True)
class ReferenceTables:
    """
    Explicit, typed access to the range and coefficient tables.
    """

    ranges: typing.Mapping[str, RangeEntry]
    coefficients: typing.Mapping[tuple[str, str], CoefficientRecord]

    def range_for(self, name: str) -> RangeEntry:
        try:
            return self.ranges[name]
        except KeyError:
            raise KeyError(f"No measurement range defined for {name!r}") from None

    def coefficients_for(self, analyte: str, variant: str) -> CoefficientRecord:
        try:
            return self.coefficients[(analyte, variant)]
        except KeyError:
            raise KeyError(f"No {variant!r} coefficients defined for {analyte!r}") from None


def _require_columns(df: pd.DataFrame, required: set[str], path: pathlib.Path) -> None:
    missing = required - set(df.columns)
    if missing:
        raise ValueError(f"{path.name}: missing required columns: {sorted(missing)}")


def read_range_table(path: typing.Union[str, pathlib.Path]) -> dict[str, RangeEntry]:
    """
    Read a range table:
      - one row per measurement
      - columns name, min_val, max_val, median_val, units (description optional)
    """
    path = pathlib.Path(path)
    df = pd.read_csv(path, dtype={"name": str, "units": str}, float_precision="round_trip")
    df.columns = df.columns.str.strip().str.lower()
    _require_columns(df, RANGE_COLUMNS, path)

    ranges: dict[str, RangeEntry] = {}
    for row in df.itertuples(index=False):
        name = str(row.name).strip()
        if name in ranges:
            raise ValueError(f"{path.name}: duplicate range entry for {name!r}")
        description = getattr(row, "description", "")
        ranges[name] = RangeEntry(
            name=name,
            min_val=float(row.min_val),
            max_val=float(row.max_val),
            median_val=float(row.median_val),
            units="" if pd.isna(row.units) else str(row.units),
            description="" if pd.isna(description) else str(description),
        )
    return ranges


def read_coefficient_table(
    path: typing.Union[str, pathlib.Path],
) -> dict[tuple[str, str], CoefficientRecord]:
    """
    Read a long-format coefficient table with one row per (analyte, variant, term).
    The intercept is stored under the term `(Intercept)`.
    """
    path = pathlib.Path(path)
    df = pd.read_csv(path, dtype={"analyte": str, "variant": str, "term": str}, float_precision="round_trip")
    df.columns = df.columns.str.strip().str.lower()
    _require_columns(df, COEFFICIENT_COLUMNS, path)

    unknown_variants = set(df["variant"]) - set(MODEL_VARIANTS)
    if unknown_variants:
        raise ValueError(f"{path.name}: unknown model variants: {sorted(unknown_variants)}")

    records: dict[tuple[str, str], CoefficientRecord] = {}
    for (analyte, variant), group in df.groupby(["analyte", "variant"], sort=False):
        terms = dict(zip(group["term"].str.strip(), group["coefficient"].astype(float)))
        if len(terms) != len(group):
            raise ValueError(f"{path.name}: duplicate terms in {analyte!r}/{variant!r}")
        if INTERCEPT_TERM not in terms:
            raise ValueError(f"{path.name}: no intercept for {analyte!r}/{variant!r}")
        intercept = terms.pop(INTERCEPT_TERM)
        records[(analyte, variant)] = CoefficientRecord(
            analyte=analyte,
            variant=variant,
            intercept=intercept,
            coefficients=types.MappingProxyType(terms),
        )
    return records


def load_reference_tables(
    ranges_path: typing.Union[str, pathlib.Path, None] = None,
    coefficients_path: typing.Union[str, pathlib.Path, None] = None,
) -> ReferenceTables:
    """
    Build `ReferenceTables` from CSV files, falling back to the bundled tables
    for whichever path is not given.
    """
    ranges = read_range_table(ranges_path or DEFAULT_RANGES_PATH)
    coefficients = read_coefficient_table(coefficients_path or DEFAULT_COEFFICIENTS_PATH)
    check_tables_against_models(ranges, coefficients)
    return ReferenceTables(
        ranges=types.MappingProxyType(ranges),
        coefficients=types.MappingProxyType(coefficients),
    )


@lru_cache(maxsize=None)
def default_reference_tables() -> ReferenceTables:
    """The bundled tables, loaded on first use."""
    return load_reference_tables()


def check_tables_against_models(
    ranges: typing.Mapping[str, RangeEntry],
    coefficients: typing.Mapping[tuple[str, str], CoefficientRecord],
) -> None:
    """
    Every analyte model needs both coefficient variants with exactly its own
    predictors, and a range entry for the analyte and each of its predictors.
    """
    problems: list[str] = []
    for analyte, model in ANALYTE_MODELS.items():
        for variant in MODEL_VARIANTS:
            record = coefficients.get((analyte, variant))
            if record is None:
                problems.append(f"no {variant!r} coefficients for {analyte!r}")
                continue
            expected = set(model.predictors)
            if record.terms != expected:
                missing = sorted(expected - record.terms)
                extra = sorted(record.terms - expected)
                problems.append(
                    f"{analyte!r}/{variant!r} coefficients do not match the model predictors "
                    f"(missing: {missing}, unexpected: {extra})"
                )
        absent = [name for name in (analyte, *model.predictors) if name not in ranges]
        if absent:
            problems.append(f"no measurement range for {absent} ({analyte!r} model)")
    if problems:
        raise ValueError("Inconsistent reference tables: " + "; ".join(problems))
