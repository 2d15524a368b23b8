"""
Measurement vector sanitising.

Every measurement vector is held as a pandas Series with the nullable `Float64`
dtype, so `pd.NA` marks a missing entry and propagates through arithmetic.

Sanitising runs three steps, always in this order over the whole vector:
1) zero substitution (raw mode only; Sex, Age and BMI are exempt)
2) missing-value substitution (unless missing values are kept)
3) range filtering (unless disabled)
"""

from __future__ import annotations

import logging
import typing

import numpy as np
import pandas as pd

from stairval.notepad import Notepad

from .reference import ReferenceTables, default_reference_tables

logger = logging.getLogger(__name__)

MISSING_DTYPE = "Float64"

# Coding for the Sex covariate: 1 = male, 2 = female
SEX_CODES = (1, 2)

# Zero readings mean "below the detection limit" for NMR measures only
ZERO_SUBSTITUTION_EXEMPT = frozenset({"Sex", "Age", "BMI"})


def as_measurement_vector(values: typing.Any, index: typing.Optional[pd.Index] = None) -> pd.Series:
    """
    Convert a list, tuple, numpy array, or Series into a `Float64` Series.
    `None` and `NaN` entries become `pd.NA`. A scalar becomes a length-1 vector.
    """
    if isinstance(values, pd.Series):
        if index is None:
            index = values.index
        array = values.astype(MISSING_DTYPE).array
    else:
        if np.ndim(values) == 0:
            values = [values]
        array = pd.array(list(values), dtype=MISSING_DTYPE)
    if index is not None and len(index) != len(array):
        raise ValueError(f"length mismatch: expected {len(index)} values, got {len(array)}")
    return pd.Series(array, index=index, copy=False)


def missing_like(values: pd.Series) -> pd.Series:
    return pd.Series(pd.NA, index=values.index, dtype=MISSING_DTYPE)


def count_present(values: pd.Series) -> int:
    return int(values.notna().sum())


def as_flags(condition: pd.Series) -> pd.Series:
    # comparisons against pd.NA give NA; treat those as "not flagged"
    return condition.fillna(False).astype(bool)


def substitute_zeros(values: pd.Series, name: str, tables: ReferenceTables) -> pd.Series:
    if name in ZERO_SUBSTITUTION_EXEMPT:
        return values
    is_zero = as_flags(values == 0)
    n_zero = int(is_zero.sum())
    if n_zero == 0:
        return values
    entry = tables.range_for(name)
    logger.info(f'{n_zero} "{name}" measurements equal to zero set to the detection limit ({entry.min_val:g})')
    return values.mask(is_zero, entry.min_val)


def fill_missing(values: pd.Series, name: str, standardised: bool, tables: ReferenceTables) -> pd.Series:
    n_missing = int(values.isna().sum())
    if n_missing == 0:
        return values
    if standardised:
        fill_value = 0.0
    else:
        fill_value = tables.range_for(name).median_val
    logger.info(f'{n_missing} missing "{name}" measurements set to {fill_value:g}')
    return values.fillna(fill_value)


def check_range(
    values: pd.Series,
    name: str,
    tables: typing.Optional[ReferenceTables] = None,
    notepad: typing.Optional[Notepad] = None,
    imputed: bool = False,
) -> pd.Series:
    """
    Set entries outside the acceptable range for `name` to missing.

    "Sex" accepts only the codes 1 and 2; dropping any other code is reported as
    a warning. For everything else the filtered count is an informational notice,
    worded differently for imputed (`imputed=True`) and input measurements.
    """
    tables = tables or default_reference_tables()
    before_n = count_present(values)

    if name == "Sex":
        outside = as_flags(~values.isin(SEX_CODES)) & values.notna()
    else:
        entry = tables.range_for(name)
        outside = as_flags((values < entry.min_val) | (values > entry.max_val))
    checked = values.mask(outside)

    filtered_n = before_n - count_present(checked)
    if filtered_n > 0:
        if name == "Sex":
            message = (
                f"{filtered_n} samples with unrecognisable sex coding "
                f"(Male == {SEX_CODES[0]}, Female == {SEX_CODES[1]}) removed"
            )
            logger.warning(message)
            if notepad is not None:
                notepad.add_warning(message)
        else:
            label = f'imputed "{name}"' if imputed else f'"{name}"'
            entry = tables.range_for(name)
            logger.info(f"{filtered_n} {label} measurements outside of acceptable range ({entry.describe()}) set to NA")
    return checked


def sanitize(
    values: typing.Any,
    name: str,
    range_check: bool = True,
    na_omit: bool = True,
    standardised: bool = False,
    tables: typing.Optional[ReferenceTables] = None,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """
    Run zero substitution, missing-value handling and range filtering on one
    measurement vector. Returns a new `Float64` Series of the same length and order.
    """
    tables = tables or default_reference_tables()
    vector = as_measurement_vector(values, values.index if isinstance(values, pd.Series) else None)

    if not standardised:
        vector = substitute_zeros(vector, name, tables)
    if not na_omit:
        vector = fill_missing(vector, name, standardised, tables)
    if range_check:
        vector = check_range(vector, name, tables, notepad)
    return vector
