"""
Linear predictor for one analyte model.

Raw mode:          intercept + sum(coef * log(x))   (linear terms enter as x)
Standardised mode: intercept + sum(coef * x), then rescaled to mean 0, SD 1
"""

from __future__ import annotations

import logging
import typing

import numpy as np
import pandas as pd

from stairval.notepad import Notepad

from .models import AnalyteModel
from .reference import ReferenceTables, default_reference_tables
from .sanitizer import MISSING_DTYPE, as_flags, count_present, missing_like, sanitize

logger = logging.getLogger(__name__)


def log_transform(values: pd.Series) -> pd.Series:
    """Natural log; missing and non-positive entries give missing."""
    positive = values.mask(as_flags(values <= 0))
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.log(positive)


def standardise(values: pd.Series) -> pd.Series:
    """
    Centre on the mean and scale by the sample SD of the non-missing entries.
    Fewer than two non-missing entries, or no spread, leaves nothing to scale:
    the result is all missing.
    """
    if count_present(values) < 2:
        return missing_like(values)
    mean = values.mean()
    sd = values.std(ddof=1)
    if pd.isna(sd) or sd == 0:
        logger.info("Linear predictor has no spread across samples; standardised scores set to NA")
        return missing_like(values)
    return (values - mean) / sd


def linear_predictor(
    model: AnalyteModel,
    predictors: typing.Mapping[str, pd.Series],
    range_check: bool = True,
    standardised: bool = False,
    na_omit: bool = True,
    tables: typing.Optional[ReferenceTables] = None,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """
    Weighted sum of the sanitised predictors of `model`.

    `predictors` maps each measurement name of the model to an equal-length
    `Float64` Series sharing one index. Any missing term makes the sum missing.
    """
    tables = tables or default_reference_tables()
    variant = "standardised" if standardised else "raw"
    record = tables.coefficients_for(model.analyte, variant)

    index = predictors[model.predictors[0]].index
    total = pd.Series(record.intercept, index=index, dtype=MISSING_DTYPE)
    for name in model.predictors:
        values = sanitize(
            predictors[name],
            name,
            # standardised inputs are not on the scale the ranges describe
            range_check=range_check and not standardised,
            na_omit=na_omit,
            standardised=standardised,
            tables=tables,
            notepad=notepad,
        )
        if not standardised and name not in model.linear_terms:
            values = log_transform(values)
        total = total + record.coefficients[name] * values

    if standardised:
        total = standardise(total)
    return total
