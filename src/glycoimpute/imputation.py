"""
Glycoprotein imputation engine.

Process for one analyte:
1) check that every predictor is present and all predictors have equal length
2) build the linear predictor from the sanitised predictors
3) back-transform (raw mode: exp) and drop imputed values outside the analyte's range
4) report how many samples received an imputed value
"""

from __future__ import annotations

import logging
import re
import typing

import numpy as np
import pandas as pd

from stairval.notepad import Notepad

from .models import ANALYTE_MODELS, AnalyteModel, get_model
from .predictor import linear_predictor
from .reference import ReferenceTables, default_reference_tables
from .sanitizer import as_flags, as_measurement_vector, check_range, count_present

logger = logging.getLogger(__name__)

_SEPARATORS = re.compile(r"[\s_\-\.]+")


def _resolve_model(analyte: typing.Union[str, AnalyteModel]) -> AnalyteModel:
    if isinstance(analyte, AnalyteModel):
        return analyte
    return get_model(analyte)


def align_predictors(
    model: AnalyteModel, predictors: typing.Mapping[str, typing.Any]
) -> dict[str, pd.Series]:
    """
    Turn the caller's predictor values into `Float64` Series on one shared index.

    The index of the first predictor given as a Series is reused; otherwise the
    samples are numbered from 0. Values are matched by position, not by label.
    """
    absent = [name for name in model.predictors if name not in predictors]
    if absent:
        raise ValueError(f"Missing predictors for {model.analyte!r}: {absent}")

    lengths = {name: len(as_measurement_vector(predictors[name])) for name in model.predictors}
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{name}={n}" for name, n in lengths.items())
        raise ValueError(f"length mismatch between {model.analyte!r} predictors: {detail}")

    n_samples = lengths[model.predictors[0]]
    index = next(
        (predictors[name].index for name in model.predictors if isinstance(predictors[name], pd.Series)),
        pd.RangeIndex(n_samples),
    )
    return {name: as_measurement_vector(predictors[name], index) for name in model.predictors}


def back_transform(
    score: pd.Series,
    analyte: str,
    range_check: bool = True,
    standardised: bool = False,
    tables: typing.Optional[ReferenceTables] = None,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """
    Raw mode: exponentiate the log-scale prediction and, when `range_check` is
    set, drop values outside the analyte's range. Standardised scores pass through.
    """
    if standardised:
        return score
    with np.errstate(over="ignore"):
        concentration = np.exp(score)
    # overflow is not a concentration
    concentration = concentration.mask(as_flags(~np.isfinite(concentration)))
    if range_check:
        concentration = check_range(concentration, analyte, tables, notepad, imputed=True)
    return concentration


def impute(
    analyte: typing.Union[str, AnalyteModel],
    predictors: typing.Mapping[str, typing.Any],
    range_check: bool = True,
    standardised: bool = False,
    na_omit: bool = True,
    tables: typing.Optional[ReferenceTables] = None,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """
    Impute one analyte from a mapping of measurement name -> values.

    Returns a `Float64` Series with one entry per sample: a concentration (raw
    mode), a standardised score (standardised mode), or `pd.NA`. Out-of-range and
    missing data never raise; only mismatched predictor lengths do.
    """
    model = _resolve_model(analyte)
    tables = tables or default_reference_tables()
    vectors = align_predictors(model, predictors)

    if model.caveat:
        logger.warning(model.caveat)
        if notepad is not None:
            notepad.add_warning(model.caveat)

    score = linear_predictor(
        model,
        vectors,
        range_check=range_check,
        standardised=standardised,
        na_omit=na_omit,
        tables=tables,
        notepad=notepad,
    )
    result = back_transform(score, model.analyte, range_check, standardised, tables, notepad)
    result.name = model.analyte

    kind = "standardised scores" if standardised else "concentrations"
    logger.info(f"{model.analyte}: imputed {kind} for {count_present(result)} of {len(result)} samples")
    return result


def normalise_measurement_name(name: typing.Any) -> str:
    # 'L_HDL_TG', 'l-hdl-tg', ' L.HDL.TG ' -> 'l.hdl.tg'
    return _SEPARATORS.sub(".", str(name).strip()).lower()


def match_columns(frame: pd.DataFrame, model: AnalyteModel) -> dict[str, str]:
    """Map each predictor of `model` to the frame column holding it."""
    by_key = {normalise_measurement_name(column): column for column in frame.columns}
    matched = {}
    absent = []
    for name in model.predictors:
        column = by_key.get(normalise_measurement_name(name))
        if column is None:
            absent.append(name)
        else:
            matched[name] = column
    if absent:
        raise ValueError(f"Missing columns for {model.analyte!r}: {absent}")
    return matched


def impute_from_frame(
    analyte: typing.Union[str, AnalyteModel],
    frame: pd.DataFrame,
    range_check: bool = True,
    standardised: bool = False,
    na_omit: bool = True,
    tables: typing.Optional[ReferenceTables] = None,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """Impute one analyte from a table with one row per sample."""
    model = _resolve_model(analyte)
    columns = match_columns(frame, model)
    predictors = {name: frame[column] for name, column in columns.items()}
    return impute(
        model,
        predictors,
        range_check=range_check,
        standardised=standardised,
        na_omit=na_omit,
        tables=tables,
        notepad=notepad,
    )


def impute_all(
    frame: pd.DataFrame,
    analytes: typing.Optional[typing.Iterable[str]] = None,
    range_check: bool = True,
    standardised: bool = False,
    na_omit: bool = True,
    tables: typing.Optional[ReferenceTables] = None,
    notepad: typing.Optional[Notepad] = None,
) -> pd.DataFrame:
    """
    Impute several analytes (default: all four) and return them as columns of a
    DataFrame indexed like `frame`.
    """
    models = [_resolve_model(a) for a in analytes] if analytes else list(ANALYTE_MODELS.values())
    imputed = {
        model.analyte: impute_from_frame(
            model,
            frame,
            range_check=range_check,
            standardised=standardised,
            na_omit=na_omit,
            tables=tables,
            notepad=notepad,
        ).array
        for model in models
    }
    return pd.DataFrame(imputed, index=frame.index)
