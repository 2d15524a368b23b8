import math

import pandas as pd
import pytest

from glycoimpute.models import TF
from glycoimpute.predictor import linear_predictor, log_transform, standardise
from glycoimpute.sanitizer import as_measurement_vector


def test_log_transform_non_positive_and_missing_give_missing():
    out = log_transform(as_measurement_vector([math.e, 0.0, -1.0, None]))
    assert out.iloc[0] == pytest.approx(1.0)
    assert out.isna().tolist() == [False, True, True, True]


def test_standardise_gives_zero_mean_unit_sd():
    out = standardise(as_measurement_vector([1.0, 2.0, 3.0, None, 10.0]))
    assert pd.isna(out.iloc[3])
    present = out.dropna()
    assert float(present.mean()) == pytest.approx(0.0, abs=1e-12)
    assert float(present.std(ddof=1)) == pytest.approx(1.0)


@pytest.mark.parametrize("values", [[1.0, 1.0, 1.0], [2.0, None], [None, None]])
def test_standardise_degenerate_input_is_all_missing(values):
    out = standardise(as_measurement_vector(values))
    assert len(out) == len(values)
    assert out.isna().all()


def test_raw_linear_predictor_uses_log_except_linear_terms(tables, midpoints):
    """TF takes Sex and Age untransformed and logs everything else."""
    values = midpoints(TF, n=1, Sex=[2.0], Age=[40.0])
    predictors = {name: as_measurement_vector(v) for name, v in values.items()}

    score = linear_predictor(TF, predictors)

    record = tables.coefficients_for("TF", "raw")
    expected = record.intercept
    for name in TF.predictors:
        x = values[name][0]
        expected += record.coefficients[name] * (x if name in TF.linear_terms else math.log(x))
    assert float(score.iloc[0]) == pytest.approx(expected)


def test_raw_linear_predictor_propagates_missing(midpoints):
    values = midpoints(TF, n=2, Gln=[0.8, None])
    predictors = {name: as_measurement_vector(v) for name, v in values.items()}
    score = linear_predictor(TF, predictors)
    assert score.isna().tolist() == [False, True]


def test_standardised_linear_predictor_skips_input_range_check():
    """Standardised inputs are z-scores; negative values must not be filtered."""
    values = {name: [-1.0, 0.0, 1.5] for name in TF.predictors}
    predictors = {name: as_measurement_vector(v) for name, v in values.items()}
    score = linear_predictor(TF, predictors, range_check=True, standardised=True)
    assert score.notna().all()
