import math
import typing

import pytest

from glycoimpute.models import AnalyteModel
from glycoimpute.reference import ReferenceTables, default_reference_tables


@pytest.fixture(scope="session")
def tables() -> ReferenceTables:
    """
    The bundled range and coefficient tables.
    """
    return default_reference_tables()


@pytest.fixture(scope="session")
def midpoints(tables: ReferenceTables) -> typing.Callable[..., dict[str, list[float]]]:
    """
    Build predictors for `model` with every measurement at the midpoint of its
    documented range, repeated for `n` samples. `overrides` replaces whole vectors.
    """

    def build(model: AnalyteModel, n: int = 3, **overrides) -> dict[str, list[float]]:
        values = {}
        for name in model.predictors:
            entry = tables.range_for(name)
            # a range midpoint is not a valid sex code
            value = 1.0 if name == "Sex" else (entry.min_val + entry.max_val) / 2
            values[name] = [value] * n
        values.update(overrides)
        return values

    return build


@pytest.fixture(scope="session")
def expected_raw(tables: ReferenceTables) -> typing.Callable[[AnalyteModel, dict[str, float]], float]:
    """
    Reference computation of one raw-mode concentration, sample by sample, with
    plain `math` (no sanitising, no range checks).
    """

    def compute(model: AnalyteModel, sample: dict[str, float]) -> float:
        record = tables.coefficients_for(model.analyte, "raw")
        total = record.intercept
        for name in model.predictors:
            x = sample[name]
            term = x if name in model.linear_terms else math.log(x)
            total += record.coefficients[name] * term
        return math.exp(total)

    return compute
