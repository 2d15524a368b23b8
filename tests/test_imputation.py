"""
Engine-level tests for `glycoimpute.imputation`, covering the documented
scenarios and properties of raw and standardised imputation.
"""

import dataclasses
import logging
import types

import numpy as np
import pandas as pd
import pytest

from stairval.notepad import create_notepad

from glycoimpute.imputation import (
    align_predictors,
    impute,
    impute_all,
    impute_from_frame,
    normalise_measurement_name,
)
from glycoimpute.models import A1AT, AGP, HP, TF, ANALYTE_MODELS
from glycoimpute.reference import RangeEntry


def _sample(values: dict[str, list], i: int) -> dict[str, float]:
    return {name: v[i] for name, v in values.items()}


def test_midpoint_a1at_is_within_documented_range(midpoints, expected_raw):
    """Three samples at the documented midpoints all get an A1AT value in 0.64--2.58."""
    values = midpoints(A1AT, n=3)
    out = impute("A1AT", values)

    assert len(out) == 3
    assert out.notna().all()
    assert ((out >= 0.64) & (out <= 2.58)).all()
    assert float(out.iloc[0]) == pytest.approx(expected_raw(A1AT, _sample(values, 0)))


def test_zero_glyca_equals_detection_limit(midpoints):
    with_zero = impute("A1AT", midpoints(A1AT, n=1, GlycA=[0.0]))
    with_min = impute("A1AT", midpoints(A1AT, n=1, GlycA=[0.869]))
    assert with_zero.notna().all()
    assert float(with_zero.iloc[0]) == pytest.approx(float(with_min.iloc[0]))


def test_missing_predictor_filled_with_median_when_na_omit_false(midpoints):
    out = impute("A1AT", midpoints(A1AT, n=1, Phe=[None]), na_omit=False)
    assert out.notna().all()
    assert 0.64 <= float(out.iloc[0]) <= 2.58


def test_missing_predictor_propagates_when_na_omit(midpoints):
    out = impute("A1AT", midpoints(A1AT, n=1, Phe=[None]), na_omit=True)
    assert out.isna().all()


@pytest.mark.parametrize("model", list(ANALYTE_MODELS.values()), ids=lambda m: m.analyte)
def test_output_length_matches_input(model, midpoints):
    values = midpoints(model, n=5)
    values[model.predictors[0]] = [None, 1.0, 0.0, 100.0, 1.5]
    out = impute(model, values, range_check=False)
    assert len(out) == 5


@pytest.mark.parametrize("model", list(ANALYTE_MODELS.values()), ids=lambda m: m.analyte)
def test_any_missing_input_gives_missing_output(model, midpoints):
    for name in model.predictors:
        values = midpoints(model, n=2)
        values[name] = [values[name][0], None]
        out = impute(model, values, range_check=False)
        assert pd.isna(out.iloc[1]), name
        assert not pd.isna(out.iloc[0]), name


def test_out_of_range_input_gives_missing_output(midpoints, caplog):
    caplog.set_level(logging.INFO, logger="glycoimpute")
    out = impute("A1AT", midpoints(A1AT, n=2, GlycA=[1.5, 5.0]))
    assert out.isna().tolist() == [False, True]
    assert '"GlycA" measurements outside of acceptable range' in caplog.text


def test_out_of_range_output_is_dropped(tables, midpoints, caplog):
    """Narrow the A1AT output range so the midpoint prediction falls outside it."""
    narrow = dict(tables.ranges)
    narrow["A1AT"] = RangeEntry("A1AT", min_val=0.64, max_val=1.0, median_val=0.8, units="mg/L")
    custom = dataclasses.replace(tables, ranges=types.MappingProxyType(narrow))
    caplog.set_level(logging.INFO, logger="glycoimpute")

    values = midpoints(A1AT, n=2)
    assert impute("A1AT", values, tables=custom).isna().all()
    assert 'imputed "A1AT" measurements outside of acceptable range' in caplog.text
    # same inputs without the output filter
    assert impute("A1AT", values, tables=custom, range_check=False).notna().all()


def test_range_check_off_disables_input_and_output_filters(midpoints, expected_raw):
    """GlycA = 5 is above its range and pushes A1AT above 2.58; both are kept."""
    values = midpoints(A1AT, n=1, GlycA=[5.0])
    out = impute("A1AT", values, range_check=False)
    assert float(out.iloc[0]) > 2.58
    assert float(out.iloc[0]) == pytest.approx(expected_raw(A1AT, _sample(values, 0)))


def test_non_positive_input_without_range_check_gives_missing(midpoints):
    out = impute("A1AT", midpoints(A1AT, n=2, BMI=[25.0, -1.0]), range_check=False)
    assert out.isna().tolist() == [False, True]


def test_overflowing_prediction_without_range_check_gives_missing(midpoints):
    """An infinite GlycA reading overflows exp(); the sample counts as not imputed."""
    out = impute("A1AT", midpoints(A1AT, n=2, GlycA=[1.5, np.inf]), range_check=False)
    assert out.isna().tolist() == [False, True]
    assert np.isfinite(float(out.iloc[0]))


def test_invalid_sex_drops_tf_and_warns(midpoints):
    notepad = create_notepad("test")
    out = impute("TF", midpoints(TF, n=2, Sex=[1, 3]), notepad=notepad)
    assert out.notna().tolist() == [True, False]
    messages = [issue.message for issue in notepad.warnings()]
    assert any(m.startswith("1 samples with unrecognisable sex coding") for m in messages)


def test_tf_always_warns_about_reliability(midpoints):
    notepad = create_notepad("test")
    impute("TF", midpoints(TF, n=1), notepad=notepad)
    assert any("less reliable" in issue.message for issue in notepad.warnings())


def test_other_analytes_do_not_warn_on_valid_input(midpoints):
    notepad = create_notepad("test")
    impute("A1AT", midpoints(A1AT, n=1), notepad=notepad)
    assert not notepad.has_warnings()


def test_success_count_is_reported(midpoints, caplog):
    caplog.set_level(logging.INFO, logger="glycoimpute")
    impute("A1AT", midpoints(A1AT, n=3, GlycA=[1.5, None, 1.6]))
    assert "A1AT: imputed concentrations for 2 of 3 samples" in caplog.text


@pytest.mark.parametrize("model", list(ANALYTE_MODELS.values()), ids=lambda m: m.analyte)
def test_standardised_output_has_zero_mean_unit_sd(model):
    rng = np.random.default_rng(42)
    values = {name: rng.normal(size=40) for name in model.predictors}
    values[model.predictors[0]][3] = np.nan

    out = impute(model, values, standardised=True)

    assert len(out) == 40
    assert pd.isna(out.iloc[3])
    present = out.dropna()
    assert len(present) == 39
    assert float(present.mean()) == pytest.approx(0.0, abs=1e-9)
    assert float(present.std(ddof=1)) == pytest.approx(1.0)


def test_standardised_missing_filled_with_zero():
    values = {name: [0.5, -0.5, None] for name in TF.predictors}
    filled = impute("TF", values, standardised=True, na_omit=False)
    assert filled.notna().all()
    # the filled sample sits exactly between the other two
    assert float(filled.iloc[2]) == pytest.approx(0.0, abs=1e-12)


def test_length_mismatch_is_rejected(midpoints):
    values = midpoints(TF, n=3)
    values["Gln"] = [0.8, 0.8]
    with pytest.raises(ValueError, match="length mismatch"):
        impute("TF", values)


def test_missing_predictor_is_rejected(midpoints):
    values = midpoints(TF, n=1)
    del values["Gln"]
    with pytest.raises(ValueError, match="Gln"):
        impute("TF", values)


def test_unknown_analyte_is_rejected():
    with pytest.raises(ValueError, match="Unknown analyte"):
        impute("CRP", {})


def test_aat_alias_resolves_to_a1at(midpoints):
    values = midpoints(A1AT, n=1)
    assert float(impute("aat", values).iloc[0]) == pytest.approx(float(impute("A1AT", values).iloc[0]))


def test_series_index_is_kept(midpoints):
    index = pd.Index(["s1", "s2"], name="sample")
    values = {name: pd.Series(v, index=index) for name, v in midpoints(TF, n=2).items()}
    out = impute("TF", values)
    assert list(out.index) == ["s1", "s2"]
    assert out.name == "TF"


def test_align_predictors_matches_by_position(midpoints):
    values = midpoints(TF, n=2)
    values["GlycA"] = pd.Series([1.0, 2.0], index=["b", "a"])
    aligned = align_predictors(TF, values)
    assert list(aligned["Gln"].index) == ["b", "a"]
    assert aligned["GlycA"].tolist() == [1.0, 2.0]


def test_normalise_measurement_name():
    assert normalise_measurement_name("L_HDL_TG") == "l.hdl.tg"
    assert normalise_measurement_name(" L-HDL-TG ") == "l.hdl.tg"
    assert normalise_measurement_name("XXL.VLDL.CE") == "xxl.vldl.ce"


def test_impute_from_frame_accepts_underscored_columns(midpoints, expected_raw):
    values = midpoints(AGP, n=2)
    frame = pd.DataFrame({name.replace(".", "_"): v for name, v in values.items()}, index=["p1", "p2"])
    out = impute_from_frame("AGP", frame, range_check=False)
    assert list(out.index) == ["p1", "p2"]
    assert float(out.iloc[0]) == pytest.approx(expected_raw(AGP, _sample(values, 0)))


def test_impute_from_frame_reports_missing_columns():
    frame = pd.DataFrame({"GlycA": [1.0]})
    with pytest.raises(ValueError, match="Missing columns"):
        impute_from_frame("HP", frame)


def test_impute_all_returns_one_column_per_analyte(midpoints, expected_raw):
    values = {}
    for model in ANALYTE_MODELS.values():
        values.update(midpoints(model, n=2))
    frame = pd.DataFrame(values)

    out = impute_all(frame, range_check=False)

    assert list(out.columns) == ["A1AT", "AGP", "HP", "TF"]
    assert len(out) == 2
    assert float(out.loc[0, "HP"]) == pytest.approx(expected_raw(HP, _sample(values, 0)))
    assert float(out.loc[1, "TF"]) == pytest.approx(expected_raw(TF, _sample(values, 1)))
