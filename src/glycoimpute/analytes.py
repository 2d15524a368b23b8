"""
Public imputation functions, one per glycoprotein.

Each function only binds its arguments to the measurement names of one analyte
model and hands them to the shared engine in `imputation.py`.

Common keyword arguments:
    range_check: Set input and imputed values outside their acceptable range to NA.
    standardised: Inputs are already log transformed and standardised; return
        standardised scores instead of concentrations.
    na_omit: Keep missing inputs missing (the sample gets no imputed value).
        When False, missing inputs are replaced by the median (raw mode) or 0
        (standardised mode).
    notepad: Optional `stairval` notepad collecting warnings.

The imputed value for a sample is NA whenever one of its inputs is missing or
outside its acceptable range, or when the imputed concentration itself falls
outside the range observed in the training cohort.
"""

import typing

import pandas as pd

from stairval.notepad import Notepad

from .imputation import impute
from .models import A1AT, AGP, HP, TF


def impute_a1at(
    GlycA, FAw3, VLDL_D, HDL3_C, LDL_D, Phe, Leu, ApoB, Alb, Tyr, bOHBut, BMI,
    Ala, L_HDL_TG, Ile, Ace, His, HDL_TG,
    range_check: bool = True,
    standardised: bool = False,
    na_omit: bool = True,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """
    Impute alpha-1 antitrypsin (A1AT, also AAT) from serum NMR measurements.

    Acceptable input ranges:
        GlycA 0.869--2.24 mmol/L, FAw3 0.196--1.18 mmol/L, VLDL_D 33--41 nm,
        HDL3_C 0.421--0.647 mmol/L, LDL_D 23.2--24.1 nm, Phe 0.0555--0.118 mmol/L,
        Leu 0.0295--0.138 mmol/L, ApoB 0.365--1.48 g/L, Alb 0.0733--0.101 (signal area),
        Tyr 0.0279--0.124 mmol/L, bOHBut 0.0331--0.872 mmol/L, BMI 16.17--47.44 kg/m^2,
        Ala 0.274--0.557 mmol/L, L_HDL_TG 0.000462--0.0993 mmol/L, Ile 0.024--0.103 mmol/L,
        Ace 0.029--1.32 mmol/L, His 0.0446--0.0913 mmol/L, HDL_TG 0.0698--0.315 mmol/L.

    Returns:
        A1AT concentrations between 0.64--2.58 mg/L, or NA.
    """
    values = [
        GlycA, FAw3, VLDL_D, HDL3_C, LDL_D, Phe, Leu, ApoB, Alb, Tyr, bOHBut, BMI,
        Ala, L_HDL_TG, Ile, Ace, His, HDL_TG,
    ]
    return impute(
        A1AT,
        dict(zip(A1AT.predictors, values)),
        range_check=range_check,
        standardised=standardised,
        na_omit=na_omit,
        notepad=notepad,
    )


impute_aat = impute_a1at


def impute_agp(
    GlycA, TotFA, IDL_FC, L_HDL_FC, His, HDL_TG, BMI, S_HDL_FC, S_LDL_TG, bOHBut,
    LA, S_HDL_CE, Lac, S_VLDL_TG, Ace, Cit, SFA, Ala, XXL_VLDL_CE, Glol, Age,
    Crea, Gly,
    range_check: bool = True,
    standardised: bool = False,
    na_omit: bool = True,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """
    Impute alpha-1-acid glycoprotein (AGP) from serum NMR measurements, BMI and age.

    Age (years, 25--74) enters the model untransformed; all other inputs are log
    transformed. Returns AGP concentrations between 362--1,880 mg/L, or NA.
    """
    values = [
        GlycA, TotFA, IDL_FC, L_HDL_FC, His, HDL_TG, BMI, S_HDL_FC, S_LDL_TG, bOHBut,
        LA, S_HDL_CE, Lac, S_VLDL_TG, Ace, Cit, SFA, Ala, XXL_VLDL_CE, Glol, Age,
        Crea, Gly,
    ]
    return impute(
        AGP,
        dict(zip(AGP.predictors, values)),
        range_check=range_check,
        standardised=standardised,
        na_omit=na_omit,
        notepad=notepad,
    )


def impute_hp(
    GlycA, LA, IDL_FC, SM, FAw3, HDL_TG, S_VLDL_CE, Age, Alb, Ile, Cit, VLDL_D,
    Leu, Val, L_VLDL_CE, Pyr, Lac, Gln, M_HDL_FC, XL_HDL_TG, XL_HDL_PL, His, Tyr,
    BMI, L_HDL_TG, PUFA, S_LDL_FC,
    range_check: bool = True,
    standardised: bool = False,
    na_omit: bool = True,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """Impute haptoglobin (HP); returns concentrations between 0.14--3.95 mg/L, or NA."""
    values = [
        GlycA, LA, IDL_FC, SM, FAw3, HDL_TG, S_VLDL_CE, Age, Alb, Ile, Cit, VLDL_D,
        Leu, Val, L_VLDL_CE, Pyr, Lac, Gln, M_HDL_FC, XL_HDL_TG, XL_HDL_PL, His, Tyr,
        BMI, L_HDL_TG, PUFA, S_LDL_FC,
    ]
    return impute(
        HP,
        dict(zip(HP.predictors, values)),
        range_check=range_check,
        standardised=standardised,
        na_omit=na_omit,
        notepad=notepad,
    )


def impute_tf(
    GlycA, Sex, Age, S_HDL_FC, Ace, Ala, SFA, His, Gln,
    range_check: bool = True,
    standardised: bool = False,
    na_omit: bool = True,
    notepad: typing.Optional[Notepad] = None,
) -> pd.Series:
    """
    Impute transferrin (TF).

    Sex must be coded 1 (male) or 2 (female); other codes are set to NA with a
    warning. Sex and Age enter the model untransformed. Every call warns that TF
    imputation is less reliable than that of the other glycoproteins.

    Returns:
        TF concentrations between 1.39--4.38 mg/L, or NA.
    """
    values = [GlycA, Sex, Age, S_HDL_FC, Ace, Ala, SFA, His, Gln]
    return impute(
        TF,
        dict(zip(TF.predictors, values)),
        range_check=range_check,
        standardised=standardised,
        na_omit=na_omit,
        notepad=notepad,
    )
