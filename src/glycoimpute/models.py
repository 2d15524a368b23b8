"""
Analyte model definitions.

Each imputation model is pure configuration: which measurements it takes (in
argument order), which of them enter the linear predictor untransformed, and
the key of its coefficients in the coefficient table.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class AnalyteModel:
    """
    Attributes:
        analyte: Coefficient table key and output range table key (e.g. 'A1AT').
        label: Full protein name.
        predictors: Measurement names, in the order the impute function takes them.
        linear_terms: Predictors that are not log transformed in raw mode.
        caveat: Warning emitted on every call, if any.
    """

    analyte: str
    label: str
    predictors: tuple[str, ...]
    linear_terms: frozenset[str] = frozenset()
    caveat: str = ""

    def __post_init__(self):
        if len(set(self.predictors)) != len(self.predictors):
            raise ValueError(f"Duplicate predictors in {self.analyte!r} model")
        unknown = self.linear_terms - set(self.predictors)
        if unknown:
            raise ValueError(f"Linear terms {sorted(unknown)} are not predictors of {self.analyte!r}")

    @property
    def parameter_names(self) -> tuple[str, ...]:
        # 'VLDL.D' -> 'VLDL_D'
        return tuple(to_parameter_name(name) for name in self.predictors)


def to_parameter_name(measurement: str) -> str:
    return measurement.replace(".", "_")


A1AT = AnalyteModel(
    analyte="A1AT",
    label="Alpha-1 antitrypsin",
    predictors=(
        "GlycA", "FAw3", "VLDL.D", "HDL3.C", "LDL.D", "Phe", "Leu", "ApoB", "Alb",
        "Tyr", "bOHBut", "BMI", "Ala", "L.HDL.TG", "Ile", "Ace", "His", "HDL.TG",
    ),
)

AGP = AnalyteModel(
    analyte="AGP",
    label="Alpha-1-acid glycoprotein",
    predictors=(
        "GlycA", "TotFA", "IDL.FC", "L.HDL.FC", "His", "HDL.TG", "BMI", "S.HDL.FC",
        "S.LDL.TG", "bOHBut", "LA", "S.HDL.CE", "Lac", "S.VLDL.TG", "Ace", "Cit",
        "SFA", "Ala", "XXL.VLDL.CE", "Glol", "Age", "Crea", "Gly",
    ),
    linear_terms=frozenset({"Age"}),
)

HP = AnalyteModel(
    analyte="HP",
    label="Haptoglobin",
    predictors=(
        "GlycA", "LA", "IDL.FC", "SM", "FAw3", "HDL.TG", "S.VLDL.CE", "Age", "Alb",
        "Ile", "Cit", "VLDL.D", "Leu", "Val", "L.VLDL.CE", "Pyr", "Lac", "Gln",
        "M.HDL.FC", "XL.HDL.TG", "XL.HDL.PL", "His", "Tyr", "BMI", "L.HDL.TG",
        "PUFA", "S.LDL.FC",
    ),
    linear_terms=frozenset({"Age"}),
)

TF = AnalyteModel(
    analyte="TF",
    label="Transferrin",
    predictors=("GlycA", "Sex", "Age", "S.HDL.FC", "Ace", "Ala", "SFA", "His", "Gln"),
    linear_terms=frozenset({"Age", "Sex"}),
    caveat=(
        "TF imputation is markedly less reliable than imputation of the other glycoproteins; "
        "interpret imputed TF concentrations with caution"
    ),
)

ANALYTE_MODELS: dict[str, AnalyteModel] = {
    model.analyte: model for model in (A1AT, AGP, HP, TF)
}

# Friendly aliases → canonical analyte key
ANALYTE_ALIASES = {
    "a1at": "A1AT",
    "aat": "A1AT",
    "agp": "AGP",
    "hp": "HP",
    "tf": "TF",
}


def get_model(analyte: str) -> AnalyteModel:
    key = ANALYTE_ALIASES.get(analyte.strip().lower())
    if key is None:
        raise ValueError(
            f"Unknown analyte: {analyte!r} (expected one of {sorted(ANALYTE_MODELS)})"
        )
    return ANALYTE_MODELS[key]
