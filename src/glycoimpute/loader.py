import pathlib

import pandas as pd

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}


def load_measurement_table(table_path: str, sheet_name=0) -> pd.DataFrame:
    """
    Read a sample table into a DataFrame:
      - first row = header (measurement names)
      - first column = index (sample ID)
      - CSV, TSV, or Excel (first worksheet unless `sheet_name` is given)
      - headers trimmed of whitespace and any "(units)" suffix
    """
    path = pathlib.Path(table_path)
    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(path, sheet_name=sheet_name, header=0, index_col=0, engine="openpyxl")
    elif suffix in {".tsv", ".txt"}:
        df = pd.read_csv(path, sep="\t", header=0, index_col=0)
    else:
        df = pd.read_csv(path, header=0, index_col=0)

    # CLEAN headers: "GlycA (mmol/L)" -> "GlycA"
    df.columns = (
        df.columns.astype(str)
        .str.replace(r"\s*\(.*?\)", "", regex=True)
        .str.strip()
    )
    return df
