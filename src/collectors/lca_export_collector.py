"""
src/collectors/lca_export_collector.py

Collector for the two raw LCA exports (one per biogenic accounting variant)
and the export date stamp
"""
import logging
from datetime import date
from pathlib import Path
from typing import Union

import pandas as pd

from src.errors import ReferenceTableError, SchemaMismatchError
from src.models.impact_models import RAW_COLUMN_MAP, SOURCE_VARIANT

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

EXCEL_SUFFIXES = {'.xlsx', '.xlsm', '.xls'}


def read_table(path: PathLike, skiprows: int = 0, **kwargs) -> pd.DataFrame:
    """Read a delimited text file or spreadsheet with all cells as text"""
    path = Path(path)
    if path.suffix.lower() in EXCEL_SUFFIXES:
        df = pd.read_excel(path, skiprows=skiprows, dtype=str, **kwargs)
    else:
        df = pd.read_csv(path, skiprows=skiprows, dtype=str, **kwargs)
    df.columns = [str(column).strip() for column in df.columns]
    return df


def read_lca_export(path: PathLike, header_rows: int = 1) -> pd.DataFrame:
    """
    Read one raw LCA export

    Args:
        path: CSV or spreadsheet export
        header_rows: Number of non-data rows above the column header

    Returns:
        DataFrame with the export's own column names, all cells as text
    """
    df = read_table(path, skiprows=header_rows)
    logger.info(f"Read {len(df)} rows from {path}")
    return df


def merge_lca_exports(df_a: pd.DataFrame, df_b: pd.DataFrame,
                      tag_a: str, tag_b: str) -> pd.DataFrame:
    """
    Tag both exports with their variant and stack them into one raw table

    Args:
        df_a: Variant A export as read by read_lca_export
        df_b: Variant B export as read by read_lca_export
        tag_a: Variant tag for rows from df_a
        tag_b: Variant tag for rows from df_b

    Returns:
        Raw records with internal column names plus sourceVariant

    Raises:
        SchemaMismatchError: If the exports differ in columns or lack required ones
    """
    columns_a = list(df_a.columns)
    columns_b = list(df_b.columns)

    if columns_a != columns_b:
        raise SchemaMismatchError(
            f"Raw exports do not share column structure: "
            f"only in A {sorted(set(columns_a) - set(columns_b))}, "
            f"only in B {sorted(set(columns_b) - set(columns_a))}, "
            f"order A {columns_a} vs B {columns_b}",
            columns_a, columns_b
        )

    missing = [column for column in RAW_COLUMN_MAP if column not in columns_a]
    if missing:
        raise SchemaMismatchError(
            f"Raw exports are missing required column(s): {missing}", columns_a, columns_b
        )

    if tag_a == tag_b:
        raise SchemaMismatchError(f"Variant tags must differ, both are {tag_a!r}")

    tagged = []
    for df, tag in ((df_a, tag_a), (df_b, tag_b)):
        part = df[list(RAW_COLUMN_MAP)].rename(columns=RAW_COLUMN_MAP)
        part[SOURCE_VARIANT] = tag
        tagged.append(part)

    merged = pd.concat(tagged, ignore_index=True)

    values = pd.to_numeric(merged['value'], errors='coerce')
    unparseable = values.isna() & merged['value'].notna()
    if unparseable.any():
        logger.warning(f"{int(unparseable.sum())} raw value(s) are not numeric and will be treated as missing")
    merged['value'] = values.astype(float)

    logger.info(f"Merged {len(df_a)} variant '{tag_a}' rows and {len(df_b)} variant '{tag_b}' rows")
    return merged


def collect_lca_exports(path_a: PathLike, path_b: PathLike, tag_a: str, tag_b: str,
                        header_rows: int = 1) -> pd.DataFrame:
    """Read both raw exports and merge them into one tagged table"""
    df_a = read_lca_export(path_a, header_rows)
    df_b = read_lca_export(path_b, header_rows)
    return merge_lca_exports(df_a, df_b, tag_a, tag_b)


def read_export_date(path: PathLike) -> date:
    """
    Read the export date stamp

    The stamp is a one-row record; the first cell that parses as a date wins,
    so an optional header cell is skipped.
    """
    df = read_table(path, header=None)
    for value in df.stack().tolist():
        parsed = pd.to_datetime(value, errors='coerce')
        if not pd.isna(parsed):
            logger.info(f"Export date stamp: {parsed.date()}")
            return parsed.date()
    raise ReferenceTableError(f"No calendar date found in export date stamp {path}")
