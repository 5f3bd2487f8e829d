"""
src/transformers/finalizer.py

Stage 5 transformer: provenance stamping, deprecated category removal, the
uniqueness integrity check and the availability matrix
"""
import logging
from datetime import date
from typing import Optional, Sequence, Tuple

import pandas as pd

from src.errors import IntegrityViolationError
from src.models.impact_models import FINAL_COLUMNS, KEY_COLUMNS

logger = logging.getLogger(__name__)


def attach_provenance(df: pd.DataFrame, export_date: date,
                      processing_date: Optional[date] = None) -> pd.DataFrame:
    """Cross-join a single-row date record onto every impact record"""
    processing_date = processing_date or date.today()
    dates = pd.DataFrame({
        'exportDate': [pd.Timestamp(export_date)],
        'processingDate': [pd.Timestamp(processing_date)],
    })
    return df.merge(dates, how='cross')


def remove_deprecated_categories(df: pd.DataFrame, deprecated: Sequence[str]) -> pd.DataFrame:
    """Drop withdrawn accounting-method categories by exact name"""
    is_deprecated = df['impactCategory'].isin(deprecated)
    if is_deprecated.any():
        logger.info(f"Removed {int(is_deprecated.sum())} records in deprecated categories {list(deprecated)}")
    return df[~is_deprecated].reset_index(drop=True)


def check_integrity(df: pd.DataFrame) -> None:
    """
    Require exactly one record per (material, lifeCycleStage, disposition, impactCategory)

    Raises:
        IntegrityViolationError: If any key has more than one record
    """
    counts = df.groupby(KEY_COLUMNS, dropna=False).size().reset_index(name='count')
    duplicates = counts[counts['count'] > 1]
    if not duplicates.empty:
        logger.error(f"Integrity check failed: {len(duplicates)} duplicated key group(s)")
        raise IntegrityViolationError(duplicates.to_dict('records'))
    logger.info(f"Integrity check passed for {len(counts)} keys")


def sort_impact_factors(df: pd.DataFrame) -> pd.DataFrame:
    """Sort by the uniqueness key so output order never depends on processing order"""
    return df.sort_values(KEY_COLUMNS, kind='mergesort').reset_index(drop=True)


def build_availability_matrix(df: pd.DataFrame) -> pd.DataFrame:
    """One row per material, one boolean column per disposition"""
    presence = pd.crosstab(df['material'], df['disposition']) > 0
    presence = presence.sort_index().sort_index(axis=1)
    presence.columns.name = None
    return presence.reset_index()


def finalize_impact_factors(df: pd.DataFrame, export_date: date,
                            deprecated: Sequence[str] = (),
                            processing_date: Optional[date] = None) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """
    Stage 5: stamp, prune, check and sort the finished impact factors

    Returns:
        Tuple of (impact factors, availability matrix)
    """
    stamped = attach_provenance(df, export_date, processing_date)
    current = remove_deprecated_categories(stamped, deprecated)
    check_integrity(current)
    finished = sort_impact_factors(current[FINAL_COLUMNS])
    logger.info(f"Finished {len(finished)} impact factors for {finished['material'].nunique()} materials")
    return finished, build_availability_matrix(finished)
