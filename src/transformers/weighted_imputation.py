"""
src/transformers/weighted_imputation.py

Tonnage-weighted imputation of impact factors for materials the LCA model does
not cover: production records for gap materials and the generic "Other"
material
"""
import logging
from typing import List

import numpy as np
import pandas as pd

from src.config import PipelineConfig
from src.models.impact_models import CATEGORY_COLUMNS, IMPACT_COLUMNS, PRODUCTION

logger = logging.getLogger(__name__)

IMPUTATION_GROUP = ['lifeCycleStage', 'disposition'] + CATEGORY_COLUMNS
IMPUTED_VALUES = ['impactFactor', 'impliedMiles']


def weighted_mean(values, weights) -> float:
    """
    Weighted mean that skips missing values

    Contributors with a missing value or weight are excluded from both the
    numerator and the divisor. Returns NaN when nothing contributes.
    """
    values = pd.Series(values, dtype=float).reset_index(drop=True)
    weights = pd.Series(weights, dtype=float).reset_index(drop=True)
    present = values.notna() & weights.notna()
    if not present.any() or weights[present].sum() == 0:
        return np.nan
    return float(np.average(values[present], weights=weights[present]))


def known_weights(mass_profile: pd.Series, other_material: str = 'Other') -> pd.Series:
    """Tonnage weights usable for imputation, without any "Other"-tagged material"""
    is_other = mass_profile.index.astype(str).str.startswith(other_material)
    return mass_profile[~is_other].dropna()


def weighted_group_means(df: pd.DataFrame, weights: pd.Series,
                         group_columns: List[str], value_columns: List[str]) -> pd.DataFrame:
    """
    Tonnage-weighted mean of value_columns for each group, over materials with a weight

    Args:
        df: Impact records
        weights: Tonnage per material
        group_columns: Columns to group by
        value_columns: Columns to average

    Returns:
        One row per group with group_columns and value_columns
    """
    contributors = df[df['material'].isin(weights.index)].copy()
    contributors['weight'] = contributors['material'].map(weights)

    rows = []
    for keys, group in contributors.groupby(group_columns, dropna=False, sort=True):
        row = dict(zip(group_columns, keys))
        for column in value_columns:
            row[column] = weighted_mean(group[column], group['weight'])
        rows.append(row)

    return pd.DataFrame(rows, columns=group_columns + value_columns)


def impute_missing_production(df: pd.DataFrame, mass_profile: pd.Series,
                              config: PipelineConfig) -> pd.DataFrame:
    """
    Synthesize production records for materials that have none

    Materials in the production-exempt registry are accepted as having no
    production stage and are left alone.
    """
    materials = set(df['material'])
    with_production = set(df.loc[df['lifeCycleStage'] == PRODUCTION, 'material'])
    without_production = materials - with_production - {config.other_material}

    exempt = sorted(without_production & set(config.production_exempt_materials))
    if exempt:
        logger.info(f"Materials exempt from production imputation: {exempt}")

    gaps = sorted(without_production - set(config.production_exempt_materials))
    if not gaps:
        return df

    weights = known_weights(mass_profile, config.other_material)
    production = df[df['lifeCycleStage'] == PRODUCTION]
    means = weighted_group_means(production, weights, IMPUTATION_GROUP, IMPUTED_VALUES)
    if means.empty:
        logger.warning(f"No weighted production records available to impute production for {gaps}")
        return df

    imputed = pd.concat([means.assign(material=material) for material in gaps], ignore_index=True)
    logger.info(f"Imputed {len(imputed)} production records for {gaps}")
    return pd.concat([df, imputed[IMPACT_COLUMNS]], ignore_index=True)


def synthesize_other_material(df: pd.DataFrame, mass_profile: pd.Series,
                              config: PipelineConfig) -> pd.DataFrame:
    """
    Build the generic "Other" material as a tonnage-weighted average of known materials

    Only the common dispositions in config.other_dispositions are synthesized.
    Existing "Other" records are replaced.
    """
    is_other = df['material'] == config.other_material
    if is_other.any():
        logger.warning(f"Replacing {int(is_other.sum())} existing '{config.other_material}' records")
    base = df[~is_other]

    weights = known_weights(mass_profile, config.other_material)
    common = base[base['disposition'].isin(config.other_dispositions)]
    means = weighted_group_means(common, weights, IMPUTATION_GROUP, IMPUTED_VALUES)
    if means.empty:
        logger.warning(f"No weighted records available to synthesize '{config.other_material}'")
        return base.reset_index(drop=True)

    synthesized = means.assign(material=config.other_material)[IMPACT_COLUMNS]
    logger.info(f"Synthesized {len(synthesized)} '{config.other_material}' records")
    return pd.concat([base, synthesized], ignore_index=True)
