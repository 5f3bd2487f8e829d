"""
src/transformers/impact_restructurer.py

Stage 4 transformer: consolidates production impacts, assigns implied transport
miles, reallocates end-of-life transport between the controllable (landfill
equivalent) trip and the process impact, then fills material gaps
"""
import logging

import pandas as pd

from src.config import PipelineConfig
from src.errors import IntegrityViolationError
from src.models.impact_models import (
    CATEGORY_COLUMNS, END_OF_LIFE, END_OF_LIFE_TRANSPORT, IMPACT_COLUMNS, PRODUCTION
)
from src.transformers.weighted_imputation import (
    impute_missing_production, synthesize_other_material
)

logger = logging.getLogger(__name__)

PRODUCTION_GROUP = ['material', 'lifeCycleStage'] + CATEGORY_COLUMNS
TRANSPORT_MATCH = ['material'] + CATEGORY_COLUMNS


def _merge_many_to_one(left: pd.DataFrame, right: pd.DataFrame, on, how: str) -> pd.DataFrame:
    """Merge on keys that must be unique in right, reporting repeats as an integrity failure"""
    repeated = right[right.duplicated(on, keep=False)]
    if not repeated.empty:
        duplicate_keys = repeated.groupby(on, dropna=False).size().reset_index(name='count').to_dict('records')
        logger.error(f"{len(duplicate_keys)} transport key(s) repeat where one record is expected")
        raise IntegrityViolationError(duplicate_keys)
    return left.merge(right, on=on, how=how, validate='many_to_one')


def consolidate_production(df: pd.DataFrame) -> pd.DataFrame:
    """
    Sum production and production_transport into one production record

    Missing factors count as zero in the sum. Non-production records pass
    through unchanged.
    """
    is_production = df['lifeCycleStage'] == PRODUCTION
    production = df[is_production]
    others = df[~is_production]

    consolidated = (
        production.groupby(PRODUCTION_GROUP, dropna=False, sort=True)['impactFactor']
        .sum()
        .reset_index()
    )
    consolidated['disposition'] = PRODUCTION

    logger.info(f"Consolidated {len(production)} production records into {len(consolidated)}")
    combined = pd.concat([consolidated[others.columns], others], ignore_index=True)
    return combined


def assign_implied_miles(df: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    """
    Drop out-of-scope dispositions and attach the implied transport distance

    End-of-life transport to aggregate use travels a shorter fixed distance;
    every other record carries the default distance.
    """
    in_scope = ~df['disposition'].isin(config.out_of_scope_dispositions)
    dropped = int((~in_scope).sum())
    if dropped:
        logger.info(f"Dropped {dropped} records with out-of-scope dispositions {list(config.out_of_scope_dispositions)}")

    df = df[in_scope].copy()
    df['impliedMiles'] = config.default_implied_miles
    is_aggregate_transport = (
        (df['lifeCycleStage'] == END_OF_LIFE_TRANSPORT)
        & (df['disposition'] == config.aggregate_disposition)
    )
    df.loc[is_aggregate_transport, 'impliedMiles'] = config.aggregate_implied_miles
    return df.reset_index(drop=True)


def transport_differences(df: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    """
    Compute each end-of-life transport factor's excess over the landfill baseline

    Returns:
        One row per endOfLifeTransport record with a landfill baseline, carrying
        landfillFactor and transportDifference
    """
    transport = df[df['lifeCycleStage'] == END_OF_LIFE_TRANSPORT]
    baseline = (
        transport.loc[transport['disposition'] == config.landfill_disposition, TRANSPORT_MATCH + ['impactFactor']]
        .rename(columns={'impactFactor': 'landfillFactor'})
    )
    others = transport[transport['disposition'] != config.landfill_disposition]

    differences = _merge_many_to_one(others, baseline, TRANSPORT_MATCH, 'inner')
    differences['transportDifference'] = differences['impactFactor'] - differences['landfillFactor']

    without_baseline = sorted(set(transport['material']) - set(baseline['material']))
    if without_baseline:
        logger.info(f"No {config.landfill_disposition} transport baseline for {without_baseline}; left unmodified")
    return differences[TRANSPORT_MATCH + ['disposition', 'landfillFactor', 'transportDifference']]


def reallocate_transport(df: pd.DataFrame, config: PipelineConfig) -> pd.DataFrame:
    """
    Cap recycling transport at the landfill-equivalent trip

    For recycling-type dispositions the endOfLifeTransport factor becomes the
    material's landfill transport factor, and the difference moves into the
    endOfLife factor of the same disposition.
    """
    differences = transport_differences(df, config)
    differences = differences[differences['disposition'].map(config.is_recycling_disposition).astype(bool)]
    match = TRANSPORT_MATCH + ['disposition']

    out = _merge_many_to_one(df, differences, match, 'left')

    is_transport = (out['lifeCycleStage'] == END_OF_LIFE_TRANSPORT) & out['landfillFactor'].notna()
    out.loc[is_transport, 'impactFactor'] = out.loc[is_transport, 'landfillFactor']

    is_process = (out['lifeCycleStage'] == END_OF_LIFE) & out['transportDifference'].notna()
    out.loc[is_process, 'impactFactor'] = (
        out.loc[is_process, 'impactFactor'] + out.loc[is_process, 'transportDifference']
    )

    absorbed = out.loc[is_process, match].drop_duplicates()
    orphaned = differences.merge(absorbed, on=match, how='left', indicator=True)
    orphaned = orphaned[orphaned['_merge'] == 'left_only']
    if not orphaned.empty:
        logger.warning(
            f"{len(orphaned)} recycling transport difference(s) have no {END_OF_LIFE} record to absorb them: "
            f"{orphaned[['material', 'disposition', 'impactCategory']].drop_duplicates().values.tolist()[:10]}"
        )

    logger.info(f"Capped {int(is_transport.sum())} transport records at the landfill baseline, "
                f"adjusted {int(is_process.sum())} {END_OF_LIFE} records")
    return out[df.columns]


def restructure_impacts(df: pd.DataFrame, mass_profile: pd.Series,
                        config: PipelineConfig) -> pd.DataFrame:
    """
    Stage 4: production consolidation, mileage, transport reallocation and gap filling

    Args:
        df: Output of reconcile_categories
        mass_profile: Tonnage per material for weighted imputation
        config: Pipeline configuration

    Returns:
        Restructured impact records with IMPACT_COLUMNS
    """
    consolidated = consolidate_production(df)
    with_miles = assign_implied_miles(consolidated, config)
    reallocated = reallocate_transport(with_miles, config)
    gap_filled = impute_missing_production(reallocated[IMPACT_COLUMNS], mass_profile, config)
    return synthesize_other_material(gap_filled, mass_profile, config)
