"""
src/transformers/category_reconciler.py

Stage 3 transformer: maps raw LCA quantities onto the canonical impact category
short list, folds the biogenic accounting variant into category names and
separates end-of-life transport into its own life-cycle stage
"""
import logging
from typing import List

import pandas as pd

from src.config import PipelineConfig
from src.errors import CategoryJoinError, VariantConflictError
from src.models.impact_models import (
    END_OF_LIFE_TRANSPORT, KEY_COLUMNS, PRODUCTION, SOURCE_VARIANT, CategoryMapping
)

logger = logging.getLogger(__name__)

JOIN_KEYS = ['quantityFolder', 'quantityName']

MAPPING_RENAMES = {
    'value': 'impactFactor',
    'canonicalCategory': 'impactCategory',
    'canonicalUnits': 'impactUnits',
    'canonicalCategoryLong': 'categoryLong',
}

RECONCILED_COLUMNS = [
    'material', 'lifeCycleStage', 'disposition', 'corporateSource', 'impactCategory',
    'impactUnits', 'impactFactor', 'categoryLong', SOURCE_VARIANT,
]


def join_category_mapping(parsed: pd.DataFrame, mapping: CategoryMapping) -> pd.DataFrame:
    """
    Attach canonical category fields to every parsed record

    Every (quantityFolder, quantityName) pair must be present in the mapping;
    unmapped rows are never dropped silently.

    Raises:
        CategoryJoinError: If any parsed record has no mapping entry
    """
    keys = parsed[JOIN_KEYS].drop_duplicates()
    unmatched = [
        (folder, name) for folder, name in keys.itertuples(index=False, name=None)
        if mapping.lookup(folder, name) is None
    ]
    if unmatched:
        unmatched_set = set(unmatched)
        unmatched_rows = sum(
            1 for key in parsed[JOIN_KEYS].itertuples(index=False, name=None) if key in unmatched_set
        )
        logger.error(f"{unmatched_rows} record(s) have no category mapping entry: {unmatched}")
        raise CategoryJoinError(sorted(unmatched, key=str), unmatched_rows)

    joined = parsed.merge(mapping.to_frame(), on=JOIN_KEYS, how='left', validate='many_to_one')
    logger.info(f"Joined {len(joined)} records to the category mapping")
    return joined


def select_short_list(joined: pd.DataFrame) -> pd.DataFrame:
    """Keep short-listed categories and rename mapping fields to impact record names"""
    short_listed = joined[joined['includeInShortList'].astype(bool)]
    logger.info(f"Kept {len(short_listed)}/{len(joined)} records in short-listed categories")
    return short_listed.rename(columns=MAPPING_RENAMES)[RECONCILED_COLUMNS].reset_index(drop=True)


def disambiguate_biogenic_variants(df: pd.DataFrame, token: str = 'biogenic') -> pd.DataFrame:
    """
    Replace the biogenic placeholder in category names with the source variant tag

    Categories without the placeholder are identical across variants, so once
    the tag is dropped they collapse to a single row.
    """
    df = df.copy()
    df['impactCategory'] = [
        category.replace(token, variant) if token in category else category
        for category, variant in zip(df['impactCategory'].astype(str), df[SOURCE_VARIANT])
    ]

    before = len(df)
    deduplicated = df.drop(columns=[SOURCE_VARIANT]).drop_duplicates().reset_index(drop=True)
    logger.info(f"Collapsed {before} variant records to {len(deduplicated)} after biogenic disambiguation")
    check_variant_agreement(deduplicated)
    return deduplicated


def check_variant_agreement(df: pd.DataFrame) -> None:
    """
    Require one record per key once the variant tag is gone

    A non-biogenic category that differs between the variants survives
    deduplication twice under the same name and would later be summed or
    rejected by a merge.

    Raises:
        VariantConflictError: If any key still has more than one record
    """
    counts = df.groupby(KEY_COLUMNS, dropna=False).size().reset_index(name='count')
    conflicts = counts[counts['count'] > 1]
    if not conflicts.empty:
        logger.error(f"Variants disagree on {len(conflicts)} non-biogenic key(s)")
        raise VariantConflictError(conflicts.to_dict('records'))


def reclassify_transport(df: pd.DataFrame, suffix: str = '_transport',
                         production_transport: str = 'production_transport') -> pd.DataFrame:
    """Move '<disposition>_transport' records into the endOfLifeTransport stage"""
    df = df.copy()
    disposition = df['disposition'].astype(str)
    is_transport = disposition.str.endswith(suffix) & (disposition != production_transport)

    df.loc[is_transport, 'disposition'] = disposition[is_transport].str.slice(stop=-len(suffix))
    df.loc[is_transport, 'lifeCycleStage'] = END_OF_LIFE_TRANSPORT
    logger.info(f"Reclassified {int(is_transport.sum())} records as {END_OF_LIFE_TRANSPORT}")
    return df


def report_missing_production_transport(df: pd.DataFrame, production_transport: str = 'production_transport',
                                        accepted: tuple = ()) -> List[str]:
    """
    Log materials that have production but no production_transport records

    This is a known data irregularity, not an error: listed materials are
    accepted exceptions, anything else is flagged for review.

    Returns:
        Materials missing production_transport that are not accepted exceptions
    """
    production = df[df['lifeCycleStage'] == PRODUCTION]
    with_production = set(production['material'])
    with_transport = set(production.loc[production['disposition'] == production_transport, 'material'])
    missing = sorted(with_production - with_transport)

    known = [material for material in missing if material in accepted]
    unexpected = [material for material in missing if material not in accepted]
    if known:
        logger.info(f"Accepted exceptions without {production_transport}: {known}")
    if unexpected:
        logger.warning(f"Materials without {production_transport} (not in the accepted list): {unexpected}")
    return unexpected


def reconcile_categories(parsed: pd.DataFrame, mapping: CategoryMapping,
                         config: PipelineConfig) -> pd.DataFrame:
    """
    Stage 3: category mapping join, short-list filter, biogenic disambiguation
    and transport stage reclassification

    Args:
        parsed: Output of parse_records
        mapping: Injected category mapping lookup
        config: Pipeline configuration

    Returns:
        Impact record candidates without impliedMiles
    """
    joined = join_category_mapping(parsed, mapping)
    short_listed = select_short_list(joined)
    disambiguated = disambiguate_biogenic_variants(short_listed, config.biogenic_token)
    reconciled = reclassify_transport(disambiguated, config.transport_suffix, config.production_transport)
    report_missing_production_transport(
        reconciled, config.production_transport, config.production_transport_exempt_materials)
    return reconciled
