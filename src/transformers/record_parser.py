"""
src/transformers/record_parser.py

Keeps the aggregate scope of the merged raw export and splits each composite
identifier into material, life-cycle stage and disposition
"""
import logging

import pandas as pd

from src.errors import MalformedIdentifierError

logger = logging.getLogger(__name__)

PARSED_FIELDS = ['material', 'lifeCycleStage', 'disposition']


def filter_aggregate_scope(df: pd.DataFrame, scope: str = 'Total') -> pd.DataFrame:
    """Keep only rows of the summed top-level scope"""
    scoped = df[df['scope'].astype(str).str.strip() == scope]
    logger.info(f"Kept {len(scoped)}/{len(df)} rows in scope '{scope}'")
    return scoped.drop(columns=['scope']).reset_index(drop=True)


def split_identifiers(identifiers: pd.Series, delimiter: str = '_') -> pd.DataFrame:
    """
    Split '<material>_<stage>_<disposition>' at the first two delimiters

    Anything after the second delimiter belongs to the disposition.

    Raises:
        MalformedIdentifierError: If any identifier has fewer than two delimiters or an empty part
    """
    parts = identifiers.astype(str).str.strip().str.split(delimiter, n=2, expand=True)
    parts = parts.reindex(columns=range(3))
    parts.columns = PARSED_FIELDS

    malformed = parts.isna().any(axis=1) | (parts.fillna('') == '').any(axis=1)
    if malformed.any():
        bad = identifiers[malformed].drop_duplicates().tolist()
        logger.error(f"Rejecting batch: {len(bad)} malformed identifier(s)")
        raise MalformedIdentifierError(bad)

    return parts


def parse_records(df: pd.DataFrame, scope: str = 'Total', delimiter: str = '_') -> pd.DataFrame:
    """
    Stage 2: filter to the aggregate scope and decompose identifiers

    Args:
        df: Merged raw records
        scope: Aggregate scope to keep
        delimiter: Identifier delimiter

    Returns:
        Parsed records with material, lifeCycleStage and disposition in place of identifier
    """
    scoped = filter_aggregate_scope(df, scope)
    parts = split_identifiers(scoped['identifier'], delimiter)

    parsed = pd.concat([parts, scoped.drop(columns=['identifier'])], axis=1)
    logger.info(f"Parsed {len(parsed)} records covering {parsed['material'].nunique()} materials")
    return parsed
