"""
src/collectors/reference_collector.py

Readers for the human-maintained reference tables: the category mapping and
the material mass profile
"""
import logging
from pathlib import Path
from typing import Union

import pandas as pd

from src.collectors.lca_export_collector import read_table
from src.errors import ReferenceTableError
from src.models.impact_models import MAPPING_COLUMNS, CategoryMapping, parse_bool

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

MASS_PROFILE_COLUMNS = ['material', 'tons']


def build_category_mapping(df: pd.DataFrame) -> CategoryMapping:
    """
    Validate a category mapping table and wrap it in a lookup

    Raises:
        ReferenceTableError: If columns are missing, keys repeat or a short-list flag is unreadable
    """
    missing = [column for column in MAPPING_COLUMNS if column not in df.columns]
    if missing:
        raise ReferenceTableError(f"Category mapping is missing column(s): {missing}")

    df = df[MAPPING_COLUMNS].copy()
    for column in ['quantityFolder', 'quantityName']:
        df[column] = df[column].astype(str).str.strip()

    duplicated = df.duplicated(subset=['quantityFolder', 'quantityName'], keep=False)
    if duplicated.any():
        keys = df.loc[duplicated, ['quantityFolder', 'quantityName']].drop_duplicates()
        raise ReferenceTableError(
            f"Category mapping has {len(keys)} repeated (quantityFolder, quantityName) key(s): "
            f"{list(keys.itertuples(index=False, name=None))[:10]}"
        )

    try:
        df['includeInShortList'] = df['includeInShortList'].map(parse_bool)
    except ValueError as e:
        raise ReferenceTableError(f"Category mapping has an unreadable includeInShortList value: {e}") from e

    mapping = CategoryMapping.from_frame(df)
    logger.info(f"Category mapping holds {len(mapping)} entries, "
                f"{int(df['includeInShortList'].sum())} short-listed")
    return mapping


def load_category_mapping(path: PathLike) -> CategoryMapping:
    """Read the category mapping spreadsheet or CSV"""
    return build_category_mapping(read_table(path))


def build_mass_profile(df: pd.DataFrame) -> pd.Series:
    """
    Validate a mass profile table

    Returns:
        Tonnage per material, indexed by material name

    Raises:
        ReferenceTableError: If columns are missing, materials repeat or tonnage is not numeric
    """
    missing = [column for column in MASS_PROFILE_COLUMNS if column not in df.columns]
    if missing:
        raise ReferenceTableError(f"Mass profile is missing column(s): {missing}")

    df = df[MASS_PROFILE_COLUMNS].copy()
    df['material'] = df['material'].astype(str).str.strip()

    repeated = df['material'][df['material'].duplicated()].unique().tolist()
    if repeated:
        raise ReferenceTableError(f"Mass profile lists material(s) more than once: {repeated}")

    tons = pd.to_numeric(df['tons'], errors='coerce')
    bad = df.loc[tons.isna() & df['tons'].notna(), 'material'].tolist()
    if bad:
        raise ReferenceTableError(f"Mass profile has non-numeric tonnage for: {bad}")
    if (tons < 0).any():
        raise ReferenceTableError(
            f"Mass profile has negative tonnage for: {df.loc[tons < 0, 'material'].tolist()}")

    profile = pd.Series(tons.astype(float).values, index=df['material'], name='tons')
    logger.info(f"Mass profile covers {len(profile)} materials, {profile.sum():,.0f} tons")
    return profile


def load_mass_profile(path: PathLike) -> pd.Series:
    """Read the material mass profile"""
    return build_mass_profile(read_table(path))
