"""
src/models/impact_models.py

Column names, life-cycle constants and the category mapping lookup used across
the impact factor pipeline
"""
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

import pandas as pd

# Raw export columns, as written by the LCA software, mapped to internal names
RAW_COLUMN_MAP = {
    'Object': 'identifier',
    'Scope': 'scope',
    'Quantity folder': 'quantityFolder',
    'Quantity': 'quantityName',
    'Unit': 'unit',
    'Value': 'value',
}

SOURCE_VARIANT = 'sourceVariant'

MAPPING_COLUMNS = [
    'quantityFolder', 'quantityName', 'corporateSource', 'canonicalCategoryLong',
    'includeInShortList', 'canonicalCategory', 'canonicalUnits',
]

IMPACT_COLUMNS = [
    'material', 'lifeCycleStage', 'disposition', 'corporateSource', 'impactCategory',
    'impactUnits', 'impactFactor', 'impliedMiles', 'categoryLong',
]

PROVENANCE_COLUMNS = ['exportDate', 'processingDate']

FINAL_COLUMNS = IMPACT_COLUMNS + PROVENANCE_COLUMNS

# Uniqueness key of the finished table
KEY_COLUMNS = ['material', 'lifeCycleStage', 'disposition', 'impactCategory']

# Columns that identify an impact category independently of material and disposition
CATEGORY_COLUMNS = ['corporateSource', 'impactCategory', 'impactUnits', 'categoryLong']

# Life-cycle stages
PRODUCTION = 'production'
END_OF_LIFE = 'endOfLife'
END_OF_LIFE_TRANSPORT = 'endOfLifeTransport'

_TRUE_STRINGS = {'true', 't', 'yes', 'y', '1'}
_FALSE_STRINGS = {'false', 'f', 'no', 'n', '0', ''}


def parse_bool(value) -> bool:
    """Coerce spreadsheet-style truthy values (TRUE, yes, 1) to bool"""
    if isinstance(value, bool):
        return value
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return False
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


@dataclass(frozen=True)
class MappingEntry:
    """One row of the human-maintained category mapping"""
    corporate_source: str
    canonical_category_long: str
    include_in_short_list: bool
    canonical_category: str
    canonical_units: str


class CategoryMapping:
    """
    Read-only lookup from (quantityFolder, quantityName) to canonical category

    The mapping is authored by hand in a spreadsheet; the pipeline only reads it.
    """

    def __init__(self, entries: Dict[Tuple[str, str], MappingEntry]):
        self._entries = dict(entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key) -> bool:
        return key in self._entries

    def lookup(self, folder: str, name: str) -> Optional[MappingEntry]:
        """Return the mapping entry for a quantity, or None when unmapped"""
        return self._entries.get((folder, name))

    def keys(self) -> Iterable[Tuple[str, str]]:
        return self._entries.keys()

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> 'CategoryMapping':
        """Build a mapping from a DataFrame with MAPPING_COLUMNS"""
        entries = {}
        for row in df.itertuples(index=False):
            entries[(row.quantityFolder, row.quantityName)] = MappingEntry(
                corporate_source=row.corporateSource,
                canonical_category_long=row.canonicalCategoryLong,
                include_in_short_list=parse_bool(row.includeInShortList),
                canonical_category=row.canonicalCategory,
                canonical_units=row.canonicalUnits,
            )
        return cls(entries)

    def to_frame(self) -> pd.DataFrame:
        """Flatten the mapping back into a joinable DataFrame"""
        rows = [
            {
                'quantityFolder': folder,
                'quantityName': name,
                'corporateSource': entry.corporate_source,
                'canonicalCategoryLong': entry.canonical_category_long,
                'includeInShortList': entry.include_in_short_list,
                'canonicalCategory': entry.canonical_category,
                'canonicalUnits': entry.canonical_units,
            }
            for (folder, name), entry in self._entries.items()
        ]
        return pd.DataFrame(rows, columns=MAPPING_COLUMNS)
