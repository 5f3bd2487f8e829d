"""
src/errors.py

Exception hierarchy for the impact factor pipeline. Every error carries the
rows or keys a human needs to act on it.
"""
from typing import Any, List, Optional, Sequence


class ImpactFactorPipelineError(Exception):
    """Base exception for all impact factor pipeline failures"""


class SchemaMismatchError(ImpactFactorPipelineError):
    """Raised when the two raw exports disagree on column structure"""

    def __init__(self, message: str, columns_a: Optional[Sequence[str]] = None,
                 columns_b: Optional[Sequence[str]] = None):
        super().__init__(message)
        self.columns_a = list(columns_a or [])
        self.columns_b = list(columns_b or [])


class MalformedIdentifierError(ImpactFactorPipelineError):
    """Raised when composite identifiers cannot be split into material, stage and disposition"""

    def __init__(self, identifiers: Sequence[str]):
        self.identifiers = list(identifiers)
        preview = ', '.join(repr(identifier) for identifier in self.identifiers[:10])
        super().__init__(
            f"{len(self.identifiers)} malformed identifier(s), expected "
            f"'<material>_<stage>_<disposition>': {preview}"
        )


class CategoryJoinError(ImpactFactorPipelineError):
    """Raised when parsed records have no entry in the category mapping"""

    def __init__(self, unmatched_keys: Sequence[Any], unmatched_rows: int):
        self.unmatched_keys = list(unmatched_keys)
        self.unmatched_rows = unmatched_rows
        preview = '; '.join(f"{folder} / {name}" for folder, name in self.unmatched_keys[:10])
        super().__init__(
            f"{unmatched_rows} record(s) across {len(self.unmatched_keys)} "
            f"(quantityFolder, quantityName) key(s) missing from the category mapping: {preview}"
        )


class IntegrityViolationError(ImpactFactorPipelineError):
    """Raised when the finished table has more than one record per key"""

    def __init__(self, duplicate_keys: List[dict]):
        self.duplicate_keys = duplicate_keys
        super().__init__(
            f"{len(duplicate_keys)} duplicate key group(s) in finished impact factors, "
            f"first: {duplicate_keys[:3]}"
        )


class ReferenceTableError(ImpactFactorPipelineError):
    """Raised when a reference table (mapping, mass profile, date stamp) is invalid"""


class VariantConflictError(IntegrityViolationError):
    """Raised when the two variants disagree on a category that should be identical across them"""

    def __init__(self, duplicate_keys: List[dict]):
        self.duplicate_keys = duplicate_keys
        ImpactFactorPipelineError.__init__(
            self,
            f"{len(duplicate_keys)} key(s) carry different values in the two variants "
            f"for a non-biogenic category, first: {duplicate_keys[:3]}"
        )
