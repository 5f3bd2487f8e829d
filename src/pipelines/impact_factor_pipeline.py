"""
src/pipelines/impact_factor_pipeline.py

Impact Factor Pipeline
Turns the paired biogenic-variant LCA exports into the finished impact factor
table used by the waste impact calculator
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd

from src.collectors.lca_export_collector import merge_lca_exports, read_export_date, read_lca_export
from src.collectors.reference_collector import load_category_mapping, load_mass_profile
from src.config import PipelineConfig
from src.errors import ImpactFactorPipelineError
from src.loaders.csv_loader import save_availability_matrix, save_impact_factors, save_summary_report
from src.loaders.impact_factor_db_loader import ImpactFactorDatabaseLoader
from src.models.base import DatabaseManager
from src.models.impact_models import CategoryMapping
from src.transformers.category_reconciler import reconcile_categories
from src.transformers.finalizer import finalize_impact_factors
from src.transformers.impact_restructurer import restructure_impacts
from src.transformers.record_parser import parse_records

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class PipelineInputs:
    """Paths to the external inputs of one pipeline run"""
    variant_a: PathLike
    variant_b: PathLike
    date_file: PathLike
    mapping: PathLike
    mass_profile: PathLike


@dataclass
class PipelineResult:
    """Finished tables plus per-stage row counts and timings"""
    impact_factors: pd.DataFrame
    availability_matrix: pd.DataFrame
    stages: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    outputs: Dict[str, Any] = field(default_factory=dict)


class ImpactFactorPipeline:
    """
    Single-pass batch pipeline for waste impact factors

    Stages:
    1. Ingest & merge the two biogenic-variant exports
    2. Parse identifiers and keep the aggregate scope
    3. Reconcile categories against the category mapping
    4. Restructure production and transport impacts, impute gaps
    5. Stamp, check integrity and sort

    The category mapping and mass profile are injected; the pipeline never
    modifies them.
    """

    def __init__(self, mapping: CategoryMapping, mass_profile: pd.Series,
                 config: Optional[PipelineConfig] = None):
        self.mapping = mapping
        self.mass_profile = mass_profile
        self.config = config or PipelineConfig()
        logger.info("ImpactFactorPipeline initialized")

    def _timed(self, stages: Dict[str, Dict[str, Any]], name: str, func, *args) -> pd.DataFrame:
        start = time.perf_counter()
        result = func(*args)
        stages[name] = {'rows': len(result), 'seconds': round(time.perf_counter() - start, 3)}
        logger.info(f"✓ {name}: {len(result)} rows")
        return result

    def run(self, raw_a: pd.DataFrame, raw_b: pd.DataFrame, export_date: date,
            processing_date: Optional[date] = None) -> PipelineResult:
        """
        Run stages 1-5 over two raw exports already read into DataFrames

        Args:
            raw_a: Variant A export
            raw_b: Variant B export
            export_date: Date the LCA data was exported
            processing_date: Date stamped as processing date, defaults to today

        Returns:
            PipelineResult with finished impact factors and availability matrix

        Raises:
            ImpactFactorPipelineError: On any schema, identifier, mapping or integrity failure
        """
        config = self.config
        tag_a, tag_b = config.variant_tags
        stages: Dict[str, Dict[str, Any]] = {}

        logger.info("🚀 Starting impact factor pipeline...")
        try:
            merged = self._timed(stages, 'ingest', merge_lca_exports, raw_a, raw_b, tag_a, tag_b)
            parsed = self._timed(stages, 'parse', parse_records, merged,
                                 config.aggregate_scope, config.identifier_delimiter)
            reconciled = self._timed(stages, 'reconcile', reconcile_categories, parsed, self.mapping, config)
            restructured = self._timed(stages, 'restructure', restructure_impacts,
                                       reconciled, self.mass_profile, config)

            start = time.perf_counter()
            impact_factors, availability = finalize_impact_factors(
                restructured, export_date, config.deprecated_categories, processing_date)
            stages['finalize'] = {'rows': len(impact_factors), 'seconds': round(time.perf_counter() - start, 3)}

        except ImpactFactorPipelineError as e:
            logger.error(f"❌ Pipeline failed: {e}")
            raise

        logger.info("✅ Impact factor pipeline completed successfully!")
        return PipelineResult(impact_factors, availability, stages)

    def write_outputs(self, result: PipelineResult, output_dir: Optional[str] = None,
                      save_files: bool = True, save_db: bool = False,
                      db_manager: Optional[DatabaseManager] = None) -> Dict[str, Any]:
        """Write finished tables to files and, optionally, the database"""
        outputs: Dict[str, Any] = {}

        if save_files:
            output_dir = output_dir or self.config.output_dir
            outputs.update(save_impact_factors(result.impact_factors, output_dir))
            outputs['availability_matrix'] = save_availability_matrix(result.availability_matrix, output_dir)
            outputs['summary'] = save_summary_report(result.stages, output_dir)

        if save_db:
            with ImpactFactorDatabaseLoader(db_manager) as loader:
                outputs['database'] = loader.load_dataframe(result.impact_factors)

        result.outputs = outputs
        return outputs


def run_impact_factor_pipeline(inputs: PipelineInputs, config: Optional[PipelineConfig] = None,
                               processing_date: Optional[date] = None, save_csv: bool = True,
                               save_db: bool = False, output_dir: Optional[str] = None) -> PipelineResult:
    """Convenience function: read every input from disk, run the pipeline, write outputs"""
    config = config or PipelineConfig.from_env()

    mapping = load_category_mapping(inputs.mapping)
    mass_profile = load_mass_profile(inputs.mass_profile)
    export_date = read_export_date(inputs.date_file)
    raw_a = read_lca_export(inputs.variant_a, config.header_rows)
    raw_b = read_lca_export(inputs.variant_b, config.header_rows)

    pipeline = ImpactFactorPipeline(mapping, mass_profile, config)
    result = pipeline.run(raw_a, raw_b, export_date, processing_date)

    pipeline.write_outputs(result, output_dir, save_files=save_csv, save_db=save_db)
    return result
