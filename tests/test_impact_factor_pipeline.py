"""End-to-end tests for the impact factor pipeline."""

from datetime import date

import pandas as pd
import pytest

from fixture_data import ACID, GWP_A, GWP_B, build_config, write_inputs
from src.errors import (
    CategoryJoinError, IntegrityViolationError, MalformedIdentifierError, VariantConflictError
)
from src.loaders.impact_factor_db_loader import ImpactFactorDatabaseLoader
from src.models.base import DatabaseManager
from src.models.impact_models import FINAL_COLUMNS, KEY_COLUMNS
from src.pipelines.impact_factor_pipeline import ImpactFactorPipeline, run_impact_factor_pipeline

EXPORT_DATE = date(2026, 3, 31)
PROCESSING_DATE = date(2026, 4, 1)


def _factor(df, material, stage, disposition, category):
    rows = df[(df['material'] == material) & (df['lifeCycleStage'] == stage)
              & (df['disposition'] == disposition) & (df['impactCategory'] == category)]
    assert len(rows) == 1
    return rows['impactFactor'].iloc[0]


@pytest.fixture
def pipeline(mapping, mass_profile, config):
    return ImpactFactorPipeline(mapping, mass_profile, config)


@pytest.fixture
def result(pipeline, raw_exports):
    return pipeline.run(*raw_exports, EXPORT_DATE, PROCESSING_DATE)


class TestPipelineRun:
    """Tests for the in-memory pipeline run."""

    def test_final_shape(self, result):
        impact_factors = result.impact_factors
        assert list(impact_factors.columns) == FINAL_COLUMNS
        assert len(impact_factors) == 72
        assert set(impact_factors['impactCategory']) == {GWP_A, GWP_B, ACID}
        assert impact_factors.groupby('material').size().to_dict() == {
            'Glass': 21, 'Nonrecyclables': 9, 'Other': 21, 'Wood': 21
        }

    def test_keys_are_unique(self, result):
        assert not result.impact_factors.duplicated(KEY_COLUMNS).any()

    def test_production_consolidated(self, result):
        df = result.impact_factors
        assert _factor(df, 'Wood', 'production', 'production', GWP_A) == 12.0
        assert _factor(df, 'Wood', 'production', 'production', GWP_B) == 10.0
        assert _factor(df, 'Wood', 'production', 'production', ACID) == 1.5
        assert 'production_transport' not in set(df['disposition'])

    def test_transport_reallocated(self, result):
        df = result.impact_factors
        assert _factor(df, 'Wood', 'endOfLifeTransport', 'recyclingGeneric', GWP_A) == 50.0
        assert _factor(df, 'Wood', 'endOfLife', 'recyclingGeneric', GWP_A) == -10.0
        assert _factor(df, 'Glass', 'endOfLifeTransport', 'recyclingGeneric', GWP_A) == 30.0
        assert _factor(df, 'Glass', 'endOfLife', 'recyclingGeneric', GWP_A) == 7.0
        assert _factor(df, 'Glass', 'endOfLifeTransport', 'recyclingAggregate', GWP_A) == 10.0

    def test_implied_miles(self, result):
        df = result.impact_factors
        aggregate = df[(df['disposition'] == 'recyclingAggregate')
                       & (df['lifeCycleStage'] == 'endOfLifeTransport')]
        assert (aggregate['impliedMiles'] == 5.0).all()
        assert (df.drop(aggregate.index)['impliedMiles'] == 20.0).all()

    def test_gap_production_imputed(self, result):
        df = result.impact_factors
        assert _factor(df, 'Nonrecyclables', 'production', 'production', GWP_A) == pytest.approx(18.0)
        assert _factor(df, 'Nonrecyclables', 'production', 'production', GWP_B) == pytest.approx(17.5)
        assert _factor(df, 'Nonrecyclables', 'production', 'production', ACID) == pytest.approx(1.875)

    def test_other_material_synthesized(self, result):
        df = result.impact_factors
        assert _factor(df, 'Other', 'endOfLife', 'landfilling', GWP_A) == pytest.approx(950.0 / 450.0)
        assert _factor(df, 'Other', 'production', 'production', GWP_A) == pytest.approx(18.0)
        assert _factor(df, 'Other', 'endOfLifeTransport', 'recyclingGeneric', GWP_A) == pytest.approx(35.0)

    def test_out_of_scope_dropped(self, result):
        assert 'reuse' not in set(result.impact_factors['disposition'])

    def test_provenance(self, result):
        df = result.impact_factors
        assert (df['exportDate'] == pd.Timestamp(EXPORT_DATE)).all()
        assert (df['processingDate'] == pd.Timestamp(PROCESSING_DATE)).all()

    def test_availability_matrix(self, result):
        matrix = result.availability_matrix
        assert list(matrix.columns) == [
            'material', 'combustion', 'landfilling', 'production', 'recyclingAggregate', 'recyclingGeneric'
        ]
        assert matrix['material'].tolist() == ['Glass', 'Nonrecyclables', 'Other', 'Wood']
        nonrecyclables = matrix.set_index('material').loc['Nonrecyclables']
        assert nonrecyclables.to_dict() == {
            'combustion': False, 'landfilling': True, 'production': True,
            'recyclingAggregate': False, 'recyclingGeneric': False,
        }

    def test_stage_statistics(self, result):
        assert list(result.stages) == ['ingest', 'parse', 'reconcile', 'restructure', 'finalize']
        assert result.stages['finalize']['rows'] == 72

    def test_rerun_is_identical(self, pipeline, raw_exports, result):
        again = pipeline.run(*raw_exports, EXPORT_DATE, PROCESSING_DATE)
        pd.testing.assert_frame_equal(result.impact_factors, again.impact_factors)
        pd.testing.assert_frame_equal(result.availability_matrix, again.availability_matrix)

    def test_deprecated_category_removed(self, mapping, mass_profile, raw_exports):
        config = build_config(deprecated_categories=(GWP_B,))
        result = ImpactFactorPipeline(mapping, mass_profile, config).run(
            *raw_exports, EXPORT_DATE, PROCESSING_DATE)
        assert len(result.impact_factors) == 48
        assert GWP_B not in set(result.impact_factors['impactCategory'])

    def test_injected_inputs_not_modified(self, pipeline, raw_exports, mass_profile):
        raw_a = raw_exports[0].copy()
        profile = mass_profile.copy()
        pipeline.run(*raw_exports, EXPORT_DATE, PROCESSING_DATE)
        pd.testing.assert_frame_equal(raw_exports[0], raw_a)
        pd.testing.assert_series_equal(pipeline.mass_profile, profile)


class TestPipelineFailures:
    """Fatal input errors stop the batch."""

    @staticmethod
    def _set_variant_b(raw_b, identifier, quantity, value):
        raw_b = raw_b.copy()
        row = (raw_b['Object'] == identifier) & (raw_b['Quantity'] == quantity) & (raw_b['Scope'] == 'Total')
        raw_b.loc[row, 'Value'] = value
        return raw_b

    def test_variants_disagree_on_production(self, pipeline, raw_exports):
        raw_a, raw_b = raw_exports
        raw_b = self._set_variant_b(raw_b, 'Wood_production_production', 'Acidification', 1.5)
        with pytest.raises(VariantConflictError) as excinfo:
            pipeline.run(raw_a, raw_b, EXPORT_DATE, PROCESSING_DATE)
        assert [(key['material'], key['disposition'], key['impactCategory'])
                for key in excinfo.value.duplicate_keys] == [('Wood', 'production', ACID)]

    def test_variants_disagree_on_transport(self, pipeline, raw_exports):
        raw_a, raw_b = raw_exports
        raw_b = self._set_variant_b(raw_b, 'Wood_endOfLife_landfilling_transport', 'Acidification', 0.9)
        with pytest.raises(VariantConflictError) as excinfo:
            pipeline.run(raw_a, raw_b, EXPORT_DATE, PROCESSING_DATE)
        assert [key['disposition'] for key in excinfo.value.duplicate_keys] == ['landfilling_transport']

    def test_variant_conflict_is_a_pipeline_error(self, pipeline, raw_exports):
        raw_a, raw_b = raw_exports
        raw_b = self._set_variant_b(raw_b, 'Glass_endOfLife_landfilling', 'Acidification', 0.4)
        with pytest.raises(IntegrityViolationError):
            pipeline.run(raw_a, raw_b, EXPORT_DATE, PROCESSING_DATE)

    def test_unmapped_quantity(self, pipeline, raw_exports):
        raw_a, raw_b = (df.copy() for df in raw_exports)
        for df in (raw_a, raw_b):
            df.loc[0, 'Quantity'] = 'Land use'
        with pytest.raises(CategoryJoinError):
            pipeline.run(raw_a, raw_b, EXPORT_DATE, PROCESSING_DATE)

    def test_malformed_identifier(self, pipeline, raw_exports):
        raw_a, raw_b = (df.copy() for df in raw_exports)
        for df in (raw_a, raw_b):
            df.loc[0, 'Object'] = 'Wood'
        with pytest.raises(MalformedIdentifierError):
            pipeline.run(raw_a, raw_b, EXPORT_DATE, PROCESSING_DATE)

    def test_duplicated_record_fails_integrity(self, pipeline, raw_exports):
        raw_a, raw_b = raw_exports
        # Wood landfilling acidification twice with different values
        extra = raw_a.iloc[[5]].copy()
        extra['Value'] = 123.0
        raw_a = pd.concat([raw_a, extra], ignore_index=True)
        raw_b = pd.concat([raw_b, raw_b.iloc[[5]]], ignore_index=True)
        with pytest.raises(IntegrityViolationError):
            pipeline.run(raw_a, raw_b, EXPORT_DATE, PROCESSING_DATE)


class TestPipelineOutputs:
    """Tests for reading inputs from disk and writing outputs."""

    def test_run_from_files(self, tmp_path, config):
        inputs = write_inputs(tmp_path)
        output_dir = tmp_path / 'output'
        result = run_impact_factor_pipeline(inputs, config, PROCESSING_DATE, output_dir=str(output_dir))

        assert len(result.impact_factors) == 72
        assert (output_dir / 'impact_factors.csv').exists()
        assert (output_dir / 'impact_factors.pkl').exists()
        assert (output_dir / 'availability_matrix.csv').exists()
        assert len(list(output_dir.glob('pipeline_summary_*.csv'))) == 1
        assert result.impact_factors['exportDate'].iloc[0] == pd.Timestamp(EXPORT_DATE)

    def test_database_output(self, tmp_path, pipeline, result):
        db_manager = DatabaseManager(f"sqlite:///{tmp_path / 'impact.db'}")
        outputs = pipeline.write_outputs(result, save_files=False, save_db=True, db_manager=db_manager)
        assert outputs['database']['records_processed'] == 72

        pipeline.write_outputs(result, save_files=False, save_db=True, db_manager=db_manager)
        with ImpactFactorDatabaseLoader(db_manager) as loader:
            stored = loader.read_impact_factors()
        assert len(stored) == 72
