"""Tests for raw LCA export ingest and merge."""

from datetime import date

import pytest

from fixture_data import EXPORT_COLUMNS, build_raw_export
from src.collectors.lca_export_collector import (
    collect_lca_exports, merge_lca_exports, read_export_date, read_lca_export
)
from src.errors import ReferenceTableError, SchemaMismatchError


def _write_export(path, df, title='LCA results export'):
    """Write an export with one non-data title row above the header."""
    with open(path, 'w', newline='') as f:
        f.write(f"{title}\n")
        df.to_csv(f, index=False)


class TestMergeLcaExports:
    """Tests for tagging and stacking the two variants."""

    def test_rows_are_tagged_and_concatenated(self):
        df_a, df_b = build_raw_export(0), build_raw_export(1)
        merged = merge_lca_exports(df_a, df_b, 'VariantA', 'VariantB')

        assert len(merged) == len(df_a) + len(df_b)
        assert merged['sourceVariant'].value_counts().to_dict() == {
            'VariantA': len(df_a), 'VariantB': len(df_b)
        }

    def test_columns_renamed_to_internal_names(self):
        merged = merge_lca_exports(build_raw_export(0), build_raw_export(1), 'A', 'B')
        assert list(merged.columns) == [
            'identifier', 'scope', 'quantityFolder', 'quantityName', 'unit', 'value', 'sourceVariant'
        ]
        assert merged['value'].dtype == float

    def test_column_mismatch_raises(self):
        df_a = build_raw_export(0)
        df_b = build_raw_export(1).rename(columns={'Unit': 'Units'})
        with pytest.raises(SchemaMismatchError) as excinfo:
            merge_lca_exports(df_a, df_b, 'A', 'B')
        assert 'Units' in str(excinfo.value)
        assert excinfo.value.columns_b[-2] == 'Units'

    def test_column_order_mismatch_raises(self):
        df_a = build_raw_export(0)
        df_b = build_raw_export(1)[list(reversed(EXPORT_COLUMNS))]
        with pytest.raises(SchemaMismatchError):
            merge_lca_exports(df_a, df_b, 'A', 'B')

    def test_missing_required_column_raises(self):
        df_a = build_raw_export(0).drop(columns=['Scope'])
        df_b = build_raw_export(1).drop(columns=['Scope'])
        with pytest.raises(SchemaMismatchError, match='Scope'):
            merge_lca_exports(df_a, df_b, 'A', 'B')

    def test_identical_tags_raise(self):
        with pytest.raises(SchemaMismatchError):
            merge_lca_exports(build_raw_export(0), build_raw_export(1), 'A', 'A')

    def test_non_numeric_values_become_missing(self):
        df_a = build_raw_export(0)
        df_a['Value'] = df_a['Value'].astype(object)
        df_a.loc[0, 'Value'] = 'n/a'
        merged = merge_lca_exports(df_a, build_raw_export(1), 'A', 'B')
        assert merged['value'].isna().sum() == 1


class TestReadLcaExport:
    """Tests for reading export files from disk."""

    def test_header_rows_are_skipped(self, tmp_path):
        path = tmp_path / 'variant_a.csv'
        _write_export(path, build_raw_export(0))

        df = read_lca_export(path, header_rows=1)

        assert list(df.columns) == EXPORT_COLUMNS
        assert len(df) == len(build_raw_export(0))

    def test_collect_reads_and_merges_both_files(self, tmp_path):
        path_a, path_b = tmp_path / 'a.csv', tmp_path / 'b.csv'
        _write_export(path_a, build_raw_export(0))
        _write_export(path_b, build_raw_export(1))

        merged = collect_lca_exports(path_a, path_b, 'A', 'B', header_rows=1)

        assert set(merged['sourceVariant']) == {'A', 'B'}
        assert merged['value'].notna().all()


class TestReadExportDate:
    """Tests for the export date stamp."""

    def test_reads_date_below_header(self, tmp_path):
        path = tmp_path / 'date.csv'
        path.write_text('exportDate\n2023-04-17\n')
        assert read_export_date(path) == date(2023, 4, 17)

    def test_reads_headerless_date(self, tmp_path):
        path = tmp_path / 'date.csv'
        path.write_text('2022-11-01\n')
        assert read_export_date(path) == date(2022, 11, 1)

    def test_no_date_raises(self, tmp_path):
        path = tmp_path / 'date.csv'
        path.write_text('exportDate\nnot a date\n')
        with pytest.raises(ReferenceTableError):
            read_export_date(path)
