"""Tests for the sweep result collector."""

import json

import pandas as pd
import pytest

from fixtures.platforms import (
    LAYOUT,
    LR_PATH,
    RF_PATH,
    FakeSweepPlatform,
    make_child,
)
from orchestration.collection.collector import ResultCollector, collect_sweep_results
from orchestration.jobs.errors import ArtifactMissingError, ParseError, RetrievalError

EXPECTED_LEADING = ["parent_run_id", "child_run_id", *[column for column, _ in LAYOUT]]


def _collect(platform, config, **kwargs):
    return collect_sweep_results(platform, config, sweep_run_id="sweep_1", **kwargs)


class TestCollectRowCounts:
    """Row count and source tagging."""

    def test_two_children_produce_ten_rows(self, two_child_platform, collection_config):
        """Test 2 children x (3 lr + 2 rf) rows gives 10 rows."""
        result = _collect(two_child_platform, collection_config)

        table = result.table
        assert len(table) == 10
        assert (table["source"] == "lr_results").sum() == 6
        assert (table["source"] == "rf_result").sum() == 4
        assert table.groupby("child_run_id").size().to_dict() == {
            "trial_high": 5,
            "trial_low": 5,
        }

    def test_row_count_is_sum_of_artifact_rows(self, collection_config):
        """Test row count equals the sum of every child's lr and rf rows."""
        platform = FakeSweepPlatform(
            [
                make_child("a", metric=0.5, lr_rows=5, rf_rows=5),
                make_child("b", metric=0.6, lr_rows=1, rf_rows=4),
                make_child("c", metric=0.7, lr_rows=0, rf_rows=2),
            ]
        )

        result = _collect(platform, collection_config)

        assert len(result.table) == (5 + 5) + (1 + 4) + (0 + 2)
        assert result.report.row_count == len(result.table)

    def test_every_row_carries_parent_run_id(self, two_child_platform, collection_config):
        """Test rows are tagged with the parent sweep id."""
        result = _collect(two_child_platform, collection_config)

        assert set(result.table["parent_run_id"]) == {"sweep_1"}


class TestCollectOrdering:
    """Rank order, artifact order and file row order."""

    def test_best_child_first_when_maximizing(self, two_child_platform, collection_config):
        """Test the first row block belongs to the highest-metric child."""
        result = _collect(two_child_platform, collection_config)

        assert list(result.table["child_run_id"][:5]) == ["trial_high"] * 5
        assert list(result.table["child_run_id"][5:]) == ["trial_low"] * 5

    def test_best_child_first_when_minimizing(self, two_child_platform, make_collection_config):
        """Test ranking is ascending for a minimize goal."""
        config = make_collection_config(goal="minimize")

        result = _collect(two_child_platform, config)

        assert result.table["child_run_id"].iloc[0] == "trial_low"

    def test_lr_rows_precede_rf_rows_within_child(self, two_child_platform, collection_config):
        """Test lr rows come before rf rows and keep file order."""
        result = _collect(two_child_platform, collection_config)

        block = result.table[result.table["child_run_id"] == "trial_high"]
        assert list(block["source"]) == ["lr_results"] * 3 + ["rf_result"] * 2
        assert list(block["fold"]) == [0, 1, 2, 0, 1]

    def test_repeated_collection_is_identical(self, two_child_platform, collection_config):
        """Test two passes over the same inputs give the same table."""
        first = _collect(two_child_platform, collection_config).table
        second = _collect(two_child_platform, collection_config).table

        pd.testing.assert_frame_equal(first, second)

    def test_column_order(self, two_child_platform, collection_config):
        """Test ids and decoded params lead, metrics follow, source is last."""
        result = _collect(two_child_platform, collection_config)

        assert list(result.table.columns) == [
            *EXPECTED_LEADING,
            "fold",
            "roc_auc",
            "accuracy",
            "source",
        ]

    def test_decoded_params_attached_to_rows(self, two_child_platform, collection_config):
        """Test each child's rows carry that child's decoded arguments."""
        result = _collect(two_child_platform, collection_config)

        by_child = result.table.groupby("child_run_id")["imputation"].unique()
        assert list(by_child["trial_high"]) == ["knn"]
        assert list(by_child["trial_low"]) == ["median"]


class TestCollectPersistence:
    """Output files and upload."""

    def test_writes_table_and_report(self, two_child_platform, collection_config, output_dir):
        """Test the table and report are written to the output folder."""
        result = _collect(two_child_platform, collection_config)

        assert result.table_path == output_dir / "aggregated_results.csv"
        persisted = pd.read_csv(result.table_path)
        assert len(persisted) == 10
        assert list(persisted.columns) == list(result.table.columns)

        report = json.loads(result.report_path.read_text())
        assert report["succeeded"] == ["trial_high", "trial_low"]
        assert report["failed"] == {}
        assert report["row_count"] == 10

    def test_uploads_output_folder_once(self, two_child_platform, collection_config):
        """Test the folder is attached to the parent run under the remote name."""
        _collect(two_child_platform, collection_config)

        assert two_child_platform.uploads == [
            {
                "run_id": "sweep_1",
                "remote_name": "aggregated_results",
                "files": ["aggregated_results.csv", "collection_report.json"],
            }
        ]

    def test_no_upload_when_disabled(self, two_child_platform, collection_config):
        """Test upload=False keeps the results local."""
        _collect(two_child_platform, collection_config, upload=False)

        assert two_child_platform.uploads == []

    def test_no_children_writes_header_only_table(self, collection_config):
        """Test a sweep without children yields an empty table with id and param columns."""
        result = _collect(FakeSweepPlatform([]), collection_config)

        assert result.table.empty
        assert list(result.table.columns) == [*EXPECTED_LEADING, "source"]
        assert result.table_path.exists()


class TestScratchCleanup:
    """Scratch files never outlive the collection pass."""

    def test_scratch_root_empty_after_collect(self, two_child_platform, collection_config, scratch_root):
        """Test downloaded artifacts are removed after parsing."""
        _collect(two_child_platform, collection_config)

        assert len(two_child_platform.downloads) == 4
        assert all(not path.exists() for path in two_child_platform.downloads)
        assert list(scratch_root.iterdir()) == []

    def test_scratch_root_empty_after_missing_artifact(self, collection_config, scratch_root):
        """Test cleanup also happens when a child's rf artifact is absent."""
        platform = FakeSweepPlatform(
            [
                make_child("ok", metric=0.9),
                make_child("broken", metric=0.8, rf_rows=None),
            ]
        )

        _collect(platform, collection_config)

        assert list(scratch_root.iterdir()) == []

    def test_scratch_paths_unique_per_child_and_artifact(self, two_child_platform, collection_config):
        """Test no two downloads share a scratch directory."""
        _collect(two_child_platform, collection_config)

        parents = [path.parents[1] for path in two_child_platform.downloads]
        assert len(set(parents)) == len(parents)


class TestFailurePolicy:
    """Per-child isolation versus abort."""

    def test_skip_drops_whole_child_and_reports_it(self, collection_config):
        """Test a child missing its rf artifact contributes no rows at all."""
        platform = FakeSweepPlatform(
            [
                make_child("ok", metric=0.9),
                make_child("broken", metric=0.8, rf_rows=None),
            ]
        )

        result = _collect(platform, collection_config)

        assert set(result.table["child_run_id"]) == {"ok"}
        assert len(result.table) == 5
        assert result.report.succeeded == ["ok"]
        assert list(result.report.failed) == ["broken"]
        assert RF_PATH in result.report.failed["broken"]
        assert not result.report.complete

    def test_skip_continues_after_failed_child(self, collection_config):
        """Test children ranked after a failure are still collected."""
        platform = FakeSweepPlatform(
            [
                make_child("first", metric=0.9, lr_rows=None),
                make_child("second", metric=0.8),
            ]
        )

        result = _collect(platform, collection_config)

        assert result.report.succeeded == ["second"]
        assert len(result.table) == 5

    def test_abort_raises_and_discards_table(self, make_collection_config, output_dir):
        """Test abort policy propagates the error and leaves no table behind."""
        config = make_collection_config(on_child_error="abort")
        platform = FakeSweepPlatform(
            [
                make_child("ok", metric=0.9),
                make_child("broken", metric=0.8, rf_rows=None),
            ]
        )

        with pytest.raises(ArtifactMissingError):
            _collect(platform, config)

        assert not (output_dir / "aggregated_results.csv").exists()
        assert platform.uploads == []

    def test_abort_discards_table_on_transport_error(self, make_collection_config, output_dir):
        """Test a non-collection error under abort still leaves no table behind."""
        config = make_collection_config(on_child_error="abort")
        broken = make_child("broken", metric=0.8)
        broken.download_error = ConnectionError("connection reset by peer")
        platform = FakeSweepPlatform([make_child("ok", metric=0.9), broken])

        with pytest.raises(ConnectionError):
            _collect(platform, config)

        assert not (output_dir / "aggregated_results.csv").exists()
        assert not (output_dir / "collection_report.json").exists()
        assert platform.uploads == []

    def test_skip_keeps_collected_rows_on_transport_error(self, collection_config, output_dir):
        """Test an unexpected error propagates and the rows gathered so far stay on disk."""
        broken = make_child("broken", metric=0.8)
        broken.download_error = ConnectionError("connection reset by peer")
        platform = FakeSweepPlatform([make_child("ok", metric=0.9), broken])

        with pytest.raises(ConnectionError):
            _collect(platform, collection_config)

        persisted = pd.read_csv(output_dir / "aggregated_results.csv")
        assert set(persisted["child_run_id"]) == {"ok"}
        assert len(persisted) == 5
        assert platform.uploads == []

    def test_abort_leaves_no_report_from_previous_pass(self, make_collection_config, output_dir):
        """Test an aborted pass does not leave an earlier sweep's report behind."""
        config = make_collection_config(on_child_error="abort")
        _collect(FakeSweepPlatform([make_child("a", metric=0.9)]), config)
        assert (output_dir / "collection_report.json").exists()

        failing = FakeSweepPlatform([make_child("b", metric=0.9, rf_rows=None)])
        with pytest.raises(ArtifactMissingError):
            collect_sweep_results(failing, config, sweep_run_id="sweep_2")

        assert not (output_dir / "collection_report.json").exists()
        assert not (output_dir / "aggregated_results.csv").exists()

    def test_previous_outputs_replaced(self, collection_config, output_dir):
        _collect(FakeSweepPlatform([make_child("a", metric=0.9)]), collection_config)

        result = collect_sweep_results(
            FakeSweepPlatform([make_child("b", metric=0.7)]), collection_config, sweep_run_id="sweep_2"
        )

        persisted = pd.read_csv(result.table_path)
        report = json.loads(result.report_path.read_text())
        assert set(persisted["child_run_id"]) == {"b"}
        assert report["parent_run_id"] == "sweep_2"
        assert report["succeeded"] == ["b"]

    def test_listing_failure_always_aborts(self, two_child_platform, collection_config):
        """Test RetrievalError from listing is never swallowed."""
        two_child_platform.fail_listing = True

        with pytest.raises(RetrievalError):
            _collect(two_child_platform, collection_config)

        assert two_child_platform.uploads == []

    def test_unparsable_artifact_is_parse_error(self, make_collection_config):
        """Test an empty artifact file is reported as a parse failure."""
        config = make_collection_config(on_child_error="abort")
        child = make_child("empty", metric=0.5)
        child.artifacts[LR_PATH] = ""

        with pytest.raises(ParseError):
            _collect(FakeSweepPlatform([child]), config)

    def test_artifact_column_collision_is_parse_error(self, make_collection_config):
        """Test an artifact that already has a prefix column is rejected."""
        config = make_collection_config(on_child_error="abort")
        child = make_child("clash", metric=0.5)
        child.artifacts[LR_PATH] = "fold,child_run_id\n0,x\n"

        with pytest.raises(ParseError, match="child_run_id"):
            _collect(FakeSweepPlatform([child]), config)

    def test_artifact_source_column_is_parse_error(self, collection_config):
        """Test an artifact's own source column is rejected, not overwritten."""
        clash = make_child("clash", metric=0.9)
        clash.artifacts[LR_PATH] = "fold,source\n0,cv_holdout\n"
        platform = FakeSweepPlatform([clash, make_child("ok", metric=0.5)])

        result = _collect(platform, collection_config)

        assert "source" in result.report.failed["clash"]
        assert set(result.table["child_run_id"]) == {"ok"}


class TestArgumentDecoding:
    """Decode modes and the recorded argument layout."""

    def test_positional_mode_decodes_same_columns(self, two_child_platform, make_collection_config):
        """Test positional decoding yields the same table as named decoding."""
        named = _collect(two_child_platform, make_collection_config()).table
        positional = _collect(
            two_child_platform, make_collection_config(decode_mode="positional")
        ).table

        pd.testing.assert_frame_equal(named, positional)

    def test_layout_mismatch_fails_positional_mode(self, make_collection_config):
        """Test a sweep submitted with another layout cannot be decoded positionally."""
        platform = FakeSweepPlatform(
            [make_child("a", metric=0.5)],
            layout_tag=[["vcf_filename", "--vcf"]],
        )
        config = make_collection_config(decode_mode="positional")

        with pytest.raises(ParseError, match="argument layout"):
            _collect(platform, config)

    def test_layout_mismatch_only_warns_in_named_mode(self, collection_config):
        """Test named decoding tolerates a differing recorded layout."""
        platform = FakeSweepPlatform(
            [make_child("a", metric=0.5)],
            layout_tag=[["vcf_filename", "--vcf"]],
        )

        result = _collect(platform, collection_config)

        assert len(result.table) == 5

    def test_matching_layout_tag_accepted(self, make_collection_config):
        """Test the layout recorded at submission passes the check."""
        platform = FakeSweepPlatform(
            [make_child("a", metric=0.5)],
            layout_tag=[list(pair) for pair in LAYOUT],
        )
        config = make_collection_config(decode_mode="positional")

        result = _collect(platform, config)

        assert len(result.table) == 5


class TestResultCollector:
    """Collector construction helpers."""

    def test_sweep_run_uses_configured_objective(self, two_child_platform, collection_config):
        """Test sweep_run() builds a SweepRun from the config objective."""
        collector = ResultCollector(two_child_platform, collection_config)

        sweep_run = collector.sweep_run("sweep_9", experiment_id="exp")

        assert sweep_run.primary_metric == "mean_roc_auc"
        assert sweep_run.goal == "maximize"
        assert sweep_run.sort_order == "DESC"

    def test_output_dir_override(self, two_child_platform, collection_config, temp_dir):
        """Test an explicit output dir wins over the configured one."""
        override = temp_dir / "elsewhere"

        result = _collect(two_child_platform, collection_config, output_dir=override)

        assert result.table_path.parent == override
