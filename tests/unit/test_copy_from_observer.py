"""Unit tests for tubs_etl.copy_from_observer (orchestrator and CLI)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from tubs_etl.copy_from_observer import main, run_copy
from tubs_etl.models import GearType, Outcome, TransformResult
from tubs_etl.shared import ParseError, RejectWriter
from tubs_etl.transform import TripTransformer


class FlakyTransformer(TripTransformer):
    """Raises for one chosen trip id, converts the rest normally."""

    def __init__(self, repo, failing_id: int, clock):
        super().__init__(repo, "TubsTripProcessor", clock)
        self.failing_id = failing_id

    def transform(self, source):
        if source is not None and source.trip_id == self.failing_id:
            raise RuntimeError(f"cannot convert trip {source.trip_id}")
        return super().transform(source)


@pytest.fixture
def three_trips(source_repo, make_trip):
    for trip_id in (101, 102, 103):
        source_repo.add(make_trip(trip_id=trip_id))
    return source_repo


# ---------------------------------------------------------------------------
# run_copy
# ---------------------------------------------------------------------------

class TestRunCopy:
    def test_copies_every_candidate(self, run_config, three_trips, target_repo, clock):
        counters = run_copy(run_config, three_trips, target_repo, clock=clock)
        assert counters.ids_read == 3
        assert counters.trips_copied == 3
        assert counters.status_rows_written == 3
        assert [r.status for r in target_repo.status_rows] == ["S", "S", "S"]
        assert [r.trip_id for r in target_repo.status_rows] == [1001, 1002, 1003]

    def test_failure_is_isolated(self, run_config, three_trips, target_repo, clock):
        transformer = FlakyTransformer(target_repo, failing_id=102, clock=clock)
        counters = run_copy(run_config, three_trips, target_repo,
                            transformer=transformer, clock=clock)
        rows = target_repo.status_rows
        assert [(r.source_id, r.status) for r in rows] == [("101", "S"), ("102", "F"), ("103", "S")]
        assert rows[1].trip_id is None
        assert rows[1].comments.startswith("Error summary: {cannot convert trip 102}")
        assert counters.trips_copied == 2
        assert counters.trips_failed == 1
        assert counters.warnings == ["trip 102: cannot convert trip 102"]

    def test_second_run_is_noop(self, run_config, three_trips, target_repo, clock):
        run_copy(run_config, three_trips, target_repo, clock=clock)
        three_trips.fetch_calls = 0
        counters = run_copy(run_config, three_trips, target_repo, clock=clock)
        assert counters.ids_skipped_existing == 3
        assert counters.trips_copied == 0
        assert three_trips.fetch_calls == 0
        assert len(target_repo.trips) == 3
        assert len(target_repo.status_rows) == 3

    def test_status_write_failure_does_not_stop_run(self, run_config, three_trips,
                                                     target_repo, clock, tmp_path):
        target_repo.status_save_failures["102"] = 2
        rejects = RejectWriter(tmp_path / "rejects.csv")
        checkpoint = MagicMock()
        counters = run_copy(run_config, three_trips, target_repo, rejects=rejects,
                            checkpoint=checkpoint, clock=clock)
        rejects.close()
        assert [(r.source_id, r.status) for r in target_repo.status_rows] == [
            ("101", "S"), ("103", "S"),
        ]
        assert counters.trips_copied == 2
        assert counters.trips_failed == 1
        assert counters.status_rows_written == 2
        assert checkpoint.call_count == 3
        assert "trip 102: status not recorded: status table locked" in counters.warnings
        assert "102" in (tmp_path / "rejects.csv").read_text(encoding="utf-8")

    def test_trip_rolled_back_when_success_status_fails(self, run_config, source_repo,
                                                        target_repo, make_trip, clock):
        source_repo.add(make_trip(trip_id=101))
        target_repo.status_save_failures["101"] = 1
        counters = run_copy(run_config, source_repo, target_repo, clock=clock)
        assert target_repo.trips == []
        assert [r.status for r in target_repo.status_rows] == ["F"]
        assert counters.trips_copied == 0
        assert counters.trips_failed == 1

        counters = run_copy(run_config, source_repo, target_repo, clock=clock)
        assert counters.trips_copied == 1
        assert len(target_repo.trips) == 1
        assert [r.status for r in target_repo.status_rows] == ["F", "S"]

    def test_failed_trip_retried_on_next_run(self, run_config, three_trips, target_repo, clock):
        target_repo.save_trip_error = RuntimeError("deadlock")
        run_copy(run_config, three_trips, target_repo, clock=clock)
        target_repo.save_trip_error = None
        counters = run_copy(run_config, three_trips, target_repo, clock=clock)
        assert counters.trips_copied == 3
        assert len(target_repo.status_rows) == 6

    def test_long_line_recorded_as_not_implemented(self, run_config, source_repo,
                                                   target_repo, make_trip, clock):
        source_repo.add(make_trip(trip_id=600, gear=GearType.LONG_LINE))
        counters = run_copy(run_config, source_repo, target_repo, clock=clock)
        assert counters.trips_not_implemented == 1
        row = target_repo.status_rows[0]
        assert row.status == "F"
        assert row.comments.startswith("Skipped: ")
        assert target_repo.trips == []

    def test_transform_not_implemented_recorded(self, run_config, three_trips,
                                                target_repo, clock):
        transformer = MagicMock()
        transformer.transform.side_effect = lambda trip: TransformResult.not_implemented(
            None, f"no conversion for trip {trip.trip_id}"
        )
        counters = run_copy(run_config, three_trips, target_repo,
                            transformer=transformer, clock=clock)
        assert counters.trips_not_implemented == 3
        assert target_repo.status_rows[0].comments == "Skipped: no conversion for trip 101"

    def test_unknown_gear_skipped(self, run_config, source_repo, target_repo, make_trip, clock):
        source_repo.add(make_trip(trip_id=700), gear_code="P")
        counters = run_copy(run_config, source_repo, target_repo, clock=clock)
        assert counters.trips_skipped == 1
        assert target_repo.status_rows[0].status == "F"

    def test_parse_error_aborts_run(self, run_config, source_repo, target_repo, clock):
        source_repo.candidate_ids = ["abc", "101"]
        with pytest.raises(ParseError):
            run_copy(run_config, source_repo, target_repo, clock=clock)
        assert target_repo.status_rows == []

    def test_rejects_written_for_failures(self, run_config, three_trips, target_repo,
                                          clock, tmp_path):
        rejects = RejectWriter(tmp_path / "rejects.csv")
        transformer = FlakyTransformer(target_repo, failing_id=103, clock=clock)
        run_copy(run_config, three_trips, target_repo, transformer=transformer,
                 rejects=rejects, clock=clock)
        rejects.close()
        text = (tmp_path / "rejects.csv").read_text(encoding="utf-8")
        assert "103" in text
        assert "cannot convert trip 103" in text

    def test_checkpoint_after_each_attempt(self, run_config, three_trips, target_repo, clock):
        checkpoint = MagicMock()
        run_copy(run_config, three_trips, target_repo, checkpoint=checkpoint, clock=clock)
        assert checkpoint.call_count == 3

    def test_limit_passed_to_source(self, run_config, three_trips, target_repo, clock):
        counters = run_copy(run_config.with_overrides(limit=2), three_trips, target_repo,
                            clock=clock)
        assert counters.ids_read == 2

    def test_status_audit_uses_entered_by(self, run_config, three_trips, target_repo, clock):
        run_copy(run_config, three_trips, target_repo, clock=clock)
        audit = target_repo.status_rows[0].audit
        assert audit.entered_by == "TubsTripProcessor"

    def test_copied_trip_contents(self, run_config, three_trips, target_repo, clock):
        run_copy(run_config, three_trips, target_repo, clock=clock)
        trip = target_repo.trips[0]
        assert trip.gear is GearType.PURSE_SEINE
        assert trip.days[0].activities[0].fishing_set.set_number == 1


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestCli:
    @pytest.fixture
    def wired(self, three_trips, target_repo, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        conn = MagicMock()
        with patch("tubs_etl.copy_from_observer.psycopg.connect", return_value=conn), \
             patch("tubs_etl.copy_from_observer.ObserverRepository", return_value=three_trips), \
             patch("tubs_etl.copy_from_observer.TubsRepository", return_value=target_repo):
            yield conn

    def test_real_run_commits_and_reports(self, wired, target_repo, tmp_path):
        result = CliRunner().invoke(main, [
            "--source-dsn", "dbname=observer", "--target-dsn", "dbname=tubs",
            "--run-id", "run-1",
        ])
        assert result.exit_code == 0, result.output
        assert "[run-1] Starting copy_from_observer run (dry_run=False)" in result.output
        assert "copied=3" in result.output
        assert wired.commit.called
        assert not wired.rollback.called
        report = json.loads((tmp_path / "artifacts" / "reports" / "run-1.json").read_text())
        assert report["counters"]["trips_copied"] == 3
        assert report["dry_run"] is False

    def test_dry_run_rolls_back(self, wired, tmp_path):
        result = CliRunner().invoke(main, [
            "--source-dsn", "x", "--target-dsn", "y", "--run-id", "run-2", "--dry-run",
        ])
        assert result.exit_code == 0, result.output
        assert wired.rollback.called
        assert not wired.commit.called
        assert "DRY RUN" in result.output

    def test_dsn_from_environment(self, wired):
        result = CliRunner().invoke(
            main, ["--run-id", "run-3"],
            env={"OBSERVER_DSN": "dbname=observer", "TUBS_DSN": "dbname=tubs"},
        )
        assert result.exit_code == 0, result.output

    def test_limit_override(self, wired, target_repo):
        result = CliRunner().invoke(main, [
            "--source-dsn", "x", "--target-dsn", "y", "--run-id", "run-4", "--limit", "1",
        ])
        assert result.exit_code == 0, result.output
        assert len(target_repo.trips) == 1

    def test_invalid_year_range_exits(self, wired):
        result = CliRunner().invoke(main, [
            "--source-dsn", "x", "--target-dsn", "y", "--run-id", "run-5",
            "--year-start", "2001", "--year-end", "2000",
        ])
        assert result.exit_code == 1
        assert "FATAL" in result.output

    def test_parse_error_exits_non_zero(self, wired, three_trips):
        three_trips.candidate_ids = ["bad-id"]
        result = CliRunner().invoke(main, [
            "--source-dsn", "x", "--target-dsn", "y", "--run-id", "run-6",
        ])
        assert result.exit_code == 1
        assert wired.rollback.called
