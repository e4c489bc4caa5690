"""tubs_etl.copy_from_observer

Copy Observer trips into TUBS, one trip at a time.

Per candidate id: dedup against import_status → load the Observer aggregate →
transform → save the trip graph → write an import_status row.  A failure on one
trip is recorded and the run moves on; a non-numeric source id (ParseError)
aborts the run.

Usage:
    tubs-copy-from-observer --source-dsn ... --target-dsn ... [--dry-run]
"""

from __future__ import annotations

import logging
import sys
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable

import click
import psycopg

from tubs_etl.config import RunConfig, RunConfigValidationError, load_run_config
from tubs_etl.dedup import check_exists
from tubs_etl.models import Outcome
from tubs_etl.repositories import (
    ObserverRepository,
    SourceRepository,
    TargetRepository,
    TubsRepository,
)
from tubs_etl.shared import (
    Clock,
    ParseError,
    RejectWriter,
    RunCounters,
    audit_entry,
    write_run_report,
)
from tubs_etl.source_fetch import fetch_source_trip
from tubs_etl.status import record_status
from tubs_etl.transform import TripTransformer

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

def run_copy(
    config: RunConfig,
    source_repo: SourceRepository,
    target_repo: TargetRepository,
    *,
    transformer: TripTransformer | None = None,
    counters: RunCounters | None = None,
    rejects: RejectWriter | None = None,
    checkpoint: Callable[[], None] | None = None,
    clock: Clock = datetime.now,
) -> RunCounters:
    """Copy every candidate trip selected by *config*; return the run counters."""
    counters = counters or RunCounters()
    transformer = transformer or TripTransformer(target_repo, config.entered_by, clock)

    ids = source_repo.list_candidate_ids(
        config.gear_code, config.limit, config.year_start, config.year_end
    )
    log.info("%d candidate trips for gear %s", len(ids), config.gear_code)

    for raw_id in ids:
        counters.ids_read += 1
        source_id = str(raw_id)
        try:
            decision = check_exists(source_id, config, target_repo)
            if not decision.should_proceed:
                counters.ids_skipped_existing += 1
                continue
            _copy_one(source_id, config, source_repo, target_repo, transformer,
                      counters, clock)
        except ParseError:
            raise
        except Exception as exc:
            log.exception("trip %s failed", source_id)
            counters.trips_failed += 1
            counters.warnings.append(f"trip {source_id}: {exc}")
            if rejects is not None:
                rejects.write({"source_id": source_id}, str(exc))
            _record_failure(source_id, exc, config, target_repo, counters, clock)
        if checkpoint is not None:
            checkpoint()

    return counters


def _record_failure(
    source_id: str,
    exc: Exception,
    config: RunConfig,
    target_repo: TargetRepository,
    counters: RunCounters,
    clock: Clock,
) -> None:
    try:
        record_status(
            target_repo, source_id, config.source_name,
            audit_entry(config.entered_by, clock), error=exc,
        )
    except Exception as status_exc:
        log.exception("trip %s: failure status not recorded", source_id)
        counters.warnings.append(f"trip {source_id}: status not recorded: {status_exc}")
        return
    counters.status_rows_written += 1


def _copy_one(
    source_id: str,
    config: RunConfig,
    source_repo: SourceRepository,
    target_repo: TargetRepository,
    transformer: TripTransformer,
    counters: RunCounters,
    clock: Clock,
) -> None:
    def status(**kwargs) -> None:
        record_status(
            target_repo, source_id, config.source_name,
            audit_entry(config.entered_by, clock), **kwargs,
        )
        counters.status_rows_written += 1

    fetched = fetch_source_trip(source_id, source_repo)
    if fetched.outcome is Outcome.NOT_IMPLEMENTED:
        counters.trips_not_implemented += 1
        status(skip_reason=fetched.reason)
        return
    if fetched.outcome is not Outcome.FETCHED:
        log.info("trip %s skipped: %s", source_id, fetched.reason)
        counters.trips_skipped += 1
        status(skip_reason=fetched.reason)
        return

    result = transformer.transform(fetched.trip)
    if result.outcome is Outcome.NOT_IMPLEMENTED:
        counters.trips_not_implemented += 1
        status(skip_reason=result.reason)
        return
    if result.outcome is not Outcome.CONVERTED:
        counters.trips_skipped += 1
        status(skip_reason=result.reason)
        return

    # trip graph and success row persist together
    with target_repo.atomic():
        trip_id = target_repo.save_trip(result.trip)
        status(trip_id=trip_id)
    log.info("trip %s copied as TUBS trip %s", source_id, trip_id)
    counters.trips_copied += 1


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

@click.command()
@click.option("--source-dsn", envvar="OBSERVER_DSN", required=True,
              help="PostgreSQL DSN of the Observer database")
@click.option("--target-dsn", envvar="TUBS_DSN", required=True,
              help="PostgreSQL DSN of the TUBS database")
@click.option("--config", "config_path", default=None,
              type=click.Path(exists=True, dir_okay=False),
              help="Run configuration YAML")
@click.option("--gear-code", default=None, type=click.Choice(["S", "L"]))
@click.option("--limit", default=None, type=int, help="Maximum trips to copy")
@click.option("--year-start", default=None, type=int)
@click.option("--year-end", default=None, type=int)
@click.option("--source-name", default=None, help="Source system name in import_status")
@click.option("--rejects-path", default=None, type=click.Path(),
              help="CSV for failed trips (default: ./artifacts/rejects/<run_id>.csv)")
@click.option("--dry-run", is_flag=True, default=False)
@click.option("--run-id", default=None, help="Override UUID for log correlation")
@click.option("--verbose", is_flag=True, default=False, help="Log pipeline detail to stderr")
def main(
    source_dsn: str,
    target_dsn: str,
    config_path: str | None,
    gear_code: str | None,
    limit: int | None,
    year_start: int | None,
    year_end: int | None,
    source_name: str | None,
    rejects_path: str | None,
    dry_run: bool,
    run_id: str | None,
    verbose: bool,
) -> None:
    """Copy Observer purse-seine trips into TUBS."""
    run_id = run_id or str(uuid.uuid4())
    started_at = datetime.utcnow().isoformat()

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        config = load_run_config(Path(config_path)) if config_path else RunConfig()
        config = config.with_overrides(
            gear_code=gear_code,
            limit=limit,
            year_start=year_start,
            year_end=year_end,
            source_name=source_name,
        )
    except RunConfigValidationError as exc:
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
        sys.exit(1)

    click.echo(f"[{run_id}] Starting copy_from_observer run (dry_run={dry_run})")
    click.echo(
        f"[{run_id}] gear={config.gear_code} years={config.year_start}-{config.year_end} "
        f"limit={config.limit} source_name={config.source_name!r}"
    )

    counters = RunCounters()
    rejects = RejectWriter(
        Path(rejects_path) if rejects_path else Path(f"./artifacts/rejects/{run_id}.csv")
    )
    source_conn = psycopg.connect(source_dsn, autocommit=True)
    target_conn = psycopg.connect(target_dsn, autocommit=False)
    fatal: Exception | None = None
    try:
        run_copy(
            config,
            ObserverRepository(source_conn),
            TubsRepository(target_conn),
            counters=counters,
            rejects=rejects,
            checkpoint=None if dry_run else target_conn.commit,
        )
    except ParseError as exc:
        fatal = exc
        click.echo(f"[{run_id}] FATAL: {exc}", err=True)
    finally:
        if dry_run or fatal is not None:
            target_conn.rollback()
        else:
            target_conn.commit()
        target_conn.close()
        source_conn.close()
        rejects.close()

    if dry_run:
        click.echo(f"[{run_id}] DRY RUN — rolled back.")
    click.echo(
        f"[{run_id}] Done: read={counters.ids_read} "
        f"already_imported={counters.ids_skipped_existing} "
        f"copied={counters.trips_copied} skipped={counters.trips_skipped} "
        f"not_implemented={counters.trips_not_implemented} "
        f"failed={counters.trips_failed}"
    )
    report_path = write_run_report(
        run_id, started_at, dry_run, config.to_dict(), counters
    )
    click.echo(f"[{run_id}] Run report: {report_path}")

    if fatal is not None:
        sys.exit(1)


if __name__ == "__main__":
    main()
