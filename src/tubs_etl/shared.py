"""tubs_etl.shared

Shared utilities used across the copy pipeline.
Includes the exception taxonomy, RunCounters, RejectWriter, audit stamping,
and report-writing support.
"""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from tubs_etl.models import AuditEntry


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class TubsEtlError(Exception):
    """Base class for errors raised by the copy pipeline."""


class ValidationError(TubsEtlError, ValueError):
    """Raised when a source trip id is null or blank."""


class ParseError(TubsEtlError, ValueError):
    """Raised when a source trip id is not numeric.  Aborts the whole run."""


class ReconciliationError(TubsEtlError):
    """Raised when a shared reference entity could not be found or created."""

    def __init__(self, kind: str, key: Any, reason: str | None = None) -> None:
        self.kind = kind
        self.key = key
        self.reason = reason
        msg = f"unable to reconcile {kind} {key!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


def require_trip_id(source_id: str | None) -> str:
    """Return the id unchanged, or raise ValidationError when null/blank."""
    if source_id is None:
        raise ValidationError("Source trip id is null")
    if not source_id.strip():
        raise ValidationError("Source trip id is blank")
    return source_id


# ---------------------------------------------------------------------------
# Audit entries
# ---------------------------------------------------------------------------

Clock = Callable[[], datetime]


def audit_entry(entered_by: str, clock: Clock = datetime.now) -> AuditEntry:
    return AuditEntry(entered_by=entered_by, entered_at=clock())


# ---------------------------------------------------------------------------
# RejectWriter
# ---------------------------------------------------------------------------

class RejectWriter:
    """Lazy-open CSV writer for source trips that failed to copy."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh = None
        self._writer = None

    def write(self, row: dict[str, str], reason: str) -> None:
        if self._fh is None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._fh = open(self._path, "w", newline="", encoding="utf-8")
            fieldnames = list(row.keys()) + ["_reject_reason"]
            self._writer = csv.DictWriter(
                self._fh, fieldnames=fieldnames, extrasaction="ignore"
            )
            self._writer.writeheader()
        out = dict(row)
        out["_reject_reason"] = reason
        self._writer.writerow(out)
        self._fh.flush()

    def close(self) -> None:
        if self._fh:
            self._fh.close()


# ---------------------------------------------------------------------------
# RunCounters
# ---------------------------------------------------------------------------

@dataclass
class RunCounters:
    ids_read: int = 0
    ids_skipped_existing: int = 0
    trips_copied: int = 0
    trips_skipped: int = 0
    trips_not_implemented: int = 0
    trips_failed: int = 0
    status_rows_written: int = 0
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        d = {k: v for k, v in self.__dict__.items() if k != "warnings"}
        d["warnings"] = self.warnings[:50]
        return d


# ---------------------------------------------------------------------------
# Report writer
# ---------------------------------------------------------------------------

def write_run_report(
    run_id: str,
    started_at: str,
    dry_run: bool,
    run_config: dict[str, Any],
    counters: RunCounters,
    report_dir: Path = Path("./artifacts/reports"),
) -> Path:
    report = {
        "run_id": run_id,
        "mode": "copy_from_observer",
        "started_at": started_at,
        "finished_at": datetime.utcnow().isoformat(),
        "dry_run": dry_run,
        "config": run_config,
        "counters": counters.to_dict(),
    }
    report_path = report_dir / f"{run_id}.json"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report, indent=2, default=str))
    return report_path
