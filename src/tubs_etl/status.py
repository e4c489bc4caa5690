"""tubs_etl.status

One import_status row per attempted source trip.
"""

from __future__ import annotations

import traceback

from tubs_etl.models import STATUS_FAILURE, STATUS_SUCCESS, AuditEntry, ImportStatusRecord
from tubs_etl.repositories import TargetRepository


def failure_comments(exc: BaseException) -> str:
    trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return f"Error summary: {{{exc}}}\nFull stack trace:\n{trace}"


def record_status(
    status_repo: TargetRepository,
    source_id: str,
    source_name: str,
    audit: AuditEntry,
    *,
    trip_id: int | None = None,
    error: BaseException | None = None,
    skip_reason: str | None = None,
) -> ImportStatusRecord:
    """Build and save the status row for one attempt.

    Success when *trip_id* is given and there is no error or skip reason;
    otherwise a failure row with the error trace or the skip reason.
    """
    record = ImportStatusRecord(source_id=source_id, source_name=source_name, audit=audit)
    if error is not None:
        record.comments = failure_comments(error)
    elif skip_reason is not None:
        record.comments = f"Skipped: {skip_reason}"
    elif trip_id is not None:
        record.status = STATUS_SUCCESS
        record.trip_id = trip_id
    else:
        record.status = STATUS_FAILURE
        record.comments = "Skipped: no trip was written"
    status_repo.save_import_status(record)
    return record
