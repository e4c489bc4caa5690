"""tubs_etl.dedup

Skip source trips that already have a successful import recorded for this
source system.  Failed attempts are retried.
"""

from __future__ import annotations

import logging

from tubs_etl.config import RunConfig
from tubs_etl.models import DedupDecision
from tubs_etl.repositories import TargetRepository
from tubs_etl.shared import require_trip_id

log = logging.getLogger(__name__)


def check_exists(
    source_id: str | None,
    config: RunConfig,
    status_repo: TargetRepository,
) -> DedupDecision:
    """Decide whether *source_id* still needs to be copied.

    Raises:
        ValidationError: when the id is null or blank.
    """
    require_trip_id(source_id)

    source_name = (config.source_name or "").strip()
    if not source_name:
        log.warning("source name is blank, skipping trip %s", source_id)
        return DedupDecision.skip()

    try:
        existing = status_repo.find_import_status(source_id, source_name)
    except Exception as exc:
        log.debug("import status lookup for %s failed: %s", source_id, exc)
        existing = None

    if existing is not None and existing.is_success:
        log.debug("trip %s already imported from %s", source_id, source_name)
        return DedupDecision.skip()
    return DedupDecision.proceed(source_id)
