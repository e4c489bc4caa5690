"""tubs_etl.source_fetch

Resolve a source trip id to its gear and load the full Observer aggregate.
"""

from __future__ import annotations

import logging

from tubs_etl.models import FetchResult, GearType
from tubs_etl.repositories import SourceRepository
from tubs_etl.shared import ParseError, require_trip_id

log = logging.getLogger(__name__)


def fetch_source_trip(source_id: str | None, source_repo: SourceRepository) -> FetchResult:
    """Load the source aggregate for *source_id*.

    Raises:
        ValidationError: null or blank id.
        ParseError: non-numeric id.  Callers let this abort the run.
    """
    require_trip_id(source_id)
    try:
        trip_id = int(source_id.strip())
    except ValueError as exc:
        raise ParseError(f"Source trip id {source_id!r} is not numeric") from exc

    try:
        gear_code = source_repo.fetch_gear_type(trip_id)
    except Exception as exc:
        log.debug("gear lookup for trip %s failed: %s", trip_id, exc)
        gear_code = None

    gear = GearType.from_code(gear_code)
    if gear is GearType.PURSE_SEINE:
        trip = source_repo.fetch_purse_seine_trip(trip_id)
        if trip is None:
            return FetchResult.skip(f"purse-seine trip {trip_id} not found")
        return FetchResult.fetched(trip)
    if gear is GearType.LONG_LINE:
        return FetchResult.not_implemented(
            f"long-line trip {trip_id} cannot be loaded yet"
        )
    return FetchResult.skip(f"unsupported gear {gear_code!r} for trip {trip_id}")
