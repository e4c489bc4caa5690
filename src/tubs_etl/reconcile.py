"""tubs_etl.reconcile

Get-or-create for the reference entities a trip points at (observer, port,
vessel) and plain lookups for the code tables (sea state, condition, fate,
reference values).

Resolved entities are cached for the life of the reconciler, keyed by
(kind, natural key), so a run touches each reference row at most once.
Reconciliation is read, then write, then re-read: it assumes a single writer.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from tubs_etl.models import (
    AuditEntry,
    Condition,
    Fate,
    FieldStaff,
    Observer,
    ObserverPort,
    ObserverVessel,
    Port,
    ReconcileResult,
    ReferenceValue,
    SeaState,
    Vessel,
)
from tubs_etl.normalize import gear_type_for_vessel, trim
from tubs_etl.repositories import ReferenceRepository

log = logging.getLogger(__name__)

# Vessel "current status" assigned to every vessel created by the copy.
VESSEL_CURRENT_STATUS_ID = 101


class ReferenceReconciler:
    def __init__(
        self,
        repo: ReferenceRepository,
        audit_factory: Callable[[], AuditEntry],
    ) -> None:
        self._repo = repo
        self._audit = audit_factory
        self._cache: dict[tuple[str, Any], Any] = {}

    # -- get-or-create ------------------------------------------------------

    def observer(self, staff: FieldStaff | None) -> ReconcileResult | None:
        if staff is None:
            return None
        return self._get_or_create(
            "observer",
            staff.staff_code,
            self._repo.find_observer_by_staff_code,
            lambda: Observer(
                staff_code=staff.staff_code,
                first_name=staff.first_name,
                family_name=staff.last_name,
                nationality_country_code=staff.home_country,
            ),
            self._repo.save_observer,
        )

    def port(self, source: ObserverPort | None) -> ReconcileResult | None:
        if source is None:
            return None
        return self._get_or_create(
            "port",
            source.port_id,
            self._repo.find_port_by_id,
            lambda: Port(
                port_id=source.port_id,
                name=source.name,
                country_code=source.country_code,
            ),
            self._repo.save_port,
        )

    def vessel(self, source: ObserverVessel | None) -> ReconcileResult | None:
        if source is None:
            return None
        return self._get_or_create(
            "vessel",
            source.vessel_id,
            self._repo.find_vessel_by_id,
            lambda: Vessel(
                vessel_id=source.vessel_id,
                name=source.name,
                ffa_id=source.ffa_vid,
                gear_type=gear_type_for_vessel(source.gear_code),
                registration_number=source.registration_number,
                in_country_code=source.c_boat_id,
                registered_country_code=source.flag,
                gross_tonnage=source.gross_tonnage,
                vessel_curst_id=VESSEL_CURRENT_STATUS_ID,
                audit=self._audit(),
            ),
            self._repo.save_vessel,
        )

    def _get_or_create(
        self,
        kind: str,
        key: Any,
        find: Callable[[Any], Any],
        build: Callable[[], Any],
        save: Callable[[Any], bool],
    ) -> ReconcileResult:
        cached = self._cache.get((kind, key))
        if cached is not None:
            return ReconcileResult.found(cached)

        try:
            existing = find(key)
        except Exception as exc:
            log.debug("lookup %s %r failed: %s", kind, key, exc)
            existing = None
        if existing is not None:
            self._cache[(kind, key)] = existing
            return ReconcileResult.found(existing)

        entity = build()
        try:
            saved = save(entity)
        except Exception as exc:
            log.warning("create %s %r raised: %s", kind, key, exc)
            return ReconcileResult.failed(f"save raised {type(exc).__name__}: {exc}")
        if not saved:
            return ReconcileResult.failed("save was rejected")

        try:
            created = find(key)
        except Exception as exc:
            log.debug("re-fetch %s %r failed: %s", kind, key, exc)
            created = None
        if created is None:
            return ReconcileResult.failed("not found after save")

        log.info("created %s %r", kind, key)
        self._cache[(kind, key)] = created
        return ReconcileResult.created(created)

    # -- lookups ------------------------------------------------------------

    def sea_state(self, code: str | None) -> SeaState | None:
        return self._lookup("sea_state", trim(code), self._repo.find_sea_state_by_code)

    def condition(self, code: str | None) -> Condition | None:
        return self._lookup("condition", trim(code), self._repo.find_condition_by_code)

    def fate(self, code: str | None) -> Fate | None:
        return self._lookup("fate", trim(code), self._repo.find_fate_by_code)

    def reference_value(self, value_id: int | None) -> ReferenceValue | None:
        return self._lookup(
            "reference_value", value_id, self._repo.find_reference_value_by_id
        )

    def _lookup(self, kind: str, key: Any, find: Callable[[Any], Any]) -> Any:
        if key is None:
            return None
        cached = self._cache.get((kind, key))
        if cached is not None:
            return cached
        try:
            found = find(key)
        except Exception as exc:
            log.debug("lookup %s %r failed: %s", kind, key, exc)
            return None
        if found is not None:
            self._cache[(kind, key)] = found
        return found
