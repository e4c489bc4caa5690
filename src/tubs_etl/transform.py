"""tubs_etl.transform

Builds the TUBS trip graph from a loaded Observer trip.

  - header, GEN-1, GEN-3 and GEN-6 sections are converted for every gear;
  - purse-seine trips additionally get the day log (days, activities, sets,
    catch and length-frequency samples);
  - long-line trips come back as not implemented, carrying only the
    gear-independent sections.

Reference entities are reconciled through ReferenceReconciler.  A reference
that cannot be found or created raises ReconciliationError, which the
orchestrator records as a failed import.
"""

from __future__ import annotations

import logging
from datetime import datetime

from tubs_etl.models import (
    AuditEntry,
    Gen3,
    Gen6Header,
    GearType,
    ObserverDayLog,
    ObserverFishingDay,
    ObserverLengthHeader,
    ObserverSet,
    ObserverTrip,
    ReconcileResult,
    TransformResult,
    TubsActivity,
    TubsBrail,
    TubsCatch,
    TubsDay,
    TubsFishingSet,
    TubsLengthHeader,
    TubsLengthSample,
    TubsPollutionDetail,
    TubsPollutionReport,
    TubsSighting,
    TubsTransfer,
    TubsTrip,
    TubsTripReport,
)
from tubs_etl.normalize import (
    combine,
    contains_species,
    gen1_activity,
    gen6_activity,
    gen6_material,
    gen6_source,
    purse_seine_activity,
    purse_seine_association,
    purse_seine_detection,
    translate_answer,
)
from tubs_etl.reconcile import ReferenceReconciler
from tubs_etl.repositories import ReferenceRepository
from tubs_etl.shared import Clock, ReconciliationError, audit_entry

log = logging.getLogger(__name__)

# Day log activity code for a fishing set.
ACTIVITY_FISHING = 1


class TripTransformer:
    def __init__(
        self,
        repo: ReferenceRepository,
        entered_by: str,
        clock: Clock = datetime.now,
        reconciler: ReferenceReconciler | None = None,
    ) -> None:
        self._entered_by = entered_by
        self._clock = clock
        self._reconciler = reconciler or ReferenceReconciler(repo, self._new_audit)

    def _new_audit(self) -> AuditEntry:
        return audit_entry(self._entered_by, self._clock)

    def _copied_audit(self, entered_by: str | None, inserted_at: datetime | None) -> AuditEntry:
        """Keep the source audit when it is complete; otherwise stamp a new one."""
        if entered_by and inserted_at:
            return AuditEntry(entered_by=entered_by, entered_at=inserted_at)
        return self._new_audit()

    # -- entry point --------------------------------------------------------

    def transform(self, source: ObserverTrip | None) -> TransformResult:
        if source is None:
            log.info("source trip was null")
            return TransformResult.skip("source trip was null")

        if source.gear is GearType.UNSUPPORTED:
            log.info("trip %s: unsupported gear, skipping", source.trip_id)
            return TransformResult.skip(f"unsupported gear for trip {source.trip_id}")

        trip = self._header(source)
        if source.gear is GearType.LONG_LINE:
            log.info("trip %s: long-line detail conversion not implemented", source.trip_id)
            return TransformResult.not_implemented(
                trip, f"long-line conversion not implemented for trip {source.trip_id}"
            )

        trip.days = [self._day(d) for d in source.fishing_days]
        log.debug("trip %s: converted %d fishing days", source.trip_id, len(trip.days))
        return TransformResult.converted(trip)

    # -- header and gear-independent sections -------------------------------

    def _header(self, source: ObserverTrip) -> TubsTrip:
        observer = self._required("observer", source.staff_code,
                                  self._reconciler.observer(source.observer))
        departure_port = self._required(
            "port", source.departure_port and source.departure_port.port_id,
            self._reconciler.port(source.departure_port),
        )
        return_port = self._required(
            "port", source.return_port and source.return_port.port_id,
            self._reconciler.port(source.return_port),
        )
        vessel = self._required(
            "vessel", source.vessel and source.vessel.vessel_id,
            self._reconciler.vessel(source.vessel),
        )

        trip = TubsTrip(
            gear=source.gear,
            program_code=source.program_code,
            staff_code=source.staff_code,
            observer=observer,
            trip_number=source.trip_number,
            departure_date=source.departure_date,
            departure_port=departure_port,
            return_date=source.return_date,
            return_port=return_port,
            vessel=vessel,
            audit=self._new_audit(),
        )
        trip.sightings = [
            TubsSighting(
                sighting_date=combine(s.sight_date, s.sight_time),
                latitude=s.latitude,
                longitude=s.longitude,
                eez_code=s.eez_code,
                bearing=s.bearing,
                distance=s.distance,
                distance_unit=s.distance_unit,
                ircs=s.callsign,
                vessel_name=s.vessel_name,
                registered_country_code=s.flag,
                action_code=gen1_activity(s.action_code),
                comments=s.comments,
                photo_number=s.photo_number,
                audit=self._new_audit(),
            )
            for s in source.sightings
        ]
        trip.transfers = [
            TubsTransfer(
                transfer_date=combine(t.transfer_date, t.transfer_time),
                latitude=t.latitude,
                longitude=t.longitude,
                vessel_name=t.vessel_name,
                registered_country_code=t.flag,
                ircs=t.callsign,
                skipjack_transferred=t.skipjack,
                yellowfin_transferred=t.yellowfin,
                bigeye_transferred=t.bigeye,
                misc_transferred=t.mixed,
                comments=t.comments,
                audit=self._new_audit(),
            )
            for t in source.transfers
        ]
        trip.trip_report = self._trip_report(source.gen3)
        trip.pollution_reports = [self._pollution_report(h) for h in source.pollution_reports]
        return trip

    @staticmethod
    def _required(kind: str, key, result: ReconcileResult | None):
        if result is None:
            return None
        if not result.ok:
            raise ReconciliationError(kind, key, result.reason)
        return result.entity

    def _trip_report(self, gen3: Gen3 | None) -> TubsTripReport:
        gen3 = gen3 or Gen3()
        return TubsTripReport(
            answers=tuple(translate_answer(a) for a in gen3.answers),
            first_comment_date=gen3.date1,
            first_comment=gen3.comment1,
            second_comment_date=gen3.date2,
            second_comment=gen3.comment2,
            third_comment_date=gen3.date3,
            third_comment=gen3.comment3,
            audit=self._new_audit(),
        )

    def _pollution_report(self, header: Gen6Header) -> TubsPollutionReport:
        return TubsPollutionReport(
            report_date=combine(header.report_date, header.report_time),
            latitude=header.latitude,
            longitude=header.longitude,
            eez_code=header.eez_code,
            ircs=header.ircs,
            vessel_name=header.vessel_name,
            sea_state=self._reconciler.sea_state(header.sea_state_code),
            wind_direction=header.wind_direction,
            wind_speed=header.wind_speed,
            vessel_activity=self._reconciler.reference_value(
                gen6_activity(header.activity_code)
            ),
            comments=header.comments,
            details=[
                TubsPollutionDetail(
                    material=d.material,
                    pollution_type=d.pollution_type,
                    quantity=d.quantity,
                    description=d.description,
                    material_id=gen6_material(d.material),
                    source_id=gen6_source(d.source),
                )
                for d in header.details
            ],
            audit=self._new_audit(),
        )

    # -- purse-seine day log ------------------------------------------------

    def _day(self, day: ObserverFishingDay) -> TubsDay:
        return TubsDay(
            start_of_day=combine(day.day_date, day.day_time),
            utc_start_of_day=combine(day.utc_date, day.utc_time),
            anchored_with_school=day.anchored_with_school,
            anchored_without_school=day.anchored_without_school,
            floating_with_school=day.floating_with_school,
            floating_without_school=day.floating_without_school,
            free_school_count=day.free_school_count,
            activities=[self._activity(a) for a in day.activities],
            audit=self._copied_audit(day.entered_by, day.inserted_at),
        )

    def _activity(self, log_entry: ObserverDayLog) -> TubsActivity:
        fishing_set = None
        if log_entry.activity_code == ACTIVITY_FISHING and log_entry.fishing_set is not None:
            fishing_set = self._fishing_set(log_entry, log_entry.fishing_set)

        ref = self._reconciler.reference_value
        return TubsActivity(
            local_time=combine(log_entry.activity_date, log_entry.activity_time),
            utc_time=combine(log_entry.utc_activity_date, log_entry.utc_activity_time),
            activity_type=ref(purse_seine_activity(log_entry.activity_code)),
            detection_method=ref(purse_seine_detection(log_entry.detection_code)),
            association_type=ref(purse_seine_association(log_entry.association_code)),
            beacon=log_entry.beacon,
            comments=log_entry.comments,
            eez_code=log_entry.eez_code,
            latitude=log_entry.latitude,
            longitude=log_entry.longitude,
            sea_state=self._reconciler.sea_state(log_entry.sea_state_code),
            wind_direction=log_entry.wind_direction,
            wind_speed=log_entry.wind_speed,
            fishing_days=log_entry.fishing_days,
            fishing_set=fishing_set,
            audit=self._copied_audit(log_entry.entered_by, log_entry.inserted_at),
        )

    def _fishing_set(self, log_entry: ObserverDayLog, fset: ObserverSet) -> TubsFishingSet:
        day = log_entry.activity_date
        return TubsFishingSet(
            set_number=fset.set_number,
            skiff_off=combine(day, log_entry.activity_time),
            rings_up=combine(day, fset.rings_up_time),
            begin_brailing=combine(day, fset.begin_brailing_time),
            end_brailing=combine(day, fset.end_brailing_time),
            tonnage_on_board_observer=fset.tonnage_on_board_observer,
            tonnage_on_board_log=fset.tonnage_on_board_log,
            tonnage_this_set_observer=fset.tonnage_this_set_observer,
            tonnage_this_set_log=fset.tonnage_this_set_log,
            sum_of_brail_1=fset.sum_of_brail_1,
            sum_of_brail_2=fset.sum_of_brail_2,
            total_catch=fset.total_catch,
            skipjack_percentage=fset.skipjack_percentage,
            contains_skipjack=contains_species(fset.skipjack_percentage),
            bigeye_percentage=fset.bigeye_percentage,
            contains_bigeye=contains_species(fset.bigeye_percentage),
            yellowfin_percentage=fset.yellowfin_percentage,
            contains_yellowfin=contains_species(fset.yellowfin_percentage),
            comments=fset.comments,
            catch=[
                TubsCatch(
                    species_code=c.species_code,
                    condition=self._reconciler.condition(c.condition_code),
                    fate=self._reconciler.fate(c.fate_code),
                    observed_count=c.observed_count,
                    observed_weight=c.observed_weight,
                    log_count=c.log_count,
                    log_weight=c.log_weight,
                    comments=c.comments,
                    audit=self._copied_audit(c.entered_by, c.inserted_at),
                )
                for c in fset.catch
            ],
            length_headers=[self._length_header(h) for h in fset.length_headers],
            audit=self._copied_audit(fset.entered_by, fset.inserted_at),
        )

    def _length_header(self, header: ObserverLengthHeader) -> TubsLengthHeader:
        audit = self._copied_audit(header.entered_by, header.inserted_at)
        # Observer keeps one brail per header; TUBS models brails as children.
        brail = TubsBrail(
            brail_number=header.brail_number,
            full_brail_count=header.full_brail_count,
            partial_brail_count=header.partial_brail_count,
            audit=self._new_audit(),
        )
        return TubsLengthHeader(
            sample_type=header.sample_type,
            protocol_code=header.protocol_code,
            brails=[brail],
            samples=[
                TubsLengthSample(
                    length=s.length,
                    sample_number=s.sample_number,
                    species_code=s.species_code,
                    audit=audit,
                )
                for s in header.samples
            ],
            audit=audit,
        )
