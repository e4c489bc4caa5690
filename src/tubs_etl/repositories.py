"""tubs_etl.repositories

Repository contracts used by the copy pipeline, and their PostgreSQL
implementations.

  - SourceRepository / ObserverRepository  read the legacy `observer` schema.
  - TargetRepository / TubsRepository      read and write the `tubs` schema.

TubsRepository expects a non-autocommit connection.  Every statement runs
inside a named SAVEPOINT so a failed lookup or insert never poisons the run
transaction; committing (or rolling back a dry run) is the caller's job.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, ContextManager, Iterator, Protocol

import psycopg
from psycopg.rows import dict_row

from tubs_etl.models import (
    AuditEntry,
    Condition,
    Fate,
    FieldStaff,
    Gen3,
    Gen6Detail,
    Gen6Header,
    GearType,
    ImportStatusRecord,
    Observer,
    ObserverCatch,
    ObserverDayLog,
    ObserverFishingDay,
    ObserverLengthHeader,
    ObserverLengthSample,
    ObserverPort,
    ObserverSet,
    ObserverSighting,
    ObserverTransfer,
    ObserverTrip,
    ObserverVessel,
    Port,
    ReferenceValue,
    SeaState,
    TubsActivity,
    TubsDay,
    TubsFishingSet,
    TubsLengthHeader,
    TubsPollutionReport,
    TubsTrip,
    Vessel,
)

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------

class SourceRepository(Protocol):
    def list_candidate_ids(
        self, gear_code: str, limit: int, year_start: int, year_end: int
    ) -> list[int]: ...

    def fetch_gear_type(self, trip_id: int) -> str | None: ...

    def fetch_purse_seine_trip(self, trip_id: int) -> ObserverTrip | None: ...


class ReferenceRepository(Protocol):
    def find_observer_by_staff_code(self, staff_code: str) -> Observer | None: ...

    def find_port_by_id(self, port_id: str) -> Port | None: ...

    def find_vessel_by_id(self, vessel_id: int) -> Vessel | None: ...

    def find_sea_state_by_code(self, code: str) -> SeaState | None: ...

    def find_condition_by_code(self, code: str) -> Condition | None: ...

    def find_fate_by_code(self, code: str) -> Fate | None: ...

    def find_reference_value_by_id(self, value_id: int) -> ReferenceValue | None: ...

    def save_observer(self, observer: Observer) -> bool: ...

    def save_port(self, port: Port) -> bool: ...

    def save_vessel(self, vessel: Vessel) -> bool: ...


class TargetRepository(ReferenceRepository, Protocol):
    def find_import_status(
        self, source_id: str, source_name: str
    ) -> ImportStatusRecord | None: ...

    def save_import_status(self, record: ImportStatusRecord) -> None: ...

    def save_trip(self, trip: TubsTrip) -> int: ...

    def atomic(self) -> ContextManager[None]:
        """Writes inside the block persist together or not at all."""
        ...


# ---------------------------------------------------------------------------
# Savepoint helper
# ---------------------------------------------------------------------------

@contextmanager
def _savepoint(conn: psycopg.Connection, name: str) -> Iterator[None]:
    conn.execute(f"SAVEPOINT {name}")
    try:
        yield
    except Exception:
        conn.execute(f"ROLLBACK TO SAVEPOINT {name}")
        raise
    conn.execute(f"RELEASE SAVEPOINT {name}")


# ---------------------------------------------------------------------------
# Observer (source)
# ---------------------------------------------------------------------------

def _group(rows: list[dict[str, Any]], key: str) -> dict[Any, list[dict[str, Any]]]:
    grouped: dict[Any, list[dict[str, Any]]] = defaultdict(list)
    for row in rows:
        grouped[row[key]].append(row)
    return grouped


class ObserverRepository:
    """Read-only access to the legacy Observer tables."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def _rows(self, sql: str, params: tuple) -> list[dict[str, Any]]:
        with self._conn.cursor(row_factory=dict_row) as cur:
            return cur.execute(sql, params).fetchall()

    def list_candidate_ids(
        self, gear_code: str, limit: int, year_start: int, year_end: int
    ) -> list[int]:
        rows = self._conn.execute(
            """
            SELECT obstrip_id
            FROM observer.trip
            WHERE gear_code = %s
              AND EXTRACT(YEAR FROM dep_date) BETWEEN %s AND %s
            ORDER BY obstrip_id ASC
            LIMIT %s
            """,
            (gear_code, year_start, year_end, limit),
        ).fetchall()
        return [int(r[0]) for r in rows]

    def fetch_gear_type(self, trip_id: int) -> str | None:
        row = self._conn.execute(
            "SELECT gear_code FROM observer.trip WHERE obstrip_id = %s",
            (trip_id,),
        ).fetchone()
        return row[0] if row else None

    def fetch_purse_seine_trip(self, trip_id: int) -> ObserverTrip | None:
        header = self._rows(
            "SELECT * FROM observer.trip WHERE obstrip_id = %s", (trip_id,)
        )
        if not header:
            return None
        h = header[0]
        trip = ObserverTrip(
            trip_id=int(h["obstrip_id"]),
            gear=GearType.from_code(h["gear_code"]),
            program_code=h["program_id"],
            staff_code=h["staff_code"],
            trip_number=h["tripno"],
            departure_date=h["dep_date"],
            return_date=h["ret_date"],
        )
        trip.observer = self._field_staff(h["staff_code"])
        trip.departure_port = self._port(h["dep_port"])
        trip.return_port = self._port(h["ret_port"])
        trip.vessel = self._vessel(h["vessel_id"])
        trip.sightings = self._sightings(trip_id)
        trip.transfers = self._transfers(trip_id)
        trip.gen3 = self._gen3(trip_id)
        trip.pollution_reports = self._pollution_reports(trip_id)
        trip.fishing_days = self._fishing_days(trip_id)
        return trip

    # -- header references --------------------------------------------------

    def _field_staff(self, staff_code: str | None) -> FieldStaff | None:
        if staff_code is None:
            return None
        rows = self._rows(
            "SELECT * FROM observer.field_staff WHERE staff_code = %s", (staff_code,)
        )
        if not rows:
            return None
        r = rows[0]
        return FieldStaff(
            staff_code=r["staff_code"],
            first_name=r["first_name"],
            last_name=r["last_name"],
            home_country=r["home_country"],
        )

    def _port(self, port_id: str | None) -> ObserverPort | None:
        if port_id is None:
            return None
        rows = self._rows("SELECT * FROM observer.port WHERE port_id = %s", (port_id,))
        if not rows:
            return None
        r = rows[0]
        return ObserverPort(port_id=r["port_id"], name=r["name"], country_code=r["country_code"])

    def _vessel(self, vessel_id: int | None) -> ObserverVessel | None:
        if vessel_id is None:
            return None
        rows = self._rows("SELECT * FROM observer.vessel WHERE vessel_id = %s", (vessel_id,))
        if not rows:
            return None
        r = rows[0]
        return ObserverVessel(
            vessel_id=int(r["vessel_id"]),
            name=r["name"],
            ffa_vid=r["ffa_vid"],
            gear_code=r["gear_code"],
            registration_number=r["reg_no"],
            c_boat_id=r["c_boat_id"],
            flag=r["flag"],
            gross_tonnage=r["gross_tonnage"],
        )

    # -- GEN-1 / GEN-3 / GEN-6 ----------------------------------------------

    def _sightings(self, trip_id: int) -> list[ObserverSighting]:
        rows = self._rows(
            """
            SELECT * FROM observer.gen1_sighting
            WHERE obstrip_id = %s ORDER BY gen1_sighting_id
            """,
            (trip_id,),
        )
        return [
            ObserverSighting(
                sight_date=r["sight_date"],
                sight_time=r["sight_time"],
                latitude=r["lat"],
                longitude=r["lon"],
                eez_code=r["ez_id"],
                bearing=r["bearing"],
                distance=r["distance"],
                distance_unit=r["dist_unit"],
                callsign=r["s_callsign"],
                vessel_name=r["s_name"],
                flag=r["s_flag"],
                action_code=r["action_code"],
                comments=r["comment"],
                photo_number=r["photo_no"],
            )
            for r in rows
        ]

    def _transfers(self, trip_id: int) -> list[ObserverTransfer]:
        rows = self._rows(
            """
            SELECT * FROM observer.gen1_transfer
            WHERE obstrip_id = %s ORDER BY gen1_transfer_id
            """,
            (trip_id,),
        )
        return [
            ObserverTransfer(
                transfer_date=r["xfer_date"],
                transfer_time=r["xfer_time"],
                latitude=r["lat"],
                longitude=r["lon"],
                vessel_name=r["r_name"],
                flag=r["r_flag"],
                callsign=r["r_callsign"],
                skipjack=r["skj_c"],
                yellowfin=r["yft_c"],
                bigeye=r["bet_c"],
                mixed=r["mix_c"],
                comments=r["comment"],
            )
            for r in rows
        ]

    def _gen3(self, trip_id: int) -> Gen3 | None:
        rows = self._rows("SELECT * FROM observer.gen3 WHERE obstrip_id = %s", (trip_id,))
        if not rows:
            return None
        r = rows[0]
        return Gen3(
            answers=tuple(r[f"q{i}"] for i in range(1, 21)),
            date1=r["date1"],
            comment1=r["comment1"],
            date2=r["date2"],
            comment2=r["comment2"],
            date3=r["date3"],
            comment3=r["comment3"],
        )

    def _pollution_reports(self, trip_id: int) -> list[Gen6Header]:
        headers = self._rows(
            """
            SELECT * FROM observer.gen6_header
            WHERE obstrip_id = %s ORDER BY gen6_header_id
            """,
            (trip_id,),
        )
        details = _group(
            self._rows(
                """
                SELECT d.* FROM observer.gen6_detail d
                JOIN observer.gen6_header h ON h.gen6_header_id = d.gen6_header_id
                WHERE h.obstrip_id = %s ORDER BY d.gen6_detail_id
                """,
                (trip_id,),
            ),
            "gen6_header_id",
        )
        return [
            Gen6Header(
                report_date=h["rep_date"],
                report_time=h["rep_time"],
                latitude=h["lat"],
                longitude=h["lon"],
                eez_code=h["ez_id"],
                ircs=h["ircs"],
                vessel_name=h["vesselname"],
                sea_state_code=h["seacond"],
                wind_direction=h["winddir"],
                wind_speed=h["windspeed"],
                activity_code=h["activity_code"],
                comments=h["comments"],
                details=[
                    Gen6Detail(
                        material=d["material"],
                        source=d["source"],
                        pollution_type=d["poll_type"],
                        quantity=d["quantity"],
                        description=d["description"],
                    )
                    for d in details.get(h["gen6_header_id"], [])
                ],
            )
            for h in headers
        ]

    # -- purse-seine day log ------------------------------------------------

    def _fishing_days(self, trip_id: int) -> list[ObserverFishingDay]:
        days = self._rows(
            "SELECT * FROM observer.s_day WHERE obstrip_id = %s ORDER BY daydate, s_day_id",
            (trip_id,),
        )
        logs = _group(
            self._rows(
                """
                SELECT l.* FROM observer.s_daylog l
                JOIN observer.s_day d ON d.s_day_id = l.s_day_id
                WHERE d.obstrip_id = %s ORDER BY l.s_daylog_id
                """,
                (trip_id,),
            ),
            "s_day_id",
        )
        sets = self._sets(trip_id)
        return [
            ObserverFishingDay(
                day_date=d["daydate"],
                day_time=d["daytime"],
                utc_date=d["utc_date"],
                utc_time=d["utc_time"],
                anchored_with_school=d["fad_fsh"],
                anchored_without_school=d["fadnofsh"],
                floating_with_school=d["log_fsh"],
                floating_without_school=d["lognofsh"],
                free_school_count=d["sch_fsh"],
                entered_by=d["enteredby"],
                inserted_at=d["inserttime"],
                activities=[
                    ObserverDayLog(
                        activity_date=r["actdate"],
                        activity_time=r["acttime"],
                        utc_activity_date=r["utc_actdate"],
                        utc_activity_time=r["utc_acttime"],
                        activity_code=r["s_act_id"],
                        detection_code=r["det_id"],
                        association_code=r["sch_id"],
                        beacon=r["beacon"],
                        comments=r["comment"],
                        eez_code=r["ez_id"],
                        latitude=r["lat_long"],
                        longitude=r["lon_long"],
                        sea_state_code=r["sea_id"],
                        wind_direction=r["winddir"],
                        wind_speed=r["wind_kts"],
                        fishing_days=r["fish_days"],
                        fishing_set=sets.get(r["s_daylog_id"]),
                        entered_by=r["enteredby"],
                        inserted_at=r["inserttime"],
                    )
                    for r in logs.get(d["s_day_id"], [])
                ],
            )
            for d in days
        ]

    def _sets(self, trip_id: int) -> dict[int, ObserverSet]:
        """Return fishing sets keyed by s_daylog_id."""
        set_rows = self._rows(
            """
            SELECT s.* FROM observer.s_set s
            JOIN observer.s_daylog l ON l.s_daylog_id = s.s_daylog_id
            JOIN observer.s_day d ON d.s_day_id = l.s_day_id
            WHERE d.obstrip_id = %s
            """,
            (trip_id,),
        )
        if not set_rows:
            return {}
        set_ids = [r["s_set_id"] for r in set_rows]
        catch = _group(
            self._rows(
                "SELECT * FROM observer.s_setcatch WHERE s_set_id = ANY(%s) ORDER BY s_setcatch_id",
                (set_ids,),
            ),
            "s_set_id",
        )
        lf_headers = self._rows(
            "SELECT * FROM observer.s_lf_hdr WHERE s_set_id = ANY(%s) ORDER BY s_lf_hdr_id",
            (set_ids,),
        )
        lf_samples: dict[Any, list[dict[str, Any]]] = {}
        if lf_headers:
            lf_samples = _group(
                self._rows(
                    "SELECT * FROM observer.s_lf WHERE s_lf_hdr_id = ANY(%s) ORDER BY s_lf_id",
                    ([h["s_lf_hdr_id"] for h in lf_headers],),
                ),
                "s_lf_hdr_id",
            )
        headers_by_set = _group(lf_headers, "s_set_id")

        result: dict[int, ObserverSet] = {}
        for s in set_rows:
            result[s["s_daylog_id"]] = ObserverSet(
                set_number=s["set_no"],
                rings_up_time=s["ringsup"],
                begin_brailing_time=s["stbrail"],
                end_brailing_time=s["endbrail"],
                tonnage_on_board_observer=s["tons_onbrd_obs"],
                tonnage_on_board_log=s["tons_onbrd_log"],
                tonnage_this_set_observer=s["tons_set_obs"],
                tonnage_this_set_log=s["tons_set_log"],
                sum_of_brail_1=s["sum_brail1"],
                sum_of_brail_2=s["sum_brail2"],
                total_catch=s["totcatch"],
                skipjack_percentage=s["skj_perc"],
                bigeye_percentage=s["bet_perc"],
                yellowfin_percentage=s["yft_perc"],
                comments=s["comment"],
                entered_by=s["enteredby"],
                inserted_at=s["inserttime"],
                catch=[
                    ObserverCatch(
                        species_code=c["sp_id"],
                        condition_code=c["cond_id"],
                        fate_code=c["fate_id"],
                        observed_count=c["obs_n"],
                        observed_weight=c["obs_mt"],
                        log_count=c["log_n"],
                        log_weight=c["log_mt"],
                        comments=c["comment"],
                        entered_by=c["enteredby"],
                        inserted_at=c["inserttime"],
                    )
                    for c in catch.get(s["s_set_id"], [])
                ],
                length_headers=[
                    ObserverLengthHeader(
                        sample_type=h["sampletype"],
                        protocol_code=h["protocol"],
                        brail_number=h["brail_no"],
                        full_brail_count=h["fullbrails"],
                        partial_brail_count=h["partbrails"],
                        entered_by=h["enteredby"],
                        inserted_at=h["inserttime"],
                        samples=[
                            ObserverLengthSample(
                                length=f["len"],
                                sample_number=f["sample_no"],
                                species_code=f["sp_id"],
                            )
                            for f in lf_samples.get(h["s_lf_hdr_id"], [])
                        ],
                    )
                    for h in headers_by_set.get(s["s_set_id"], [])
                ],
            )
        return result


# ---------------------------------------------------------------------------
# TUBS (target)
# ---------------------------------------------------------------------------

def _audit(audit: AuditEntry) -> tuple[str, Any]:
    return audit.entered_by, audit.entered_at


class TubsRepository:
    """Reference lookups, reference/trip/status writes against the TUBS schema."""

    def __init__(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def _fetchone(self, sql: str, params: tuple) -> tuple | None:
        with _savepoint(self._conn, "tubs_lookup"):
            return self._conn.execute(sql, params).fetchone()

    def _insert_reference(self, kind: str, sql: str, params: tuple) -> bool:
        try:
            with _savepoint(self._conn, f"save_{kind}"):
                self._conn.execute(sql, params)
        except psycopg.Error as exc:
            log.warning("save %s failed: %s", kind, exc)
            return False
        return True

    # -- reference lookups --------------------------------------------------

    def find_observer_by_staff_code(self, staff_code: str) -> Observer | None:
        row = self._fetchone(
            """
            SELECT id, staff_code, first_name, family_name, nationality_country_code
            FROM tubs.observers WHERE staff_code = %s
            """,
            (staff_code,),
        )
        if not row:
            return None
        return Observer(
            id=int(row[0]),
            staff_code=row[1],
            first_name=row[2],
            family_name=row[3],
            nationality_country_code=row[4],
        )

    def find_port_by_id(self, port_id: str) -> Port | None:
        row = self._fetchone(
            "SELECT port_id, name, country_code FROM tubs.ports WHERE port_id = %s",
            (port_id,),
        )
        return Port(port_id=row[0], name=row[1], country_code=row[2]) if row else None

    def find_vessel_by_id(self, vessel_id: int) -> Vessel | None:
        row = self._fetchone(
            """
            SELECT vessel_id, name, ffa_id, gear_type, registration_number,
                   in_country_code, registered_country_code, gross_tonnage,
                   vessel_curst_id, entered_by, entered_at
            FROM tubs.vessels WHERE vessel_id = %s
            """,
            (vessel_id,),
        )
        if not row:
            return None
        return Vessel(
            vessel_id=int(row[0]),
            name=row[1],
            ffa_id=row[2],
            gear_type=row[3],
            registration_number=row[4],
            in_country_code=row[5],
            registered_country_code=row[6],
            gross_tonnage=row[7],
            vessel_curst_id=row[8],
            audit=AuditEntry(row[9], row[10]) if row[9] and row[10] else None,
        )

    def find_sea_state_by_code(self, code: str) -> SeaState | None:
        row = self._fetchone(
            "SELECT code, description FROM tubs.sea_states WHERE code = %s", (code,)
        )
        return SeaState(code=row[0], description=row[1]) if row else None

    def find_condition_by_code(self, code: str) -> Condition | None:
        row = self._fetchone(
            "SELECT code, description FROM tubs.conditions WHERE code = %s", (code,)
        )
        return Condition(code=row[0], description=row[1]) if row else None

    def find_fate_by_code(self, code: str) -> Fate | None:
        row = self._fetchone(
            "SELECT code, description FROM tubs.fates WHERE code = %s", (code,)
        )
        return Fate(code=row[0], description=row[1]) if row else None

    def find_reference_value_by_id(self, value_id: int) -> ReferenceValue | None:
        row = self._fetchone(
            "SELECT id, code, description FROM tubs.reference_values WHERE id = %s",
            (value_id,),
        )
        return ReferenceValue(id=int(row[0]), code=row[1], description=row[2]) if row else None

    # -- reference writes ---------------------------------------------------

    def save_observer(self, observer: Observer) -> bool:
        return self._insert_reference(
            "observer",
            """
            INSERT INTO tubs.observers
              (staff_code, first_name, family_name, nationality_country_code)
            VALUES (%s, %s, %s, %s)
            """,
            (observer.staff_code, observer.first_name, observer.family_name,
             observer.nationality_country_code),
        )

    def save_port(self, port: Port) -> bool:
        return self._insert_reference(
            "port",
            "INSERT INTO tubs.ports (port_id, name, country_code) VALUES (%s, %s, %s)",
            (port.port_id, port.name, port.country_code),
        )

    def save_vessel(self, vessel: Vessel) -> bool:
        entered_by, entered_at = _audit(vessel.audit) if vessel.audit else (None, None)
        return self._insert_reference(
            "vessel",
            """
            INSERT INTO tubs.vessels
              (vessel_id, name, ffa_id, gear_type, registration_number,
               in_country_code, registered_country_code, gross_tonnage,
               vessel_curst_id, entered_by, entered_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
            (vessel.vessel_id, vessel.name, vessel.ffa_id, vessel.gear_type,
             vessel.registration_number, vessel.in_country_code,
             vessel.registered_country_code, vessel.gross_tonnage,
             vessel.vessel_curst_id, entered_by, entered_at),
        )

    # -- import status ------------------------------------------------------

    def find_import_status(
        self, source_id: str, source_name: str
    ) -> ImportStatusRecord | None:
        row = self._fetchone(
            """
            SELECT source_id, source_name, status, trip_id, comments,
                   entered_by, entered_at
            FROM tubs.import_status
            WHERE source_id = %s AND source_name = %s
            ORDER BY (status = 'S') DESC, id DESC
            LIMIT 1
            """,
            (source_id, source_name),
        )
        if not row:
            return None
        return ImportStatusRecord(
            source_id=row[0],
            source_name=row[1],
            status=row[2],
            trip_id=row[3],
            comments=row[4],
            audit=AuditEntry(row[5], row[6]),
        )

    def save_import_status(self, record: ImportStatusRecord) -> None:
        with _savepoint(self._conn, "save_import_status"):
            self._conn.execute(
                """
                INSERT INTO tubs.import_status
                  (source_id, source_name, status, trip_id, comments,
                   entered_by, entered_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (record.source_id, record.source_name, record.status,
                 record.trip_id, record.comments, *_audit(record.audit)),
            )

    # -- trip graph ---------------------------------------------------------

    def atomic(self) -> ContextManager[None]:
        return _savepoint(self._conn, "copy_trip")

    def save_trip(self, trip: TubsTrip) -> int:
        """Insert the whole trip graph atomically; returns the new trips.id."""
        with _savepoint(self._conn, "save_trip"):
            trip_id = self._insert_trip(trip)
            for sighting in trip.sightings:
                self._conn.execute(
                    """
                    INSERT INTO tubs.vessel_sightings
                      (trip_id, sighting_date, latitude, longitude, eez_code,
                       bearing, distance, distance_unit, ircs, vessel_name,
                       registered_country_code, action_code, comments,
                       photo_number, entered_by, entered_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (trip_id, sighting.sighting_date, sighting.latitude,
                     sighting.longitude, sighting.eez_code, sighting.bearing,
                     sighting.distance, sighting.distance_unit, sighting.ircs,
                     sighting.vessel_name, sighting.registered_country_code,
                     sighting.action_code, sighting.comments,
                     sighting.photo_number, *_audit(sighting.audit)),
                )
            for xfer in trip.transfers:
                self._conn.execute(
                    """
                    INSERT INTO tubs.fish_transfers
                      (trip_id, transfer_date, latitude, longitude, vessel_name,
                       registered_country_code, ircs, skipjack_transferred,
                       yellowfin_transferred, bigeye_transferred,
                       misc_transferred, comments, entered_by, entered_at)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    """,
                    (trip_id, xfer.transfer_date, xfer.latitude, xfer.longitude,
                     xfer.vessel_name, xfer.registered_country_code, xfer.ircs,
                     xfer.skipjack_transferred, xfer.yellowfin_transferred,
                     xfer.bigeye_transferred, xfer.misc_transferred,
                     xfer.comments, *_audit(xfer.audit)),
                )
            if trip.trip_report is not None:
                self._insert_trip_report(trip_id, trip)
            for report in trip.pollution_reports:
                self._insert_pollution_report(trip_id, report)
            for day in trip.days:
                self._insert_day(trip_id, day)
        trip.id = trip_id
        return trip_id

    def _insert_trip(self, trip: TubsTrip) -> int:
        row = self._conn.execute(
            """
            INSERT INTO tubs.trips
              (gear_type, program_code, staff_code, observer_id, trip_number,
               departure_date, departure_port_id, return_date, return_port_id,
               vessel_id, entered_by, entered_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (trip.gear.value, trip.program_code, trip.staff_code,
             trip.observer.id if trip.observer else None, trip.trip_number,
             trip.departure_date,
             trip.departure_port.port_id if trip.departure_port else None,
             trip.return_date,
             trip.return_port.port_id if trip.return_port else None,
             trip.vessel.vessel_id if trip.vessel else None,
             *_audit(trip.audit)),
        ).fetchone()
        return int(row[0])

    def _insert_trip_report(self, trip_id: int, trip: TubsTrip) -> None:
        report = trip.trip_report
        answer_cols = ", ".join(f"q{i}_answer" for i in range(1, 21))
        placeholders = ", ".join(["%s"] * 29)
        self._conn.execute(
            f"""
            INSERT INTO tubs.trip_reports
              (trip_id, {answer_cols},
               first_comment_date, first_comment, second_comment_date,
               second_comment, third_comment_date, third_comment,
               entered_by, entered_at)
            VALUES ({placeholders})
            """,
            (trip_id, *report.answers,
             report.first_comment_date, report.first_comment,
             report.second_comment_date, report.second_comment,
             report.third_comment_date, report.third_comment,
             *_audit(report.audit)),
        )

    def _insert_pollution_report(self, trip_id: int, report: TubsPollutionReport) -> None:
        row = self._conn.execute(
            """
            INSERT INTO tubs.pollution_reports
              (trip_id, report_date, latitude, longitude, eez_code, ircs,
               vessel_name, sea_state_code, wind_direction, wind_speed,
               vessel_activity_id, comments, entered_by, entered_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (trip_id, report.report_date, report.latitude, report.longitude,
             report.eez_code, report.ircs, report.vessel_name,
             report.sea_state.code if report.sea_state else None,
             report.wind_direction, report.wind_speed,
             report.vessel_activity.id if report.vessel_activity else None,
             report.comments, *_audit(report.audit)),
        ).fetchone()
        report_id = int(row[0])
        for detail in report.details:
            self._conn.execute(
                """
                INSERT INTO tubs.pollution_details
                  (pollution_report_id, material, pollution_type, quantity,
                   description, material_id, source_id)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (report_id, detail.material, detail.pollution_type,
                 detail.quantity, detail.description, detail.material_id,
                 detail.source_id),
            )

    def _insert_day(self, trip_id: int, day: TubsDay) -> None:
        row = self._conn.execute(
            """
            INSERT INTO tubs.ps_days
              (trip_id, start_of_day, utc_start_of_day, anchored_with_school,
               anchored_without_school, floating_with_school,
               floating_without_school, free_school_count,
               entered_by, entered_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (trip_id, day.start_of_day, day.utc_start_of_day,
             day.anchored_with_school, day.anchored_without_school,
             day.floating_with_school, day.floating_without_school,
             day.free_school_count, *_audit(day.audit)),
        ).fetchone()
        day_id = int(row[0])
        for activity in day.activities:
            self._insert_activity(day_id, activity)

    def _insert_activity(self, day_id: int, activity: TubsActivity) -> None:
        row = self._conn.execute(
            """
            INSERT INTO tubs.ps_activities
              (day_id, local_time, utc_time, activity_type_id,
               detection_method_id, association_type_id, beacon, comments,
               eez_code, latitude, longitude, sea_state_code, wind_direction,
               wind_speed, fishing_days, entered_by, entered_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (day_id, activity.local_time, activity.utc_time,
             activity.activity_type.id if activity.activity_type else None,
             activity.detection_method.id if activity.detection_method else None,
             activity.association_type.id if activity.association_type else None,
             activity.beacon, activity.comments, activity.eez_code,
             activity.latitude, activity.longitude,
             activity.sea_state.code if activity.sea_state else None,
             activity.wind_direction, activity.wind_speed,
             activity.fishing_days, *_audit(activity.audit)),
        ).fetchone()
        if activity.fishing_set is not None:
            self._insert_set(int(row[0]), activity.fishing_set)

    def _insert_set(self, activity_id: int, fset: TubsFishingSet) -> None:
        row = self._conn.execute(
            """
            INSERT INTO tubs.ps_sets
              (activity_id, set_number, skiff_off, rings_up, begin_brailing,
               end_brailing, tonnage_on_board_observer, tonnage_on_board_log,
               tonnage_this_set_observer, tonnage_this_set_log,
               sum_of_brail_1, sum_of_brail_2, total_catch,
               skipjack_percentage, contains_skipjack,
               bigeye_percentage, contains_bigeye,
               yellowfin_percentage, contains_yellowfin,
               comments, entered_by, entered_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s, %s)
            RETURNING id
            """,
            (activity_id, fset.set_number, fset.skiff_off, fset.rings_up,
             fset.begin_brailing, fset.end_brailing,
             fset.tonnage_on_board_observer, fset.tonnage_on_board_log,
             fset.tonnage_this_set_observer, fset.tonnage_this_set_log,
             fset.sum_of_brail_1, fset.sum_of_brail_2, fset.total_catch,
             fset.skipjack_percentage, fset.contains_skipjack,
             fset.bigeye_percentage, fset.contains_bigeye,
             fset.yellowfin_percentage, fset.contains_yellowfin,
             fset.comments, *_audit(fset.audit)),
        ).fetchone()
        set_id = int(row[0])
        for c in fset.catch:
            self._conn.execute(
                """
                INSERT INTO tubs.ps_set_catch
                  (set_id, species_code, condition_code, fate_code,
                   observed_count, observed_weight, log_count, log_weight,
                   comments, entered_by, entered_at)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (set_id, c.species_code,
                 c.condition.code if c.condition else None,
                 c.fate.code if c.fate else None,
                 c.observed_count, c.observed_weight, c.log_count,
                 c.log_weight, c.comments, *_audit(c.audit)),
            )
        for header in fset.length_headers:
            self._insert_length_header(set_id, header)

    def _insert_length_header(self, set_id: int, header: TubsLengthHeader) -> None:
        row = self._conn.execute(
            """
            INSERT INTO tubs.ps_length_headers
              (set_id, sample_type, protocol_code, entered_by, entered_at)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id
            """,
            (set_id, header.sample_type, header.protocol_code, *_audit(header.audit)),
        ).fetchone()
        header_id = int(row[0])
        for brail in header.brails:
            self._conn.execute(
                """
                INSERT INTO tubs.ps_brails
                  (length_header_id, brail_number, full_brail_count,
                   partial_brail_count, entered_by, entered_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (header_id, brail.brail_number, brail.full_brail_count,
                 brail.partial_brail_count, *_audit(brail.audit)),
            )
        for sample in header.samples:
            self._conn.execute(
                """
                INSERT INTO tubs.ps_length_samples
                  (length_header_id, length, sample_number, species_code,
                   entered_by, entered_at)
                VALUES (%s, %s, %s, %s, %s, %s)
                """,
                (header_id, sample.length, sample.sample_number,
                 sample.species_code, *_audit(sample.audit)),
            )
