"""Unit test fixtures: in-memory repositories and a sample Observer trip."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal

import pytest

from tubs_etl.config import RunConfig
from tubs_etl.models import (
    Condition,
    Fate,
    FieldStaff,
    Gen3,
    Gen6Detail,
    Gen6Header,
    GearType,
    ImportStatusRecord,
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
    ReferenceValue,
    SeaState,
)

FIXED_NOW = datetime(2024, 3, 1, 12, 0, 0)


# ---------------------------------------------------------------------------
# Fake repositories
# ---------------------------------------------------------------------------

class FakeSourceRepo:
    def __init__(self) -> None:
        self.trips: dict[int, ObserverTrip] = {}
        self.gears: dict[int, str] = {}
        self.candidate_ids: list = []
        self.gear_lookup_error: Exception | None = None
        self.fetch_calls = 0

    def add(self, trip: ObserverTrip, gear_code: str | None = None) -> None:
        self.trips[trip.trip_id] = trip
        self.gears[trip.trip_id] = gear_code or trip.gear.value
        self.candidate_ids.append(trip.trip_id)

    def list_candidate_ids(self, gear_code, limit, year_start, year_end):
        return list(self.candidate_ids)[:limit]

    def fetch_gear_type(self, trip_id):
        self.fetch_calls += 1
        if self.gear_lookup_error is not None:
            raise self.gear_lookup_error
        return self.gears.get(trip_id)

    def fetch_purse_seine_trip(self, trip_id):
        self.fetch_calls += 1
        return self.trips.get(trip_id)


class FakeTargetRepo:
    def __init__(self) -> None:
        self.observers: dict = {}
        self.ports: dict = {}
        self.vessels: dict = {}
        self.sea_states = {"1": SeaState("1", "calm"), "3": SeaState("3", "slight")}
        self.conditions = {"A0": Condition("A0", "alive")}
        self.fates = {"RFR": Fate("RFR", "retained")}
        self.reference_values = {
            i: ReferenceValue(i, f"RV{i}") for i in (1, 12, 18, 21, 22, 30, 31, 119)
        }
        self.status_rows: list[ImportStatusRecord] = []
        self.trips: list = []
        self.save_calls: dict[str, int] = {"observer": 0, "port": 0, "vessel": 0}
        self.find_calls: dict[str, int] = {}
        self.reject_saves: set[str] = set()
        self.status_lookup_error: Exception | None = None
        self.save_trip_error: Exception | None = None
        # source_id -> number of upcoming status writes that raise
        self.status_save_failures: dict[str, int] = {}

    def _count(self, kind: str) -> None:
        self.find_calls[kind] = self.find_calls.get(kind, 0) + 1

    # -- lookups ------------------------------------------------------------

    def find_observer_by_staff_code(self, staff_code):
        self._count("observer")
        return self.observers.get(staff_code)

    def find_port_by_id(self, port_id):
        self._count("port")
        return self.ports.get(port_id)

    def find_vessel_by_id(self, vessel_id):
        self._count("vessel")
        return self.vessels.get(vessel_id)

    def find_sea_state_by_code(self, code):
        self._count("sea_state")
        return self.sea_states.get(code)

    def find_condition_by_code(self, code):
        return self.conditions.get(code)

    def find_fate_by_code(self, code):
        return self.fates.get(code)

    def find_reference_value_by_id(self, value_id):
        self._count("reference_value")
        return self.reference_values.get(value_id)

    # -- reference writes ---------------------------------------------------

    def save_observer(self, observer):
        self.save_calls["observer"] += 1
        if "observer" in self.reject_saves:
            return False
        observer.id = len(self.observers) + 1
        self.observers[observer.staff_code] = observer
        return True

    def save_port(self, port):
        self.save_calls["port"] += 1
        if "port" in self.reject_saves:
            return False
        self.ports[port.port_id] = port
        return True

    def save_vessel(self, vessel):
        self.save_calls["vessel"] += 1
        if "vessel" in self.reject_saves:
            return False
        self.vessels[vessel.vessel_id] = vessel
        return True

    # -- status and trips ---------------------------------------------------

    def find_import_status(self, source_id, source_name):
        if self.status_lookup_error is not None:
            raise self.status_lookup_error
        rows = [
            r for r in self.status_rows
            if r.source_id == source_id and r.source_name == source_name
        ]
        if not rows:
            return None
        successes = [r for r in rows if r.is_success]
        return (successes or rows)[-1]

    def save_import_status(self, record):
        remaining = self.status_save_failures.get(record.source_id, 0)
        if remaining:
            self.status_save_failures[record.source_id] = remaining - 1
            raise RuntimeError("status table locked")
        self.status_rows.append(record)

    @contextmanager
    def atomic(self):
        trips, rows = len(self.trips), len(self.status_rows)
        try:
            yield
        except Exception:
            del self.trips[trips:]
            del self.status_rows[rows:]
            raise

    def save_trip(self, trip):
        if self.save_trip_error is not None:
            raise self.save_trip_error
        self.trips.append(trip)
        trip.id = 1000 + len(self.trips)
        return trip.id


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

def build_purse_seine_trip(trip_id: int = 501, gear: GearType = GearType.PURSE_SEINE) -> ObserverTrip:
    fishing_set = ObserverSet(
        set_number=1,
        rings_up_time="0730",
        begin_brailing_time="0800",
        end_brailing_time="0915",
        tonnage_on_board_observer=Decimal("120.5"),
        total_catch=Decimal("35"),
        skipjack_percentage=Decimal("80"),
        bigeye_percentage=Decimal("0"),
        yellowfin_percentage=None,
        catch=[
            ObserverCatch(species_code="SKJ", condition_code="A0", fate_code="RFR",
                          observed_weight=Decimal("28.0")),
            ObserverCatch(species_code="YFT", condition_code="  ", fate_code=None),
        ],
        length_headers=[
            ObserverLengthHeader(
                sample_type="B", protocol_code="G", brail_number=2,
                full_brail_count=3, partial_brail_count=1,
                samples=[ObserverLengthSample(length=52, sample_number=1, species_code="SKJ")],
            )
        ],
        entered_by="JDOE",
        inserted_at=datetime(1999, 5, 3, 18, 0),
    )
    return ObserverTrip(
        trip_id=trip_id,
        gear=gear,
        program_code="PGOB",
        staff_code="ABC",
        trip_number="99-01",
        observer=FieldStaff("ABC", "Ana", "Bell", "FJ"),
        departure_date=date(1999, 5, 1),
        departure_port=ObserverPort("FJSUV", "Suva", "FJ"),
        return_date=date(1999, 5, 20),
        return_port=ObserverPort("FJSUV", "Suva", "FJ"),
        vessel=ObserverVessel(77, "Pacific Star", "FFA77", "S", "R-1", "FJ", "FJ", Decimal("900")),
        sightings=[ObserverSighting(sight_date=date(1999, 5, 2), sight_time="1015", action_code=13)],
        transfers=[ObserverTransfer(transfer_date=date(1999, 5, 4), transfer_time="2359",
                                    skipjack=Decimal("12.5"))],
        gen3=Gen3(answers=(True, False, None) + (None,) * 17, date1=date(1999, 5, 5),
                  comment1="engine trouble"),
        pollution_reports=[
            Gen6Header(
                report_date=date(1999, 5, 6), report_time="0600", sea_state_code="3",
                activity_code=2,
                details=[Gen6Detail(material="Plastic", source="Bow", quantity="1 bag")],
            )
        ],
        fishing_days=[
            ObserverFishingDay(
                day_date=date(1999, 5, 3), day_time="0500",
                anchored_with_school=1, free_school_count=2,
                activities=[
                    ObserverDayLog(
                        activity_date=date(1999, 5, 3), activity_time="0645",
                        activity_code=1, detection_code=1, association_code=1,
                        sea_state_code=" ", fishing_days=Decimal("1"),
                        fishing_set=fishing_set,
                    ),
                    ObserverDayLog(
                        activity_date=date(1999, 5, 3), activity_time="1200",
                        activity_code=16, association_code=9,
                    ),
                ],
            )
        ],
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def source_repo() -> FakeSourceRepo:
    return FakeSourceRepo()


@pytest.fixture
def target_repo() -> FakeTargetRepo:
    return FakeTargetRepo()


@pytest.fixture
def run_config() -> RunConfig:
    return RunConfig()


@pytest.fixture
def clock():
    return lambda: FIXED_NOW


@pytest.fixture
def ps_trip() -> ObserverTrip:
    return build_purse_seine_trip()


@pytest.fixture
def make_trip():
    return build_purse_seine_trip
