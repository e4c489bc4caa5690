"""tubs_etl.models

Staging dataclasses for both sides of the copy:

  - Observer* / source records: read-only legacy aggregate, one per trip.
  - Tubs* / target records: normalized aggregate written to the TUBS schema.
  - Reference entities shared across trips (observer, port, vessel, ...).
  - Small tagged results passed between pipeline stages.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal


# ---------------------------------------------------------------------------
# Gear discriminant
# ---------------------------------------------------------------------------

class GearType(enum.Enum):
    PURSE_SEINE = "S"
    LONG_LINE = "L"
    UNSUPPORTED = "?"

    @classmethod
    def from_code(cls, code: str | None) -> GearType:
        v = (code or "").strip().upper()
        if v == "S":
            return cls.PURSE_SEINE
        if v == "L":
            return cls.LONG_LINE
        return cls.UNSUPPORTED


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuditEntry:
    entered_by: str
    entered_at: datetime


# ---------------------------------------------------------------------------
# Source (Observer) aggregate
# ---------------------------------------------------------------------------

@dataclass
class FieldStaff:
    staff_code: str
    first_name: str | None = None
    last_name: str | None = None
    home_country: str | None = None


@dataclass
class ObserverPort:
    port_id: str
    name: str | None = None
    country_code: str | None = None


@dataclass
class ObserverVessel:
    vessel_id: int
    name: str | None = None
    ffa_vid: str | None = None
    gear_code: str | None = None
    registration_number: str | None = None
    c_boat_id: str | None = None
    flag: str | None = None
    gross_tonnage: Decimal | None = None


@dataclass
class ObserverSighting:
    sight_date: date | None = None
    sight_time: str | None = None
    latitude: str | None = None
    longitude: str | None = None
    eez_code: str | None = None
    bearing: int | None = None
    distance: Decimal | None = None
    distance_unit: str | None = None
    callsign: str | None = None
    vessel_name: str | None = None
    flag: str | None = None
    action_code: int | None = None
    comments: str | None = None
    photo_number: str | None = None


@dataclass
class ObserverTransfer:
    transfer_date: date | None = None
    transfer_time: str | None = None
    latitude: str | None = None
    longitude: str | None = None
    vessel_name: str | None = None
    flag: str | None = None
    callsign: str | None = None
    skipjack: Decimal | None = None
    yellowfin: Decimal | None = None
    bigeye: Decimal | None = None
    mixed: Decimal | None = None
    comments: str | None = None


@dataclass
class Gen3:
    """GEN-3 trip questionnaire: twenty yes/no/unset answers + three comments."""

    answers: tuple[bool | None, ...] = (None,) * 20
    date1: date | None = None
    comment1: str | None = None
    date2: date | None = None
    comment2: str | None = None
    date3: date | None = None
    comment3: str | None = None


@dataclass
class Gen6Detail:
    material: str | None = None
    source: str | None = None
    pollution_type: str | None = None
    quantity: str | None = None
    description: str | None = None


@dataclass
class Gen6Header:
    report_date: date | None = None
    report_time: str | None = None
    latitude: str | None = None
    longitude: str | None = None
    eez_code: str | None = None
    ircs: str | None = None
    vessel_name: str | None = None
    sea_state_code: str | None = None
    wind_direction: int | None = None
    wind_speed: int | None = None
    activity_code: int | None = None
    comments: str | None = None
    details: list[Gen6Detail] = field(default_factory=list)


@dataclass
class ObserverCatch:
    species_code: str | None = None
    condition_code: str | None = None
    fate_code: str | None = None
    observed_count: int | None = None
    observed_weight: Decimal | None = None
    log_count: int | None = None
    log_weight: Decimal | None = None
    comments: str | None = None
    entered_by: str | None = None
    inserted_at: datetime | None = None


@dataclass
class ObserverLengthSample:
    length: int | None = None
    sample_number: int | None = None
    species_code: str | None = None


@dataclass
class ObserverLengthHeader:
    sample_type: str | None = None
    protocol_code: str | None = None
    brail_number: int | None = None
    full_brail_count: int | None = None
    partial_brail_count: int | None = None
    samples: list[ObserverLengthSample] = field(default_factory=list)
    entered_by: str | None = None
    inserted_at: datetime | None = None


@dataclass
class ObserverSet:
    set_number: int | None = None
    rings_up_time: str | None = None
    begin_brailing_time: str | None = None
    end_brailing_time: str | None = None
    tonnage_on_board_observer: Decimal | None = None
    tonnage_on_board_log: Decimal | None = None
    tonnage_this_set_observer: Decimal | None = None
    tonnage_this_set_log: Decimal | None = None
    sum_of_brail_1: Decimal | None = None
    sum_of_brail_2: Decimal | None = None
    total_catch: Decimal | None = None
    skipjack_percentage: Decimal | None = None
    bigeye_percentage: Decimal | None = None
    yellowfin_percentage: Decimal | None = None
    comments: str | None = None
    catch: list[ObserverCatch] = field(default_factory=list)
    length_headers: list[ObserverLengthHeader] = field(default_factory=list)
    entered_by: str | None = None
    inserted_at: datetime | None = None


@dataclass
class ObserverDayLog:
    activity_date: date | None = None
    activity_time: str | None = None
    utc_activity_date: date | None = None
    utc_activity_time: str | None = None
    activity_code: int | None = None
    detection_code: int | None = None
    association_code: int | None = None
    beacon: str | None = None
    comments: str | None = None
    eez_code: str | None = None
    latitude: str | None = None
    longitude: str | None = None
    sea_state_code: str | None = None
    wind_direction: int | None = None
    wind_speed: int | None = None
    fishing_days: Decimal | None = None
    fishing_set: ObserverSet | None = None
    entered_by: str | None = None
    inserted_at: datetime | None = None


@dataclass
class ObserverFishingDay:
    day_date: date | None = None
    day_time: str | None = None
    utc_date: date | None = None
    utc_time: str | None = None
    anchored_with_school: int | None = None
    anchored_without_school: int | None = None
    floating_with_school: int | None = None
    floating_without_school: int | None = None
    free_school_count: int | None = None
    activities: list[ObserverDayLog] = field(default_factory=list)
    entered_by: str | None = None
    inserted_at: datetime | None = None


@dataclass
class ObserverTrip:
    trip_id: int
    gear: GearType
    program_code: str | None = None
    staff_code: str | None = None
    trip_number: str | None = None
    observer: FieldStaff | None = None
    departure_date: date | None = None
    departure_port: ObserverPort | None = None
    return_date: date | None = None
    return_port: ObserverPort | None = None
    vessel: ObserverVessel | None = None
    sightings: list[ObserverSighting] = field(default_factory=list)
    transfers: list[ObserverTransfer] = field(default_factory=list)
    gen3: Gen3 | None = None
    pollution_reports: list[Gen6Header] = field(default_factory=list)
    fishing_days: list[ObserverFishingDay] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Reference entities (TUBS)
# ---------------------------------------------------------------------------

@dataclass
class Observer:
    staff_code: str
    first_name: str | None = None
    family_name: str | None = None
    nationality_country_code: str | None = None
    id: int | None = None


@dataclass
class Port:
    port_id: str
    name: str | None = None
    country_code: str | None = None


@dataclass
class Vessel:
    vessel_id: int
    name: str | None = None
    ffa_id: str | None = None
    gear_type: str | None = None
    registration_number: str | None = None
    in_country_code: str | None = None
    registered_country_code: str | None = None
    gross_tonnage: Decimal | None = None
    vessel_curst_id: int | None = None
    audit: AuditEntry | None = None


@dataclass
class SeaState:
    code: str
    description: str | None = None


@dataclass
class Condition:
    code: str
    description: str | None = None


@dataclass
class Fate:
    code: str
    description: str | None = None


@dataclass
class ReferenceValue:
    id: int
    code: str | None = None
    description: str | None = None


# ---------------------------------------------------------------------------
# Target (TUBS) aggregate
# ---------------------------------------------------------------------------

@dataclass
class TubsSighting:
    sighting_date: date | datetime | None
    latitude: str | None
    longitude: str | None
    eez_code: str | None
    bearing: int | None
    distance: Decimal | None
    distance_unit: str | None
    ircs: str | None
    vessel_name: str | None
    registered_country_code: str | None
    action_code: str | None
    comments: str | None
    photo_number: str | None
    audit: AuditEntry


@dataclass
class TubsTransfer:
    transfer_date: date | datetime | None
    latitude: str | None
    longitude: str | None
    vessel_name: str | None
    registered_country_code: str | None
    ircs: str | None
    skipjack_transferred: Decimal | None
    yellowfin_transferred: Decimal | None
    bigeye_transferred: Decimal | None
    misc_transferred: Decimal | None
    comments: str | None
    audit: AuditEntry


@dataclass
class TubsTripReport:
    answers: tuple[str | None, ...]
    first_comment_date: date | None
    first_comment: str | None
    second_comment_date: date | None
    second_comment: str | None
    third_comment_date: date | None
    third_comment: str | None
    audit: AuditEntry


@dataclass
class TubsPollutionDetail:
    material: str | None
    pollution_type: str | None
    quantity: str | None
    description: str | None
    material_id: int | None
    source_id: int | None


@dataclass
class TubsPollutionReport:
    report_date: date | datetime | None
    latitude: str | None
    longitude: str | None
    eez_code: str | None
    ircs: str | None
    vessel_name: str | None
    sea_state: SeaState | None
    wind_direction: int | None
    wind_speed: int | None
    vessel_activity: ReferenceValue | None
    comments: str | None
    details: list[TubsPollutionDetail]
    audit: AuditEntry


@dataclass
class TubsCatch:
    species_code: str | None
    condition: Condition | None
    fate: Fate | None
    observed_count: int | None
    observed_weight: Decimal | None
    log_count: int | None
    log_weight: Decimal | None
    comments: str | None
    audit: AuditEntry


@dataclass
class TubsBrail:
    brail_number: int | None
    full_brail_count: int | None
    partial_brail_count: int | None
    audit: AuditEntry


@dataclass
class TubsLengthSample:
    length: int | None
    sample_number: int | None
    species_code: str | None
    audit: AuditEntry


@dataclass
class TubsLengthHeader:
    sample_type: str | None
    protocol_code: str | None
    brails: list[TubsBrail]
    samples: list[TubsLengthSample]
    audit: AuditEntry


@dataclass
class TubsFishingSet:
    set_number: int | None
    skiff_off: date | datetime | None
    rings_up: date | datetime | None
    begin_brailing: date | datetime | None
    end_brailing: date | datetime | None
    tonnage_on_board_observer: Decimal | None
    tonnage_on_board_log: Decimal | None
    tonnage_this_set_observer: Decimal | None
    tonnage_this_set_log: Decimal | None
    sum_of_brail_1: Decimal | None
    sum_of_brail_2: Decimal | None
    total_catch: Decimal | None
    skipjack_percentage: Decimal | None
    contains_skipjack: bool | None
    bigeye_percentage: Decimal | None
    contains_bigeye: bool | None
    yellowfin_percentage: Decimal | None
    contains_yellowfin: bool | None
    comments: str | None
    catch: list[TubsCatch]
    length_headers: list[TubsLengthHeader]
    audit: AuditEntry


@dataclass
class TubsActivity:
    local_time: date | datetime | None
    utc_time: date | datetime | None
    activity_type: ReferenceValue | None
    detection_method: ReferenceValue | None
    association_type: ReferenceValue | None
    beacon: str | None
    comments: str | None
    eez_code: str | None
    latitude: str | None
    longitude: str | None
    sea_state: SeaState | None
    wind_direction: int | None
    wind_speed: int | None
    fishing_days: Decimal | None
    fishing_set: TubsFishingSet | None
    audit: AuditEntry


@dataclass
class TubsDay:
    start_of_day: date | datetime | None
    utc_start_of_day: date | datetime | None
    anchored_with_school: int | None
    anchored_without_school: int | None
    floating_with_school: int | None
    floating_without_school: int | None
    free_school_count: int | None
    activities: list[TubsActivity]
    audit: AuditEntry


@dataclass
class TubsTrip:
    gear: GearType
    program_code: str | None
    staff_code: str | None
    observer: Observer | None
    trip_number: str | None
    departure_date: date | None
    departure_port: Port | None
    return_date: date | None
    return_port: Port | None
    vessel: Vessel | None
    audit: AuditEntry
    sightings: list[TubsSighting] = field(default_factory=list)
    transfers: list[TubsTransfer] = field(default_factory=list)
    trip_report: TubsTripReport | None = None
    pollution_reports: list[TubsPollutionReport] = field(default_factory=list)
    days: list[TubsDay] = field(default_factory=list)
    id: int | None = None


# ---------------------------------------------------------------------------
# Import status
# ---------------------------------------------------------------------------

STATUS_SUCCESS = "S"
STATUS_FAILURE = "F"


@dataclass
class ImportStatusRecord:
    source_id: str
    source_name: str
    audit: AuditEntry
    status: str = STATUS_FAILURE  # assume the import fails until it doesn't
    trip_id: int | None = None
    comments: str | None = None

    @property
    def is_success(self) -> bool:
        return (self.status or "").upper() == STATUS_SUCCESS


# ---------------------------------------------------------------------------
# Stage results
# ---------------------------------------------------------------------------

class Outcome(enum.Enum):
    PROCEED = "proceed"
    SKIP = "skip"
    FOUND = "found"
    CREATED = "created"
    FAILED = "failed"
    FETCHED = "fetched"
    CONVERTED = "converted"
    NOT_IMPLEMENTED = "not_implemented"


@dataclass(frozen=True)
class DedupDecision:
    outcome: Outcome
    source_id: str | None = None

    @classmethod
    def proceed(cls, source_id: str) -> DedupDecision:
        return cls(Outcome.PROCEED, source_id)

    @classmethod
    def skip(cls) -> DedupDecision:
        return cls(Outcome.SKIP)

    @property
    def should_proceed(self) -> bool:
        return self.outcome is Outcome.PROCEED


@dataclass(frozen=True)
class FetchResult:
    outcome: Outcome
    trip: ObserverTrip | None = None
    reason: str | None = None

    @classmethod
    def fetched(cls, trip: ObserverTrip) -> FetchResult:
        return cls(Outcome.FETCHED, trip=trip)

    @classmethod
    def skip(cls, reason: str) -> FetchResult:
        return cls(Outcome.SKIP, reason=reason)

    @classmethod
    def not_implemented(cls, reason: str) -> FetchResult:
        return cls(Outcome.NOT_IMPLEMENTED, reason=reason)


@dataclass(frozen=True)
class TransformResult:
    outcome: Outcome
    trip: TubsTrip | None = None
    reason: str | None = None

    @classmethod
    def converted(cls, trip: TubsTrip) -> TransformResult:
        return cls(Outcome.CONVERTED, trip=trip)

    @classmethod
    def skip(cls, reason: str) -> TransformResult:
        return cls(Outcome.SKIP, reason=reason)

    @classmethod
    def not_implemented(cls, trip: TubsTrip, reason: str) -> TransformResult:
        return cls(Outcome.NOT_IMPLEMENTED, trip=trip, reason=reason)


@dataclass(frozen=True)
class ReconcileResult:
    outcome: Outcome
    entity: Observer | Port | Vessel | None = None
    reason: str | None = None

    @classmethod
    def found(cls, entity) -> ReconcileResult:
        return cls(Outcome.FOUND, entity=entity)

    @classmethod
    def created(cls, entity) -> ReconcileResult:
        return cls(Outcome.CREATED, entity=entity)

    @classmethod
    def failed(cls, reason: str) -> ReconcileResult:
        return cls(Outcome.FAILED, reason=reason)

    @property
    def ok(self) -> bool:
        return self.outcome is not Outcome.FAILED
