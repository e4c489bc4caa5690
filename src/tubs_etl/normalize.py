"""Normalization functions for Observer → TUBS trip conversion.

Lookup tables translating legacy Observer codes into TUBS reference codes/ids,
plus the date/time and answer helpers the transformer needs.

All lookup functions are total: out-of-domain input (including None) returns
None, never raises.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal


# ---------------------------------------------------------------------------
# trim
# ---------------------------------------------------------------------------

def trim(value: str | None) -> str | None:
    """Strip leading/trailing whitespace; treat empty string as None."""
    if value is None:
        return None
    v = value.strip()
    return v if v else None


def _first_char(value: str | None) -> str | None:
    v = trim(value)
    return v[0] if v else None


# ---------------------------------------------------------------------------
# GEN-6 (pollution report) tables
# ---------------------------------------------------------------------------

_GEN6_ACTIVITY = {
    1: 1,    # fishing
    2: 18,   # transshipping
    3: 18,   # bunkering
    4: 3,    # transiting
    5: 92,   # aground
    6: 15,   # drifting
    7: 2,    # searching
}

_GEN6_MATERIAL = {"P": 60, "M": 61, "W": 62, "C": 63, "F": 64, "G": 65}

_GEN6_SOURCE = {"A": 66, "B": 67, "U": 68, "L": 69, "O": 70}


def gen6_activity(value: int | None) -> int | None:
    """Vessel activity at the time of a pollution incident → reference id."""
    if value is None:
        return None
    return _GEN6_ACTIVITY.get(value)


def gen6_material(value: str | None) -> int | None:
    """Pollution material, keyed on the first (case-sensitive) character."""
    return _GEN6_MATERIAL.get(_first_char(value))


def gen6_source(value: str | None) -> int | None:
    """Pollution source, keyed on the first (case-sensitive) character."""
    return _GEN6_SOURCE.get(_first_char(value))


# ---------------------------------------------------------------------------
# Long-line line material
# ---------------------------------------------------------------------------

# Order matters: first match wins.  "MONO" is tested before "MOMO".
_LINE_MATERIALS = (
    ("MONO", "MO"),
    ("MOMO", "MO"),
    ("POLYESTER", "PR"),
    ("KUROLONG", "KR"),
    ("NYLON", "TN"),
    ("LOCK SILVER", "LS"),
    ("TARRED ROPE", "PR"),
)


def line_material(value: str | None) -> str | None:
    if trim(value) is None:
        return None
    upper = value.upper()
    for needle, code in _LINE_MATERIALS:
        if needle in upper:
            return code
    return None


# ---------------------------------------------------------------------------
# Purse-seine day log tables
# ---------------------------------------------------------------------------

_PURSE_SEINE_ACTIVITY = {
    11: 12,
    12: 13,
    13: 14,
    14: 15,
    16: 18,
    21: 19,
    22: 20,
    23: 10,
    24: 11,
    25: 16,
    26: 17,
    94: 118,
}


def purse_seine_association(value: int | None) -> int | None:
    """School association code → reference value id."""
    if value is None:
        return None
    if 1 <= value <= 8:
        return value + 20
    if value == 9:
        return 119
    return None


def purse_seine_detection(value: int | None) -> int | None:
    """Detection method code → reference value id."""
    if value is None:
        return None
    if 1 <= value <= 7:
        return value + 29
    return None


def purse_seine_activity(value: int | None) -> int | None:
    """Day log activity code → reference value id."""
    if value is None:
        return None
    if 1 <= value <= 10:
        return value
    return _PURSE_SEINE_ACTIVITY.get(value)


# ---------------------------------------------------------------------------
# GEN-1 (vessel sighting) activity letters
# ---------------------------------------------------------------------------

_GEN1_ACTIVITY = {
    1: "FI",
    2: "PF",
    3: "NF",
    4: "DF",
    5: "TG",
    6: "SG",
    7: "BG",
    8: "OG",
    9: "TR",
    10: "SR",
    11: "BR",
    12: "OR",
    13: "TG",
    14: "SG",
    15: "BG",
    16: "OG",
}


def gen1_activity(value: int | None) -> str | None:
    if value is None:
        return None
    return _GEN1_ACTIVITY.get(value)


# ---------------------------------------------------------------------------
# Vessel gear
# ---------------------------------------------------------------------------

def gear_type_for_vessel(code: str | None) -> str:
    """Observer vessel gear letter → TUBS vessel gear type.  Never None."""
    v = (trim(code) or "").upper()
    if v == "S":
        return "PS"
    if v == "L":
        return "LL"
    if v == "P":
        return "PL"
    return "OT"


# ---------------------------------------------------------------------------
# Answers and flags
# ---------------------------------------------------------------------------

def translate_answer(answer: bool | None) -> str | None:
    """True → 'Y', False → 'N', unset → None."""
    if answer is None:
        return None
    return "Y" if answer else "N"


def contains_species(percentage: Decimal | float | int | None) -> bool | None:
    """Tri-state: None stays unknown, otherwise percentage > 0."""
    if percentage is None:
        return None
    return percentage > 0


# ---------------------------------------------------------------------------
# Date + time-of-day
# ---------------------------------------------------------------------------

def combine(value: date | datetime | None, time: str | None) -> date | datetime | None:
    """Overlay an 'HHMM' time-of-day string onto a date.

    Source data keeps dates and times in separate fields.  The hour must be in
    [0, 23) and the minute in [0, 59); anything else (including a parse
    failure) returns the date unmodified.
    """
    if value is None or time is None or time == "":
        return value
    t = time.strip()
    try:
        hours = int(t[0:2])
        minutes = int(t[2:4])
    except ValueError:
        return value
    if not (0 <= hours < 23 and 0 <= minutes < 59):
        return value
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    return value.replace(hour=hours, minute=minutes)
