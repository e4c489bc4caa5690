"""Integration test fixtures.

Applies the Observer source schema and the TUBS migrations against an
ephemeral PostgreSQL database provided by pytest-postgresql, then seeds the
TUBS code tables and one Observer purse-seine trip.
"""

from __future__ import annotations

from pathlib import Path

import psycopg
import pytest
from pytest_postgresql import factories

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).parent.parent.parent
MIGRATIONS = [
    PROJECT_ROOT / "migrations" / "observer" / "0001_observer_source.sql",
    PROJECT_ROOT / "migrations" / "tubs" / "0001_reference.sql",
    PROJECT_ROOT / "migrations" / "tubs" / "0002_trip.sql",
    PROJECT_ROOT / "migrations" / "tubs" / "0003_purse_seine.sql",
    PROJECT_ROOT / "migrations" / "tubs" / "0004_import_status.sql",
]

# ---------------------------------------------------------------------------
# pytest-postgresql process fixture
# ---------------------------------------------------------------------------

postgresql_proc = factories.postgresql_proc()
postgresql = factories.postgresql("postgresql_proc")


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

TUBS_CODES = """
INSERT INTO tubs.sea_states (code, description) VALUES
    ('1', 'calm'), ('3', 'slight');
INSERT INTO tubs.conditions (code, description) VALUES ('A0', 'alive');
INSERT INTO tubs.fates (code, description) VALUES ('RFR', 'retained');
INSERT INTO tubs.reference_values (id, code, description) VALUES
    (1, 'SET', 'fishing set'), (18, 'TRANS', 'transshipping'),
    (21, 'UNA', 'unassociated'), (30, 'BIRD', 'birds'), (119, 'OTH', 'other');
"""

OBSERVER_TRIP = """
INSERT INTO observer.field_staff (staff_code, first_name, last_name, home_country)
VALUES ('ABC', 'Ana', 'Bell', 'FJ');
INSERT INTO observer.port (port_id, name, country_code) VALUES
    ('FJSUV', 'Suva', 'FJ'), ('PGRAB', 'Rabaul', 'PG');
INSERT INTO observer.vessel
    (vessel_id, name, ffa_vid, gear_code, reg_no, c_boat_id, flag, gross_tonnage)
VALUES (77, 'Pacific Star', 'FFA77', 'S', 'R-1', 'FJ', 'FJ', 900);

INSERT INTO observer.trip
    (obstrip_id, program_id, staff_code, tripno, gear_code, vessel_id,
     dep_port, dep_date, ret_port, ret_date)
VALUES
    (501, 'PGOB', 'ABC', '99-01', 'S', 77, 'FJSUV', '1999-05-01', 'PGRAB', '1999-05-20'),
    (502, 'PGOB', 'ABC', '99-02', 'S', 77, 'PGRAB', '2000-02-01', 'FJSUV', '2000-02-25'),
    (600, 'PGOB', 'ABC', '99-03', 'L', 77, 'FJSUV', '1999-08-01', 'FJSUV', '1999-08-30'),
    (700, 'PGOB', 'ABC', '01-01', 'S', 77, 'FJSUV', '2001-01-01', 'FJSUV', '2001-01-30');

INSERT INTO observer.gen1_sighting
    (gen1_sighting_id, obstrip_id, sight_date, sight_time, action_code, s_name)
VALUES (1, 501, '1999-05-02', '1015', 13, 'Blue Fin');
INSERT INTO observer.gen1_transfer
    (gen1_transfer_id, obstrip_id, xfer_date, xfer_time, r_name, skj_c)
VALUES (1, 501, '1999-05-04', '0830', 'Carrier One', 12.5);
INSERT INTO observer.gen3 (obstrip_id, q1, q2, date1, comment1)
VALUES (501, true, false, '1999-05-05', 'engine trouble');
INSERT INTO observer.gen6_header
    (gen6_header_id, obstrip_id, rep_date, rep_time, seacond, activity_code)
VALUES (1, 501, '1999-05-06', '0600', '3', 2);
INSERT INTO observer.gen6_detail
    (gen6_detail_id, gen6_header_id, material, source, quantity)
VALUES (1, 1, 'Plastic', 'Bow', '1 bag');

INSERT INTO observer.s_day
    (s_day_id, obstrip_id, daydate, daytime, fad_fsh, sch_fsh, enteredby, inserttime)
VALUES (1, 501, '1999-05-03', '0500', 1, 2, 'JDOE', '1999-05-03 18:00');
INSERT INTO observer.s_daylog
    (s_daylog_id, s_day_id, actdate, acttime, s_act_id, det_id, sch_id, sea_id,
     fish_days, enteredby, inserttime)
VALUES
    (1, 1, '1999-05-03', '0645', 1, 1, 1, '1', 1, 'JDOE', '1999-05-03 18:00'),
    (2, 1, '1999-05-03', '1200', 16, NULL, 9, NULL, NULL, NULL, NULL);
INSERT INTO observer.s_set
    (s_set_id, s_daylog_id, set_no, ringsup, stbrail, endbrail, totcatch,
     skj_perc, bet_perc, yft_perc, enteredby, inserttime)
VALUES (1, 1, 1, '0730', '0800', '0915', 35, 80, 0, NULL, 'JDOE', '1999-05-03 18:00');
INSERT INTO observer.s_setcatch
    (s_setcatch_id, s_set_id, sp_id, cond_id, fate_id, obs_mt)
VALUES (1, 1, 'SKJ', 'A0', 'RFR', 28.0), (2, 1, 'YFT', NULL, NULL, 7.0);
INSERT INTO observer.s_lf_hdr
    (s_lf_hdr_id, s_set_id, sampletype, protocol, brail_no, fullbrails, partbrails)
VALUES (1, 1, 'B', 'G', 2, 3, 1);
INSERT INTO observer.s_lf (s_lf_id, s_lf_hdr_id, len, sample_no, sp_id)
VALUES (1, 1, 52, 1, 'SKJ'), (2, 1, 61, 2, 'SKJ');
"""


# ---------------------------------------------------------------------------
# Schema fixture
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db_conn(postgresql):
    """Return (connection, dsn) with both schemas applied and seeded.

    Each test gets a fresh schema via function scope so tests are isolated.
    The returned connection is non-autocommit, like the CLI's target connection.
    """
    dsn = (
        f"host={postgresql.info.host} "
        f"port={postgresql.info.port} "
        f"dbname={postgresql.info.dbname} "
        f"user={postgresql.info.user} "
        f"password={postgresql.info.password or ''}"
    )
    conn = psycopg.connect(dsn, autocommit=True)
    try:
        for migration in MIGRATIONS:
            conn.execute(migration.read_text(encoding="utf-8"))
        conn.execute(TUBS_CODES)
        conn.execute(OBSERVER_TRIP)
        conn.autocommit = False
        yield conn, dsn
    finally:
        conn.close()
