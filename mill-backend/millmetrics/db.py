import logging
from typing import Iterable

from psycopg import sql
from psycopg_pool import ConnectionPool

from .config import settings

logger = logging.getLogger(__name__)

# start closed, we'll open in app lifespan
pool = ConnectionPool(conninfo=settings.database_url, max_size=settings.pool_max_size, open=False)


SCHEMA_STATEMENTS: Iterable[str] = (
    """
    CREATE TABLE IF NOT EXISTS yarn_realisation (
        id BIGSERIAL PRIMARY KEY,
        organisation_id TEXT NOT NULL,
        date DATE NOT NULL,
        raw_material_input NUMERIC(14, 3),
        yarn_output NUMERIC(14, 3),
        total_waste NUMERIC(14, 3),
        total_dropping NUMERIC(14, 3),
        flat_waste NUMERIC(14, 3),
        micro_dust NUMERIC(14, 3),
        contamination_collection NUMERIC(14, 3),
        ohtc_waste NUMERIC(14, 3),
        prep_fan_waste NUMERIC(14, 3),
        plant_room_waste NUMERIC(14, 3),
        ring_frame_roving_waste NUMERIC(14, 3),
        speed_frame_roving_waste NUMERIC(14, 3),
        all_dept_sweeping_waste NUMERIC(14, 3),
        comber_waste NUMERIC(14, 3),
        hard_waste NUMERIC(14, 3),
        invisible_loss NUMERIC(14, 3),
        UNIQUE (organisation_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rf_utilisation (
        id BIGSERIAL PRIMARY KEY,
        organisation_id TEXT NOT NULL,
        date DATE NOT NULL,
        allocated_spindle NUMERIC(12, 2),
        worked_spindle NUMERIC(12, 2),
        routine_maintainance NUMERIC(12, 2),
        preventive_maintainance NUMERIC(12, 2),
        mechanical_breakdown NUMERIC(12, 2),
        electrical_breakdown NUMERIC(12, 2),
        planned_maintainance NUMERIC(12, 2),
        power_failure NUMERIC(12, 2),
        labour_absentism NUMERIC(12, 2),
        labour_shortage NUMERIC(12, 2),
        labour_unrest NUMERIC(12, 2),
        doff_delay NUMERIC(12, 2),
        bobbin_shortage NUMERIC(12, 2),
        lot_count_change NUMERIC(12, 2),
        lot_count_runout NUMERIC(12, 2),
        quality_checking NUMERIC(12, 2),
        quality_deviation NUMERIC(12, 2),
        traveller_change NUMERIC(12, 2),
        UNIQUE (organisation_id, date)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS production_efficiency (
        id BIGSERIAL PRIMARY KEY,
        organisation_id TEXT NOT NULL,
        date DATE NOT NULL,
        shift INTEGER NOT NULL,
        kgs NUMERIC(14, 3),
        gps NUMERIC(10, 3),
        production_efficiency NUMERIC(6, 2),
        eup NUMERIC(6, 2),
        u_percent NUMERIC(6, 2),
        UNIQUE (organisation_id, date, shift)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS unit_per_kg (
        id BIGSERIAL PRIMARY KEY,
        organisation_id TEXT NOT NULL,
        date DATE NOT NULL,
        shift TEXT NOT NULL,
        br_carding_awes_ukg NUMERIC(10, 3),
        first_passage_ukg NUMERIC(10, 3),
        second_passage_ukg NUMERIC(10, 3),
        speed_frame_ukg NUMERIC(10, 3),
        ring_frame_ukg NUMERIC(10, 3),
        autoconer_ukg NUMERIC(10, 3),
        humidification_ukg NUMERIC(10, 3),
        compressor_ukg NUMERIC(10, 3),
        lighting_other_ukg NUMERIC(10, 3),
        UNIQUE (organisation_id, date, shift)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_yarn_realisation_org_date ON yarn_realisation(organisation_id, date)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_rf_utilisation_org_date ON rf_utilisation(organisation_id, date)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_production_efficiency_org_date ON production_efficiency(organisation_id, date)
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_unit_per_kg_org_date ON unit_per_kg(organisation_id, date)
    """,
)


def open_pool() -> None:
    if pool.closed:
        pool.open()


def close_pool() -> None:
    if not pool.closed:
        pool.close()


def set_search_path(cur) -> None:
    cur.execute(sql.SQL("SET search_path TO {}, public").format(sql.Identifier(settings.db_schema)))


def initialize_database() -> None:
    try:
        ensure_schema()
    except Exception:  # pragma: no cover - defensive guard
        logger.exception("Database initialization failed")
        raise


def ensure_schema() -> None:
    with pool.connection() as conn:
        with conn.cursor() as cur:
            cur.execute(sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(sql.Identifier(settings.db_schema)))
            set_search_path(cur)
            for statement in SCHEMA_STATEMENTS:
                cur.execute(statement)
        conn.commit()
    logger.info("Metric tables ensured in schema %s", settings.db_schema)
