"""
Module: inventory_kernel.db.triggers
Responsibility: Loading, installing, and verifying database-level
    append-only triggers for ``inventory_movements``.  This is the
    database-level complement to the ORM listeners in db/immutability.py.
Architecture position: Kernel > DB.  May import from db/ only (pathlib for
    SQL file loading, sqlalchemy for execution).

Invariants enforced:
    - inventory_movements rows: no UPDATE, no DELETE (PostgreSQL and SQLite).

Failure modes:
    - PostgreSQL RAISE EXCEPTION / SQLite RAISE(ABORT) on violation,
      surfaced by SQLAlchemy as IntegrityError or OperationalError.
    - FileNotFoundError if the dialect has no SQL directory.
"""

from pathlib import Path

from sqlalchemy import bindparam, text
from sqlalchemy.engine import Engine

SQL_DIR = Path(__file__).parent / "sql"

TRIGGER_FILES = [
    "01_inventory_movement.sql",
]

DROP_FILE = "99_drop_all.sql"

ALL_TRIGGER_NAMES = [
    "trg_inventory_movement_no_update",
    "trg_inventory_movement_no_delete",
]


def _load_sql_file(dialect: str, filename: str) -> str:
    """Load SQL content from ``sql/<dialect>/<filename>``."""
    return (SQL_DIR / dialect / filename).read_text(encoding="utf-8")


def _run_script(engine: Engine, sql_content: str) -> None:
    if engine.dialect.name == "sqlite":
        # sqlite3 runs one statement per execute(); executescript() runs them all
        raw = engine.raw_connection()
        try:
            cursor = raw.cursor()
            cursor.executescript(sql_content)
            cursor.close()
        finally:
            raw.close()
        return

    with engine.begin() as conn:
        conn.exec_driver_sql(sql_content)


def install_immutability_triggers(engine: Engine) -> None:
    """
    Install database-level append-only triggers.

    Preconditions: Tables must exist (call after Base.metadata.create_all()).
    Postconditions: All triggers in ALL_TRIGGER_NAMES are installed.
        Installation is idempotent.
    """
    dialect = engine.dialect.name
    parts = []
    for filename in TRIGGER_FILES:
        parts.append(f"-- Loading: {filename}")
        parts.append(_load_sql_file(dialect, filename))
    _run_script(engine, "\n".join(parts))


def uninstall_immutability_triggers(engine: Engine) -> None:
    """
    Remove database-level append-only triggers.

    Only for tests and migrations.  Re-install immediately afterwards.
    """
    _run_script(engine, _load_sql_file(engine.dialect.name, DROP_FILE))


def get_installed_triggers(engine: Engine) -> list[str]:
    """List installed append-only triggers, sorted by name."""
    if engine.dialect.name == "sqlite":
        check_sql = (
            "SELECT name FROM sqlite_master "
            "WHERE type = 'trigger' AND name IN :names ORDER BY name"
        )
    else:
        check_sql = (
            "SELECT tgname FROM pg_trigger WHERE tgname IN :names ORDER BY tgname"
        )

    stmt = text(check_sql).bindparams(bindparam("names", expanding=True))
    with engine.connect() as conn:
        result = conn.execute(stmt, {"names": ALL_TRIGGER_NAMES})
        return [row[0] for row in result]


def triggers_installed(engine: Engine) -> bool:
    """True iff every trigger in ALL_TRIGGER_NAMES is installed."""
    return len(get_installed_triggers(engine)) == len(ALL_TRIGGER_NAMES)


def get_missing_triggers(engine: Engine) -> list[str]:
    """Triggers that should be installed but aren't."""
    installed = set(get_installed_triggers(engine))
    return sorted(set(ALL_TRIGGER_NAMES) - installed)
