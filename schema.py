"""
Schema migrations and history retention for the Room Status Tracker.

Migrations are numbered and applied in order; the applied version is kept in
the schema_version table.
"""
import logging

import day_utils

logger = logging.getLogger(__name__)

CURRENT_SCHEMA_VERSION = 3


def ensure_schema_version_table(conn):
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER NOT NULL
        )
        """
    )
    row = conn.execute("SELECT version FROM schema_version").fetchone()
    if row is None:
        conn.execute("INSERT INTO schema_version (version) VALUES (0)")
        conn.commit()


def get_schema_version(conn):
    row = conn.execute("SELECT version FROM schema_version").fetchone()
    if row is None:
        raise RuntimeError("schema_version table is empty or missing")
    version = row["version"] if isinstance(row, dict) else row[0]
    try:
        return int(version)
    except (TypeError, ValueError):
        raise RuntimeError("schema_version is invalid")


def set_schema_version(conn, version: int):
    conn.execute("UPDATE schema_version SET version = ?", (version,))
    conn.commit()


def column_exists(conn, table: str, column: str) -> bool:
    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
    names = [row["name"] if isinstance(row, dict) else row[1] for row in rows]
    return column in names


def migration_1(conn):
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS room_types (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            color TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS maintenance_categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            icon TEXT NOT NULL
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS item_categories (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            label TEXT NOT NULL,
            icon TEXT NOT NULL,
            sort_order INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMP DEFAULT (datetime('now','localtime'))
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS rooms_status (
            building TEXT NOT NULL,
            room_id TEXT NOT NULL,
            guest_name TEXT DEFAULT '',
            type_id TEXT DEFAULT '',
            maint_status TEXT DEFAULT '',
            maint_note TEXT,
            ap_installed INTEGER DEFAULT 0,
            ap_date TEXT,
            bed_badge TEXT DEFAULT '',
            updated_at TIMESTAMP DEFAULT (datetime('now','localtime'))
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS room_status_history (
            building TEXT NOT NULL,
            room_id TEXT NOT NULL,
            snapshot_date TEXT NOT NULL,
            guest_name TEXT DEFAULT '',
            type_id TEXT DEFAULT '',
            maint_status TEXT DEFAULT '',
            maint_note TEXT,
            ap_installed INTEGER DEFAULT 0,
            ap_date TEXT,
            bed_badge TEXT DEFAULT '',
            updated_at TIMESTAMP DEFAULT (datetime('now','localtime')),
            PRIMARY KEY (building, room_id, snapshot_date)
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS room_items_history (
            building TEXT NOT NULL,
            room_id TEXT NOT NULL,
            snapshot_date TEXT NOT NULL,
            items_json TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT (datetime('now','localtime')),
            PRIMARY KEY (building, room_id, snapshot_date)
        )
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS maintenance_tasks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            building TEXT NOT NULL,
            room_id TEXT NOT NULL,
            type TEXT NOT NULL,
            note TEXT,
            reported_date TEXT NOT NULL,
            resolved_date TEXT,
            status TEXT CHECK(status IN ('pending','resolved')) NOT NULL DEFAULT 'pending',
            created_at TIMESTAMP DEFAULT (datetime('now','localtime')),
            updated_at TIMESTAMP DEFAULT (datetime('now','localtime'))
        )
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS idx_maint_building_status ON maintenance_tasks(building, status)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_maint_building_room ON maintenance_tasks(building, room_id)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_maint_reported ON maintenance_tasks(reported_date)")
    conn.commit()


def migration_2(conn):
    # Upserts on rooms_status rely on this key.
    conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS uniq_building_room ON rooms_status(building, room_id)")
    for table in ("rooms_status", "room_status_history"):
        if not column_exists(conn, table, "room_note"):
            conn.execute(f"ALTER TABLE {table} ADD COLUMN room_note TEXT")
            logger.info(f"Added room_note column to {table}")
    conn.commit()


def migration_3(conn):
    for table in ("rooms_status", "room_status_history"):
        if not column_exists(conn, table, "room_image"):
            conn.execute(f"ALTER TABLE {table} ADD COLUMN room_image BLOB")
            logger.info(f"Added room_image column to {table}")
    conn.commit()


def run_migrations(conn, current_version: int):
    if current_version > CURRENT_SCHEMA_VERSION:
        raise RuntimeError("schema_version is newer than this codebase")

    migrations = {
        1: migration_1,
        2: migration_2,
        3: migration_3,
    }

    version = current_version
    while version < CURRENT_SCHEMA_VERSION:
        next_version = version + 1
        migration = migrations.get(next_version)
        if not migration:
            raise RuntimeError(f"Missing migration for version {next_version}")
        migration(conn)
        set_schema_version(conn, next_version)
        logger.info(f"Schema migrated to version {next_version}")
        version = next_version


def init_schema(conn):
    ensure_schema_version_table(conn)
    run_migrations(conn, get_schema_version(conn))


def prune_history(conn, today=None) -> dict:
    """
    Delete snapshots older than the retention window and old resolved tasks.

    Pending tasks are never pruned: the room still carries the issue.
    Returns the number of rows removed per table.
    """
    snapshot_cutoff = day_utils.retention_cutoff(day_utils.SNAPSHOT_RETENTION_DAYS, today)
    task_cutoff = day_utils.retention_cutoff(day_utils.RESOLVED_TASK_RETENTION_DAYS, today)

    removed = {}
    removed["room_status_history"] = conn.execute(
        "DELETE FROM room_status_history WHERE snapshot_date < ?", (snapshot_cutoff,)
    ).rowcount
    removed["room_items_history"] = conn.execute(
        "DELETE FROM room_items_history WHERE snapshot_date < ?", (snapshot_cutoff,)
    ).rowcount
    # Resolved tasks age from the day they were resolved
    removed["maintenance_tasks"] = conn.execute("""
        DELETE FROM maintenance_tasks
        WHERE status = 'resolved'
        AND COALESCE(resolved_date, reported_date) < ?
    """, (task_cutoff,)).rowcount
    conn.commit()

    if any(removed.values()):
        logger.info(f"Pruned history: {removed}")
    return removed
