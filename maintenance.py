"""
Maintenance task queue kept in step with room maintenance status.

A room whose maint_status is non-empty has one pending task describing it.
Saving the room updates or opens that task, clearing the status resolves it,
and resolving the task clears the status. Listing repairs tasks that went
stale because a room was edited without going through save_room_state.
"""
import logging

import day_utils
from db import transaction
from errors import NotFound

logger = logging.getLogger(__name__)

PENDING = "pending"
RESOLVED = "resolved"


def sync_room_task(conn, building: str, room_id: str, maint_status: str, maint_note: str = ""):
    """
    Bring the room's task in line with a freshly saved maint_status.

    Runs after the room row is committed. Returns the pending task id, or
    None when the status was cleared.
    """
    today = day_utils.get_today()
    now = day_utils.local_timestamp()

    with transaction(conn):
        if not maint_status:
            cursor = conn.execute("""
                UPDATE maintenance_tasks
                SET status = ?, resolved_date = ?, updated_at = ?
                WHERE building = ? AND room_id = ? AND status = ?
            """, (RESOLVED, today, now, building, room_id, PENDING))
            if cursor.rowcount:
                logger.info(f"Resolved {cursor.rowcount} task(s) for {building}/{room_id}")
            return None

        pending = conn.execute("""
            SELECT id FROM maintenance_tasks
            WHERE building = ? AND room_id = ? AND status = ?
            ORDER BY id DESC
            LIMIT 1
        """, (building, room_id, PENDING)).fetchone()

        if pending:
            conn.execute("""
                UPDATE maintenance_tasks
                SET type = ?, note = ?, updated_at = ?
                WHERE id = ?
            """, (maint_status, maint_note, now, pending["id"]))
            return pending["id"]

        cursor = conn.execute("""
            INSERT INTO maintenance_tasks
                (building, room_id, type, note, reported_date, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (building, room_id, maint_status, maint_note, today, PENDING, now, now))
        logger.info(f"Opened maintenance task {cursor.lastrowid} for {building}/{room_id}: {maint_status}")
        return cursor.lastrowid


def resolve_task(conn, building: str, task_id: int):
    """
    Resolve a task and clear its room's maintenance status.

    The room is cleared even when the task was already resolved. Everything
    happens in one transaction; NotFound leaves the store untouched.
    """
    today = day_utils.get_today()
    now = day_utils.local_timestamp()

    with transaction(conn):
        task = conn.execute("""
            SELECT id, room_id, status FROM maintenance_tasks
            WHERE id = ? AND building = ?
            LIMIT 1
        """, (task_id, building)).fetchone()
        if not task:
            raise NotFound("Task not found")

        if task["status"] != RESOLVED:
            conn.execute("""
                UPDATE maintenance_tasks
                SET status = ?, resolved_date = ?, updated_at = ?
                WHERE id = ?
            """, (RESOLVED, today, now, task_id))

        room_id = (task["room_id"] or "").strip()
        if room_id:
            clear_room_maintenance(conn, building, room_id, now)

    logger.info(f"Resolved maintenance task {task_id} for {building}/{room_id}")


def clear_room_maintenance(conn, building: str, room_id: str, now: str):
    conn.execute("""
        UPDATE rooms_status
        SET maint_status = '', maint_note = '', updated_at = ?
        WHERE building = ? AND room_id = ?
    """, (now, building, room_id))


def repair_task_drift(conn, building: str) -> dict:
    """
    Fix pending tasks that no longer match their room.

    Pending tasks whose room is gone or no longer has an issue are deleted;
    the rest take the room's current maint_status as their type.
    """
    now = day_utils.local_timestamp()

    removed = conn.execute("""
        DELETE FROM maintenance_tasks
        WHERE building = ?
        AND status = ?
        AND NOT EXISTS (
            SELECT 1 FROM rooms_status r
            WHERE r.building = maintenance_tasks.building
            AND r.room_id = maintenance_tasks.room_id
            AND COALESCE(r.maint_status, '') <> ''
        )
    """, (building, PENDING)).rowcount

    retyped = conn.execute("""
        UPDATE maintenance_tasks
        SET type = (
                SELECT r.maint_status FROM rooms_status r
                WHERE r.building = maintenance_tasks.building
                AND r.room_id = maintenance_tasks.room_id
            ),
            updated_at = ?
        WHERE building = ?
        AND status = ?
        AND EXISTS (
            SELECT 1 FROM rooms_status r
            WHERE r.building = maintenance_tasks.building
            AND r.room_id = maintenance_tasks.room_id
            AND COALESCE(r.maint_status, '') <> ''
            AND r.maint_status <> maintenance_tasks.type
        )
    """, (now, building, PENDING)).rowcount
    conn.commit()

    if removed or retyped:
        logger.info(f"Task drift repaired for {building}: removed={removed} retyped={retyped}")
    return {"removed": removed, "retyped": retyped}


def list_tasks(conn, building: str) -> list[dict]:
    repair_task_drift(conn, building)
    return conn.execute("""
        SELECT id, building, room_id, type, note, reported_date, resolved_date, status, updated_at
        FROM maintenance_tasks
        WHERE building = ?
        ORDER BY reported_date DESC, id DESC
    """, (building,)).fetchall()
