"""
Room state: the current status of each room, dated status snapshots, and
dated item inventory snapshots.

Every save is a full upsert. Callers resend unchanged fields; there is no
partial patch.
"""
import day_utils

ROOM_COLUMNS = """
    building, room_id, guest_name, type_id AS room_type, room_note,
    maint_status, maint_note, ap_installed, ap_date AS ap_install_date,
    bed_badge, room_image
"""


def _room_row(row):
    if row is None:
        return None
    row["ap_installed"] = bool(row.get("ap_installed"))
    return row


def _status_values(fields: dict) -> tuple:
    return (
        fields.get("guest_name", ""),
        fields.get("room_type", ""),
        fields.get("room_note", ""),
        fields.get("maint_status", ""),
        fields.get("maint_note", ""),
        1 if fields.get("ap_installed") else 0,
        fields.get("ap_install_date") or None,
        fields.get("bed_badge", ""),
        fields.get("room_image"),
    )


def get_room(conn, building: str, room_id: str):
    row = conn.execute(f"""
        SELECT {ROOM_COLUMNS} FROM rooms_status
        WHERE building = ? AND room_id = ?
    """, (building, room_id)).fetchone()
    return _room_row(row)


def get_rooms(conn, building: str) -> list[dict]:
    rows = conn.execute(f"""
        SELECT {ROOM_COLUMNS} FROM rooms_status
        WHERE building = ?
        ORDER BY room_id
    """, (building,)).fetchall()
    return [_room_row(row) for row in rows]


def save_room(conn, building: str, room_id: str, fields: dict):
    conn.execute("""
        INSERT INTO rooms_status
            (building, room_id, guest_name, type_id, room_note, maint_status, maint_note,
             ap_installed, ap_date, bed_badge, room_image, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(building, room_id) DO UPDATE SET
            guest_name = excluded.guest_name,
            type_id = excluded.type_id,
            room_note = excluded.room_note,
            maint_status = excluded.maint_status,
            maint_note = excluded.maint_note,
            ap_installed = excluded.ap_installed,
            ap_date = excluded.ap_date,
            bed_badge = excluded.bed_badge,
            room_image = excluded.room_image,
            updated_at = excluded.updated_at
    """, (building, room_id, *_status_values(fields), day_utils.local_timestamp()))
    conn.commit()


def get_room_snapshots(conn, building: str, snapshot_date: str) -> list[dict]:
    rows = conn.execute(f"""
        SELECT {ROOM_COLUMNS} FROM room_status_history
        WHERE building = ? AND snapshot_date = ?
        ORDER BY room_id
    """, (building, snapshot_date)).fetchall()
    return [_room_row(row) for row in rows]


def save_room_snapshot(conn, building: str, room_id: str, snapshot_date: str, fields: dict):
    conn.execute("""
        INSERT INTO room_status_history
            (building, room_id, snapshot_date, guest_name, type_id, room_note, maint_status,
             maint_note, ap_installed, ap_date, bed_badge, room_image, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT(building, room_id, snapshot_date) DO UPDATE SET
            guest_name = excluded.guest_name,
            type_id = excluded.type_id,
            room_note = excluded.room_note,
            maint_status = excluded.maint_status,
            maint_note = excluded.maint_note,
            ap_installed = excluded.ap_installed,
            ap_date = excluded.ap_date,
            bed_badge = excluded.bed_badge,
            room_image = excluded.room_image,
            updated_at = excluded.updated_at
    """, (building, room_id, snapshot_date, *_status_values(fields), day_utils.local_timestamp()))
    conn.commit()


def get_items_snapshot(conn, building: str, snapshot_date: str) -> list[dict]:
    return conn.execute("""
        SELECT room_id, items_json FROM room_items_history
        WHERE building = ? AND snapshot_date = ?
        ORDER BY room_id
    """, (building, snapshot_date)).fetchall()


def get_latest_items(conn, building: str, today=None) -> list[dict]:
    """Per room, the most recent item snapshot dated no later than today."""
    if today is None:
        today = day_utils.get_today()
    return conn.execute("""
        SELECT h.room_id, h.items_json, h.snapshot_date
        FROM room_items_history h
        JOIN (
            SELECT room_id, MAX(snapshot_date) AS max_date
            FROM room_items_history
            WHERE building = ? AND snapshot_date <= ?
            GROUP BY room_id
        ) latest
        ON h.room_id = latest.room_id
        AND h.snapshot_date = latest.max_date
        WHERE h.building = ?
        ORDER BY h.room_id
    """, (building, today, building)).fetchall()


def save_items_snapshot(conn, building: str, room_id: str, snapshot_date: str, items_json: str):
    conn.execute("""
        INSERT INTO room_items_history (building, room_id, snapshot_date, items_json, updated_at)
        VALUES (?, ?, ?, ?, ?)
        ON CONFLICT(building, room_id, snapshot_date) DO UPDATE SET
            items_json = excluded.items_json,
            updated_at = excluded.updated_at
    """, (building, room_id, snapshot_date, items_json, day_utils.local_timestamp()))
    conn.commit()
