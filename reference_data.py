"""
Reference data: room types, maintenance categories and item categories.
"""
import logging

logger = logging.getLogger(__name__)

ROOM_TYPES = "room_types"
MAINTENANCE_CATEGORIES = "maintenance_categories"
ITEM_CATEGORIES = "item_categories"

# kind -> (table, selected columns, natural key, ORDER BY)
REFERENCE_KINDS = {
    ROOM_TYPES: ("room_types", ("id", "name", "color"), "id", "name"),
    MAINTENANCE_CATEGORIES: ("maintenance_categories", ("id", "name", "icon"), "id", "id"),
    ITEM_CATEGORIES: (
        "item_categories",
        ("id", "name", "label", "icon", "sort_order"),
        "name",
        "sort_order ASC, id ASC",
    ),
}

DEFAULT_ITEM_CATEGORIES = [
    ("เฟอร์นิเจอร์", "Furniture", "🛋️", 10),
    ("เครื่องใช้ไฟฟ้า", "Appliances", "💡", 20),
    ("ของตกแต่ง", "Decor", "🖼️", 30),
    ("อื่นๆ", "Other", "📦", 40),
]


def _kind(kind):
    try:
        return REFERENCE_KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown reference kind: {kind}")


def list_reference(conn, kind) -> list[dict]:
    table, columns, _, order_by = _kind(kind)
    return conn.execute(
        f"SELECT {', '.join(columns)} FROM {table} ORDER BY {order_by}"
    ).fetchall()


def upsert_reference(conn, kind, fields: dict):
    """
    Insert a row, or overwrite its non-key fields when the natural key exists.

    Returns the row's key (the generated id for maintenance categories).
    """
    table, columns, key, _ = _kind(kind)

    if kind == MAINTENANCE_CATEGORIES:
        cursor = conn.execute(
            "INSERT INTO maintenance_categories (name, icon) VALUES (?, ?)",
            (fields["name"], fields["icon"]),
        )
        conn.commit()
        return cursor.lastrowid

    insert_columns = [col for col in columns if col != "id" or key == "id"]
    updates = [col for col in insert_columns if col != key]
    placeholders = ", ".join("?" for _ in insert_columns)
    assignments = ", ".join(f"{col} = excluded.{col}" for col in updates)
    conn.execute(
        f"""
        INSERT INTO {table} ({', '.join(insert_columns)})
        VALUES ({placeholders})
        ON CONFLICT({key}) DO UPDATE SET {assignments}
        """,
        tuple(fields[col] for col in insert_columns),
    )
    conn.commit()
    return fields[key]


def delete_reference(conn, kind, key_value, key_column=None) -> int:
    """Delete by natural key (or `key_column`). Missing rows are a no-op."""
    table, _, key, _ = _kind(kind)
    column = key_column or key
    cursor = conn.execute(f"DELETE FROM {table} WHERE {column} = ?", (key_value,))
    conn.commit()
    return cursor.rowcount


def list_item_categories(conn) -> list[dict]:
    """List item categories, seeding the defaults into an empty table first."""
    rows = list_reference(conn, ITEM_CATEGORIES)
    if rows:
        return rows

    # A concurrent request may seed first; OR IGNORE drops the duplicates.
    conn.executemany(
        "INSERT OR IGNORE INTO item_categories (name, label, icon, sort_order) VALUES (?, ?, ?, ?)",
        DEFAULT_ITEM_CATEGORIES,
    )
    conn.commit()
    logger.info("Seeded default item categories")
    return list_reference(conn, ITEM_CATEGORIES)
