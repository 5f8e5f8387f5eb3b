"""
Room Status Tracker
Housekeeping reference for hotel room state and maintenance follow-up.

A single JSON endpoint (/api) dispatches on an `action` parameter:
- Reference data: room types, maintenance categories, item categories
- Current room state, with an optional room photo
- Daily room and item snapshots for historical lookup
- Maintenance tasks kept in sync with room maintenance status
"""
import os
import sqlite3
import json
import logging

from dotenv import load_dotenv
from flask import Flask, request, jsonify
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

import day_utils
import maintenance
import reference_data
import room_state
import schema
from db import Database, get_connection, get_db
from errors import ApiError, StoreError, ValidationError
from room_images import decode_room_image, encode_room_image

# Load environment variables from .env file
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(os.environ.get("LOG_FILE") or 'app.log'),
        logging.StreamHandler()
    ]
)
logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DB_PATH = os.environ.get("DB_PATH") or os.path.join(BASE_DIR, "rooms.db")
DB_TIMEOUT = float(os.environ.get("DB_TIMEOUT", "10"))
MAX_CONTENT_LENGTH_MB = int(os.environ.get("MAX_CONTENT_LENGTH_MB", "16"))
RATELIMIT_DEFAULT = os.environ.get("RATELIMIT_DEFAULT", "1000 per hour")

TRUE_VALUES = {"1", "true", "yes", "on"}

# action name -> handler(conn, params) returning the response payload
ACTIONS = {}


def action(name):
    def register(handler):
        ACTIONS[name] = handler
        return handler
    return register


# Request parameter helpers
def get_params() -> dict:
    """Merge query/form values with the JSON body; JSON wins."""
    params = request.values.to_dict()
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        params.update({k: v for k, v in body.items() if v is not None})
    return params


def text_param(params: dict, name: str, default: str = "") -> str:
    value = params.get(name)
    if value is None:
        return default
    return str(value).strip()


def int_param(params: dict, name: str, default: int = 0) -> int:
    try:
        return int(str(params.get(name, default)).strip())
    except (TypeError, ValueError):
        return default


def flag_param(params: dict, name: str) -> bool:
    value = params.get(name)
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in TRUE_VALUES


def require(params: dict, names, message: str) -> list[str]:
    values = [text_param(params, name) for name in names]
    if not all(values):
        raise ValidationError(message)
    return values


def date_param(params: dict, name: str, required: bool = True):
    raw = text_param(params, name)
    if not raw and not required:
        return None
    parsed = day_utils.parse_date(raw)
    if parsed is None:
        raise ValidationError(f"Invalid {name}")
    return parsed.isoformat()


def status_fields(params: dict) -> dict:
    return {
        "guest_name": text_param(params, "guest_name"),
        "room_type": text_param(params, "room_type"),
        "room_note": text_param(params, "room_note"),
        "maint_status": text_param(params, "maint_status"),
        "maint_note": text_param(params, "maint_note"),
        "ap_installed": flag_param(params, "ap_installed"),
        "ap_install_date": date_param(params, "ap_install_date", required=False),
        "bed_badge": text_param(params, "bed_badge"),
        "room_image": decode_room_image(params.get("room_image")),
    }


def with_image(row):
    if row is not None:
        row["room_image"] = encode_room_image(row.get("room_image"))
    return row


# Reference data
@action("get_room_types")
def get_room_types(conn, params):
    return {"room_types": reference_data.list_reference(conn, reference_data.ROOM_TYPES)}


@action("add_room_type")
def add_room_type(conn, params):
    type_id, name, color = require(params, ("id", "name", "color"), "Missing room type fields")
    reference_data.upsert_reference(conn, reference_data.ROOM_TYPES, {"id": type_id, "name": name, "color": color})
    return {"id": type_id}


@action("delete_room_type")
def delete_room_type(conn, params):
    (type_id,) = require(params, ("id",), "Missing id")
    reference_data.delete_reference(conn, reference_data.ROOM_TYPES, type_id)
    return {}


@action("get_maintenance_categories")
def get_maintenance_categories(conn, params):
    return {
        "maintenance_categories": reference_data.list_reference(conn, reference_data.MAINTENANCE_CATEGORIES)
    }


@action("add_maintenance_category")
def add_maintenance_category(conn, params):
    name, icon = require(params, ("name", "icon"), "Missing maintenance category fields")
    category_id = reference_data.upsert_reference(
        conn, reference_data.MAINTENANCE_CATEGORIES, {"name": name, "icon": icon}
    )
    return {"id": category_id}


@action("delete_maintenance_category")
def delete_maintenance_category(conn, params):
    category_id = int_param(params, "id")
    if category_id > 0:
        reference_data.delete_reference(conn, reference_data.MAINTENANCE_CATEGORIES, category_id)
        return {}
    (name,) = require(params, ("name",), "Missing id or name")
    reference_data.delete_reference(conn, reference_data.MAINTENANCE_CATEGORIES, name, key_column="name")
    return {}


@action("get_item_categories")
def get_item_categories(conn, params):
    return {"item_categories": reference_data.list_item_categories(conn)}


@action("add_item_category")
def add_item_category(conn, params):
    name, label, icon = require(params, ("name", "label", "icon"), "Missing item category fields")
    reference_data.upsert_reference(conn, reference_data.ITEM_CATEGORIES, {
        "name": name,
        "label": label,
        "icon": icon,
        "sort_order": int_param(params, "sort_order"),
    })
    return {}


@action("delete_item_category")
def delete_item_category(conn, params):
    (name,) = require(params, ("name",), "Missing item category name")
    reference_data.delete_reference(conn, reference_data.ITEM_CATEGORIES, name)
    return {}


# Room state
@action("get_room_state")
def get_room_state(conn, params):
    building, room_id = require(params, ("building", "room_id"), "Missing building or room_id")
    return {"room": with_image(room_state.get_room(conn, building, room_id))}


@action("get_all_room_states")
def get_all_room_states(conn, params):
    (building,) = require(params, ("building",), "Missing building")
    return {"rooms": [with_image(row) for row in room_state.get_rooms(conn, building)]}


@action("save_room_state")
def save_room_state(conn, params):
    building, room_id = require(params, ("building", "room_id"), "Missing building or room_id")
    fields = status_fields(params)
    room_state.save_room(conn, building, room_id, fields)

    # The room row is committed; a failed task sync is reported but not undone.
    try:
        maintenance.sync_room_task(conn, building, room_id, fields["maint_status"], fields["maint_note"])
    except sqlite3.Error as e:
        logger.exception(f"Maintenance sync failed for {building}/{room_id}")
        raise StoreError("Room saved but maintenance sync failed") from e
    return {}


# Snapshots
@action("get_room_snapshots")
def get_room_snapshots(conn, params):
    require(params, ("building", "snapshot_date"), "Missing building or snapshot_date")
    building = text_param(params, "building")
    snapshot_date = date_param(params, "snapshot_date")
    rows = room_state.get_room_snapshots(conn, building, snapshot_date)
    return {"rooms": [with_image(row) for row in rows]}


@action("save_room_snapshot")
def save_room_snapshot(conn, params):
    building, room_id, _ = require(
        params, ("building", "room_id", "snapshot_date"), "Missing building, room_id or snapshot_date"
    )
    snapshot_date = date_param(params, "snapshot_date")
    room_state.save_room_snapshot(conn, building, room_id, snapshot_date, status_fields(params))
    return {}


@action("get_room_items")
def get_room_items(conn, params):
    (building,) = require(params, ("building",), "Missing building")
    return {"items": room_state.get_latest_items(conn, building, day_utils.get_today())}


@action("get_room_items_snapshot")
def get_room_items_snapshot(conn, params):
    require(params, ("building", "snapshot_date"), "Missing building or snapshot_date")
    building = text_param(params, "building")
    snapshot_date = date_param(params, "snapshot_date")
    return {"items": room_state.get_items_snapshot(conn, building, snapshot_date)}


@action("save_room_items_snapshot")
def save_room_items_snapshot(conn, params):
    building, room_id, _ = require(
        params, ("building", "room_id", "snapshot_date"), "Missing building, room_id or snapshot_date"
    )
    snapshot_date = date_param(params, "snapshot_date")
    items_json = params.get("items_json", "[]")
    if not isinstance(items_json, str):
        items_json = json.dumps(items_json, ensure_ascii=False)
    room_state.save_items_snapshot(conn, building, room_id, snapshot_date, items_json)
    return {}


# Maintenance tasks
@action("get_maintenance_tasks")
def get_maintenance_tasks(conn, params):
    (building,) = require(params, ("building",), "Missing building")
    return {"tasks": maintenance.list_tasks(conn, building)}


@action("resolve_maintenance_task")
def resolve_maintenance_task(conn, params):
    task_id = int_param(params, "task_id")
    building = text_param(params, "building")
    if task_id <= 0 or not building:
        raise ValidationError("Missing task_id or building")

    try:
        maintenance.resolve_task(conn, building, task_id)
    except sqlite3.Error as e:
        logger.exception(f"Could not resolve maintenance task {task_id}")
        raise StoreError("Cannot resolve maintenance task") from e
    return {}


def create_app(test_config=None):
    app = Flask(__name__)
    app.config.update(
        DB_PATH=DB_PATH,
        DB_TIMEOUT=DB_TIMEOUT,
        MAX_CONTENT_LENGTH=MAX_CONTENT_LENGTH_MB * 1024 * 1024,
    )
    # Rate limiting
    if os.environ.get('FLASK_ENV') == 'testing':
        app.config['RATELIMIT_ENABLED'] = False
    if test_config:
        app.config.update(test_config)

    Limiter(
        key_func=get_remote_address,
        app=app,
        default_limits=[RATELIMIT_DEFAULT],
        storage_uri="memory://",
    )

    database = Database(app.config["DB_PATH"], timeout=app.config["DB_TIMEOUT"])
    database.init_app(app)
    conn = database.connect()
    try:
        schema.init_schema(conn)
    finally:
        conn.close()

    @app.before_request
    def prune_stale_history():
        """Retention sweep, at most once per hotel day."""
        db = get_db()
        today = day_utils.get_today()
        if db.last_pruned == today:
            return
        schema.prune_history(get_connection(), today)
        db.last_pruned = today

    @app.route("/api", methods=["GET", "POST"])
    def api():
        params = get_params()
        name = text_param(params, "action")
        if not name:
            raise ValidationError("Missing action")
        handler = ACTIONS.get(name)
        if handler is None:
            logger.warning(f"Unknown action requested: {name}")
            raise ValidationError("Unknown action")

        payload = handler(get_connection(), params)
        return jsonify({"ok": True, **payload})

    @app.get("/health")
    def health():
        return jsonify({"ok": True, "service": "room-status"})

    # Security headers middleware
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response.headers['Cache-Control'] = 'no-store'
        return response

    # Error handlers
    @app.errorhandler(ApiError)
    def api_error_handler(e):
        if e.status_code >= 500:
            logger.error(f"{text_param(get_params(), 'action')}: {e.message}")
        return jsonify({"ok": False, "error": e.message}), e.status_code

    @app.errorhandler(sqlite3.Error)
    def database_error_handler(e):
        logger.exception("Database error")
        return jsonify({"ok": False, "error": "Database error"}), 500

    @app.errorhandler(404)
    def not_found_handler(e):
        return jsonify({"ok": False, "error": "Not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed_handler(e):
        return jsonify({"ok": False, "error": "Method not allowed"}), 405

    @app.errorhandler(413)
    def too_large_handler(e):
        return jsonify({"ok": False, "error": "Request too large"}), 413

    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"ok": False, "error": "Too many requests. Please try again later."}), 429

    @app.errorhandler(500)
    def internal_error_handler(e):
        return jsonify({"ok": False, "error": "Internal server error"}), 500

    @app.cli.command("init-db")
    def init_db_command():
        """Apply pending schema migrations."""
        conn = database.connect()
        try:
            schema.init_schema(conn)
            print(f"OK: schema at version {schema.get_schema_version(conn)}")
        finally:
            conn.close()

    @app.cli.command("prune-history")
    def prune_history_command():
        """Delete snapshots and resolved tasks past their retention window."""
        conn = database.connect()
        try:
            removed = schema.prune_history(conn)
            print(f"OK: pruned {removed}")
        finally:
            conn.close()

    return app


if __name__ == "__main__":
    app = create_app()
    is_production = os.environ.get('FLASK_ENV') == 'production'

    if not is_production:
        logger.info(f"[DEV MODE] Database: {app.config['DB_PATH']}")
        logger.warning("[DEV MODE] Debug mode enabled - DO NOT USE IN PRODUCTION")

    # Only enable debug mode in development
    port = int(os.environ.get("PORT", "5000"))
    app.run(debug=not is_production, host='127.0.0.1', port=port)
