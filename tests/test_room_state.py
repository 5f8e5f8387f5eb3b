import room_state


def count(conn, table):
    return conn.execute(f"SELECT COUNT(*) AS n FROM {table}").fetchone()["n"]


class TestCurrentState:

    def test_missing_room_returns_none(self, conn):
        assert room_state.get_room(conn, "B1", "101") is None

    def test_save_and_get(self, conn):
        room_state.save_room(conn, "B1", "101", {
            "guest_name": "Somchai",
            "room_type": "deluxe",
            "room_note": "late checkout",
            "maint_status": "",
            "maint_note": "",
            "ap_installed": True,
            "ap_install_date": "2026-02-01",
            "bed_badge": "K",
            "room_image": b"\x89PNG",
        })

        room = room_state.get_room(conn, "B1", "101")
        assert room["guest_name"] == "Somchai"
        assert room["room_type"] == "deluxe"
        assert room["room_note"] == "late checkout"
        assert room["ap_installed"] is True
        assert room["ap_install_date"] == "2026-02-01"
        assert room["bed_badge"] == "K"
        assert room["room_image"] == b"\x89PNG"

    def test_save_replaces_every_field(self, conn):
        room_state.save_room(conn, "B1", "101", {"guest_name": "Somchai", "bed_badge": "K", "ap_installed": True})
        room_state.save_room(conn, "B1", "101", {"guest_name": "Anan"})

        room = room_state.get_room(conn, "B1", "101")
        assert room["guest_name"] == "Anan"
        assert room["bed_badge"] == ""
        assert room["ap_installed"] is False
        assert room["ap_install_date"] is None
        assert count(conn, "rooms_status") == 1

    def test_get_rooms_filters_by_building(self, conn):
        room_state.save_room(conn, "B1", "102", {})
        room_state.save_room(conn, "B1", "101", {})
        room_state.save_room(conn, "B2", "101", {})

        rooms = room_state.get_rooms(conn, "B1")
        assert [r["room_id"] for r in rooms] == ["101", "102"]


class TestStatusSnapshots:

    def test_same_day_save_overwrites(self, conn):
        room_state.save_room_snapshot(conn, "B1", "101", "2026-03-01", {"guest_name": "Somchai"})
        room_state.save_room_snapshot(conn, "B1", "101", "2026-03-01", {"guest_name": "Anan", "maint_status": "leak"})

        rows = room_state.get_room_snapshots(conn, "B1", "2026-03-01")
        assert len(rows) == 1
        assert rows[0]["guest_name"] == "Anan"
        assert rows[0]["maint_status"] == "leak"
        assert count(conn, "room_status_history") == 1

    def test_lookup_is_exact_date(self, conn):
        room_state.save_room_snapshot(conn, "B1", "101", "2026-03-01", {"guest_name": "Somchai"})
        room_state.save_room_snapshot(conn, "B1", "101", "2026-03-02", {"guest_name": "Anan"})

        assert [r["guest_name"] for r in room_state.get_room_snapshots(conn, "B1", "2026-03-02")] == ["Anan"]
        assert room_state.get_room_snapshots(conn, "B1", "2026-03-03") == []

    def test_snapshot_does_not_touch_current_state(self, conn):
        room_state.save_room_snapshot(conn, "B1", "101", "2026-03-01", {"maint_status": "leak"})

        assert room_state.get_room(conn, "B1", "101") is None
        assert count(conn, "maintenance_tasks") == 0


class TestItemSnapshots:

    def test_same_day_save_overwrites(self, conn):
        room_state.save_items_snapshot(conn, "B1", "101", "2026-03-01", '[{"name": "chair"}]')
        room_state.save_items_snapshot(conn, "B1", "101", "2026-03-01", '[{"name": "lamp"}]')

        rows = room_state.get_items_snapshot(conn, "B1", "2026-03-01")
        assert rows == [{"room_id": "101", "items_json": '[{"name": "lamp"}]'}]

    def test_latest_items_per_room(self, conn):
        room_state.save_items_snapshot(conn, "B1", "101", "2026-03-01", "[1]")
        room_state.save_items_snapshot(conn, "B1", "101", "2026-03-04", "[4]")
        room_state.save_items_snapshot(conn, "B1", "102", "2026-03-02", "[2]")
        room_state.save_items_snapshot(conn, "B2", "101", "2026-03-05", "[5]")

        rows = room_state.get_latest_items(conn, "B1", today="2026-03-05")
        assert [(r["room_id"], r["items_json"]) for r in rows] == [("101", "[4]"), ("102", "[2]")]

    def test_latest_items_ignores_future_dates(self, conn):
        room_state.save_items_snapshot(conn, "B1", "101", "2026-03-01", "[1]")
        room_state.save_items_snapshot(conn, "B1", "101", "2026-03-09", "[9]")
        room_state.save_items_snapshot(conn, "B1", "102", "2026-03-09", "[9]")

        rows = room_state.get_latest_items(conn, "B1", today="2026-03-05")
        assert [(r["room_id"], r["items_json"]) for r in rows] == [("101", "[1]")]

    def test_items_json_stored_verbatim(self, conn):
        room_state.save_items_snapshot(conn, "B1", "101", "2026-03-01", "not json at all")

        rows = room_state.get_items_snapshot(conn, "B1", "2026-03-01")
        assert rows[0]["items_json"] == "not json at all"
