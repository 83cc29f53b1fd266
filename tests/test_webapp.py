"""Tests for the HTTP API."""

import unittest
from datetime import datetime, timedelta

from fastapi.testclient import TestClient

from fakes import FakeClock, ScriptedProbe

from space_tracker.config import TrackerSettings
from space_tracker.service import TrackerService
from space_tracker.webapp import create_app


class TestWebApp(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock(datetime(2026, 3, 10, 9, 0, 0))
        self.probe = ScriptedProbe("Code")
        self.service = TrackerService(
            ":memory:",
            TrackerSettings(flush_interval=timedelta(0)),
            probe=self.probe,
            clock=self.clock,
        )
        self.client = TestClient(create_app(service=self.service, start_ticking=False))

    def tearDown(self):
        self.service.close()

    def create_space(self, name, apps=()):
        response = self.client.post("/api/spaces", json={"name": name})
        self.assertEqual(response.status_code, 201)
        space = response.json()["space"]
        for app in apps:
            self.client.post(f"/api/spaces/{space['id']}/apps", json={"app_name": app})
        return space

    def test_status(self):
        body = self.client.get("/api/status").json()
        self.assertFalse(body["tracker_running"])
        self.assertEqual(body["tick_seconds"], 1.0)
        self.assertIn("revision", body)

    def test_space_lifecycle(self):
        space = self.create_space("Work", ["Code"])
        self.assertEqual(space["apps"], [])

        listed = self.client.get("/api/spaces").json()["spaces"]
        self.assertEqual(listed[0]["apps"], ["Code"])

        updated = self.client.put(
            f"/api/spaces/{space['id']}",
            json={"name": "Deep Work", "apps": ["Code", "Terminal"], "color": "#ffffff"},
        ).json()["spaces"]
        self.assertEqual(updated[0]["name"], "Deep Work")
        self.assertEqual(updated[0]["apps"], ["Code", "Terminal"])

        remaining = self.client.delete(f"/api/spaces/{space['id']}").json()["spaces"]
        self.assertEqual(remaining, [])

    def test_validation_and_not_found(self):
        self.assertEqual(
            self.client.post("/api/spaces", json={"name": "  "}).status_code, 400
        )
        self.assertEqual(self.client.delete("/api/spaces/nope").status_code, 404)
        self.assertEqual(self.client.post("/api/spaces/nope/toggle").status_code, 404)
        self.assertEqual(
            self.client.put(
                "/api/spaces/nope", json={"name": "X", "apps": [], "color": "#000"}
            ).status_code,
            404,
        )

    def test_toggle_and_session(self):
        space = self.create_space("Work", ["Code"])
        body = self.client.post(f"/api/spaces/{space['id']}/toggle").json()
        self.assertTrue(body["is_active"])
        self.assertFalse(body["dnd_reminder"])

        for _ in range(3):
            self.service.engine.tick()

        session = self.client.get("/api/session").json()
        self.assertEqual(
            session,
            {"space_id": space["id"], "session_duration": 3, "is_tracking": True},
        )

        again = self.client.post(
            f"/api/spaces/{space['id']}/toggle", json={"active": True}
        ).json()
        self.assertTrue(again["is_active"])
        self.assertEqual(self.client.get("/api/session").json()["session_duration"], 3)

        stopped = self.client.post("/api/tracking/stop").json()
        self.assertFalse(stopped["is_tracking"])

    def test_entries_today_stats_and_analytics(self):
        space = self.create_space("Work", ["Code"])
        self.client.post(f"/api/spaces/{space['id']}/toggle")
        for _ in range(5):
            self.service.engine.tick()

        entries = self.client.get("/api/entries", params={"space_id": space["id"]}).json()
        self.assertEqual(
            entries["entries"],
            [
                {
                    "space_id": space["id"],
                    "app_name": "Code",
                    "date": "2026-03-10",
                    "duration": 5,
                }
            ],
        )
        self.assertEqual(
            self.client.get("/api/entries", params={"date_from": "2026-03-11"}).json(),
            {"entries": []},
        )
        self.assertEqual(
            self.client.get("/api/entries", params={"date_from": "10/03/2026"}).status_code,
            400,
        )

        stats = self.client.get("/api/stats/today").json()
        self.assertEqual(stats, {"date": "2026-03-10", "apps": {"Code": 5}})

        week = self.client.get("/api/analytics", params={"range": "week"}).json()
        self.assertEqual(len(week["by_date"]), 7)
        self.assertEqual(week["totals"]["total_seconds"], 5)
        self.assertAlmostEqual(week["totals"]["daily_average_seconds"], 5 / 7)
        self.assertEqual(week["by_app"], [{"app_name": "Code", "seconds": 5}])

        self.assertEqual(
            self.client.get("/api/analytics", params={"range": "year"}).status_code, 400
        )
        self.assertEqual(
            self.client.get("/api/analytics", params={"space_id": "nope"}).status_code,
            404,
        )

    def test_entry_dates_must_be_zero_padded(self):
        for value in ("2026-3-1", "2026-03-1", "26-03-01", "2026-13-01", "2026-02-30"):
            for param in ("date_from", "date_to"):
                response = self.client.get("/api/entries", params={param: value})
                self.assertEqual(response.status_code, 400, (param, value))
        response = self.client.get(
            "/api/entries", params={"date_from": "2026-03-01", "date_to": "2026-03-31"}
        )
        self.assertEqual(response.status_code, 200)

    def test_settings_round_trip(self):
        self.assertEqual(
            self.client.get("/api/settings").json(),
            {"enable_dnd": False, "muted_apps": []},
        )
        saved = self.client.put(
            "/api/settings",
            json={"enable_dnd": True, "muted_apps": ["Slack", " Slack ", "", "Mail"]},
        ).json()
        self.assertEqual(saved, {"enable_dnd": True, "muted_apps": ["Slack", "Mail"]})
        self.assertEqual(self.client.get("/api/settings").json(), saved)

        space = self.create_space("Work", ["Code"])
        body = self.client.post(f"/api/spaces/{space['id']}/toggle").json()
        self.assertTrue(body["dnd_reminder"])

    def test_extra_fields_rejected(self):
        response = self.client.post("/api/spaces", json={"name": "Work", "bogus": 1})
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":
    unittest.main()
