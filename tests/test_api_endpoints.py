"""Integration tests for API endpoints.

These tests verify API endpoints work correctly end-to-end with the clock
pinned to the `fixed_now` fixture (2024-12-01 12:00 UTC).
"""

import pytest
from datetime import datetime
from fastapi.testclient import TestClient

from helpers import utc
from pairplan.models.household_task import HouseholdTask


def _parse(value: str) -> datetime:
    """Parse an ISO timestamp from a JSON response."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _create_event(test_client: TestClient, **overrides) -> dict:
    payload = {
        "title": "Date night",
        "date": "2025-01-06T00:00:00Z",
        "start_time": "19:00",
        "end_time": "21:00",
        "period": "evening",
        "recurrence": "weekly",
    }
    payload.update(overrides)
    response = test_client.post("/events", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["event"]


def _create_task(test_client: TestClient, **overrides) -> dict:
    payload = {"title": "Water the plants", "frequency": "weekly", "due_date": "2025-01-06T00:00:00Z"}
    payload.update(overrides)
    response = test_client.post("/tasks", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["task"]


def test_health(test_client):
    response = test_client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


class TestEventEndpoints:
    """Test event CRUD and expansion endpoints."""

    def test_create_recurring_event_builds_rule(self, test_client):
        """Test POST /events derives the rule from the frequency tag."""
        event = _create_event(test_client)

        assert event["recurrence"] == "weekly"
        assert event["recurrence_rule"] == "FREQ=WEEKLY"
        assert _parse(event["date"]) == utc(2025, 1, 6)

    def test_create_biweekly_event(self, test_client):
        event = _create_event(test_client, recurrence="biweekly")
        assert event["recurrence_rule"] == "FREQ=WEEKLY;INTERVAL=2"

    def test_create_event_with_recurrence_end(self, test_client):
        event = _create_event(test_client, recurrence="daily", recurrence_end="2025-01-31T00:00:00Z")
        assert event["recurrence_rule"] == "FREQ=DAILY;UNTIL=20250131T000000Z"

    def test_create_event_with_explicit_rule(self, test_client):
        event = _create_event(test_client, recurrence="custom", recurrence_rule="FREQ=DAILY;BYDAY=MO,TH")
        assert event["recurrence_rule"] == "FREQ=DAILY;BYDAY=MO,TH"

    def test_create_one_off_event_has_no_rule(self, test_client):
        event = _create_event(test_client, recurrence="never", recurrence_rule="FREQ=DAILY")
        assert event["recurrence_rule"] is None

    def test_create_event_with_invalid_rule(self, test_client):
        response = test_client.post(
            "/events",
            json={
                "title": "Bad",
                "date": "2025-01-06T00:00:00Z",
                "start_time": "09:00",
                "end_time": "10:00",
                "period": "morning",
                "recurrence": "weekly",
                "recurrence_rule": "FREQ=HOURLY",
            },
        )
        assert response.status_code == 400
        assert "Invalid recurrence rule" in response.json()["detail"]

    def test_create_event_with_unknown_timezone(self, test_client):
        response = test_client.post(
            "/events",
            json={
                "title": "Bad zone",
                "date": "2025-01-06T00:00:00Z",
                "start_time": "09:00",
                "end_time": "10:00",
                "period": "morning",
                "timezone": "Nowhere/Special",
            },
        )
        assert response.status_code == 400

    def test_list_events_expands_window(self, test_client):
        """Test GET /events returns the definition plus its occurrences."""
        event = _create_event(test_client)

        response = test_client.get(
            "/events", params={"start": "2025-01-01T00:00:00Z", "end": "2025-01-31T00:00:00Z"}
        )
        assert response.status_code == 200
        data = response.json()

        assert data["count"] == 4
        dates = [_parse(e["date"]) for e in data["events"]]
        assert dates == [utc(2025, 1, 6), utc(2025, 1, 13), utc(2025, 1, 20), utc(2025, 1, 27)]
        assert data["events"][0]["is_recurring"] is False
        assert all(e["is_recurring"] for e in data["events"][1:])
        assert all(_parse(e["original_date"]) == utc(2025, 1, 6) for e in data["events"][1:])
        assert all(e["id"] == event["id"] for e in data["events"])

    def test_list_events_default_window(self, test_client):
        """Without bounds the window is now .. now + 3 months."""
        _create_event(test_client, recurrence="monthly")

        response = test_client.get("/events")
        assert response.status_code == 200
        dates = [_parse(e["date"]) for e in response.json()["events"]]
        # 2025-01-06 and 2025-02-06 fall before 2025-03-01 12:00; 2025-03-06 does not
        assert dates == [utc(2025, 1, 6), utc(2025, 2, 6)]

    def test_list_events_rejects_inverted_window(self, test_client):
        response = test_client.get(
            "/events", params={"start": "2025-02-01T00:00:00Z", "end": "2025-01-01T00:00:00Z"}
        )
        assert response.status_code == 400

    def test_get_event(self, test_client):
        event = _create_event(test_client)
        response = test_client.get(f"/events/{event['id']}")
        assert response.status_code == 200
        assert response.json()["event"]["title"] == "Date night"

    def test_get_nonexistent_event(self, test_client):
        assert test_client.get("/events/nonexistent-id").status_code == 404

    def test_update_title_keeps_rule(self, test_client):
        event = _create_event(test_client)
        response = test_client.put(f"/events/{event['id']}", json={"title": "Movie night"})

        assert response.status_code == 200
        updated = response.json()["event"]
        assert updated["title"] == "Movie night"
        assert updated["recurrence_rule"] == "FREQ=WEEKLY"

    def test_update_frequency_rebuilds_rule(self, test_client):
        event = _create_event(test_client)
        response = test_client.put(f"/events/{event['id']}", json={"recurrence": "daily"})

        assert response.status_code == 200
        assert response.json()["event"]["recurrence_rule"] == "FREQ=DAILY"

    def test_update_to_non_recurring_clears_rule(self, test_client):
        event = _create_event(test_client)
        response = test_client.put(f"/events/{event['id']}", json={"recurrence": "never"})

        assert response.status_code == 200
        assert response.json()["event"]["recurrence_rule"] is None

    @pytest.mark.parametrize("field", ["title", "recurrence", "date", "period"])
    def test_update_rejects_null_for_required_field(self, test_client, field):
        event = _create_event(test_client)
        response = test_client.put(f"/events/{event['id']}", json={field: None})

        assert response.status_code == 422
        assert field in response.json()["detail"]
        assert test_client.get(f"/events/{event['id']}").json()["event"]["title"] == "Date night"

    def test_update_null_clears_optional_field(self, test_client):
        event = _create_event(test_client, description="Dinner downtown")
        response = test_client.put(f"/events/{event['id']}", json={"description": None})

        assert response.status_code == 200
        assert response.json()["event"]["description"] is None

    def test_create_event_stores_timezone(self, test_client):
        event = _create_event(test_client, timezone="Europe/Berlin")
        assert event["timezone"] == "Europe/Berlin"
        assert test_client.get(f"/events/{event['id']}").json()["event"]["timezone"] == "Europe/Berlin"

    def test_create_event_without_timezone_stores_none(self, test_client):
        assert _create_event(test_client)["timezone"] is None

    def test_list_events_uses_stored_timezone(self, test_client):
        # 10:00 CET on 2025-03-29 stays 10:00 local (CEST, 08:00 UTC) the next day
        _create_event(test_client, date="2025-03-29T09:00:00Z", recurrence="daily", timezone="Europe/Berlin")

        response = test_client.get(
            "/events", params={"start": "2025-03-28T00:00:00Z", "end": "2025-03-31T00:00:00Z", "tz": "UTC"}
        )
        dates = [_parse(e["date"]) for e in response.json()["events"]]
        assert dates == [utc(2025, 3, 29, 9, 0), utc(2025, 3, 30, 8, 0)]

    def test_update_timezone(self, test_client):
        event = _create_event(test_client)
        response = test_client.put(f"/events/{event['id']}", json={"timezone": "America/New_York"})

        assert response.status_code == 200
        assert response.json()["event"]["timezone"] == "America/New_York"
        assert test_client.put(f"/events/{event['id']}", json={"timezone": "Nowhere/Special"}).status_code == 400

    def test_update_nonexistent_event(self, test_client):
        assert test_client.put("/events/nonexistent-id", json={"title": "x"}).status_code == 404

    def test_delete_event(self, test_client):
        event = _create_event(test_client)

        assert test_client.delete(f"/events/{event['id']}").status_code == 204
        assert test_client.get(f"/events/{event['id']}").status_code == 404
        assert test_client.delete(f"/events/{event['id']}").status_code == 404


class TestTaskEndpoints:
    """Test household task endpoints."""

    def test_create_task(self, test_client):
        task = _create_task(test_client)

        assert task["title"] == "Water the plants"
        assert task["completed"] is False
        assert task["overdue"] is False

    def test_create_task_past_due_is_overdue(self, test_client):
        task = _create_task(test_client, due_date="2024-11-01T00:00:00Z")
        assert task["overdue"] is True

    def test_create_task_with_invalid_rule(self, test_client):
        response = test_client.post("/tasks", json={"title": "Bad", "recurrence_rule": "INTERVAL=2"})
        assert response.status_code == 400

    def test_list_and_get_tasks(self, test_client):
        task = _create_task(test_client)
        _create_task(test_client, title="Vacuum", position=1)

        response = test_client.get("/tasks")
        assert response.status_code == 200
        assert response.json()["count"] == 2

        response = test_client.get(f"/tasks/{task['id']}")
        assert response.status_code == 200
        assert response.json()["task"]["id"] == task["id"]

    def test_get_nonexistent_task(self, test_client):
        assert test_client.get("/tasks/nonexistent-id").status_code == 404

    def test_complete_recurring_task(self, test_client, fixed_now):
        """Test PATCH /tasks/{id}/complete stores the next cycle's due date."""
        task = _create_task(test_client)

        response = test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})
        assert response.status_code == 200
        completed = response.json()["task"]

        assert completed["completed"] is True
        assert _parse(completed["completed_at"]) == fixed_now
        assert _parse(completed["next_due_date"]) == utc(2025, 1, 13)
        assert completed["overdue"] is False

    def test_uncomplete_task_clears_next_due_date(self, test_client):
        task = _create_task(test_client)
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})

        response = test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": False})
        assert response.status_code == 200
        reopened = response.json()["task"]

        assert reopened["completed"] is False
        assert reopened["completed_at"] is None
        assert reopened["next_due_date"] is None

    def test_complete_nonexistent_task(self, test_client):
        response = test_client.patch("/tasks/nonexistent-id/complete", json={"completed": True})
        assert response.status_code == 404

    def test_reactivate_due_tasks(self, test_client, task_repository, sample_task_base):
        """Test POST /tasks/reactivate reopens tasks whose next cycle has come due."""
        due = task_repository.create(
            HouseholdTask(
                **{
                    **sample_task_base,
                    "id": "due-task",
                    "frequency": "weekly",
                    "due_date": utc(2024, 11, 13),
                    "completed": True,
                    "completed_at": utc(2024, 11, 13),
                    "next_due_date": utc(2024, 11, 20),
                }
            )
        )
        task_repository.create(
            HouseholdTask(
                **{
                    **sample_task_base,
                    "id": "waiting-task",
                    "frequency": "weekly",
                    "completed": True,
                    "next_due_date": utc(2024, 12, 8),
                }
            )
        )

        response = test_client.post("/tasks/reactivate")
        assert response.status_code == 200
        data = response.json()

        assert data["count"] == 1
        reopened = data["tasks"][0]
        assert reopened["id"] == due.id
        assert reopened["completed"] is False
        assert _parse(reopened["due_date"]) == utc(2024, 11, 20)
        assert reopened["next_due_date"] is None
        assert reopened["overdue"] is True

        assert task_repository.get("waiting-task").completed is True

    def test_reactivate_with_nothing_due(self, test_client):
        task = _create_task(test_client)
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})

        response = test_client.post("/tasks/reactivate")
        assert response.status_code == 200
        assert response.json()["count"] == 0

    def test_custom_weekday_task_rolls_to_listed_weekday(self, test_client):
        # 2025-01-06 is a Monday; 3 = Wednesday
        task = _create_task(test_client, frequency="custom", weekdays=[3])
        assert task["weekdays"] == [3]

        response = test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})
        assert _parse(response.json()["task"]["next_due_date"]) == utc(2025, 1, 8)

    def test_create_task_with_weekday_out_of_range(self, test_client):
        response = test_client.post("/tasks", json={"title": "Bad", "frequency": "custom", "weekdays": [7]})
        assert response.status_code == 400


class TestTaskHistoryEndpoints:
    """Test completion history recording and retrieval."""

    def test_completion_is_recorded(self, test_client, fixed_now):
        task = _create_task(test_client, assigned_to="partner-a")
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})

        response = test_client.get(f"/tasks/{task['id']}/history")
        assert response.status_code == 200
        data = response.json()

        assert data["count"] == 1
        record = data["records"][0]
        assert record["task_id"] == task["id"]
        assert record["is_completed"] is True
        assert record["completed_by"] == "partner-a"
        assert _parse(record["completed_date"]) == fixed_now
        assert _parse(record["expected_date"]) == utc(2025, 1, 6)

    def test_completed_by_from_request(self, test_client):
        task = _create_task(test_client, assigned_to="partner-a")
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True, "completed_by": "partner-b"})

        records = test_client.get(f"/tasks/{task['id']}/history").json()["records"]
        assert records[0]["completed_by"] == "partner-b"

    def test_uncompleting_completed_task_is_recorded(self, test_client):
        task = _create_task(test_client)
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": False})

        data = test_client.get(f"/tasks/{task['id']}/history").json()
        assert data["count"] == 2
        assert sorted(r["is_completed"] for r in data["records"]) == [False, True]

    def test_uncompleting_open_task_is_not_recorded(self, test_client):
        task = _create_task(test_client)
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": False})

        assert test_client.get(f"/tasks/{task['id']}/history").json()["count"] == 0

    def test_history_for_period(self, test_client):
        task = _create_task(test_client)
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})

        inside = test_client.get(
            f"/tasks/{task['id']}/history",
            params={"start": "2024-11-01T00:00:00Z", "end": "2024-12-31T00:00:00Z"},
        )
        outside = test_client.get(
            f"/tasks/{task['id']}/history",
            params={"start": "2025-01-01T00:00:00Z", "end": "2025-02-01T00:00:00Z"},
        )
        assert inside.json()["count"] == 1
        assert outside.json()["count"] == 0

    def test_history_period_needs_both_bounds(self, test_client):
        task = _create_task(test_client)
        response = test_client.get(f"/tasks/{task['id']}/history", params={"start": "2024-11-01T00:00:00Z"})
        assert response.status_code == 400

    def test_history_of_nonexistent_task(self, test_client):
        assert test_client.get("/tasks/nonexistent-id/history").status_code == 404

    def test_missed_tasks(self, test_client, fixed_now):
        task = _create_task(test_client)
        other = _create_task(test_client, title="Vacuum")
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": False})
        test_client.patch(f"/tasks/{other['id']}/complete", json={"completed": True})

        response = test_client.get(
            "/tasks/missed", params={"start": "2024-11-01T00:00:00Z", "end": "2024-12-31T00:00:00Z"}
        )
        assert response.status_code == 200
        data = response.json()

        assert data["count"] == 1
        assert [_parse(d) for d in data["missed"][task["id"]]] == [fixed_now]

    def test_deleting_task_drops_its_history(self, test_client, completion_repository):
        task = _create_task(test_client)
        test_client.patch(f"/tasks/{task['id']}/complete", json={"completed": True})

        assert test_client.delete(f"/tasks/{task['id']}").status_code == 204
        assert test_client.get(f"/tasks/{task['id']}/history").status_code == 404
        assert completion_repository.get_for_task(task["id"]) == []


class TestRecurrenceRuleEndpoint:
    """Test POST /recurrence/rule."""

    @pytest.mark.parametrize(
        "payload,expected",
        [
            ({"frequency": "weekly", "interval": 2, "weekdays": [3, 1]}, "FREQ=WEEKLY;INTERVAL=2;BYDAY=MO,WE"),
            ({"frequency": "quarterly"}, "FREQ=MONTHLY;INTERVAL=3"),
            ({"frequency": "monthly", "month_day": 15}, "FREQ=MONTHLY;BYMONTHDAY=15"),
            ({"frequency": "yearly", "end_date": "2030-01-01T00:00:00Z"}, "FREQ=YEARLY;UNTIL=20300101T000000Z"),
            ({"frequency": "never"}, ""),
        ],
    )
    def test_build_rule(self, test_client, payload, expected):
        response = test_client.post("/recurrence/rule", json=payload)
        assert response.status_code == 200
        assert response.json()["rule"] == expected

    def test_weekday_out_of_range(self, test_client):
        response = test_client.post("/recurrence/rule", json={"frequency": "custom", "weekdays": [9]})
        assert response.status_code == 400

    def test_zero_interval_is_rejected(self, test_client):
        response = test_client.post("/recurrence/rule", json={"frequency": "daily", "interval": 0})
        assert response.status_code == 422
