from unittest.mock import patch

from activity_stats.api.v1.endpoints import stats as stats_endpoints
from activity_stats.crud import activity_metrics_crud, host_metrics_crud

API = "/api/v1/internal/stats"


def activity_payload(activity):
    return {
        "id": activity.id,
        "host_id": activity.host_id,
        "capacity": activity.capacity,
        "start_time": activity.start_time.isoformat(),
        "status": activity.status,
    }


def booking_payload(booking):
    return {
        "id": booking.id,
        "attendee_id": booking.attendee_id,
        "activity_id": booking.activity_id,
    }


# --- Authentication ---
def test_missing_api_key_is_rejected(test_client):
    response = test_client.post(f"{API}/jobs/host-stats", headers={"X-Internal-Api-Key": ""})
    assert response.status_code == 401


def test_wrong_api_key_is_rejected(test_client):
    response = test_client.get(f"{API}/hosts/host_1/dashboard", headers={"X-Internal-Api-Key": "nope"})
    assert response.status_code == 401


# --- Jobs ---
def test_run_job(test_client, make_activity, make_booking):
    make_booking(make_activity(), attendee_id="a")

    response = test_client.post(f"{API}/jobs/host-stats")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["job"] == "host-stats"
    assert body["result"]["processed"] == 1
    assert "timestamp" in body


def test_unknown_job_is_bad_request(test_client):
    response = test_client.post(f"{API}/jobs/weekly-digest")
    assert response.status_code == 400


def test_failed_job_returns_500_envelope(test_client):
    with patch.object(stats_endpoints, "run_stats_job", side_effect=RuntimeError("snapshot table locked")):
        response = test_client.post(f"{API}/jobs/daily-snapshot")

    assert response.status_code == 500
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "snapshot table locked"


def test_daily_snapshot_for_given_date(test_client):
    response = test_client.post(f"{API}/snapshots/daily", json={"snapshot_date": "2026-03-14"})

    assert response.status_code == 200
    assert response.json()["result"] == {"date": "2026-03-14", "hosts": 0}


def test_monthly_snapshot_validates_month(test_client):
    response = test_client.post(f"{API}/snapshots/monthly", json={"year": 2026, "month": 13})
    assert response.status_code == 422


# --- Hosts ---
def test_recompute_host(test_client, make_activity, make_booking):
    make_booking(make_activity(), attendee_id="a")

    response = test_client.post(f"{API}/hosts/host_1/recompute")

    assert response.status_code == 200
    assert response.json()["processed"] == 1


def test_dashboard(test_client, make_activity, make_booking):
    make_booking(make_activity(capacity=2), attendee_id="a")

    response = test_client.get(f"{API}/hosts/host_1/dashboard")

    assert response.status_code == 200
    body = response.json()
    assert body["host_id"] == "host_1"
    assert body["stats"]["total_bookings"] == 1
    assert body["stats"]["average_attendance_rate"] == 50.0


# --- Event ingestion ---
def test_booking_events(test_client, db_session, make_activity, make_booking):
    activity = make_activity(capacity=5)
    booking = make_booking(activity, attendee_id="a")
    event = {"booking": booking_payload(booking), "activity": activity_payload(activity)}

    response = test_client.post(f"{API}/events/booking-confirmed", json=event)
    assert response.status_code == 202
    assert response.json() == {"operation": "booking_confirmed", "applied": True, "error": None}

    response = test_client.post(f"{API}/events/booking-paid", json={**event, "amount": "2000"})
    assert response.status_code == 202
    assert response.json()["applied"] is True

    stats = activity_metrics_crud.get(db_session, activity.id)
    assert stats.confirmed_bookings == 1
    assert stats.spots_remaining == 4
    assert host_metrics_crud.get(db_session, "host_1").total_revenue == 2000


def test_paid_event_requires_positive_amount(test_client, make_activity, make_booking):
    activity = make_activity()
    booking = make_booking(activity)
    event = {"booking": booking_payload(booking), "activity": activity_payload(activity), "amount": "0"}

    response = test_client.post(f"{API}/events/booking-paid", json=event)

    assert response.status_code == 422


def test_activity_created_event(test_client, db_session, make_activity):
    activity = make_activity(capacity=12)

    response = test_client.post(
        f"{API}/events/activity-created", json={"activity": activity_payload(activity)}
    )

    assert response.status_code == 202
    assert host_metrics_crud.get(db_session, "host_1").total_spots_offered == 12


def test_view_event(test_client, db_session, make_activity):
    activity = make_activity()

    response = test_client.post(
        f"{API}/events/views", json={"activity_id": activity.id, "viewer_id": "v1", "source": "feed"}
    )

    assert response.status_code == 202
    assert response.json()["applied"] is True
    assert activity_metrics_crud.get(db_session, activity.id).unique_viewers == 1


def test_view_event_for_unknown_activity(test_client):
    response = test_client.post(f"{API}/events/views", json={"activity_id": "act_missing"})

    assert response.status_code == 202
    assert response.json()["applied"] is False
