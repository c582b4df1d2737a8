# backend/tests/routes/test_health_routes.py
def test_health_reports_database(client, db):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["checks"] == {"database": True}


def test_metrics_exposition(client, db):
    # One request so the HTTP counters have a sample
    client.get("/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    body = response.text
    assert "trim_http_requests_total" in body
    assert "trim_booking_conflicts_total" in body
    assert "trim_bookings_expired_total" in body
