"""HTTP tests for startup profiles and the gated detail read."""
from backend.core.config import settings
from backend.features.views.service import count_views


def _subscribe(client, headers, make_plan, tokens):
    plan = make_plan(tokens)
    resp = client.post("/api/plans/subscribe", headers=headers, json={"plan_id": plan.id})
    assert resp.status_code == 201
    return plan


def test_create_and_list(client, owner_headers, startup_payload):
    created = client.post("/api/startups", headers=owner_headers, json=startup_payload)
    assert created.status_code == 201
    startup_id = created.json()["data"]["startup"]["id"]

    listing = client.get("/api/startups").json()["data"]["startups"]
    assert [s["id"] for s in listing] == [startup_id]
    assert "financials" not in listing[0]

    mine = client.get("/api/startups/mine", headers=owner_headers).json()["data"]["startups"]
    assert [s["id"] for s in mine] == [startup_id]


def test_listing_query_filters(client, owner_headers, startup_payload):
    client.post("/api/startups", headers=owner_headers, json=startup_payload)
    assert client.get("/api/startups", params={"industry": "fintech"}).json()["data"]["startups"] == []
    assert len(client.get("/api/startups", params={"sell_equity": "true"}).json()["data"]["startups"]) == 1
    assert client.get("/api/startups", params={"min_team_size": 0}).status_code == 400


def test_filtered_read_and_view_recording(client, startup, investor_headers, make_plan):
    _subscribe(client, investor_headers, make_plan, ["startup", "financials"])

    resp = client.get(f"/api/startups/{startup.id}", headers=investor_headers)
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["access"] == "filtered"
    assert data["allowed_fields"] == ["financials", "startup"]
    assert data["startup"]["startup"]["name"] == "Acme Robotics"
    assert data["startup"]["financials"]["monthly_revenue"] == {"2024-01": 42000.0}
    for hidden in ("traction", "legal", "contacts"):
        assert hidden not in data["startup"]

    # Background task has run by the time TestClient returns
    assert count_views(startup.id) == 1


def test_fine_grained_plan_read(client, startup, investor_headers, make_plan):
    _subscribe(client, investor_headers, make_plan, ["startup_growth"])

    data = client.get(f"/api/startups/{startup.id}", headers=investor_headers).json()["data"]["startup"]
    assert set(data) == {"traction"}
    assert data["traction"] == {"customer_growth_yoy": 85.0, "customer_retention_rate": 92.0, "churn_rate": 3.5}


def test_owner_read_is_full_and_not_counted(client, startup, owner_headers):
    resp = client.get(f"/api/startups/{startup.id}", headers=owner_headers)
    data = resp.json()["data"]
    assert data["access"] == "full"
    assert data["startup"]["contacts"]["contact_phone"] == "+1-555-0100"
    assert data["startup"]["view_count"] == 0
    assert "allowed_fields" not in data
    assert count_views(startup.id) == 0


def test_owner_sees_views_from_subscribers(client, startup, owner_headers, investor_headers, make_plan):
    _subscribe(client, investor_headers, make_plan, ["startup"])
    client.get(f"/api/startups/{startup.id}", headers=investor_headers)
    client.get(f"/api/startups/{startup.id}", headers=investor_headers)

    data = client.get(f"/api/startups/{startup.id}", headers=owner_headers).json()["data"]
    assert data["startup"]["view_count"] == 2


def test_view_tracking_can_be_disabled(client, startup, investor_headers, make_plan, monkeypatch):
    monkeypatch.setattr(settings, "VIEW_TRACKING_ENABLED", False)
    _subscribe(client, investor_headers, make_plan, ["startup"])
    assert client.get(f"/api/startups/{startup.id}", headers=investor_headers).status_code == 200
    assert count_views(startup.id) == 0


def test_view_failure_does_not_fail_read(client, startup, investor_headers, make_plan, monkeypatch):
    import backend.features.views.service as views

    def broken_session():
        raise RuntimeError("store unavailable")

    _subscribe(client, investor_headers, make_plan, ["startup"])
    monkeypatch.setattr(views, "get_db_session", broken_session)

    resp = client.get(f"/api/startups/{startup.id}", headers=investor_headers)
    assert resp.status_code == 200
    assert views.view_events_failed_total.value() == 1


def test_unsubscribed_reader_is_denied(client, startup, investor_headers, make_plan):
    plan = _subscribe(client, investor_headers, make_plan, ["startup"])
    client.request("DELETE", "/api/plans/subscribe", headers=investor_headers, json={"plan_id": plan.id})

    resp = client.get(f"/api/startups/{startup.id}", headers=investor_headers)
    assert resp.status_code == 403
    assert "plan" in resp.json()["error"]["message"]


def test_update_and_delete_via_http(client, startup, owner_headers):
    resp = client.put(
        f"/api/startups/{startup.id}",
        headers=owner_headers,
        json={"startup": {"asking_price": 2000000}, "operational": {"cogs": 12.5}},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["startup"]["asking_price"] == 2000000

    full = client.get(f"/api/startups/{startup.id}", headers=owner_headers).json()["data"]["startup"]
    assert full["operational"]["cogs"] == 12.5

    assert client.delete(f"/api/startups/{startup.id}", headers=owner_headers).status_code == 200
    assert client.get(f"/api/startups/{startup.id}", headers=owner_headers).status_code == 404


def test_update_rejects_null_for_required_core_field(client, startup, owner_headers):
    resp = client.put(f"/api/startups/{startup.id}", headers=owner_headers, json={"startup": {"name": None}})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "validation_error"

    unchanged = client.get(f"/api/startups/{startup.id}", headers=owner_headers).json()["data"]["startup"]
    assert unchanged["name"] == "Acme Robotics"


def test_missing_startup_is_404(client, investor_headers):
    assert client.get("/api/startups/9999", headers=investor_headers).status_code == 404
