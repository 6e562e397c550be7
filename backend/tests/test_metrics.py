from backend.core.metrics import access_decisions_total, normalize_path, subscription_mutations_total


def test_normalize_path_collapses_ids():
    assert normalize_path("/api/startups/42") == "/api/startups/:id"
    assert normalize_path("/api/plans/subscribe") == "/api/plans/subscribe"


def test_metrics_endpoint_exports_counters(client, startup, investor_headers, make_plan):
    plan = make_plan(["startup"])
    client.post("/api/plans/subscribe", headers=investor_headers, json={"plan_id": plan.id})
    client.get(f"/api/startups/{startup.id}", headers=investor_headers)
    client.get(f"/api/startups/{startup.id}")

    assert access_decisions_total.value({"mode": "filtered"}) == 1
    assert access_decisions_total.value({"mode": "denied"}) == 1
    assert subscription_mutations_total.value({"type": "created"}) == 1

    resp = client.get("/metrics")
    assert resp.status_code == 200
    body = resp.text
    assert 'access_decisions_total{mode="filtered"} 1.0' in body
    assert 'http_requests_total{method="GET",path="/api/startups/:id",status="200"}' in body
