"""Integration tests for metrics endpoint."""

from __future__ import annotations


def test_metrics_endpoint_available(client):
    client.get("/healthz")

    response = client.get("/metrics")
    assert response.status_code == 200
    body = response.content.decode()
    assert "larder_http_requests_total" in body
    assert "larder_sync_decisions_total" in body


def test_domain_counters_track_work(client, recommendation_payload):
    client.post("/recommendations", json=recommendation_payload)

    body = client.get("/metrics").content.decode()
    assert "larder_recommendation_runs_total" in body
