"""
HTTP endpoint tests through FastAPI's TestClient.
"""

import threading

import pytest
from fastapi.testclient import TestClient

from og_image.app import SECURITY_HEADERS, create_app
from og_image.config import Settings
from og_image.routes_fastapi import _collect_stats
from conftest import assert_jpeg_response


@pytest.fixture
def settings(tmp_path):
    return Settings(
        cache_dir=str(tmp_path / "cache"),
        max_width=2000,
        max_height=1000,
        max_cache_size_mb=1,
        max_concurrent_renders=2,
    )


@pytest.fixture
def client(settings, renderer, blob_store):
    app = create_app(settings, renderer=renderer, blob_store=blob_store)
    with TestClient(app) as test_client:
        yield test_client


# ============================================
# 1. Rendering
# ============================================

class TestRenderEndpoint:

    def test_miss_then_hit(self, client, renderer):
        """Test: first request renders, second is served from cache"""
        first = client.get("/", params={"url": "https://example.com", "width": 1200, "height": 630})
        assert_jpeg_response(first, "MISS")
        assert first.content == renderer.image

        second = client.get("/", params={"url": "https://example.com", "width": 1200, "height": 630})
        assert_jpeg_response(second, "HIT")
        assert len(renderer.calls) == 1

    def test_url_normalized_before_render(self, client, renderer):
        client.get("/", params={"url": "example.com"})
        assert renderer.calls == [("https://example.com?URL2OG=1", 1200, 630)]

    def test_dimensions_clamped(self, client, renderer):
        client.get("/", params={"url": "https://example.com", "width": "99999", "height": "x"})
        assert renderer.calls[0][1:] == (2000, 630)

    def test_render_failure_is_generic_500(self, client, renderer):
        renderer.fail = True
        response = client.get("/", params={"url": "https://example.com"})
        assert response.status_code == 500
        assert response.json()["detail"] == "Error capturing screenshot"
        assert "ERR_NAME_NOT_RESOLVED" not in response.text

    def test_unexpected_error_is_generic_500(self, client, renderer):
        renderer.crash = RuntimeError("internal 10.0.0.7 refused")
        response = client.get("/", params={"url": "https://example.com"})
        assert response.status_code == 500
        assert "10.0.0.7" not in response.text

    def test_invalid_url_is_400(self, client, renderer):
        response = client.get("/", params={"url": "https://example.com/\x01"})
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid URL"
        assert renderer.calls == []

    def test_overloaded_is_429(self, client, renderer):
        admission = client.app.state.coordinator.admission
        assert admission.try_acquire()
        assert admission.try_acquire()

        response = client.get("/", params={"url": "https://example.com"})

        assert response.status_code == 429
        assert renderer.calls == []
        admission.release()
        admission.release()

    def test_usage_without_url(self, client):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["max_width"] == 2000
        assert body["default_height"] == 630


class TestDomainAllowlist:

    @pytest.fixture
    def settings(self, tmp_path):
        return Settings(cache_dir=str(tmp_path / "cache"), allowed_domains=["example.com"])

    def test_allowed_domain(self, client):
        response = client.get("/", params={"url": "https://www.example.com"})
        assert_jpeg_response(response, "MISS")

    def test_blocked_domain_is_403(self, client, renderer):
        response = client.get("/", params={"url": "https://evil.test"})
        assert response.status_code == 403
        assert renderer.calls == []


# ============================================
# 2. Service endpoints
# ============================================

class TestServiceEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.text == "OK"

    def test_security_headers_on_every_response(self, client):
        for path in ("/health", "/stats"):
            response = client.get(path)
            for name, value in SECURITY_HEADERS.items():
                assert response.headers[name] == value

    def test_stats(self, client):
        client.get("/", params={"url": "https://example.com"})
        stats = client.get("/stats").json()["stats"]
        assert stats["writes"] == 1
        assert stats["disk_entries"] == 1
        assert stats["renders_in_flight"] == 0
        assert stats["max_concurrent_renders"] == 2

    @pytest.mark.asyncio
    async def test_stats_scan_runs_off_event_loop(self, coordinator, monkeypatch):
        """Test: the durable tier scan behind /stats runs on a worker thread"""
        threads = []
        original = coordinator.cache.get_stats

        def recording_get_stats():
            threads.append(threading.get_ident())
            return original()

        monkeypatch.setattr(coordinator.cache, "get_stats", recording_get_stats)

        stats = await _collect_stats(coordinator)

        assert stats.max_concurrent_renders == coordinator.admission.limit
        assert threads and threads[0] != threading.get_ident()

    def test_cleanup(self, client, blob_store):
        blob_store.seed("0" * 32, b"x", age=8 * 24 * 3600)
        response = client.post("/cache/cleanup")
        assert response.status_code == 200
        assert response.json()["removed_entries"] == 1

    def test_clear(self, client, renderer):
        client.get("/", params={"url": "https://example.com"})
        response = client.delete("/cache")
        assert response.json()["removed_entries"] == 1

        again = client.get("/", params={"url": "https://example.com"})
        assert_jpeg_response(again, "MISS")
        assert len(renderer.calls) == 2

    def test_lifespan_starts_and_stops_renderer(self, settings, renderer, blob_store):
        app = create_app(settings, renderer=renderer, blob_store=blob_store)
        with TestClient(app):
            assert renderer.started
            assert app.state.coordinator.cache.sweeper.running
        assert renderer.closed
