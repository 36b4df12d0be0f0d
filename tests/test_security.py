"""Tests for app-wide security headers and JSON error pages."""


class TestSecurityHeaders:
    """Verify security headers are present on responses."""

    def test_x_content_type_options(self, client):
        resp = client.get("/healthz")
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"

    def test_x_frame_options(self, client):
        resp = client.get("/healthz")
        assert resp.headers.get("X-Frame-Options") == "DENY"

    def test_referrer_policy(self, client):
        resp = client.get("/healthz")
        assert resp.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"

    def test_csp_header(self, client):
        resp = client.get("/healthz")
        csp = resp.headers.get("Content-Security-Policy")
        assert "default-src 'none'" in csp
        assert "frame-ancestors 'none'" in csp

    def test_headers_on_webhook_responses(self, post_webhook, make_event):
        resp = post_webhook(make_event("invoice.created"), signature="t=1,v1=00")
        assert resp.status_code == 401
        assert resp.headers.get("X-Content-Type-Options") == "nosniff"


class TestErrorPages:
    def test_healthz(self, client):
        resp = client.get("/healthz")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok"}

    def test_404_is_json(self, client):
        resp = client.get("/nope")
        assert resp.status_code == 404
        assert resp.get_json() == {"error": "Not found"}

    def test_405_is_json(self, client):
        resp = client.get("/api/check-user")
        assert resp.status_code == 405
        assert resp.get_json() == {"error": "Method not allowed"}
