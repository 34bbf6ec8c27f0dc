"""
Tests for request logging and request IDs
"""

import json
import logging

from conftest import BROWSER_UA, auth_cookies

from engagement.middleware.logging import RequestIdFilter, StructuredFormatter, request_id_var


class TestRequestId:
    async def test_generated_request_id_is_returned(self, client):
        response = await client.get("/api/trending")

        assert len(response.headers["X-Request-ID"]) == 36

    async def test_incoming_request_id_is_echoed(self, client):
        response = await client.get("/api/trending", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"


class TestAccessLog:
    async def test_request_is_logged_with_fields(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="engagement.access"):
            await client.get("/api/trending", headers={"X-Request-ID": "req-456", "X-Forwarded-For": "7.7.7.7"})

        (record,) = [r for r in caplog.records if r.name == "engagement.access"]
        assert record.path == "/api/trending"
        assert record.status_code == 200
        assert record.client_ip == "7.7.7.7"
        assert record.request_id == "req-456"

    async def test_health_checks_are_not_logged(self, client, caplog):
        with caplog.at_level(logging.DEBUG, logger="engagement.access"):
            await client.get("/health")

        assert [r for r in caplog.records if r.name == "engagement.access"] == []

    async def test_beacons_log_at_debug(self, client, community_post, caplog):
        with caplog.at_level(logging.DEBUG, logger="engagement.access"):
            await client.post(
                "/api/community-blogs/my-testimony/views", json={"sessionId": "s1"}, headers={"User-Agent": BROWSER_UA}
            )

        (record,) = [r for r in caplog.records if r.name == "engagement.access"]
        assert record.levelno == logging.DEBUG
        assert record.post_type == "community"

    async def test_signed_in_viewer_is_logged(self, client, editorial_post, viewer, caplog):
        client.cookies.update(auth_cookies(viewer))
        with caplog.at_level(logging.INFO, logger="engagement.access"):
            await client.get("/api/blog/sabbath-reflections/stats")

        (record,) = [r for r in caplog.records if r.name == "engagement.access"]
        assert record.viewer_id == viewer.id
        assert record.post_type == "editorial"

    async def test_client_errors_log_at_warning(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="engagement.access"):
            await client.get("/api/blog/missing/stats")

        (record,) = [r for r in caplog.records if r.name == "engagement.access"]
        assert record.levelno == logging.WARNING
        assert record.status_code == 404


class TestStructuredFormatter:
    def make_record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord("engagement.test", logging.INFO, __file__, 1, "view %s", ("recorded",), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_json_line(self):
        record = self.make_record(request_id="abc", post_type="editorial", post_id=7, unrelated="skip")

        data = json.loads(StructuredFormatter().format(record))

        assert data["message"] == "view recorded"
        assert data["level"] == "INFO"
        assert data["request_id"] == "abc"
        assert data["post_type"] == "editorial"
        assert data["post_id"] == 7
        assert "unrelated" not in data

    def test_filter_uses_context_request_id(self):
        token = request_id_var.set("ctx-id")
        try:
            record = self.make_record()
            RequestIdFilter().filter(record)
        finally:
            request_id_var.reset(token)

        assert record.request_id == "ctx-id"

    def test_filter_keeps_explicit_request_id(self):
        record = self.make_record(request_id="explicit")
        RequestIdFilter().filter(record)
        assert record.request_id == "explicit"
