"""
Tests for request context resolution (client IP, session id)
"""

import hashlib
from datetime import datetime

import pytest
from starlette.requests import Request

from engagement.utils import request_context
from engagement.utils.request_context import (
    generate_session_id,
    get_client_ip,
    resolve_request_context,
)


def make_request(headers: dict | None = None, client: tuple | None = ("10.0.0.5", 51234)) -> Request:
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/api/blog/hello/views",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestClientIp:
    def test_first_forwarded_for_hop_wins(self):
        request = make_request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1, 10.0.0.2", "X-Real-IP": "198.51.100.1"})
        assert get_client_ip(request) == "203.0.113.7"

    def test_real_ip_used_without_forwarded_for(self):
        request = make_request({"X-Real-IP": "198.51.100.1"})
        assert get_client_ip(request) == "198.51.100.1"

    def test_socket_peer_used_without_proxy_headers(self):
        assert get_client_ip(make_request()) == "10.0.0.5"

    def test_localhost_fallback(self):
        assert get_client_ip(make_request(client=None)) == "127.0.0.1"


class TestSessionId:
    def test_generated_id_is_sha256_of_ip_ua_and_date(self, monkeypatch):
        monkeypatch.setattr(request_context, "utcnow", lambda: datetime(2026, 3, 14, 9, 30))
        expected = hashlib.sha256(b"1.2.3.4-Mozilla/5.0-2026-03-14").hexdigest()
        assert generate_session_id("1.2.3.4", "Mozilla/5.0") == expected

    def test_generated_id_changes_with_the_day(self, monkeypatch):
        monkeypatch.setattr(request_context, "utcnow", lambda: datetime(2026, 3, 14, 23, 59))
        first = generate_session_id("1.2.3.4", "Mozilla/5.0")
        monkeypatch.setattr(request_context, "utcnow", lambda: datetime(2026, 3, 15, 0, 1))
        assert generate_session_id("1.2.3.4", "Mozilla/5.0") != first


class TestResolveRequestContext:
    def test_client_session_id_is_kept(self):
        context = resolve_request_context(make_request({"User-Agent": "Mozilla/5.0"}), session_id="s1", viewer_id=7)

        assert context.session_id == "s1"
        assert context.viewer_id == 7
        assert context.user_agent == "Mozilla/5.0"
        assert context.ip_address == "10.0.0.5"
        assert context.is_anonymous is False

    @pytest.mark.parametrize("session_id", [None, "", "   "])
    def test_missing_session_id_is_generated(self, session_id):
        context = resolve_request_context(make_request({"User-Agent": "Mozilla/5.0"}), session_id=session_id)

        assert context.session_id == generate_session_id("10.0.0.5", "Mozilla/5.0")
        assert context.is_anonymous is True

    def test_missing_user_agent_is_empty_string(self):
        context = resolve_request_context(make_request(), session_id="s1")
        assert context.user_agent == ""

    def test_overlong_session_id_is_truncated(self):
        context = resolve_request_context(make_request(), session_id="x" * 500)
        assert len(context.session_id) == 128
