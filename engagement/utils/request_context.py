"""
Request context resolution.

Extracts client IP, User-Agent and session identifier from an inbound request
and pairs them with the (optional) signed-in viewer.
"""

import hashlib
from dataclasses import dataclass

from fastapi import Request

from engagement.utils.clock import utcnow

DEFAULT_CLIENT_IP = "127.0.0.1"
MAX_SESSION_ID_LENGTH = 128


@dataclass(frozen=True)
class RequestContext:
    """Who is looking at a post, as far as the tracking layer can tell."""

    session_id: str
    ip_address: str
    user_agent: str
    viewer_id: int | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.viewer_id is None


def get_client_ip(request: Request) -> str:
    """Client IP, honouring proxy headers (first X-Forwarded-For hop wins)."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return DEFAULT_CLIENT_IP


def generate_session_id(ip_address: str, user_agent: str) -> str:
    """
    Derive a stable anonymous session id for callers that did not send one.

    The id is scoped to the current UTC day, so one device gets one session
    per day.
    """
    data = f"{ip_address}-{user_agent}-{utcnow().date().isoformat()}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()


def resolve_request_context(
    request: Request,
    session_id: str | None = None,
    viewer_id: int | None = None,
) -> RequestContext:
    """
    Build the tracking context for a request.

    Args:
        request: Incoming request
        session_id: Session id supplied by the client, if any
        viewer_id: Signed-in viewer id, if any

    Returns:
        RequestContext with a session id that is always set
    """
    ip_address = get_client_ip(request)
    user_agent = request.headers.get("user-agent", "")

    session_id = (session_id or "").strip()[:MAX_SESSION_ID_LENGTH]
    if not session_id:
        session_id = generate_session_id(ip_address, user_agent)

    return RequestContext(
        session_id=session_id,
        ip_address=ip_address,
        user_agent=user_agent,
        viewer_id=viewer_id,
    )
