"""
Request body parsing for the tracking endpoints.

``navigator.sendBeacon`` on page hide posts form-encoded or multipart bodies,
or JSON sent as ``text/plain``. These helpers accept all of them and validate
against a pydantic model.
"""

import json
import logging
from typing import Any, TypeVar

import pydantic
from fastapi import Request

from engagement.exceptions import ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


async def read_payload(request: Request) -> dict[str, Any]:
    """Raw body as a dict; an empty body gives ``{}``."""
    content_type = request.headers.get("content-type", "").lower()

    if content_type.startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        return {key: value for key, value in form.items() if isinstance(value, str)}

    body = await request.body()
    if not body.strip():
        return {}
    try:
        data = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise ValidationError("Request body must be JSON or form encoded")
    if not isinstance(data, dict):
        raise ValidationError("Request body must be an object")
    return data


async def parse_payload(request: Request, model: type[ModelT]) -> ModelT:
    """
    Read the body and validate it.

    Raises:
        ValidationError: Unreadable body or invalid fields (HTTP 400)
    """
    data = await read_payload(request)
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        errors = [
            {"field": ".".join(str(loc) for loc in err["loc"]), "message": err["msg"]} for err in e.errors()
        ]
        raise ValidationError("Invalid request data", details={"validation_errors": errors})
