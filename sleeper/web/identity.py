"""Request helpers: who is calling, and what did they send."""

from typing import Optional

from flask import current_app, request
from pydantic import ValidationError as PydanticValidationError

from sleeper.errors import ValidationError

USER_COOKIE = "sleeper_user_id"
USER_HEADER = "X-User-Id"


def _as_int(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def current_user_id() -> Optional[int]:
    """User id set by the upstream auth layer, via cookie or header."""
    return _as_int(request.cookies.get(USER_COOKIE) or request.headers.get(USER_HEADER))


def current_engine():
    return current_app.extensions["sleeper"]


def parse_body(model):
    """Validate the JSON body against a pydantic model."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Invalid request body")
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"{field}: {first['msg']}" if field else first["msg"])
