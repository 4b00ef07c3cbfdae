"""
Admin authorization for the survey intake backend.

Admin routes are guarded by an Authorizer stored on the Flask app. The
default implementation compares a static shared secret; a stronger scheme
only needs to provide the same authorize(request) method.
"""

from __future__ import annotations

import hmac
from functools import wraps
from typing import Any, Callable, Protocol, TypeVar, cast

from flask import Request, current_app, request

from survey_intake.errors import AuthorizationError
from survey_intake.logging_utils import get_logger

F = TypeVar("F", bound=Callable[..., Any])

ADMIN_KEY_HEADER = "x-admin-key"
ADMIN_KEY_PARAM = "admin_key"
AUTHORIZER_EXTENSION = "survey_intake.authorizer"


class Authorizer(Protocol):
    def authorize(self, req: Request) -> bool:
        ...


class SharedSecretAuthorizer:
    """Allow requests whose admin key exactly equals the configured secret."""

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("secret must be a non-empty string")
        self._secret = secret.encode("utf-8")

    def authorize(self, req: Request) -> bool:
        supplied = req.headers.get(ADMIN_KEY_HEADER) or req.args.get(ADMIN_KEY_PARAM)
        if not supplied:
            return False
        return hmac.compare_digest(supplied.encode("utf-8"), self._secret)


def get_authorizer() -> Authorizer:
    return cast(Authorizer, current_app.extensions[AUTHORIZER_EXTENSION])


def require_admin(view: F) -> F:
    """
    View decorator that rejects the request with AuthorizationError unless
    the app's authorizer allows it. The view is never entered on failure.
    """

    @wraps(view)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if not get_authorizer().authorize(request):
            get_logger().warning("unauthorized path=%s remote=%s", request.path, request.remote_addr)
            raise AuthorizationError()
        return view(*args, **kwargs)

    return cast(F, wrapper)
