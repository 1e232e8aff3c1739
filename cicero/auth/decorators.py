"""Decorators for authenticating callable requests."""

from functools import wraps

from firebase_admin import auth
from flask import current_app, g, request

from cicero.errors import UnauthenticatedError


def callable_auth(f):
    """Resolve the caller from the request's bearer ID token.

    Sets ``g.uid`` to the caller's uid, or to None when no token was sent so
    the function itself can decide how to reject anonymous callers. A token
    that is present but invalid is rejected here.

    Usage:
    @bp.route("/joinGroup", methods=["POST"])
    @callable_auth
    def join_group():
        ...
    """

    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.uid = None
        header = request.headers.get("Authorization", "")
        if header.startswith("Bearer "):
            token = header[len("Bearer ") :].strip()
            try:
                g.uid = auth.verify_id_token(token)["uid"]
            except (auth.InvalidIdTokenError, ValueError) as e:
                current_app.logger.warning(f"Rejected ID token: {e}")
                raise UnauthenticatedError("Invalid or expired ID token.") from e
        return f(*args, **kwargs)

    return decorated_function
