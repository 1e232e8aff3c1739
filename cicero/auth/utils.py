"""Helpers for turning authentication failures into friendly messages."""

from __future__ import annotations

from typing import Any

import requests
from firebase_admin import auth

AUTH_ERROR_MESSAGES = {
    "INVALID_EMAIL": "That email doesn't look quite right. Can you double-check it?",
    "INVALID_PASSWORD": "Oops! That's not the correct password. Want to try again?",
    "EMAIL_NOT_FOUND": "We couldn't find an account with that email. Want to sign up?",
    "NETWORK_ERROR": "Looks like there's a network issue. Please check your connection.",
    "EMAIL_EXISTS": "This email is already in use! Maybe you signed up earlier?",
    "WEAK_PASSWORD": "That password looks too weak. Try something stronger!",
}
GENERIC_AUTH_MESSAGE = "Hmm, something went wrong. Could you try again?"

# Identity Toolkit reports a combined code when email enumeration protection is on
AUTH_ERROR_ALIASES = {
    "INVALID_LOGIN_CREDENTIALS": "INVALID_PASSWORD",
    "USER_NOT_FOUND": "EMAIL_NOT_FOUND",
    "EMAIL_ALREADY_EXISTS": "EMAIL_EXISTS",
}


def auth_error_code(error: Any) -> str | None:
    """Return the Identity Toolkit style code for an auth failure, if known.

    Accepts a raw code string (``"WEAK_PASSWORD : Password should be..."``),
    a ``requests`` network exception, or a ``firebase_admin.auth`` error.
    """
    if isinstance(error, str):
        code = error.split(":", 1)[0].strip().upper()
        return AUTH_ERROR_ALIASES.get(code, code)
    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return "NETWORK_ERROR"
    if isinstance(error, auth.EmailAlreadyExistsError):
        return "EMAIL_EXISTS"
    if isinstance(error, auth.UserNotFoundError):
        return "EMAIL_NOT_FOUND"
    return None


def friendly_auth_message(error: Any) -> str:
    """Map an auth failure to a short message a user can act on."""
    return AUTH_ERROR_MESSAGES.get(auth_error_code(error) or "", GENERIC_AUTH_MESSAGE)
