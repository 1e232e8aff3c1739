"""Client-side session: who is signed in, and who wants to know."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Optional

import requests

from cicero.core.constants import DEFAULT_REQUEST_TIMEOUT
from cicero.errors import AuthError, UnauthenticatedError

from .utils import auth_error_code, friendly_auth_message

logger = logging.getLogger(__name__)

SIGN_IN_URL = "https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword"

SessionListener = Callable[[Optional[str]], None]


class SessionStore:
    """Holds the signed-in user's uid and ID token.

    Listeners are called with the current uid when they register and again
    on every sign-in or sign-out (with None once signed out).
    """

    def __init__(
        self, api_key: Optional[str] = None, timeout: float = DEFAULT_REQUEST_TIMEOUT
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.uid: Optional[str] = None
        self.id_token: Optional[str] = None
        self.email: Optional[str] = None
        self._listeners: dict[int, SessionListener] = {}
        self._handles = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def is_logged_in(self) -> bool:
        """Whether a user is currently signed in."""
        return self.uid is not None

    def require_uid(self) -> str:
        """Return the signed-in uid or raise ``UnauthenticatedError``."""
        if not self.uid:
            raise UnauthenticatedError("User not authenticated.")
        return self.uid

    def add_listener(self, listener: SessionListener) -> int:
        """Register a sign-in state listener and return its handle."""
        with self._lock:
            handle = next(self._handles)
            self._listeners[handle] = listener
        listener(self.uid)
        return handle

    def remove_listener(self, handle: int) -> None:
        """Unregister a listener; unknown handles are ignored."""
        with self._lock:
            self._listeners.pop(handle, None)

    def set_user(self, uid: str, id_token: str, email: Optional[str] = None) -> None:
        """Record a signed-in user, e.g. after a token refresh."""
        self.uid = uid
        self.id_token = id_token
        self.email = email
        self._notify()

    def sign_in_with_password(self, email: str, password: str) -> str:
        """Sign in through the Identity Toolkit REST API and return the uid.

        Raises:
            AuthError: With a message suitable for showing to the user.
        """
        if not self.api_key:
            raise AuthError(friendly_auth_message(None), reason="MISSING_API_KEY")
        try:
            response = requests.post(
                SIGN_IN_URL,
                params={"key": self.api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Sign-in request failed: {e}")
            raise AuthError(friendly_auth_message(e), reason=auth_error_code(e)) from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            logger.warning(f"Sign-in returned a non-JSON body ({response.status_code})")
            body = {}
        if not isinstance(body, dict):
            body = {}
        if not response.ok:
            code = (body.get("error") or {}).get("message", "")
            logger.info(f"Sign-in rejected: {code}")
            raise AuthError(friendly_auth_message(code), reason=auth_error_code(code))
        if "localId" not in body or "idToken" not in body:
            raise AuthError(friendly_auth_message(None), reason="INVALID_RESPONSE")

        self.set_user(body["localId"], body["idToken"], body.get("email", email))
        return body["localId"]

    def sign_out(self) -> None:
        """Forget the signed-in user."""
        if self.uid is None:
            return
        self.uid = None
        self.id_token = None
        self.email = None
        self._notify()

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners.values())
        for listener in listeners:
            try:
                listener(self.uid)
            except Exception as e:
                logger.error(f"Session listener failed: {e}")
