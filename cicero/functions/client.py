"""HTTP client for the callable group functions."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import requests

from cicero.core.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DELETE_GROUP_FUNCTION,
    JOIN_GROUP_FUNCTION,
)
from cicero.core.types import APIResponse
from cicero.errors import (
    ERRORS_BY_CODE,
    AppError,
    DeadlineExceededError,
    InternalError,
)

if TYPE_CHECKING:
    from cicero.auth.session import SessionStore

logger = logging.getLogger(__name__)


def error_from_envelope(body: Any) -> AppError:
    """Rebuild the typed error described by a callable error envelope."""
    error = body.get("error") if isinstance(body, dict) else None
    if not isinstance(error, dict):
        return InternalError()
    code = str(error.get("status", "INTERNAL")).lower().replace("_", "-")
    error_class = ERRORS_BY_CODE.get(code, InternalError)
    message = error.get("message")
    return error_class(message) if message else error_class()


class CallableClient:
    """Calls ``joinGroup`` and ``deleteGroup`` as the signed-in user."""

    def __init__(
        self,
        base_url: str,
        session: SessionStore,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        http: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self.http = http or requests.Session()

    def call(self, name: str, data: dict[str, Any]) -> dict[str, Any]:
        """Invoke a callable function and return its ``result`` object.

        Raises:
            AppError: The typed error reported by the function, or
                ``DeadlineExceededError``/``InternalError`` for transport failures.
        """
        headers = {}
        if self.session.id_token:
            headers["Authorization"] = f"Bearer {self.session.id_token}"

        try:
            response = self.http.post(
                f"{self.base_url}/{name}",
                json={"data": data},
                headers=headers,
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise DeadlineExceededError() from e
        except requests.RequestException as e:
            logger.warning(f"Call to {name} failed: {e}")
            raise InternalError("Network error.") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.ok:
            error = error_from_envelope(body)
            logger.info(f"{name} returned {response.status_code}: {error.message}")
            raise error

        if not isinstance(body, dict) or not isinstance(body.get("result"), dict):
            raise InternalError(f"Malformed response from {name}.")
        return body["result"]

    def join_group(self, group_id: str) -> APIResponse:
        """Join a group as the signed-in user."""
        return self.call(JOIN_GROUP_FUNCTION, {"groupId": group_id})

    def delete_group(self, group_id: str) -> APIResponse:
        """Delete a group and all of its memberships."""
        return self.call(DELETE_GROUP_FUNCTION, {"groupId": group_id})
