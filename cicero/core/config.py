"""Client-side configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .constants import (
    DEFAULT_EDIT_DEBOUNCE,
    DEFAULT_MAX_WORKERS,
    DEFAULT_REQUEST_TIMEOUT,
    FIRESTORE_IN_QUERY_LIMIT,
)


@dataclass
class ClientConfig:
    """Settings for the group sync client."""

    functions_url: str = ""
    api_key: str | None = None
    user_batch_size: int = FIRESTORE_IN_QUERY_LIMIT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    edit_debounce: float = DEFAULT_EDIT_DEBOUNCE
    max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def from_env(cls) -> ClientConfig:
        """Build a config from CICERO_* environment variables."""
        return cls(
            functions_url=os.environ.get("CICERO_FUNCTIONS_URL") or "",
            api_key=os.environ.get("CICERO_API_KEY"),
            user_batch_size=int(
                os.environ.get("CICERO_USER_BATCH_SIZE") or FIRESTORE_IN_QUERY_LIMIT
            ),
            request_timeout=float(
                os.environ.get("CICERO_REQUEST_TIMEOUT") or DEFAULT_REQUEST_TIMEOUT
            ),
            edit_debounce=float(
                os.environ.get("CICERO_EDIT_DEBOUNCE") or DEFAULT_EDIT_DEBOUNCE
            ),
            max_workers=int(os.environ.get("CICERO_MAX_WORKERS") or DEFAULT_MAX_WORKERS),
        )
