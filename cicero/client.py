"""Wire a group sync engine against the initialised Firebase app."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable, Optional

from firebase_admin import firestore, storage

from .auth.session import SessionStore
from .core.config import ClientConfig
from .errors import InternalError
from .firebase import initialize_firebase
from .functions.client import CallableClient
from .group.services import GroupSyncEngine

if TYPE_CHECKING:
    from .errors import AppError

logger = logging.getLogger(__name__)


def create_client(
    session: Optional[SessionStore] = None,
    config: Optional[ClientConfig] = None,
    on_error: Optional[Callable[[AppError], None]] = None,
) -> GroupSyncEngine:
    """Build a ``GroupSyncEngine`` for ``session`` from ``config``.

    With no config, settings are read from the ``CICERO_*`` environment. With
    no session, a signed-out ``SessionStore`` is built with the config's API
    key so the caller can sign in through ``engine.session``.
    """
    config = config or ClientConfig.from_env()
    if session is None:
        session = SessionStore(api_key=config.api_key, timeout=config.request_timeout)
    if not config.functions_url:
        raise InternalError("CICERO_FUNCTIONS_URL is not set.")
    if not initialize_firebase(logger):
        raise InternalError("Firebase could not be initialised.")

    try:
        bucket = storage.bucket()
    except ValueError as e:
        logger.warning(f"No storage bucket, group images are disabled: {e}")
        bucket = None

    functions = CallableClient(
        config.functions_url, session, timeout=config.request_timeout
    )
    return GroupSyncEngine(
        firestore.client(),
        session,
        functions,
        bucket=bucket,
        config=config,
        on_error=on_error,
    )
