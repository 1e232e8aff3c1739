"""Resolve member ids into user profiles."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from firebase_admin import firestore
from google.cloud.firestore_v1.field_path import FieldPath

from cicero.core.constants import (
    DEFAULT_REQUEST_TIMEOUT,
    FIRESTORE_IN_QUERY_LIMIT,
    USERS_COLLECTION,
)
from cicero.errors import AggregatedError, DeadlineExceededError, DocumentDecodeError

from .models import User, user_from_snapshot

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


class UserResolver:
    """Batch-resolves user ids to ``User`` records with a small id cache.

    Ids are queried in chunks sized to Firestore's ``in`` limit. A failed
    chunk never hides the chunks that succeeded: the partial list is returned
    and an ``AggregatedError`` is reported through ``on_error`` and kept on
    ``last_error``.
    """

    def __init__(
        self,
        db: Client,
        batch_size: int = FIRESTORE_IN_QUERY_LIMIT,
        executor: Optional[ThreadPoolExecutor] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        on_error: Optional[Callable[[AggregatedError], None]] = None,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.db = db
        self.batch_size = batch_size
        self.timeout = timeout
        self.on_error = on_error
        self.last_error: Optional[AggregatedError] = None
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=4, thread_name_prefix="user-resolver"
        )
        self._cache: dict[str, User] = {}
        self._lock = threading.Lock()

    def resolve(self, ids: Iterable[str], refresh: bool = False) -> list[User]:
        """Return the users for ``ids``, omitting ids with no user document."""
        users, error = self.resolve_with_errors(ids, refresh=refresh)
        self.last_error = error
        if error:
            self._report(error)
        return users

    def resolve_with_errors(
        self, ids: Iterable[str], refresh: bool = False
    ) -> tuple[list[User], Optional[AggregatedError]]:
        """Like ``resolve`` but hand back the failure instead of reporting it."""
        unique_ids = list(dict.fromkeys(uid for uid in ids if uid))
        if not unique_ids:
            return [], None

        with self._lock:
            if refresh:
                pending = unique_ids
            else:
                pending = [uid for uid in unique_ids if uid not in self._cache]
            users = [self._cache[uid] for uid in unique_ids if uid not in pending]

        if not pending:
            return users, None

        chunks = [
            pending[i : i + self.batch_size]
            for i in range(0, len(pending), self.batch_size)
        ]
        futures = [self._executor.submit(self._fetch_chunk, chunk) for chunk in chunks]
        done, not_done = wait(futures, timeout=self.timeout)

        errors: list[Exception] = []
        for future in not_done:
            future.cancel()
            errors.append(DeadlineExceededError("Timed out resolving users."))

        fetched: list[User] = []
        for future in done:
            try:
                chunk_users, chunk_errors = future.result()
            except Exception as e:
                logger.warning(f"User chunk query failed: {e}")
                errors.append(e)
                continue
            fetched.extend(chunk_users)
            errors.extend(chunk_errors)

        with self._lock:
            for user in fetched:
                self._cache[user["id"]] = user

        return users + fetched, AggregatedError(errors) if errors else None

    def invalidate(self, ids: Optional[Iterable[str]] = None) -> None:
        """Drop cached users, all of them when ``ids`` is None."""
        with self._lock:
            if ids is None:
                self._cache.clear()
                return
            for uid in ids:
                self._cache.pop(uid, None)

    def close(self) -> None:
        """Shut down the worker pool if this resolver created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def _fetch_chunk(self, chunk: list[str]) -> tuple[list[User], list[Exception]]:
        users_ref = self.db.collection(USERS_COLLECTION)
        refs = [users_ref.document(uid) for uid in chunk]
        query = users_ref.where(
            filter=firestore.FieldFilter(FieldPath.document_id(), "in", refs)
        )

        users: list[User] = []
        errors: list[Exception] = []
        for doc in query.stream():
            try:
                users.append(user_from_snapshot(doc))
            except DocumentDecodeError as e:
                errors.append(e)
        return users, errors

    def _report(self, error: AggregatedError) -> None:
        logger.warning(f"Resolved users with {len(error.errors)} failure(s).")
        if self.on_error:
            self.on_error(error)

