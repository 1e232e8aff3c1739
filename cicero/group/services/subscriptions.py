"""Live Firestore listeners that keep group views up to date."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, wait
from typing import TYPE_CHECKING, Any, Callable, Optional

from firebase_admin import firestore

from cicero.core.constants import (
    GROUPS_COLLECTION,
    MEMBER_USER_ID,
    MEMBERS_COLLECTION,
)
from cicero.errors import (
    AggregatedError,
    AppError,
    DeadlineExceededError,
    DocumentDecodeError,
    NotFoundError,
)
from cicero.group.models import (
    Group,
    GroupDetails,
    Membership,
    group_from_snapshot,
    membership_from_snapshot,
    membership_group_id,
)
from cicero.utils import translate_error

from .group_service import GroupService

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

    from cicero.user.services import UserResolver

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[AppError], None]


def sort_groups(groups: list[Group]) -> list[Group]:
    """Order groups by name, case-insensitively, with the id as tie-breaker."""
    return sorted(groups, key=lambda group: (group["name"].casefold(), group["id"]))


class _Subscription:
    """Shared lifecycle for listener handles.

    ``close`` detaches every Firestore listener; once it returns no further
    callbacks reach the consumer. Closing twice is harmless.
    """

    def __init__(
        self,
        on_change: Optional[Callable[[Any], None]] = None,
        on_error: Optional[ErrorCallback] = None,
        on_close: Optional[Callable[[Any], None]] = None,
    ) -> None:
        self.on_change = on_change
        self.on_error = on_error
        self._on_close = on_close
        self._watches: list[Any] = []
        self._lock = threading.RLock()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Stop listening."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            watches, self._watches = self._watches, []
        for watch in watches:
            try:
                watch.unsubscribe()
            except Exception as e:
                logger.warning(f"Failed to detach listener: {e}")
        if self._on_close:
            self._on_close(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def _emit_change(self, value: Any) -> None:
        if self._closed or not self.on_change:
            return
        try:
            self.on_change(value)
        except Exception as e:
            logger.error(f"Change callback failed: {e}")

    def _emit_error(self, error: AppError) -> None:
        if self._closed:
            return
        logger.warning(f"{type(self).__name__}: {error.message}")
        if not self.on_error:
            return
        try:
            self.on_error(error)
        except Exception as e:
            logger.error(f"Error callback failed: {e}")


class MembershipSubscription(_Subscription):
    """The signed-in user's groups, kept in sync with their memberships.

    Every membership snapshot triggers a parallel fetch of the listed groups.
    A group that fails to load keeps its last known value and the failures are
    reported together as one ``AggregatedError``; groups that loaded are
    always published.
    """

    def __init__(
        self,
        db: Client,
        user_id: str,
        executor: Executor,
        timeout: float,
        on_change: Optional[Callable[[list[Group]], None]] = None,
        on_error: Optional[ErrorCallback] = None,
        on_close: Optional[Callable[[Any], None]] = None,
    ) -> None:
        super().__init__(on_change, on_error, on_close)
        self.db = db
        self.user_id = user_id
        self.timeout = timeout
        self.groups: list[Group] = []
        self.warning: Optional[AggregatedError] = None
        self._executor = executor
        self._known: dict[str, Group] = {}
        self._docs: list[Any] = []

    def start(self) -> MembershipSubscription:
        """Attach the membership listener."""
        query = self.db.collection_group(MEMBERS_COLLECTION).where(
            filter=firestore.FieldFilter(MEMBER_USER_ID, "==", self.user_id)
        )
        watch = query.on_snapshot(self._on_snapshot)
        with self._lock:
            if self._closed:
                watch.unsubscribe()
            else:
                self._watches.append(watch)
        return self

    def refresh(self) -> list[Group]:
        """Refetch every group in the last membership snapshot."""
        with self._lock:
            docs = list(self._docs)
        self._on_snapshot(docs, [], None)
        return list(self.groups)

    def _on_snapshot(self, docs, changes, read_time) -> None:
        if self._closed:
            return
        try:
            self._reconcile(docs)
        except Exception as e:
            logger.error(f"Failed to update groups for {self.user_id}: {e}")
            self._emit_error(translate_error(e))

    def _reconcile(self, docs) -> None:
        with self._lock:
            if self._closed:
                return
            self._docs = list(docs)
            group_ids = sorted({membership_group_id(doc) for doc in docs})
            fetched, failed = self._fetch_groups(group_ids)

            view: dict[str, Group] = {}
            for group_id in group_ids:
                if group_id in failed:
                    if group_id in self._known:
                        view[group_id] = self._known[group_id]
                elif fetched.get(group_id) is not None:
                    view[group_id] = fetched[group_id]
                else:
                    logger.info(f"Ignoring membership of missing group {group_id}")

            self._known = view
            self.groups = sort_groups(list(view.values()))
            self.warning = AggregatedError(list(failed.values())) if failed else None

            self._emit_change(list(self.groups))
            if self.warning:
                self._emit_error(self.warning)

    def _fetch_groups(
        self, group_ids: list[str]
    ) -> tuple[dict[str, Optional[Group]], dict[str, AppError]]:
        futures = {
            group_id: self._executor.submit(GroupService.fetch_group, self.db, group_id)
            for group_id in group_ids
        }
        done, _ = wait(list(futures.values()), timeout=self.timeout)

        fetched: dict[str, Optional[Group]] = {}
        failed: dict[str, AppError] = {}
        for group_id, future in futures.items():
            if future not in done:
                future.cancel()
                failed[group_id] = DeadlineExceededError(
                    f"Timed out loading group {group_id}."
                )
                continue
            try:
                fetched[group_id] = future.result()
            except Exception as e:
                logger.warning(f"Failed to load group {group_id}: {e}")
                failed[group_id] = translate_error(e)
        return fetched, failed


class GroupSubscription(_Subscription):
    """One group with its memberships and member profiles.

    Publishes ``GroupDetails`` once both the group document and its member
    list have arrived, and again whenever either changes. A deleted group is
    reported as ``NotFoundError``.
    """

    def __init__(
        self,
        db: Client,
        group_id: str,
        resolver: UserResolver,
        on_change: Optional[Callable[[GroupDetails], None]] = None,
        on_error: Optional[ErrorCallback] = None,
        on_close: Optional[Callable[[Any], None]] = None,
    ) -> None:
        super().__init__(on_change, on_error, on_close)
        self.db = db
        self.group_id = group_id
        self.resolver = resolver
        self.details: Optional[GroupDetails] = None
        self._group: Optional[Group] = None
        self._memberships: Optional[list[Membership]] = None
        self._membership_errors: list[Exception] = []

    def start(self) -> GroupSubscription:
        """Attach the group and member listeners."""
        group_ref = self.db.collection(GROUPS_COLLECTION).document(self.group_id)
        watches = [
            group_ref.on_snapshot(self._on_group_snapshot),
            group_ref.collection(MEMBERS_COLLECTION).on_snapshot(
                self._on_members_snapshot
            ),
        ]
        with self._lock:
            if self._closed:
                for watch in watches:
                    watch.unsubscribe()
            else:
                self._watches.extend(watches)
        return self

    def _on_group_snapshot(self, docs, changes, read_time) -> None:
        with self._lock:
            if self._closed:
                return
            snapshot = docs[0] if docs else None
            if snapshot is None or not snapshot.exists:
                self._group = None
                self.details = None
                self._emit_error(NotFoundError("Group does not exist."))
                return
            try:
                self._group = group_from_snapshot(snapshot)
            except DocumentDecodeError as e:
                self._emit_error(e)
                return
            self._publish()

    def _on_members_snapshot(self, docs, changes, read_time) -> None:
        with self._lock:
            if self._closed:
                return
            memberships: list[Membership] = []
            errors: list[Exception] = []
            for doc in docs:
                try:
                    memberships.append(membership_from_snapshot(doc))
                except DocumentDecodeError as e:
                    errors.append(e)
            self._memberships = memberships
            self._membership_errors = errors
            self._publish()

    def _publish(self) -> None:
        if self._group is None or self._memberships is None:
            return
        try:
            members, user_error = self.resolver.resolve_with_errors(
                [membership["userId"] for membership in self._memberships]
            )
        except Exception as e:
            logger.error(f"Failed to resolve members of {self.group_id}: {e}")
            self._emit_error(translate_error(e))
            return

        errors = list(self._membership_errors)
        if user_error:
            errors.extend(user_error.errors)

        self.details = GroupDetails(
            group=self._group,
            memberships=list(self._memberships),
            members=members,
        )
        self._emit_change(self.details)
        if errors:
            self._emit_error(AggregatedError(errors))
