"""The group synchronization engine used by client code."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any, Callable, Optional

from cicero.core.config import ClientConfig
from cicero.core.constants import GROUP_DESCRIPTION, GROUP_NAME
from cicero.core.types import APIResponse
from cicero.errors import AppError, DegradedStateError, InternalError, ValidationError
from cicero.group.models import GroupDetails
from cicero.group.utils import prepare_group_image
from cicero.user.services import UserResolver
from cicero.utils import Debouncer, run_with_timeout, translate_error

from .group_service import GroupService, clean_description, clean_group_name
from .subscriptions import GroupSubscription, MembershipSubscription

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.storage import Bucket

    from cicero.auth.session import SessionStore
    from cicero.functions.client import CallableClient
    from cicero.group.models import Group
    from cicero.user.models import User

logger = logging.getLogger(__name__)


def _clean_group_id(group_id: Any) -> str:
    cleaned = group_id.strip() if isinstance(group_id, str) else ""
    if not cleaned:
        raise ValidationError("Please enter a group ID.")
    return cleaned


class GroupSyncEngine:
    """Mirrors the signed-in user's groups and issues group mutations.

    Direct writes (create, leave, transfer, metadata edits) go to Firestore;
    join and delete go through the callable transaction functions. Every
    remote call is bounded by ``config.request_timeout``.
    """

    def __init__(
        self,
        db: Client,
        session: SessionStore,
        functions: CallableClient,
        bucket: Optional[Bucket] = None,
        config: Optional[ClientConfig] = None,
        on_error: Optional[Callable[[AppError], None]] = None,
    ) -> None:
        self.db = db
        self.session = session
        self.functions = functions
        self.bucket = bucket
        self.config = config or ClientConfig()
        self.on_error = on_error
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="cicero"
        )
        self.resolver = UserResolver(
            db,
            batch_size=self.config.user_batch_size,
            executor=self._executor,
            timeout=self.config.request_timeout,
            on_error=self._report,
        )
        self._debouncer = Debouncer(self.config.edit_debounce, on_error=self._report)
        self._subscriptions: set[Any] = set()
        self._lock = threading.Lock()
        self._closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    # Subscriptions

    def subscribe(
        self,
        on_change: Optional[Callable[[list[Group]], None]] = None,
        on_error: Optional[Callable[[AppError], None]] = None,
    ) -> MembershipSubscription:
        """Start a live view of the signed-in user's groups."""
        user_id = self.session.require_uid()
        subscription = MembershipSubscription(
            self.db,
            user_id,
            self._executor,
            self.config.request_timeout,
            on_change=on_change,
            on_error=on_error,
            on_close=self._release,
        )
        self._track(subscription)
        try:
            return subscription.start()
        except Exception:
            self._release(subscription)
            raise

    def watch_group(
        self,
        group_id: str,
        on_change: Optional[Callable[[GroupDetails], None]] = None,
        on_error: Optional[Callable[[AppError], None]] = None,
    ) -> GroupSubscription:
        """Start a live view of one group and its members."""
        self.session.require_uid()
        subscription = GroupSubscription(
            self.db,
            _clean_group_id(group_id),
            self.resolver,
            on_change=on_change,
            on_error=on_error,
            on_close=self._release,
        )
        self._track(subscription)
        try:
            return subscription.start()
        except Exception:
            self._release(subscription)
            raise

    # Mutations

    def create_group(
        self, name: str, description: str = "", image: Optional[bytes] = None
    ) -> str:
        """Create a group owned by the signed-in user and return its id.

        Raises:
            DegradedStateError: If the group document was written but a later
                step failed. The partial group is left in place.
        """
        owner_id = self.session.require_uid()
        name = clean_group_name(name)
        description = clean_description(description)
        jpeg_data = None
        if image is not None:
            if self.bucket is None:
                raise InternalError("No storage bucket is configured.")
            jpeg_data = prepare_group_image(image)

        group_id = self._run(
            GroupService.create_group_document, self.db, owner_id, name, description
        )

        try:
            self._run(GroupService.add_owner_membership, self.db, group_id, owner_id)
        except AppError as e:
            logger.error(f"Group {group_id} has no owner membership: {e.message}")
            raise DegradedStateError(group_id, "add owner membership", e) from e

        if jpeg_data is not None:
            try:
                self._run(
                    GroupService.set_group_image, self.db, self.bucket, group_id, jpeg_data
                )
            except AppError as e:
                logger.error(f"Group {group_id} image upload failed: {e.message}")
                raise DegradedStateError(group_id, "upload image", e) from e

        return group_id

    def join_group(self, group_id: str) -> APIResponse:
        """Join a group by its code."""
        self.session.require_uid()
        return self.functions.join_group(_clean_group_id(group_id))

    def leave_group(self, group_id: str) -> None:
        """Leave a group; the last member leaving deletes it."""
        user_id = self.session.require_uid()
        group_id = _clean_group_id(group_id)
        removed = self._run(GroupService.leave_group, self.db, group_id, user_id)
        if not removed:
            logger.info(f"Last member left {group_id}, deleting it")
            self.functions.delete_group(group_id)

    def transfer_ownership(self, group_id: str, new_owner_id: str) -> None:
        """Hand ownership of a group to another member."""
        caller_id = self.session.require_uid()
        if not new_owner_id:
            raise ValidationError("Please choose the new owner.")
        self._run(
            GroupService.transfer_ownership,
            self.db,
            _clean_group_id(group_id),
            caller_id,
            new_owner_id,
        )

    def update_name(self, group_id: str, name: str) -> None:
        self.session.require_uid()
        group_id = _clean_group_id(group_id)
        fields = {GROUP_NAME: clean_group_name(name)}
        self._run(GroupService.update_group_fields, self.db, group_id, fields)

    def update_description(self, group_id: str, description: str) -> None:
        self.session.require_uid()
        group_id = _clean_group_id(group_id)
        fields = {GROUP_DESCRIPTION: clean_description(description)}
        self._run(GroupService.update_group_fields, self.db, group_id, fields)

    def update_image(self, group_id: str, image: bytes) -> str:
        """Replace a group's image and return the new URL."""
        self.session.require_uid()
        group_id = _clean_group_id(group_id)
        if self.bucket is None:
            raise InternalError("No storage bucket is configured.")
        jpeg_data = prepare_group_image(image)
        return self._run(
            GroupService.set_group_image, self.db, self.bucket, group_id, jpeg_data
        )

    def schedule_name_update(self, group_id: str, name: str) -> None:
        """Queue a name edit; only the last edit in a burst is written."""
        self._debouncer.call((group_id, GROUP_NAME), self.update_name, group_id, name)

    def schedule_description_update(self, group_id: str, description: str) -> None:
        """Queue a description edit; only the last edit in a burst is written."""
        self._debouncer.call(
            (group_id, GROUP_DESCRIPTION),
            self.update_description,
            group_id,
            description,
        )

    def flush(self) -> None:
        """Write queued edits now."""
        self._debouncer.flush()

    def delete_group(self, group_id: str) -> APIResponse:
        """Delete a group with all of its memberships."""
        self.session.require_uid()
        return self.functions.delete_group(_clean_group_id(group_id))

    def get_members(self, group_id: str) -> list[User]:
        """Read a group's member profiles once."""
        self.session.require_uid()
        memberships = self._run(
            GroupService.get_memberships, self.db, _clean_group_id(group_id)
        )
        return self.resolver.resolve([m["userId"] for m in memberships])

    def close(self) -> None:
        """Release subscriptions, write queued edits and stop the worker pool."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            subscriptions = list(self._subscriptions)
        for subscription in subscriptions:
            subscription.close()
        self._debouncer.flush()
        self._executor.shutdown(wait=False)

    # Internals

    def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        return run_with_timeout(self._executor, self.config.request_timeout, func, *args)

    def _track(self, subscription: Any) -> None:
        with self._lock:
            if self._closed:
                raise InternalError("The sync engine is closed.")
            self._subscriptions.add(subscription)

    def _release(self, subscription: Any) -> None:
        with self._lock:
            self._subscriptions.discard(subscription)

    def _report(self, error: Exception) -> None:
        error = translate_error(error)
        logger.warning(f"Background operation failed: {error.message}")
        if self.on_error:
            self.on_error(error)
