"""Service layer for group mutations made directly against Firestore."""

from __future__ import annotations

import datetime
import logging
from typing import TYPE_CHECKING, Any

from firebase_admin import firestore

from cicero.core.constants import (
    GROUP_CREATED_AT,
    GROUP_DESCRIPTION,
    GROUP_ID_MAX_ATTEMPTS,
    GROUP_IMAGE_URL,
    GROUP_NAME,
    GROUP_OWNER_ID,
    GROUPS_COLLECTION,
    MEMBER_ROLE,
    MEMBERS_COLLECTION,
    ROLE_ADMIN,
    ROLE_MEMBER,
)
from cicero.errors import (
    DuplicateResourceError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from cicero.group.models import (
    Group,
    Membership,
    group_from_snapshot,
    membership_from_snapshot,
    new_membership,
)
from cicero.group.utils import generate_group_id, upload_group_image

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction
    from google.cloud.storage import Bucket

logger = logging.getLogger(__name__)


def clean_group_name(name: Any) -> str:
    """Return the trimmed group name, rejecting blank names."""
    cleaned = name.strip() if isinstance(name, str) else ""
    if not cleaned:
        raise ValidationError("Please enter a group name.")
    return cleaned


def clean_description(description: Any) -> str:
    """Return the trimmed description; empty descriptions are allowed."""
    if description is None:
        return ""
    if not isinstance(description, str):
        raise ValidationError("The description must be text.")
    return description.strip()


def _create_group_transaction(
    transaction: Transaction, group_ref: DocumentReference, group_data: dict[str, Any]
) -> None:
    """Write a new group document unless the id is already taken."""
    if group_ref.get(transaction=transaction).exists:
        raise DuplicateResourceError(f"Group id {group_ref.id} is already taken.")
    transaction.set(group_ref, group_data)


def _transfer_ownership_transaction(
    transaction: Transaction,
    group_ref: DocumentReference,
    caller_id: str,
    new_owner_id: str,
) -> None:
    """Move ownership and the admin role to another member in one commit."""
    group_snapshot = group_ref.get(transaction=transaction)
    if not group_snapshot.exists:
        raise NotFoundError("Group does not exist.")
    if (group_snapshot.to_dict() or {}).get(GROUP_OWNER_ID) != caller_id:
        raise PermissionDeniedError("Only the group owner can transfer ownership.")
    if new_owner_id == caller_id:
        return

    members_ref = group_ref.collection(MEMBERS_COLLECTION)
    new_owner_ref = members_ref.document(new_owner_id)
    old_owner_ref = members_ref.document(caller_id)
    if not new_owner_ref.get(transaction=transaction).exists:
        raise ValidationError("The new owner must be a member of the group.")
    old_owner_is_member = old_owner_ref.get(transaction=transaction).exists

    transaction.update(group_ref, {GROUP_OWNER_ID: new_owner_id})
    transaction.update(new_owner_ref, {MEMBER_ROLE: ROLE_ADMIN})
    if old_owner_is_member:
        transaction.update(old_owner_ref, {MEMBER_ROLE: ROLE_MEMBER})


class GroupService:
    """Service class for group-related operations."""

    @staticmethod
    def fetch_group(db: Client, group_id: str) -> Group | None:
        """Fetch and decode one group, or None if it does not exist."""
        snapshot = db.collection(GROUPS_COLLECTION).document(group_id).get()
        if not snapshot.exists:
            return None
        return group_from_snapshot(snapshot)

    @staticmethod
    def get_memberships(db: Client, group_id: str) -> list[Membership]:
        """Return the membership records of a group."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        if not group_ref.get().exists:
            raise NotFoundError("Group does not exist.")
        return [
            membership_from_snapshot(doc)
            for doc in group_ref.collection(MEMBERS_COLLECTION).stream()
        ]

    @staticmethod
    def create_group_document(
        db: Client, owner_id: str, name: str, description: str
    ) -> str:
        """Allocate a group code and write the group document.

        Codes are short, so each attempt checks for an existing group inside
        a transaction before writing and a collision draws a new code.
        """
        group_data = {
            GROUP_NAME: name,
            GROUP_DESCRIPTION: description,
            GROUP_OWNER_ID: owner_id,
            GROUP_IMAGE_URL: None,
            GROUP_CREATED_AT: datetime.datetime.now(datetime.timezone.utc),
        }
        create = firestore.transactional(_create_group_transaction)
        for _ in range(GROUP_ID_MAX_ATTEMPTS):
            group_id = generate_group_id()
            group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
            try:
                create(db.transaction(), group_ref, group_data)
            except DuplicateResourceError:
                logger.info(f"Group id {group_id} collided, drawing another")
                continue
            logger.info(f"Created group {group_id} for {owner_id}")
            return group_id
        raise InternalError("Could not allocate a unique group id.")

    @staticmethod
    def add_owner_membership(db: Client, group_id: str, owner_id: str) -> None:
        """Write the creator's admin membership."""
        member_ref = (
            db.collection(GROUPS_COLLECTION)
            .document(group_id)
            .collection(MEMBERS_COLLECTION)
            .document(owner_id)
        )
        member_ref.set(
            new_membership(group_id, owner_id, owner_id, firestore.SERVER_TIMESTAMP)
        )

    @staticmethod
    def set_group_image(
        db: Client, bucket: Bucket, group_id: str, jpeg_data: bytes
    ) -> str:
        """Upload a prepared JPEG as the group's image and store its URL."""
        image_url = upload_group_image(bucket, group_id, jpeg_data)
        db.collection(GROUPS_COLLECTION).document(group_id).update(
            {GROUP_IMAGE_URL: image_url}
        )
        return image_url

    @staticmethod
    def update_group_fields(db: Client, group_id: str, fields: dict[str, Any]) -> None:
        """Apply a field-level update to a group document."""
        db.collection(GROUPS_COLLECTION).document(group_id).update(fields)

    @staticmethod
    def leave_group(db: Client, group_id: str, user_id: str) -> bool:
        """Remove the user's membership.

        Returns:
            bool: True once the membership is gone, False when the user is the
            last member, in which case the whole group has to be deleted.
        """
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        group_snapshot = group_ref.get()
        if not group_snapshot.exists:
            raise NotFoundError("Group does not exist.")

        members_ref = group_ref.collection(MEMBERS_COLLECTION)
        member_ids = [doc.id for doc in members_ref.stream()]
        if user_id not in member_ids:
            raise NotFoundError("You are not a member of this group.")
        if member_ids == [user_id]:
            return False

        if (group_snapshot.to_dict() or {}).get(GROUP_OWNER_ID) == user_id:
            raise PermissionDeniedError(
                "The owner must transfer ownership before leaving the group."
            )

        members_ref.document(user_id).delete()
        logger.info(f"User {user_id} left group {group_id}")
        return True

    @staticmethod
    def transfer_ownership(
        db: Client, group_id: str, caller_id: str, new_owner_id: str
    ) -> None:
        """Make another member the owner of a group."""
        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        transfer = firestore.transactional(_transfer_ownership_transaction)
        transfer(db.transaction(), group_ref, caller_id, new_owner_id)
        logger.info(f"Ownership of {group_id} moved from {caller_id} to {new_owner_id}")
