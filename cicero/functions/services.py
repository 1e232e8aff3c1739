"""Privileged group operations run by the callable functions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from firebase_admin import firestore
from flask import current_app

from cicero.core.constants import (
    FIRESTORE_BATCH_LIMIT,
    GROUP_IMAGE_URL,
    GROUP_OWNER_ID,
    GROUPS_COLLECTION,
    MEMBERS_COLLECTION,
)
from cicero.core.types import APIResponse
from cicero.errors import (
    DuplicateResourceError,
    NotFoundError,
    PermissionDeniedError,
    UnauthenticatedError,
    ValidationError,
)
from cicero.group.models import new_membership
from cicero.group.utils import delete_group_image

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client
    from google.cloud.firestore_v1.document import DocumentReference
    from google.cloud.firestore_v1.transaction import Transaction
    from google.cloud.storage import Bucket


def _join_group_transaction(
    transaction: Transaction, group_ref: DocumentReference, caller_id: str
) -> None:
    """Check the group and the caller's membership, then add the membership."""
    group_snapshot = group_ref.get(transaction=transaction)
    if not group_snapshot.exists:
        raise NotFoundError("Group does not exist.")

    member_ref = group_ref.collection(MEMBERS_COLLECTION).document(caller_id)
    if member_ref.get(transaction=transaction).exists:
        raise DuplicateResourceError("User is already a member of this group.")

    owner_id = (group_snapshot.to_dict() or {}).get(GROUP_OWNER_ID)
    transaction.set(
        member_ref,
        new_membership(group_ref.id, caller_id, owner_id, firestore.SERVER_TIMESTAMP),
    )


class GroupTransactionService:
    """Server-side operations that must not be trusted to the client."""

    @staticmethod
    def join_group(db: Client, group_id: Any, caller_id: str | None) -> APIResponse:
        """Add the caller to a group unless they are already a member."""
        if not caller_id:
            raise UnauthenticatedError("User must be authenticated to join a group.")
        if not group_id or not isinstance(group_id, str):
            raise ValidationError("The function must be called with a groupId.")

        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        join = firestore.transactional(_join_group_transaction)
        join(db.transaction(), group_ref, caller_id)

        current_app.logger.info(f"User {caller_id} joined group {group_id}")
        return {"success": True, "message": "Successfully joined the group."}

    @staticmethod
    def delete_group(
        db: Client, bucket: Bucket | None, group_id: Any, caller_id: str | None
    ) -> APIResponse:
        """Delete a group, its memberships and its image.

        Memberships go first and the group document last, so anyone following
        a membership to its group either finds the group or finds nothing.
        """
        if not caller_id:
            raise UnauthenticatedError("User must be authenticated to delete a group.")
        if not group_id or not isinstance(group_id, str):
            raise ValidationError("The function must be called with a groupId.")

        group_ref = db.collection(GROUPS_COLLECTION).document(group_id)
        group_snapshot = group_ref.get()
        if not group_snapshot.exists:
            raise NotFoundError("Group does not exist.")
        group_data = group_snapshot.to_dict() or {}

        member_docs = list(group_ref.collection(MEMBERS_COLLECTION).stream())
        is_owner = group_data.get(GROUP_OWNER_ID) == caller_id
        is_last_member = [doc.id for doc in member_docs] == [caller_id]
        if not (is_owner or is_last_member):
            raise PermissionDeniedError("Only the group owner can delete this group.")

        GroupTransactionService._delete_in_batches(
            db, [doc.reference for doc in member_docs]
        )

        if group_data.get(GROUP_IMAGE_URL) and bucket is not None:
            try:
                delete_group_image(bucket, group_id)
            except Exception as e:
                current_app.logger.error(f"Error deleting image for {group_id}: {e}")

        group_ref.delete()
        current_app.logger.info(
            f"Group {group_id} deleted by {caller_id} "
            f"({len(member_docs)} membership(s) removed)"
        )
        return {"message": "Group deleted successfully."}

    @staticmethod
    def _delete_in_batches(db: Client, refs: list[DocumentReference]) -> None:
        """Delete documents in write batches under Firestore's batch limit."""
        for i in range(0, len(refs), FIRESTORE_BATCH_LIMIT):
            batch = db.batch()
            for ref in refs[i : i + FIRESTORE_BATCH_LIMIT]:
                batch.delete(ref)
            batch.commit()
