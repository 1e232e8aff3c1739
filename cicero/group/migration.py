"""Move group members from the embedded map into the members subcollection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from firebase_admin import firestore

from cicero.core.constants import (
    FIRESTORE_BATCH_LIMIT,
    GROUP_CREATED_AT,
    GROUP_OWNER_ID,
    GROUPS_COLLECTION,
    LEGACY_MEMBERS_FIELD,
    MEMBERS_COLLECTION,
)
from cicero.group.models import new_membership

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


def migrate_embedded_members(db: Client, dry_run: bool = False) -> int:
    """Convert every group's ``members`` map into membership documents.

    Each ``{userId: true}`` entry becomes ``groups/{g}/members/{userId}`` with
    the role derived from ``ownerId``; the owner is added even if the map
    left them out. The map field is removed once its members are written.

    Returns:
        int: The number of groups migrated (or that would be, on a dry run).
    """
    migrated = 0
    for group in db.collection(GROUPS_COLLECTION).stream():
        data = group.to_dict() or {}
        members = data.get(LEGACY_MEMBERS_FIELD)
        if not isinstance(members, dict):
            continue

        owner_id = data.get(GROUP_OWNER_ID)
        member_ids = [uid for uid, is_member in members.items() if is_member]
        if owner_id and owner_id not in member_ids:
            member_ids.append(owner_id)

        migrated += 1
        if dry_run:
            logger.info(f"Would migrate {len(member_ids)} member(s) of {group.id}")
            continue

        joined_at = data.get(GROUP_CREATED_AT) or firestore.SERVER_TIMESTAMP
        members_ref = group.reference.collection(MEMBERS_COLLECTION)
        for start in range(0, len(member_ids), FIRESTORE_BATCH_LIMIT):
            batch = db.batch()
            for uid in member_ids[start : start + FIRESTORE_BATCH_LIMIT]:
                batch.set(
                    members_ref.document(uid),
                    new_membership(group.id, uid, owner_id, joined_at),
                )
            batch.commit()

        group.reference.update({LEGACY_MEMBERS_FIELD: firestore.DELETE_FIELD})
        logger.info(f"Migrated {len(member_ids)} member(s) of {group.id}")

    return migrated
