"""Data models for groups and memberships."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional, TypedDict

from cicero.core.constants import (
    GROUP_CREATED_AT,
    GROUP_DESCRIPTION,
    GROUP_IMAGE_URL,
    GROUP_NAME,
    GROUP_ORIGINAL_ID,
    GROUP_OWNER_ID,
    MEMBER_GROUP_ID,
    MEMBER_JOINED_AT,
    MEMBER_ROLE,
    MEMBER_USER_ID,
    ROLE_ADMIN,
    ROLE_MEMBER,
)
from cicero.core.types import FirestoreDocument
from cicero.errors import DocumentDecodeError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot

    from cicero.user.models import User


class Group(FirestoreDocument, total=False):
    """A group document in Firestore."""

    name: str
    description: str
    ownerId: str
    imageURL: Optional[str]
    createdAt: Any
    originalId: Optional[str]


class Membership(FirestoreDocument, total=False):
    """A document in a group's 'members' subcollection."""

    userId: str
    groupId: str
    role: str
    joinedAt: Any


class GroupDetails(TypedDict):
    """Everything the group detail screen shows."""

    group: Group
    memberships: list[Membership]
    members: list[User]


def _path(snapshot: Any) -> str:
    reference = getattr(snapshot, "reference", None)
    return getattr(reference, "path", None) or str(snapshot.id)


def _required_str(data: dict[str, Any], field: str, path: str) -> str:
    value = data.get(field)
    if not isinstance(value, str) or not value:
        raise DocumentDecodeError(path, field)
    return value


def _optional_str(data: dict[str, Any], field: str) -> Optional[str]:
    value = data.get(field)
    return value if isinstance(value, str) and value else None


def group_from_snapshot(snapshot: DocumentSnapshot) -> Group:
    """Decode a group document.

    ``name`` and ``ownerId`` must be non-empty strings and ``createdAt`` must
    be present; everything else is optional.
    """
    data = snapshot.to_dict() or {}
    path = _path(snapshot)
    if data.get(GROUP_CREATED_AT) is None:
        raise DocumentDecodeError(path, GROUP_CREATED_AT)

    description = data.get(GROUP_DESCRIPTION)
    return Group(
        id=snapshot.id,
        name=_required_str(data, GROUP_NAME, path),
        description=description if isinstance(description, str) else "",
        ownerId=_required_str(data, GROUP_OWNER_ID, path),
        imageURL=_optional_str(data, GROUP_IMAGE_URL),
        createdAt=data[GROUP_CREATED_AT],
        originalId=_optional_str(data, GROUP_ORIGINAL_ID),
    )


def membership_group_id(snapshot: DocumentSnapshot) -> str:
    """Return the id of the group a membership document belongs to."""
    group_id = (snapshot.to_dict() or {}).get(MEMBER_GROUP_ID)
    if isinstance(group_id, str) and group_id:
        return group_id
    return snapshot.reference.parent.parent.id


def membership_from_snapshot(snapshot: DocumentSnapshot) -> Membership:
    """Decode a membership document.

    The document id is the member's user id. Older records may lack the
    ``groupId`` field, in which case it is taken from the parent path.
    """
    data = snapshot.to_dict() or {}
    path = _path(snapshot)
    role = data.get(MEMBER_ROLE)
    if role not in (ROLE_ADMIN, ROLE_MEMBER):
        raise DocumentDecodeError(path, MEMBER_ROLE)

    return Membership(
        id=snapshot.id,
        userId=data.get(MEMBER_USER_ID) or snapshot.id,
        groupId=membership_group_id(snapshot),
        role=role,
        joinedAt=data.get(MEMBER_JOINED_AT),
    )


def new_membership(group_id: str, user_id: str, owner_id: str, joined_at: Any) -> dict:
    """Build the stored fields for a membership, deriving role from ownership."""
    return {
        MEMBER_USER_ID: user_id,
        MEMBER_GROUP_ID: group_id,
        MEMBER_ROLE: ROLE_ADMIN if user_id == owner_id else ROLE_MEMBER,
        MEMBER_JOINED_AT: joined_at,
    }
