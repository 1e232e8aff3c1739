"""Data models for users."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from cicero.core.constants import USER_EMAIL, USER_NAME, USER_PROFILE_IMAGE_URL
from cicero.core.types import FirestoreDocument
from cicero.errors import DocumentDecodeError

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot


class User(FirestoreDocument, total=False):
    """A user profile document in Firestore."""

    name: str
    email: str
    profileImageURL: Optional[str]


def user_from_snapshot(snapshot: DocumentSnapshot) -> User:
    """Decode a user document; ``name`` is required."""
    data = snapshot.to_dict() or {}
    name = data.get(USER_NAME)
    if not isinstance(name, str) or not name:
        raise DocumentDecodeError(f"users/{snapshot.id}", USER_NAME)
    return User(
        id=snapshot.id,
        name=name,
        email=data.get(USER_EMAIL) or "",
        profileImageURL=data.get(USER_PROFILE_IMAGE_URL) or None,
    )
