"""Core data types for the cicero application."""

from typing import Any, Dict, Optional, TypedDict  # noqa: UP035


class FirestoreDocument(TypedDict, total=False):
    """Generic Firestore document structure."""

    id: str
    path: str


class APIResponse(TypedDict, total=False):
    """Result payload returned by a callable function."""

    success: bool
    message: str
    data: Optional[Dict[str, Any]]  # noqa: UP006
