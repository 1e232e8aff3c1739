"""Fakes shared by the sync engine tests."""

from __future__ import annotations

from typing import Any

from cicero import create_app
from cicero.auth.session import SessionStore
from cicero.functions.services import GroupTransactionService


class FakeWatch:
    """Stands in for the handle returned by ``on_snapshot``."""

    def __init__(self, callback: Any) -> None:
        self.callback = callback
        self.unsubscribed = False

    def unsubscribe(self) -> None:
        self.unsubscribed = True


class FakeMembersQuery:
    """``collection_group("members").where(userId == uid)`` over a MockFirestore."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.user_id: str | None = None
        self.watches: list[FakeWatch] = []

    def where(self, filter: Any = None, **kwargs: Any) -> FakeMembersQuery:
        self.user_id = filter.value
        return self

    def on_snapshot(self, callback: Any) -> FakeWatch:
        watch = FakeWatch(callback)
        self.watches.append(watch)
        return watch

    def docs(self) -> list[Any]:
        result = []
        for group in self.db.collection("groups").stream():
            # Reading the subcollection of a missing group would create it
            if not group.exists or "members" not in (group.to_dict() or {}):
                continue
            for member in group.reference.collection("members").stream():
                if (member.to_dict() or {}).get("userId") == self.user_id:
                    result.append(member)
        return result

    def push(self) -> None:
        docs = self.docs()
        for watch in self.watches:
            if not watch.unsubscribed:
                watch.callback(docs, [], None)


class FakeCollectionGroup:
    """Replacement for ``db.collection_group`` that lets tests emit snapshots."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.queries: list[FakeMembersQuery] = []

    def __call__(self, name: str) -> FakeMembersQuery:
        query = FakeMembersQuery(self.db)
        self.queries.append(query)
        return query

    def push(self) -> None:
        """Deliver the current memberships to every open listener."""
        for query in self.queries:
            query.push()


class LocalFunctions:
    """Runs the callable functions in-process instead of over HTTP."""

    def __init__(self, db: Any, session: SessionStore, bucket: Any = None) -> None:
        self.db = db
        self.session = session
        self.bucket = bucket
        self.app = create_app({"TESTING": True})

    def join_group(self, group_id: str) -> Any:
        with self.app.app_context():
            return GroupTransactionService.join_group(
                self.db, group_id, self.session.uid
            )

    def delete_group(self, group_id: str) -> Any:
        with self.app.app_context():
            return GroupTransactionService.delete_group(
                self.db, self.bucket, group_id, self.session.uid
            )


def signed_in(uid: str) -> SessionStore:
    """Return a session already signed in as ``uid``."""
    session = SessionStore()
    session.set_user(uid, f"token-{uid}", f"{uid}@example.com")
    return session
