from __future__ import annotations

import unittest
from unittest.mock import MagicMock

from google.api_core import exceptions as google_exceptions

from cicero.errors import AggregatedError, DocumentDecodeError
from cicero.user.services import UserResolver


def _user_snapshot(uid, data):
    snapshot = MagicMock()
    snapshot.id = uid
    snapshot.to_dict.return_value = data
    return snapshot


class TestUserResolver(unittest.TestCase):
    def setUp(self) -> None:
        self.users = {f"u{i}": {"name": f"User {i}"} for i in range(30)}
        self.failing_ids: set[str] = set()
        self.db = MagicMock()
        self.users_ref = self.db.collection.return_value

        def document(uid):
            ref = MagicMock()
            ref.id = uid
            return ref

        def where(filter=None):
            ids = [ref.id for ref in filter.value]
            if self.failing_ids & set(ids):
                raise google_exceptions.ServiceUnavailable("backend down")
            query = MagicMock()
            query.stream.return_value = [
                _user_snapshot(uid, self.users[uid]) for uid in ids if uid in self.users
            ]
            return query

        self.users_ref.document.side_effect = document
        self.users_ref.where.side_effect = where
        self.errors: list[AggregatedError] = []
        self.resolver = UserResolver(self.db, batch_size=10, on_error=self.errors.append)
        self.addCleanup(self.resolver.close)

    def test_empty_input_makes_no_query(self) -> None:
        self.assertEqual(self.resolver.resolve([]), [])
        self.db.collection.assert_not_called()
        self.users_ref.where.assert_not_called()

    def test_resolve_chunks_by_batch_size(self) -> None:
        ids = [f"u{i}" for i in range(22)] + ["ghost1", "ghost2", "ghost3"]
        users = self.resolver.resolve(ids)

        self.assertEqual(self.users_ref.where.call_count, 3)
        self.assertEqual(len(users), 22)
        self.assertEqual({u["id"] for u in users}, {f"u{i}" for i in range(22)})
        self.assertIsNone(self.resolver.last_error)
        self.assertEqual(self.errors, [])

    def test_duplicate_ids_are_queried_once(self) -> None:
        users = self.resolver.resolve(["u1", "u1", "u2", "", "u2"])
        self.assertEqual(sorted(u["id"] for u in users), ["u1", "u2"])
        self.assertEqual(self.users_ref.where.call_count, 1)

    def test_cached_users_are_not_queried_again(self) -> None:
        self.resolver.resolve(["u1", "u2"])
        self.resolver.resolve(["u1", "u2"])
        self.assertEqual(self.users_ref.where.call_count, 1)

        self.resolver.resolve(["u1", "u2"], refresh=True)
        self.assertEqual(self.users_ref.where.call_count, 2)

        self.resolver.invalidate(["u1"])
        users = self.resolver.resolve(["u1", "u2"])
        self.assertEqual(self.users_ref.where.call_count, 3)
        self.assertEqual(len(users), 2)

    def test_failed_chunk_keeps_successful_chunks(self) -> None:
        self.failing_ids = {"u15"}
        users = self.resolver.resolve([f"u{i}" for i in range(20)])

        self.assertEqual(len(users), 10)
        self.assertTrue(all(int(u["id"][1:]) < 10 for u in users))
        self.assertIsInstance(self.resolver.last_error, AggregatedError)
        self.assertEqual(len(self.errors), 1)
        self.assertEqual(len(self.errors[0].errors), 1)

    def test_undecodable_user_is_reported(self) -> None:
        self.users["u3"] = {"email": "nameless@example.com"}
        users = self.resolver.resolve(["u1", "u3"])

        self.assertEqual([u["id"] for u in users], ["u1"])
        self.assertIsInstance(self.errors[0].errors[0], DocumentDecodeError)

    def test_resolve_with_errors_does_not_report(self) -> None:
        self.failing_ids = {"u1"}
        users, error = self.resolver.resolve_with_errors(["u1"])
        self.assertEqual(users, [])
        self.assertIsInstance(error, AggregatedError)
        self.assertEqual(self.errors, [])

    def test_batch_size_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            UserResolver(self.db, batch_size=0)


if __name__ == "__main__":
    unittest.main()
