"""Tests for the error taxonomy and user-facing messages."""

from __future__ import annotations

import unittest

from cicero.errors import (
    ERRORS_BY_CODE,
    GENERIC_MESSAGE,
    AggregatedError,
    AuthError,
    DeadlineExceededError,
    DegradedStateError,
    DocumentDecodeError,
    DuplicateResourceError,
    InternalError,
    NotFoundError,
    PermissionDeniedError,
    UnauthenticatedError,
    ValidationError,
    user_message,
)


class ErrorTaxonomyTestCase(unittest.TestCase):
    def test_codes_and_status(self) -> None:
        self.assertEqual(NotFoundError().status_code, 404)
        self.assertEqual(DuplicateResourceError().code, "already-exists")
        self.assertEqual(PermissionDeniedError().status_code, 403)
        self.assertEqual(UnauthenticatedError().status_code, 401)
        self.assertIs(ERRORS_BY_CODE["invalid-argument"], ValidationError)
        self.assertIs(ERRORS_BY_CODE["deadline-exceeded"], DeadlineExceededError)

    def test_internal_kinds(self) -> None:
        self.assertIsInstance(DeadlineExceededError(), InternalError)
        error = DocumentDecodeError("groups/G1", "ownerId")
        self.assertIsInstance(error, InternalError)
        self.assertEqual(error.path, "groups/G1")
        self.assertIn("ownerId", error.message)

    def test_aggregated_error_keeps_failures(self) -> None:
        failures = [NotFoundError("a"), DeadlineExceededError()]
        error = AggregatedError(failures)
        self.assertEqual(error.errors, failures)
        self.assertTrue(error.message.startswith("2 operation(s) failed"))

    def test_degraded_state_names_group_and_step(self) -> None:
        cause = InternalError("boom")
        error = DegradedStateError("BC123", "add owner membership", cause)
        self.assertEqual(error.group_id, "BC123")
        self.assertEqual(error.step, "add owner membership")
        self.assertIs(error.cause, cause)
        self.assertIn("BC123", error.message)


class UserMessageTestCase(unittest.TestCase):
    def test_user_written_messages_pass_through(self) -> None:
        self.assertEqual(
            user_message(ValidationError("Please enter a group name.")),
            "Please enter a group name.",
        )
        self.assertEqual(
            user_message(PermissionDeniedError("Transfer ownership first.")),
            "Transfer ownership first.",
        )
        self.assertEqual(user_message(AuthError("Wrong password")), "Wrong password")

    def test_backend_text_is_never_shown(self) -> None:
        message = user_message(NotFoundError("groups/XYZ missing in datastore"))
        self.assertNotIn("datastore", message)
        self.assertIn("group", message)

    def test_unknown_errors_get_generic_message(self) -> None:
        self.assertEqual(user_message(RuntimeError("boom")), GENERIC_MESSAGE)
        self.assertEqual(user_message(InternalError("boom")), GENERIC_MESSAGE)


if __name__ == "__main__":
    unittest.main()
