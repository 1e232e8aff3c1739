"""Tests for the app factory, Firebase setup and client configuration."""

import os
import unittest
from unittest.mock import MagicMock, patch

from cicero import create_app
from cicero.auth.session import SessionStore
from cicero.client import create_client
from cicero.core.config import ClientConfig
from cicero.errors import InternalError
from cicero.firebase import initialize_firebase
from cicero.group.services import GroupSyncEngine
from tests.helpers import signed_in


class AppFactoryTestCase(unittest.TestCase):
    """Test case for the app factory."""

    @patch("cicero.initialize_firebase")
    def test_testing_mode_skips_firebase(self, mock_init):
        app = create_app({"TESTING": True, "SECRET_KEY": "test"})
        self.assertEqual(app.config["SECRET_KEY"], "test")
        mock_init.assert_not_called()

    @patch("cicero.initialize_firebase")
    def test_firebase_is_initialised_with_bucket(self, mock_init):
        with patch.dict(os.environ, {"FIREBASE_STORAGE_BUCKET": "demo.appspot.com"}):
            app = create_app()
        mock_init.assert_called_once_with(app.logger, "demo.appspot.com")

    def test_404_error_handler(self):
        app = create_app({"TESTING": True})
        with app.test_client() as client:
            response = client.get("/non_existent_page")
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.get_json()["error"]["status"], "NOT_FOUND")

    def test_https_scheme_with_proxy_headers(self):
        """Test that X-Forwarded-Proto header is respected."""
        app = create_app({"TESTING": True})

        @app.route("/test_scheme")
        def test_scheme():
            from flask import request

            return request.scheme

        response = app.test_client().get(
            "/test_scheme", headers={"X-Forwarded-Proto": "https"}
        )
        self.assertEqual(response.data.decode(), "https")


class InitializeFirebaseTestCase(unittest.TestCase):
    @patch("cicero.firebase.firebase_admin")
    def test_already_initialised(self, mock_admin):
        mock_admin._apps = {"[DEFAULT]": MagicMock()}
        self.assertTrue(initialize_firebase())
        mock_admin.initialize_app.assert_not_called()

    @patch("cicero.firebase.credentials")
    @patch("cicero.firebase.firebase_admin")
    def test_credentials_from_environment(self, mock_admin, mock_credentials):
        mock_admin._apps = {}
        env = {
            "FIREBASE_CREDENTIALS_JSON": '{"project_id": "demo"}',
            "FIREBASE_STORAGE_BUCKET": "",
        }
        with patch.dict(os.environ, env):
            self.assertTrue(initialize_firebase())

        mock_credentials.Certificate.assert_called_once_with({"project_id": "demo"})
        mock_admin.initialize_app.assert_called_once_with(
            mock_credentials.Certificate.return_value,
            {"storageBucket": "demo.firebasestorage.app", "projectId": "demo"},
        )


class ClientConfigTestCase(unittest.TestCase):
    def test_defaults(self):
        config = ClientConfig()
        self.assertEqual(config.user_batch_size, 10)
        self.assertEqual(config.request_timeout, 20.0)
        self.assertEqual(config.edit_debounce, 0.5)

    def test_from_env(self):
        env = {
            "CICERO_FUNCTIONS_URL": "https://functions.example.com",
            "CICERO_USER_BATCH_SIZE": "5",
            "CICERO_REQUEST_TIMEOUT": "3.5",
            "CICERO_EDIT_DEBOUNCE": "",
        }
        with patch.dict(os.environ, env):
            config = ClientConfig.from_env()
        self.assertEqual(config.functions_url, "https://functions.example.com")
        self.assertEqual(config.user_batch_size, 5)
        self.assertEqual(config.request_timeout, 3.5)
        self.assertEqual(config.edit_debounce, 0.5)


class CreateClientTestCase(unittest.TestCase):
    @patch("cicero.client.storage")
    @patch("cicero.client.firestore")
    @patch("cicero.client.initialize_firebase", return_value=True)
    def test_create_client(self, mock_init, mock_firestore, mock_storage):
        session = signed_in("A")
        config = ClientConfig(functions_url="https://functions.example.com")

        engine = create_client(session, config)
        self.addCleanup(engine.close)

        self.assertIsInstance(engine, GroupSyncEngine)
        self.assertIs(engine.db, mock_firestore.client.return_value)
        self.assertIs(engine.bucket, mock_storage.bucket.return_value)
        self.assertEqual(engine.functions.base_url, "https://functions.example.com")
        self.assertIs(engine.functions.session, session)

    @patch("cicero.client.storage")
    @patch("cicero.client.firestore")
    @patch("cicero.client.initialize_firebase", return_value=True)
    def test_session_is_built_from_config(
        self, mock_init, mock_firestore, mock_storage
    ):
        config = ClientConfig(
            functions_url="https://functions.example.com",
            api_key="web-api-key",
            request_timeout=7.0,
        )

        engine = create_client(config=config)
        self.addCleanup(engine.close)

        self.assertIsInstance(engine.session, SessionStore)
        self.assertEqual(engine.session.api_key, "web-api-key")
        self.assertEqual(engine.session.timeout, 7.0)
        self.assertFalse(engine.session.is_logged_in)
        self.assertIs(engine.functions.session, engine.session)

    @patch("cicero.client.storage")
    @patch("cicero.client.firestore")
    @patch("cicero.client.initialize_firebase", return_value=True)
    def test_missing_bucket_disables_images(
        self, mock_init, mock_firestore, mock_storage
    ):
        mock_storage.bucket.side_effect = ValueError(
            "Storage bucket name not specified."
        )
        config = ClientConfig(functions_url="https://functions.example.com")

        engine = create_client(signed_in("A"), config)
        self.addCleanup(engine.close)

        self.assertIsNone(engine.bucket)

    @patch("cicero.client.initialize_firebase", return_value=True)
    def test_functions_url_is_required(self, mock_init):
        with self.assertRaises(InternalError):
            create_client(signed_in("A"), ClientConfig())


if __name__ == "__main__":
    unittest.main()
