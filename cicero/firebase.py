"""Firebase Admin SDK initialisation shared by the server and the client."""

import json
import logging
import os

import firebase_admin
from firebase_admin import credentials

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def initialize_firebase(logger=None, storage_bucket=None):
    """Initialise the default Firebase app if it is not initialised yet.

    Credentials are taken from FIREBASE_CREDENTIALS_JSON, then from a local
    firebase_credentials.json, then from application default credentials.
    Returns True when a Firebase app is available afterwards.
    """
    logger = logger or logging.getLogger(__name__)
    if firebase_admin._apps:
        return True

    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(PROJECT_ROOT, "firebase_credentials.json")
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = os.environ.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )
            return False

    storage_bucket = storage_bucket or os.environ.get("FIREBASE_STORAGE_BUCKET")
    if not storage_bucket and project_id:
        storage_bucket = f"{project_id}.firebasestorage.app"

    firebase_options = {"storageBucket": storage_bucket}
    if project_id:
        firebase_options["projectId"] = project_id

    try:
        firebase_admin.initialize_app(cred, firebase_options)
    except ValueError:
        # This can happen if the app is already initialized, which is fine.
        logger.info("Firebase app already initialized.")
    return True
