"""Routes for the callable functions blueprint."""

from firebase_admin import firestore, storage
from flask import current_app, g, jsonify, request

from cicero.auth.decorators import callable_auth
from cicero.errors import ValidationError

from . import bp
from .services import GroupTransactionService


def _callable_data():
    """Return the ``data`` object of a callable request body."""
    payload = request.get_json(silent=True) or {}
    data = payload.get("data") if isinstance(payload, dict) else None
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request data must be an object.")
    return data


def _storage_bucket():
    """Return the default bucket, or None when no bucket is configured."""
    try:
        return storage.bucket()
    except ValueError as e:
        current_app.logger.warning(f"No storage bucket, skipping image cleanup: {e}")
        return None


@bp.route("/joinGroup", methods=["POST"])
@callable_auth
def join_group():
    """Join the group named by ``groupId`` as the calling user."""
    data = _callable_data()
    result = GroupTransactionService.join_group(
        firestore.client(), data.get("groupId"), g.uid
    )
    return jsonify(result=result)


@bp.route("/deleteGroup", methods=["POST"])
@callable_auth
def delete_group():
    """Delete the group named by ``groupId`` with all of its memberships."""
    data = _callable_data()
    result = GroupTransactionService.delete_group(
        firestore.client(), _storage_bucket(), data.get("groupId"), g.uid
    )
    return jsonify(result=result)
