"""The callable functions blueprint."""

from flask import Blueprint

bp = Blueprint("functions", __name__)

from . import routes  # noqa: E402

__all__ = ["routes"]
