# Overview: Maps service-layer exceptions to JSON error responses.

from flask import jsonify

from ..extensions import db
from ..validation import ConflictError, ForbiddenError, NotFoundError


DOMAIN_ERRORS = (ValueError, NotFoundError, ForbiddenError)


def error_response(exc: Exception):
    """
    {"error": str(exc)} with the status the exception stands for.

    NotFoundError -> 404, ForbiddenError -> 403, ConflictError -> 409,
    any other ValueError -> 400. The session is rolled back first so a
    half-applied change never leaks into the next request.
    """
    db.session.rollback()
    if isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, ForbiddenError):
        status = 403
    elif isinstance(exc, ConflictError):
        status = 409
    else:
        status = 400
    return jsonify({"error": str(exc)}), status


def internal_error():
    db.session.rollback()
    return jsonify({"error": "Internal server error"}), 500
