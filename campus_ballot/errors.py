# campus_ballot/errors.py
"""Error taxonomy for the credential and ballot services.

Every expected failure is a subclass of BallotError and carries the message
shown to the caller and the HTTP status it maps to. Conflicts (duplicate
registration, a second ballot, a closed window...) are reported with HTTP 200
and ``success: false``; only the admin gate (401) and storage failures (500)
use error statuses.

Exception hierarchy:
- BallotError
  - ValidationFailed: missing or mismatched fields, never reaches storage
  - NotEligible / AlreadyRegistered / RecordNotFound: identity-state conflicts
  - AuthenticationFailed: base for credential failures
    - InvalidCredential / IncorrectPassword / InvalidSecret
  - VotingClosed / AlreadyVoted: ballot gating
  - Unauthorized: admin bearer token missing or stale
  - StorageError: storage collaborator failure
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class BallotError(Exception):
    status_code = 200
    message = "Request failed"

    def __init__(self, message=None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self):
        return {"success": False, "message": self.message}


class ValidationFailed(BallotError):
    message = "All fields required and passwords must match"


class NotEligible(BallotError):
    message = "Student ID is not on the eligible voter roster"


class AlreadyRegistered(BallotError):
    message = "Student ID already registered"


class RecordNotFound(BallotError):
    message = "Student ID not found or not registered"


class AuthenticationFailed(BallotError):
    # Shared by credential failures so callers cannot tell which factor failed.
    message = "Invalid Access ID or password"


class InvalidCredential(AuthenticationFailed):
    pass


class IncorrectPassword(AuthenticationFailed):
    pass


class InvalidSecret(AuthenticationFailed):
    message = "Security answer or recovery code is incorrect"


class VotingClosed(BallotError):
    message = "Voting period is not open!"


class AlreadyVoted(BallotError):
    message = "You have already voted!"


class Unauthorized(BallotError):
    status_code = 401
    message = "Unauthorized"


class StorageError(BallotError):
    status_code = 500
    message = "Internal server error"


def register_error_handlers(app):
    @app.errorhandler(BallotError)
    def handle_ballot_error(error):
        if isinstance(error, StorageError):
            logger.error("Storage failure surfaced to caller: %s", error.__cause__ or error)
            # Internal detail stays in the log.
            return jsonify(StorageError().to_dict()), 500
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"success": False, "message": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        logger.exception("Unhandled error while serving request")
        return jsonify(StorageError().to_dict()), 500
