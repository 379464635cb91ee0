# campus_ballot/authentication/admin_gate.py

import hmac
import logging
import secrets
import threading
from functools import wraps

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError
from flask import current_app, request
from flask_jwt_extended import create_access_token, decode_token

from campus_ballot.errors import IncorrectPassword, Unauthorized

# Single shared administrator session.
# One bearer token is valid at a time; each successful login replaces it and
# nothing survives a restart.

logger = logging.getLogger(__name__)

ADMIN_IDENTITY = 'admin'


class AdminSessionGate:
    def __init__(self, admin_password=None, admin_password_hash=None):
        self.ph = PasswordHasher(
            time_cost=3,
            memory_cost=65536,
            parallelism=4,
            hash_len=32,
            salt_len=16,
        )
        if admin_password_hash:
            self.password_hash = admin_password_hash
        elif admin_password:
            self.password_hash = self.ph.hash(admin_password)
        else:
            raise ValueError("ADMIN_PASSWORD or ADMIN_PASSWORD_HASH must be configured")
        self._lock = threading.Lock()
        self._current_token = None

    def verify_password(self, password):
        if not password:
            return False
        try:
            return self.ph.verify(self.password_hash, password)
        except VerifyMismatchError:
            return False
        except (VerificationError, InvalidHashError):
            logger.error("Configured admin password hash could not be verified")
            return False

    def login(self, password):
        """Mint a new bearer token; the previous one stops working immediately."""
        if not self.verify_password(password):
            raise IncorrectPassword("Incorrect password")
        token = create_access_token(
            identity=ADMIN_IDENTITY,
            expires_delta=False,
            additional_claims={'sid': secrets.token_hex(32)},
        )
        with self._lock:
            self._current_token = token
        logger.info("Administrator session issued")
        return token

    def is_valid(self, token):
        current = self._current_token
        if not token or current is None:
            return False
        if not hmac.compare_digest(token.encode(), current.encode()):
            return False
        try:
            return decode_token(token).get('sub') == ADMIN_IDENTITY
        except Exception:
            logger.warning("Current admin token failed signature validation")
            return False

    def revoke(self):
        with self._lock:
            self._current_token = None


def bearer_token():
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer':
        return None
    return token.strip() or None


def require_admin(func):
    @wraps(func)
    def wrapper(*args, **kwargs):
        gate = current_app.extensions['campus_ballot'].admin_gate
        if not gate.is_valid(bearer_token()):
            raise Unauthorized()
        return func(*args, **kwargs)
    return wrapper
