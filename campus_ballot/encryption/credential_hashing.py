# campus_ballot/encryption/credential_hashing.py

import os
from typing import Tuple

from cryptography.hazmat.primitives import constant_time, hashes, hmac
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

# Salted, iterated hashing for student secrets and keyed digests for lookups.
#
# Passwords, security answers, recovery codes and access credentials are stored
# as PBKDF2-HMAC-SHA512 digests with a fresh 16-byte salt per call. Voter
# fingerprints and access-credential lookup keys are HMAC-SHA256 digests keyed
# with a single system secret: they must map the same input to the same output.

PBKDF2_ITERATIONS = 10000
DIGEST_LENGTH = 64
SALT_LENGTH = 16

_FINGERPRINT_DOMAIN = b"voter-fingerprint:"
_LOOKUP_DOMAIN = b"access-lookup:"


class CredentialHasher:
    def __init__(self, fingerprint_secret: str, iterations: int = PBKDF2_ITERATIONS):
        if not fingerprint_secret:
            raise ValueError("A fingerprint secret is required")
        self.fingerprint_secret = fingerprint_secret.encode()
        self.iterations = iterations

    def _derive(self, secret: str, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA512(),
            length=DIGEST_LENGTH,
            salt=salt,
            iterations=self.iterations,
        )
        return kdf.derive(secret.encode())

    def hash(self, secret: str) -> Tuple[str, str]:
        """Return ``(salt, digest)`` as hex strings for a new secret."""
        salt = os.urandom(SALT_LENGTH)
        return salt.hex(), self._derive(secret, salt).hex()

    def verify(self, secret: str, salt: str, digest: str) -> bool:
        if not secret or not salt or not digest:
            return False
        try:
            salt_bytes = bytes.fromhex(salt)
            expected = bytes.fromhex(digest)
        except ValueError:
            return False
        return constant_time.bytes_eq(self._derive(secret, salt_bytes), expected)

    def _keyed_digest(self, domain: bytes, value: str) -> str:
        h = hmac.HMAC(self.fingerprint_secret, hashes.SHA256())
        h.update(domain + value.encode())
        return h.finalize().hex()

    def fingerprint(self, student_id: str) -> str:
        """Deterministic digest recorded in place of the student id once they vote."""
        return self._keyed_digest(_FINGERPRINT_DOMAIN, student_id)

    def lookup_digest(self, access_credential: str) -> str:
        return self._keyed_digest(_LOOKUP_DOMAIN, access_credential)
