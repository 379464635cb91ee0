# campus_ballot/audit/audit_logger.py

import os
import json
import hashlib
import base64
import logging
import threading
from datetime import datetime, timezone
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

# Append-only security audit trail with hash chaining and Ed25519 signatures.
# Ballot events carry only the voter fingerprint: never the student id, never the
# reference code.

logger = logging.getLogger(__name__)


class AuditLogger:
    def __init__(self, log_dir='logs', signing_key=None):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, 'audit.log')
        self.key_file = os.path.join(log_dir, 'audit_signing_key.pem')
        self.previous_hash = None
        self._lock = threading.Lock()

        os.makedirs(log_dir, exist_ok=True)

        self.signing_key = signing_key or self._load_or_create_signing_key()
        self._load_previous_hash()

    def _load_or_create_signing_key(self):
        """Reuse the key kept beside the log so the chain verifies across restarts."""
        if os.path.exists(self.key_file):
            with open(self.key_file, 'rb') as f:
                return serialization.load_pem_private_key(f.read(), password=None)
        key = Ed25519PrivateKey.generate()
        pem = key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
        fd = os.open(self.key_file, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, 'wb') as f:
            f.write(pem)
        logger.info("Created audit signing key %s", self.key_file)
        return key

    def _load_previous_hash(self):
        if os.path.exists(self.log_file):
            with open(self.log_file, 'r') as f:
                lines = [line for line in f if line.strip()]
            if lines:
                try:
                    self.previous_hash = json.loads(lines[-1]).get('hash')
                except ValueError:
                    logger.warning("Last audit entry in %s is not valid JSON", self.log_file)
                    self.previous_hash = None

    def record(self, event_type, data, actor=None):
        """Append one signed entry; audit failures are logged, never raised to the caller."""
        with self._lock:
            try:
                log_entry = {
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                    "event_type": event_type,
                    "data": data,
                    "actor": actor,
                    "previous_hash": self.previous_hash,
                }
                entry_json = json.dumps(log_entry, sort_keys=True)
                entry_hash = hashlib.sha256(entry_json.encode()).hexdigest()
                signature = self.signing_key.sign(entry_json.encode())
                log_entry['hash'] = entry_hash
                log_entry['signature'] = base64.b64encode(signature).decode()

                with open(self.log_file, 'a') as f:
                    f.write(json.dumps(log_entry) + "\n")

                self.previous_hash = entry_hash
            except (OSError, TypeError, ValueError):
                logger.exception("Audit log write failed for event %s", event_type)

    def verify_log_integrity(self):
        if not os.path.exists(self.log_file):
            return True
        public_key = self.signing_key.public_key()
        previous_hash = None
        try:
            with open(self.log_file, 'r') as f:
                for line in f:
                    if not line.strip():
                        continue
                    log_entry = json.loads(line)
                    if log_entry.get('previous_hash') != previous_hash:
                        return False
                    entry_copy = dict(log_entry)
                    signature = base64.b64decode(entry_copy.pop('signature'))
                    entry_hash = entry_copy.pop('hash')
                    entry_json = json.dumps(entry_copy, sort_keys=True).encode()
                    if hashlib.sha256(entry_json).hexdigest() != entry_hash:
                        return False
                    public_key.verify(signature, entry_json)
                    previous_hash = entry_hash
        except Exception:
            return False
        return True
