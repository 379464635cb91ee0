import os
import json
import base64
import pytest
from campus_ballot.audit.audit_logger import AuditLogger

@pytest.fixture
def temp_log_dir(tmp_path):
    """Create a temporary directory for test logs."""
    log_dir = tmp_path / "test_logs"
    log_dir.mkdir()
    return str(log_dir)

@pytest.fixture
def audit_logger(temp_log_dir):
    """Create an AuditLogger instance with a temporary log directory."""
    return AuditLogger(log_dir=temp_log_dir)

def test_init_creates_log_directory(tmp_path):
    log_dir = str(tmp_path / "missing")
    AuditLogger(log_dir=log_dir)
    assert os.path.exists(log_dir)

def test_record_basic(audit_logger, temp_log_dir):
    audit_logger.record("vote_cast", {"fingerprint": "ab12"})

    with open(os.path.join(temp_log_dir, 'audit.log')) as f:
        log_entry = json.loads(f.readline())

    assert log_entry['event_type'] == "vote_cast"
    assert log_entry['data']['fingerprint'] == "ab12"
    assert log_entry['actor'] is None
    assert 'hash' in log_entry
    assert 'signature' in log_entry
    assert log_entry['previous_hash'] is None  # First entry

def test_hash_chaining(audit_logger):
    audit_logger.record("admin_login", {"ip": "127.0.0.1"}, actor="admin")
    first_hash = audit_logger.previous_hash
    audit_logger.record("voting_opened", {"start": 1, "end": 2}, actor="admin")

    with open(audit_logger.log_file) as f:
        second_entry = json.loads(f.readlines()[1])

    assert second_entry['previous_hash'] == first_hash

def test_signature_verification(audit_logger):
    audit_logger.record("student_registered", {"student_id": "STU001"})

    with open(audit_logger.log_file) as f:
        log_entry = json.loads(f.readline())

    signature = log_entry.pop('signature')
    log_entry.pop('hash')
    entry_json = json.dumps(log_entry, sort_keys=True).encode()
    # Raises InvalidSignature if the entry was not signed by this logger
    audit_logger.signing_key.public_key().verify(base64.b64decode(signature), entry_json)

def test_verify_log_integrity_valid(audit_logger):
    audit_logger.record("EVENT1", {"data": "first"})
    audit_logger.record("EVENT2", {"data": "second"})
    assert audit_logger.verify_log_integrity() is True

def test_verify_log_integrity_tampered(audit_logger):
    audit_logger.record("votes_reset", {})
    with open(audit_logger.log_file) as f:
        entry = json.loads(f.readline())
    entry['data'] = {"forged": True}
    with open(audit_logger.log_file, 'w') as f:
        f.write(json.dumps(entry) + "\n")

    assert audit_logger.verify_log_integrity() is False

def test_load_previous_hash(temp_log_dir):
    logger1 = AuditLogger(log_dir=temp_log_dir)
    logger1.record("EVENT1", {"data": "first"})

    logger2 = AuditLogger(log_dir=temp_log_dir)
    assert logger2.previous_hash == logger1.previous_hash

def test_write_failure_is_not_raised(audit_logger, monkeypatch):
    def mock_open(*args, **kwargs):
        raise PermissionError("Access denied")

    monkeypatch.setattr("builtins.open", mock_open)
    audit_logger.record("ERROR_TEST", {"data": "test"})
    assert audit_logger.previous_hash is None

def test_log_verifies_after_restart(temp_log_dir):
    first = AuditLogger(log_dir=temp_log_dir)
    first.record("admin_login", {}, actor="admin")

    restarted = AuditLogger(log_dir=temp_log_dir)
    restarted.record("voting_closed", {}, actor="admin")
    assert restarted.verify_log_integrity() is True

def test_signing_key_file_is_private(audit_logger):
    assert os.stat(audit_logger.key_file).st_mode & 0o777 == 0o600
