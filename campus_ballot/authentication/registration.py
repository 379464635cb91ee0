# campus_ballot/authentication/registration.py

import logging
import secrets
from datetime import datetime, timezone

from campus_ballot.database.models import StudentRecord
from campus_ballot.errors import AlreadyRegistered, NotEligible, ValidationFailed

# Credential issuance: binds hashed secrets to a student record and hands the
# plaintext access credential and recovery code back exactly once.

logger = logging.getLogger(__name__)

ACCESS_PREFIX = 'ACCESS-'


def generate_access_credential():
    # 64 bits, e.g. ACCESS-9F2C04D1A7B3E610
    return ACCESS_PREFIX + secrets.token_hex(8).upper()


def generate_recovery_code():
    # 80 bits
    return secrets.token_hex(10).upper()


class RegistrationService:
    def __init__(self, hasher, students, validator, locks, audit_logger, enforce_eligibility=False):
        self.hasher = hasher
        self.students = students
        self.validator = validator
        self.locks = locks
        self.audit_logger = audit_logger
        self.enforce_eligibility = enforce_eligibility

    def register(self, student_id, password, confirm_password, question, answer, display_name=None):
        fields = {'studentId': student_id, 'password': password, 'question': question, 'answer': answer}
        student_id, password, question, answer = self.validator.require_fields(fields, *fields)
        if password != confirm_password:
            raise ValidationFailed()
        student_id = self.validator.normalize_student_id(student_id)
        question = self.validator.sanitize_string(question)
        if not question or not answer.strip():
            raise ValidationFailed()

        with self.locks.hold(student_id):
            record = self.students.get(student_id)
            if record is not None and record.is_registered:
                self.audit_logger.record('duplicate_registration', {'student_id': student_id})
                raise AlreadyRegistered()
            if record is None:
                if self.enforce_eligibility:
                    self.audit_logger.record('ineligible_registration', {'student_id': student_id})
                    raise NotEligible()
                name = self.validator.sanitize_string(display_name, 120) if display_name else ''
                record = StudentRecord(student_id=student_id, display_name=name or f"Student {student_id}")

            access_credential = generate_access_credential()
            recovery_code = generate_recovery_code()

            record.password_salt, record.password_hash = self.hasher.hash(password)
            record.access_lookup = self.hasher.lookup_digest(access_credential)
            record.access_credential_salt, record.access_credential_hash = self.hasher.hash(access_credential)
            record.security_question = question
            record.security_answer_salt, record.security_answer_hash = self.hasher.hash(
                self.validator.normalize_answer(answer))
            record.recovery_code_salt, record.recovery_code_hash = self.hasher.hash(recovery_code)
            record.registered_at = datetime.now(timezone.utc)

            issued_name = record.display_name
            if not self.students.save(record):
                # Another process registered this id between our read and write.
                raise AlreadyRegistered()

        self.audit_logger.record('student_registered', {'student_id': student_id})
        logger.info("Registered student %s", student_id)
        return {
            'studentId': student_id,
            'displayName': issued_name,
            'accessCredential': access_credential,
            'recoveryCode': recovery_code,
        }
