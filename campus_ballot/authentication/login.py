# campus_ballot/authentication/login.py

import logging
import secrets

from campus_ballot.errors import (
    IncorrectPassword,
    InvalidCredential,
    InvalidSecret,
    RecordNotFound,
    ValidationFailed,
)

# Student authentication and password reset.
#
# Login returns an identity assertion only; no student session is minted, so
# every later request (vote casting included) re-submits the raw student id.

logger = logging.getLogger(__name__)


class AuthenticationService:
    def __init__(self, hasher, students, validator, audit_logger):
        self.hasher = hasher
        self.students = students
        self.validator = validator
        self.audit_logger = audit_logger
        # (salt, digest) of a random secret, verified against on failed lookups
        self._decoy = hasher.hash(secrets.token_hex(16))

    def login(self, access_credential, password, student_id=None):
        fields = {'accessCredential': access_credential, 'password': password}
        access_credential, password = self.validator.require_fields(
            fields, *fields, message="Access ID and password required")
        access_credential = self.validator.normalize_access_credential(access_credential)

        record = self.students.find_by_access_lookup(self.hasher.lookup_digest(access_credential))
        if record is None or not record.is_registered:
            # Two derivations, as for a known credential with a wrong password.
            self.hasher.verify(access_credential, *self._decoy)
            self.hasher.verify(password, *self._decoy)
            self.audit_logger.record('failed_login', {'reason': 'unknown_credential'})
            raise InvalidCredential()
        if not self.hasher.verify(access_credential, record.access_credential_salt,
                                  record.access_credential_hash):
            self.hasher.verify(password, *self._decoy)
            self.audit_logger.record('failed_login', {'reason': 'unknown_credential'})
            raise InvalidCredential()
        if student_id and self.validator.normalize_student_id(student_id) != record.student_id:
            self.audit_logger.record('failed_login', {'reason': 'student_mismatch'}, actor=record.student_id)
            raise InvalidCredential()
        if not self.hasher.verify(password, record.password_salt, record.password_hash):
            self.audit_logger.record('failed_login', {'reason': 'bad_password'}, actor=record.student_id)
            raise IncorrectPassword()

        self.audit_logger.record('successful_login', {}, actor=record.student_id)
        return {'studentId': record.student_id, 'displayName': record.display_name}

    def _registered_record(self, student_id):
        record = self.students.get(self.validator.normalize_student_id(student_id))
        if record is None or not record.is_registered:
            raise RecordNotFound()
        return record

    def security_question(self, student_id):
        return self._registered_record(student_id).security_question

    def reset_password(self, student_id, new_password, confirm_password, answer=None, recovery_code=None):
        if not isinstance(new_password, str) or not new_password or new_password != confirm_password:
            raise ValidationFailed("New passwords must match")
        answer = answer if isinstance(answer, str) and answer.strip() else None
        recovery_code = recovery_code if isinstance(recovery_code, str) and recovery_code.strip() else None
        if bool(answer) == bool(recovery_code):
            raise ValidationFailed("Provide either the security answer or the recovery code")

        record = self._registered_record(student_id)
        if answer:
            verified = self.hasher.verify(
                self.validator.normalize_answer(answer),
                record.security_answer_salt, record.security_answer_hash)
        else:
            verified = self.hasher.verify(
                recovery_code.strip().upper(),
                record.recovery_code_salt, record.recovery_code_hash)
        if not verified:
            self.audit_logger.record('failed_password_reset', {'method': 'answer' if answer else 'recovery_code'},
                                     actor=record.student_id)
            raise InvalidSecret()

        # Security answer and recovery code stay as they are.
        record.password_salt, record.password_hash = self.hasher.hash(new_password)
        self.students.save(record)
        self.audit_logger.record('password_reset', {'method': 'answer' if answer else 'recovery_code'},
                                 actor=record.student_id)
        logger.info("Password reset for student %s", record.student_id)
