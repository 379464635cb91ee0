# campus_ballot/database/models.py

from campus_ballot import db
from datetime import datetime, timezone


def _utcnow():
    return datetime.now(timezone.utc)


# Database schema for students, ballots and the voting window

class StudentRecord(db.Model):
    __tablename__ = 'students'
    student_id = db.Column(db.String(32), primary_key=True)  # trimmed, upper-case
    display_name = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(128), nullable=True)  # NULL until registered
    password_salt = db.Column(db.String(32), nullable=True)
    access_lookup = db.Column(db.String(64), unique=True, nullable=True, index=True)
    access_credential_hash = db.Column(db.String(128), nullable=True)
    access_credential_salt = db.Column(db.String(32), nullable=True)
    security_question = db.Column(db.String(255), nullable=True)
    security_answer_hash = db.Column(db.String(128), nullable=True)
    security_answer_salt = db.Column(db.String(32), nullable=True)
    recovery_code_hash = db.Column(db.String(128), nullable=True)
    recovery_code_salt = db.Column(db.String(32), nullable=True)
    registered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=_utcnow)

    @property
    def is_registered(self):
        return self.password_hash is not None

    def __repr__(self):
        return f'<StudentRecord {self.student_id}>'


class Ballot(db.Model):
    __tablename__ = 'ballots'
    id = db.Column(db.Integer, primary_key=True)
    president = db.Column(db.String(120), nullable=False)
    vice_president = db.Column(db.String(120), nullable=False)
    secretary = db.Column(db.String(120), nullable=False)
    cast_at = db.Column(db.DateTime(timezone=True), default=_utcnow, nullable=False)
    reference_code = db.Column(db.String(32), nullable=False)  # cosmetic, not unique

    def __repr__(self):
        return f'<Ballot {self.id} {self.reference_code}>'


class VotedFingerprint(db.Model):
    __tablename__ = 'voted_fingerprints'
    # Primary key makes "has not voted yet" + "record vote" one conditional insert.
    fingerprint = db.Column(db.String(64), primary_key=True)


class VotingWindowSetting(db.Model):
    __tablename__ = 'voting_window'
    id = db.Column(db.Integer, primary_key=True)
    start_ms = db.Column(db.BigInteger, nullable=False)
    end_ms = db.Column(db.BigInteger, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
