# campus_ballot/voting/ballots.py

import logging
import secrets
from datetime import datetime, timezone

from campus_ballot.database.models import Ballot
from campus_ballot.errors import AlreadyVoted, RecordNotFound, VotingClosed

# One ballot per voter: the ledger only ever sees the voter fingerprint,
# and the fingerprint insert is the authoritative double-vote check.

logger = logging.getLogger(__name__)


def generate_reference_code(prefix):
    """Human-readable receipt such as NM-2026-4821; not unique by construction."""
    return f"{prefix}-{1000 + secrets.randbelow(9000)}"


class VoteCastingService:
    def __init__(self, hasher, ledger, window, students, validator, locks, audit_logger,
                 reference_prefix='NM-2026', require_registration=True):
        self.hasher = hasher
        self.ledger = ledger
        self.window = window
        self.students = students
        self.validator = validator
        self.locks = locks
        self.audit_logger = audit_logger
        self.reference_prefix = reference_prefix
        self.require_registration = require_registration

    def cast_vote(self, student_id, selections):
        student_id = self.validator.normalize_student_id(student_id)
        choices = self.validator.validate_selections(selections)
        fingerprint = self.hasher.fingerprint(student_id)

        if self.ledger.has_voted(fingerprint):
            self.audit_logger.record('duplicate_vote_attempt', {'fingerprint': fingerprint})
            raise AlreadyVoted()
        if not self.window.is_open():
            raise VotingClosed()
        if self.require_registration:
            record = self.students.get(student_id)
            if record is None or not record.is_registered:
                raise RecordNotFound()

        reference_code = generate_reference_code(self.reference_prefix)
        ballot = Ballot(
            president=choices['president'],
            vice_president=choices['vicepresident'],
            secretary=choices['secretary'],
            cast_at=datetime.now(timezone.utc),
            reference_code=reference_code,
        )
        with self.locks.hold(fingerprint):
            if not self.ledger.append(ballot, fingerprint):
                self.audit_logger.record('duplicate_vote_attempt', {'fingerprint': fingerprint})
                raise AlreadyVoted()

        # The reference code leads to the selections, so it never sits next to the fingerprint.
        self.audit_logger.record('vote_cast', {'fingerprint': fingerprint})
        logger.info("Ballot recorded")
        return reference_code

    def reset(self):
        self.ledger.clear()
        logger.warning("All ballots and voted fingerprints deleted")
