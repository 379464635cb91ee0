# campus_ballot/database/storage.py

# Storage adapters behind the credential and ballot services.
# Every SQLAlchemy failure is rolled back, logged and re-raised as StorageError;
# the services above never retry.

import logging
from contextlib import contextmanager

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from campus_ballot import db
from campus_ballot.database.models import Ballot, StudentRecord, VotedFingerprint, VotingWindowSetting
from campus_ballot.errors import StorageError

logger = logging.getLogger(__name__)


@contextmanager
def storage_call(operation):
    try:
        yield db.session
    except IntegrityError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception("Storage operation %s failed", operation)
        raise StorageError(f"{operation} failed") from e


class StudentStore:
    def get(self, student_id):
        with storage_call('student_get') as session:
            return session.get(StudentRecord, student_id)

    def find_by_access_lookup(self, access_lookup):
        with storage_call('student_find_by_access') as session:
            return session.execute(
                select(StudentRecord).filter_by(access_lookup=access_lookup)
            ).scalar_one_or_none()

    def save(self, record):
        """Insert or update ``record``; returns False on a uniqueness conflict."""
        try:
            with storage_call('student_save') as session:
                session.add(record)
                session.commit()
        except IntegrityError:
            logger.warning("Uniqueness conflict while saving student %s", record.student_id)
            return False
        return True

    def import_roster(self, entries):
        """Create unregistered records for ``(student_id, display_name)`` pairs not yet known."""
        created = 0
        with storage_call('student_import') as session:
            for student_id, display_name in entries:
                record = session.get(StudentRecord, student_id)
                if record is None:
                    session.add(StudentRecord(student_id=student_id, display_name=display_name))
                    created += 1
                elif display_name and not record.is_registered:
                    record.display_name = display_name
            session.commit()
        return created

    def count(self):
        with storage_call('student_count') as session:
            return session.scalar(select(func.count()).select_from(StudentRecord))


class BallotLedgerStore:
    def has_voted(self, fingerprint):
        with storage_call('ledger_has_voted') as session:
            return session.get(VotedFingerprint, fingerprint) is not None

    def append(self, ballot, fingerprint):
        """Record ``ballot`` and mark ``fingerprint`` as used in one transaction.

        Returns False, writing nothing, when the fingerprint is already present.
        """
        try:
            with storage_call('ledger_append') as session:
                session.add(VotedFingerprint(fingerprint=fingerprint))
                session.add(ballot)
                session.commit()
        except IntegrityError:
            return False
        return True

    def all_ballots(self):
        with storage_call('ledger_all_ballots') as session:
            return list(session.execute(select(Ballot).order_by(Ballot.id)).scalars())

    def count_ballots(self):
        with storage_call('ledger_count_ballots') as session:
            return session.scalar(select(func.count()).select_from(Ballot))

    def count_fingerprints(self):
        with storage_call('ledger_count_fingerprints') as session:
            return session.scalar(select(func.count()).select_from(VotedFingerprint))

    def clear(self):
        with storage_call('ledger_clear') as session:
            session.query(Ballot).delete()
            session.query(VotedFingerprint).delete()
            session.commit()


class WindowStore:
    ROW_ID = 1

    def load(self):
        with storage_call('window_load') as session:
            row = session.get(VotingWindowSetting, self.ROW_ID)
            if row is None:
                return None
            return row.start_ms, row.end_ms

    def save(self, start_ms, end_ms):
        with storage_call('window_save') as session:
            row = session.get(VotingWindowSetting, self.ROW_ID)
            if row is None:
                row = VotingWindowSetting(id=self.ROW_ID, start_ms=start_ms, end_ms=end_ms)
                session.add(row)
            else:
                row.start_ms = start_ms
                row.end_ms = end_ms
            session.commit()
