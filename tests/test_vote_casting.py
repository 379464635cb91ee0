import json
import re
import threading

import pytest

from campus_ballot.errors import AlreadyVoted, RecordNotFound, ValidationFailed, VotingClosed
from campus_ballot.voting.ballots import generate_reference_code

from conftest import SELECTIONS


def test_cast_vote_returns_reference_code(services, register_student):
    register_student()
    reference_code = services.voting.cast_vote('STU001', SELECTIONS)

    assert re.fullmatch(r'NM-2026-\d{4}', reference_code)
    ballots = services.ledger.all_ballots()
    assert len(ballots) == 1
    assert ballots[0].president == 'Sarah Johnson'
    assert ballots[0].reference_code == reference_code


def test_ledger_stores_fingerprint_not_student_id(services, register_student):
    register_student()
    services.voting.cast_vote('STU001', SELECTIONS)

    assert services.ledger.has_voted(services.hasher.fingerprint('STU001'))
    ballot = services.ledger.all_ballots()[0]
    assert 'STU001' not in [str(v) for v in vars(ballot).values()]


def test_audit_log_cannot_link_voter_to_ballot(services, register_student):
    register_student()
    reference_code = services.voting.cast_vote('STU001', SELECTIONS)
    fingerprint = services.hasher.fingerprint('STU001')

    with open(services.audit_logger.log_file) as f:
        entries = [json.loads(line) for line in f if line.strip()]

    assert any(e['data'].get('fingerprint') == fingerprint for e in entries)
    for entry in entries:
        serialized = json.dumps(entry)
        assert not (fingerprint in serialized and reference_code in serialized)


def test_second_vote_fails(services, register_student):
    register_student()
    services.voting.cast_vote('STU001', SELECTIONS)

    with pytest.raises(AlreadyVoted):
        services.voting.cast_vote('STU001', SELECTIONS)
    with pytest.raises(AlreadyVoted):
        services.voting.cast_vote(' stu001 ', SELECTIONS)
    assert services.ledger.count_ballots() == 1


def test_already_voted_reported_after_window_closes(services, register_student, clock):
    register_student()
    services.voting.cast_vote('STU001', SELECTIONS)
    services.window.close_now()

    with pytest.raises(AlreadyVoted):
        services.voting.cast_vote('STU001', SELECTIONS)


def test_voting_closed_outside_window(services, register_student, clock):
    register_student()
    start, end = services.window.window

    clock.now = start - 1
    with pytest.raises(VotingClosed):
        services.voting.cast_vote('STU001', SELECTIONS)
    clock.now = end + 1
    with pytest.raises(VotingClosed):
        services.voting.cast_vote('STU001', SELECTIONS)
    assert services.ledger.count_ballots() == 0


@pytest.mark.parametrize("edge", ['start', 'end'])
def test_voting_open_at_exact_boundaries(services, register_student, clock, edge):
    register_student()
    start, end = services.window.window
    clock.now = start if edge == 'start' else end
    assert services.voting.cast_vote('STU001', SELECTIONS)


def test_unregistered_student_cannot_vote(services):
    with pytest.raises(RecordNotFound):
        services.voting.cast_vote('STU404', SELECTIONS)


def test_registration_check_can_be_disabled(services):
    services.voting.require_registration = False
    assert services.voting.cast_vote('STU404', SELECTIONS)


def test_invalid_selection_is_rejected(services, register_student):
    register_student()
    with pytest.raises(ValidationFailed):
        services.voting.cast_vote('STU001', dict(SELECTIONS, president='Write In'))
    assert services.ledger.count_ballots() == 0


def test_reset_clears_ballots_and_fingerprints(services, register_student):
    register_student()
    services.voting.cast_vote('STU001', SELECTIONS)
    services.voting.reset()

    assert services.ledger.count_ballots() == 0
    assert services.ledger.count_fingerprints() == 0
    assert services.voting.cast_vote('STU001', SELECTIONS)


def test_concurrent_casts_for_one_voter_record_one_ballot(app):
    with app.app_context():
        app.extensions['campus_ballot'].registration.register(
            'STU001', 'Abc123!', 'Abc123!', 'pet name', 'rex')

    attempts = 8
    barrier = threading.Barrier(attempts)
    outcomes = []

    def cast():
        with app.app_context():
            services = app.extensions['campus_ballot']
            barrier.wait()
            try:
                outcomes.append(services.voting.cast_vote('STU001', SELECTIONS))
            except AlreadyVoted:
                outcomes.append('already voted')

    threads = [threading.Thread(target=cast) for _ in range(attempts)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(outcomes) == attempts
    assert outcomes.count('already voted') == attempts - 1
    with app.app_context():
        assert app.extensions['campus_ballot'].ledger.count_ballots() == 1


def test_reference_code_format():
    for _ in range(50):
        assert re.fullmatch(r'XY-2030-[1-9]\d{3}', generate_reference_code('XY-2030'))
