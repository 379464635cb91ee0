# campus_ballot/routes.py

# JSON API for students, public read-outs and the administrator.
# Handlers unpack the request, call the services held in app.extensions and
# let BallotError subclasses propagate to the error handlers in errors.py.

import logging

from flask import Blueprint, Response, current_app, jsonify, request

from campus_ballot import limiter
from campus_ballot.authentication.admin_gate import require_admin
from campus_ballot.errors import IncorrectPassword
from campus_ballot.voting.results import export_csv, export_filename, tally

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__, url_prefix='/api')


def services():
    return current_app.extensions['campus_ballot']


def payload():
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def login_rate_limit():
    return current_app.config['LOGIN_RATE_LIMIT']


# Student endpoints

@api.post('/register')
def register():
    data = payload()
    issued = services().registration.register(
        data.get('studentId'),
        data.get('password'),
        data.get('confirmPassword'),
        data.get('question'),
        data.get('answer'),
        display_name=data.get('name'),
    )
    return jsonify({
        'success': True,
        'studentId': issued['studentId'],
        'accessCredential': issued['accessCredential'],
        'recoveryCode': issued['recoveryCode'],
        'message': "Registration successful! Save your Access ID and Recovery Code.",
    })


@api.post('/login')
@limiter.limit(login_rate_limit)
def login():
    data = payload()
    student = services().authentication.login(
        data.get('accessCredential') or data.get('accessId'),
        data.get('password'),
        student_id=data.get('studentId'),
    )
    return jsonify({'success': True, 'student': student})


@api.post('/forgot-question')
def forgot_question():
    data = payload()
    question = services().authentication.security_question(data.get('studentId'))
    return jsonify({'success': True, 'securityQuestion': question})


@api.post('/reset-password')
@limiter.limit(login_rate_limit)
def reset_password():
    data = payload()
    services().authentication.reset_password(
        data.get('studentId'),
        data.get('newPassword'),
        data.get('confirmPassword'),
        answer=data.get('answer'),
        recovery_code=data.get('recoveryCode'),
    )
    return jsonify({'success': True, 'message': "Password updated"})


@api.post('/vote')
def vote():
    data = payload()
    reference_code = services().voting.cast_vote(data.get('studentId'), data)
    return jsonify({'success': True, 'refCode': reference_code})


# Public read-outs

@api.get('/results')
def results():
    svc = services()
    projection = tally(svc.ledger.all_ballots(), svc.roster)
    return jsonify({'success': True, **projection})


@api.get('/voting-status')
def voting_status():
    return jsonify({'success': True, **services().window.status()})


# Administrator endpoints

@api.post('/admin/login')
@limiter.limit(login_rate_limit)
def admin_login():
    svc = services()
    try:
        token = svc.admin_gate.login(payload().get('password'))
    except IncorrectPassword:
        svc.audit_logger.record('failed_admin_login', {'ip': request.remote_addr})
        raise
    svc.audit_logger.record('admin_login', {'ip': request.remote_addr}, actor='admin')
    return jsonify({'success': True, 'token': token})


@api.post('/admin/set-period')
@require_admin
def set_period():
    svc = services()
    data = payload()
    start = svc.validator.parse_instant(data.get('start'))
    end = svc.validator.parse_instant(data.get('end'))
    window = svc.window.set_period(start, end)
    svc.audit_logger.record('voting_period_set', window._asdict(), actor='admin')
    return jsonify({'success': True, 'start': window.start, 'end': window.end})


@api.post('/open-voting')
@require_admin
def open_voting():
    svc = services()
    window = svc.window.open_now()
    svc.audit_logger.record('voting_opened', window._asdict(), actor='admin')
    return jsonify({'success': True, 'start': window.start, 'end': window.end})


@api.post('/close-voting')
@require_admin
def close_voting():
    svc = services()
    window = svc.window.close_now()
    svc.audit_logger.record('voting_closed', window._asdict(), actor='admin')
    return jsonify({'success': True, 'start': window.start, 'end': window.end})


@api.post('/reset')
@require_admin
def reset_votes():
    svc = services()
    svc.voting.reset()
    svc.audit_logger.record('votes_reset', {}, actor='admin')
    return jsonify({'success': True})


@api.get('/export-votes')
@require_admin
def export_votes():
    svc = services()
    ballots = svc.ledger.all_ballots()
    svc.audit_logger.record('votes_exported', {'count': len(ballots)}, actor='admin')
    if not ballots:
        return Response(export_csv(ballots), mimetype='text/plain')
    filename = export_filename(current_app.config['EXPORT_FILENAME_PREFIX'])
    return Response(
        export_csv(ballots),
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )
