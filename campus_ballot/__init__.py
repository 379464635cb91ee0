# campus_ballot/__init__.py

import logging
from datetime import datetime, timezone

from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_jwt_extended import JWTManager
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.middleware.proxy_fix import ProxyFix

# Extensions are created unbound and attached per application in create_app
db = SQLAlchemy()  # Database ORM
migrate = Migrate()  # DB migrations (`flask db ...`)
limiter = Limiter(key_func=get_remote_address)
jwt = JWTManager()

logger = logging.getLogger(__name__)


class VotingServices:
    """Per-application state and services handed to request handlers.

    Holds the voting window, the admin session and the credential/ballot
    services so that each app instance (and each test) is isolated.
    """

    def __init__(self, app):
        from campus_ballot.audit.audit_logger import AuditLogger
        from campus_ballot.authentication.admin_gate import AdminSessionGate
        from campus_ballot.authentication.login import AuthenticationService
        from campus_ballot.authentication.registration import RegistrationService
        from campus_ballot.database.storage import BallotLedgerStore, StudentStore, WindowStore
        from campus_ballot.encryption.credential_hashing import CredentialHasher
        from campus_ballot.security.input_validator import InputValidator
        from campus_ballot.security.keyed_lock import KeyedLock
        from campus_ballot.voting.ballots import VoteCastingService
        from campus_ballot.voting.window import VotingWindowController, now_ms

        config = app.config
        self.roster = config['CANDIDATES']
        self.hasher = CredentialHasher(config['VOTE_FINGERPRINT_SECRET'])
        self.validator = InputValidator(self.roster)
        self.audit_logger = AuditLogger(log_dir=config['AUDIT_LOG_DIR'])
        self.locks = KeyedLock()
        self.students = StudentStore()
        self.ledger = BallotLedgerStore()
        self.window = VotingWindowController(
            WindowStore(),
            config['VOTING_START'],
            config['VOTING_END'],
            clock=config.get('CLOCK', now_ms),
        )
        self.admin_gate = AdminSessionGate(
            admin_password=config.get('ADMIN_PASSWORD'),
            admin_password_hash=config.get('ADMIN_PASSWORD_HASH'),
        )
        self.registration = RegistrationService(
            self.hasher, self.students, self.validator, self.locks, self.audit_logger,
            enforce_eligibility=config['ENFORCE_ELIGIBILITY'],
        )
        self.authentication = AuthenticationService(
            self.hasher, self.students, self.validator, self.audit_logger)
        self.voting = VoteCastingService(
            self.hasher, self.ledger, self.window, self.students, self.validator, self.locks,
            self.audit_logger,
            reference_prefix=config['REFERENCE_CODE_PREFIX'],
            require_registration=config['REQUIRE_REGISTRATION_TO_VOTE'],
        )


def _log_startup_summary(services):
    window = services.window.window
    logger.info("Ballots recorded: %s", services.ledger.count_ballots())
    logger.info("Voted fingerprints: %s", services.ledger.count_fingerprints())
    logger.info("Students loaded: %s", services.students.count())
    logger.info(
        "Voting period: %s -> %s",
        datetime.fromtimestamp(window.start / 1000, timezone.utc).isoformat(),
        datetime.fromtimestamp(window.end / 1000, timezone.utc).isoformat(),
    )


def create_app(config_object='campus_ballot.config.Config', **overrides):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(overrides)

    # Fix proxy headers for HTTPS
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)

    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    jwt.init_app(app)

    from campus_ballot.database import models  # noqa: F401  registers tables on db.metadata
    from campus_ballot.errors import register_error_handlers
    from campus_ballot.roster import import_roster_command
    from campus_ballot.routes import api

    register_error_handlers(app)
    app.register_blueprint(api)
    app.cli.add_command(import_roster_command)

    with app.app_context():
        if app.config['AUTO_CREATE_TABLES']:
            db.create_all()
        services = VotingServices(app)
        app.extensions['campus_ballot'] = services
        _log_startup_summary(services)

    @app.get('/health')
    def health():
        try:
            db.session.execute(text('SELECT 1'))
        except SQLAlchemyError:
            logger.exception("Health check could not reach the database")
            db.session.rollback()
            return jsonify({'success': False, 'database': 'unreachable'}), 503
        return jsonify({'success': True, 'database': 'ok', 'votingOpen': services.window.is_open()})

    return app
