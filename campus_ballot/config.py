# campus_ballot/config.py

import os
from datetime import datetime, timezone


def _flag(name, default):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes', 'on')


def _epoch_ms(iso_value):
    moment = datetime.fromisoformat(iso_value.replace('Z', '+00:00'))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


DEFAULT_CANDIDATES = {
    'president': ['Sarah Johnson', 'John Davis'],
    'vicepresident': ['Michael Chen', 'Lisa Williams'],
    'secretary': ['Emily Brown', 'Robert Garcia'],
}


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY', 'change-me-in-production')
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'change-me-in-production-admin-jwt')

    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///campus_ballot.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    AUTO_CREATE_TABLES = _flag('AUTO_CREATE_TABLES', 'true')

    # Change both in production.
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'nursa2026')
    ADMIN_PASSWORD_HASH = os.environ.get('ADMIN_PASSWORD_HASH')  # argon2 hash, wins over ADMIN_PASSWORD
    VOTE_FINGERPRINT_SECRET = os.environ.get('VOTE_FINGERPRINT_SECRET', 'nursa2026-salt')

    # Seed values, used only until an administrator changes the window.
    VOTING_START = _epoch_ms(os.environ.get('VOTING_START', '2026-01-06T08:00:00Z'))
    VOTING_END = _epoch_ms(os.environ.get('VOTING_END', '2026-01-10T23:59:59Z'))

    CANDIDATES = DEFAULT_CANDIDATES
    REFERENCE_CODE_PREFIX = os.environ.get('REFERENCE_CODE_PREFIX', 'NM-2026')
    EXPORT_FILENAME_PREFIX = os.environ.get('EXPORT_FILENAME_PREFIX', 'nursa-votes')

    ENFORCE_ELIGIBILITY = _flag('ENFORCE_ELIGIBILITY', 'false')
    REQUIRE_REGISTRATION_TO_VOTE = _flag('REQUIRE_REGISTRATION_TO_VOTE', 'true')

    AUDIT_LOG_DIR = os.environ.get('AUDIT_LOG_DIR', 'logs')

    RATELIMIT_ENABLED = _flag('RATELIMIT_ENABLED', 'true')
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL', 'memory://')
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '10000/hour')
    LOGIN_RATE_LIMIT = os.environ.get('LOGIN_RATE_LIMIT', '20/minute')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    RATELIMIT_ENABLED = False
    ADMIN_PASSWORD = 'test-admin-password'
    ADMIN_PASSWORD_HASH = None
    VOTE_FINGERPRINT_SECRET = 'test-fingerprint-secret'
    ENFORCE_ELIGIBILITY = False
    REQUIRE_REGISTRATION_TO_VOTE = True
