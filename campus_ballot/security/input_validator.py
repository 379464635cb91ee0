# campus_ballot/security/input_validator.py

import html
import math
import re
from datetime import datetime, timezone

import bleach

from campus_ballot.errors import ValidationFailed
from campus_ballot.voting.window import OPEN_ENDED_MS

# Input validation and sanitization for student, ballot and admin requests.


class InputValidator:
    def __init__(self, roster=None):
        # office -> list of candidate names
        self.roster = roster or {}
        self.patterns = {
            'student_id': re.compile(r'^[A-Z0-9][A-Z0-9/_.-]{0,31}$'),
            'xss_script': re.compile(r'<script[^>]*>.*?</script>', re.IGNORECASE | re.DOTALL),
        }

    def require_fields(self, payload, *fields, message=None):
        """Return the requested fields, failing if any is missing or blank."""
        if not isinstance(payload, dict):
            raise ValidationFailed(message)
        values = []
        for field in fields:
            value = payload.get(field)
            if value is None or (isinstance(value, str) and not value.strip()):
                raise ValidationFailed(message)
            if not isinstance(value, str):
                value = str(value)
            values.append(value)
        return values

    def sanitize_string(self, input_str, max_length=255):
        if not isinstance(input_str, str):
            raise ValidationFailed("Input must be a string")
        sanitized = re.sub(self.patterns['xss_script'], '', input_str[:max_length])
        sanitized = bleach.clean(sanitized, tags=[], attributes={}, strip=True)
        # bleach escapes what it keeps; store the plain text the student typed
        sanitized = html.unescape(sanitized)
        return sanitized.strip()

    def normalize_student_id(self, student_id):
        if not isinstance(student_id, str):
            raise ValidationFailed("Student ID required")
        normalized = student_id.strip().upper()
        if not self.patterns['student_id'].match(normalized):
            raise ValidationFailed("Invalid Student ID")
        return normalized

    def normalize_answer(self, answer):
        return answer.strip().lower()

    def normalize_access_credential(self, access_credential):
        return access_credential.strip().upper()

    def parse_instant(self, value):
        """Parse an ISO-8601 string or epoch milliseconds into epoch milliseconds.

        Naive ISO timestamps are read as UTC. Results must fall between the
        epoch and 9999-12-31T23:59:59.999Z.
        """
        if isinstance(value, bool):
            raise ValidationFailed("Invalid date")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValidationFailed("Invalid date")
        if isinstance(value, (int, float)):
            return self._bounded_instant(int(value))
        if not isinstance(value, str) or not value.strip():
            raise ValidationFailed("Missing dates")
        text = value.strip()
        if re.fullmatch(r'-?\d{1,20}', text):
            return self._bounded_instant(int(text))
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            ms = int(parsed.timestamp() * 1000)
        except (ValueError, OverflowError):
            raise ValidationFailed(f"Invalid date: {value}")
        return self._bounded_instant(ms)

    def _bounded_instant(self, ms):
        if not 0 <= ms <= OPEN_ENDED_MS:
            raise ValidationFailed("Date out of range")
        return ms

    def validate_selections(self, selections):
        """Check one selection per office against the candidate roster."""
        validated = {}
        for office, candidates in self.roster.items():
            choice = selections.get(office)
            if not isinstance(choice, str) or not choice.strip():
                raise ValidationFailed(f"A selection for {office} is required")
            choice = choice.strip()
            if choice not in candidates:
                raise ValidationFailed(f"Unknown candidate for {office}: {choice}")
            validated[office] = choice
        return validated
