# campus_ballot/voting/results.py

import csv
import io
from datetime import date, timezone

# Read-side projections over recorded ballots: per-office tallies and CSV export.

CSV_HEADER = 'President,VicePresident,Secretary,Timestamp,ReferenceCode\n'
NO_VOTES_BODY = 'No votes recorded.\n'

BALLOT_FIELDS = {
    'president': 'president',
    'vicepresident': 'vice_president',
    'secretary': 'secretary',
}


def tally(ballots, roster):
    counts = {office: {name: 0 for name in candidates} for office, candidates in roster.items()}
    total = 0
    for ballot in ballots:
        total += 1
        for office, attribute in BALLOT_FIELDS.items():
            choice = getattr(ballot, attribute)
            if office in counts and choice:
                counts[office][choice] = counts[office].get(choice, 0) + 1
    return {'counts': counts, 'total': total}


def format_timestamp(moment):
    if moment.tzinfo is None:
        # SQLite hands back naive values; they are stored as UTC.
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime('%Y-%m-%dT%H:%M:%S.') + f"{moment.microsecond // 1000:03d}Z"


def export_csv(ballots):
    if not ballots:
        return NO_VOTES_BODY
    buffer = io.StringIO()
    buffer.write(CSV_HEADER)
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator='\n')
    for ballot in ballots:
        writer.writerow([
            ballot.president or '',
            ballot.vice_president or '',
            ballot.secretary or '',
            format_timestamp(ballot.cast_at),
            ballot.reference_code,
        ])
    return buffer.getvalue()


def export_filename(prefix, today=None):
    today = today or date.today()
    return f"{prefix}-{today.isoformat()}.csv"
