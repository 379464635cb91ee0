# campus_ballot/roster.py

import csv

import click
from flask import current_app
from flask.cli import with_appcontext

# Eligible-voter roster import. Imported students start unregistered; when
# ENFORCE_ELIGIBILITY is on, only they may register.


def read_roster(lines, validator):
    """Yield ``(student_id, display_name)`` from CSV rows of ``id[,name]``; a header row is skipped."""
    for row in csv.reader(lines):
        if not row or not row[0].strip() or row[0].strip().lower() in ('student_id', 'studentid', 'id'):
            continue
        student_id = validator.normalize_student_id(row[0])
        name = validator.sanitize_string(row[1], 120) if len(row) > 1 else ''
        yield student_id, name or f"Student {student_id}"


@click.command('import-roster')
@click.argument('roster_file', type=click.File('r'))
@with_appcontext
def import_roster_command(roster_file):
    """Import eligible students from ROSTER_FILE (CSV: student_id,name)."""
    services = current_app.extensions['campus_ballot']
    entries = list(read_roster(roster_file, services.validator))
    created = services.students.import_roster(entries)
    click.echo(f"Imported {created} new students ({len(entries)} rows read).")
