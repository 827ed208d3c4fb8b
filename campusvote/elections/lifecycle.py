# campusvote/elections/lifecycle.py

import logging

from sqlalchemy.exc import IntegrityError

from campusvote import db
from campusvote.database.models import Candidate, Election, Vote
from campusvote.elections.status import ElectionStatus, STATUS_VALUES, get_status
from campusvote.errors import ConflictError, NotFoundError, ValidationError
from campusvote.operations.time_sync import parse_timestamp, utcnow
from campusvote.security.input_validator import InputValidator

logger = logging.getLogger(__name__)


class ElectionLifecycleService:
    """
    Create, edit and delete elections.

    Status is never read from storage: every decision here recomputes it from
    the election window. Once an election has votes it can no longer be
    edited or deleted, except that an ongoing election may have its end time
    pushed later.
    """

    def __init__(self, validator=None):
        self.validator = validator or InputValidator()

    def list_elections(self):
        return (db.session.query(Election)
                .order_by(Election.created_at.desc(), Election.id.desc())
                .all())

    def get_election(self, election_id):
        election = db.session.get(Election, election_id)
        if election is None:
            raise NotFoundError('Election not found')
        return election

    def count_votes(self, election_id):
        return db.session.query(Vote).filter_by(election_id=election_id).count()

    def create_election(self, title, description, start_time, end_time, created_by):
        fields = {
            'title': title,
            'description': description,
            'startDate': start_time,
            'endDate': end_time,
            'createdBy': created_by,
        }
        self.validator.require_fields(fields, list(fields), message='All fields are required')

        start = parse_timestamp(start_time, 'start date')
        end = parse_timestamp(end_time, 'end date')
        if start >= end:
            raise ValidationError('End date must be after start date')

        election = Election(
            title=self.validator.sanitize_string(title, max_length=200),
            description=self.validator.sanitize_string(description, max_length=5000),
            start_time=start,
            end_time=end,
            status=ElectionStatus.UPCOMING.value,
            created_by=self.validator.sanitize_string(created_by, max_length=254),
        )
        db.session.add(election)
        db.session.commit()
        logger.info("Election %s created by %s", election.id, election.created_by)
        return election

    def update_election(self, election_id, patch, now=None):
        patch = patch or {}
        election = self.get_election(election_id)
        now = now or utcnow()

        if get_status(election, now) is ElectionStatus.ONGOING:
            # Only the end time can move while voting is open; other fields are ignored.
            if self.validator.missing_fields(patch, ['end_time']):
                raise ValidationError('End date is required when updating an ongoing election')
            new_end = parse_timestamp(patch['end_time'], 'end date')
            if new_end <= now:
                raise ValidationError('End date must be in the future')
            election.end_time = new_end
            db.session.commit()
            logger.info("Election %s end time extended to %s", election.id, new_end)
            return election

        required = ['title', 'description', 'start_time', 'end_time']
        self.validator.require_fields(
            patch, required,
            message='Title, description, start date, and end date are required',
        )
        if self.count_votes(election.id) > 0:
            raise ConflictError('Cannot edit election that already has votes')

        new_start = parse_timestamp(patch['start_time'], 'start date')
        new_end = parse_timestamp(patch['end_time'], 'end date')
        if new_start >= new_end:
            raise ValidationError('End date must be after start date')

        election.title = self.validator.sanitize_string(patch['title'], max_length=200)
        election.description = self.validator.sanitize_string(patch['description'], max_length=5000)
        election.start_time = new_start
        election.end_time = new_end
        db.session.commit()
        logger.info("Election %s updated", election.id)
        return election

    def delete_election(self, election_id):
        election = self.get_election(election_id)
        if self.count_votes(election.id) > 0:
            raise ConflictError('Cannot delete election that has votes')

        try:
            db.session.query(Candidate).filter_by(election_id=election.id).delete(
                synchronize_session=False
            )
            db.session.delete(election)
            db.session.commit()
        except IntegrityError:
            # A vote landed between the count and the delete.
            db.session.rollback()
            raise ConflictError('Cannot delete election that has votes')
        logger.info("Election %s deleted with its candidates", election_id)

    def update_election_status_field(self, election_id, status):
        """Set the advisory status column. The live status stays time-derived."""
        if status not in STATUS_VALUES:
            raise ValidationError('Invalid status')
        election = self.get_election(election_id)
        election.status = status
        db.session.commit()
        return election
