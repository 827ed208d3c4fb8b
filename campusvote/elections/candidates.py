# campusvote/elections/candidates.py

import logging

from campusvote import db
from campusvote.database.models import Candidate, Election
from campusvote.errors import NotFoundError
from campusvote.security.input_validator import InputValidator

logger = logging.getLogger(__name__)


class CandidateRegistry:
    def __init__(self, validator=None):
        self.validator = validator or InputValidator()

    def create_candidate(self, name, position, election_id, department, photo_url=None):
        self.validator.require_fields(
            {'name': name, 'position': position, 'electionId': election_id, 'department': department},
            ['name', 'position', 'electionId', 'department'],
            message='Name, position, election, and department are required',
        )
        election_id = self.validator.coerce_id(election_id, 'election ID')
        if db.session.get(Election, election_id) is None:
            raise NotFoundError('Election not found')

        candidate = Candidate(
            name=self.validator.sanitize_string(name, max_length=150),
            position=self.validator.sanitize_string(position, max_length=100),
            election_id=election_id,
            department=self.validator.sanitize_string(department, max_length=100),
            # Opaque to the server: a URL or a data: URI from the admin UI.
            photo_url=photo_url or '',
            vote_count=0,
        )
        db.session.add(candidate)
        db.session.commit()
        logger.info("Candidate %s added to election %s", candidate.id, election_id)
        return candidate

    def list_candidates(self, election_id=None):
        query = db.session.query(Candidate)
        if election_id is not None:
            query = query.filter_by(election_id=election_id)
        return query.order_by(Candidate.created_at.desc(), Candidate.id.desc()).all()

    def delete_candidate(self, candidate_id):
        candidate = db.session.get(Candidate, candidate_id)
        if candidate is None:
            raise NotFoundError('Candidate not found')
        # Votes already cast for this candidate are left in place.
        db.session.delete(candidate)
        db.session.commit()
        logger.info("Candidate %s deleted", candidate_id)
