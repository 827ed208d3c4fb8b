# campusvote/voting/vote_ledger.py

import logging

from sqlalchemy import case
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from campusvote import db
from campusvote.database.models import Candidate, Election, Vote
from campusvote.elections.status import ElectionStatus, get_status
from campusvote.errors import ConflictError, NotFoundError, UpstreamError, ValidationError
from campusvote.operations.time_sync import isoformat, utcnow
from campusvote.security.input_validator import InputValidator

logger = logging.getLogger(__name__)

ALREADY_VOTED = 'You have already voted in this election'
VOTE_UNIQUE_CONSTRAINT = 'uq_vote_once_per_election'


class VoteLedger:
    """
    Records one vote per (election, student) and keeps candidate tallies in step.

    A student moves from NotVoted to Voted by submit_vote and back only through
    reverse_vote. The unique constraint on votes(election_id, student_id) is
    what makes concurrent duplicate submissions fail; the lookup before the
    insert only produces the friendlier early error. The vote row and the
    tally change are always committed together.
    """

    def __init__(self, validator=None):
        self.validator = validator or InputValidator()

    def _find_vote(self, election_id, student_id):
        return (db.session.query(Vote)
                .filter_by(election_id=election_id, student_id=student_id)
                .first())

    def _is_duplicate(self, error, election_id, student_id):
        # PostgreSQL names the violated constraint; SQLite only lists the columns,
        # so fall back to looking for the committed row.
        if VOTE_UNIQUE_CONSTRAINT in str(error.orig):
            return True
        return (db.session.query(Vote.id)
                .filter_by(election_id=election_id, student_id=student_id)
                .first()) is not None

    def submit_vote(self, election_id, candidate_id, student_id, now=None):
        self.validator.require_fields(
            {'electionId': election_id, 'candidateId': candidate_id, 'studentId': student_id},
            ['electionId', 'candidateId', 'studentId'],
            message='Election ID, candidate ID, and student ID are required',
        )
        election_id = self.validator.coerce_id(election_id, 'election ID')
        candidate_id = self.validator.coerce_id(candidate_id, 'candidate ID')
        student_id = str(student_id).strip()

        if self._find_vote(election_id, student_id) is not None:
            raise ConflictError(ALREADY_VOTED)

        election = db.session.get(Election, election_id)
        if election is None:
            raise NotFoundError('Election not found')

        now = now or utcnow()
        status = get_status(election, now)
        if status is ElectionStatus.UPCOMING:
            raise ValidationError('Election has not started yet')
        if status is ElectionStatus.ENDED:
            raise ValidationError('Election has ended')

        candidate = (db.session.query(Candidate)
                     .filter_by(id=candidate_id, election_id=election_id)
                     .first())
        if candidate is None:
            raise NotFoundError('Candidate not found for this election')

        vote = Vote(
            election_id=election_id,
            candidate_id=candidate_id,
            student_id=student_id,
            cast_at=now,
        )
        try:
            db.session.add(vote)
            db.session.flush()
            vote_id = vote.id
            # Increment in SQL so concurrent voters never overwrite each other's count.
            (db.session.query(Candidate)
             .filter(Candidate.id == candidate_id)
             .update({Candidate.vote_count: Candidate.vote_count + 1},
                     synchronize_session=False))
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            if not self._is_duplicate(e, election_id, student_id):
                logger.error("Vote insert violated a constraint in election %s: %s", election_id, e.orig)
                raise UpstreamError('Failed to record vote')
            logger.info("Duplicate vote rejected for student %s in election %s",
                        student_id, election_id)
            raise ConflictError(ALREADY_VOTED)
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Vote write failed for election %s", election_id)
            raise UpstreamError('Failed to record vote')

        logger.info("Vote %s recorded in election %s", vote_id, election_id)
        return vote_id

    def get_vote_status(self, election_id, student_id):
        election_id = self.validator.coerce_id(election_id, 'election ID')
        vote = self._find_vote(election_id, str(student_id))
        if vote is None:
            return {'hasVoted': False}

        candidate = db.session.get(Candidate, vote.candidate_id)
        return {
            'hasVoted': True,
            'votedFor': candidate.name if candidate else 'Unknown',
            'votedAt': isoformat(vote.cast_at),
        }

    def get_vote(self, vote_id):
        vote = db.session.get(Vote, vote_id)
        if vote is None:
            raise NotFoundError('Vote not found')
        return vote

    def reverse_vote(self, vote_id):
        vote = self.get_vote(vote_id)
        candidate_id = vote.candidate_id
        election_id = vote.election_id
        db.session.expunge(vote)

        try:
            # Conditional delete: a concurrent reversal of the same vote deletes 0 rows.
            deleted = (db.session.query(Vote)
                       .filter(Vote.id == vote_id)
                       .delete(synchronize_session=False))
            if deleted == 0:
                db.session.rollback()
                raise NotFoundError('Vote not found')
            (db.session.query(Candidate)
             .filter(Candidate.id == candidate_id)
             .update({Candidate.vote_count: case(
                 (Candidate.vote_count > 0, Candidate.vote_count - 1),
                 else_=0,
             )}, synchronize_session=False))
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Vote reversal failed for vote %s", vote_id)
            raise UpstreamError('Failed to delete vote')

        logger.info("Vote %s reversed in election %s", vote_id, election_id)
        return {'voteId': vote_id, 'electionId': election_id, 'candidateId': candidate_id}

    def list_votes_for_student(self, student_id):
        return (db.session.query(Vote)
                .filter_by(student_id=str(student_id))
                .order_by(Vote.cast_at.desc(), Vote.id.desc())
                .all())
