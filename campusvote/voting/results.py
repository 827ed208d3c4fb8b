# campusvote/voting/results.py

import logging
from typing import Dict

from campusvote import db
from campusvote.database.models import Candidate, Election, Vote
from campusvote.errors import NotFoundError

logger = logging.getLogger(__name__)


def format_percentage(votes: int, total_votes: int) -> str:
    if total_votes <= 0:
        return "0.0"
    return f"{votes / total_votes * 100:.1f}"


class ResultsAggregator:
    def compute_results(self, election_id) -> Dict:
        """
        Rank the election's candidates by vote count (ties by id) with their
        share of the total. The total is counted from the votes table rather
        than summed from candidate counters.
        """
        if db.session.get(Election, election_id) is None:
            raise NotFoundError('Election not found')

        candidates = (db.session.query(Candidate)
                      .filter_by(election_id=election_id)
                      .order_by(Candidate.vote_count.desc(), Candidate.id.asc())
                      .all())
        total_votes = db.session.query(Vote).filter_by(election_id=election_id).count()

        tallied = sum(c.vote_count for c in candidates)
        if tallied != total_votes:
            # Expected after a candidate with votes was deleted.
            logger.warning("Election %s: candidate tallies sum to %s but %s votes recorded",
                           election_id, tallied, total_votes)

        results = [
            {
                'id': c.id,
                '_id': c.id,
                'name': c.name,
                'position': c.position,
                'department': c.department,
                'votes': c.vote_count,
                'percentage': format_percentage(c.vote_count, total_votes),
            }
            for c in candidates
        ]
        return {'totalVotes': total_votes, 'results': results}
