# campusvote/elections/status.py

from enum import Enum


class ElectionStatus(Enum):
    UPCOMING = "Upcoming"
    ONGOING = "Ongoing"
    ENDED = "Ended"


STATUS_VALUES = [s.value for s in ElectionStatus]


def get_status(election, now):
    """Derive the live status from the election window. Never read the stored column."""
    if now < election.start_time:
        return ElectionStatus.UPCOMING
    if now > election.end_time:
        return ElectionStatus.ENDED
    return ElectionStatus.ONGOING
