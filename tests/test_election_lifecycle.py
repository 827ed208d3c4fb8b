import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace

from campusvote import db
from campusvote.database.models import Candidate, Election
from campusvote.elections.status import ElectionStatus, get_status
from campusvote.errors import ConflictError, NotFoundError, ValidationError
from campusvote.operations.time_sync import utcnow


def test_get_status_from_window():
    start = datetime(2025, 3, 1, 9, 0)
    end = datetime(2025, 3, 1, 17, 0)
    election = SimpleNamespace(start_time=start, end_time=end)

    assert get_status(election, start - timedelta(seconds=1)) is ElectionStatus.UPCOMING
    assert get_status(election, start) is ElectionStatus.ONGOING
    assert get_status(election, end) is ElectionStatus.ONGOING
    assert get_status(election, end + timedelta(seconds=1)) is ElectionStatus.ENDED


def test_create_election_sets_advisory_status(app, lifecycle):
    now = utcnow()
    election = lifecycle.create_election('Council', 'Yearly vote', now - timedelta(hours=1),
                                         now + timedelta(hours=1), 'admin@nec.edu')
    assert election.status == 'Upcoming'
    # Live status ignores the stored column
    assert election.to_dict()['status'] == 'Ongoing'


def test_create_election_accepts_iso_strings(app, lifecycle):
    election = lifecycle.create_election('Council', 'Yearly vote', '2030-01-01T09:00:00.000Z',
                                         '2030-01-02T09:00:00Z', 'admin@nec.edu')
    assert election.start_time == datetime(2030, 1, 1, 9, 0)
    assert election.to_dict()['startDate'] == '2030-01-01T09:00:00Z'


@pytest.mark.parametrize("field", ['title', 'description', 'start', 'end', 'created_by'])
def test_create_election_requires_every_field(app, lifecycle, field):
    now = utcnow()
    values = {
        'title': 'Council',
        'description': 'Yearly vote',
        'start': now,
        'end': now + timedelta(hours=1),
        'created_by': 'admin@nec.edu',
    }
    values[field] = None
    with pytest.raises(ValidationError, match='All fields are required'):
        lifecycle.create_election(values['title'], values['description'], values['start'],
                                  values['end'], values['created_by'])


def test_create_election_rejects_bad_dates(app, lifecycle):
    with pytest.raises(ValidationError, match='Invalid start date'):
        lifecycle.create_election('Council', 'x', 'not-a-date', '2030-01-01T00:00:00', 'admin')
    with pytest.raises(ValidationError, match='after start'):
        lifecycle.create_election('Council', 'x', '2030-01-02T00:00:00', '2030-01-01T00:00:00', 'admin')


def test_create_election_strips_markup(app, lifecycle):
    election = lifecycle.create_election('<b>Council</b>', 'Tom & Jerry <i>vote</i>',
                                         '2030-01-01T00:00:00', '2030-01-02T00:00:00', 'admin')
    assert election.title == 'Council'
    assert election.description == 'Tom & Jerry vote'


def test_list_elections_newest_first(make_election, lifecycle):
    first = make_election(title='First')
    second = make_election(title='Second')
    assert [e.id for e in lifecycle.list_elections()] == [second.id, first.id]


def test_update_missing_election(app, lifecycle):
    with pytest.raises(NotFoundError):
        lifecycle.update_election(404, {'end_time': utcnow() + timedelta(days=1)})


def test_full_update_of_upcoming_election(make_election, lifecycle):
    election = make_election(start_offset=timedelta(days=1), end_offset=timedelta(days=2))
    new_start = utcnow() + timedelta(days=3)
    updated = lifecycle.update_election(election.id, {
        'title': 'Renamed',
        'description': 'New description',
        'start_time': new_start,
        'end_time': new_start + timedelta(hours=8),
    })
    assert updated.title == 'Renamed'
    assert updated.start_time == new_start


def test_full_update_requires_all_fields(make_election, lifecycle):
    election = make_election(start_offset=timedelta(days=1), end_offset=timedelta(days=2))
    with pytest.raises(ValidationError, match='required'):
        lifecycle.update_election(election.id, {'title': 'Only title'})


def test_full_update_rejects_inverted_window(make_election, lifecycle):
    election = make_election(start_offset=timedelta(days=1), end_offset=timedelta(days=2))
    now = utcnow()
    with pytest.raises(ValidationError, match='after start'):
        lifecycle.update_election(election.id, {
            'title': 'T', 'description': 'D',
            'start_time': now + timedelta(days=5), 'end_time': now + timedelta(days=4),
        })


def test_ongoing_update_only_extends_end(ongoing_election, lifecycle):
    election, _, _ = ongoing_election
    original_title = election.title
    original_start = election.start_time
    new_end = utcnow() + timedelta(days=1)

    updated = lifecycle.update_election(election.id, {
        'title': 'Ignored',
        'start_time': utcnow() + timedelta(days=5),
        'end_time': new_end,
    })
    assert updated.end_time == new_end
    assert updated.title == original_title
    assert updated.start_time == original_start


def test_ongoing_update_validation(ongoing_election, lifecycle):
    election, _, _ = ongoing_election
    with pytest.raises(ValidationError, match='End date is required'):
        lifecycle.update_election(election.id, {'title': 'x'})
    with pytest.raises(ValidationError, match='Invalid end date'):
        lifecycle.update_election(election.id, {'end_time': 'tomorrow'})
    with pytest.raises(ValidationError, match='future'):
        lifecycle.update_election(election.id, {'end_time': utcnow() - timedelta(minutes=1)})


def test_votes_lock_full_edit_but_allow_extension(ongoing_election, lifecycle, ledger):
    election, alice, _ = ongoing_election
    ledger.submit_vote(election.id, alice.id, 'S1')

    new_end = utcnow() + timedelta(days=2)
    assert lifecycle.update_election(election.id, {'end_time': new_end}).end_time == new_end

    # Once the election has ended, a full edit is refused because votes exist
    after_close = new_end + timedelta(minutes=1)
    with pytest.raises(ConflictError, match='already has votes'):
        lifecycle.update_election(election.id, {
            'title': 'T', 'description': 'D',
            'start_time': after_close + timedelta(days=1),
            'end_time': after_close + timedelta(days=2),
        }, now=after_close)


def test_delete_without_votes_cascades_candidates(ongoing_election, lifecycle):
    election, alice, brian = ongoing_election
    lifecycle.delete_election(election.id)

    assert db.session.get(Election, election.id) is None
    assert db.session.query(Candidate).filter_by(election_id=election.id).count() == 0


def test_delete_with_votes_is_refused(ongoing_election, lifecycle, ledger):
    election, alice, _ = ongoing_election
    ledger.submit_vote(election.id, alice.id, 'S1')

    with pytest.raises(ConflictError, match='has votes'):
        lifecycle.delete_election(election.id)
    assert db.session.get(Election, election.id) is not None
    assert db.session.query(Candidate).filter_by(election_id=election.id).count() == 2


def test_delete_missing_election(app, lifecycle):
    with pytest.raises(NotFoundError):
        lifecycle.delete_election(12345)


def test_status_field_override_is_advisory(ongoing_election, lifecycle):
    election, _, _ = ongoing_election
    updated = lifecycle.update_election_status_field(election.id, 'Ended')

    assert updated.status == 'Ended'
    assert updated.live_status() is ElectionStatus.ONGOING
    assert updated.to_dict()['status'] == 'Ongoing'
    assert updated.to_dict()['storedStatus'] == 'Ended'


def test_status_field_rejects_unknown_values(ongoing_election, lifecycle):
    election, _, _ = ongoing_election
    with pytest.raises(ValidationError, match='Invalid status'):
        lifecycle.update_election_status_field(election.id, 'Paused')
    with pytest.raises(NotFoundError):
        lifecycle.update_election_status_field(999, 'Ended')
