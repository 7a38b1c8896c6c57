"""Tests for quorum evaluation."""
from conftest import game_rows
from player_finder.models import parse_rows
from player_finder.services.aggregator import aggregate_request
from player_finder.services.quorum import RequestStatus, evaluate, has_open_slot


def _request(players_needed, statuses):
    return aggregate_request(parse_rows(game_rows(players_needed=players_needed, statuses=statuses)), 'r1')


def test_no_acceptances_counts_only_the_organizer():
    result = evaluate(_request(2, ('PENDING', 'PENDING', 'PENDING')))
    assert result.status is RequestStatus.PENDING
    assert result.accepted_count == 1
    assert result.total_slots == 3
    assert result.remaining == 2


def test_one_acceptance_leaves_one_slot():
    result = evaluate(_request(2, ('ACCEPTED', 'PENDING', 'DECLINED')))
    assert result.status is RequestStatus.PENDING
    assert result.remaining == 1
    assert result.to_dict()['label'] == '2/3 Accepted'


def test_request_fills_when_accepted_reaches_players_needed():
    result = evaluate(_request(2, ('ACCEPTED', 'ACCEPTED', 'PENDING')))
    assert result.status is RequestStatus.FULL
    assert result.is_full
    assert result.remaining == 0
    assert result.accepted_count == result.total_slots == 3


def test_over_acceptance_never_goes_negative():
    result = evaluate(_request(1, ('ACCEPTED', 'ACCEPTED', 'ACCEPTED')))
    assert result.status is RequestStatus.FULL
    assert result.remaining == 0
    assert result.accepted_count == 4


def test_cancel_drops_full_back_to_pending():
    full = _request(2, ('ACCEPTED', 'ACCEPTED', 'PENDING'))
    assert evaluate(full).is_full
    after_cancel = _request(2, ('ACCEPTED', 'CANCELLED', 'PENDING'))
    assert evaluate(after_cancel).status is RequestStatus.PENDING
    assert has_open_slot(after_cancel)


def test_declined_cancelled_and_withdrawn_rows_do_not_count():
    result = evaluate(_request(3, ('DECLINED', 'CANCELLED', 'WITHDRAWN')))
    assert result.accepted_count == 1
    assert result.remaining == 3


def test_zero_players_needed_is_full_immediately():
    request = _request(0, ('PENDING', 'PENDING', 'PENDING'))
    assert evaluate(request).is_full
    assert not has_open_slot(request)
