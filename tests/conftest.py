"""
Shared pytest fixtures for competition engine tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from competition.bracket import complete_match, find_match, get_next_match, iter_matches
from competition.models import MapResult, MatchDestination, MatchResult, WinnerSource, LoserSource


def _make_result(match_id, winner_id, loser_id, score_winner=2, score_loser=0, maps=()):
    return MatchResult(
        match_id=match_id,
        winner_id=winner_id,
        loser_id=loser_id,
        maps=tuple(maps),
        score_team_a=score_winner,
        score_team_b=score_loser,
    )


@pytest.fixture
def make_result():
    """Factory for MatchResult values."""
    return _make_result


@pytest.fixture
def single_map_result():
    """A beats B 13-7 on one map."""
    return MatchResult(
        match_id='m1',
        winner_id='A',
        loser_id='B',
        maps=(MapResult('Ascent', 13, 7, 'A'),),
        score_team_a=1,
        score_team_b=0,
    )


@pytest.fixture
def play_bracket():
    """
    Play a bracket to the end.

    ``pick(match)`` returns the winner id; the default lets team A win.
    Returns the final bracket and the ids of the matches played, in order.
    """
    def _play(bracket, pick=None, max_matches=500):
        pick = pick or (lambda match: match.team_a_id)
        played = []
        match = get_next_match(bracket)
        while match is not None and len(played) < max_matches:
            winner = pick(match)
            loser = match.team_b_id if winner == match.team_a_id else match.team_a_id
            bracket = complete_match(bracket, match.match_id, winner, loser,
                                     _make_result(match.match_id, winner, loser))
            played.append(match.match_id)
            match = get_next_match(bracket)
        return bracket, played
    return _play


@pytest.fixture
def check_references():
    """Assert every source and destination match id resolves within the bracket."""
    def _check(bracket):
        ids = [m.match_id for m in iter_matches(bracket)]
        assert len(ids) == len(set(ids)), 'duplicate match ids'
        for match in iter_matches(bracket):
            for source in (match.team_a_source, match.team_b_source):
                if isinstance(source, (WinnerSource, LoserSource)):
                    assert find_match(bracket, source.match_id) is not None, source
            for destination in (match.winner_destination, match.loser_destination):
                if isinstance(destination, MatchDestination):
                    assert find_match(bracket, destination.match_id) is not None, destination
    return _check
