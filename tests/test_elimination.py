"""
Unit tests for single elimination bracket generation and the shared bracket
machinery.
"""
import pytest

from competition.bracket import (
    apply_seeding,
    calculate_bracket_size,
    calculate_byes,
    calculate_rounds,
    complete_match,
    find_match,
    get_bracket_display,
    get_bracket_status,
    get_champion,
    get_final_placements,
    get_match_number,
    get_next_match,
    get_ready_matches,
    prefix_bracket_ids,
    update_match_statuses,
)
from competition.elimination import generate_single_elimination
from competition.models import (
    BracketFormat,
    ByeSource,
    ChampionDestination,
    EliminatedDestination,
    MatchStatus,
    PlacementDestination,
    SeedSource,
    WinnerSource,
)


class TestBracketHelpers:
    """Tests for bracket helper functions."""

    def test_calculate_bracket_size_exact_power(self):
        """Test bracket size for exact power of 2."""
        assert calculate_bracket_size(4) == 4
        assert calculate_bracket_size(8) == 8
        assert calculate_bracket_size(16) == 16

    def test_calculate_bracket_size_not_power(self):
        """Test bracket size rounds up to next power of 2."""
        assert calculate_bracket_size(3) == 4
        assert calculate_bracket_size(5) == 8
        assert calculate_bracket_size(12) == 16

    def test_calculate_bracket_size_empty(self):
        assert calculate_bracket_size(0) == 0

    def test_calculate_rounds(self):
        assert calculate_rounds(1) == 0
        assert calculate_rounds(2) == 1
        assert calculate_rounds(5) == 3
        assert calculate_rounds(16) == 4

    def test_calculate_byes(self):
        assert calculate_byes(8) == 0
        assert calculate_byes(6) == 2
        assert calculate_byes(12) == 4

    def test_match_number_is_cumulative(self):
        """Match numbers continue across rounds."""
        assert get_match_number(1, 0, 8) == 1
        assert get_match_number(1, 3, 8) == 4
        assert get_match_number(2, 0, 8) == 5
        assert get_match_number(2, 1, 8) == 6
        assert get_match_number(3, 0, 8) == 7

    def test_apply_seeding_identity(self):
        """Without seeding teams fill slots in order and the rest are byes."""
        assert apply_seeding(['A', 'B', 'C'], None, 4) == ['A', 'B', 'C', None]

    def test_apply_seeding_permutation(self):
        """seeding[i] is the 1-based slot of team i."""
        assert apply_seeding(['A', 'B', 'C'], [3, 1, 2], 4) == ['B', 'C', 'A', None]

    def test_apply_seeding_wrong_length_falls_back(self):
        assert apply_seeding(['A', 'B'], [2], 2) == ['A', 'B']


class TestSingleEliminationStructure:
    """Structural invariants for every team count."""

    @pytest.mark.parametrize('num_teams', range(2, 33))
    def test_round_and_match_counts(self, num_teams, check_references):
        """ceil(log2 n) rounds, size / 2^r matches in round r, all references resolve."""
        teams = [f'T{i}' for i in range(1, num_teams + 1)]
        bracket = generate_single_elimination(teams)
        size = calculate_bracket_size(num_teams)

        assert bracket.format == BracketFormat.SINGLE_ELIM
        assert len(bracket.upper) == calculate_rounds(num_teams)
        for round_number, round_ in enumerate(bracket.upper, start=1):
            assert round_.round_number == round_number
            assert len(round_.matches) == size // (2 ** round_number)
        assert bracket.lower is None
        assert bracket.grandfinal is None
        check_references(bracket)

    def test_round_one_pairs_adjacent_seeds(self):
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        first = bracket.upper[0].matches
        assert [(m.team_a_id, m.team_b_id) for m in first] == [('A', 'B'), ('C', 'D')]
        assert first[0].team_a_source == SeedSource(1)
        assert first[1].team_b_source == SeedSource(4)

    def test_destinations(self):
        """Final winner is champion, final loser second, earlier losers eliminated."""
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        final = bracket.upper[-1].matches[0]
        assert final.winner_destination == ChampionDestination()
        assert final.loser_destination == PlacementDestination(2)
        for match in bracket.upper[0].matches:
            assert match.loser_destination == EliminatedDestination()
        assert final.team_a_source == WinnerSource('match-1')
        assert final.team_b_source == WinnerSource('match-2')


class TestByes:
    """Tests for bye auto-advance."""

    def test_single_bye_advances_into_round_two(self):
        bracket = generate_single_elimination(['A', 'B', 'C'])
        bye_match = find_match(bracket, 'match-2')
        assert bye_match.status == MatchStatus.COMPLETED
        assert bye_match.winner_id == 'C'
        assert bye_match.loser_id is None
        assert bye_match.team_b_source == ByeSource()

        final = find_match(bracket, 'match-3')
        assert final.team_b_id == 'C'
        assert final.status == MatchStatus.PENDING

    def test_seeded_byes_make_round_two_ready(self):
        """Two teams with byes meet in a ready round-2 match."""
        bracket = generate_single_elimination(['A', 'B', 'C', 'D', 'E', 'F'], [1, 3, 5, 6, 7, 8])
        assert find_match(bracket, 'match-1').winner_id == 'A'
        assert find_match(bracket, 'match-2').winner_id == 'B'
        semifinal = find_match(bracket, 'match-5')
        assert (semifinal.team_a_id, semifinal.team_b_id) == ('A', 'B')
        assert semifinal.status == MatchStatus.READY

    def test_dead_bye_pair_completes_without_winner(self):
        bracket = generate_single_elimination(['A', 'B', 'C', 'D', 'E'])
        dead = find_match(bracket, 'match-4')
        assert dead.status == MatchStatus.COMPLETED
        assert dead.winner_id is None

    def test_bye_cascade_carries_team_forward(self):
        """A team whose next opponent can never exist keeps advancing."""
        bracket = generate_single_elimination(['A', 'B', 'C', 'D', 'E'])
        assert find_match(bracket, 'match-3').winner_id == 'E'
        assert find_match(bracket, 'match-6').winner_id == 'E'
        assert find_match(bracket, 'match-7').team_b_id == 'E'

    @pytest.mark.parametrize('num_teams', [3, 5, 6, 7, 9, 12])
    def test_non_power_of_two_completes(self, num_teams, play_bracket):
        teams = [f'T{i}' for i in range(1, num_teams + 1)]
        bracket, played = play_bracket(generate_single_elimination(teams))
        assert len(played) == num_teams - 1
        assert get_bracket_status(bracket) == 'completed'
        assert get_champion(bracket) == 'T1'


class TestCompleteMatch:
    """Tests for match completion and propagation."""

    def test_scenario_single_elimination_four_teams(self, make_result):
        """A and C win round 1, A wins the final."""
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        bracket = complete_match(bracket, 'match-1', 'A', 'B', make_result('match-1', 'A', 'B'))
        bracket = complete_match(bracket, 'match-2', 'C', 'D', make_result('match-2', 'C', 'D'))

        ready = get_ready_matches(bracket)
        assert len(ready) == 1
        assert (ready[0].team_a_id, ready[0].team_b_id) == ('A', 'C')

        bracket = complete_match(bracket, ready[0].match_id, 'A', 'C')
        assert get_champion(bracket) == 'A'
        assert get_final_placements(bracket) == {1: 'A', 2: 'C'}

    def test_result_is_recorded(self, make_result):
        bracket = generate_single_elimination(['A', 'B'])
        result = make_result('match-1', 'B', 'A')
        bracket = complete_match(bracket, 'match-1', 'B', 'A', result)
        match = find_match(bracket, 'match-1')
        assert match.status == MatchStatus.COMPLETED
        assert (match.winner_id, match.loser_id) == ('B', 'A')
        assert match.result == result

    def test_input_bracket_untouched(self):
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        updated = complete_match(bracket, 'match-1', 'A', 'B')
        assert find_match(bracket, 'match-1').status == MatchStatus.READY
        assert find_match(bracket, 'match-3').team_a_id is None
        assert find_match(updated, 'match-3').team_a_id == 'A'

    def test_unchanged_rounds_are_shared(self):
        bracket = generate_single_elimination([f'T{i}' for i in range(8)])
        updated = complete_match(bracket, 'match-1', 'T0', 'T1')
        assert updated.upper[2] is bracket.upper[2]
        assert updated.upper[0].matches[1] is bracket.upper[0].matches[1]

    def test_unknown_match_is_absorbed(self):
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        assert complete_match(bracket, 'no-such-match', 'A', 'B') is bracket

    def test_wrong_teams_are_absorbed(self):
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        assert complete_match(bracket, 'match-1', 'A', 'C') is bracket

    def test_completed_match_is_not_replayed(self):
        bracket = complete_match(generate_single_elimination(['A', 'B', 'C', 'D']), 'match-1', 'A', 'B')
        assert complete_match(bracket, 'match-1', 'B', 'A') is bracket

    def test_pending_match_is_absorbed(self):
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        assert complete_match(bracket, 'match-3', 'A', 'C') is bracket

    def test_half_filled_match_rejects_missing_loser(self):
        """A final with one known team cannot be won against nobody."""
        bracket = complete_match(generate_single_elimination(['A', 'B', 'C', 'D']), 'match-1', 'A', 'B')
        final = find_match(bracket, 'match-3')
        assert (final.status, final.team_a_id, final.team_b_id) == (MatchStatus.PENDING, 'A', None)
        assert complete_match(bracket, 'match-3', 'A', None) is bracket
        assert get_champion(bracket) is None
        assert find_match(bracket, 'match-2').status == MatchStatus.READY

    def test_unknown_match_is_logged(self, caplog):
        bracket = generate_single_elimination(['A', 'B'])
        complete_match(bracket, 'missing', 'A', 'B')
        assert 'missing' in caplog.text


class TestStatusQueries:
    """Tests for status refresh and read-only queries."""

    def test_status_refresh_is_idempotent(self):
        bracket = generate_single_elimination([f'T{i}' for i in range(6)])
        once = update_match_statuses(bracket)
        twice = update_match_statuses(once)
        assert once == bracket
        assert twice == once

    def test_bracket_status_progression(self):
        bracket = generate_single_elimination(['A', 'B', 'C'])
        assert get_bracket_status(bracket) == 'not_started'
        bracket = complete_match(bracket, 'match-1', 'A', 'B')
        assert get_bracket_status(bracket) == 'in_progress'
        bracket = complete_match(bracket, 'match-3', 'C', 'A')
        assert get_bracket_status(bracket) == 'completed'
        assert get_champion(bracket) == 'C'

    def test_next_match_is_first_ready(self):
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        assert get_next_match(bracket).match_id == 'match-1'

    def test_no_champion_before_final(self):
        bracket = generate_single_elimination(['A', 'B', 'C', 'D'])
        assert get_champion(bracket) is None
        assert get_final_placements(bracket) == {}


class TestPrefixing:
    """Tests for bracket id prefixing."""

    def test_all_ids_prefixed(self, check_references):
        bracket = prefix_bracket_ids(generate_single_elimination([f'T{i}' for i in range(5)]), 'abc123')
        for round_ in bracket.upper:
            assert round_.round_id.startswith('abc123-')
            for match in round_.matches:
                assert match.match_id.startswith('abc123-')
                assert match.round_id.startswith('abc123-')
        check_references(bracket)

    def test_propagation_after_prefixing(self):
        bracket = prefix_bracket_ids(generate_single_elimination(['A', 'B', 'C', 'D']), 'x')
        bracket = complete_match(bracket, 'x-match-1', 'B', 'A')
        assert find_match(bracket, 'x-match-3').team_a_id == 'B'


class TestBracketDisplay:
    """Tests for get_bracket_display."""

    def test_round_names(self):
        display = get_bracket_display(generate_single_elimination([f'T{i}' for i in range(8)]))
        assert [r['name'] for r in display['rounds']] == ['Quarterfinal', 'Semifinal', 'Final']
        assert display['total_matches'] == 7
        assert display['ready_matches'] == 4
        assert display['status'] == 'not_started'
        assert display['champion'] is None

    def test_byes_counted(self):
        display = get_bracket_display(generate_single_elimination([f'T{i}' for i in range(6)]))
        assert display['rounds'][0]['name'] == 'Quarterfinal'
        assert display['byes'] >= 1
