"""
Tests for the tournament engine.

Covers tournament assembly (ids, dates, prize pools, seeding policy) and the
Masters Swiss-to-playoff flow driven through record_match_result.
"""
import random
import re
from dataclasses import replace
from datetime import date

import pytest

from competition.bracket import (
    find_match,
    get_bracket_status,
    get_next_match,
    iter_matches,
)
from competition.config import get_default_config
from competition.models import (
    BracketFormat,
    CompetitionType,
    MultiStageTournament,
    StandingsEntry,
    TournamentStage,
    TournamentStatus,
)
from competition.tournaments import (
    advance_to_playoff_stage,
    calculate_prize_distribution,
    calculate_prize_pool,
    create_masters_santiago,
    create_tournament,
    generate_bracket,
    generate_kickoff_seeding,
    generate_masters_playoff_bracket,
    generate_tournament_id,
    get_default_format,
    get_expected_team_count,
    get_format_name,
    get_type_name,
    record_match_result,
    seed_teams,
    validate_tournament,
)

START = date(2026, 1, 1)
SWISS_TEAMS = [f'T{i}' for i in range(1, 9)]
DIRECT_TEAMS = ['P1', 'P2', 'P3', 'P4']


@pytest.fixture
def regions():
    return {team: 'EMEA' if i % 2 else 'Pacific' for i, team in enumerate(SWISS_TEAMS, start=1)}


@pytest.fixture
def masters(regions):
    return create_masters_santiago(SWISS_TEAMS, DIRECT_TEAMS, regions, START)


def _play_swiss(tournament, make_result):
    """Team A wins every Swiss match until the tournament leaves the Swiss stage."""
    while tournament.current_stage == TournamentStage.SWISS:
        pending = [m for m in tournament.swiss_stage.rounds[-1].matches if m.winner_id is None]
        assert pending, 'Swiss stage stalled'
        for match in pending:
            tournament = record_match_result(
                tournament, match.match_id,
                make_result(match.match_id, match.team_a_id, match.team_b_id),
            )
    return tournament


class TestTournamentIds:
    """Tests for tournament id generation and bracket id prefixing."""

    def test_id_format(self):
        assert re.match(r'^tournament-\d+-[0-9a-f]{7}$', generate_tournament_id())

    def test_ids_are_unique(self):
        assert len({generate_tournament_id() for _ in range(50)}) == 50

    def test_bracket_ids_carry_tournament_suffix(self):
        tournament = create_tournament('Cup', CompetitionType.STAGE1, BracketFormat.DOUBLE_ELIM,
                                       'EMEA', [f'T{i}' for i in range(8)], START)
        prefix = tournament.id[-12:] + '-'
        for match in iter_matches(tournament.bracket):
            assert match.match_id.startswith(prefix)
            assert match.round_id.startswith(prefix)

    def test_two_tournaments_never_share_match_ids(self):
        teams = [f'T{i}' for i in range(4)]
        first = create_tournament('A', CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM, 'EMEA', teams, START)
        second = create_tournament('B', CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM, 'EMEA', teams, START)
        first_ids = {m.match_id for m in iter_matches(first.bracket)}
        second_ids = {m.match_id for m in iter_matches(second.bracket)}
        assert not first_ids & second_ids


class TestCreateTournament:
    """Tests for create_tournament."""

    @pytest.mark.parametrize('bracket_format,end_date', [
        (BracketFormat.SINGLE_ELIM, '2026-01-04'),
        (BracketFormat.DOUBLE_ELIM, '2026-01-08'),
        (BracketFormat.TRIPLE_ELIM, '2026-01-15'),
        (BracketFormat.ROUND_ROBIN, '2026-02-05'),
    ])
    def test_end_date_by_format(self, bracket_format, end_date):
        teams = [f'T{i}' for i in range(12)]
        tournament = create_tournament('Cup', CompetitionType.STAGE1, bracket_format, 'EMEA', teams, START)
        assert tournament.start_date == '2026-01-01'
        assert tournament.end_date == end_date
        assert tournament.bracket.format == bracket_format

    def test_initial_state(self):
        teams = ['A', 'B', 'C', 'D']
        tournament = create_tournament('Cup', CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM,
                                       'EMEA', teams, START)
        assert tournament.status == TournamentStatus.UPCOMING
        assert tournament.champion_id is None
        assert tournament.team_ids == ('A', 'B', 'C', 'D')
        assert tournament.prize_pool[1] == 70000

    def test_tournament_is_hashable(self):
        tournament = create_tournament('Cup', CompetitionType.STAGE1, BracketFormat.DOUBLE_ELIM,
                                       'EMEA', ['A', 'B', 'C', 'D'], START)
        assert hash(tournament) == hash(replace(tournament))
        assert tournament in {tournament}

    def test_explicit_prize_pool(self):
        tournament = create_tournament('Cup', CompetitionType.MASTERS, BracketFormat.DOUBLE_ELIM,
                                       'International', ['A', 'B', 'C', 'D'], START, total_prize_pool=100)
        assert tournament.prize_pool[1] == 35

    def test_kickoff_americas_keeps_order(self):
        teams = [f'T{i}' for i in range(1, 13)]
        tournament = create_tournament('Kickoff', CompetitionType.KICKOFF, BracketFormat.TRIPLE_ELIM,
                                       'Americas', teams, START)
        ur2 = tournament.bracket.upper[1].matches
        assert [m.team_a_id for m in ur2] == ['T1', 'T2', 'T3', 'T4']

    def test_kickoff_draw_is_pinned_by_rng(self):
        teams = [f'T{i}' for i in range(1, 13)]
        first = create_tournament('Kickoff', CompetitionType.KICKOFF, BracketFormat.TRIPLE_ELIM,
                                  'EMEA', teams, START, rng=random.Random(3))
        second = create_tournament('Kickoff', CompetitionType.KICKOFF, BracketFormat.TRIPLE_ELIM,
                                   'EMEA', teams, START, rng=random.Random(3))
        assert [m.team_ids for m in first.bracket.upper[0].matches] == \
            [m.team_ids for m in second.bracket.upper[0].matches]
        assert [m.team_a_id for m in first.bracket.upper[1].matches] == ['T1', 'T2', 'T3', 'T4']

    def test_invalid_tournament_is_created_with_warning(self, caplog):
        tournament = create_tournament('Cup', CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM,
                                       'EMEA', ['A', 'A'], START)
        assert tournament is not None
        assert 'Duplicate teams not allowed' in caplog.text

    def test_unknown_format_falls_back_to_single_elimination(self, caplog):
        bracket = generate_bracket(BracketFormat.SWISS_TO_PLAYOFF, ['A', 'B', 'C', 'D'])
        assert bracket.format == BracketFormat.SINGLE_ELIM
        assert 'single elimination' in caplog.text


class TestPrizePool:
    """Tests for prize distribution."""

    def test_masters_distribution(self):
        amounts = calculate_prize_distribution(CompetitionType.MASTERS, 1000000)
        assert amounts[1] == 350000
        assert amounts[2] == 200000
        assert amounts[3] == 150000
        assert amounts[4] == 100000
        assert amounts[8] == 50000

    def test_kickoff_tiers(self):
        tiers = calculate_prize_pool(CompetitionType.KICKOFF, 500000)
        assert tiers == {
            'first': 200000,
            'second': 100000,
            'third': 60000,
            'fourth': 40000,
            'fifth_sixth': 25000,
            'seventh_eighth': 25000,
        }

    def test_distribution_sums_to_pool(self):
        amounts = calculate_prize_distribution(CompetitionType.CHAMPIONS, 2500000)
        assert sum(amounts.values()) == 2500000

    def test_config_override(self):
        config = get_default_config()
        config['prize_distributions']['stage1'] = {1: 1.0}
        assert calculate_prize_distribution(CompetitionType.STAGE1, 1000, config) == {1: 1000}


class TestSeeding:
    """Tests for Kickoff seeding and seed_teams."""

    def test_americas_identity(self):
        assert generate_kickoff_seeding(['a', 'b', 'c', 'd', 'e'], 'Americas') == [1, 2, 3, 4, 5]

    def test_generic_region_keeps_bye_seeds(self):
        seeding = generate_kickoff_seeding([f'T{i}' for i in range(12)], 'EMEA', random.Random(11))
        assert seeding[:4] == [1, 2, 3, 4]
        assert sorted(seeding[4:]) == list(range(5, 13))

    def test_generic_region_is_reproducible_with_rng(self):
        teams = [f'T{i}' for i in range(12)]
        assert generate_kickoff_seeding(teams, 'Pacific', random.Random(5)) == \
            generate_kickoff_seeding(teams, 'Pacific', random.Random(5))

    def test_fewer_teams_than_bye_seeds(self):
        assert generate_kickoff_seeding(['a', 'b', 'c'], 'China', random.Random(1)) == [1, 2, 3]

    def test_seed_teams_from_standings(self):
        standings = [StandingsEntry('C', 'Gamma'), StandingsEntry('A', 'Alpha')]
        assert seed_teams(['A', 'B', 'C'], standings) == [2, 3, 1]

    def test_seed_teams_without_standings(self):
        assert seed_teams(['A', 'B', 'C']) == [1, 2, 3]


class TestValidation:
    """Tests for validate_tournament."""

    def test_valid(self):
        result = validate_tournament(['A', 'B'], CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM)
        assert result.valid
        assert result.error is None

    def test_too_few_teams(self):
        result = validate_tournament(['A'], CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM)
        assert not result.valid
        assert result.error == 'At least 2 teams required'

    def test_round_robin_limit(self):
        teams = [f'T{i}' for i in range(21)]
        result = validate_tournament(teams, CompetitionType.STAGE1, BracketFormat.ROUND_ROBIN)
        assert result.error == 'Maximum 20 teams allowed'
        assert validate_tournament(teams, CompetitionType.STAGE1, BracketFormat.DOUBLE_ELIM).valid

    def test_bracket_limit(self):
        teams = [f'T{i}' for i in range(65)]
        result = validate_tournament(teams, CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM)
        assert result.error == 'Maximum 64 teams allowed'

    def test_duplicates(self):
        result = validate_tournament(['A', 'B', 'A'], CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM)
        assert result.error == 'Duplicate teams not allowed'


class TestLookups:
    def test_defaults(self):
        assert get_default_format(CompetitionType.KICKOFF) == BracketFormat.TRIPLE_ELIM
        assert get_default_format(CompetitionType.STAGE2) == BracketFormat.ROUND_ROBIN
        assert get_expected_team_count(CompetitionType.KICKOFF) == 12
        assert get_expected_team_count(CompetitionType.CHAMPIONS) == 16

    def test_names(self):
        assert get_type_name(CompetitionType.STAGE1) == 'Stage 1'
        assert get_format_name(BracketFormat.SWISS_TO_PLAYOFF) == 'Swiss to Playoffs'


class TestMastersSantiago:
    """Tests for the Swiss-to-playoff Masters tournament."""

    def test_initial_state(self, masters):
        assert isinstance(masters, MultiStageTournament)
        assert masters.format == BracketFormat.SWISS_TO_PLAYOFF
        assert masters.region == 'International'
        assert masters.current_stage == TournamentStage.SWISS
        assert masters.team_ids == tuple(SWISS_TEAMS + DIRECT_TEAMS)
        assert masters.end_date == '2026-01-19'
        assert len(masters.swiss_stage.rounds[0].matches) == 4
        assert list(iter_matches(masters.bracket)) == []

    def test_wrong_team_counts_warn(self, regions, caplog):
        create_masters_santiago(SWISS_TEAMS[:7], DIRECT_TEAMS, regions, START)
        assert 'expects 8 teams, got 7' in caplog.text

    def test_advance_is_noop_while_swiss_runs(self, masters):
        assert advance_to_playoff_stage(masters) is masters

    def test_swiss_result_starts_tournament(self, masters, make_result):
        match = masters.swiss_stage.rounds[0].matches[0]
        updated = record_match_result(masters, match.match_id,
                                      make_result(match.match_id, match.team_a_id, match.team_b_id))
        assert updated.status == TournamentStatus.IN_PROGRESS
        assert updated.current_stage == TournamentStage.SWISS

    def test_unknown_match_is_absorbed(self, masters, make_result):
        assert record_match_result(masters, 'missing', make_result('missing', 'T1', 'T2')) is masters

    def test_missing_swiss_data_is_absorbed(self, masters, make_result, caplog):
        broken = replace(masters, swiss_stage=None)
        assert record_match_result(broken, 'swiss-r1-m1', make_result('swiss-r1-m1', 'T1', 'T2')) is broken
        assert 'without Swiss data' in caplog.text

    def test_swiss_rounds_are_paired_automatically(self, masters, make_result):
        for match in masters.swiss_stage.rounds[0].matches:
            masters = record_match_result(masters, match.match_id,
                                          make_result(match.match_id, match.team_a_id, match.team_b_id))
        assert masters.swiss_stage.current_round == 2
        assert len(masters.swiss_stage.rounds) == 2

    def test_playoffs_seeded_from_swiss(self, masters, make_result):
        tournament = _play_swiss(masters, make_result)
        assert tournament.current_stage == TournamentStage.PLAYOFF
        assert tournament.swiss_stage.qualified_team_ids == ('T1', 'T3', 'T2', 'T4')

        first_round = [m.team_ids for m in tournament.bracket.upper[0].matches]
        assert first_round == [('P1', 'P2'), ('P3', 'P4'), ('T1', 'T3'), ('T2', 'T4')]
        prefix = tournament.id[-12:]
        assert find_match(tournament.bracket, f'{prefix}-grandfinal') is not None

    def test_full_flow_completes(self, masters, make_result):
        tournament = _play_swiss(masters, make_result)
        match = get_next_match(tournament.bracket)
        while match is not None:
            tournament = record_match_result(
                tournament, match.match_id,
                make_result(match.match_id, match.team_a_id, match.team_b_id),
            )
            match = get_next_match(tournament.bracket)

        assert get_bracket_status(tournament.bracket) == 'completed'
        assert tournament.status == TournamentStatus.COMPLETED
        assert tournament.champion_id == 'P1'

    def test_playoff_bracket_direct(self):
        bracket = generate_masters_playoff_bracket(['Q1', 'Q2', 'Q3', 'Q4'], DIRECT_TEAMS,
                                                   'tournament-1760000000000-abcdef0')
        assert bracket.format == BracketFormat.DOUBLE_ELIM
        assert bracket.upper[0].matches[0].match_id == '0000-abcdef0-match-1'
        assert bracket.upper[0].matches[2].team_ids == ('Q1', 'Q2')


class TestBracketResults:
    """record_match_result on single-stage tournaments."""

    def test_status_progression(self, make_result):
        tournament = create_tournament('Cup', CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM,
                                       'EMEA', ['A', 'B'], START)
        match = get_next_match(tournament.bracket)
        tournament = record_match_result(tournament, match.match_id, make_result(match.match_id, 'B', 'A'))
        assert tournament.status == TournamentStatus.COMPLETED
        assert tournament.champion_id == 'B'

    def test_bad_result_is_absorbed(self, make_result):
        tournament = create_tournament('Cup', CompetitionType.STAGE1, BracketFormat.SINGLE_ELIM,
                                       'EMEA', ['A', 'B', 'C', 'D'], START)
        match = get_next_match(tournament.bracket)
        assert record_match_result(tournament, match.match_id,
                                   make_result(match.match_id, 'A', 'D')) is tournament
