"""
Tournament engine: builds named tournaments around generated brackets.

Handles prize pools, end dates, seeding policy, bracket id prefixing and the
Masters Swiss-to-playoff format, and routes match results to the right
stage.
"""
import logging
import math
import random
import time
import uuid
from dataclasses import replace
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from .bracket import complete_match, get_bracket_status, get_champion, prefix_bracket_ids
from .config import load_config
from .double_elimination import generate_double_elimination
from .elimination import generate_single_elimination
from .formats import generate_round_robin
from .models import (
    BracketFormat,
    BracketStructure,
    CompetitionType,
    MatchResult,
    MultiStageTournament,
    StandingsEntry,
    Tournament,
    TournamentStage,
    TournamentStatus,
    ValidationResult,
)
from .swiss import (
    complete_swiss_match,
    generate_next_swiss_round,
    get_swiss_qualified_teams,
    initialize_swiss_stage,
    is_swiss_round_complete,
    is_swiss_stage_complete,
)
from .triple_elimination import generate_triple_elimination

logger = logging.getLogger(__name__)

AMERICAS = 'Americas'
INTERNATIONAL = 'International'
KICKOFF_BYE_TEAMS = 4

TYPE_NAMES = {
    CompetitionType.KICKOFF: 'Kickoff',
    CompetitionType.STAGE1: 'Stage 1',
    CompetitionType.STAGE2: 'Stage 2',
    CompetitionType.MASTERS: 'Masters',
    CompetitionType.CHAMPIONS: 'Champions',
}

FORMAT_NAMES = {
    BracketFormat.SINGLE_ELIM: 'Single Elimination',
    BracketFormat.DOUBLE_ELIM: 'Double Elimination',
    BracketFormat.TRIPLE_ELIM: 'Triple Elimination',
    BracketFormat.ROUND_ROBIN: 'Round Robin',
    BracketFormat.SWISS_TO_PLAYOFF: 'Swiss to Playoffs',
}

DEFAULT_FORMATS = {
    CompetitionType.KICKOFF: BracketFormat.TRIPLE_ELIM,
    CompetitionType.STAGE1: BracketFormat.ROUND_ROBIN,
    CompetitionType.STAGE2: BracketFormat.ROUND_ROBIN,
    CompetitionType.MASTERS: BracketFormat.DOUBLE_ELIM,
    CompetitionType.CHAMPIONS: BracketFormat.DOUBLE_ELIM,
}

EXPECTED_TEAM_COUNTS = {
    CompetitionType.KICKOFF: 12,
    CompetitionType.STAGE1: 10,
    CompetitionType.STAGE2: 10,
    CompetitionType.MASTERS: 12,
    CompetitionType.CHAMPIONS: 16,
}


def generate_tournament_id() -> str:
    return f'tournament-{int(time.time() * 1000)}-{uuid.uuid4().hex[:7]}'


def _id_prefix(tournament_id: str, config: Dict) -> str:
    return tournament_id[-config['id_prefix_length']:]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _end_date(start_date: date, bracket_format: BracketFormat, config: Dict) -> date:
    return start_date + timedelta(days=config['tournament_durations'][bracket_format.value])


def calculate_prize_distribution(competition_type: CompetitionType, total_pool: int,
                                 config: Optional[Dict] = None) -> Dict[int, int]:
    """Prize money per final placement, rounded to whole units."""
    config = config or load_config()
    distribution = config['prize_distributions'][competition_type.value]
    return {int(place): _round_half_up(total_pool * share) for place, share in distribution.items()}


def calculate_prize_pool(competition_type: CompetitionType, total_pool: int,
                         config: Optional[Dict] = None) -> Dict[str, Optional[int]]:
    """
    Prize money by tier.

    Returns dict with: first, second, third, fourth, fifth_sixth,
    seventh_eighth. Tiers the competition does not pay are None.
    """
    amounts = calculate_prize_distribution(competition_type, total_pool, config)
    return {
        'first': amounts.get(1),
        'second': amounts.get(2),
        'third': amounts.get(3),
        'fourth': amounts.get(4),
        'fifth_sixth': amounts.get(5),
        'seventh_eighth': amounts.get(7),
    }


def generate_kickoff_seeding(team_ids: Sequence[str], region: Optional[str] = None,
                             rng: Optional[random.Random] = None) -> List[int]:
    """
    Seeding for a Kickoff draw.

    Americas teams arrive in the official seeding order and keep it. Anywhere
    else the first four teams take the bye seeds 1-4 and the rest are drawn
    at random into seeds 5..N. The draw is the one random element of
    bracket generation; pass ``rng`` to pin it.
    """
    num_teams = len(team_ids)
    if region == AMERICAS:
        return list(range(1, num_teams + 1))

    num_bye_teams = min(KICKOFF_BYE_TEAMS, num_teams)
    drawn_seeds = list(range(num_bye_teams + 1, num_teams + 1))
    (rng or random.Random()).shuffle(drawn_seeds)
    return list(range(1, num_bye_teams + 1)) + drawn_seeds


def seed_teams(team_ids: Sequence[str], standings: Optional[Sequence[StandingsEntry]] = None) -> List[int]:
    """
    Seeding permutation from prior standings.

    ``result[i]`` is the seed of ``team_ids[i]``. Teams missing from the
    standings are seeded after the ranked ones, in input order.
    """
    if not standings:
        return list(range(1, len(team_ids) + 1))

    position = {entry.team_id: index for index, entry in enumerate(standings)}
    order = sorted(range(len(team_ids)), key=lambda i: position.get(team_ids[i], len(position)))
    seeding = [0] * len(team_ids)
    for seed, index in enumerate(order, start=1):
        seeding[index] = seed
    return seeding


def generate_bracket(bracket_format: BracketFormat, team_ids: Sequence[str],
                     competition_type: Optional[CompetitionType] = None, region: Optional[str] = None,
                     rng: Optional[random.Random] = None) -> BracketStructure:
    """Generate the bracket for a format. Kickoff triple elimination uses the Kickoff draw."""
    if bracket_format == BracketFormat.TRIPLE_ELIM and competition_type == CompetitionType.KICKOFF:
        seeding = generate_kickoff_seeding(team_ids, region, rng)
        return generate_triple_elimination(team_ids, seeding)

    if bracket_format == BracketFormat.SINGLE_ELIM:
        return generate_single_elimination(team_ids)
    elif bracket_format == BracketFormat.DOUBLE_ELIM:
        return generate_double_elimination(team_ids)
    elif bracket_format == BracketFormat.TRIPLE_ELIM:
        return generate_triple_elimination(team_ids)
    elif bracket_format == BracketFormat.ROUND_ROBIN:
        return generate_round_robin(team_ids)

    logger.warning(f'No bracket generator for {bracket_format.value}, using single elimination')
    return generate_single_elimination(team_ids)


def create_tournament(name: str, competition_type: CompetitionType, bracket_format: BracketFormat,
                      region: str, team_ids: Sequence[str], start_date: date,
                      total_prize_pool: Optional[int] = None, rng: Optional[random.Random] = None,
                      config: Optional[Dict] = None) -> Tournament:
    """
    Create a tournament with its bracket, prize pool and end date.

    Every match and round id in the bracket is prefixed with the tail of the
    tournament id, so brackets of different tournaments never share ids.
    """
    config = config or load_config()

    validation = validate_tournament(team_ids, competition_type, bracket_format, config)
    if not validation.valid:
        logger.warning(f'Creating {name} anyway: {validation.error}')

    tournament_id = generate_tournament_id()
    pool = total_prize_pool or config['default_prize_pools'][competition_type.value]

    bracket = generate_bracket(bracket_format, team_ids, competition_type, region, rng)
    bracket = prefix_bracket_ids(bracket, _id_prefix(tournament_id, config))

    logger.info(f'Created tournament {name} ({tournament_id}): {len(team_ids)} teams, {bracket_format.value}')

    return Tournament(
        id=tournament_id,
        name=name,
        type=competition_type,
        format=bracket_format,
        region=region,
        team_ids=tuple(team_ids),
        start_date=start_date.isoformat(),
        end_date=_end_date(start_date, bracket_format, config).isoformat(),
        prize_pool=calculate_prize_distribution(competition_type, pool, config),
        bracket=bracket,
    )


def create_masters_santiago(swiss_team_ids: Sequence[str], playoff_only_team_ids: Sequence[str],
                            team_regions: Dict[str, str], start_date: date,
                            total_prize_pool: Optional[int] = None, name: Optional[str] = None,
                            config: Optional[Dict] = None) -> MultiStageTournament:
    """
    Create the Masters Swiss-to-playoff tournament.

    8 teams play the Swiss stage; 4 teams wait for the playoffs. The playoff
    bracket stays an empty placeholder until ``advance_to_playoff_stage``.
    """
    config = config or load_config()

    if len(swiss_team_ids) != 8:
        logger.warning(f'Masters Swiss stage expects 8 teams, got {len(swiss_team_ids)}')
    if len(playoff_only_team_ids) != 4:
        logger.warning(f'Masters playoffs expect 4 direct seeds, got {len(playoff_only_team_ids)}')

    tournament_id = generate_tournament_id()
    pool = total_prize_pool or config['default_prize_pools'][CompetitionType.MASTERS.value]
    swiss = config['swiss']

    swiss_stage = initialize_swiss_stage(
        swiss_team_ids,
        team_regions,
        tournament_id,
        total_rounds=swiss['total_rounds'],
        wins_to_qualify=swiss['wins_to_qualify'],
        losses_to_eliminate=swiss['losses_to_eliminate'],
    )

    logger.info(f'Created Masters tournament {tournament_id}')

    return MultiStageTournament(
        id=tournament_id,
        name=name or 'VCT Masters Santiago',
        type=CompetitionType.MASTERS,
        format=BracketFormat.SWISS_TO_PLAYOFF,
        region=INTERNATIONAL,
        team_ids=tuple(swiss_team_ids) + tuple(playoff_only_team_ids),
        start_date=start_date.isoformat(),
        end_date=_end_date(start_date, BracketFormat.SWISS_TO_PLAYOFF, config).isoformat(),
        prize_pool=calculate_prize_distribution(CompetitionType.MASTERS, pool, config),
        bracket=BracketStructure(format=BracketFormat.DOUBLE_ELIM),
        swiss_stage=swiss_stage,
        current_stage=TournamentStage.SWISS,
        swiss_team_ids=tuple(swiss_team_ids),
        playoff_only_team_ids=tuple(playoff_only_team_ids),
    )


def generate_masters_playoff_bracket(swiss_qualifiers: Sequence[str], playoff_only_team_ids: Sequence[str],
                                     tournament_id: str, config: Optional[Dict] = None) -> BracketStructure:
    """
    Playoff bracket for Masters.

    Seeds 1-4 are the direct playoff entrants in the given order, seeds 5-8
    the Swiss qualifiers in qualification order.
    """
    config = config or load_config()
    seeded_team_ids = list(playoff_only_team_ids) + list(swiss_qualifiers)
    bracket = generate_double_elimination(seeded_team_ids)
    return prefix_bracket_ids(bracket, _id_prefix(tournament_id, config))


def advance_to_playoff_stage(tournament: MultiStageTournament,
                             config: Optional[Dict] = None) -> MultiStageTournament:
    """Swap in the playoff bracket once the Swiss stage is complete."""
    if tournament.current_stage != TournamentStage.SWISS or tournament.swiss_stage is None:
        return tournament
    if not is_swiss_stage_complete(tournament.swiss_stage):
        logger.debug(f'Swiss stage of {tournament.id} is still running')
        return tournament

    bracket = generate_masters_playoff_bracket(
        get_swiss_qualified_teams(tournament.swiss_stage),
        tournament.playoff_only_team_ids,
        tournament.id,
        config,
    )
    logger.info(f'{tournament.id} advanced to the playoff stage')
    return replace(tournament, bracket=bracket, current_stage=TournamentStage.PLAYOFF)


def record_match_result(tournament: Tournament, match_id: str, result: MatchResult,
                        config: Optional[Dict] = None) -> Tournament:
    """
    Apply a match result to the tournament's current stage.

    During a Swiss stage the next round is paired as soon as the current one
    finishes, and the playoffs are created once the stage is decided.
    Results that do not apply are logged and the tournament is returned
    unchanged.
    """
    if isinstance(tournament, MultiStageTournament) and tournament.current_stage == TournamentStage.SWISS:
        if tournament.swiss_stage is None:
            logger.warning(f'{tournament.id} is in the Swiss stage without Swiss data')
            return tournament
        stage = complete_swiss_match(tournament.swiss_stage, match_id, result)
        if stage is tournament.swiss_stage:
            return tournament
        if is_swiss_round_complete(stage) and not is_swiss_stage_complete(stage):
            stage = generate_next_swiss_round(stage, tournament.id)
        updated = replace(tournament, swiss_stage=stage, status=TournamentStatus.IN_PROGRESS)
        return advance_to_playoff_stage(updated, config)

    bracket = complete_match(tournament.bracket, match_id, result.winner_id, result.loser_id, result)
    if bracket is tournament.bracket:
        return tournament

    if get_bracket_status(bracket) == 'completed':
        status = TournamentStatus.COMPLETED
        logger.info(f'{tournament.name} completed, champion: {get_champion(bracket)}')
    else:
        status = TournamentStatus.IN_PROGRESS
    return replace(tournament, bracket=bracket, status=status, champion_id=get_champion(bracket))


def validate_tournament(team_ids: Sequence[str], competition_type: CompetitionType,
                        bracket_format: BracketFormat, config: Optional[Dict] = None) -> ValidationResult:
    """Validate tournament can be created."""
    limits = (config or load_config())['team_limits']
    min_teams = limits['min_teams']
    if bracket_format == BracketFormat.ROUND_ROBIN:
        max_teams = limits['max_round_robin_teams']
    else:
        max_teams = limits['max_teams']

    if len(team_ids) < min_teams:
        return ValidationResult(False, f'At least {min_teams} teams required')
    if len(team_ids) > max_teams:
        return ValidationResult(False, f'Maximum {max_teams} teams allowed')
    if len(set(team_ids)) != len(team_ids):
        return ValidationResult(False, 'Duplicate teams not allowed')
    return ValidationResult(True)


def get_default_format(competition_type: CompetitionType) -> BracketFormat:
    return DEFAULT_FORMATS[competition_type]


def get_expected_team_count(competition_type: CompetitionType) -> int:
    return EXPECTED_TEAM_COUNTS[competition_type]


def get_type_name(competition_type: CompetitionType) -> str:
    return TYPE_NAMES[competition_type]


def get_format_name(bracket_format: BracketFormat) -> str:
    return FORMAT_NAMES[bracket_format]
